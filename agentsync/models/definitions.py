"""Wire documents sent to the control plane.

A FullGraphDefinition is the complete, self-contained description of one
graph: every sub-agent keyed by id, plus registries of the tools, functions
and components those sub-agents reference. A FullProjectDefinition wraps the
graphs of a project together with project-wide registries.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import Field, SerializationInfo, model_serializer

from agentsync.models.settings import (
    CredentialReference,
    Models,
    StatusUpdateSettings,
    StopWhen,
    WireModel,
)


class CanUseItem(WireModel):
    """A sub-agent's use of one tool, optionally scoped to a subset of its functions."""

    tool_id: str
    tool_selection: list[str] | None = None
    headers: dict[str, str] | None = None

    @model_serializer(mode="wrap")
    def _keep_explicit_nulls(self, handler, info: SerializationInfo) -> dict:
        # unscoped tool use is sent as explicit nulls, never omitted
        data = handler(self)
        selection_key = "toolSelection" if info.by_alias else "tool_selection"
        data.setdefault(selection_key, self.tool_selection)
        data.setdefault("headers", self.headers)
        return data


class SubAgentDefinition(WireModel):
    id: str
    name: str
    description: str
    prompt: str | None = None
    models: Models | None = None
    stop_when: StopWhen | None = None
    can_transfer_to: list[str] = Field(default_factory=list)
    can_delegate_to: list[str] = Field(default_factory=list)
    can_use: list[CanUseItem] = Field(default_factory=list)
    data_components: list[str] = Field(default_factory=list)
    artifact_components: list[str] = Field(default_factory=list)
    type: Literal["internal"] = "internal"


class ExternalAgentDefinition(WireModel):
    id: str
    name: str
    description: str
    base_url: str
    credential_reference_id: str | None = None
    headers: dict[str, str] | None = None
    type: Literal["external"] = "external"


AgentDefinition = Annotated[
    Union[SubAgentDefinition, ExternalAgentDefinition],
    Field(discriminator="type"),
]


class McpServerConfig(WireModel):
    url: str


class McpTransportConfig(WireModel):
    type: str = "streamable_http"  # or "sse"


class McpConfig(WireModel):
    server: McpServerConfig
    transport: McpTransportConfig | None = None
    active_tools: list[str] | None = None


class ToolConfig(WireModel):
    type: Literal["mcp"] = "mcp"
    mcp: McpConfig


class ToolDefinition(WireModel):
    id: str
    name: str
    description: str | None = None
    config: ToolConfig
    credential_reference_id: str | None = None
    headers: dict[str, str] | None = None
    image_url: str | None = None


class FunctionDefinition(WireModel):
    """Executable body of a function tool, shared across graphs by id."""

    id: str
    input_schema: dict | None = None
    execute_code: str
    dependencies: dict[str, str] | None = None


class FunctionToolDefinition(WireModel):
    id: str
    name: str
    description: str | None = None
    function_id: str
    graph_id: str


class DataComponentDefinition(WireModel):
    id: str
    name: str
    description: str | None = None
    props: dict | None = None


class ArtifactComponentDefinition(WireModel):
    id: str
    name: str
    description: str | None = None
    summary_props: dict | None = None
    full_props: dict | None = None


class FullGraphDefinition(WireModel):
    id: str
    name: str
    description: str | None = None
    default_sub_agent_id: str | None = None
    sub_agents: dict[str, AgentDefinition] = Field(default_factory=dict)
    tools: dict[str, ToolDefinition] = Field(default_factory=dict)
    functions: dict[str, FunctionDefinition] = Field(default_factory=dict)
    function_tools: dict[str, FunctionToolDefinition] = Field(default_factory=dict)
    data_components: dict[str, DataComponentDefinition] = Field(default_factory=dict)
    artifact_components: dict[str, ArtifactComponentDefinition] = Field(
        default_factory=dict
    )
    credential_references: dict[str, CredentialReference] = Field(
        default_factory=dict
    )
    models: Models | None = None
    stop_when: StopWhen | None = None
    status_updates: StatusUpdateSettings | None = None
    graph_prompt: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class AgentGraphDefinition(WireModel):
    """Graph metadata without its sub-agents, used by per-entity sync."""

    id: str
    name: str
    description: str | None = None
    default_sub_agent_id: str | None = None
    models: Models | None = None
    stop_when: StopWhen | None = None
    status_updates: StatusUpdateSettings | None = None
    graph_prompt: str | None = None


class CredentialUsage(WireModel):
    type: str  # "tool", "externalAgent"...
    id: str


class ProjectCredentialReference(CredentialReference):
    used_by: list[CredentialUsage] = Field(default_factory=list)


class FullProjectDefinition(WireModel):
    id: str
    name: str
    description: str | None = None
    models: Models | None = None
    stop_when: StopWhen | None = None
    graphs: dict[str, FullGraphDefinition] = Field(default_factory=dict)
    tools: dict[str, ToolDefinition] = Field(default_factory=dict)
    functions: dict[str, FunctionDefinition] = Field(default_factory=dict)
    data_components: dict[str, DataComponentDefinition] = Field(default_factory=dict)
    artifact_components: dict[str, ArtifactComponentDefinition] = Field(
        default_factory=dict
    )
    credential_references: dict[str, ProjectCredentialReference] = Field(
        default_factory=dict
    )
    created_at: str | None = None
    updated_at: str | None = None


class SubAgentRelationCreate(WireModel):
    """Body of a single transfer/delegate relation create."""

    graph_id: str
    source_sub_agent_id: str
    target_sub_agent_id: str | None = None
    external_agent_id: str | None = None
    relation_type: Literal["transfer", "delegate"]
