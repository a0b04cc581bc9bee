"""Assemble the full definition document of a graph.

The assembler is pure: it reads the in-memory graph and builds a
FullGraphDefinition without touching the network or mutating anything.
Sub-agents appear in the graph's insertion order; tools, functions,
components and credentials are deduplicated by id, in first-reference order.
"""

from __future__ import annotations

import typing
from dataclasses import dataclass, field

from agentsync.models.definitions import (
    ArtifactComponentDefinition,
    CanUseItem,
    DataComponentDefinition,
    ExternalAgentDefinition,
    FullGraphDefinition,
    FunctionDefinition,
    FunctionToolDefinition,
    SubAgentDefinition,
    ToolDefinition,
)
from agentsync.models.settings import CredentialReference, StopWhen
from agentsync.sdk.agent import ExternalAgent, SubAgent
from agentsync.sdk.components import ArtifactComponent, DataComponent
from agentsync.sdk.registry import EntityRegistry
from agentsync.sdk.tool import FunctionTool, Tool
from agentsync.utils.identifiers import utc_timestamp

if typing.TYPE_CHECKING:
    from agentsync.sdk.graph import Graph


def _add_once(target: dict, entity) -> None:
    target.setdefault(entity.id, entity)


@dataclass
class GraphReferences:
    """Every leaf entity a graph reaches, keyed by id in first-seen order."""

    tools: dict[str, Tool] = field(default_factory=dict)
    function_tools: dict[str, FunctionTool] = field(default_factory=dict)
    data_components: dict[str, DataComponent] = field(default_factory=dict)
    artifact_components: dict[str, ArtifactComponent] = field(default_factory=dict)
    external_agents: dict[str, ExternalAgent] = field(default_factory=dict)
    credentials: dict[str, CredentialReference] = field(default_factory=dict)


def collect_references(graph: Graph) -> GraphReferences:
    refs = GraphReferences()
    for credential in graph.credentials:
        _add_once(refs.credentials, credential)

    for member in graph.get_sub_agents():
        if isinstance(member, ExternalAgent):
            _add_once(refs.external_agents, member)
            continue
        for config in member.get_tools():
            if isinstance(config.tool, FunctionTool):
                _add_once(refs.function_tools, config.tool)
            else:
                _add_once(refs.tools, config.tool)
        for component in member.get_data_components():
            _add_once(refs.data_components, component)
        for component in member.get_artifact_components():
            _add_once(refs.artifact_components, component)
        for target in member.get_delegates(graph.registry):
            if isinstance(target, ExternalAgent):
                _add_once(refs.external_agents, target)

    for holder in list(refs.tools.values()) + list(refs.external_agents.values()):
        if isinstance(holder.credential, CredentialReference):
            _add_once(refs.credentials, holder.credential)
    return refs


class GraphAssembler:
    """Build FullGraphDefinition documents from graphs."""

    def sub_agent_definition(
        self, agent: SubAgent, registry: EntityRegistry | None = None
    ) -> SubAgentDefinition:
        can_use = [
            CanUseItem(
                tool_id=config.tool_id,
                tool_selection=config.selected_tools,
                headers=config.headers,
            )
            for config in agent.get_tools()
        ]
        stop_when = None
        if agent.step_count_is is not None:
            stop_when = StopWhen(step_count_is=agent.step_count_is)
        return SubAgentDefinition(
            id=agent.id,
            name=agent.name,
            description=agent.description or f"Agent {agent.name}",
            prompt=agent.prompt,
            models=agent.models.model_copy(deep=True) if agent.models else None,
            stop_when=stop_when,
            can_transfer_to=[t.id for t in agent.get_transfers(registry)],
            can_delegate_to=[d.id for d in agent.get_delegates(registry)],
            can_use=can_use,
            data_components=[c.id for c in agent.get_data_components()],
            artifact_components=[c.id for c in agent.get_artifact_components()],
        )

    def assemble(self, graph: Graph, timestamp: str | None = None) -> FullGraphDefinition:
        """Build the document for ``graph``.

        Args:
            graph: The graph to describe. It is read, never modified.
            timestamp: Value for createdAt/updatedAt; the current UTC time
                when omitted.
        """
        timestamp = timestamp or utc_timestamp()
        refs = collect_references(graph)

        sub_agents: dict[str, SubAgentDefinition | ExternalAgentDefinition] = {}
        for member in graph.get_sub_agents():
            if isinstance(member, SubAgent):
                sub_agents[member.id] = self.sub_agent_definition(member, graph.registry)
        # external agents last, whether they are members or only delegated to
        for external in refs.external_agents.values():
            sub_agents.setdefault(external.id, external.to_definition())

        tools: dict[str, ToolDefinition] = {
            tool_id: tool.to_definition() for tool_id, tool in refs.tools.items()
        }
        functions: dict[str, FunctionDefinition] = {}
        function_tools: dict[str, FunctionToolDefinition] = {}
        for tool_id, function_tool in refs.function_tools.items():
            functions[tool_id] = function_tool.to_function_definition()
            function_tools[tool_id] = function_tool.to_function_tool_definition(graph.id)

        data_components: dict[str, DataComponentDefinition] = {
            cid: c.to_definition() for cid, c in refs.data_components.items()
        }
        artifact_components: dict[str, ArtifactComponentDefinition] = {
            cid: c.to_definition() for cid, c in refs.artifact_components.items()
        }

        default = graph.get_default_sub_agent()
        return FullGraphDefinition(
            id=graph.id,
            name=graph.name,
            description=graph.description,
            default_sub_agent_id=default.id if default else None,
            sub_agents=sub_agents,
            tools=tools,
            functions=functions,
            function_tools=function_tools,
            data_components=data_components,
            artifact_components=artifact_components,
            credential_references={
                cid: c.model_copy(deep=True) for cid, c in refs.credentials.items()
            },
            models=graph.models.model_copy(deep=True) if graph.models else None,
            stop_when=graph.get_stop_when(),
            status_updates=graph.status_updates,
            graph_prompt=graph.graph_prompt,
            created_at=timestamp,
            updated_at=timestamp,
        )
