"""Internal sub-agents and external agents.

A SubAgent runs inside a graph and may transfer control to other internal
sub-agents or delegate tasks to any agent. An ExternalAgent lives behind its
own URL and can only be a delegation target.
"""

from __future__ import annotations

import asyncio

import structlog

from agentsync.adapters.control_plane import ControlPlaneClient, ResourceKind, Scope
from agentsync.errors import ConfigurationError
from agentsync.models.definitions import ExternalAgentDefinition
from agentsync.models.settings import (
    CredentialReference,
    ModelSettings,
    Models,
    StopWhen,
    as_model,
)
from agentsync.sdk.components import (
    ArtifactComponent,
    DataComponent,
    as_artifact_component,
    as_data_component,
)
from agentsync.sdk.registry import EntityRegistry, ReferenceSource, resolve_getter, resolve_refs
from agentsync.sdk.tool import AgentToolConfig, FunctionTool, Tool, credential_id_of
from agentsync.sync.upsert import upsert
from agentsync.utils.identifiers import generate_id_from_name

logger = structlog.get_logger(__name__)


class SubAgent:
    """An internal agent of a graph.

    Reference lists (``can_use``, ``can_transfer_to``, ``can_delegate_to``,
    ``data_components``, ``artifact_components``) accept a sequence or a
    zero-argument callable returning one; agent lists may also hold ids that
    are resolved against the owning graph's registry.
    """

    def __init__(
        self,
        id: str,
        name: str,
        prompt: str | None = None,
        description: str | None = None,
        models: Models | dict | None = None,
        stop_when: StopWhen | dict | None = None,
        can_use: ReferenceSource = None,
        can_transfer_to: ReferenceSource = None,
        can_delegate_to: ReferenceSource = None,
        data_components: ReferenceSource = None,
        artifact_components: ReferenceSource = None,
    ) -> None:
        if not id:
            raise ConfigurationError(
                "Sub-agent id is required. Sub-agents must have stable ids "
                "for consistency across deployments."
            )
        self.id = id
        self.name = name
        self.prompt = prompt
        self.description = description
        self.models: Models | None = as_model(Models, models)
        self.stop_when: StopWhen | None = as_model(StopWhen, stop_when)

        self._can_use = can_use
        self._can_transfer_to = can_transfer_to
        self._can_delegate_to = can_delegate_to
        self._data_components = data_components
        self._artifact_components = artifact_components
        self._extra_tools: list = []
        self._extra_transfers: list = []
        self._extra_delegates: list = []

    # -- models and stop conditions --

    def get_model_slot(self, slot: str) -> ModelSettings | None:
        return self.models.get_slot(slot) if self.models else None

    def set_model_slot(self, slot: str, value: ModelSettings) -> None:
        if self.models is None:
            self.models = Models()
        self.models.set_slot(slot, value)

    @property
    def step_count_is(self) -> int | None:
        return self.stop_when.step_count_is if self.stop_when else None

    @step_count_is.setter
    def step_count_is(self, value: int) -> None:
        if self.stop_when is None:
            self.stop_when = StopWhen()
        self.stop_when.step_count_is = value

    # -- references --

    def get_tools(self) -> list[AgentToolConfig]:
        """Every tool this sub-agent can use, normalized to AgentToolConfig."""
        configs = []
        for item in resolve_getter(self._can_use) + self._extra_tools:
            if isinstance(item, AgentToolConfig):
                configs.append(item)
            elif isinstance(item, (Tool, FunctionTool)):
                configs.append(AgentToolConfig(tool=item))
            else:
                raise ConfigurationError(
                    f"Sub-agent {self.id!r} has an unsupported tool reference {item!r}"
                )
        return configs

    def get_transfers(self, registry: EntityRegistry | None = None) -> list[SubAgent]:
        targets = resolve_refs(self._can_transfer_to, registry, "transfer target")
        targets += resolve_refs(self._extra_transfers, registry, "transfer target")
        for target in targets:
            if not isinstance(target, SubAgent):
                raise ConfigurationError(
                    f"Sub-agent {self.id!r} cannot transfer to {target!r}: "
                    "only internal sub-agents are transfer targets"
                )
        return targets

    def get_delegates(
        self, registry: EntityRegistry | None = None
    ) -> list[SubAgent | ExternalAgent]:
        targets = resolve_refs(self._can_delegate_to, registry, "delegate target")
        targets += resolve_refs(self._extra_delegates, registry, "delegate target")
        for target in targets:
            if not isinstance(target, (SubAgent, ExternalAgent)):
                raise ConfigurationError(
                    f"Sub-agent {self.id!r} cannot delegate to {target!r}"
                )
        return targets

    def get_data_components(self) -> list[DataComponent]:
        return [as_data_component(c) for c in resolve_getter(self._data_components)]

    def get_artifact_components(self) -> list[ArtifactComponent]:
        return [as_artifact_component(c) for c in resolve_getter(self._artifact_components)]

    def add_tool(self, tool: Tool | FunctionTool | AgentToolConfig) -> None:
        self._extra_tools.append(tool)

    def add_transfer(self, *agents: SubAgent | str) -> None:
        self._extra_transfers.extend(agents)

    def add_delegate(self, *agents: SubAgent | ExternalAgent | str) -> None:
        self._extra_delegates.extend(agents)

    def __repr__(self) -> str:
        return f"SubAgent(id={self.id!r}, name={self.name!r})"


class ExternalAgent:
    """An agent reachable over HTTP outside of any graph."""

    def __init__(
        self,
        name: str,
        base_url: str,
        id: str | None = None,
        description: str | None = None,
        credential: CredentialReference | dict | str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if not base_url:
            raise ConfigurationError(f"External agent {name!r} requires a base_url")
        self.id = id or generate_id_from_name(name)
        self.name = name
        self.base_url = base_url
        self.description = description
        self.credential = (
            credential if isinstance(credential, str)
            else as_model(CredentialReference, credential)
        )
        self.headers = headers
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def credential_reference_id(self) -> str | None:
        return credential_id_of(self.credential)

    def to_definition(self) -> ExternalAgentDefinition:
        return ExternalAgentDefinition(
            id=self.id,
            name=self.name,
            description=self.description or f"External agent {self.name}",
            base_url=self.base_url,
            credential_reference_id=self.credential_reference_id,
            headers=self.headers,
        )

    async def init(self, client: ControlPlaneClient, scope: Scope) -> None:
        async with self._init_lock:
            if self._initialized:
                return
            await upsert(
                client,
                ResourceKind.EXTERNAL_AGENT,
                scope,
                self.id,
                self.to_definition().to_wire(),
            )
            self._initialized = True
            logger.info("external_agent_initialized", external_agent_id=self.id)

    def __repr__(self) -> str:
        return f"ExternalAgent(id={self.id!r}, base_url={self.base_url!r})"
