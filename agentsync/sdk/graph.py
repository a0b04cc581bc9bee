"""Agent graphs: a set of sub-agents with a default entry point.

Usage:

    graph = Graph(
        id="support",
        default_sub_agent=router,
        sub_agents=lambda: [router, billing, refunds],
        models={"base": {"model": "anthropic/claude-sonnet-4-5"}},
    )
    await graph.init()
"""

from __future__ import annotations

import asyncio
import functools

import structlog

from agentsync.adapters.control_plane import (
    ControlPlaneClient,
    ResourceKind,
    Scope,
    client_session,
)
from agentsync.assembly.graph_definition import GraphAssembler, collect_references
from agentsync.assembly.inheritance import (
    DefaultsLookup,
    InheritanceResolver,
    fetch_project_defaults,
    propagate_graph_models,
)
from agentsync.config import SyncSettings, load_settings
from agentsync.errors import ConfigurationError, SyncError
from agentsync.models.definitions import AgentGraphDefinition, FullGraphDefinition
from agentsync.models.reports import GraphStats, ValidationReport
from agentsync.models.settings import (
    DEFAULT_TRANSFER_COUNT,
    CredentialReference,
    ModelSettings,
    Models,
    StatusUpdateSettings,
    StopWhen,
    as_model,
)
from agentsync.sdk.agent import ExternalAgent, SubAgent
from agentsync.sdk.registry import EntityRegistry, ReferenceSource, resolve_getter
from agentsync.sync.relations import (
    RelationBatchResult,
    enumerate_relation_edges,
    reconcile_relations,
)
from agentsync.sync.upsert import upsert
from agentsync.utils.concurrency import gather_all_or_raise

logger = structlog.get_logger(__name__)


class Graph:
    """A graph of sub-agents synchronized to the control plane as one document."""

    def __init__(
        self,
        id: str,
        name: str | None = None,
        description: str | None = None,
        default_sub_agent: SubAgent | None = None,
        sub_agents: ReferenceSource = None,
        models: Models | dict | None = None,
        stop_when: StopWhen | dict | None = None,
        status_updates: StatusUpdateSettings | dict | None = None,
        graph_prompt: str | None = None,
        credentials: ReferenceSource = None,
        settings: SyncSettings | None = None,
    ) -> None:
        if not id:
            raise ConfigurationError(
                "Graph id is required. Graphs must have stable ids "
                "for consistency across deployments."
            )
        settings = settings or load_settings()
        self.id = id
        self.name = name or id
        self.description = description
        self.models: Models | None = as_model(Models, models)
        self.stop_when: StopWhen | None = as_model(StopWhen, stop_when)
        self.status_updates = as_model(StatusUpdateSettings, status_updates)
        self.graph_prompt = graph_prompt
        self.credentials: list[CredentialReference] = [
            as_model(CredentialReference, c) for c in resolve_getter(credentials)
        ]

        self.tenant_id = settings.tenant_id
        self.project_id = settings.project_id
        self.api_url = settings.api_url
        self._settings = settings
        self._initialized = False
        self._init_lock = asyncio.Lock()

        self.registry = EntityRegistry()
        for member in resolve_getter(sub_agents):
            self.registry.register(member)
        self._default_sub_agent: SubAgent | None = None
        if default_sub_agent is not None:
            self.set_default_sub_agent(default_sub_agent)

        self._defaults_lookup: DefaultsLookup | None = None

        propagate_graph_models(self)
        logger.debug(
            "graph_created",
            graph_id=self.id,
            sub_agent_count=len(self.registry),
            default_sub_agent_id=self._default_sub_agent.id if self._default_sub_agent else None,
        )

    # -- configuration --

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def scope(self) -> Scope:
        return Scope(self.tenant_id, self.project_id, self.id)

    def _ensure_mutable(self) -> None:
        if self._initialized:
            raise ConfigurationError(
                f"Graph {self.id!r} is already initialized; configuration is frozen"
            )

    def set_config(
        self,
        tenant_id: str,
        project_id: str,
        api_url: str | None = None,
    ) -> None:
        """Point the graph at a tenant/project (and optionally another API)."""
        self._ensure_mutable()
        self.tenant_id = tenant_id
        self.project_id = project_id
        if api_url:
            self.api_url = api_url.rstrip("/")

    def set_defaults_lookup(self, lookup: DefaultsLookup | None) -> None:
        """Override where project defaults come from during init."""
        self._defaults_lookup = lookup

    def get_model_slot(self, slot: str) -> ModelSettings | None:
        return self.models.get_slot(slot) if self.models else None

    def set_model_slot(self, slot: str, value: ModelSettings) -> None:
        if self.models is None:
            self.models = Models()
        self.models.set_slot(slot, value)

    def set_models(self, models: Models | dict) -> None:
        self._ensure_mutable()
        self.models = as_model(Models, models)
        propagate_graph_models(self)

    @property
    def transfer_count_is(self) -> int | None:
        return self.stop_when.transfer_count_is if self.stop_when else None

    @transfer_count_is.setter
    def transfer_count_is(self, value: int) -> None:
        if self.stop_when is None:
            self.stop_when = StopWhen()
        self.stop_when.transfer_count_is = value

    def set_stop_when(self, stop_when: StopWhen | dict) -> None:
        self._ensure_mutable()
        self.stop_when = as_model(StopWhen, stop_when)

    def get_stop_when(self) -> StopWhen:
        """The graph's effective stop condition; transfers default to 10."""
        count = self.transfer_count_is
        return StopWhen(
            transfer_count_is=count if count is not None else DEFAULT_TRANSFER_COUNT
        )

    # -- membership --

    def add_sub_agent(self, agent: SubAgent | ExternalAgent) -> None:
        self._ensure_mutable()
        self.registry.register(agent)
        propagate_graph_models(self)

    def remove_sub_agent(self, agent_id: str) -> bool:
        self._ensure_mutable()
        if self._default_sub_agent is not None and self._default_sub_agent.id == agent_id:
            raise ConfigurationError(
                f"Cannot remove {agent_id!r}: it is the default sub-agent of graph {self.id!r}"
            )
        return self.registry.unregister(agent_id) is not None

    def get_sub_agent(self, agent_id: str) -> SubAgent | ExternalAgent | None:
        return self.registry.get(agent_id)

    def get_sub_agents(self) -> list[SubAgent | ExternalAgent]:
        return self.registry.values()

    def get_sub_agent_ids(self) -> list[str]:
        return self.registry.ids()

    def get_internal_sub_agents(self) -> list[SubAgent]:
        return [m for m in self.registry if isinstance(m, SubAgent)]

    def get_external_agents(self) -> list[ExternalAgent]:
        return [m for m in self.registry if isinstance(m, ExternalAgent)]

    def set_default_sub_agent(self, agent: SubAgent) -> None:
        self._ensure_mutable()
        if not isinstance(agent, SubAgent):
            raise ConfigurationError("The default sub-agent must be an internal sub-agent")
        if agent.id not in self.registry:
            self.add_sub_agent(agent)
        self._default_sub_agent = agent

    def get_default_sub_agent(self) -> SubAgent | None:
        return self._default_sub_agent

    # -- checks --

    def validate(self) -> ValidationReport:
        """Check the graph for structural problems without raising."""
        errors: list[str] = []
        if len(self.registry) == 0:
            errors.append("Graph must contain at least one sub-agent")
        if self._default_sub_agent is None:
            errors.append("Graph must have a default sub-agent")

        seen_names: dict[str, str] = {}
        for member in self.registry:
            if member.name in seen_names:
                errors.append(
                    f"Duplicate agent name {member.name!r} "
                    f"({seen_names[member.name]!r} and {member.id!r})"
                )
            else:
                seen_names[member.name] = member.id

        for agent in self.get_internal_sub_agents():
            try:
                transfers = agent.get_transfers(self.registry)
                delegates = agent.get_delegates(self.registry)
            except ConfigurationError as exc:
                errors.append(str(exc))
                continue
            for target in transfers:
                if target.id not in self.registry:
                    errors.append(
                        f"Sub-agent {agent.id!r} transfers to {target.id!r} "
                        "which is not in the graph"
                    )
            for target in delegates:
                if isinstance(target, SubAgent) and target.id not in self.registry:
                    errors.append(
                        f"Sub-agent {agent.id!r} delegates to {target.id!r} "
                        "which is not in the graph"
                    )
        return ValidationReport.from_errors(errors)

    def get_stats(self) -> GraphStats:
        edges = enumerate_relation_edges(self)
        refs = collect_references(self)
        return GraphStats(
            graph_id=self.id,
            sub_agent_count=len(self.get_internal_sub_agents()),
            external_agent_count=len(refs.external_agents),
            tool_count=len(refs.tools) + len(refs.function_tools),
            transfer_count=sum(1 for e in edges if e.relation_type == "transfer"),
            delegate_count=sum(1 for e in edges if e.relation_type == "delegate"),
            initialized=self._initialized,
        )

    def to_full_definition(self, timestamp: str | None = None) -> FullGraphDefinition:
        return GraphAssembler().assemble(self, timestamp=timestamp)

    # -- synchronization --

    def _resolver(self, client: ControlPlaneClient) -> InheritanceResolver:
        lookup = self._defaults_lookup or functools.partial(
            fetch_project_defaults, client, self.tenant_id, self.project_id
        )
        return InheritanceResolver(lookup)

    async def init(self, client: ControlPlaneClient | None = None) -> None:
        """Resolve inheritance and upsert the full graph definition.

        Runs at most once; later calls return without any remote call.
        """
        async with self._init_lock:
            if self._initialized:
                logger.info("graph_already_initialized", graph_id=self.id)
                return
            logger.info(
                "graph_init_started",
                graph_id=self.id,
                tenant_id=self.tenant_id,
                project_id=self.project_id,
            )
            async with client_session(self._settings, client, self.api_url) as cp:
                try:
                    refs = collect_references(self)
                    # the graph document carries tools, so nothing is registered separately
                    await gather_all_or_raise(
                        tool.init(cp, self.scope, skip_registration=True)
                        for tool in [*refs.tools.values(), *refs.function_tools.values()]
                    )
                    await self._resolver(cp).resolve(self)
                    definition = GraphAssembler().assemble(self)
                    await upsert(
                        cp, ResourceKind.GRAPH_FULL, self.scope, self.id, definition.to_wire()
                    )
                except SyncError as exc:
                    logger.error("graph_init_failed", graph_id=self.id, error=str(exc))
                    raise
            self._initialized = True
            logger.info(
                "graph_initialized",
                graph_id=self.id,
                sub_agent_count=len(definition.sub_agents),
                tool_count=len(definition.tools),
            )

    async def init_legacy(
        self, client: ControlPlaneClient | None = None
    ) -> RelationBatchResult | None:
        """Sync entity by entity, then create relations one by one.

        Kept for control planes that do not accept full graph documents.
        """
        async with self._init_lock:
            if self._initialized:
                logger.info("graph_already_initialized", graph_id=self.id)
                return None
            async with client_session(self._settings, client, self.api_url) as cp:
                try:
                    result = await self._sync_entities(cp)
                except SyncError as exc:
                    logger.error("graph_legacy_init_failed", graph_id=self.id, error=str(exc))
                    raise
            self._initialized = True
            logger.info("graph_initialized", graph_id=self.id, mode="legacy")
            return result

    async def _sync_entities(self, cp: ControlPlaneClient) -> RelationBatchResult:
        scope = self.scope
        await self._resolver(cp).resolve(self)
        refs = collect_references(self)

        await gather_all_or_raise(
            [
                *(tool.init(cp, scope) for tool in refs.tools.values()),
                *(c.init(cp, scope) for c in refs.data_components.values()),
                *(c.init(cp, scope) for c in refs.artifact_components.values()),
                *(agent.init(cp, scope) for agent in refs.external_agents.values()),
            ]
        )

        default = self.get_default_sub_agent()
        metadata = AgentGraphDefinition(
            id=self.id,
            name=self.name,
            description=self.description,
            default_sub_agent_id=default.id if default else None,
            models=self.models,
            stop_when=self.get_stop_when(),
            status_updates=self.status_updates,
            graph_prompt=self.graph_prompt,
        )
        await upsert(cp, ResourceKind.AGENT_GRAPH, scope, self.id, metadata.to_wire())

        await gather_all_or_raise(
            function_tool.init(cp, scope) for function_tool in refs.function_tools.values()
        )
        assembler = GraphAssembler()
        await gather_all_or_raise(
            upsert(
                cp,
                ResourceKind.SUB_AGENT,
                scope,
                agent.id,
                assembler.sub_agent_definition(agent, self.registry).to_wire(),
            )
            for agent in self.get_internal_sub_agents()
        )
        return await reconcile_relations(cp, scope, enumerate_relation_edges(self))

    def __repr__(self) -> str:
        return f"Graph(id={self.id!r}, sub_agents={self.get_sub_agent_ids()!r})"
