"""Projects: the top-level scope owning graphs and default settings."""

from __future__ import annotations

import asyncio

import structlog

from agentsync.adapters.control_plane import (
    ControlPlaneClient,
    ResourceKind,
    Scope,
    client_session,
)
from agentsync.assembly.project_definition import ProjectAssembler
from agentsync.config import SyncSettings, load_settings
from agentsync.errors import ConfigurationError, SyncError
from agentsync.models.definitions import FullProjectDefinition
from agentsync.models.reports import ProjectStats, ValidationReport
from agentsync.models.settings import (
    CredentialReference,
    Models,
    ProjectDefaults,
    StopWhen,
    as_model,
)
from agentsync.sdk.components import (
    ArtifactComponent,
    DataComponent,
    as_artifact_component,
    as_data_component,
)
from agentsync.sdk.graph import Graph
from agentsync.sdk.registry import ReferenceSource, resolve_getter
from agentsync.sdk.tool import Tool
from agentsync.sync.upsert import upsert
from agentsync.utils.concurrency import failures_of, gather_settled

logger = structlog.get_logger(__name__)


class Project:
    """A project groups graphs and supplies their default models and stop conditions."""

    def __init__(
        self,
        id: str,
        name: str,
        description: str | None = None,
        models: Models | dict | None = None,
        stop_when: StopWhen | dict | None = None,
        graphs: ReferenceSource = None,
        tools: ReferenceSource = None,
        data_components: ReferenceSource = None,
        artifact_components: ReferenceSource = None,
        credentials: ReferenceSource = None,
        settings: SyncSettings | None = None,
    ) -> None:
        if not id:
            raise ConfigurationError(
                "Project id is required. Projects must have stable ids "
                "for consistency across deployments."
            )
        settings = settings or load_settings()
        self.id = id
        self.name = name
        self.description = description
        self.models: Models | None = as_model(Models, models)
        self.stop_when: StopWhen | None = as_model(StopWhen, stop_when)
        self.tools: list[Tool] = resolve_getter(tools)
        self.data_components: list[DataComponent] = [
            as_data_component(c) for c in resolve_getter(data_components)
        ]
        self.artifact_components: list[ArtifactComponent] = [
            as_artifact_component(c) for c in resolve_getter(artifact_components)
        ]
        self.credentials: list[CredentialReference] = [
            as_model(CredentialReference, c) for c in resolve_getter(credentials)
        ]

        self.tenant_id = settings.tenant_id
        self.api_url = settings.api_url
        self._settings = settings
        self._graphs: dict[str, Graph] = {}
        self._initialized = False
        self._init_lock = asyncio.Lock()

        for graph in resolve_getter(graphs):
            self.add_graph(graph)

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _ensure_mutable(self) -> None:
        if self._initialized:
            raise ConfigurationError(
                f"Project {self.id!r} is already initialized; configuration is frozen"
            )

    def set_config(self, tenant_id: str, api_url: str | None = None) -> None:
        self._ensure_mutable()
        self.tenant_id = tenant_id
        if api_url:
            self.api_url = api_url.rstrip("/")
        for graph in self._graphs.values():
            graph.set_config(self.tenant_id, self.id, self.api_url)

    def set_credentials(self, credentials: list[CredentialReference | dict]) -> None:
        self._ensure_mutable()
        self.credentials = [as_model(CredentialReference, c) for c in credentials]

    async def get_defaults(self) -> ProjectDefaults:
        return ProjectDefaults(models=self.models, stop_when=self.stop_when)

    # -- graphs --

    def add_graph(self, graph: Graph) -> None:
        """Adopt ``graph``: it moves into this project's tenant and inherits from it."""
        self._ensure_mutable()
        if graph.id in self._graphs and self._graphs[graph.id] is not graph:
            raise ConfigurationError(f"Project {self.id!r} already has a graph {graph.id!r}")
        graph.set_config(self.tenant_id, self.id, self.api_url)
        graph.set_defaults_lookup(self.get_defaults)
        self._graphs[graph.id] = graph

    def remove_graph(self, graph_id: str) -> bool:
        self._ensure_mutable()
        graph = self._graphs.pop(graph_id, None)
        if graph is None:
            return False
        graph.set_defaults_lookup(None)
        return True

    def get_graph(self, graph_id: str) -> Graph | None:
        return self._graphs.get(graph_id)

    def get_graphs(self) -> list[Graph]:
        return list(self._graphs.values())

    # -- checks --

    def validate(self) -> ValidationReport:
        errors: list[str] = []
        if not self.name:
            errors.append("Project must have a name")
        for graph in self._graphs.values():
            report = graph.validate()
            errors.extend(f"Graph {graph.id!r}: {error}" for error in report.errors)
        return ValidationReport.from_errors(errors)

    def get_stats(self) -> ProjectStats:
        return ProjectStats(
            project_id=self.id,
            tenant_id=self.tenant_id,
            graph_count=len(self._graphs),
            initialized=self._initialized,
        )

    def get_credential_tracking(self) -> dict[str, list[dict]]:
        """Which tools and external agents use each credential, by credential id."""
        document = self.to_full_definition()
        return {
            cid: [usage.model_dump() for usage in credential.used_by]
            for cid, credential in document.credential_references.items()
        }

    def to_full_definition(self, timestamp: str | None = None) -> FullProjectDefinition:
        return ProjectAssembler().assemble(self, timestamp=timestamp)

    # -- synchronization --

    async def init(self, client: ControlPlaneClient | None = None) -> None:
        """Sync the project, all of its graphs, then the full project document.

        Graphs are initialized concurrently. If any fail, the first failure is
        raised once every graph has finished, and the final document is not sent.
        """
        async with self._init_lock:
            if self._initialized:
                logger.info("project_already_initialized", project_id=self.id)
                return
            scope = Scope(self.tenant_id)
            assembler = ProjectAssembler()
            logger.info(
                "project_init_started",
                project_id=self.id,
                tenant_id=self.tenant_id,
                graph_count=len(self._graphs),
            )
            async with client_session(self._settings, client, self.api_url) as cp:
                try:
                    await upsert(
                        cp,
                        ResourceKind.PROJECT_FULL,
                        scope,
                        self.id,
                        assembler.metadata(self).to_wire(),
                    )
                    graphs = self.get_graphs()
                    outcomes = await gather_settled(graph.init(cp) for graph in graphs)
                    for graph, outcome in zip(graphs, outcomes):
                        if isinstance(outcome, BaseException):
                            logger.error(
                                "project_graph_init_failed",
                                project_id=self.id,
                                graph_id=graph.id,
                                error=str(outcome),
                            )
                    failures = failures_of(outcomes)
                    if failures:
                        raise failures[0]

                    document = assembler.assemble(self)
                    await upsert(
                        cp, ResourceKind.PROJECT_FULL, scope, self.id, document.to_wire()
                    )
                except SyncError as exc:
                    logger.error("project_init_failed", project_id=self.id, error=str(exc))
                    raise
            self._initialized = True
            logger.info(
                "project_initialized",
                project_id=self.id,
                graph_count=len(document.graphs),
                tool_count=len(document.tools),
            )

    def __repr__(self) -> str:
        return f"Project(id={self.id!r}, graphs={list(self._graphs)!r})"
