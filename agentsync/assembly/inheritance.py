"""Field-level inheritance of models and stop conditions.

Project defaults flow into a graph, and the graph's effective settings flow
into each of its internal sub-agents. A lower scope never loses a value it
already has: every step only fills in what is missing, so resolving twice is
the same as resolving once.
"""

from __future__ import annotations

import typing
from collections.abc import Awaitable, Callable

import structlog
from pydantic import ValidationError

from agentsync.adapters.control_plane import ControlPlaneClient
from agentsync.errors import DependencyLookupFailure, RemoteFailure
from agentsync.models.settings import (
    DEFAULT_TRANSFER_COUNT,
    MODEL_SLOTS,
    ProjectDefaults,
)

if typing.TYPE_CHECKING:
    from agentsync.sdk.graph import Graph

logger = structlog.get_logger(__name__)

DefaultsLookup = Callable[[], Awaitable[ProjectDefaults | None]]


async def fetch_project_defaults(
    client: ControlPlaneClient, tenant_id: str, project_id: str
) -> ProjectDefaults | None:
    """Read a project's models and stop conditions from the control plane."""
    try:
        data = await client.get_project(tenant_id, project_id)
    except RemoteFailure as exc:
        raise DependencyLookupFailure(
            f"Could not load project {project_id!r}: {exc}"
        ) from exc
    if data is None:
        logger.info("project_defaults_missing", tenant_id=tenant_id, project_id=project_id)
        return None
    try:
        return ProjectDefaults.model_validate(data)
    except ValidationError as exc:
        raise DependencyLookupFailure(
            f"Project {project_id!r} returned malformed defaults"
        ) from exc


def propagate_graph_models(graph: Graph) -> None:
    """Copy each graph model slot onto internal sub-agents missing it."""
    if graph.models is None:
        return
    for slot in MODEL_SLOTS:
        value = graph.models.get_slot(slot)
        if value is None:
            continue
        for agent in graph.get_internal_sub_agents():
            if agent.get_model_slot(slot) is None:
                agent.set_model_slot(slot, value)


def apply_project_defaults(graph: Graph, defaults: ProjectDefaults | None) -> None:
    """Apply inheritance to ``graph`` in place, given optional project defaults."""
    project_models = defaults.models if defaults else None
    project_stop = defaults.stop_when if defaults else None

    if project_models is not None:
        for slot in MODEL_SLOTS:
            value = project_models.get_slot(slot)
            if value is not None and graph.get_model_slot(slot) is None:
                graph.set_model_slot(slot, value)

    if graph.transfer_count_is is None:
        inherited = project_stop.transfer_count_is if project_stop else None
        graph.transfer_count_is = inherited if inherited is not None else DEFAULT_TRANSFER_COUNT

    propagate_graph_models(graph)

    step_count = project_stop.step_count_is if project_stop else None
    if step_count is not None:
        for agent in graph.get_internal_sub_agents():
            if agent.step_count_is is None:
                agent.step_count_is = step_count


class InheritanceResolver:
    """Resolve project -> graph -> sub-agent inheritance for one graph.

    ``lookup`` supplies the project defaults. A failed lookup is logged and
    treated as "no project defaults"; it never fails the resolution.
    """

    def __init__(self, lookup: DefaultsLookup | None = None) -> None:
        self._lookup = lookup

    async def _load_defaults(self, graph_id: str) -> ProjectDefaults | None:
        if self._lookup is None:
            return None
        try:
            return await self._lookup()
        except Exception as exc:
            logger.warning(
                "project_defaults_unavailable",
                graph_id=graph_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return None

    async def resolve(self, graph: Graph) -> None:
        defaults = await self._load_defaults(graph.id)
        apply_project_defaults(graph, defaults)
        logger.debug(
            "graph_inheritance_resolved",
            graph_id=graph.id,
            transfer_count_is=graph.transfer_count_is,
            inherited_from_project=defaults is not None,
        )
