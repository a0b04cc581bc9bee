"""Create transfer/delegate relations between agents of a graph.

All relation creates of a batch are issued concurrently and every outcome is
collected. A relation that already exists counts as created. Individual
failures are logged; the batch only fails when nothing succeeded. Failed
creates are not retried.
"""

from __future__ import annotations

import typing
from dataclasses import dataclass, field

import structlog

from agentsync.adapters.control_plane import ControlPlaneClient, Scope
from agentsync.errors import AggregateRelationFailure, RelationFailure, RemoteFailure
from agentsync.models.definitions import SubAgentRelationCreate
from agentsync.sdk.agent import ExternalAgent
from agentsync.utils.concurrency import gather_settled

if typing.TYPE_CHECKING:
    from agentsync.sdk.graph import Graph

logger = structlog.get_logger(__name__)

DUPLICATE_STATUSES = (409, 422)


@dataclass(frozen=True)
class RelationEdge:
    source_id: str
    target_id: str
    relation_type: str  # "transfer" or "delegate"
    external: bool = False

    def to_body(self, graph_id: str) -> dict:
        return SubAgentRelationCreate(
            graph_id=graph_id,
            source_sub_agent_id=self.source_id,
            target_sub_agent_id=None if self.external else self.target_id,
            external_agent_id=self.target_id if self.external else None,
            relation_type=self.relation_type,
        ).to_wire()


@dataclass
class RelationBatchResult:
    created: list[RelationEdge] = field(default_factory=list)
    existing: list[RelationEdge] = field(default_factory=list)
    failures: list[RelationFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.created) + len(self.existing) + len(self.failures)

    @property
    def is_partial(self) -> bool:
        return bool(self.failures) and len(self.failures) < self.total


def enumerate_relation_edges(graph: Graph) -> list[RelationEdge]:
    """Every (source, target, type) triple declared by the graph's sub-agents."""
    edges = []
    for agent in graph.get_internal_sub_agents():
        for target in agent.get_transfers(graph.registry):
            edges.append(RelationEdge(agent.id, target.id, "transfer"))
        for target in agent.get_delegates(graph.registry):
            edges.append(
                RelationEdge(
                    agent.id,
                    target.id,
                    "delegate",
                    external=isinstance(target, ExternalAgent),
                )
            )
    return edges


def is_duplicate_relation(exc: RemoteFailure) -> bool:
    """A 409/422 whose response mentions "already exists" anywhere."""
    if exc.status_code not in DUPLICATE_STATUSES:
        return False
    return any("already exists" in text.lower() for text in (exc.detail, exc.body))


async def _create_relation(
    client: ControlPlaneClient, scope: Scope, edge: RelationEdge
) -> bool:
    """Create one relation. Returns False when it already existed."""
    try:
        await client.create_relation(scope, edge.to_body(scope.graph_id))
    except RemoteFailure as exc:
        if is_duplicate_relation(exc):
            logger.info(
                "relation_already_exists",
                source_id=edge.source_id,
                target_id=edge.target_id,
                relation_type=edge.relation_type,
            )
            return False
        raise RelationFailure(edge, exc) from exc
    return True


async def reconcile_relations(
    client: ControlPlaneClient,
    scope: Scope,
    edges: list[RelationEdge],
) -> RelationBatchResult:
    """Create every relation in ``edges`` against the graph in ``scope``.

    Raises:
        AggregateRelationFailure: if every relation of a non-empty batch failed.
    """
    result = RelationBatchResult()
    if not edges:
        return result

    outcomes = await gather_settled(_create_relation(client, scope, edge) for edge in edges)
    for edge, outcome in zip(edges, outcomes):
        if isinstance(outcome, RelationFailure):
            result.failures.append(outcome)
            logger.error(
                "relation_create_failed",
                graph_id=scope.graph_id,
                source_id=edge.source_id,
                target_id=edge.target_id,
                relation_type=edge.relation_type,
                error=str(outcome.cause),
            )
        elif isinstance(outcome, BaseException):
            raise outcome
        elif outcome:
            result.created.append(edge)
        else:
            result.existing.append(edge)

    logger.info(
        "relation_batch_complete",
        graph_id=scope.graph_id,
        total=result.total,
        success_count=len(result.created) + len(result.existing),
        error_count=len(result.failures),
    )
    if result.failures and len(result.failures) == result.total:
        raise AggregateRelationFailure(result.failures)
    if result.is_partial:
        logger.warning(
            "relation_batch_partial_failure",
            graph_id=scope.graph_id,
            error_count=len(result.failures),
        )
    return result
