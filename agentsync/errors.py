"""Exceptions raised while building entities and syncing them to the control plane."""

from __future__ import annotations

import typing

if typing.TYPE_CHECKING:
    from agentsync.sync.relations import RelationEdge


class SyncError(Exception):
    """Base class for every agentsync error."""
    pass


class ConfigurationError(SyncError, ValueError):
    """Raised when an entity is built or mutated with invalid configuration."""
    pass


class RemoteFailure(SyncError):
    """A control-plane call failed.

    ``status_code`` is ``None`` when the request never produced a response
    (connection refused, timeout...). ``body`` keeps the raw response text.
    """

    def __init__(
        self,
        method: str,
        path: str,
        status_code: int | None,
        detail: str,
        body: str = "",
    ) -> None:
        self.method = method
        self.path = path
        self.status_code = status_code
        self.detail = detail
        self.body = body
        status = status_code if status_code is not None else "no response"
        super().__init__(f"{method} {path} failed ({status}): {detail}")


class RemoteNotFound(RemoteFailure):
    """The control plane answered 404 for the addressed resource."""
    pass


class DependencyLookupFailure(SyncError):
    """Raised when project-level defaults cannot be fetched."""
    pass


class RelationFailure(SyncError):
    """A single relation create failed."""

    def __init__(self, edge: RelationEdge, cause: Exception) -> None:
        self.edge = edge
        self.cause = cause
        super().__init__(
            f"Failed to create {edge.relation_type} relation "
            f"{edge.source_id} -> {edge.target_id}: {cause}"
        )


class AggregateRelationFailure(SyncError):
    """Every relation in a batch failed."""

    def __init__(self, failures: list[RelationFailure]) -> None:
        self.failures = failures
        super().__init__(
            f"All {len(failures)} sub-agent relation creations failed"
        )
