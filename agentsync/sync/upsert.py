"""Idempotent create-or-update against the control plane."""

from __future__ import annotations

from typing import Any

import structlog

from agentsync.adapters.control_plane import ControlPlaneClient, ResourceKind, Scope
from agentsync.errors import RemoteNotFound

logger = structlog.get_logger(__name__)


async def upsert(
    client: ControlPlaneClient,
    kind: ResourceKind,
    scope: Scope,
    entity_id: str,
    body: dict,
) -> Any:
    """Update the entity by id, creating it when the update answers 404.

    Any other failure of the update, and any failure of the create, propagates
    as RemoteFailure. Nothing is retried.
    """
    try:
        result = await client.update(kind, scope, entity_id, body)
    except RemoteNotFound:
        logger.info("entity_not_found_creating", kind=kind.name, entity_id=entity_id)
        result = await client.create(kind, scope, body)
        logger.info("entity_created", kind=kind.name, entity_id=entity_id)
        return result

    logger.info("entity_updated", kind=kind.name, entity_id=entity_id)
    return result
