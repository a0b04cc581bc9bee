"""Data and artifact components: structured outputs a sub-agent can emit."""

from __future__ import annotations

import structlog

from agentsync.adapters.control_plane import ControlPlaneClient, ResourceKind, Scope
from agentsync.models.definitions import (
    ArtifactComponentDefinition,
    DataComponentDefinition,
)
from agentsync.sync.upsert import upsert
from agentsync.utils.identifiers import generate_id_from_name

logger = structlog.get_logger(__name__)


class DataComponent:
    def __init__(
        self,
        name: str,
        description: str | None = None,
        props: dict | None = None,
        id: str | None = None,
    ) -> None:
        self.id = id or generate_id_from_name(name)
        self.name = name
        self.description = description
        self.props = props

    def to_definition(self) -> DataComponentDefinition:
        return DataComponentDefinition(
            id=self.id, name=self.name, description=self.description, props=self.props
        )

    async def init(self, client: ControlPlaneClient, scope: Scope) -> None:
        await upsert(
            client, ResourceKind.DATA_COMPONENT, scope, self.id, self.to_definition().to_wire()
        )

    def __repr__(self) -> str:
        return f"DataComponent(id={self.id!r})"


class ArtifactComponent:
    """A component with a short summary shape and a full shape."""

    def __init__(
        self,
        name: str,
        description: str | None = None,
        summary_props: dict | None = None,
        full_props: dict | None = None,
        id: str | None = None,
    ) -> None:
        self.id = id or generate_id_from_name(name)
        self.name = name
        self.description = description
        self.summary_props = summary_props
        self.full_props = full_props

    def to_definition(self) -> ArtifactComponentDefinition:
        return ArtifactComponentDefinition(
            id=self.id,
            name=self.name,
            description=self.description,
            summary_props=self.summary_props,
            full_props=self.full_props,
        )

    async def init(self, client: ControlPlaneClient, scope: Scope) -> None:
        await upsert(
            client,
            ResourceKind.ARTIFACT_COMPONENT,
            scope,
            self.id,
            self.to_definition().to_wire(),
        )

    def __repr__(self) -> str:
        return f"ArtifactComponent(id={self.id!r})"


def as_data_component(value: DataComponent | dict) -> DataComponent:
    """Accept a DataComponent or a plain dict with the same keys."""
    if isinstance(value, DataComponent):
        return value
    return DataComponent(
        name=value["name"],
        description=value.get("description"),
        props=value.get("props"),
        id=value.get("id"),
    )


def as_artifact_component(value: ArtifactComponent | dict) -> ArtifactComponent:
    if isinstance(value, ArtifactComponent):
        return value
    return ArtifactComponent(
        name=value["name"],
        description=value.get("description"),
        summary_props=value.get("summary_props", value.get("summaryProps")),
        full_props=value.get("full_props", value.get("fullProps")),
        id=value.get("id"),
    )
