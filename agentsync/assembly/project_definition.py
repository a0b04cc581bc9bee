"""Assemble the full definition document of a project.

Graph documents are built by GraphAssembler; the project document adds
project-wide registries of tools, functions, components and credentials,
each deduplicated by id with the first definition seen winning.
"""

from __future__ import annotations

import typing

from agentsync.assembly.graph_definition import GraphAssembler
from agentsync.models.definitions import (
    CredentialUsage,
    FullProjectDefinition,
    ProjectCredentialReference,
)
from agentsync.utils.identifiers import utc_timestamp

if typing.TYPE_CHECKING:
    from agentsync.sdk.project import Project


class ProjectAssembler:
    def __init__(self, graph_assembler: GraphAssembler | None = None) -> None:
        self.graph_assembler = graph_assembler or GraphAssembler()

    def metadata(self, project: Project, timestamp: str | None = None) -> FullProjectDefinition:
        """Project document without graphs or tools, sent before graphs exist."""
        timestamp = timestamp or utc_timestamp()
        return FullProjectDefinition(
            id=project.id,
            name=project.name,
            description=project.description,
            models=project.models,
            stop_when=project.stop_when,
            created_at=timestamp,
            updated_at=timestamp,
        )

    def assemble(self, project: Project, timestamp: str | None = None) -> FullProjectDefinition:
        timestamp = timestamp or utc_timestamp()
        document = self.metadata(project, timestamp)

        for tool in project.tools:
            document.tools.setdefault(tool.id, tool.to_definition())
        for component in project.data_components:
            document.data_components.setdefault(component.id, component.to_definition())
        for component in project.artifact_components:
            document.artifact_components.setdefault(component.id, component.to_definition())
        for credential in project.credentials:
            document.credential_references.setdefault(
                credential.id, ProjectCredentialReference(**credential.model_dump())
            )

        for graph in project.get_graphs():
            graph_document = self.graph_assembler.assemble(graph, timestamp=timestamp)
            document.graphs[graph.id] = graph_document
            for tool_id, tool in graph_document.tools.items():
                document.tools.setdefault(tool_id, tool)
            for function_id, function in graph_document.functions.items():
                document.functions.setdefault(function_id, function)
            for cid, component in graph_document.data_components.items():
                document.data_components.setdefault(cid, component)
            for cid, component in graph_document.artifact_components.items():
                document.artifact_components.setdefault(cid, component)
            for cid, credential in graph_document.credential_references.items():
                document.credential_references.setdefault(
                    cid, ProjectCredentialReference(**credential.model_dump())
                )
            for agent in graph_document.sub_agents.values():
                if agent.type == "external" and agent.credential_reference_id:
                    _track_usage(document, agent.credential_reference_id, "externalAgent", agent.id)

        for tool_id, tool in document.tools.items():
            if tool.credential_reference_id:
                _track_usage(document, tool.credential_reference_id, "tool", tool_id)
        return document


def _track_usage(
    document: FullProjectDefinition, credential_id: str, usage_type: str, entity_id: str
) -> None:
    credential = document.credential_references.get(credential_id)
    if credential is None:
        return
    usage = CredentialUsage(type=usage_type, id=entity_id)
    if usage not in credential.used_by:
        credential.used_by.append(usage)
