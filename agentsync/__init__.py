"""agentsync - build agent graphs in Python and sync them to a control plane."""

from agentsync.adapters.control_plane import ControlPlaneClient, ResourceKind, Scope
from agentsync.assembly.graph_definition import GraphAssembler
from agentsync.assembly.inheritance import InheritanceResolver
from agentsync.assembly.project_definition import ProjectAssembler
from agentsync.config import SyncSettings, configure_logging, load_settings
from agentsync.errors import (
    AggregateRelationFailure,
    ConfigurationError,
    DependencyLookupFailure,
    RelationFailure,
    RemoteFailure,
    RemoteNotFound,
    SyncError,
)
from agentsync.models.definitions import FullGraphDefinition, FullProjectDefinition
from agentsync.models.settings import (
    CredentialReference,
    ModelSettings,
    Models,
    StatusUpdateSettings,
    StopWhen,
)
from agentsync.sdk.agent import ExternalAgent, SubAgent
from agentsync.sdk.builders import (
    agent_graph,
    agent_mcp,
    artifact_component,
    credential,
    data_component,
    external_agent,
    external_agents,
    function_tool,
    mcp_server,
    mcp_tool,
    project,
    sub_agent,
)
from agentsync.sdk.components import ArtifactComponent, DataComponent
from agentsync.sdk.graph import Graph
from agentsync.sdk.project import Project
from agentsync.sdk.registry import EntityRegistry
from agentsync.sdk.tool import AgentToolConfig, FunctionTool, Tool
from agentsync.sync.relations import RelationBatchResult
from agentsync.utils.identifiers import generate_id_from_name

__all__ = [
    # Entities
    "SubAgent",
    "ExternalAgent",
    "Tool",
    "FunctionTool",
    "AgentToolConfig",
    "DataComponent",
    "ArtifactComponent",
    "Graph",
    "Project",
    "EntityRegistry",
    # Builders
    "sub_agent",
    "external_agent",
    "external_agents",
    "mcp_server",
    "mcp_tool",
    "agent_mcp",
    "function_tool",
    "data_component",
    "artifact_component",
    "credential",
    "agent_graph",
    "project",
    "generate_id_from_name",
    # Settings
    "ModelSettings",
    "Models",
    "StopWhen",
    "StatusUpdateSettings",
    "CredentialReference",
    # Documents
    "FullGraphDefinition",
    "FullProjectDefinition",
    "GraphAssembler",
    "ProjectAssembler",
    "InheritanceResolver",
    # Sync
    "ControlPlaneClient",
    "ResourceKind",
    "Scope",
    "RelationBatchResult",
    "SyncSettings",
    "load_settings",
    "configure_logging",
    # Errors
    "SyncError",
    "ConfigurationError",
    "RemoteFailure",
    "RemoteNotFound",
    "DependencyLookupFailure",
    "RelationFailure",
    "AggregateRelationFailure",
]
