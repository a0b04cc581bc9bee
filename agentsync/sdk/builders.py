"""Builder functions for declaring entities in agent configuration modules.

    router = sub_agent(id="router", name="Router", prompt="Route requests.")
    search = mcp_server(name="Search", server_url="https://mcp.example.com/search")
    graph = agent_graph(id="support", default_sub_agent=router)
"""

from __future__ import annotations

from collections.abc import Callable

from agentsync.errors import ConfigurationError
from agentsync.models.settings import CredentialReference
from agentsync.sdk.agent import ExternalAgent, SubAgent
from agentsync.sdk.components import ArtifactComponent, DataComponent
from agentsync.sdk.graph import Graph
from agentsync.sdk.project import Project
from agentsync.sdk.tool import AgentToolConfig, FunctionTool, Tool


def sub_agent(id: str | None = None, **kwargs) -> SubAgent:
    if not id:
        raise ConfigurationError(
            "Sub-agent id is required. Sub-agents must have stable ids "
            "for consistency across deployments."
        )
    return SubAgent(id=id, **kwargs)


def external_agent(name: str, base_url: str, **kwargs) -> ExternalAgent:
    return ExternalAgent(name=name, base_url=base_url, **kwargs)


def external_agents(configs: dict[str, dict]) -> dict[str, ExternalAgent]:
    """Build several external agents keyed by their id."""
    return {
        agent_id: ExternalAgent(id=agent_id, **config) for agent_id, config in configs.items()
    }


def mcp_server(name: str, server_url: str | None = None, **kwargs) -> Tool:
    if not server_url:
        raise ConfigurationError(f"MCP server {name!r} requires a server_url")
    return Tool(name=name, server_url=server_url, **kwargs)


def mcp_tool(name: str, server_url: str, **kwargs) -> Tool:
    return Tool(name=name, server_url=server_url, **kwargs)


def agent_mcp(
    server: Tool,
    selected_tools: list[str] | None = None,
    headers: dict[str, str] | None = None,
) -> AgentToolConfig:
    """Give a sub-agent access to ``server``, optionally to a subset of its tools."""
    return AgentToolConfig(tool=server, selected_tools=selected_tools, headers=headers)


def function_tool(name: str, execute: Callable | str, **kwargs) -> FunctionTool:
    return FunctionTool(name=name, execute=execute, **kwargs)


def data_component(name: str, **kwargs) -> DataComponent:
    return DataComponent(name=name, **kwargs)


def artifact_component(name: str, **kwargs) -> ArtifactComponent:
    return ArtifactComponent(name=name, **kwargs)


def credential(
    id: str,
    credential_store_id: str,
    type: str = "memory",
    retrieval_params: dict | None = None,
) -> CredentialReference:
    return CredentialReference(
        id=id,
        type=type,
        credential_store_id=credential_store_id,
        retrieval_params=retrieval_params,
    )


def agent_graph(id: str, **kwargs) -> Graph:
    return Graph(id=id, **kwargs)


def project(id: str, name: str, **kwargs) -> Project:
    return Project(id=id, name=name, **kwargs)
