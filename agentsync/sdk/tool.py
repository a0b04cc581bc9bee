"""MCP tools and function tools that sub-agents can use."""

from __future__ import annotations

import asyncio
import inspect
import textwrap
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from agentsync.adapters.control_plane import ControlPlaneClient, ResourceKind, Scope
from agentsync.errors import ConfigurationError
from agentsync.models.definitions import (
    FunctionDefinition,
    FunctionToolDefinition,
    McpConfig,
    McpServerConfig,
    McpTransportConfig,
    ToolConfig,
    ToolDefinition,
)
from agentsync.models.settings import CredentialReference, as_model
from agentsync.sync.upsert import upsert
from agentsync.utils.dependencies import detect_dependencies
from agentsync.utils.identifiers import generate_id_from_name

logger = structlog.get_logger(__name__)

TRANSPORTS = ("streamable_http", "sse")


def credential_id_of(credential: CredentialReference | str | None) -> str | None:
    if credential is None or isinstance(credential, str):
        return credential
    return credential.id


class Tool:
    """An MCP server exposing one or more tools."""

    def __init__(
        self,
        name: str,
        server_url: str,
        id: str | None = None,
        description: str | None = None,
        active_tools: list[str] | None = None,
        transport: str = "streamable_http",
        credential: CredentialReference | dict | str | None = None,
        headers: dict[str, str] | None = None,
        image_url: str | None = None,
    ) -> None:
        if not server_url:
            raise ConfigurationError(f"MCP tool {name!r} requires a server_url")
        if transport not in TRANSPORTS:
            raise ConfigurationError(
                f"Unsupported transport {transport!r}; expected one of {TRANSPORTS}"
            )
        self.id = id or generate_id_from_name(name)
        self.name = name
        self.server_url = server_url
        self.description = description
        self.active_tools = active_tools
        self.transport = transport
        self.credential = (
            credential if isinstance(credential, str)
            else as_model(CredentialReference, credential)
        )
        self.headers = headers
        self.image_url = image_url
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def credential_reference_id(self) -> str | None:
        return credential_id_of(self.credential)

    def with_selection(
        self,
        selected_tools: list[str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> AgentToolConfig:
        """Scope this tool to a subset of its functions for one sub-agent."""
        return AgentToolConfig(tool=self, selected_tools=selected_tools, headers=headers)

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            id=self.id,
            name=self.name,
            description=self.description,
            config=ToolConfig(
                mcp=McpConfig(
                    server=McpServerConfig(url=self.server_url),
                    transport=McpTransportConfig(type=self.transport),
                    active_tools=self.active_tools,
                )
            ),
            credential_reference_id=self.credential_reference_id,
            headers=self.headers,
            image_url=self.image_url,
        )

    async def init(
        self,
        client: ControlPlaneClient,
        scope: Scope,
        skip_registration: bool = False,
    ) -> None:
        """Register the tool, unless a graph document will carry it instead."""
        if skip_registration:
            logger.debug("tool_registration_skipped", tool_id=self.id)
            return
        async with self._init_lock:
            if self._initialized:
                return
            await upsert(client, ResourceKind.TOOL, scope, self.id, self.to_definition().to_wire())
            self._initialized = True

    def __repr__(self) -> str:
        return f"Tool(id={self.id!r}, server_url={self.server_url!r})"


class FunctionTool:
    """A tool backed by a function whose source is shipped to the runtime.

    ``execute`` is either a Python callable (its source is captured with
    ``inspect``) or the source text itself. When ``dependencies`` is omitted it
    is derived from the imports in that source.
    """

    def __init__(
        self,
        name: str,
        execute: Callable | str,
        description: str | None = None,
        input_schema: dict | None = None,
        dependencies: dict[str, str] | None = None,
        id: str | None = None,
    ) -> None:
        if not callable(execute) and not isinstance(execute, str):
            raise ConfigurationError(
                f"Function tool {name!r} needs a callable or source string to execute"
            )
        self.id = id or generate_id_from_name(name)
        self.name = name
        self.description = description
        self.input_schema = input_schema
        self.execute = execute
        self._dependencies = dependencies
        self._execute_code: str | None = None
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def execute_code(self) -> str:
        if self._execute_code is None:
            if isinstance(self.execute, str):
                self._execute_code = self.execute
            else:
                try:
                    self._execute_code = textwrap.dedent(inspect.getsource(self.execute))
                except (OSError, TypeError) as exc:
                    raise ConfigurationError(
                        f"Cannot read the source of function tool {self.name!r}"
                    ) from exc
        return self._execute_code

    @property
    def dependencies(self) -> dict[str, str]:
        if self._dependencies is None:
            self._dependencies = detect_dependencies(self.execute_code)
        return self._dependencies

    def to_function_definition(self) -> FunctionDefinition:
        return FunctionDefinition(
            id=self.id,
            input_schema=self.input_schema,
            execute_code=self.execute_code,
            dependencies=self.dependencies or None,
        )

    def to_function_tool_definition(self, graph_id: str) -> FunctionToolDefinition:
        return FunctionToolDefinition(
            id=self.id,
            name=self.name,
            description=self.description,
            function_id=self.id,
            graph_id=graph_id,
        )

    async def init(
        self,
        client: ControlPlaneClient,
        scope: Scope,
        skip_registration: bool = False,
    ) -> None:
        # capture source and dependencies up front so a bad tool fails early
        self.to_function_definition()
        if skip_registration:
            logger.debug("function_tool_registration_skipped", function_tool_id=self.id)
            return
        async with self._init_lock:
            if self._initialized:
                return
            await upsert(
                client,
                ResourceKind.FUNCTION,
                scope,
                self.id,
                self.to_function_definition().to_wire(),
            )
            await upsert(
                client,
                ResourceKind.FUNCTION_TOOL,
                scope,
                self.id,
                self.to_function_tool_definition(scope.graph_id).to_wire(),
            )
            self._initialized = True

    def __repr__(self) -> str:
        return f"FunctionTool(id={self.id!r})"


@dataclass
class AgentToolConfig:
    """One sub-agent's use of a tool, with optional function subset and headers."""

    tool: Tool | FunctionTool
    selected_tools: list[str] | None = None
    headers: dict[str, str] | None = None

    @property
    def tool_id(self) -> str:
        return self.tool.id
