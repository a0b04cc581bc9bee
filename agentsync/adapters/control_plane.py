"""Async HTTP client for the control-plane management API.

Every resource is addressed by a collection path scoped to a tenant (and
usually a project, sometimes a graph). Updates go to ``<collection>/<id>``,
creates to ``<collection>``. Successful responses wrap their payload in a
``{"data": ...}`` envelope.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
import structlog

from agentsync.config import SyncSettings
from agentsync.errors import ConfigurationError, RemoteFailure, RemoteNotFound

logger = structlog.get_logger(__name__)


class ResourceKind(str, Enum):
    """Remote resource types and their collection path templates."""

    PROJECT = "/tenants/{tenant_id}/projects"
    PROJECT_FULL = "/tenants/{tenant_id}/project-full"
    GRAPH_FULL = "/tenants/{tenant_id}/projects/{project_id}/graph"
    AGENT_GRAPH = "/tenants/{tenant_id}/projects/{project_id}/agent-graphs"
    SUB_AGENT = "/tenants/{tenant_id}/projects/{project_id}/graphs/{graph_id}/sub-agents"
    EXTERNAL_AGENT = "/tenants/{tenant_id}/projects/{project_id}/external-agents"
    TOOL = "/tenants/{tenant_id}/projects/{project_id}/tools"
    FUNCTION = "/tenants/{tenant_id}/projects/{project_id}/functions"
    FUNCTION_TOOL = (
        "/tenants/{tenant_id}/projects/{project_id}/graphs/{graph_id}/function-tools"
    )
    DATA_COMPONENT = "/tenants/{tenant_id}/projects/{project_id}/data-components"
    ARTIFACT_COMPONENT = "/tenants/{tenant_id}/projects/{project_id}/artifact-components"
    SUB_AGENT_RELATION = (
        "/tenants/{tenant_id}/projects/{project_id}/graphs/{graph_id}/sub-agent-relations"
    )


@dataclass(frozen=True)
class Scope:
    """Tenant / project / graph coordinates that fill a path template."""

    tenant_id: str
    project_id: str | None = None
    graph_id: str | None = None

    def for_graph(self, graph_id: str) -> Scope:
        return Scope(self.tenant_id, self.project_id, graph_id)

    def collection_path(self, kind: ResourceKind) -> str:
        template = kind.value
        if "{project_id}" in template and self.project_id is None:
            raise ConfigurationError(f"{kind.name} requires a project id")
        if "{graph_id}" in template and self.graph_id is None:
            raise ConfigurationError(f"{kind.name} requires a graph id")
        return template.format(
            tenant_id=self.tenant_id,
            project_id=self.project_id,
            graph_id=self.graph_id,
        )


def _extract_error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text if text else response.reason_phrase
    if isinstance(body, dict):
        for key in ("error", "detail", "message"):
            detail = body.get(key)
            if detail is None:
                continue
            if isinstance(detail, dict):
                return str(detail.get("message", detail))
            return str(detail)
    return str(body)


def _unwrap(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


class ControlPlaneClient:
    """Thin async wrapper over the management API.

    Pass an existing ``httpx.AsyncClient`` to share a connection pool or to
    swap the transport in tests; otherwise the client owns one and closes it
    in ``aclose``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3002",
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout_s: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._headers = {"Accept": "application/json"}
        if api_key:
            self._headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout_s)
        self._owns_client = client is None

    @classmethod
    def from_settings(
        cls,
        settings: SyncSettings,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ) -> ControlPlaneClient:
        return cls(
            base_url=base_url or settings.api_url,
            api_key=settings.api_key,
            client=client,
            timeout_s=settings.request_timeout_seconds,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> ControlPlaneClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, body: dict | None = None) -> Any:
        try:
            response = await self._client.request(
                method, path, json=body, headers=self._headers
            )
        except httpx.RequestError as exc:
            logger.error("control_plane_unreachable", method=method, path=path, error=str(exc))
            raise RemoteFailure(method, path, None, str(exc)) from exc

        if response.status_code == 404:
            raise RemoteNotFound(
                method, path, 404, _extract_error_detail(response), response.text
            )
        if response.is_error:
            detail = _extract_error_detail(response)
            raise RemoteFailure(method, path, response.status_code, detail, response.text)

        logger.debug(
            "control_plane_response",
            method=method,
            path=path,
            status_code=response.status_code,
        )
        return _unwrap(response)

    async def get(self, kind: ResourceKind, scope: Scope, entity_id: str) -> Any:
        path = f"{scope.collection_path(kind)}/{entity_id}"
        return await self._request("GET", path)

    async def update(
        self, kind: ResourceKind, scope: Scope, entity_id: str, body: dict
    ) -> Any:
        """PUT ``body`` to the resource. Raises RemoteNotFound on 404."""
        path = f"{scope.collection_path(kind)}/{entity_id}"
        return await self._request("PUT", path, body)

    async def create(self, kind: ResourceKind, scope: Scope, body: dict) -> Any:
        return await self._request("POST", scope.collection_path(kind), body)

    async def create_relation(self, scope: Scope, body: dict) -> Any:
        return await self.create(ResourceKind.SUB_AGENT_RELATION, scope, body)

    async def get_project(self, tenant_id: str, project_id: str) -> dict | None:
        """Fetch project metadata, or None when the project does not exist."""
        try:
            return await self.get(ResourceKind.PROJECT, Scope(tenant_id), project_id)
        except RemoteNotFound:
            return None

    async def get_full_project(self, tenant_id: str, project_id: str) -> dict | None:
        try:
            return await self.get(ResourceKind.PROJECT_FULL, Scope(tenant_id), project_id)
        except RemoteNotFound:
            return None

    async def get_full_graph(self, scope: Scope, graph_id: str) -> dict | None:
        try:
            return await self.get(ResourceKind.GRAPH_FULL, scope, graph_id)
        except RemoteNotFound:
            return None


@contextlib.asynccontextmanager
async def client_session(
    settings: SyncSettings,
    client: ControlPlaneClient | None = None,
    base_url: str | None = None,
) -> AsyncIterator[ControlPlaneClient]:
    """Yield ``client`` as is, or a client built from ``settings`` and closed on exit."""
    if client is not None:
        yield client
        return
    async with ControlPlaneClient.from_settings(settings, base_url=base_url) as owned:
        yield owned
