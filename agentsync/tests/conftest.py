"""Shared fixtures: an in-memory control plane behind httpx.MockTransport."""

import json
import re

import httpx
import pytest

from agentsync.adapters.control_plane import ControlPlaneClient
from agentsync.config import SyncSettings


class FakeControlPlane:
    """Stores resources by path and answers like the management API.

    PUT on an unknown resource answers 404, POST creates it. ``fail`` maps a
    (method, path-regex) pair to a status and body for forced failures.
    """

    def __init__(self) -> None:
        self.resources: dict[str, dict] = {}
        self.calls: list[tuple[str, str, dict | None]] = []
        self.relations: list[dict] = []
        self.failures: list[tuple[str, re.Pattern, int, object]] = []

    def fail(self, method: str, pattern: str, status: int, body: object = None) -> None:
        self.failures.append((method, re.compile(pattern), status, body))

    def seed(self, path: str, data: dict) -> None:
        self.resources[path] = data

    def calls_to(self, method: str, fragment: str = "") -> list[tuple[str, str, dict | None]]:
        return [c for c in self.calls if c[0] == method and fragment in c[1]]

    def _forced(self, method: str, path: str, body: dict | None) -> httpx.Response | None:
        for fail_method, pattern, status, fail_body in self.failures:
            if fail_method != method or not pattern.search(path):
                continue
            if callable(fail_body):
                fail_body = fail_body(body)
                if fail_body is None:
                    continue
            if isinstance(fail_body, str):
                return httpx.Response(status, text=fail_body)
            return httpx.Response(status, json=fail_body or {"error": "forced failure"})
        return None

    def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = request.url.path
        body = json.loads(request.content) if request.content else None
        self.calls.append((method, path, body))

        forced = self._forced(method, path, body)
        if forced is not None:
            return forced

        if path.endswith("/sub-agent-relations"):
            self.relations.append(body)
            return httpx.Response(201, json={"data": body})
        if method == "GET":
            if path in self.resources:
                return httpx.Response(200, json={"data": self.resources[path]})
            return httpx.Response(404, json={"error": "Not found"})
        if method == "PUT":
            if path not in self.resources:
                return httpx.Response(404, json={"error": "Not found"})
            self.resources[path] = body
            return httpx.Response(200, json={"data": body})
        if method == "POST":
            self.resources[f"{path}/{body['id']}"] = body
            return httpx.Response(201, json={"data": body})
        return httpx.Response(405, text="method not allowed")

    def client(self) -> ControlPlaneClient:
        http = httpx.AsyncClient(
            base_url="http://control-plane.test",
            transport=httpx.MockTransport(self.handler),
        )
        return ControlPlaneClient(base_url="http://control-plane.test", client=http)


@pytest.fixture
def control_plane() -> FakeControlPlane:
    return FakeControlPlane()


@pytest.fixture
def settings() -> SyncSettings:
    return SyncSettings(
        api_url="http://control-plane.test",
        tenant_id="acme",
        project_id="support-project",
        _env_file=None,
    )
