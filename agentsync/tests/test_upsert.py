"""Tests for the update-then-create protocol and the control-plane client."""

import asyncio

import httpx
import pytest

from agentsync.adapters.control_plane import (
    ControlPlaneClient,
    ResourceKind,
    Scope,
    client_session,
)
from agentsync.errors import ConfigurationError, RemoteFailure, RemoteNotFound
from agentsync.sync.upsert import upsert

SCOPE = Scope("acme", "support-project")
TOOL_PATH = "/tenants/acme/projects/support-project/tools"
BODY = {"id": "search", "name": "Search"}


def _upsert(control_plane):
    async def run():
        return await upsert(control_plane.client(), ResourceKind.TOOL, SCOPE, "search", BODY)

    return asyncio.run(run())


class TestUpsert:
    """Update by id, create on 404, fail on anything else."""

    def test_existing_entity_is_updated_only(self, control_plane):
        control_plane.seed(f"{TOOL_PATH}/search", {"id": "search"})
        result = _upsert(control_plane)

        assert result == BODY
        assert [c[:2] for c in control_plane.calls] == [("PUT", f"{TOOL_PATH}/search")]

    def test_not_found_falls_back_to_exactly_one_create(self, control_plane):
        _upsert(control_plane)

        assert [c[:2] for c in control_plane.calls] == [
            ("PUT", f"{TOOL_PATH}/search"),
            ("POST", TOOL_PATH),
        ]
        assert control_plane.resources[f"{TOOL_PATH}/search"] == BODY

    def test_server_error_is_fatal_without_create(self, control_plane):
        control_plane.fail("PUT", r"/tools/search$", 500, {"error": "database unavailable"})

        with pytest.raises(RemoteFailure) as exc_info:
            _upsert(control_plane)

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "database unavailable"
        assert not control_plane.calls_to("POST")

    def test_create_failure_is_fatal(self, control_plane):
        control_plane.fail("POST", r"/tools$", 400, {"error": "invalid tool"})

        with pytest.raises(RemoteFailure) as exc_info:
            _upsert(control_plane)

        assert exc_info.value.status_code == 400
        assert exc_info.value.method == "POST"
        assert len(control_plane.calls) == 2

    def test_plain_text_error_body(self, control_plane):
        control_plane.fail("PUT", r"/tools/search$", 502, "Bad Gateway from upstream")

        with pytest.raises(RemoteFailure) as exc_info:
            _upsert(control_plane)

        assert "Bad Gateway from upstream" in str(exc_info.value)


class TestControlPlaneClient:
    """Test path building, envelopes and transport errors."""

    def test_paths_require_scope_parts(self):
        with pytest.raises(ConfigurationError):
            Scope("acme").collection_path(ResourceKind.TOOL)
        with pytest.raises(ConfigurationError):
            SCOPE.collection_path(ResourceKind.SUB_AGENT_RELATION)
        assert (
            SCOPE.for_graph("g").collection_path(ResourceKind.SUB_AGENT_RELATION)
            == "/tenants/acme/projects/support-project/graphs/g/sub-agent-relations"
        )

    def test_get_unwraps_data_envelope(self, control_plane):
        control_plane.seed("/tenants/acme/project-full/p1", {"id": "p1", "graphs": {}})

        async def run():
            return await control_plane.client().get_full_project("acme", "p1")

        assert asyncio.run(run()) == {"id": "p1", "graphs": {}}

    def test_get_missing_returns_none(self, control_plane):
        async def run():
            return await control_plane.client().get_full_graph(SCOPE, "missing")

        assert asyncio.run(run()) is None

    def test_update_missing_raises_not_found(self, control_plane):
        async def run():
            await control_plane.client().update(ResourceKind.TOOL, SCOPE, "x", {"id": "x"})

        with pytest.raises(RemoteNotFound) as exc_info:
            asyncio.run(run())
        assert exc_info.value.status_code == 404

    def test_transport_error_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        http = httpx.AsyncClient(
            base_url="http://control-plane.test", transport=httpx.MockTransport(handler)
        )
        client = ControlPlaneClient(client=http)

        async def run():
            await client.get(ResourceKind.PROJECT, Scope("acme"), "p1")

        with pytest.raises(RemoteFailure) as exc_info:
            asyncio.run(run())
        assert exc_info.value.status_code is None
        assert "connection refused" in exc_info.value.detail

    def test_api_key_sent_as_bearer(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json={"data": {"id": "p1"}})

        http = httpx.AsyncClient(
            base_url="http://control-plane.test", transport=httpx.MockTransport(handler)
        )
        client = ControlPlaneClient(api_key="secret", client=http)

        async def run():
            return await client.get(ResourceKind.PROJECT, Scope("acme"), "p1")

        assert asyncio.run(run()) == {"id": "p1"}
        assert seen["auth"] == "Bearer secret"

    def test_error_keeps_raw_body(self, control_plane):
        control_plane.fail(
            "PUT", r"/tools/search$", 500, {"detail": "disk full", "error": {"message": "Oops"}}
        )

        with pytest.raises(RemoteFailure) as exc_info:
            _upsert(control_plane)

        assert exc_info.value.detail == "Oops"
        assert "disk full" in exc_info.value.body


class TestClientSession:
    """Sessions reuse an injected client or own one built from settings."""

    def test_injected_client_is_passed_through(self, settings, control_plane):
        injected = control_plane.client()

        async def run():
            async with client_session(settings, injected) as cp:
                return cp

        assert asyncio.run(run()) is injected

    def test_owned_client_built_from_settings_and_closed(self, settings):
        settings = settings.model_copy(update={"api_key": "secret"})

        async def run():
            async with client_session(settings, base_url="https://manage.example.com/") as cp:
                opened = cp
                assert not cp._client.is_closed
            return opened

        owned = asyncio.run(run())
        assert owned.base_url == "https://manage.example.com"
        assert owned._headers["Authorization"] == "Bearer secret"
        assert owned._client.is_closed
