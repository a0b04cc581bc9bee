"""Tests for projects and the full project document."""

import asyncio

import pytest
from structlog.testing import capture_logs

from agentsync.assembly.project_definition import ProjectAssembler
from agentsync.errors import ConfigurationError, RemoteFailure
from agentsync.sdk.agent import ExternalAgent, SubAgent
from agentsync.sdk.builders import credential, mcp_server, project
from agentsync.sdk.graph import Graph

PROJECT_PATH = "/tenants/acme/project-full"


def _graph(settings, graph_id: str, agent_id: str, **agent_kwargs) -> tuple[Graph, SubAgent]:
    agent = SubAgent(id=agent_id, name=agent_id.title(), prompt="Help.", **agent_kwargs)
    return Graph(id=graph_id, default_sub_agent=agent, settings=settings), agent


def _init(target, control_plane):
    async def run():
        await target.init(control_plane.client())

    asyncio.run(run())


class TestProjectInheritanceEndToEnd:
    """Project defaults reach sub-agents through their graph."""

    def test_project_model_reaches_sub_agent(self, settings, control_plane):
        graph, agent = _graph(settings, "support", "router")
        support = project(
            id="support-project",
            name="Support",
            models={"base": {"model": "M"}},
            stop_when={"transfer_count_is": 7, "step_count_is": 25},
            graphs=[graph],
            settings=settings,
        )

        _init(support, control_plane)

        document = control_plane.resources[f"{PROJECT_PATH}/support-project"]
        router = document["graphs"]["support"]["subAgents"]["router"]
        assert router["models"]["base"] == {"model": "M"}
        assert router["stopWhen"] == {"stepCountIs": 25}
        assert document["graphs"]["support"]["stopWhen"] == {"transferCountIs": 7}
        assert agent.models.base.model == "M"

    def test_project_defaults_read_locally(self, settings, control_plane):
        graph, _ = _graph(settings, "support", "router")
        support = project(id="support-project", name="Support", graphs=[graph], settings=settings)
        _init(support, control_plane)
        assert not control_plane.calls_to("GET")


class TestProjectInit:
    """Metadata first, graphs concurrently, full document last."""

    def test_call_sequence(self, settings, control_plane):
        first, _ = _graph(settings, "first", "a")
        second, _ = _graph(settings, "second", "b")
        support = project(
            id="support-project", name="Support", graphs=[first, second], settings=settings
        )

        _init(support, control_plane)

        project_writes = [
            (i, c) for i, c in enumerate(control_plane.calls) if c[1].startswith(PROJECT_PATH)
        ]
        graph_writes = [i for i, c in enumerate(control_plane.calls) if "/graph" in c[1]]
        metadata = project_writes[1][1][2]  # PUT 404, then POST create
        assert metadata["graphs"] == {}
        assert metadata["tools"] == {}
        assert project_writes[1][0] < min(graph_writes)
        assert project_writes[-1][0] > max(graph_writes)

        final = control_plane.resources[f"{PROJECT_PATH}/support-project"]
        assert set(final["graphs"]) == {"first", "second"}
        assert support.initialized
        assert first.initialized and second.initialized

    def test_graph_failure_stops_final_upsert(self, settings, control_plane):
        good, _ = _graph(settings, "good", "a")
        bad, _ = _graph(settings, "bad", "b")
        support = project(
            id="support-project", name="Support", graphs=[bad, good], settings=settings
        )
        control_plane.fail("PUT", r"/graph/bad$", 500, {"error": "rejected"})

        with capture_logs() as logs:
            with pytest.raises(RemoteFailure):
                _init(support, control_plane)

        # the sibling graph still finished
        assert good.initialized
        assert not support.initialized
        final_writes = [
            c for c in control_plane.calls if c[1].startswith(PROJECT_PATH) and c[0] == "PUT"
        ]
        assert len(final_writes) == 1
        failed = [log for log in logs if log["event"] == "project_graph_init_failed"]
        assert failed[0]["graph_id"] == "bad"

    def test_init_is_idempotent(self, settings, control_plane):
        graph, _ = _graph(settings, "support", "router")
        support = project(id="support-project", name="Support", graphs=[graph], settings=settings)
        _init(support, control_plane)
        count = len(control_plane.calls)
        _init(support, control_plane)
        assert len(control_plane.calls) == count

    def test_graphs_frozen_after_init(self, settings, control_plane):
        graph, _ = _graph(settings, "support", "router")
        late, _ = _graph(settings, "late", "helper")
        support = project(id="support-project", name="Support", graphs=[graph], settings=settings)
        _init(support, control_plane)

        with pytest.raises(ConfigurationError):
            support.add_graph(late)
        with pytest.raises(ConfigurationError):
            support.remove_graph("support")
        with pytest.raises(ConfigurationError):
            support.set_credentials([credential(id="late-key", credential_store_id="memory")])
        assert [g.id for g in support.get_graphs()] == ["support"]


class TestProjectDocument:
    """Project-wide registries and credential tracking."""

    def test_shared_tool_deduplicated_with_credential_usage(self, settings):
        key = credential(id="search-key", credential_store_id="memory-default")
        search = mcp_server(name="Search", server_url="https://mcp.example.com", credential=key)
        partner = ExternalAgent(
            id="partner", name="Partner", base_url="https://p.example.com", credential=key
        )
        first, _ = _graph(settings, "first", "a", can_use=[search])
        second, _ = _graph(settings, "second", "b", can_use=[search], can_delegate_to=[partner])
        support = project(
            id="support-project", name="Support", graphs=[first, second], settings=settings
        )

        document = support.to_full_definition(timestamp="2026-01-01T00:00:00+00:00").to_wire()

        assert list(document["tools"]) == ["search"]
        assert document["credentialReferences"]["search-key"]["usedBy"] == [
            {"type": "externalAgent", "id": "partner"},
            {"type": "tool", "id": "search"},
        ]
        assert support.get_credential_tracking()["search-key"] == [
            {"type": "externalAgent", "id": "partner"},
            {"type": "tool", "id": "search"},
        ]

    def test_metadata_has_no_graphs(self, settings):
        graph, _ = _graph(settings, "support", "router")
        support = project(id="p", name="P", graphs=[graph], settings=settings)
        metadata = ProjectAssembler().metadata(support).to_wire()
        assert metadata["graphs"] == {}
        assert metadata["name"] == "P"


class TestProjectManagement:
    """Graph membership, configuration and validation."""

    def test_add_graph_moves_it_into_project(self, settings):
        graph, _ = _graph(settings, "support", "router")
        support = project(id="billing-project", name="Billing", settings=settings)
        support.add_graph(graph)
        assert graph.project_id == "billing-project"
        assert support.get_graph("support") is graph

    def test_set_config_propagates_to_graphs(self, settings):
        graph, _ = _graph(settings, "support", "router")
        support = project(id="p", name="P", graphs=[graph], settings=settings)
        support.set_config("tenant-2", api_url="https://manage.example.com/")
        assert graph.tenant_id == "tenant-2"
        assert graph.api_url == "https://manage.example.com"

    def test_remove_graph(self, settings):
        graph, _ = _graph(settings, "support", "router")
        support = project(id="p", name="P", graphs=[graph], settings=settings)
        assert support.remove_graph("support") is True
        assert support.get_graphs() == []
        assert support.remove_graph("support") is False

    def test_duplicate_graph_rejected(self, settings):
        first, _ = _graph(settings, "support", "a")
        second, _ = _graph(settings, "support", "b")
        support = project(id="p", name="P", graphs=[first], settings=settings)
        with pytest.raises(ConfigurationError):
            support.add_graph(second)

    def test_validate_collects_graph_errors(self, settings):
        support = project(
            id="p", name="P", graphs=[Graph(id="empty", settings=settings)], settings=settings
        )
        report = support.validate()
        assert not report.valid
        assert all(e.startswith("Graph 'empty'") for e in report.errors)

    def test_stats(self, settings):
        graph, _ = _graph(settings, "support", "router")
        stats = project(id="p", name="P", graphs=[graph], settings=settings).get_stats()
        assert stats.graph_count == 1
        assert stats.tenant_id == "acme"

    def test_project_id_required(self, settings):
        with pytest.raises(ConfigurationError):
            project(id="", name="Nameless", settings=settings)
