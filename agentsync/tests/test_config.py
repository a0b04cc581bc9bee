"""Tests for settings loading and logging setup."""

import pytest
import structlog
from pydantic import ValidationError
from structlog.testing import capture_logs

from agentsync.config import SyncSettings, load_settings


@pytest.fixture
def restore_logging():
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


class TestSyncSettings:
    """Test environment-driven configuration."""

    def test_defaults(self, monkeypatch):
        """Unset environment falls back to local defaults."""
        for key in ("AGENTSYNC_API_URL", "AGENTSYNC_TENANT_ID", "AGENTSYNC_PROJECT_ID"):
            monkeypatch.delenv(key, raising=False)
        settings = SyncSettings(_env_file=None)
        assert settings.api_url == "http://localhost:3002"
        assert settings.tenant_id == "default"
        assert settings.api_key is None

    def test_environment_prefix(self, monkeypatch):
        """AGENTSYNC_ variables override defaults."""
        monkeypatch.setenv("AGENTSYNC_API_URL", "https://manage.example.com/")
        monkeypatch.setenv("AGENTSYNC_TENANT_ID", "acme")
        settings = load_settings(_env_file=None)
        assert settings.api_url == "https://manage.example.com"
        assert settings.tenant_id == "acme"

    def test_overrides_take_precedence(self, monkeypatch):
        monkeypatch.setenv("AGENTSYNC_TENANT_ID", "acme")
        assert load_settings(tenant_id="other", _env_file=None).tenant_id == "other"

    def test_rejects_unknown_log_format(self):
        with pytest.raises(ValidationError) as exc_info:
            SyncSettings(log_format="xml", _env_file=None)
        assert "log_format" in str(exc_info.value)

    def test_log_level_is_normalized(self):
        assert SyncSettings(log_level="debug", _env_file=None).log_level == "DEBUG"
        with pytest.raises(ValidationError):
            SyncSettings(log_level="chatty", _env_file=None)


class TestConfigureLogging:
    """Logging is set up from the settings object."""

    def test_level_filters_events(self, settings, restore_logging):
        settings.model_copy(update={"log_level": "WARNING"}).configure_logging()
        logger = structlog.get_logger("agentsync.tests")

        with capture_logs() as logs:
            logger.info("sync_progress")
            logger.warning("sync_slow")

        assert [log["event"] for log in logs] == ["sync_slow"]

    def test_binds_tenant_and_project(self, settings, restore_logging):
        settings.configure_logging()
        assert structlog.contextvars.get_contextvars() == {
            "tenant_id": "acme",
            "project_id": "support-project",
        }
