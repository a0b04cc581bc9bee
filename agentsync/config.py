"""Sync configuration using Pydantic Settings.

Every setting can be overridden with an ``AGENTSYNC_``-prefixed environment
variable or a ``.env`` file in the working directory.
"""

import logging

import structlog
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncSettings(BaseSettings):
    """Connection and logging settings for a synchronization run.

    Attributes:
        api_url: Base URL of the control-plane management API.
        tenant_id: Tenant every entity is scoped to.
        project_id: Project that standalone graphs belong to.
        api_key: Optional bearer token sent with every request.
        request_timeout_seconds: Timeout applied to each control-plane call.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_format: Log format (json or text).
    """

    api_url: str = "http://localhost:3002"
    tenant_id: str = "default"
    project_id: str = "default"
    api_key: str | None = None
    request_timeout_seconds: float = 30.0

    log_level: str = "INFO"
    log_format: str = "text"

    model_config = SettingsConfigDict(
        env_prefix="AGENTSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_format")
    @classmethod
    def check_log_format(cls, v: str) -> str:
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError("log_level must be DEBUG, INFO, WARNING or ERROR")
        return level

    def configure_logging(self) -> None:
        """Set up structlog from these settings.

        Every event emitted afterwards carries the tenant and project ids.
        """
        configure_logging(
            self.log_level,
            self.log_format,
            tenant_id=self.tenant_id,
            project_id=self.project_id,
        )


def load_settings(**overrides) -> SyncSettings:
    """Build a fresh settings object from the environment plus overrides."""
    return SyncSettings(**overrides)


def configure_logging(log_level: str = "INFO", log_format: str = "text", **context) -> None:
    """Configure structlog for a sync run.

    The package never calls this on import; applications opt in, usually via
    ``SyncSettings.configure_logging``. ``context`` is bound to every event.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if log_format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(),
    )
    structlog.contextvars.clear_contextvars()
    if context:
        structlog.contextvars.bind_contextvars(**context)
