"""Model, stop-condition and status-update settings shared by every scope.

Wire names are camelCase; Python attributes are snake_case. Every model
accepts either spelling on input.
"""

from __future__ import annotations

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


MODEL_SLOTS = ("base", "structured_output", "summarizer")
DEFAULT_TRANSFER_COUNT = 10


class WireModel(BaseModel):
    """Base for payloads exchanged with the control plane."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "protected_namespaces": (),
    }

    def to_wire(self) -> dict:
        """Dump with camelCase keys, dropping unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ModelSettings(WireModel):
    """A model identifier plus provider-specific options."""

    model: str | None = None  # e.g. "anthropic/claude-sonnet-4-5"
    provider_options: dict | None = None


class Models(WireModel):
    """The three model slots an agent can use."""

    base: ModelSettings | None = None
    structured_output: ModelSettings | None = None
    summarizer: ModelSettings | None = None

    def get_slot(self, slot: str) -> ModelSettings | None:
        return getattr(self, slot)

    def set_slot(self, slot: str, value: ModelSettings) -> None:
        setattr(self, slot, value.model_copy(deep=True))


class StopWhen(WireModel):
    """Stop conditions.

    ``transfer_count_is`` applies at project and graph scope,
    ``step_count_is`` at project and sub-agent scope.
    """

    transfer_count_is: int | None = None
    step_count_is: int | None = None


class StatusComponent(WireModel):
    type: str
    description: str | None = None
    details_schema: dict | None = None


class StatusUpdateSettings(WireModel):
    """Periodic status-update behaviour for a graph."""

    enabled: bool | None = None
    num_events: int | None = None
    time_in_seconds: int | None = None
    prompt: str | None = None
    status_components: list[StatusComponent] | None = None


class CredentialReference(WireModel):
    """Pointer to a secret held by a credential store."""

    id: str
    type: str = "memory"  # "memory", "keychain", "nango"...
    credential_store_id: str
    retrieval_params: dict | None = None


class ProjectDefaults(WireModel):
    """The subset of a project that graphs and sub-agents inherit from."""

    models: Models | None = None
    stop_when: StopWhen | None = None


def as_model(model_cls: type[BaseModel], value):
    """Accept a model instance, a plain dict (either key spelling) or None."""
    if value is None or isinstance(value, model_cls):
        return value
    return model_cls.model_validate(value)
