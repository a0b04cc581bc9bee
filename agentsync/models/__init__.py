"""Wire models exchanged with the control plane."""

from agentsync.models.definitions import (
    AgentGraphDefinition,
    ExternalAgentDefinition,
    FullGraphDefinition,
    FullProjectDefinition,
    SubAgentDefinition,
)
from agentsync.models.reports import GraphStats, ProjectStats, ValidationReport
from agentsync.models.settings import (
    CredentialReference,
    ModelSettings,
    Models,
    ProjectDefaults,
    StatusUpdateSettings,
    StopWhen,
)

__all__ = [
    # Settings
    "ModelSettings",
    "Models",
    "StopWhen",
    "StatusUpdateSettings",
    "CredentialReference",
    "ProjectDefaults",
    # Documents
    "SubAgentDefinition",
    "ExternalAgentDefinition",
    "FullGraphDefinition",
    "AgentGraphDefinition",
    "FullProjectDefinition",
    # Reports
    "ValidationReport",
    "GraphStats",
    "ProjectStats",
]
