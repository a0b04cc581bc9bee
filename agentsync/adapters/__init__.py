"""Adapters for talking to the control-plane management API."""

from agentsync.adapters.control_plane import (
    ControlPlaneClient,
    ResourceKind,
    Scope,
    client_session,
)

__all__ = [
    "ControlPlaneClient",
    "ResourceKind",
    "Scope",
    "client_session",
]
