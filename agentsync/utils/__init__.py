"""Utility functions for agentsync."""

from agentsync.utils.identifiers import generate_id_from_name, utc_timestamp

__all__ = [
    "generate_id_from_name",
    "utc_timestamp",
]
