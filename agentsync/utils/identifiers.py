"""ID derivation and timestamp utilities."""

import re
from datetime import datetime, timezone

from agentsync.errors import ConfigurationError

MAX_ID_LENGTH = 255


def generate_id_from_name(name: str) -> str:
    """Derive a stable slug id from a human-readable name.

    Lowercases the name, collapses every run of non-alphanumeric characters
    into a single hyphen and trims hyphens from both ends. Ids are capped at
    ``MAX_ID_LENGTH`` characters.

        >>> generate_id_from_name("Test Component!!")
        'test-component'
    """
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    slug = slug[:MAX_ID_LENGTH].rstrip("-")
    if not slug:
        raise ConfigurationError(f"Cannot derive an id from name {name!r}")
    return slug


def utc_timestamp() -> str:
    """Generate an ISO8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()
