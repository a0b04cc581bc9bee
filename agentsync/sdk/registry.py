"""Id-keyed entity registry and reference resolution.

Entities that point at each other (a sub-agent transferring to another that
transfers back) are built in two phases: first every entity is registered
by id, then reference lists are resolved. A reference list may be a plain
sequence, a zero-argument callable returning one (so the referenced objects
need not exist yet when the referencing entity is constructed), or contain
id strings looked up in a registry.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

from agentsync.errors import ConfigurationError


def resolve_getter(value: Any) -> list:
    """Normalize a reference list given as None, a sequence or a callable."""
    if value is None:
        return []
    if callable(value):
        value = value()
        if value is None:
            return []
    if isinstance(value, (str, bytes)) or not hasattr(value, "__iter__"):
        return [value]
    return list(value)


class EntityRegistry:
    """Ordered collection of entities keyed by their stable id."""

    def __init__(self) -> None:
        self._entities: dict[str, Any] = {}

    def register(self, entity: Any) -> None:
        existing = self._entities.get(entity.id)
        if existing is not None and existing is not entity:
            raise ConfigurationError(
                f"Duplicate id {entity.id!r}: {existing!r} and {entity!r}"
            )
        self._entities[entity.id] = entity

    def unregister(self, entity_id: str) -> Any | None:
        return self._entities.pop(entity_id, None)

    def get(self, entity_id: str) -> Any | None:
        return self._entities.get(entity_id)

    def resolve(self, ref: Any) -> Any:
        """Return the entity for ``ref``; id strings are looked up."""
        if not isinstance(ref, str):
            return ref
        entity = self._entities.get(ref)
        if entity is None:
            raise ConfigurationError(f"Unknown entity id {ref!r}")
        return entity

    def resolve_all(self, refs: Any) -> list:
        return [self.resolve(ref) for ref in resolve_getter(refs)]

    def values(self) -> list:
        return list(self._entities.values())

    def ids(self) -> list[str]:
        return list(self._entities)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._entities.values()))

    def __len__(self) -> int:
        return len(self._entities)


def resolve_refs(refs: Any, registry: EntityRegistry | None, what: str) -> list:
    """Resolve a reference list, requiring a registry only if it holds ids."""
    items = resolve_getter(refs)
    if registry is not None:
        return [registry.resolve(item) for item in items]
    for item in items:
        if isinstance(item, str):
            raise ConfigurationError(
                f"Cannot resolve {what} id {item!r} without a registry"
            )
    return items


ReferenceSource = Callable[[], Any] | list | tuple | None
