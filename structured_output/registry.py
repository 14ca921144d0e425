"""Schema Registry — structured types by name.

The registry is what lets schemas reference each other by name: ``Ref``
values resolve through it at compile time, and the hydrator resolves
nested ``object`` properties and array items through it by the ``name``
recorded in their compiled schema.

Registries are plain objects so callers can keep independent schema
universes apart (and tests hermetic). ``default_registry`` serves callers
that do not pass one. Registering a name twice replaces the earlier entry:
last registration wins.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from typing import TYPE_CHECKING

from .schemas.compiler import singular_candidates

if TYPE_CHECKING:
    from .structured_type import StructuredType

log = logging.getLogger(__name__)


class SchemaRegistry:
    """Thread-safe mapping of type name -> StructuredType."""

    def __init__(self, name: str = "default"):
        self.name = name
        self._entries: dict[str, StructuredType] = {}
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"SchemaRegistry({self.name!r}, {len(self)} types)"

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def register(self, structured: StructuredType, name: str | None = None) -> None:
        key = name or structured.name
        with self._lock:
            previous = self._entries.get(key)
            self._entries[key] = structured
        if previous is not None and previous is not structured:
            log.debug(
                "Registry %r: %s replaced (%s -> %s)",
                self.name, key,
                previous.factory.__qualname__, structured.factory.__qualname__,
            )

    def unregister(self, name: str) -> StructuredType | None:
        with self._lock:
            return self._entries.pop(name, None)

    def get(self, name: str) -> StructuredType | None:
        with self._lock:
            return self._entries.get(name)

    def resolve(self, name: str | None) -> StructuredType | None:
        """Exact lookup that tolerates a missing name."""
        if not name:
            return None
        return self.get(name)

    def find_singular(self, plural: str) -> StructuredType | None:
        """Best-effort lookup of the type a plural property name refers to."""
        for candidate in singular_candidates(plural):
            found = self.get(candidate)
            if found is not None:
                return found
        return None

    def names(self) -> list[str]:
        """Registered names, sorted."""
        with self._lock:
            return sorted(self._entries)

    def clear(self) -> None:
        """Drop every entry. Intended for testing."""
        with self._lock:
            self._entries.clear()


default_registry = SchemaRegistry()
