"""Compiled-template registry for the Quill environment.

The registry is the in-memory cache keyed by template name. Reads are
lock-free: every mutation builds a new dict and swaps it in (copy-on-write),
so a reader always sees a complete generation of the registry. Writers
serialize on a lock.

A compile publishes all the templates it produced in one swap, so a failing
compile never leaves a partially compiled set behind.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator, Mapping
from types import MappingProxyType

from quill.template import CompiledTemplate

logger = logging.getLogger(__name__)


class TemplateRegistry:
    """Copy-on-write mapping of template name → CompiledTemplate.

    Supports:
        - registry["name"] / registry.get("name")
        - "name" in registry
        - registry.snapshot() for a consistent read-only view
        - registry.publish({...}) to swap in several entries at once
    """

    __slots__ = ("_entries", "_lock")

    def __init__(self, entries: Mapping[str, CompiledTemplate] | None = None):
        self._entries: dict[str, CompiledTemplate] = dict(entries or {})
        self._lock = threading.Lock()

    def __getitem__(self, name: str) -> CompiledTemplate:
        return self._entries[name]

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def get(self, name: str, default: CompiledTemplate | None = None) -> CompiledTemplate | None:
        return self._entries.get(name, default)

    def snapshot(self) -> Mapping[str, CompiledTemplate]:
        """Read-only view of the current generation."""
        return MappingProxyType(self._entries)

    def publish(self, entries: Mapping[str, CompiledTemplate]) -> None:
        """Swap in ``entries`` atomically, replacing existing names."""
        if not entries:
            return
        with self._lock:
            new = self._entries.copy()
            new.update(entries)
            self._entries = new
        logger.debug("published %s", ", ".join(entries))

    def evict(self, name: str) -> bool:
        """Drop ``name``. Returns True if it was present."""
        with self._lock:
            if name not in self._entries:
                return False
            new = self._entries.copy()
            del new[name]
            self._entries = new
        logger.debug("evicted %s", name)
        return True

    def clear(self) -> None:
        with self._lock:
            self._entries = {}
        logger.debug("registry cleared")

    def get_or_compile(
        self,
        name: str,
        compile_fn: Callable[[str], None],
        is_stale: Callable[[CompiledTemplate], bool],
    ) -> CompiledTemplate:
        """Return a current entry for ``name``, compiling it when missing or stale.

        ``compile_fn`` is expected to publish the entry (and whatever else it
        compiled) itself.

        Raises:
            KeyError: ``compile_fn`` returned without publishing ``name``
        """
        entry = self._entries.get(name)
        if entry is None or is_stale(entry):
            compile_fn(name)
            entry = self._entries[name]
        return entry
