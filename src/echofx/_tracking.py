"""Dependency tracking engine — the heart of echofx.

Each wrapped model owns one DependencyTracker. While a zero-argument function
runs through the wrapper, its key sits on the tracker's call stack, and every
property read performed through the same wrapper is attributed to it.

Dependency sets are re-derived on each call: entering the outermost call of a
function forgets what it read last time.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Hashable, Iterator

Key = Hashable


class DependencyTracker:
    """Per-wrapper record of which functions read which properties."""

    __slots__ = ("dependents", "_stack")

    def __init__(self) -> None:
        # property key -> insertion-ordered set of function keys
        self.dependents: dict[Key, dict[Key, None]] = {}
        self._stack: list[Key] = []

    @property
    def active(self) -> Key | None:
        """Key of the innermost function currently running, or None."""
        return self._stack[-1] if self._stack else None

    @contextmanager
    def calling(self, fn_key: Key) -> Iterator[None]:
        """Mark fn_key as the active call for the duration of the block."""
        if fn_key not in self._stack:
            self._forget(fn_key)
        self._stack.append(fn_key)
        try:
            yield
        finally:
            self._stack.pop()

    def record_read(self, key: Key) -> None:
        """Attribute a read of key to the active call, if any."""
        fn_key = self.active
        if fn_key is not None:
            self.dependents.setdefault(key, {})[fn_key] = None

    def invalidated_by(self, key: Key) -> list[Key]:
        """Functions to pulse when key changes, deepest dependency first.

        Each direct dependent is followed by the functions that read it,
        depth-first in insertion order. Returns a snapshot so sinks may
        re-run functions (and so re-track them) while pulses are delivered.
        """
        pulses: list[Key] = []
        self._collect(key, pulses, path=set())
        return pulses

    def _collect(self, key: Key, pulses: list[Key], path: set[Key]) -> None:
        path.add(key)
        for fn_key in list(self.dependents.get(key, ())):
            if fn_key in path:
                continue
            pulses.append(fn_key)
            self._collect(fn_key, pulses, path)
        path.discard(key)

    def _forget(self, fn_key: Key) -> None:
        """Drop fn_key from every dependency set. Empty sets are removed."""
        for key in list(self.dependents):
            readers = self.dependents[key]
            readers.pop(fn_key, None)
            if not readers:
                del self.dependents[key]

    def __repr__(self) -> str:
        return f"DependencyTracker(active={self.active!r}, dependents={self.dependents!r})"
