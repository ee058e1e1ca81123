"""A key-value store whose reads and changes are recorded in the trace."""

from __future__ import annotations

import operator
import threading
from typing import Any, Callable, Hashable, Iterator, Optional

from mapleflow.trace import Trace, current_trace


class _Entry:
    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"_Entry({self.value!r})"


class Store:
    """Shared policy state.

    Every read records a dependency on the entry read (or on nothing, for a
    missing key) and every effective change records an invalidation of that
    entry, so decisions built on old values can be revoked.
    """

    def __init__(
        self,
        name: str = "map",
        value_eq: Callable[[Any, Any], bool] = operator.eq,
        trace: Optional[Trace] = None,
    ) -> None:
        self.name = name
        self._value_eq = value_eq
        self._trace = trace
        self._entries: dict[Hashable, _Entry] = {}
        self._lock = threading.RLock()

    @property
    def trace(self) -> Trace:
        return self._trace if self._trace is not None else current_trace()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __iter__(self) -> Iterator[Hashable]:
        with self._lock:
            return iter(list(self._entries))

    def add_key(self, key: Hashable, value: Any) -> None:
        """Add a new key; adding one that exists is an error."""
        with self._lock:
            if key in self._entries:
                raise KeyError(f"key {key!r} already present")
            self._entries[key] = _Entry(value)
            self.trace.invalidate(self.name, None)

    def delete_key(self, key: Hashable) -> None:
        with self._lock:
            try:
                entry = self._entries.pop(key)
            except KeyError:
                raise KeyError(f"key {key!r} not present") from None
            self.trace.invalidate(self.name, entry)

    def _update(self, entry: _Entry, value: Any) -> None:
        if not self._value_eq(entry.value, value):
            entry.value = value
            self.trace.invalidate(self.name, entry)

    def modify(self, key: Hashable, value: Any) -> None:
        """Change the value of an existing key."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                raise KeyError(f"key {key!r} not present")
            self._update(entry, value)

    def upsert(self, key: Hashable, value: Any) -> None:
        """Change the value of a key, adding the key if it is missing."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._entries[key] = _Entry(value)
                self.trace.invalidate(self.name, None)
            else:
                self._update(entry, value)

    def read(self, key: Hashable) -> Any:
        """The value for ``key``, or None when it is missing."""
        with self._lock:
            entry = self._entries.get(key)
            self.trace.read_env(self.name, entry)
            return None if entry is None else entry.value

    def clear(self) -> None:
        """Drop every entry, invalidating each one."""
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
            for entry in entries:
                self.trace.invalidate(self.name, entry)