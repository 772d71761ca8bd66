"""An in-memory multi-version key/value store with tombstone deletes."""

from __future__ import annotations

import random
import threading
from typing import Callable, Iterable, Optional

from .skiplist import SkipList

_TOMBSTONE = ""


class MemoryStore:
    """A key/value store on a skip list.

    Every write gets a new version; a removal writes an empty value, so a key
    holding the empty string reads as absent.
    """

    def __init__(self, max_level: int = 16, rng: Optional[random.Random] = None) -> None:
        self._max_level = max_level
        self._rng = rng
        self._table = SkipList(max_level, rng)
        self._lock = threading.RLock()
        self._next_tranc_id = 1

    def _stamp(self) -> int:
        tranc_id = self._next_tranc_id
        self._next_tranc_id += 1
        return tranc_id

    def get(self, key: str) -> Optional[str]:
        """Return the newest value of ``key``, or None if absent or removed."""
        with self._lock:
            it = self._table.get(key, 0)
            if it.is_end():
                return None
            value = it.value()
        return value if value != _TOMBSTONE else None

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._table.put(key, value, self._stamp())

    def put_batch(self, kvs: Iterable[tuple[str, str]]) -> None:
        """Write all pairs as one version; a repeated key keeps its last value."""
        with self._lock:
            tranc_id = self._stamp()
            for key, value in kvs:
                self._table.put(key, value, tranc_id)

    def remove(self, key: str) -> None:
        self.put(key, _TOMBSTONE)

    def remove_batch(self, keys: Iterable[str]) -> None:
        self.put_batch((key, _TOMBSTONE) for key in keys)

    def iters_monotony_predicate(
        self, predicate: Callable[[str], int]
    ) -> Optional[list[tuple[str, str]]]:
        """Return the live ``(key, value)`` pairs whose key satisfies ``predicate``.

        ``predicate`` returns 0 for a match, a positive number for a key left of
        the matching range and a negative number for one right of it. The pairs
        come in key order; None is returned when no live key matches.
        """
        with self._lock:
            bounds = self._table.iters_monotony_predicate(predicate)
            if bounds is None:
                return None
            it, end = bounds
            result: list[tuple[str, str]] = []
            last_key: Optional[str] = None
            while it != end:
                key = it.key()
                if key != last_key:
                    last_key = key
                    value = it.value()
                    if value != _TOMBSTONE:
                        result.append((key, value))
                it.advance()
        return result or None

    def clear(self) -> None:
        with self._lock:
            self._table.clear()

    def flush(self) -> None:
        """Compact the store: keep only the newest live version of each key."""
        with self._lock:
            compacted = SkipList(self._max_level, self._rng)
            last_key: Optional[str] = None
            for key, value, tranc_id in self._table.flush():
                if key == last_key:
                    continue
                last_key = key
                if value != _TOMBSTONE:
                    compacted.put(key, value, tranc_id)
            self._table = compacted