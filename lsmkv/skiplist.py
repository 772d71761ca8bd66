"""An ordered skip list holding multi-version key/value entries.

Entries are ordered by key; entries sharing a key are ordered by descending
transaction id, so the newest version of a key comes first.
"""

from __future__ import annotations

import random
from typing import Callable, Iterator, Optional

_TRANC_ID_BYTES = 8


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8", "surrogateescape"))


class SkipListNode:
    """One entry of the skip list with its links on every level it spans."""

    __slots__ = ("key", "value", "tranc_id", "forward", "backward")

    def __init__(self, key: str, value: str, tranc_id: int, level: int) -> None:
        self.key = key
        self.value = value
        self.tranc_id = tranc_id
        self.forward: list[Optional[SkipListNode]] = [None] * level
        self.backward: list[Optional[SkipListNode]] = [None] * level

    def __lt__(self, other: SkipListNode) -> bool:
        if self.key == other.key:
            return self.tranc_id > other.tranc_id
        return self.key < other.key

    def __gt__(self, other: SkipListNode) -> bool:
        if self.key == other.key:
            return self.tranc_id < other.tranc_id
        return self.key > other.key

    def __repr__(self) -> str:
        return f"SkipListNode({self.key!r}, {self.value!r}, {self.tranc_id})"


class SkipListIterator:
    """A position in the bottom level of a skip list; ``None`` marks the end."""

    __slots__ = ("_node",)

    def __init__(self, node: Optional[SkipListNode] = None) -> None:
        self._node = node

    def _current(self) -> SkipListNode:
        if self._node is None:
            raise ValueError("Dereferencing invalid iterator")
        return self._node

    def advance(self) -> SkipListIterator:
        """Move to the next entry and return this iterator."""
        if self._node is not None:
            self._node = self._node.forward[0]
        return self

    def key(self) -> str:
        return self._current().key

    def value(self) -> str:
        return self._current().value

    def tranc_id(self) -> int:
        return self._current().tranc_id

    def is_end(self) -> bool:
        return self._node is None

    def is_valid(self) -> bool:
        return self._node is not None and self._node.key != ""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SkipListIterator):
            return NotImplemented
        return self._node is other._node

    def __hash__(self) -> int:
        return id(self._node)

    def __iter__(self) -> Iterator[tuple[str, str]]:
        """Yield ``(key, value)`` pairs from this position to the end."""
        node = self._node
        while node is not None:
            yield node.key, node.value
            node = node.forward[0]


class SkipList:
    """A probabilistic ordered list keyed by ``(key, -tranc_id)``."""

    def __init__(self, max_level: int = 16, rng: Optional[random.Random] = None) -> None:
        if max_level < 1:
            raise ValueError("max_level must be at least 1")
        self.max_level = max_level
        self._rng = rng if rng is not None else random.Random()
        self._head = SkipListNode("", "", 0, max_level)
        self._current_level = 1
        self._size_bytes = 0

    def _random_level(self) -> int:
        level = 1
        while level < self.max_level and self._rng.random() < 0.5:
            level += 1
        return level

    def _seek_before(self, key: str) -> SkipListNode:
        """Return the last node whose key is strictly less than ``key``."""
        current = self._head
        for level in reversed(range(self._current_level)):
            while (nxt := current.forward[level]) is not None and nxt.key < key:
                current = nxt
        return current

    def put(self, key: str, value: str, tranc_id: int) -> None:
        """Insert an entry, or replace the value of the same key and transaction."""
        update: list[Optional[SkipListNode]] = [None] * self.max_level
        new_level = max(self._random_level(), self._current_level)
        new_node = SkipListNode(key, value, tranc_id, new_level)

        current = self._head
        for level in reversed(range(self._current_level)):
            while (nxt := current.forward[level]) is not None and nxt < new_node:
                current = nxt
            update[level] = current

        found = current.forward[0]
        if found is not None and found.key == key and found.tranc_id == tranc_id:
            self._size_bytes += _byte_len(value) - _byte_len(found.value)
            found.value = value
            return

        grows = new_level > self._current_level
        for level in range(self._current_level, new_level):
            update[level] = self._head

        random_bits = self._rng.getrandbits(self.max_level)
        self._size_bytes += _byte_len(key) + _byte_len(value) + _TRANC_ID_BYTES

        for level in range(new_level):
            if not (level == 0 or grows or (random_bits >> level) & 1):
                break
            prev = update[level]
            nxt = prev.forward[level]
            new_node.forward[level] = nxt
            if nxt is not None:
                nxt.backward[level] = new_node
            prev.forward[level] = new_node
            new_node.backward[level] = prev

        self._current_level = new_level

    def get(self, key: str, tranc_id: int) -> SkipListIterator:
        """Find ``key``; a non-zero ``tranc_id`` hides versions newer than it."""
        current = self._seek_before(key).forward[0]
        if tranc_id == 0:
            if current is not None and current.key == key:
                return SkipListIterator(current)
            return SkipListIterator()
        while current is not None and current.key == key:
            if current.tranc_id <= tranc_id:
                return SkipListIterator(current)
            current = current.forward[0]
        return SkipListIterator()

    def remove(self, key: str) -> None:
        """Physically unlink the newest entry for ``key``, if there is one."""
        update: list[Optional[SkipListNode]] = [None] * self.max_level
        current = self._head
        for level in reversed(range(len(self._head.forward))):
            while (nxt := current.forward[level]) is not None and nxt.key < key:
                current = nxt
            update[level] = current

        target = current.forward[0]
        if target is None or target.key != key:
            return

        for level in range(self._current_level):
            if update[level].forward[level] is not target:
                break
            update[level].forward[level] = target.forward[level]

        for level in range(min(len(target.backward), self._current_level)):
            nxt = target.forward[level]
            if nxt is not None:
                nxt.backward[level] = update[level]

        self._size_bytes -= _byte_len(key) + _byte_len(target.value) + _TRANC_ID_BYTES

        while self._current_level > 1 and self._head.forward[self._current_level - 1] is None:
            self._current_level -= 1

    def flush(self) -> list[tuple[str, str, int]]:
        """Return every entry as ``(key, value, tranc_id)`` in list order."""
        entries = []
        node = self._head.forward[0]
        while node is not None:
            entries.append((node.key, node.value, node.tranc_id))
            node = node.forward[0]
        return entries

    def size(self) -> int:
        """Approximate number of bytes held by the entries."""
        return self._size_bytes

    def clear(self) -> None:
        self._head = SkipListNode("", "", 0, self.max_level)
        self._current_level = 1
        self._size_bytes = 0

    def begin(self) -> SkipListIterator:
        return SkipListIterator(self._head.forward[0])

    def end(self) -> SkipListIterator:
        return SkipListIterator()

    def begin_prefix(self, prefix: str) -> SkipListIterator:
        """Return the first entry whose key is not less than ``prefix``."""
        return SkipListIterator(self._seek_before(prefix).forward[0])

    def end_prefix(self, prefix: str) -> SkipListIterator:
        """Return the first entry at or after ``prefix`` that does not start with it."""
        current = self._seek_before(prefix).forward[0]
        while current is not None and current.key.startswith(prefix):
            current = current.forward[0]
        return SkipListIterator(current)

    def iters_monotony_predicate(
        self, predicate: Callable[[str], int]
    ) -> Optional[tuple[SkipListIterator, SkipListIterator]]:
        """Return the half-open range of entries whose key satisfies ``predicate``.

        ``predicate`` returns 0 for a matching key, a positive number for a key
        left of the matching range and a negative number for one right of it.
        The matching keys must form one contiguous run. Returns ``None`` when
        no key matches. Transaction ids are not taken into account.
        """
        current = self._head
        found = False
        for level in reversed(range(self._current_level)):
            while not found:
                nxt = current.forward[level]
                if nxt is None:
                    break
                direction = predicate(nxt.key)
                if direction == 0:
                    found = True
                    current = nxt
                    break
                if direction < 0:
                    break
                current = nxt

        if not found:
            return None

        last = current

        for level in reversed(range(len(current.backward))):
            while True:
                prev = current.backward[level]
                if prev is None or prev is self._head:
                    break
                direction = predicate(prev.key)
                if direction == 0:
                    current = prev
                elif direction > 0:
                    break
                else:
                    raise RuntimeError("iters_predicate: invalid direction")

        for level in reversed(range(len(last.forward))):
            while True:
                nxt = last.forward[level]
                if nxt is None:
                    break
                direction = predicate(nxt.key)
                if direction == 0:
                    last = nxt
                elif direction < 0:
                    break
                else:
                    raise RuntimeError("iters_predicate: invalid direction")

        return SkipListIterator(current), SkipListIterator(last).advance()

    def format(self) -> str:
        """Render each level as ``Level n: k1 -> k2 -> ...``."""
        lines = []
        for level in range(self._current_level):
            keys = []
            node = self._head.forward[level]
            while node is not None:
                keys.append(node.key)
                node = node.forward[level]
            lines.append(f"Level {level}: " + " -> ".join(keys))
        return "\n".join(lines) + "\n\n"