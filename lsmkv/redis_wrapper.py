"""Redis-style command set: strings, hashes and lists plus sorted sets and sets.

Sorted sets keep two entries per member: one keyed by the zero-padded score,
holding the member, and one keyed by the member, holding the score. Sets keep
one entry per member and store their cardinality under the set's own key.
"""

from __future__ import annotations

from typing import Optional, Sequence

from .commands_basic import (
    EMPTY_ARRAY,
    NIL,
    KeyspaceCommands,
    array_reply,
    bulk_reply,
    integer_reply,
)
from .keys import (
    SET_MEMBER_VALUE,
    prefix_predicate,
    set_member_key,
    set_prefix,
    zset_elem_key,
    zset_prefix,
    zset_score_from_key,
    zset_score_key,
    zset_score_prefix,
)

ZREM_ARITY_ERROR = "-ERR wrong number of arguments for 'zrem' command\r\n"


def _require(args: Sequence[str], count: int) -> Sequence[str]:
    """Check that ``args`` holds the command name and ``count`` more arguments."""
    if len(args) < count + 1:
        name = args[0] if args else "?"
        raise ValueError(f"wrong number of arguments for '{name}' command")
    return args


def _leading_int(text: str) -> int:
    """Parse a score as a whole number, truncating any fractional part."""
    return int(float(text))


def _clamp_range(start: int, stop: int, size: int) -> Optional[tuple[int, int]]:
    """Resolve Redis-style inclusive indexes; None when the range is empty."""
    if start < 0:
        start += size
    if stop < 0:
        stop += size
    start = max(start, 0)
    stop = min(stop, size - 1)
    if start > stop:
        return None
    return start, stop


class RedisWrapper(KeyspaceCommands):
    """All supported commands; replies are RESP-encoded strings."""

    # ------------------------------------------------------------ helpers

    def _zset_expire_clean(self, key: str) -> bool:
        return self._expire_clean(key, zset_prefix(key))

    def _set_expire_clean(self, key: str) -> bool:
        return self._expire_clean(key, set_prefix(key))

    def _scan(self, prefix: str) -> list[tuple[str, str]]:
        return self._store.iters_monotony_predicate(prefix_predicate(prefix)) or []

    # ------------------------------------------------------------ sorted sets

    def zadd(self, args: Sequence[str]) -> str:
        """ZADD key score member [score member ...]; replies with the number changed."""
        key = _require(args, 1)[1]
        pairs = list(args[2:])
        if len(pairs) % 2:
            raise ValueError("wrong number of arguments for 'zadd' command")
        with self._lock:
            self._zset_expire_clean(key)
            put_kvs: list[tuple[str, str]] = []
            del_keys: list[str] = []
            marker = zset_prefix(key)
            if self._store.get(marker) is None:
                put_kvs.append((key, marker))
            changed = 0
            for score, elem in zip(pairs[::2], pairs[1::2]):
                elem_key = zset_elem_key(key, elem)
                old_score = self._store.get(elem_key)
                if old_score is not None:
                    if old_score == score:
                        continue
                    del_keys.append(zset_score_key(key, old_score))
                put_kvs.append((zset_score_key(key, score), elem))
                put_kvs.append((elem_key, score))
                changed += 1
            if del_keys:
                self._store.remove_batch(del_keys)
            if put_kvs:
                self._store.put_batch(put_kvs)
        return integer_reply(changed)

    def zrem(self, args: Sequence[str]) -> str:
        """ZREM key member [member ...]; replies with the number removed."""
        if len(args) < 3:
            return ZREM_ARITY_ERROR
        key = args[1]
        with self._lock:
            if self._zset_expire_clean(key):
                return integer_reply(0)
            removed = 0
            for elem in args[2:]:
                elem_key = zset_elem_key(key, elem)
                score = self._store.get(elem_key)
                if score is not None:
                    self._store.remove(elem_key)
                    self._store.remove(zset_score_key(key, score))
                    removed += 1
        return integer_reply(removed)

    def zrange(self, args: Sequence[str]) -> str:
        """ZRANGE key start stop; members in ascending score order."""
        _, key, start_text, stop_text = _require(args, 3)[:4]
        start, stop = int(start_text), int(stop_text)
        with self._lock:
            if self._zset_expire_clean(key):
                return EMPTY_ARRAY
            entries = self._scan(zset_score_prefix(key))
        if not entries:
            return EMPTY_ARRAY
        bounds = _clamp_range(start, stop, len(entries))
        if bounds is None:
            return EMPTY_ARRAY
        first, last = bounds
        return array_reply([elem for _, elem in entries[first:last + 1]])

    def zcard(self, args: Sequence[str]) -> str:
        key = _require(args, 1)[1]
        with self._lock:
            if self._zset_expire_clean(key):
                return integer_reply(0)
            entries = self._scan(zset_score_prefix(key))
        return integer_reply(len(entries))

    def zscore(self, args: Sequence[str]) -> str:
        _, key, elem = _require(args, 2)[:3]
        with self._lock:
            if self._zset_expire_clean(key):
                return NIL
            score = self._store.get(zset_elem_key(key, elem))
        return NIL if score is None else bulk_reply(score)

    def zincrby(self, args: Sequence[str]) -> str:
        """ZINCRBY key increment member; replies with the new whole-number score."""
        _, key, increment, elem = _require(args, 3)[:4]
        with self._lock:
            self._zset_expire_clean(key)
            elem_key = zset_elem_key(key, elem)
            old_score = self._store.get(elem_key)
            if old_score is not None:
                new_score = int(_leading_int(old_score) + float(increment))
                self._store.remove(zset_score_key(key, old_score))
            else:
                new_score = int(float(increment))
            score_text = str(new_score)
            self._store.put(elem_key, score_text)
            self._store.put(zset_score_key(key, score_text), elem)
        return integer_reply(new_score)

    def zrank(self, args: Sequence[str]) -> str:
        """ZRANK key member; the zero-based position in score order."""
        _, key, elem = _require(args, 2)[:3]
        with self._lock:
            if self._zset_expire_clean(key):
                return NIL
            score = self._store.get(zset_elem_key(key, elem))
            if score is None:
                return NIL
            target = zset_score_key(key, score)
            entries = self._scan(zset_score_prefix(key))
        for rank, (score_key, _) in enumerate(entries):
            if score_key == target:
                return integer_reply(rank)
        return NIL

    def zscores(self, key: str) -> list[tuple[str, str]]:
        """Return ``(member, score)`` pairs of ``key`` in score order."""
        with self._lock:
            entries = self._scan(zset_score_prefix(key))
        return [(elem, zset_score_from_key(score_key).lstrip("0") or "0")
                for score_key, elem in entries]

    # ------------------------------------------------------------ sets

    def sadd(self, args: Sequence[str]) -> str:
        """SADD key member [member ...]; replies with the number newly added."""
        key = _require(args, 1)[1]
        with self._lock:
            self._set_expire_clean(key)
            new_keys: list[str] = []
            for member in args[2:]:
                member_key = set_member_key(key, member)
                if member_key in new_keys or self._store.get(member_key) is not None:
                    continue
                new_keys.append(member_key)
            current = self._store.get(key)
            size = len(new_keys) + (int(current) if current is not None else 0)
            put_kvs = [(member_key, SET_MEMBER_VALUE) for member_key in new_keys]
            put_kvs.append((key, str(size)))
            self._store.put_batch(put_kvs)
        return integer_reply(len(new_keys))

    def srem(self, args: Sequence[str]) -> str:
        """SREM key member [member ...]; replies with the number removed."""
        key = _require(args, 1)[1]
        with self._lock:
            if self._set_expire_clean(key):
                return integer_reply(0)
            del_keys: list[str] = []
            for member in args[2:]:
                member_key = set_member_key(key, member)
                if member_key in del_keys or self._store.get(member_key) is None:
                    continue
                del_keys.append(member_key)
            current = self._store.get(key)
            size = (int(current) if current is not None else 0) - len(del_keys)
            self._store.put(key, str(size))
            if del_keys:
                self._store.remove_batch(del_keys)
        return integer_reply(len(del_keys))

    def sismember(self, args: Sequence[str]) -> str:
        _, key, member = _require(args, 2)[:3]
        with self._lock:
            if self._set_expire_clean(key):
                return integer_reply(0)
            present = self._store.get(set_member_key(key, member)) is not None
        return integer_reply(1 if present else 0)

    def scard(self, args: Sequence[str]) -> str:
        key = _require(args, 1)[1]
        with self._lock:
            if self._set_expire_clean(key):
                return integer_reply(0)
            current = self._store.get(key)
        return f":{current}\r\n" if current is not None else integer_reply(0)

    def smembers(self, args: Sequence[str]) -> str:
        """SMEMBERS key; members in key order."""
        key = _require(args, 1)[1]
        prefix = set_prefix(key)
        with self._lock:
            if self._set_expire_clean(key):
                return EMPTY_ARRAY
            entries = self._scan(prefix)
        return array_reply([member_key[len(prefix):] for member_key, _ in entries])