"""Redis-style commands for strings, counters, expiry, hashes and lists.

Every command takes the full argument vector, command name first, and returns
its reply in the Redis wire protocol (RESP). The exceptions are ``incr`` and
``decr``, which reply with the bare new number.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional, Sequence

from .keys import (
    LIST_SEPARATOR,
    expire_key,
    expire_time,
    fields_from_hash_value,
    hash_field_key,
    hash_value_from_fields,
    is_expired,
    is_value_hash,
    join,
    prefix_predicate,
    split,
)
from .store import MemoryStore

OK = "+OK\r\n"
NIL = "$-1\r\n"
EMPTY_ARRAY = "*0\r\n"


def integer_reply(value: int) -> str:
    return f":{value}\r\n"


def bulk_reply(value: str) -> str:
    """A bulk string reply; its length counts bytes, not characters."""
    size = len(value.encode("utf-8", "surrogateescape"))
    return f"${size}\r\n{value}\r\n"


def array_reply(items: Sequence[str]) -> str:
    return f"*{len(items)}\r\n" + "".join(bulk_reply(item) for item in items)


def _args(args: Sequence[str], count: int) -> Sequence[str]:
    """Check that ``args`` holds the command name and ``count`` more arguments."""
    if len(args) < count + 1:
        name = args[0] if args else "?"
        raise ValueError(f"wrong number of arguments for '{name}' command")
    return args


class KeyspaceCommands:
    """Command handlers over a :class:`MemoryStore`.

    ``clock`` returns the current time in whole seconds; when omitted the
    system clock is used.
    """

    def __init__(
        self,
        store: Optional[MemoryStore] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self._store = store if store is not None else MemoryStore()
        self._clock = clock
        self._lock = threading.RLock()

    # ------------------------------------------------------------ helpers

    def _now(self) -> Optional[int]:
        return self._clock() if self._clock is not None else None

    def _expired(self, key: str) -> bool:
        return is_expired(self._store.get(expire_key(key)), self._now())

    def _expire_clean(self, key: str, prefix: Optional[str] = None) -> bool:
        """Drop ``key`` and its expiry if it has expired; return whether it had.

        With ``prefix``, every entry whose key starts with it is dropped too.
        """
        if not self._expired(key):
            return False
        self._store.remove(key)
        self._store.remove(expire_key(key))
        if prefix is not None:
            entries = self._store.iters_monotony_predicate(prefix_predicate(prefix))
            if entries:
                self._store.remove_batch(k for k, _ in entries)
        return True

    def _expire_hash_clean(self, key: str) -> bool:
        if not self._expired(key):
            return False
        for field in fields_from_hash_value(self._store.get(key)):
            self._store.remove(hash_field_key(key, field))
        self._store.remove(key)
        self._store.remove(expire_key(key))
        return True

    def _expire_list_clean(self, key: str) -> bool:
        return self._expire_clean(key)

    # ------------------------------------------------------------ maintenance

    def clear(self) -> None:
        """Drop every key."""
        with self._lock:
            self._store.clear()

    def flushall(self) -> None:
        """Compact the underlying store."""
        with self._lock:
            self._store.flush()

    # ------------------------------------------------------------ strings

    def set(self, args: Sequence[str]) -> str:
        _, key, value = _args(args, 2)[:3]
        with self._lock:
            self._store.put(key, value)
            ekey = expire_key(key)
            if self._store.get(ekey) is not None:
                self._store.remove(ekey)
        return OK

    def get(self, args: Sequence[str]) -> str:
        key = _args(args, 1)[1]
        with self._lock:
            value = self._store.get(key)
            ekey = expire_key(key)
            expire_value = self._store.get(ekey)
            if value is None:
                if expire_value is not None:
                    self._store.remove(ekey)
                return NIL
            if is_expired(expire_value, self._now()):
                self._store.remove(key)
                self._store.remove(ekey)
                return NIL
            return bulk_reply(value)

    def _add(self, key: str, delta: int) -> str:
        with self._lock:
            current = self._store.get(key)
            new_value = str(delta if current is None else int(current) + delta)
            self._store.put(key, new_value)
            return new_value

    def incr(self, args: Sequence[str]) -> str:
        return self._add(_args(args, 1)[1], 1)

    def decr(self, args: Sequence[str]) -> str:
        return self._add(_args(args, 1)[1], -1)

    def expire(self, args: Sequence[str]) -> str:
        _, key, seconds = _args(args, 2)[:3]
        when = expire_time(seconds, self._now())
        with self._lock:
            self._store.put(expire_key(key), when)
        return integer_reply(1)

    def delete(self, args: Sequence[str]) -> str:
        _args(args, 0)
        count = 0
        with self._lock:
            for key in args[1:]:
                value = self._store.get(key)
                if value is not None:
                    if is_value_hash(value):
                        for field in fields_from_hash_value(value):
                            self._store.remove(hash_field_key(key, field))
                    self._store.remove(key)
                    count += 1
                ekey = expire_key(key)
                if self._store.get(ekey) is not None:
                    self._store.remove(ekey)
        return integer_reply(count)

    def ttl(self, args: Sequence[str]) -> str:
        key = _args(args, 1)[1]
        with self._lock:
            if self._store.get(key) is None:
                return integer_reply(-1)
            expire_value = self._store.get(expire_key(key))
        if expire_value is None:
            return integer_reply(-1)
        now = self._now()
        if is_expired(expire_value, now):
            return integer_reply(-2)
        if now is None:
            now = int(expire_time("0"))
        return integer_reply(int(expire_value) - now)

    # ------------------------------------------------------------ hashes

    def hset(self, args: Sequence[str]) -> str:
        _, key, field, value = _args(args, 3)[:4]
        with self._lock:
            self._expire_hash_clean(key)
            self._store.put(hash_field_key(key, field), value)
            fields = fields_from_hash_value(self._store.get(key))
            if field not in fields:
                fields.append(field)
                self._store.put(key, hash_value_from_fields(fields))
        return OK

    def hget(self, args: Sequence[str]) -> str:
        _, key, field = _args(args, 2)[:3]
        with self._lock:
            if self._expire_hash_clean(key):
                return NIL
            value = self._store.get(hash_field_key(key, field))
        return NIL if value is None else bulk_reply(value)

    def hdel(self, args: Sequence[str]) -> str:
        _, key, field = _args(args, 2)[:3]
        with self._lock:
            if self._expire_hash_clean(key):
                return integer_reply(0)
            count = 0
            fkey = hash_field_key(key, field)
            if self._store.get(fkey) is not None:
                count += 1
                self._store.remove(fkey)
            fields = fields_from_hash_value(self._store.get(key))
            if field in fields:
                fields.remove(field)
                if fields:
                    self._store.put(key, hash_value_from_fields(fields))
                else:
                    self._store.remove(key)
        return integer_reply(count)

    def hkeys(self, args: Sequence[str]) -> str:
        key = _args(args, 1)[1]
        with self._lock:
            if self._expire_hash_clean(key):
                return EMPTY_ARRAY
            fields = fields_from_hash_value(self._store.get(key))
        return array_reply(fields)

    # ------------------------------------------------------------ lists

    def _push(self, key: str, value: str, left: bool) -> str:
        with self._lock:
            self._expire_list_clean(key)
            current = self._store.get(key) or ""
            if current:
                parts = (value, current) if left else (current, value)
                current = LIST_SEPARATOR.join(parts)
            else:
                current = value
            self._store.put(key, current)
            return integer_reply(len(split(current, LIST_SEPARATOR)))

    def lpush(self, args: Sequence[str]) -> str:
        _, key, value = _args(args, 2)[:3]
        return self._push(key, value, left=True)

    def rpush(self, args: Sequence[str]) -> str:
        _, key, value = _args(args, 2)[:3]
        return self._push(key, value, left=False)

    def _pop(self, key: str, left: bool) -> str:
        with self._lock:
            if self._expire_list_clean(key):
                return NIL
            current = self._store.get(key)
            if current is None:
                return NIL
            elements = split(current, LIST_SEPARATOR)
            if not elements:
                return NIL
            value = elements.pop(0 if left else -1)
            if elements:
                self._store.put(key, join(elements, LIST_SEPARATOR))
            else:
                self._store.remove(key)
        return bulk_reply(value)

    def lpop(self, args: Sequence[str]) -> str:
        return self._pop(_args(args, 1)[1], left=True)

    def rpop(self, args: Sequence[str]) -> str:
        return self._pop(_args(args, 1)[1], left=False)

    def llen(self, args: Sequence[str]) -> str:
        key = _args(args, 1)[1]
        with self._lock:
            if self._expire_list_clean(key):
                return integer_reply(0)
            current = self._store.get(key)
        if current is None:
            return integer_reply(0)
        return integer_reply(len(split(current, LIST_SEPARATOR)))

    def lrange(self, args: Sequence[str]) -> str:
        _, key, start_text, stop_text = _args(args, 3)[:4]
        start, stop = int(start_text), int(stop_text)
        with self._lock:
            if self._expire_list_clean(key):
                return EMPTY_ARRAY
            current = self._store.get(key)
        if current is None:
            return EMPTY_ARRAY
        elements = split(current, LIST_SEPARATOR)
        if not elements:
            return EMPTY_ARRAY
        size = len(elements)
        if start < 0:
            start += size
        if stop < 0:
            stop += size
        start = max(start, 0)
        stop = min(stop, size - 1)
        if start > stop:
            return EMPTY_ARRAY
        return array_reply(elements[start:stop + 1])