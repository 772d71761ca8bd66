"""Key layout and helpers for storing Redis-style data types in a flat key space."""

from __future__ import annotations

import time
from typing import Callable, Iterable, Optional

EXPIRE_HEADER = "REDIS_EXPIRE_"
HASH_VALUE_PREFIX = "REDIS_HASH_VALUE_"
FIELD_PREFIX = "REDIS_FIELD_"
FIELD_SEPARATOR = "$"
LIST_SEPARATOR = "#"
SORTED_SET_PREFIX = "REDIS_SORTED_SET_"
SORTED_SET_SCORE_LEN = 32
SET_PREFIX = "REDIS_SET_"
SET_MEMBER_VALUE = "1"

_SCORE_MARK = "_SCORE_"
_ELEM_MARK = "_ELEM_"


def split(text: str, delimiter: str) -> list[str]:
    """Split ``text`` on ``delimiter``; an empty text or a trailing delimiter adds no empty item."""
    if not text:
        return []
    parts = text.split(delimiter)
    if parts[-1] == "":
        parts.pop()
    return parts


def join(elements: Iterable[str], delimiter: str) -> str:
    return delimiter.join(elements)


def fields_from_hash_value(value: Optional[str]) -> list[str]:
    """Return the field names held in a hash's field-list value."""
    if not value:
        return []
    return split(value[len(HASH_VALUE_PREFIX):], FIELD_SEPARATOR)


def hash_value_from_fields(fields: Iterable[str]) -> str:
    return HASH_VALUE_PREFIX + join(fields, FIELD_SEPARATOR)


def hash_field_key(key: str, field: str) -> str:
    return f"{FIELD_PREFIX}{key}_{field}"


def is_value_hash(value: str) -> bool:
    return value.startswith(HASH_VALUE_PREFIX)


def expire_key(key: str) -> str:
    return EXPIRE_HEADER + key


def zset_score_key(key: str, score: str) -> str:
    """Key of a sorted-set score entry; the score is left-padded with zeros."""
    return f"{SORTED_SET_PREFIX}{key}{_SCORE_MARK}{score.rjust(SORTED_SET_SCORE_LEN, '0')}"


def zset_elem_key(key: str, elem: str) -> str:
    return f"{SORTED_SET_PREFIX}{key}{_ELEM_MARK}{elem}"


def zset_prefix(key: str) -> str:
    return f"{SORTED_SET_PREFIX}{key}_"


def zset_score_prefix(key: str) -> str:
    return f"{SORTED_SET_PREFIX}{key}{_SCORE_MARK}"


def zset_elem_prefix(key: str) -> str:
    return f"{SORTED_SET_PREFIX}{key}{_ELEM_MARK}"


def zset_score_from_key(key: str) -> str:
    """Return the text after the first score marker, or an empty string."""
    pos = key.find(_SCORE_MARK)
    if pos < 0:
        return ""
    return key[pos + len(_SCORE_MARK):]


def set_prefix(key: str) -> str:
    return f"{SET_PREFIX}{key}_"


def set_member_key(key: str, member: str) -> str:
    return f"{SET_PREFIX}{key}_{member}"


def _now(now: Optional[int]) -> int:
    return int(time.time()) if now is None else now


def is_expired(expire_value: Optional[str], now: Optional[int] = None) -> bool:
    """True if the stored expiry timestamp lies strictly before ``now``."""
    if expire_value is None:
        return False
    return int(expire_value) < _now(now)


def expire_time(seconds: str, now: Optional[int] = None) -> str:
    """Return the expiry timestamp ``seconds`` from ``now`` as text."""
    return str(_now(now) + int(seconds))


def prefix_predicate(prefix: str) -> Callable[[str], int]:
    """Range predicate matching keys that start with ``prefix``.

    Returns 0 for a match, 1 for a key ordered before the prefix range and -1
    for a key ordered after it.
    """

    def predicate(key: str) -> int:
        head = key[: len(prefix)]
        if head < prefix:
            return 1
        if head > prefix:
            return -1
        return 0

    return predicate