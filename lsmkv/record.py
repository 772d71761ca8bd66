"""Write-ahead log records and their binary encoding.

Each record is laid out little-endian as::

    record_len (u16) | tranc_id (u64) | op (u8) [| key_len (u16) | key [| value_len (u16) | value]]

PUT records carry a key and a value, DELETE records carry only a key and the
control records (CREATE, COMMIT, ROLLBACK) carry neither.
"""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

_HEADER = struct.Struct("<HQB")
_LEN = struct.Struct("<H")
_MAX_LEN = 0xFFFF
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


class OperationType(enum.IntEnum):
    """Kind of operation a record describes."""

    CREATE = 0
    COMMIT = 1
    ROLLBACK = 2
    PUT = 3
    DELETE = 4


def _to_bytes(text: str) -> bytes:
    return text.encode(_ENCODING, _ERRORS)


def _take_field(buf: bytes) -> tuple[str, bytes]:
    """Read one length-prefixed string from ``buf`` and return it with the rest."""
    if len(buf) < _LEN.size:
        raise ValueError("Data length does not match record length")
    (length,) = _LEN.unpack_from(buf)
    end = _LEN.size + length
    if len(buf) < end:
        raise ValueError("Data length does not match record length")
    return buf[_LEN.size:end].decode(_ENCODING, _ERRORS), buf[end:]


@dataclass(frozen=True, eq=False)
class Record:
    """One entry of the write-ahead log."""

    tranc_id: int
    operation_type: OperationType
    key: str = ""
    value: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "operation_type", OperationType(self.operation_type))
        if not 0 <= self.tranc_id < 1 << 64:
            raise ValueError(f"transaction id out of range: {self.tranc_id}")
        if self.record_len > _MAX_LEN:
            raise ValueError("record too long to encode")

    @classmethod
    def create(cls, tranc_id: int) -> Record:
        return cls(tranc_id, OperationType.CREATE)

    @classmethod
    def commit(cls, tranc_id: int) -> Record:
        return cls(tranc_id, OperationType.COMMIT)

    @classmethod
    def rollback(cls, tranc_id: int) -> Record:
        return cls(tranc_id, OperationType.ROLLBACK)

    @classmethod
    def put(cls, tranc_id: int, key: str, value: str) -> Record:
        return cls(tranc_id, OperationType.PUT, key, value)

    @classmethod
    def delete(cls, tranc_id: int, key: str) -> Record:
        return cls(tranc_id, OperationType.DELETE, key)

    @property
    def record_len(self) -> int:
        """Number of bytes the encoded record occupies."""
        length = _HEADER.size
        if self.operation_type in (OperationType.PUT, OperationType.DELETE):
            length += _LEN.size + len(_to_bytes(self.key))
        if self.operation_type is OperationType.PUT:
            length += _LEN.size + len(_to_bytes(self.value))
        return length

    def encode(self) -> bytes:
        """Return the binary form of this record."""
        parts = [_HEADER.pack(self.record_len, self.tranc_id, int(self.operation_type))]
        if self.operation_type in (OperationType.PUT, OperationType.DELETE):
            key = _to_bytes(self.key)
            parts += [_LEN.pack(len(key)), key]
        if self.operation_type is OperationType.PUT:
            value = _to_bytes(self.value)
            parts += [_LEN.pack(len(value)), value]
        return b"".join(parts)

    @classmethod
    def decode(cls, data: bytes) -> list[Record]:
        """Decode every record held in ``data``.

        Data shorter than one record header yields an empty list; a record
        that runs past the end of the data raises ``ValueError``.
        """
        data = bytes(data)
        if len(data) < _HEADER.size:
            return []
        records: list[Record] = []
        pos = 0
        while pos < len(data):
            if len(data) - pos < _HEADER.size:
                raise ValueError("Data length does not match record length")
            record_len, tranc_id, op = _HEADER.unpack_from(data, pos)
            if record_len < _HEADER.size or pos + record_len > len(data):
                raise ValueError("Data length does not match record length")
            operation_type = OperationType(op)
            body = data[pos + _HEADER.size:pos + record_len]
            key = value = ""
            if operation_type in (OperationType.PUT, OperationType.DELETE):
                key, body = _take_field(body)
            if operation_type is OperationType.PUT:
                value, body = _take_field(body)
            records.append(cls(tranc_id, operation_type, key, value))
            pos += record_len
        return records

    def _identity(self) -> tuple:
        if self.operation_type is OperationType.PUT:
            return (self.tranc_id, self.operation_type, self.key, self.value)
        if self.operation_type is OperationType.DELETE:
            return (self.tranc_id, self.operation_type, self.key)
        return (self.tranc_id, self.operation_type)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    def __str__(self) -> str:
        return (
            f"Record: tranc_id={self.tranc_id}, "
            f"operation_type={int(self.operation_type)}, "
            f"key={self.key}, value={self.value}"
        )