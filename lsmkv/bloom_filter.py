"""A Bloom filter with a stable hash and a compact binary encoding.

Encoding, little-endian::

    expected_elements (u64) | false_positive_rate (f64) | num_bits (u64) |
    num_hashes (u64) | bits, eight per byte, lowest bit first
"""

from __future__ import annotations

import hashlib
import math
import struct
from typing import Optional

DEFAULT_EXPECTED_ELEMENTS = 65536
DEFAULT_FALSE_POSITIVE_RATE = 0.1

_HEADER = struct.Struct("<QdQQ")
_MASK64 = (1 << 64) - 1
_SALT = b"salt"


def _hash64(data: bytes) -> int:
    return int.from_bytes(hashlib.blake2b(data, digest_size=8).digest(), "little")


class BloomFilter:
    """Probabilistic set membership: no false negatives, bounded false positives."""

    def __init__(
        self,
        expected_elements: int = DEFAULT_EXPECTED_ELEMENTS,
        false_positive_rate: float = DEFAULT_FALSE_POSITIVE_RATE,
        num_bits: Optional[int] = None,
    ) -> None:
        if expected_elements <= 0:
            raise ValueError("expected_elements must be positive")
        if not 0.0 < false_positive_rate < 1.0:
            raise ValueError("false_positive_rate must be between 0 and 1")
        self.expected_elements = expected_elements
        self.false_positive_rate = false_positive_rate
        optimal = -expected_elements * math.log(false_positive_rate) / math.log(2) ** 2
        if num_bits is None:
            num_bits = math.ceil(optimal)
        if num_bits <= 0:
            raise ValueError("num_bits must be positive")
        self.num_bits = num_bits
        self.num_hashes = max(1, math.ceil(num_bits / expected_elements * math.log(2)))
        self._bits = bytearray((num_bits + 7) // 8)

    def _positions(self, key: str):
        data = key.encode("utf-8", "surrogateescape")
        h1 = _hash64(data)
        h2 = _hash64(data + _SALT)
        for idx in range(self.num_hashes):
            yield ((h1 + idx * h2) & _MASK64) % self.num_bits

    def add(self, key: str) -> None:
        for pos in self._positions(key):
            self._bits[pos >> 3] |= 1 << (pos & 7)

    def possibly_contains(self, key: str) -> bool:
        """Return False if ``key`` was certainly never added."""
        return all(self._bits[pos >> 3] >> (pos & 7) & 1 for pos in self._positions(key))

    __contains__ = possibly_contains

    def clear(self) -> None:
        self._bits = bytearray(len(self._bits))

    def encode(self) -> bytes:
        header = _HEADER.pack(
            self.expected_elements, self.false_positive_rate, self.num_bits, self.num_hashes
        )
        return header + bytes(self._bits)

    @classmethod
    def decode(cls, data: bytes) -> BloomFilter:
        """Rebuild a filter from the output of :meth:`encode`."""
        data = bytes(data)
        if len(data) < _HEADER.size:
            raise ValueError("bloom filter data too short")
        expected, rate, num_bits, num_hashes = _HEADER.unpack_from(data)
        num_bytes = (num_bits + 7) // 8
        if num_bits == 0 or len(data) < _HEADER.size + num_bytes:
            raise ValueError("bloom filter data too short")
        bf = cls.__new__(cls)
        bf.expected_elements = expected
        bf.false_positive_rate = rate
        bf.num_bits = num_bits
        bf.num_hashes = num_hashes
        bits = bytearray(data[_HEADER.size:_HEADER.size + num_bytes])
        spare = num_bytes * 8 - num_bits
        if spare:
            bits[-1] &= 0xFF >> spare
        bf._bits = bits
        return bf