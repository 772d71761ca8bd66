"""Key-value storage building blocks (WAL, skip list, bloom filter, file helpers) and an in-memory Redis-style command layer."""

__version__ = "0.1.0"