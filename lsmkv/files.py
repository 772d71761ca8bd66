"""File access helpers: a seekable binary file object and a memory-mapped file."""

from __future__ import annotations

import io
import mmap
import os
import struct
from typing import BinaryIO

_BINARY = getattr(os, "O_BINARY", 0)
_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")


class FileObj:
    """A binary file opened for reading and writing at arbitrary offsets."""

    def __init__(self, path: str | os.PathLike, handle: BinaryIO) -> None:
        self.path = os.fspath(path)
        self._file: BinaryIO | None = handle

    @classmethod
    def create_and_write(cls, path: str | os.PathLike, buf: bytes) -> FileObj:
        """Create (or truncate) ``path``, write ``buf`` to it and sync it."""
        obj = cls(path, io.open(path, "w+b", buffering=0))
        if buf:
            obj.write(0, buf)
        obj.sync()
        return obj

    @classmethod
    def open(cls, path: str | os.PathLike, create: bool = False) -> FileObj:
        """Open ``path``; with ``create`` the file is created or truncated."""
        mode = "w+b" if create else "r+b"
        return cls(path, io.open(path, mode, buffering=0))

    @property
    def closed(self) -> bool:
        return self._file is None

    def _handle(self) -> BinaryIO:
        if self._file is None:
            raise ValueError(f"file is closed: {self.path}")
        return self._file

    def size(self) -> int:
        return os.fstat(self._handle().fileno()).st_size

    def read_to_slice(self, offset: int, length: int) -> bytes:
        """Return ``length`` bytes starting at ``offset``."""
        if offset < 0 or length < 0 or offset + length > self.size():
            raise IndexError("Read beyond file size")
        handle = self._handle()
        handle.seek(offset)
        chunks = []
        remaining = length
        while remaining:
            chunk = handle.read(remaining)
            if not chunk:
                raise OSError("Failed to read from file")
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def _read_struct(self, fmt: struct.Struct, offset: int) -> int:
        return fmt.unpack(self.read_to_slice(offset, fmt.size))[0]

    def read_uint8(self, offset: int) -> int:
        return self._read_struct(_U8, offset)

    def read_uint16(self, offset: int) -> int:
        return self._read_struct(_U16, offset)

    def read_uint32(self, offset: int) -> int:
        return self._read_struct(_U32, offset)

    def read_uint64(self, offset: int) -> int:
        return self._read_struct(_U64, offset)

    def write(self, offset: int, buf: bytes) -> None:
        """Write ``buf`` at ``offset``, extending the file if needed."""
        if offset < 0:
            raise ValueError("negative offset")
        handle = self._handle()
        handle.seek(offset)
        view = memoryview(bytes(buf))
        while view:
            written = handle.write(view)
            if not written:
                raise OSError("Failed to write to file")
            view = view[written:]

    def append(self, buf: bytes) -> None:
        """Write ``buf`` at the end of the file."""
        self.write(self.size(), buf)

    def sync(self) -> None:
        handle = self._handle()
        handle.flush()
        os.fsync(handle.fileno())

    def close(self) -> None:
        if self._file is not None:
            self.sync()
            self._file.close()
            self._file = None

    def delete(self) -> None:
        """Close the file and remove it from disk."""
        self.close()
        os.remove(self.path)

    def __enter__(self) -> FileObj:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class MmapFile:
    """A file mapped into memory; writes resize the file to end at the written data."""

    def __init__(self) -> None:
        self.filename: str | None = None
        self._fd: int | None = None
        self._map: mmap.mmap | None = None
        self._size = 0

    def _require_open(self) -> int:
        if self._fd is None:
            raise ValueError("file is not open")
        return self._fd

    def _unmap(self) -> None:
        if self._map is not None:
            self._map.close()
            self._map = None

    def _remap(self) -> None:
        self._unmap()
        if self._size > 0:
            self._map = mmap.mmap(self._require_open(), self._size)

    def _attach(self, filename: str | os.PathLike, flags: int) -> None:
        self.close()
        self._fd = os.open(filename, flags | os.O_RDWR | _BINARY, 0o644)
        self.filename = os.fspath(filename)

    def open(self, filename: str | os.PathLike, create: bool = False) -> None:
        """Open an existing file (or create it) and map its contents."""
        self._attach(filename, os.O_CREAT if create else 0)
        try:
            self._size = os.fstat(self._require_open()).st_size
            self._remap()
        except BaseException:
            self.close()
            raise

    def create(self, filename: str | os.PathLike, buf: bytes) -> None:
        """Create (or truncate) a file holding exactly ``buf``."""
        self._attach(filename, os.O_CREAT | os.O_TRUNC)
        try:
            data = bytes(buf)
            os.ftruncate(self._require_open(), len(data))
            self._size = len(data)
            self._remap()
            if data:
                self._map[: len(data)] = data
            self.sync()
        except BaseException:
            self.close()
            raise

    def close(self) -> None:
        self._unmap()
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None
        self._size = 0

    def size(self) -> int:
        return self._size

    def write(self, offset: int, data: bytes) -> None:
        """Resize the file to ``offset + len(data)`` and write ``data`` at ``offset``."""
        fd = self._require_open()
        if offset < 0:
            raise ValueError("negative offset")
        data = bytes(data)
        new_size = offset + len(data)
        self._unmap()
        os.ftruncate(fd, new_size)
        self._size = new_size
        self._remap()
        if data:
            self._map[offset:new_size] = data
        self.sync()

    def read(self, offset: int, length: int) -> bytes:
        self._require_open()
        if offset < 0 or length < 0 or offset + length > self._size:
            raise IndexError("Read beyond file size")
        if length == 0:
            return b""
        return bytes(self._map[offset:offset + length])

    def sync(self) -> None:
        if self._map is not None:
            self._map.flush()

    def __enter__(self) -> MmapFile:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()