"""Write-ahead log: buffered record logging, file rotation, cleanup and recovery.

Log files live in one directory and are named ``wal.<seq>``; a new file with
the next sequence number is started once the active file grows past the size
limit.
"""

from __future__ import annotations

import os
import struct
import threading
from collections import defaultdict
from pathlib import Path
from typing import Iterable, Optional

from .files import FileObj
from .record import Record

_WAL_PREFIX = "wal."
_RECORD_HEAD = struct.Struct("<HQ")


def _wal_seq(name: str) -> Optional[int]:
    """Return the sequence number of a log file name, or None if it is not one."""
    if not name.startswith(_WAL_PREFIX):
        return None
    try:
        return int(name.rsplit(".", 1)[1])
    except ValueError:
        return None


def _wal_files(log_dir: str | os.PathLike) -> list[tuple[int, Path]]:
    """List the log files in ``log_dir`` sorted by ascending sequence number."""
    entries = []
    with os.scandir(log_dir) as it:
        for entry in it:
            if not entry.is_file():
                continue
            seq = _wal_seq(entry.name)
            if seq is not None:
                entries.append((seq, Path(entry.path)))
    entries.sort(key=lambda item: item[0])
    return entries


def _all_finished(path: Path, max_finished_tranc_id: int) -> bool:
    """True if every record in ``path`` belongs to a finished transaction."""
    data = path.read_bytes()
    offset = 0
    while offset + _RECORD_HEAD.size <= len(data):
        record_len, tranc_id = _RECORD_HEAD.unpack_from(data, offset)
        if tranc_id > max_finished_tranc_id:
            return False
        if record_len < _RECORD_HEAD.size:
            return False
        offset += record_len
    return True


class Wal:
    """An append-only transaction log with a background cleaner thread."""

    def __init__(
        self,
        log_dir: str | os.PathLike,
        buffer_size: int,
        max_finished_tranc_id: int,
        clean_interval: float,
        file_size_limit: int,
    ) -> None:
        self.log_dir = os.fspath(log_dir)
        self.buffer_size = buffer_size
        self.clean_interval = clean_interval
        self.file_size_limit = file_size_limit
        self._max_finished_tranc_id = max_finished_tranc_id
        self._lock = threading.Lock()
        self._buffer: list[Record] = []
        self._seq = 0
        self._file = FileObj.open(self._path_for(self._seq), create=True)
        self._closed = False
        self._stop = threading.Event()
        self._cleaner: Optional[threading.Thread] = None
        if clean_interval and clean_interval > 0:
            self._cleaner = threading.Thread(
                target=self._clean_loop, name="wal-cleaner", daemon=True
            )
            self._cleaner.start()

    def _path_for(self, seq: int) -> str:
        return os.path.join(self.log_dir, f"{_WAL_PREFIX}{seq}")

    @property
    def active_log_path(self) -> str:
        return self._path_for(self._seq)

    @classmethod
    def recover(
        cls, log_dir: str | os.PathLike, max_flushed_tranc_id: int
    ) -> dict[int, list[Record]]:
        """Read every log file and group records newer than ``max_flushed_tranc_id``.

        The result maps transaction ids, in ascending order, to their records
        in log order. A missing directory yields an empty mapping.
        """
        if not os.path.isdir(log_dir):
            return {}
        grouped: dict[int, list[Record]] = defaultdict(list)
        for _, path in _wal_files(log_dir):
            for record in Record.decode(path.read_bytes()):
                if record.tranc_id > max_flushed_tranc_id:
                    grouped[record.tranc_id].append(record)
        return dict(sorted(grouped.items()))

    def log(self, records: Iterable[Record], force_flush: bool = False) -> None:
        """Buffer ``records``; write the buffer once it is full or when forced."""
        with self._lock:
            self._buffer.extend(records)
            if len(self._buffer) < self.buffer_size and not force_flush:
                return
            self._write_buffer()

    def flush(self) -> None:
        """Write all buffered records to the log file now."""
        with self._lock:
            self._write_buffer()

    def set_max_finished_tranc_id(self, max_finished_tranc_id: int) -> None:
        with self._lock:
            self._max_finished_tranc_id = max_finished_tranc_id

    def clean_wal_files(self) -> None:
        """Delete older log files whose transactions have all finished."""
        with self._lock:
            max_finished = self._max_finished_tranc_id
            active = os.path.abspath(self.active_log_path)
        files = _wal_files(self.log_dir)
        for _, path in files[:-1]:
            if os.path.abspath(path) == active:
                continue
            if _all_finished(path, max_finished):
                path.unlink(missing_ok=True)

    def close(self) -> None:
        """Flush the buffer, stop the cleaner and close the active file."""
        if self._closed:
            return
        self.log([], True)
        self._stop.set()
        if self._cleaner is not None:
            self._cleaner.join()
        with self._lock:
            self._file.close()
            self._closed = True

    def _write_buffer(self) -> None:
        pending, self._buffer = self._buffer, []
        if pending:
            self._file.append(b"".join(record.encode() for record in pending))
        self._file.sync()
        if self._file.size() > self.file_size_limit:
            self._reset_file()

    def _reset_file(self) -> None:
        self._file.close()
        self._seq += 1
        self._file = FileObj.create_and_write(self._path_for(self._seq), b"")

    def _clean_loop(self) -> None:
        while not self._stop.wait(self.clean_interval):
            try:
                self.clean_wal_files()
            except OSError:
                continue

    def __enter__(self) -> Wal:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()