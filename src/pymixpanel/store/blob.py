"""Durable blob stores backing the local store.

A blob store holds one opaque byte string and a mutual-exclusion lock.
:class:`~pymixpanel.store.local.LocalStore` only calls ``read_all`` and
``write_all`` while holding ``lock()``.
"""

from __future__ import annotations

import contextlib
import fcntl
import os
import tempfile
import threading
from collections.abc import Iterator
from pathlib import Path
from typing import Protocol

# flock() does not exclude threads that share one open file description,
# and the same path opened twice in one process must not deadlock on
# itself, so threads are serialized with a per-path lock first.
_THREAD_LOCKS: dict[Path, threading.Lock] = {}
_THREAD_LOCKS_GUARD = threading.Lock()


def _thread_lock_for(path: Path) -> threading.Lock:
    with _THREAD_LOCKS_GUARD:
        lock = _THREAD_LOCKS.get(path)
        if lock is None:
            lock = threading.Lock()
            _THREAD_LOCKS[path] = lock
        return lock


class BlobStore(Protocol):
    """Structural interface of a durable blob store.

    ``lock()`` must exclude every other holder of the same store, including
    other processes for stores shared through the file system.  The lock is
    not reentrant.
    """

    def lock(self) -> contextlib.AbstractContextManager[None]:
        ...

    def read_all(self) -> bytes | None:
        """Return the stored bytes, or ``None`` when nothing was written yet."""
        ...

    def write_all(self, data: bytes) -> None:
        """Replace the stored bytes.  Raises ``OSError`` on failure."""
        ...


class FileBlobStore:
    """Blob store kept in a single file.

    The lock is an advisory ``flock`` on a sidecar ``<name>.lock`` file, so
    every process using the same path is serialized.  Writes go to a
    temporary file in the same directory which then replaces the target,
    so readers never observe a partially written file.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path).expanduser().absolute()
        self._lock_path = self._path.with_name(self._path.name + ".lock")
        self._thread_lock = _thread_lock_for(self._path)

    @property
    def path(self) -> Path:
        return self._path

    @contextlib.contextmanager
    def lock(self) -> Iterator[None]:
        with self._thread_lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock_path.open("a+b") as fh:
                fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    fcntl.flock(fh.fileno(), fcntl.LOCK_UN)

    def read_all(self) -> bytes | None:
        try:
            return self._path.read_bytes()
        except FileNotFoundError:
            return None

    def write_all(self, data: bytes) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            dir=self._path.parent,
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise

    def __repr__(self) -> str:
        return f"FileBlobStore({str(self._path)!r})"


class MemoryBlobStore:
    """Blob store living in process memory (tests, ephemeral clients)."""

    def __init__(self, data: bytes | None = None) -> None:
        self._data = data
        self._lock = threading.Lock()

    @contextlib.contextmanager
    def lock(self) -> Iterator[None]:
        with self._lock:
            yield

    def read_all(self) -> bytes | None:
        return self._data

    def write_all(self, data: bytes) -> None:
        self._data = bytes(data)
