"""Persistent store for elements that could not be delivered.

Storage trouble never reaches the caller: an unreadable or corrupt store
loads as empty, and a failed save loses the buffered elements.
"""

from __future__ import annotations

import contextlib
import logging
import os
from collections.abc import Iterator

from pymixpanel.exceptions import MixpanelStoreError
from pymixpanel.store.blob import BlobStore, FileBlobStore
from pymixpanel.store.pending import PendingElements

_logger = logging.getLogger(__name__)

_STORAGE_ERRORS = (OSError, ValueError, MixpanelStoreError)


def _decode(raw: bytes) -> PendingElements:
    try:
        return PendingElements.model_validate_json(raw)
    except ValueError as exc:
        raise MixpanelStoreError(f"Local store is not valid: {exc}") from exc


def _encode(pending: PendingElements) -> bytes:
    try:
        return pending.model_dump_json().encode("utf-8")
    except ValueError as exc:
        raise MixpanelStoreError(f"Local store could not be serialized: {exc}") from exc


class LocalStore:
    """Load/save :class:`PendingElements` through a :class:`BlobStore`.

    ``load`` and ``save`` each take the blob store lock on their own.  A
    read-modify-write that must not race with other callers uses
    :meth:`transaction`, which holds the lock for the whole cycle::

        with store.transaction() as pending:
            if not pending.contains(element):
                pending.add(element)
    """

    def __init__(self, blob_store: BlobStore) -> None:
        self._blob = blob_store

    @classmethod
    def at_path(cls, path: str | os.PathLike[str]) -> LocalStore:
        """Store backed by a file at *path*."""
        return cls(FileBlobStore(path))

    def _read(self) -> PendingElements:
        try:
            raw = self._blob.read_all()
            if not raw:
                return PendingElements()
            return _decode(raw)
        except _STORAGE_ERRORS as exc:
            # Schema change or damaged file: start over with an empty store.
            _logger.warning("Could not load pending Mixpanel elements: %s", exc)
            return PendingElements()

    def _write(self, pending: PendingElements) -> None:
        try:
            self._blob.write_all(_encode(pending))
        except _STORAGE_ERRORS as exc:
            _logger.warning("Could not save %d pending Mixpanel elements: %s", len(pending), exc)

    def load(self) -> PendingElements:
        """Read the store; never raises for storage errors."""
        try:
            with self._blob.lock():
                return self._read()
        except _STORAGE_ERRORS as exc:
            _logger.warning("Could not lock local store for reading: %s", exc)
            return PendingElements()

    def save(self, pending: PendingElements) -> None:
        """Write the full snapshot; never raises for storage errors."""
        try:
            with self._blob.lock():
                self._write(pending)
        except _STORAGE_ERRORS as exc:
            _logger.warning("Could not lock local store for writing: %s", exc)

    @contextlib.contextmanager
    def transaction(self) -> Iterator[PendingElements]:
        """Hold the lock across load, caller mutation and save.

        The snapshot is saved when the block exits normally.  If the block
        raises, nothing is written and the exception propagates.
        """
        with contextlib.ExitStack() as stack:
            try:
                stack.enter_context(self._blob.lock())
            except _STORAGE_ERRORS as exc:
                _logger.warning("Could not lock local store, changes will not be saved: %s", exc)
                yield PendingElements()
                return
            pending = self._read()
            yield pending
            self._write(pending)
