"""Tests for the local store and its blob stores."""

from __future__ import annotations

import contextlib
import logging
import multiprocessing
import sys
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from _fakes import CountingBlobStore, make_event, make_update

from pymixpanel.models import ProfileUpdateOperation, TrackingEvent
from pymixpanel.store import FileBlobStore, LocalStore, MemoryBlobStore, PendingElements

# ------------------------------------------------------------------
# PendingElements
# ------------------------------------------------------------------


class TestPendingElements:
    def test_add_routes_by_kind(self) -> None:
        pending = PendingElements()
        pending.add(make_event())
        pending.add(make_update())
        assert len(pending.events) == 1
        assert len(pending.profile_updates) == 1
        assert len(pending) == 2

    def test_contains_is_scoped_to_kind(self) -> None:
        pending = PendingElements()
        event = make_event()
        pending.add(event)
        assert pending.contains(event)
        assert pending.contains(event.model_copy())
        assert not pending.contains(make_event())

    def test_add_does_not_deduplicate(self) -> None:
        pending = PendingElements()
        event = make_event()
        pending.add(event)
        pending.add(event)
        assert len(pending.events) == 2

    def test_remove_by_identity(self) -> None:
        pending = PendingElements()
        first, second = make_event("a"), make_event("b")
        pending.add(first)
        pending.add(second)
        pending.remove(TrackingEvent(id=first.id))
        assert pending.events == [second]

    def test_remove_absent_is_noop(self) -> None:
        pending = PendingElements()
        pending.add(make_event())
        pending.remove(make_event())
        assert len(pending) == 1

    def test_remove_all_keeps_order(self) -> None:
        pending = PendingElements()
        events = [make_event(str(i)) for i in range(6)]
        for event in events:
            pending.add(event)
        update = make_update()
        pending.add(update)

        removed = pending.remove_all([events[1], events[4], update])

        assert removed == 3
        assert pending.events == [events[0], events[2], events[3], events[5]]
        assert pending.profile_updates == []

    def test_none_rejected(self) -> None:
        with pytest.raises(ValueError):
            PendingElements().add(None)  # type: ignore[arg-type]

    def test_unknown_element_rejected(self) -> None:
        with pytest.raises(TypeError):
            PendingElements().add(object())  # type: ignore[arg-type]

    def test_is_empty(self) -> None:
        pending = PendingElements()
        assert pending.is_empty
        pending.add(make_update())
        assert not pending.is_empty


# ------------------------------------------------------------------
# LocalStore
# ------------------------------------------------------------------


class _BrokenLockBlobStore(MemoryBlobStore):
    @contextlib.contextmanager
    def lock(self) -> Iterator[None]:
        raise PermissionError("read-only file system")
        yield  # pragma: no cover


class _FailingWriteBlobStore(MemoryBlobStore):
    def write_all(self, data: bytes) -> None:
        raise OSError("disk full")


class TestLocalStore:
    def test_missing_store_loads_empty(self, tmp_path: Path) -> None:
        store = LocalStore.at_path(tmp_path / "nested" / "mixpanel.dat")
        assert store.load().is_empty

    def test_round_trip_preserves_identity_and_order(self, tmp_path: Path) -> None:
        store = LocalStore.at_path(tmp_path / "mixpanel.dat")
        pending = PendingElements()
        events = [make_event(str(i), plan="premium") for i in range(3)]
        for event in events:
            pending.add(event)
        update = make_update(ProfileUpdateOperation.UNSET)
        update.unset_values = ["age"]
        pending.add(update)

        store.save(pending)
        loaded = store.load()

        assert loaded.events == events
        assert [e.event for e in loaded.events] == ["0", "1", "2"]
        assert loaded.events[0].flatten() == events[0].flatten()
        assert loaded.profile_updates == [update]
        assert loaded.profile_updates[0].flatten()["$unset"] == ["age"]

    def test_corrupt_store_loads_empty(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        path = tmp_path / "mixpanel.dat"
        path.write_text("{not json", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="pymixpanel.store.local"):
            loaded = LocalStore.at_path(path).load()
        assert loaded.is_empty
        assert "Could not load" in caplog.text

    def test_wrong_schema_loads_empty(self) -> None:
        store = LocalStore(MemoryBlobStore(b'{"events": [{"id": "not-a-uuid"}]}'))
        assert store.load().is_empty

    def test_unknown_keys_ignored(self) -> None:
        event = make_event()
        pending = PendingElements()
        pending.add(event)
        raw = pending.model_dump_json().replace('"version":1', '"version":1,"future":true')
        store = LocalStore(MemoryBlobStore(raw.encode()))
        assert store.load().events == [event]

    def test_lock_failure_degrades(self) -> None:
        store = LocalStore(_BrokenLockBlobStore())
        assert store.load().is_empty
        pending = PendingElements()
        pending.add(make_event())
        store.save(pending)

    def test_write_failure_is_swallowed(self, caplog: pytest.LogCaptureFixture) -> None:
        store = LocalStore(_FailingWriteBlobStore())
        pending = PendingElements()
        pending.add(make_event())
        with caplog.at_level(logging.WARNING, logger="pymixpanel.store.local"):
            store.save(pending)
        assert "disk full" in caplog.text

    def test_transaction_saves_on_exit(self, store: LocalStore, blob: CountingBlobStore) -> None:
        event = make_event()
        with store.transaction() as pending:
            pending.add(event)
        assert blob.writes == 1
        assert store.load().events == [event]

    def test_transaction_does_not_save_on_error(self, store: LocalStore, blob: CountingBlobStore) -> None:
        with pytest.raises(RuntimeError), store.transaction() as pending:
            pending.add(make_event())
            raise RuntimeError("boom")
        assert blob.writes == 0
        assert store.load().is_empty

    def test_transaction_with_broken_lock_does_not_raise(self) -> None:
        store = LocalStore(_BrokenLockBlobStore())
        with store.transaction() as pending:
            pending.add(make_event())

    def test_concurrent_transactions_lose_nothing(self, tmp_path: Path) -> None:
        path = tmp_path / "mixpanel.dat"
        events = [make_event(str(i)) for i in range(40)]

        def add(event: TrackingEvent) -> None:
            with LocalStore.at_path(path).transaction() as pending:
                if not pending.contains(event):
                    pending.add(event)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(add, events))

        loaded = LocalStore.at_path(path).load()
        assert sorted(loaded.events) == sorted(events)


# ------------------------------------------------------------------
# FileBlobStore
# ------------------------------------------------------------------


def _add_from_process(path: str, count: int) -> None:
    store = LocalStore.at_path(path)
    for i in range(count):
        with store.transaction() as pending:
            pending.add(TrackingEvent(event=f"proc-{i}"))


class TestFileBlobStore:
    def test_read_missing_returns_none(self, tmp_path: Path) -> None:
        assert FileBlobStore(tmp_path / "absent.dat").read_all() is None

    def test_write_replaces_atomically(self, tmp_path: Path) -> None:
        blob = FileBlobStore(tmp_path / "mixpanel.dat")
        with blob.lock():
            blob.write_all(b"first")
            blob.write_all(b"second")
            assert blob.read_all() == b"second"
        leftovers = [p.name for p in tmp_path.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_lock_file_is_sidecar(self, tmp_path: Path) -> None:
        blob = FileBlobStore(tmp_path / "mixpanel.dat")
        with blob.lock():
            pass
        assert (tmp_path / "mixpanel.dat.lock").exists()

    @pytest.mark.skipif(sys.platform != "linux", reason="uses fork start method")
    def test_processes_share_the_lock(self, tmp_path: Path) -> None:
        path = str(tmp_path / "mixpanel.dat")
        ctx = multiprocessing.get_context("fork")
        workers = [ctx.Process(target=_add_from_process, args=(path, 10)) for _ in range(4)]
        for proc in workers:
            proc.start()
        for proc in workers:
            proc.join(timeout=30)
            assert proc.exitcode == 0

        assert len(LocalStore.at_path(path).load().events) == 40
