from __future__ import annotations

from pathlib import Path

import pytest
from _fakes import CountingBlobStore, FakeTransport

from pymixpanel.config import MixpanelConfig
from pymixpanel.store import LocalStore


@pytest.fixture()
def config(tmp_path: Path) -> MixpanelConfig:
    return MixpanelConfig(store_path=tmp_path / "mixpanel.dat", timeout=2.0)


@pytest.fixture()
def blob() -> CountingBlobStore:
    return CountingBlobStore()


@pytest.fixture()
def store(blob: CountingBlobStore) -> LocalStore:
    return LocalStore(blob)


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()
