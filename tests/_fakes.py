"""Fakes and element factories shared by the test modules."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pymixpanel.models import EventProperties, ProfileUpdate, ProfileUpdateOperation, TrackingEvent
from pymixpanel.store import MemoryBlobStore


class CountingBlobStore(MemoryBlobStore):
    """In-memory blob store that records how often it is written."""

    def __init__(self, data: bytes | None = None) -> None:
        super().__init__(data)
        self.writes = 0

    def write_all(self, data: bytes) -> None:
        self.writes += 1
        super().write_all(data)

@dataclass
class FakeTransport:
    """Records every send; fails according to the configured outcomes.

    ``batch_outcomes[i]`` is raised by the i-th ``send_batch`` call when it
    is not ``None``.
    """

    single_error: BaseException | None = None
    batch_outcomes: list[BaseException | None] = field(default_factory=list)
    on_batch: Callable[[], None] | None = None
    single_calls: list[tuple[str, Any, Mapping[str, str] | None]] = field(default_factory=list)
    batch_calls: list[tuple[str, list[dict[str, Any]]]] = field(default_factory=list)

    async def send(self, endpoint: str, data: str, uri_parameters: Mapping[str, str] | None = None) -> None:
        self.single_calls.append((endpoint, json.loads(data), uri_parameters))
        if self.single_error is not None:
            raise self.single_error

    async def send_batch(self, endpoint: str, data: str, uri_parameters: Mapping[str, str] | None = None) -> None:
        index = len(self.batch_calls)
        self.batch_calls.append((endpoint, json.loads(data)))
        if self.on_batch is not None:
            self.on_batch()
        if index < len(self.batch_outcomes) and self.batch_outcomes[index] is not None:
            raise self.batch_outcomes[index]  # type: ignore[misc]

def make_event(name: str = "Signup", **props: Any) -> TrackingEvent:
    properties = EventProperties(token="project-token", distinct_id="user-1")
    for key, value in props.items():
        properties[key] = value
    return TrackingEvent(event=name, properties=properties)

def make_update(operation: ProfileUpdateOperation = ProfileUpdateOperation.SET) -> ProfileUpdate:
    return ProfileUpdate(
        token="project-token",
        distinct_id="user-1",
        operation=operation,
        operation_values={"plan": "premium"},
    )
