"""Tracking event model sent to the ``track`` endpoint."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pymixpanel._constants import LIBRARY_TAG, OPERATING_SYSTEM, TRACK_ENDPOINT
from pymixpanel.models._base import EntityKind, MixpanelEntity

# Keyword arguments accepted by EventProperties and the property key they fill.
_PROPERTY_KEYS: dict[str, str] = {
    "token": "token",
    "distinct_id": "distinct_id",
    "time": "time",
    "ip": "ip",
    "tag": "mp_name_tag",
}


def _default_values() -> dict[str, Any]:
    return {"mp_lib": LIBRARY_TAG, "$os": OPERATING_SYSTEM}


class EventProperties(BaseModel):
    """Property bag of a tracking event.

    Any JSON-compatible value can be stored under any key; the well-known
    Mixpanel keys are exposed as attributes::

        props = EventProperties(token="project-token", distinct_id="user-1")
        props["plan"] = "premium"
    """

    model_config = ConfigDict(extra="forbid")

    values: dict[str, Any] = Field(default_factory=_default_values)

    @model_validator(mode="before")
    @classmethod
    def _lift_known_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        working = dict(data)
        given = working.pop("values", None)
        values = _default_values() if given is None else dict(given)
        for arg, key in _PROPERTY_KEYS.items():
            if arg in working:
                values[key] = working.pop(arg)
        if "token" in data and not values.get("token"):
            raise ValueError("token must be non-empty")
        working["values"] = values
        return working

    def __getitem__(self, key: str) -> Any:
        return self.values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.values[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    @property
    def token(self) -> str | None:
        return self.values.get("token")

    @token.setter
    def token(self, value: str) -> None:
        self.values["token"] = value

    @property
    def distinct_id(self) -> str | None:
        return self.values.get("distinct_id")

    @distinct_id.setter
    def distinct_id(self, value: str) -> None:
        self.values["distinct_id"] = value

    @property
    def time(self) -> int:
        """Event time in seconds since the epoch, ``0`` when unset."""
        value = self.values.get("time")
        return int(value) if value is not None else 0

    @time.setter
    def time(self, value: int) -> None:
        self.values["time"] = value

    @property
    def ip(self) -> str | None:
        return self.values.get("ip")

    @ip.setter
    def ip(self, value: str) -> None:
        self.values["ip"] = value

    @property
    def tag(self) -> str | None:
        """Name tag shown in the Mixpanel stream (``mp_name_tag``)."""
        return self.values.get("mp_name_tag")

    @tag.setter
    def tag(self, value: str) -> None:
        self.values["mp_name_tag"] = value

    def flatten(self) -> dict[str, Any]:
        return dict(self.values)


class TrackingEvent(MixpanelEntity):
    """A discrete event, e.g. ``TrackingEvent(event="Signup", properties=props)``."""

    endpoint: ClassVar[str] = TRACK_ENDPOINT
    kind: ClassVar[EntityKind] = EntityKind.EVENT

    event: str | None = None
    properties: EventProperties | None = None

    def flatten(self) -> dict[str, Any]:
        values: dict[str, Any] = {"event": self.event}
        if self.properties is not None:
            values["properties"] = self.properties.flatten()
        return values

    def __repr__(self) -> str:
        return f"TrackingEvent(id={self.id}, event={self.event!r})"
