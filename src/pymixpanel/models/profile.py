"""People profile update model sent to the ``engage`` endpoint."""

from __future__ import annotations

import enum
from typing import Any, ClassVar

from pydantic import Field, field_validator

from pymixpanel._constants import ENGAGE_ENDPOINT
from pymixpanel.models._base import EntityKind, MixpanelEntity


class ProfileUpdateOperation(enum.StrEnum):
    """Profile update operations and their wire names.

    See https://mixpanel.com/help/reference/http#people-analytics-updates
    """

    SET = "$set"
    SET_ONCE = "$set_once"
    ADD = "$add"
    APPEND = "$append"
    UNION = "$union"
    UNSET = "$unset"
    DELETE = "$delete"


class ProfileUpdate(MixpanelEntity):
    """A mutation of a people profile.

    ``operation_values`` carries the properties for ``$set``, ``$set_once``,
    ``$add``, ``$append`` and ``$union``; ``unset_values`` lists the property
    names removed by ``$unset``; ``$delete`` takes no value.
    """

    endpoint: ClassVar[str] = ENGAGE_ENDPOINT
    kind: ClassVar[EntityKind] = EntityKind.PROFILE_UPDATE

    token: str
    distinct_id: str
    operation: ProfileUpdateOperation = ProfileUpdateOperation.SET
    ip: str | None = None
    time: int = 0
    ignore_time: bool = False
    operation_values: dict[str, Any] = Field(default_factory=dict)
    unset_values: list[str] = Field(default_factory=list)

    @field_validator("token", "distinct_id")
    @classmethod
    def _require_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("value must be non-empty")
        return value

    def flatten(self) -> dict[str, Any]:
        values: dict[str, Any] = {
            "$token": self.token,
            "$distinct_id": self.distinct_id,
        }
        if self.ip:
            values["$ip"] = self.ip
        if self.time > 0:
            values["$time"] = self.time
        if self.ignore_time:
            values["$ignore_time"] = True

        if self.operation is ProfileUpdateOperation.DELETE:
            values[self.operation.value] = ""
        elif self.operation is ProfileUpdateOperation.UNSET:
            values[self.operation.value] = list(self.unset_values)
        else:
            values[self.operation.value] = dict(self.operation_values)
        return values

    def __repr__(self) -> str:
        return f"ProfileUpdate(id={self.id}, operation={self.operation.value!r})"
