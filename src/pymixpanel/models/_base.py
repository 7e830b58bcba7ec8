"""Base model for elements that can be delivered to Mixpanel.

Every trackable element inherits from :class:`MixpanelEntity` which
provides:

* a random ``id`` generated at construction and persisted with the
  element, used to find it again in the local store;
* a class-level ``endpoint`` (``track`` or ``engage``) and ``kind`` tag
  used to route the element without runtime type checks;
* identity semantics: two elements are equal when they are of the same
  concrete class and carry the same ``id``, and they order by ``id``.
"""

from __future__ import annotations

import enum
from typing import Any, ClassVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class EntityKind(enum.StrEnum):
    """Variant tag of a :class:`MixpanelEntity`."""

    EVENT = "event"
    PROFILE_UPDATE = "profile_update"


class MixpanelEntity(BaseModel):
    """Base for trackable elements (events and profile updates)."""

    model_config = ConfigDict(
        extra="ignore",
        validate_assignment=True,
    )

    endpoint: ClassVar[str]
    kind: ClassVar[EntityKind]

    id: UUID = Field(default_factory=uuid4)

    def flatten(self) -> dict[str, Any]:
        """Return the wire payload as a JSON-compatible mapping."""
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MixpanelEntity):
            return NotImplemented
        return type(self) is type(other) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, MixpanelEntity):
            return NotImplemented
        return self.id < other.id
