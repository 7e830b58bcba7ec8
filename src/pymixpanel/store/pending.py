"""In-memory snapshot of the elements waiting to be delivered."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pymixpanel._constants import STORE_FORMAT_VERSION
from pymixpanel.models import EntityKind, MixpanelEntity, ProfileUpdate, TrackingEvent


class PendingElements(BaseModel):
    """Events and profile updates that could not be delivered yet.

    The two collections are kept apart because they go to different
    endpoints.  Both preserve insertion order.  Membership and removal are
    by identity (see :class:`~pymixpanel.models.MixpanelEntity`); ``add``
    does not deduplicate, callers check ``contains`` first.
    """

    model_config = ConfigDict(extra="ignore")

    version: int = STORE_FORMAT_VERSION
    events: list[TrackingEvent] = Field(default_factory=list)
    profile_updates: list[ProfileUpdate] = Field(default_factory=list)

    def _bucket(self, entity: MixpanelEntity) -> list[Any]:
        if entity is None:
            raise ValueError("entity must not be None")
        kind = getattr(entity, "kind", None)
        match kind:
            case EntityKind.EVENT:
                return self.events
            case EntityKind.PROFILE_UPDATE:
                return self.profile_updates
        raise TypeError(f"Unsupported element type: {type(entity).__name__}")

    def contains(self, entity: MixpanelEntity) -> bool:
        return entity in self._bucket(entity)

    def add(self, entity: MixpanelEntity) -> None:
        self._bucket(entity).append(entity)

    def remove(self, entity: MixpanelEntity) -> None:
        bucket = self._bucket(entity)
        for index, item in enumerate(bucket):
            if item == entity:
                del bucket[index]
                return

    def remove_all(self, entities: Iterable[MixpanelEntity]) -> int:
        """Remove every element of *entities*, keeping the others in order.

        Returns the number of elements removed.
        """
        delivered = set(entities)
        if not delivered:
            return 0
        before = len(self)
        self.events[:] = [item for item in self.events if item not in delivered]
        self.profile_updates[:] = [item for item in self.profile_updates if item not in delivered]
        return before - len(self)

    @property
    def is_empty(self) -> bool:
        return not self.events and not self.profile_updates

    def __len__(self) -> int:
        return len(self.events) + len(self.profile_updates)
