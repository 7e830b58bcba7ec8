"""Models for elements delivered to the Mixpanel API."""

from pymixpanel.models._base import EntityKind, MixpanelEntity
from pymixpanel.models.event import EventProperties, TrackingEvent
from pymixpanel.models.profile import ProfileUpdate, ProfileUpdateOperation

__all__ = [
    "EntityKind",
    "EventProperties",
    "MixpanelEntity",
    "ProfileUpdate",
    "ProfileUpdateOperation",
    "TrackingEvent",
]
