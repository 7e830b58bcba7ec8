"""pymixpanel - Async Python client for the Mixpanel ingestion API with offline buffering."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pymixpanel")
except PackageNotFoundError:
    __version__ = "0+local"
from pymixpanel.client import MixpanelClient
from pymixpanel.config import MixpanelConfig
from pymixpanel.exceptions import (
    MixpanelConfigError,
    MixpanelDeliveryError,
    MixpanelError,
    MixpanelRejectedError,
    MixpanelStoreError,
    MixpanelTransientError,
)
from pymixpanel.models import (
    EntityKind,
    EventProperties,
    MixpanelEntity,
    ProfileUpdate,
    ProfileUpdateOperation,
    TrackingEvent,
)
from pymixpanel.store import FileBlobStore, LocalStore, MemoryBlobStore, PendingElements

__all__ = [
    "__version__",
    "EntityKind",
    "EventProperties",
    "FileBlobStore",
    "LocalStore",
    "MemoryBlobStore",
    "MixpanelClient",
    "MixpanelConfig",
    "MixpanelConfigError",
    "MixpanelDeliveryError",
    "MixpanelEntity",
    "MixpanelError",
    "MixpanelRejectedError",
    "MixpanelStoreError",
    "MixpanelTransientError",
    "PendingElements",
    "ProfileUpdate",
    "ProfileUpdateOperation",
    "TrackingEvent",
]
