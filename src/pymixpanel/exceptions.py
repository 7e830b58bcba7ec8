"""Custom exception hierarchy for pymixpanel."""

from __future__ import annotations


class MixpanelError(Exception):
    """Base exception for all pymixpanel errors."""


class MixpanelConfigError(MixpanelError):
    """Invalid or missing configuration."""


class MixpanelDeliveryError(MixpanelError):
    """A payload could not be delivered to the Mixpanel API."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class MixpanelTransientError(MixpanelDeliveryError):
    """Retryable delivery failure (network unreachable, timeout, 5xx, 429).

    The client absorbs this error by buffering the element locally so it is
    sent again on the next drain.
    """


class MixpanelRejectedError(MixpanelDeliveryError):
    """Non-retryable delivery failure.

    The API refused the payload (HTTP 4xx, or a ``0`` answer meaning the
    data was malformed).  Sending the same payload again would fail the same
    way, so the element is never buffered.
    """


class MixpanelStoreError(MixpanelError):
    """Local store could not be read, parsed or written."""
