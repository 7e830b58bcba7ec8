"""High-level async client for the Mixpanel ingestion API."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import datetime
from typing import Any, TypeVar

import aiohttp

from pymixpanel import _utils
from pymixpanel._redact import redact_payload
from pymixpanel._transport import HttpTransport, Transport
from pymixpanel.config import MixpanelConfig
from pymixpanel.exceptions import MixpanelError, MixpanelRejectedError, MixpanelTransientError
from pymixpanel.models import EventProperties, MixpanelEntity, TrackingEvent
from pymixpanel.store import LocalStore

_logger = logging.getLogger(__name__)

E = TypeVar("E", bound=MixpanelEntity)

_SendFn = Callable[[str, str, Mapping[str, str] | None], Awaitable[None]]


def _encode_payload(endpoint: str, values: Any) -> str:
    try:
        return json.dumps(values, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise MixpanelRejectedError(
            f"Payload for {endpoint} is not JSON serializable: {exc}",
            endpoint=endpoint,
        ) from exc


def _check_uri_parameters(uri_parameters: Mapping[str, str] | None) -> None:
    if uri_parameters is not None and not isinstance(uri_parameters, Mapping):
        raise ValueError("uri_parameters must be a mapping")


class MixpanelClient:
    """Async client for the Mixpanel ingestion API.

    Elements that cannot be delivered because the network is unavailable
    are kept in a local store and sent again by
    :meth:`try_send_local_elements`.

    Usage::

        async with MixpanelClient(config) as client:
            await client.start()
            await client.track(TrackingEvent(event="Signup", properties=props))
    """

    def __init__(
        self,
        config: MixpanelConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        store: LocalStore | None = None,
    ) -> None:
        self._config = config if config is not None else MixpanelConfig()
        self._external_session = session is not None
        self._http_session = session
        self._external_transport = transport is not None
        self._transport = transport
        self._store = store if store is not None else LocalStore.at_path(self._config.store_path)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> MixpanelClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)
        if self._config.drain_on_start:
            await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None

    @property
    def config(self) -> MixpanelConfig:
        return self._config

    @property
    def store(self) -> LocalStore:
        return self._store

    async def start(self) -> int:
        """Send whatever earlier runs left in the local store.

        Meant to be called once by the owner after entering the client.
        Returns the number of elements delivered.
        """
        return await self.try_send_local_elements()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise MixpanelError("Client not initialized. Use 'async with MixpanelClient(...) as client:'")
        return self._transport

    async def _send(
        self,
        send: _SendFn,
        endpoint: str,
        data: str,
        uri_parameters: Mapping[str, str] | None,
    ) -> None:
        try:
            async with asyncio.timeout(self._config.timeout):
                await send(endpoint, data, uri_parameters)
        except TimeoutError as exc:
            raise MixpanelTransientError(
                f"Request to {endpoint} timed out after {self._config.timeout}s",
                endpoint=endpoint,
            ) from exc

    def _save_element_sync(self, element: MixpanelEntity) -> None:
        with self._store.transaction() as pending:
            if not pending.contains(element):
                pending.add(element)

    def _evict_sync(self, delivered: Sequence[MixpanelEntity]) -> None:
        # Re-read under the lock so elements stored meanwhile are kept.
        with self._store.transaction() as pending:
            removed = pending.remove_all(delivered)
        _logger.debug("Removed %d delivered elements from the local store", removed)

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    async def track(self, element: MixpanelEntity, uri_parameters: Mapping[str, str] | None = None) -> None:
        """Send an event or profile update right away.

        When the network is unavailable the element is stored locally and
        sent by a later :meth:`try_send_local_elements`.  A payload refused
        by Mixpanel raises :class:`~pymixpanel.exceptions.MixpanelRejectedError`
        and is not stored.

        More info: https://mixpanel.com/help/reference/http#tracking-via-http
        """
        if element is None:
            raise ValueError("element must not be None")
        _check_uri_parameters(uri_parameters)
        transport = self._require_transport()

        try:
            values = element.flatten()
            _logger.debug("Sending %r to %s: %s", element, element.endpoint, redact_payload(values))
            data = _encode_payload(element.endpoint, values)
            await self._send(transport.send, element.endpoint, data, uri_parameters)
        except MixpanelTransientError as exc:
            _logger.info("Could not send %r, storing it locally: %s", element, exc)
        except MixpanelError:
            _logger.debug("Mixpanel refused %r", element, exc_info=True)
            raise
        else:
            return

        await self.save_element(element)

    async def save_element(self, element: MixpanelEntity) -> None:
        """Store *element* locally; it is sent on the next drain.

        Storing an element that is already in the store does nothing.
        """
        if element is None:
            raise ValueError("element must not be None")
        # The store lock blocks, keep it off the event loop.
        await asyncio.to_thread(self._save_element_sync, element)

    async def track_batch(
        self,
        elements: Sequence[E],
        uri_parameters: Mapping[str, str] | None = None,
    ) -> list[E]:
        """Send elements of one kind in batches of at most ``config.batch_size``.

        A batch that fails is skipped and the next one is still attempted.
        Returns the elements that were delivered, in their original order.
        """
        if elements is None:
            raise ValueError("elements must not be None")
        _check_uri_parameters(uri_parameters)
        items = list(elements)
        if not items:
            return []

        endpoint = items[0].endpoint
        if any(item.endpoint != endpoint for item in items):
            raise ValueError("all elements of a batch must target the same endpoint")
        transport = self._require_transport()

        size = self._config.batch_size
        sent: list[E] = []
        for start in range(0, len(items), size):
            chunk = items[start : start + size]
            try:
                values = [item.flatten() for item in chunk]
                if _logger.isEnabledFor(logging.DEBUG):
                    _logger.debug(
                        "Sending batch %d-%d to %s: %s",
                        start,
                        start + len(chunk),
                        endpoint,
                        redact_payload(values),
                    )
                data = _encode_payload(endpoint, values)
                await self._send(transport.send_batch, endpoint, data, uri_parameters)
            except MixpanelError as exc:
                _logger.warning(
                    "Batch %d-%d for %s not sent, keeping it for the next attempt: %s",
                    start,
                    start + len(chunk),
                    endpoint,
                    exc,
                )
                continue
            except Exception:
                _logger.warning("Unexpected error sending batch to %s", endpoint, exc_info=True)
                continue
            sent.extend(chunk)
        return sent

    async def try_send_local_elements(self) -> int:
        """Send locally stored elements, if any, and drop the delivered ones.

        Best effort: delivery and storage failures are logged, never
        raised.  Returns the number of elements delivered.
        """
        self._require_transport()
        pending = await asyncio.to_thread(self._store.load)
        if pending.is_empty:
            return 0

        delivered: list[MixpanelEntity] = []
        if pending.events:
            delivered.extend(await self.track_batch(pending.events))
        if pending.profile_updates:
            delivered.extend(await self.track_batch(pending.profile_updates))

        await asyncio.to_thread(self._evict_sync, delivered)
        _logger.debug("Drained %d of %d locally stored elements", len(delivered), len(pending))
        return len(delivered)

    async def create_alias(self, token: str, original_id: str, new_id: str) -> None:
        """Create an alias (*new_id*) for *original_id*.

        More info: https://mixpanel.com/help/reference/http#distinct-id-alias
        """
        if not token:
            raise ValueError("token must be non-empty")
        if not original_id:
            raise ValueError("original_id must be non-empty")
        if not new_id:
            raise ValueError("new_id must be non-empty")

        properties = EventProperties(token=token, distinct_id=original_id)
        properties["alias"] = new_id
        await self.track(TrackingEvent(event="$create_alias", properties=properties))

    # ------------------------------------------------------------------
    # Date helpers
    # ------------------------------------------------------------------

    @staticmethod
    def to_mixpanel_date(value: datetime) -> str:
        """Format a datetime the way Mixpanel reads dates in profile properties."""
        return _utils.to_mixpanel_date(value)

    @staticmethod
    def to_datetime(epoch_seconds: int) -> datetime:
        return _utils.to_datetime(epoch_seconds)

    @staticmethod
    def to_epoch_time(value: datetime) -> int:
        return _utils.to_epoch_time(value)
