"""HTTP transport for the Mixpanel ingestion endpoints."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pymixpanel._redact import redact_params
from pymixpanel._utils import parse_bool, to_base64
from pymixpanel.config import MixpanelConfig
from pymixpanel.exceptions import MixpanelRejectedError, MixpanelTransientError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the client.

    Both methods return normally when Mixpanel accepted the payload and
    raise :class:`~pymixpanel.exceptions.MixpanelTransientError` or
    :class:`~pymixpanel.exceptions.MixpanelRejectedError` otherwise.
    ``data`` is the JSON text of one flattened element (``send``) or of a
    list of them (``send_batch``).
    """

    async def send(self, endpoint: str, data: str, uri_parameters: Mapping[str, str] | None = None) -> None:
        ...

    async def send_batch(self, endpoint: str, data: str, uri_parameters: Mapping[str, str] | None = None) -> None:
        ...


def _check_args(endpoint: str, data: str) -> None:
    if not endpoint:
        raise ValueError("endpoint must be non-empty")
    if not data:
        raise ValueError("data must be non-empty")


def _extra_parameters(uri_parameters: Mapping[str, str] | None) -> list[tuple[str, str]]:
    """Caller-supplied query parameters; entries with an empty key or value are skipped."""
    if not uri_parameters:
        return []
    return [(str(k), str(v)) for k, v in uri_parameters.items() if k and v]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _check_answer(endpoint: str, status: int, text: str) -> None:
    """Raise when the body of a 2xx answer says the payload was refused.

    Mixpanel answers ``1`` or ``0``; in verbose mode it answers a JSON
    object ``{"status": 1}`` or ``{"status": 0, "error": "..."}``.
    """
    body = text.strip()
    if body.startswith("{"):
        try:
            answer: Any = json.loads(body)
        except json.JSONDecodeError:
            answer = None
        if isinstance(answer, dict):
            if parse_bool(answer.get("status"), False):
                return
            raise MixpanelRejectedError(
                f"Mixpanel refused payload for {endpoint}: {answer.get('error') or 'unknown error'}",
                status_code=status,
                endpoint=endpoint,
            )
    if not parse_bool(body, True):
        raise MixpanelRejectedError(
            f"Mixpanel refused payload for {endpoint}",
            status_code=status,
            endpoint=endpoint,
        )


class HttpTransport:
    """Transport sending payloads with a shared :class:`aiohttp.ClientSession`.

    Single elements go out as ``GET <endpoint>/?ip=..&data=..``; batches as
    a form-encoded ``POST`` whose URL carries a changing ``ms-ts`` value so
    intermediate caches never answer for the server.
    """

    def __init__(self, config: MixpanelConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _url(self, endpoint: str) -> str:
        return f"{self._config.base_url}{endpoint}/"

    def _ip_flag(self) -> tuple[str, str]:
        return ("ip", "1" if self._config.geolocation else "0")

    async def send(self, endpoint: str, data: str, uri_parameters: Mapping[str, str] | None = None) -> None:
        _check_args(endpoint, data)
        params = [self._ip_flag()]
        if self._config.verbose:
            params.append(("verbose", "1"))
        params.append(("data", to_base64(data) or ""))
        params.extend(_extra_parameters(uri_parameters))
        await self._request("GET", endpoint, params)

    async def send_batch(self, endpoint: str, data: str, uri_parameters: Mapping[str, str] | None = None) -> None:
        _check_args(endpoint, data)
        params = [self._ip_flag()]
        params.extend(_extra_parameters(uri_parameters))
        params.append(("ms-ts", str(_now_ms())))
        form = {"data": to_base64(data) or ""}
        await self._request("POST", endpoint, params, form=form)

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: list[tuple[str, str]],
        *,
        form: dict[str, str] | None = None,
    ) -> None:
        url = self._url(endpoint)
        headers = {"User-Agent": self._config.user_agent}
        timeout = aiohttp.ClientTimeout(total=self._config.timeout)

        _logger.debug("%s %s params=%s", method, url, redact_params(params))

        try:
            async with self._http.request(
                method,
                url,
                params=params,
                data=form,
                headers=headers,
                timeout=timeout,
            ) as resp:
                status = resp.status
                text = await resp.text()
        except asyncio.TimeoutError as exc:
            raise MixpanelTransientError(
                f"Request to {endpoint} timed out after {self._config.timeout}s",
                endpoint=endpoint,
            ) from exc
        except aiohttp.InvalidURL as exc:
            raise MixpanelRejectedError(
                f"Invalid request URL for {endpoint}: {exc}",
                endpoint=endpoint,
            ) from exc
        except aiohttp.ClientError as exc:
            raise MixpanelTransientError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        _logger.debug("%s %s -> HTTP %d %s", method, url, status, text[:64])

        if status >= 500 or status == 429:
            raise MixpanelTransientError(
                f"HTTP {status} from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            )
        if status >= 400:
            raise MixpanelRejectedError(
                f"HTTP {status} from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            )
        _check_answer(endpoint, status, text)
