"""Client configuration for pymixpanel."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from pymixpanel._constants import BASE_URL, MAX_BATCH_SIZE, STORE_FILE_NAME, USER_AGENT
from pymixpanel.exceptions import MixpanelConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def default_store_path() -> Path:
    """Location of the offline store when none is configured."""
    return Path.home() / ".pymixpanel" / STORE_FILE_NAME


@dataclasses.dataclass(frozen=True)
class MixpanelConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        API base URL, with a trailing slash.
    timeout : float
        Max time, in seconds, of a single request before it is treated
        as a transient failure.
    geolocation : bool
        Ask Mixpanel to resolve the caller's location from the request IP
        (sent as ``ip=1``).
    verbose : bool
        Ask Mixpanel for a JSON answer carrying an error message instead
        of a bare ``0``/``1`` (sent as ``verbose=1`` on single sends).
    user_agent : str
        ``User-Agent`` header sent with every request.
    store_path : Path
        File holding elements that could not be delivered yet.
    batch_size : int
        Number of elements per batch request.  Mixpanel accepts at most
        50; larger values are clamped.
    drain_on_start : bool
        Send locally stored elements when the client is entered.
    """

    base_url: str = BASE_URL
    timeout: float = 30.0
    geolocation: bool = True
    verbose: bool = False
    user_agent: str = USER_AGENT
    store_path: Path = dataclasses.field(default_factory=default_store_path)
    batch_size: int = MAX_BATCH_SIZE
    drain_on_start: bool = False

    def __post_init__(self) -> None:
        if not self.base_url:
            raise MixpanelConfigError("base_url must be non-empty")
        if not self.base_url.endswith("/"):
            object.__setattr__(self, "base_url", self.base_url + "/")
        if self.timeout <= 0:
            raise MixpanelConfigError(f"timeout must be positive, got {self.timeout}")
        if self.batch_size < 1:
            raise MixpanelConfigError(f"batch_size must be at least 1, got {self.batch_size}")
        if self.batch_size > MAX_BATCH_SIZE:
            object.__setattr__(self, "batch_size", MAX_BATCH_SIZE)
        if not isinstance(self.store_path, Path):
            object.__setattr__(self, "store_path", Path(self.store_path).expanduser())

    @classmethod
    def from_env(cls, **overrides: Any) -> MixpanelConfig:
        """Create configuration from environment variables.

        Reads optional ``MIXPANEL_*`` variables.  Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        MixpanelConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "MIXPANEL_BASE_URL": "base_url",
            "MIXPANEL_USER_AGENT": "user_agent",
            "MIXPANEL_STORE_PATH": "store_path",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # numeric values, handled separately
        timeout_env = env.get("MIXPANEL_TIMEOUT")
        if timeout_env is not None and "timeout" not in overrides:
            try:
                config_kwargs["timeout"] = float(timeout_env)
            except ValueError as exc:
                raise MixpanelConfigError(f"MIXPANEL_TIMEOUT is not a number: {timeout_env!r}") from exc

        batch_env = env.get("MIXPANEL_BATCH_SIZE")
        if batch_env is not None and "batch_size" not in overrides:
            try:
                config_kwargs["batch_size"] = int(batch_env)
            except ValueError as exc:
                raise MixpanelConfigError(f"MIXPANEL_BATCH_SIZE is not an integer: {batch_env!r}") from exc

        if "geolocation" not in overrides:
            config_kwargs["geolocation"] = _env_bool(env.get("MIXPANEL_GEOLOCATION"), True)
        if "verbose" not in overrides:
            config_kwargs["verbose"] = _env_bool(env.get("MIXPANEL_VERBOSE"), False)
        if "drain_on_start" not in overrides:
            config_kwargs["drain_on_start"] = _env_bool(env.get("MIXPANEL_DRAIN_ON_START"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
