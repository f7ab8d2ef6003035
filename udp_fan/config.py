"""Accessory configuration parsing and validation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any

import voluptuous as vol
import yaml

from .const import (
    DEFAULT_CACHE_TIMEOUT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_NAME,
    DEFAULT_RETRY_DELAY,
    DEFAULT_SETTLE_DELAY,
    DEFAULT_TIMEOUT,
)
from .dispatcher import RetryPolicy
from .exceptions import ConfigError
from .models import DeviceAddress

# Host frameworks hand over camelCase keys; both spellings are accepted.
_KEY_ALIASES: dict[str, str] = {
    "ip": "host",
    "maxRetries": "max_retries",
    "retryDelay": "retry_delay",
    "cacheTimeout": "cache_timeout",
    "settleDelay": "settle_delay",
}


def _normalise_keys(value: Any) -> dict[str, Any]:
    """Rename camelCase option keys to their snake_case form."""

    if not isinstance(value, Mapping):
        raise vol.Invalid("accessory configuration must be a mapping")
    return {_KEY_ALIASES.get(key, key): item for key, item in value.items()}


def _milliseconds(value: Any) -> timedelta:
    """Interpret ``value`` as milliseconds unless it already is a timedelta."""

    if isinstance(value, timedelta):
        return value
    return timedelta(milliseconds=value)


def _duration(*, allow_zero: bool) -> Any:
    """Build a validator for a non-negative millisecond duration."""

    return vol.All(
        vol.Any(
            timedelta,
            vol.All(
                vol.Coerce(float),
                vol.Range(min=0, min_included=allow_zero),
            ),
        ),
        _milliseconds,
    )


def _ms(delta: timedelta) -> float:
    return delta.total_seconds() * 1000


ACCESSORY_SCHEMA = vol.All(
    _normalise_keys,
    vol.Schema(
        {
            vol.Optional("name", default=DEFAULT_NAME): vol.All(str, vol.Length(min=1)),
            vol.Required("host"): vol.All(str, vol.Length(min=1)),
            vol.Required("port"): vol.All(
                vol.Coerce(int), vol.Range(min=1, max=65535)
            ),
            vol.Optional("max_retries", default=DEFAULT_MAX_RETRIES): vol.All(
                vol.Coerce(int), vol.Range(min=0)
            ),
            vol.Optional(
                "retry_delay", default=_ms(DEFAULT_RETRY_DELAY)
            ): _duration(allow_zero=True),
            vol.Optional("timeout", default=_ms(DEFAULT_TIMEOUT)): _duration(
                allow_zero=False
            ),
            vol.Optional(
                "cache_timeout", default=_ms(DEFAULT_CACHE_TIMEOUT)
            ): _duration(allow_zero=True),
            vol.Optional(
                "settle_delay", default=_ms(DEFAULT_SETTLE_DELAY)
            ): _duration(allow_zero=True),
        },
        extra=vol.REMOVE_EXTRA,
    ),
)


@dataclass(frozen=True, slots=True)
class FanConfig:
    """Validated settings for one fan accessory."""

    host: str
    port: int
    name: str = DEFAULT_NAME
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: timedelta = DEFAULT_RETRY_DELAY
    timeout: timedelta = DEFAULT_TIMEOUT
    cache_timeout: timedelta = DEFAULT_CACHE_TIMEOUT
    settle_delay: timedelta = DEFAULT_SETTLE_DELAY

    @property
    def address(self) -> DeviceAddress:
        """Return the UDP peer of the fan board."""

        return DeviceAddress(self.host, self.port)

    @property
    def retry_policy(self) -> RetryPolicy:
        """Return the dispatcher retry settings."""

        return RetryPolicy(
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
            timeout=self.timeout,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FanConfig:
        """Validate a raw host configuration mapping."""

        try:
            validated = ACCESSORY_SCHEMA(data)
        except vol.Invalid as exc:
            raise ConfigError(f"Invalid accessory configuration: {exc}") from exc
        return cls(**validated)


def load_config_file(path: Path | str) -> list[FanConfig]:
    """Load every accessory defined in a YAML (or JSON) file.

    The document is either a list of accessory mappings or a mapping with
    an ``accessories`` list.
    """

    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read {config_path}: {exc}") from exc
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse {config_path}: {exc}") from exc

    if isinstance(document, Mapping):
        document = document.get("accessories")
    if not isinstance(document, list):
        msg = f"{config_path} must contain an 'accessories' list"
        raise ConfigError(msg)
    return [FanConfig.from_dict(entry) for entry in document]
