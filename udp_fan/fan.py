"""Fan control operations exposed to the host automation framework."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .cache import StateCache
from .config import FanConfig
from .confirmation import ConfirmationCoordinator
from .const import MAX_SPEED_LEVEL, MIN_SPEED_LEVEL
from .dispatcher import CommandDispatcher, SleepFunc
from .exceptions import DispatchError, InvalidResponseError
from .models import FanState
from .protocol import (
    encode_set_power,
    encode_set_speed,
    encode_status_query,
    percentage_to_level,
)
from .transport import UdpTransport

_LOGGER = logging.getLogger(__name__)


class UdpFan:
    """Speed and power control for one fan board.

    Reads are served from a short-lived cache when possible and fall back to
    the last known state when the device does not answer. Writes always go
    to the device and store the state the device confirms, not the state
    that was asked for.
    """

    def __init__(
        self,
        config: FanConfig,
        *,
        transport: UdpTransport,
        monotonic: Callable[[], float] | None = None,
        sleep: SleepFunc | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Wire the dispatcher, confirmation flow and cache for ``config``."""

        self._config = config
        self._logger = logger or _LOGGER
        self._dispatcher = CommandDispatcher(
            transport,
            config.address,
            policy=config.retry_policy,
            sleep=sleep,
            logger=self._logger,
        )
        self._confirmation = ConfirmationCoordinator(
            self._dispatcher,
            settle_delay=config.settle_delay,
            sleep=sleep,
            logger=self._logger,
        )
        self._cache = StateCache(config.cache_timeout, monotonic=monotonic)

    @property
    def name(self) -> str:
        """Return the display name."""

        return self._config.name

    @property
    def config(self) -> FanConfig:
        """Return the accessory configuration."""

        return self._config

    @property
    def cache(self) -> StateCache:
        """Return the state cache."""

        return self._cache

    async def async_get_state(self) -> FanState:
        """Return the fan state, preferring fresh cache over the network."""

        cached = self._cache.read()
        if cached is not None:
            self._logger.debug("%s: serving cached %s", self.name, cached)
            return cached
        try:
            return await self._async_query_state()
        except DispatchError as exc:
            stale = self._cache.read_stale_fallback()
            if stale is None:
                raise
            self._logger.warning(
                "%s: status query failed (%s), using last known %s",
                self.name,
                exc,
                stale,
            )
            return stale

    async def async_get_speed(self) -> float:
        """Return the speed as a 0-100 percentage."""

        return (await self.async_get_state()).percentage

    async def async_get_active(self) -> int:
        """Return 1 when the fan is running, else 0."""

        return 1 if (await self.async_get_state()).active else 0

    async def async_set_speed(self, percentage: float) -> FanState:
        """Set the speed and return the state the device confirmed."""

        level = percentage_to_level(percentage)
        message = encode_set_speed(level)
        confirmed = await self._confirmation.async_set_with_confirmation(
            message, level
        )
        state = self._to_state(confirmed, message)
        self._cache.write(state)
        return state

    async def async_set_active(self, active: bool | int) -> FanState:
        """Switch the fan on or off and return the resulting state.

        Switching on may resume whatever speed the board last ran at, so the
        state is read back. Switching off is known to mean level 0.
        """

        await self._dispatcher.async_send_command(encode_set_power(active))
        if active:
            return await self._async_query_state()
        state = FanState(MIN_SPEED_LEVEL)
        self._cache.write(state)
        return state

    async def _async_query_state(self) -> FanState:
        message = encode_status_query()
        level = await self._dispatcher.async_query(message)
        state = self._to_state(level, message)
        self._cache.write(state)
        return state

    def _to_state(self, level: int, message: str) -> FanState:
        if not MIN_SPEED_LEVEL <= level <= MAX_SPEED_LEVEL:
            raise InvalidResponseError(
                f"{self._config.address} reported speed level {level} "
                f"outside {MIN_SPEED_LEVEL}..{MAX_SPEED_LEVEL}",
                message,
                1,
            )
        return FanState(level)
