"""Callback style adapter between a host framework and :class:`UdpFan`.

Host frameworks that drive accessories through ``callback(err, value)``
handlers do not await coroutines. Each method here schedules the matching
fan operation on the event loop and reports its outcome to the callback
exactly once.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine, Mapping
from typing import Any

from .config import FanConfig
from .dispatcher import SleepFunc
from .exceptions import UdpFanError
from .fan import UdpFan
from .transport import DEFAULT_REGISTRY, TransportRegistry

_LOGGER = logging.getLogger(__name__)

ReadCallback = Callable[[BaseException | None, Any], None]
WriteCallback = Callable[[BaseException | None], None]


class FanAccessory:
    """Expose speed and power of one fan through completion callbacks."""

    def __init__(
        self,
        config: FanConfig | Mapping[str, Any],
        *,
        registry: TransportRegistry | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        logger: logging.Logger | None = None,
        monotonic: Callable[[], float] | None = None,
        sleep: SleepFunc | None = None,
    ) -> None:
        """Validate ``config`` and join the shared transport of ``registry``."""

        if not isinstance(config, FanConfig):
            config = FanConfig.from_dict(config)
        self._logger = logger or _LOGGER
        self._loop = loop
        self._registry = registry or DEFAULT_REGISTRY
        self._transport = self._registry.acquire()
        self._pending: set[asyncio.Task[None]] = set()
        self.fan = UdpFan(
            config,
            transport=self._transport,
            monotonic=monotonic,
            sleep=sleep,
            logger=self._logger,
        )

    @property
    def name(self) -> str:
        """Return the display label of the accessory."""

        return self.fan.name

    def get_speed(self, callback: ReadCallback) -> asyncio.Task[None]:
        """Report the speed percentage to ``callback``."""

        return self._schedule(
            self.fan.async_get_speed(), callback, "Error getting speed", True
        )

    def set_speed(self, value: float, callback: WriteCallback) -> asyncio.Task[None]:
        """Set the speed percentage and report completion to ``callback``."""

        return self._schedule(
            self.fan.async_set_speed(value), callback, "Error setting speed", False
        )

    def get_active(self, callback: ReadCallback) -> asyncio.Task[None]:
        """Report 1 or 0 for the power state to ``callback``."""

        return self._schedule(
            self.fan.async_get_active(),
            callback,
            "Error getting active state",
            True,
        )

    def set_active(self, value: int, callback: WriteCallback) -> asyncio.Task[None]:
        """Switch power on (1) or off (0) and report completion to ``callback``."""

        return self._schedule(
            self.fan.async_set_active(value),
            callback,
            "Error setting active state",
            False,
        )

    async def async_close(self) -> None:
        """Wait for scheduled operations and release the shared transport."""

        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self._registry.async_release(self._transport)

    def _schedule(
        self,
        operation: Coroutine[Any, Any, Any],
        callback: Callable[..., None],
        description: str,
        with_value: bool,
    ) -> asyncio.Task[None]:
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(
            self._async_complete(operation, callback, description, with_value)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _async_complete(
        self,
        operation: Coroutine[Any, Any, Any],
        callback: Callable[..., None],
        description: str,
        with_value: bool,
    ) -> None:
        try:
            value = await operation
        except asyncio.CancelledError:
            self._deliver(callback, UdpFanError(f"{description}: cancelled"))
            raise
        except UdpFanError as exc:
            self._logger.error("%s: %s", description, exc)
            self._deliver(callback, exc)
            return
        except Exception as exc:
            self._logger.exception("%s: unexpected failure", description)
            self._deliver(callback, exc)
            return
        if with_value:
            self._deliver(callback, None, value)
        else:
            self._deliver(callback, None)

    def _deliver(self, callback: Callable[..., None], *args: Any) -> None:
        try:
            callback(*args)
        except Exception:
            self._logger.exception("Callback for %s raised", self.name)
