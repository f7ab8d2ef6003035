"""Verify unacknowledged state changes by reading the state back."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from .const import DEFAULT_SETTLE_DELAY
from .dispatcher import CommandDispatcher, SleepFunc
from .protocol import encode_status_query

_LOGGER = logging.getLogger(__name__)


class ConfirmationCoordinator:
    """Issue a set command, read the device back and correct once on mismatch."""

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        *,
        settle_delay: timedelta = DEFAULT_SETTLE_DELAY,
        sleep: SleepFunc | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Bind the dispatcher used for both the command and the read back."""

        self._dispatcher = dispatcher
        self._settle_delay = settle_delay
        self._sleep = sleep or asyncio.sleep
        self._logger = logger or _LOGGER

    async def async_set_with_confirmation(
        self, message: str, intended_level: int
    ) -> int:
        """Send ``message`` and return the level the device reports afterwards.

        When the reported level differs from ``intended_level`` the command is
        sent one more time without a second read back. The returned value is
        always the level read after the first command.
        """

        await self._dispatcher.async_send_command(message)
        await self._sleep(self._settle_delay.total_seconds())
        actual = await self._dispatcher.async_query(encode_status_query())
        if actual != intended_level:
            self._logger.warning(
                "%s reports level %s after %r (expected %s), resending",
                self._dispatcher.address,
                actual,
                message,
                intended_level,
            )
            await self._dispatcher.async_send_command(message)
        return actual
