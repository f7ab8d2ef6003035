"""Send commands to a fan board and optionally wait for its status reply."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import timedelta

from .const import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY, DEFAULT_TIMEOUT
from .exceptions import (
    DispatchError,
    InvalidResponseError,
    ParseError,
    ResponseTimeoutError,
    SendError,
    SendExhaustedError,
)
from .models import DeviceAddress
from .protocol import parse_status
from .transport import UdpTransport

_LOGGER = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Flat-delay retry settings applied to every dispatch."""

    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: timedelta = DEFAULT_RETRY_DELAY
    timeout: timedelta = DEFAULT_TIMEOUT


class CommandDispatcher:
    """Run the send, wait and resend cycle for one device address.

    Send failures and reply timeouts are both retried with a full resend,
    up to ``max_retries`` extra attempts. A reply that cannot be parsed is
    reported immediately since resending does not fix a corrupt payload.
    """

    def __init__(
        self,
        transport: UdpTransport,
        address: DeviceAddress,
        *,
        policy: RetryPolicy | None = None,
        sleep: SleepFunc | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Bind the shared transport, target address and retry settings."""

        self._transport = transport
        self._address = address
        self._policy = policy or RetryPolicy()
        self._sleep = sleep or asyncio.sleep
        self._logger = logger or _LOGGER

    @property
    def address(self) -> DeviceAddress:
        """Return the device address commands are sent to."""

        return self._address

    @property
    def policy(self) -> RetryPolicy:
        """Return the default retry settings."""

        return self._policy

    async def async_dispatch(
        self,
        message: str,
        *,
        expect_response: bool,
        max_retries: int | None = None,
        retry_delay: timedelta | None = None,
        timeout: timedelta | None = None,
    ) -> int | None:
        """Send ``message`` and return the parsed reply when one is expected.

        Raises :class:`SendExhaustedError` or :class:`ResponseTimeoutError`
        once every attempt has failed, and :class:`InvalidResponseError` as
        soon as an unparseable reply arrives.
        """

        policy = self._resolve_policy(max_retries, retry_delay, timeout)
        if not expect_response:
            return await self._async_run(message, policy, expect_response=False)
        async with self._transport.query_lock(self._address):
            return await self._async_run(message, policy, expect_response=True)

    async def async_send_command(self, message: str) -> None:
        """Send a command that the device never answers."""

        await self.async_dispatch(message, expect_response=False)

    async def async_query(self, message: str) -> int:
        """Send a query and return the integer the device replies with."""

        result = await self.async_dispatch(message, expect_response=True)
        if result is None:  # pragma: no cover - replies always parse to int
            raise InvalidResponseError("Empty reply", message, 1)
        return result

    def _resolve_policy(
        self,
        max_retries: int | None,
        retry_delay: timedelta | None,
        timeout: timedelta | None,
    ) -> RetryPolicy:
        policy = self._policy
        if max_retries is not None:
            policy = replace(policy, max_retries=max_retries)
        if retry_delay is not None:
            policy = replace(policy, retry_delay=retry_delay)
        if timeout is not None:
            policy = replace(policy, timeout=timeout)
        return policy

    async def _async_run(
        self, message: str, policy: RetryPolicy, *, expect_response: bool
    ) -> int | None:
        payload = message.encode("ascii")
        attempt = 0
        while True:
            self._logger.debug(
                "Sending %r to %s (attempt %d)", message, self._address, attempt + 1
            )
            error: DispatchError
            try:
                if not expect_response:
                    await self._transport.async_send(payload, self._address)
                    return None
                return await self._async_send_and_wait(
                    payload, message, policy.timeout, attempt
                )
            except SendError as exc:
                error = SendExhaustedError(
                    f"could not send {message!r} to {self._address} "
                    f"after {attempt + 1} attempts: {exc}",
                    message,
                    attempt + 1,
                )
                cause: Exception = exc
            except asyncio.TimeoutError as exc:
                error = ResponseTimeoutError(
                    f"no reply to {message!r} from {self._address} "
                    f"after {attempt + 1} attempts",
                    message,
                    attempt + 1,
                )
                cause = exc

            if attempt >= policy.max_retries:
                raise error from cause
            attempt += 1
            self._logger.warning(
                "Retrying %r to %s (%s), attempt %d of %d",
                message,
                self._address,
                error.kind.value,
                attempt + 1,
                policy.max_retries + 1,
            )
            await self._sleep(policy.retry_delay.total_seconds())

    async def _async_send_and_wait(
        self, payload: bytes, message: str, timeout: timedelta, attempt: int
    ) -> int:
        loop = asyncio.get_running_loop()
        reply: asyncio.Future[bytes] = loop.create_future()

        def _on_datagram(data: bytes, addr: tuple[str, int]) -> None:
            if not reply.done():
                reply.set_result(data)

        # Listen before sending so a fast reply cannot slip past.
        with self._transport.subscribe(_on_datagram):
            await self._transport.async_send(payload, self._address)
            data = await asyncio.wait_for(reply, timeout.total_seconds())

        try:
            return parse_status(data)
        except ParseError as exc:
            raise InvalidResponseError(
                f"reply to {message!r} from {self._address} is not a status: {exc}",
                message,
                attempt + 1,
            ) from exc
