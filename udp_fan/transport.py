"""Shared asyncio UDP endpoint used to reach fan controller boards.

One socket is bound per local address and multiplexed across every fan
that talks through it. Inbound datagrams carry no correlation data, so each
registered handler sees every datagram and must decide for itself whether
it is interested. Handlers are registered through :class:`Subscription`
handles that remove themselves when a query finishes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from .const import DEFAULT_BIND_HOST, DEFAULT_BIND_PORT
from .exceptions import SendError
from .models import DeviceAddress

_LOGGER = logging.getLogger(__name__)

DatagramHandler = Callable[[bytes, tuple[str, int]], None]


class Subscription:
    """Registration of one datagram handler on a :class:`UdpTransport`."""

    def __init__(self, transport: UdpTransport, handler: DatagramHandler) -> None:
        """Bind the handle to the transport it was registered on."""

        self._transport = transport
        self._handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        """Return whether the handler still receives datagrams."""

        return self._active

    def remove(self) -> None:
        """Stop delivering datagrams to the handler; safe to call twice."""

        if not self._active:
            return
        self._active = False
        self._transport.remove_handler(self._handler)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.remove()


class _DatagramProtocol(asyncio.DatagramProtocol):
    def __init__(self, outer: UdpTransport) -> None:
        self._outer = outer
        self._transport: asyncio.BaseTransport | None = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._transport = transport

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        self._outer._handle_datagram(data, addr)

    def error_received(self, exc: Exception) -> None:
        self._outer._handle_error(exc)

    def connection_lost(self, exc: Exception | None) -> None:
        self._outer._handle_connection_lost(self._transport, exc)


class UdpTransport:
    """Async UDP socket shared by all fans bound to the same local address."""

    def __init__(
        self,
        *,
        local_host: str = DEFAULT_BIND_HOST,
        local_port: int = DEFAULT_BIND_PORT,
        loop: asyncio.AbstractEventLoop | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Store bind settings; the socket is opened lazily on first use."""

        self._local_host = local_host
        self._local_port = local_port
        self._loop = loop
        self._logger = logger or _LOGGER
        self._socket: asyncio.DatagramTransport | None = None
        self._handlers: list[DatagramHandler] = []
        self._query_locks: dict[DeviceAddress, asyncio.Lock] = {}
        self._start_lock = asyncio.Lock()
        self._send_error: Exception | None = None

    @property
    def bind_address(self) -> tuple[str, int]:
        """Return the configured local bind address."""

        return (self._local_host, self._local_port)

    @property
    def local_address(self) -> tuple[str, int] | None:
        """Return the address the socket is actually bound to, if open."""

        if self._socket is None:
            return None
        sockname: Any = self._socket.get_extra_info("sockname")
        return (sockname[0], sockname[1]) if sockname else None

    @property
    def is_open(self) -> bool:
        """Return whether the socket is bound and not closing."""

        return self._socket is not None and not self._socket.is_closing()

    @property
    def handler_count(self) -> int:
        """Return the number of registered datagram handlers."""

        return len(self._handlers)

    async def async_start(self) -> None:
        """Bind the UDP socket if it is not open yet."""

        async with self._start_lock:
            if self.is_open:
                return
            loop = self._loop or asyncio.get_running_loop()
            transport, _protocol = await loop.create_datagram_endpoint(
                lambda: _DatagramProtocol(self),
                local_addr=(self._local_host, self._local_port),
            )
            self._socket = transport
            self._logger.debug("UDP socket bound to %s", self.local_address)

    async def async_close(self) -> None:
        """Close the socket and drop every handler."""

        async with self._start_lock:
            if self._socket is not None:
                self._socket.close()
                self._socket = None
            self._handlers.clear()

    async def async_send(self, payload: bytes, address: DeviceAddress) -> None:
        """Hand ``payload`` to the OS for delivery to ``address``.

        Raises :class:`SendError` when the socket is closed or the OS
        rejects the datagram immediately.
        """

        if self._socket is None:
            await self.async_start()
        transport = self._socket
        if transport is None or transport.is_closing():
            raise SendError(f"Socket closed, cannot send to {address}")

        self._send_error = None
        try:
            transport.sendto(payload, address.as_tuple())
        except OSError as exc:
            raise SendError(f"Failed to send to {address}: {exc}") from exc
        # Selector transports report immediate sendto failures through
        # error_received before sendto returns.
        error, self._send_error = self._send_error, None
        if error is not None:
            raise SendError(f"Failed to send to {address}: {error}") from error

    def subscribe(self, handler: DatagramHandler) -> Subscription:
        """Register ``handler`` for every inbound datagram."""

        self._handlers.append(handler)
        return Subscription(self, handler)

    def remove_handler(self, handler: DatagramHandler) -> None:
        """Unregister ``handler`` if it is still registered."""

        if handler in self._handlers:
            self._handlers.remove(handler)

    def query_lock(self, address: DeviceAddress) -> asyncio.Lock:
        """Return the lock serializing reply-expecting queries to ``address``."""

        return self._query_locks.setdefault(address, asyncio.Lock())

    def _handle_datagram(self, data: bytes, addr: tuple[str, int]) -> None:
        self._logger.debug("Received %r from %s:%s", data, addr[0], addr[1])
        for handler in list(self._handlers):
            handler(data, addr)

    def _handle_error(self, exc: Exception) -> None:
        self._send_error = exc
        self._logger.debug("UDP socket reported error: %s", exc)

    def _handle_connection_lost(
        self, transport: asyncio.BaseTransport | None, exc: Exception | None
    ) -> None:
        if exc is not None:
            self._logger.debug("UDP socket lost: %s", exc)
        if transport is not None and transport is self._socket:
            self._socket = None


class TransportRegistry:
    """Hand out one shared :class:`UdpTransport` per local bind address."""

    def __init__(self) -> None:
        """Start with no open transports."""

        self._transports: dict[tuple[str, int], UdpTransport] = {}
        self._users: dict[tuple[str, int], int] = {}

    def acquire(
        self,
        local_host: str = DEFAULT_BIND_HOST,
        local_port: int = DEFAULT_BIND_PORT,
    ) -> UdpTransport:
        """Return the transport for the bind address and count one more user."""

        key = (local_host, local_port)
        transport = self._transports.get(key)
        if transport is None:
            transport = UdpTransport(local_host=local_host, local_port=local_port)
            self._transports[key] = transport
        self._users[key] = self._users.get(key, 0) + 1
        return transport

    async def async_release(self, transport: UdpTransport) -> None:
        """Drop one user of ``transport`` and close it after the last one."""

        key = transport.bind_address
        if self._transports.get(key) is not transport:
            return
        remaining = self._users.get(key, 1) - 1
        if remaining > 0:
            self._users[key] = remaining
            return
        del self._transports[key]
        self._users.pop(key, None)
        await transport.async_close()

    def users(self, transport: UdpTransport) -> int:
        """Return how many owners currently hold ``transport``."""

        if self._transports.get(transport.bind_address) is not transport:
            return 0
        return self._users.get(transport.bind_address, 0)


DEFAULT_REGISTRY = TransportRegistry()
