"""Controller for fan boards speaking a plain text protocol over UDP.

The public entry points are :class:`UdpFan` for asyncio callers and
:class:`FanAccessory` for host frameworks that complete operations through
``callback(err, value)`` handlers.
"""

from __future__ import annotations

from .accessory import FanAccessory
from .config import FanConfig, load_config_file
from .const import DOMAIN
from .exceptions import (
    ConfigError,
    DispatchError,
    DispatchFailure,
    InvalidResponseError,
    ParseError,
    ResponseTimeoutError,
    SendError,
    SendExhaustedError,
    UdpFanError,
)
from .fan import UdpFan
from .models import DeviceAddress, FanState
from .transport import DEFAULT_REGISTRY, TransportRegistry, UdpTransport

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_REGISTRY",
    "DOMAIN",
    "ConfigError",
    "DeviceAddress",
    "DispatchError",
    "DispatchFailure",
    "FanAccessory",
    "FanConfig",
    "FanState",
    "InvalidResponseError",
    "ParseError",
    "ResponseTimeoutError",
    "SendError",
    "SendExhaustedError",
    "TransportRegistry",
    "UdpFan",
    "UdpFanError",
    "UdpTransport",
    "load_config_file",
]
