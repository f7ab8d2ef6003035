"""Exception hierarchy for the UDP fan controller."""

from __future__ import annotations

from enum import Enum


class UdpFanError(RuntimeError):
    """Base class for all controller errors."""


class ConfigError(UdpFanError):
    """Raised when accessory configuration is missing or invalid."""


class SendError(UdpFanError):
    """Raised when a datagram could not be handed to the socket."""


class ParseError(UdpFanError, ValueError):
    """Raised when a status reply does not start with an integer field."""


class DispatchFailure(str, Enum):
    """Terminal failure classes reported by the command dispatcher."""

    SEND_EXHAUSTED = "send exhausted"
    TIMEOUT = "timeout"
    INVALID_RESPONSE = "invalid response"


class DispatchError(UdpFanError):
    """Terminal failure of one dispatch call after its retries ran out."""

    kind: DispatchFailure

    def __init__(self, message: str, command: str, attempts: int) -> None:
        """Record the failed command and the number of send attempts made."""

        super().__init__(message)
        self.command = command
        self.attempts = attempts

    def __str__(self) -> str:
        """Describe the failure class first so host logs are easy to scan."""

        return f"{self.kind.value}: {self.args[0]}"


class SendExhaustedError(DispatchError):
    """Every send attempt failed at the socket."""

    kind = DispatchFailure.SEND_EXHAUSTED


class ResponseTimeoutError(DispatchError):
    """No reply arrived within the deadline on any attempt."""

    kind = DispatchFailure.TIMEOUT


class InvalidResponseError(DispatchError):
    """A reply arrived but could not be used as a speed level."""

    kind = DispatchFailure.INVALID_RESPONSE
