"""Plain text wire protocol spoken by the fan controller board.

Outbound commands are short ASCII strings sent as single datagrams:

* ``s``         query the current speed level
* ``s,<level>`` set the speed level (0-3)
* ``f,<flag>``  switch the fan off (0) or on (1)

Only the status query is answered. A reply is ASCII text whose first
comma separated field is the current speed level; any further fields are
ignored. Set commands are never acknowledged.
"""

from __future__ import annotations

import math

from .const import (
    CMD_POWER,
    CMD_SPEED,
    CMD_STATUS,
    FIELD_SEPARATOR,
    MAX_SPEED_LEVEL,
    MIN_SPEED_LEVEL,
    PERCENT_PER_LEVEL,
)
from .exceptions import ParseError


def encode_status_query() -> str:
    """Return the status query command."""

    return CMD_STATUS


def encode_set_speed(level: int) -> str:
    """Return the command setting ``level``."""

    return f"{CMD_SPEED}{FIELD_SEPARATOR}{clamp_level(level)}"


def encode_set_power(active: bool | int) -> str:
    """Return the command switching the fan on or off."""

    return f"{CMD_POWER}{FIELD_SEPARATOR}{1 if active else 0}"


def parse_status(datagram: bytes | bytearray | str) -> int:
    """Decode the first field of a status reply as a base 10 integer.

    No range check is applied here; callers decide which values are
    acceptable.
    """

    if isinstance(datagram, bytes | bytearray):
        try:
            text = datagram.decode("ascii")
        except UnicodeDecodeError as exc:
            raise ParseError(f"Reply is not ASCII text: {datagram!r}") from exc
    else:
        text = datagram
    field = text.split(FIELD_SEPARATOR, 1)[0].strip()
    try:
        return int(field, 10)
    except ValueError as exc:
        raise ParseError(f"Reply does not start with an integer: {text!r}") from exc


def clamp_level(level: int) -> int:
    """Clamp ``level`` into the device speed range."""

    return max(MIN_SPEED_LEVEL, min(MAX_SPEED_LEVEL, int(level)))


def percentage_to_level(percentage: float) -> int:
    """Map a 0-100 percentage to the nearest speed level.

    Halves round up, so 50% selects level 2.
    """

    return clamp_level(math.floor(percentage / PERCENT_PER_LEVEL + 0.5))


def level_to_percentage(level: int) -> float:
    """Map a speed level to its host facing percentage."""

    return level * PERCENT_PER_LEVEL
