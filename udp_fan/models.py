"""Value types shared by the fan controller layers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .const import MAX_SPEED_LEVEL, MIN_SPEED_LEVEL
from .protocol import level_to_percentage, percentage_to_level


@dataclass(frozen=True, slots=True)
class DeviceAddress:
    """UDP peer that receives commands for one fan."""

    host: str
    port: int

    def as_tuple(self) -> tuple[str, int]:
        """Return the ``(host, port)`` pair expected by asyncio."""

        return (self.host, self.port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True, slots=True)
class FanState:
    """Known fan state; activity is always derived from the speed level."""

    speed_level: int

    def __post_init__(self) -> None:
        """Reject levels the device cannot report."""

        if not MIN_SPEED_LEVEL <= self.speed_level <= MAX_SPEED_LEVEL:
            msg = (
                f"Speed level {self.speed_level} outside "
                f"{MIN_SPEED_LEVEL}..{MAX_SPEED_LEVEL}"
            )
            raise ValueError(msg)

    @property
    def active(self) -> bool:
        """Return whether the fan is spinning."""

        return self.speed_level > 0

    @property
    def percentage(self) -> float:
        """Return the host facing speed percentage."""

        return level_to_percentage(self.speed_level)

    @classmethod
    def from_percentage(cls, percentage: float) -> FanState:
        """Build the state closest to ``percentage``."""

        return cls(percentage_to_level(percentage))


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Last known state and the monotonic time it was captured."""

    state: FanState
    captured_at: float

    def age(self, now: float) -> float:
        """Return the entry age in seconds."""

        return now - self.captured_at

    def is_fresh(self, now: float, timeout: timedelta) -> bool:
        """Return whether the entry is younger than ``timeout``."""

        return self.age(now) < timeout.total_seconds()
