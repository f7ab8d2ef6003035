"""Constants for the UDP fan controller."""

from datetime import timedelta
from typing import Final

DOMAIN: Final = "udp_fan"

# Wire commands
CMD_STATUS: Final = "s"
CMD_SPEED: Final = "s"
CMD_POWER: Final = "f"
FIELD_SEPARATOR: Final = ","

# Device speed range
MIN_SPEED_LEVEL: Final = 0
MAX_SPEED_LEVEL: Final = 3
PERCENT_PER_LEVEL: Final = 33.33

DEFAULT_NAME: Final = "Fan"
DEFAULT_MAX_RETRIES: Final = 3
DEFAULT_RETRY_DELAY: Final = timedelta(milliseconds=200)
DEFAULT_TIMEOUT: Final = timedelta(milliseconds=1000)
DEFAULT_CACHE_TIMEOUT: Final = timedelta(milliseconds=2000)
DEFAULT_SETTLE_DELAY: Final = timedelta(milliseconds=100)

DEFAULT_BIND_HOST: Final = "0.0.0.0"
DEFAULT_BIND_PORT: Final = 0
