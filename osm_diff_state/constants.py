"""
Global constants used across the replication sequence locator.
"""

from enum import Enum


class Period(str, Enum):
    """Replication periods, each with an independent sequence space."""
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"

    @property
    def seconds(self) -> int:
        """Seconds covered by one sequence of this period."""
        return PERIOD_SECONDS[self.value]


PERIOD_SECONDS = {
    "minute": 60,
    "hour": 3600,
    "day": 86400,
}
"""Seconds-per-unit divisor used to estimate the initial search window"""

VALID_PERIODS = tuple(p.value for p in Period)

DEFAULT_URL = "https://planet.osm.org/replication/"
"""Replication root used when no URL is given"""

# Descriptor layout
STATE_FILE_NAME = "state.txt"
SEQUENCE_FILE_SUFFIX = ".state.txt"
SEQUENCE_DIGITS = 9
SEQUENCE_GROUP_WIDTH = 3
MAX_SEQUENCE_NUMBER = 10 ** SEQUENCE_DIGITS - 1
"""Largest sequence number addressable by the 9-digit sharded path"""

SEQUENCE_NUMBER_KEY = "sequenceNumber"
TIMESTAMP_KEY = "timestamp"

# Network defaults
MAX_REDIRECTS = 5
"""Redirects followed when fetching a descriptor"""

FETCH_TIMEOUT = 30
"""Seconds allowed for a single descriptor fetch"""

PROBE_TIMEOUT = 10
PROBE_RETRIES = 2

RESULT_PROBE_TIMEOUT = 5
"""Shorter sanity check on the selected descriptor"""
RESULT_PROBE_RETRIES = 1

USER_AGENT = "osm-diff-state/1.0.0"
