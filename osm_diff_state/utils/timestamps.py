"""
Timestamp normalization.

Converts user supplied and descriptor timestamps into UTC epoch seconds
using a fixed, ordered list of formats so parsing behaves the same on
every platform.
"""

from datetime import datetime, timezone

from osm_diff_state.errors import InvalidTimestamp

# Ordered from most to least specific; the first match wins.
TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H",
    "%Y-%m-%d",
)

ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
"""Canonical form used in replication descriptors"""


def normalize_timestamp_string(value: str) -> str:
    """
    Brings a timestamp into the shape expected by TIMESTAMP_FORMATS.

    Strips surrounding whitespace and a trailing 'Z', and turns the 'T'
    date/time separator into a space.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1]
    return text.replace("T", " ", 1)


def to_epoch(value: str) -> int:
    """
    Converts a date string to a Unix epoch timestamp.

    Accepts YYYY-MM-DD[<T|space>HH[:MM[:SS]]][Z]. The value is always
    interpreted as UTC.

    Args:
        value: Date or date-time string.

    Returns:
        Seconds since the Unix epoch.

    Raises:
        InvalidTimestamp: If no accepted format matches.
    """
    if not isinstance(value, str):
        raise InvalidTimestamp(f"Invalid date format {value!r}. Use YYYY-MM-DD[THH[:MM[:SS]]][Z]")

    text = normalize_timestamp_string(value)
    for fmt in TIMESTAMP_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return int(parsed.replace(tzinfo=timezone.utc).timestamp())

    raise InvalidTimestamp(f"Invalid date format {value!r}. Use YYYY-MM-DD[THH[:MM[:SS]]][Z]")


def format_epoch(epoch: int, fmt: str = ISO_FORMAT) -> str:
    """
    Renders epoch seconds as a UTC string.

    Args:
        epoch: Seconds since the Unix epoch.
        fmt: strftime pattern, defaults to the descriptor form.

    Returns:
        Formatted timestamp.
    """
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime(fmt)
