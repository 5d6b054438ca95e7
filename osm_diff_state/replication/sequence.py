"""
Sequence number <-> descriptor URL mapping.

Sequence 1234 lives at <base>/000/001/234.state.txt: the number is zero
padded to 9 digits and split into three 3-digit path segments.
"""

import re

from osm_diff_state.constants import (
    MAX_SEQUENCE_NUMBER,
    SEQUENCE_DIGITS,
    SEQUENCE_FILE_SUFFIX,
    SEQUENCE_GROUP_WIDTH,
    STATE_FILE_NAME,
)
from osm_diff_state.errors import InvalidSequenceNumber

SEQUENCE_PATH_RE = re.compile(r"/(\d{3})/(\d{3})/(\d{3})\.state\.txt$")


def validate_sequence_number(sequence: int) -> int:
    """
    Ensures the value is an addressable sequence number.

    Raises:
        InvalidSequenceNumber: For non-integers, negatives and values
            that do not fit in 9 digits.
    """
    if isinstance(sequence, bool) or not isinstance(sequence, int):
        raise InvalidSequenceNumber(f"Sequence number must be an integer. Got: {sequence!r}")
    if sequence < 0 or sequence > MAX_SEQUENCE_NUMBER:
        raise InvalidSequenceNumber(
            f"Sequence number must be between 0 and {MAX_SEQUENCE_NUMBER}. Got: {sequence}"
        )
    return sequence


def sequence_path(sequence: int) -> str:
    """
    Builds the sharded path of a sequence, e.g. 1234 -> '000/001/234'.
    """
    padded = f"{validate_sequence_number(sequence):0{SEQUENCE_DIGITS}d}"
    groups = [
        padded[i:i + SEQUENCE_GROUP_WIDTH]
        for i in range(0, SEQUENCE_DIGITS, SEQUENCE_GROUP_WIDTH)
    ]
    return "/".join(groups)


def sequence_url(base_url: str, sequence: int) -> str:
    """
    Generates the URL of the descriptor for a sequence number.

    Args:
        base_url: Directory containing state.txt and the sequence folders.
        sequence: Non-negative sequence number.

    Returns:
        Full descriptor URL.

    Raises:
        InvalidSequenceNumber: If the sequence is not addressable.
    """
    path = sequence_path(sequence)
    return f"{base_url.removesuffix('/')}/{path}{SEQUENCE_FILE_SUFFIX}"


def parse_sequence_url(url: str) -> int:
    """
    Recovers the sequence number from a descriptor URL.

    Raises:
        InvalidSequenceNumber: If the URL does not end in a sharded path.
    """
    match = SEQUENCE_PATH_RE.search(url)
    if not match:
        raise InvalidSequenceNumber(f"Not a sequence descriptor URL: '{url}'", url=url)
    return int("".join(match.groups()))


def state_url(base_url: str) -> str:
    """URL of the latest-state descriptor in a directory."""
    return f"{base_url.removesuffix('/')}/{STATE_FILE_NAME}"
