"""
Bisection over replication sequences.

Descriptors are published in strictly increasing order, so the sequence ->
timestamp mapping is monotonic and the latest descriptor at or before a
target time can be found with O(log n) remote fetches.

Gaps can only exist at the leading edge of publication. A sequence whose
descriptor is missing, lacks a timestamp or carries an unparsable one is
therefore treated as lying after the target.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger

from osm_diff_state.constants import TIMESTAMP_KEY, Period
from osm_diff_state.errors import (
    FetchError,
    FieldNotFound,
    InvalidSequenceNumber,
    InvalidTimestamp,
    NoSuitableSequence,
)
from osm_diff_state.replication.sequence import sequence_url
from osm_diff_state.utils.timestamps import format_epoch, to_epoch


class StateReader(Protocol):
    """Anything able to read one field from a descriptor URL."""

    def get_state_param(self, url: str, name: str) -> str: ...


@dataclass
class Probe:
    """
    Outcome of reading one sequence during bisection.

    Attributes:
        sequence: Probed sequence number.
        url: Descriptor URL (empty if it could not be built).
        epoch: Descriptor timestamp, or None if the probe was unusable.
        error: Reason the probe was unusable.
        malformed: The descriptor was fetched but its timestamp did not parse.
    """
    sequence: int
    url: str
    epoch: int | None = None
    error: str | None = None
    malformed: bool = False

    @property
    def usable(self) -> bool:
        return self.epoch is not None


def estimate_window(
    latest_sequence: int,
    latest_epoch: int,
    target_epoch: int,
    period: Period,
    clamp: bool = True,
) -> tuple[int, int]:
    """
    Estimates inclusive search bounds from the publication rate.

    Converts the time gap between the latest descriptor and the target into
    a sequence gap, assuming one sequence per period, with one sequence of
    margin.

    Args:
        latest_sequence: Sequence number from state.txt.
        latest_epoch: Timestamp of the latest descriptor.
        target_epoch: Requested time (not after latest_epoch).
        period: Replication period of the sequence space.
        clamp: Clamp the lower bound to 0.

    Returns:
        Tuple of (low, high).
    """
    gap = (latest_epoch - target_epoch) // period.seconds
    low = latest_sequence - gap - 1
    if clamp:
        low = max(low, 0)
    return low, latest_sequence


def read_probe(reader: StateReader, base_url: str, sequence: int) -> Probe:
    """
    Reads and normalizes the timestamp of one sequence.

    Failures are recorded on the returned Probe instead of being raised.
    """
    try:
        url = sequence_url(base_url, sequence)
    except InvalidSequenceNumber as e:
        return Probe(sequence, "", error=str(e))

    try:
        raw = reader.get_state_param(url, TIMESTAMP_KEY)
    except (FetchError, FieldNotFound) as e:
        return Probe(sequence, url, error=str(e))

    try:
        return Probe(sequence, url, epoch=to_epoch(raw))
    except InvalidTimestamp:
        return Probe(sequence, url, error=f"unparsable timestamp '{raw}'", malformed=True)


def bisect_sequence(
    reader: StateReader,
    base_url: str,
    target_epoch: int,
    low: int,
    high: int,
    on_probe: Callable[[Probe], Any] | None = None,
    log=logger,
) -> int:
    """
    Finds the highest sequence whose timestamp is at or before the target.

    Args:
        reader: Descriptor reader (usually a StateClient).
        base_url: Directory containing the sequence folders.
        target_epoch: Requested time in epoch seconds.
        low: Lowest sequence to consider (inclusive).
        high: Highest sequence to consider (inclusive).
        on_probe: Called with every Probe, in order.
        log: Logger receiving per-probe traces.

    Returns:
        The matching sequence number.

    Raises:
        NoSuitableSequence: If no usable sequence in [low, high] is at or
            before the target.
    """
    log.debug(f"Bisecting sequences {low}..{high} for {format_epoch(target_epoch)}")
    best: int | None = None

    while low <= high:
        mid = (low + high) // 2
        probe = read_probe(reader, base_url, mid)
        if on_probe is not None:
            on_probe(probe)

        if not probe.usable:
            if probe.malformed:
                log.warning(f"Could not parse timestamp for sequence {mid} ({probe.url}): skipping it")
            else:
                log.debug(f"Sequence {mid} unusable: {probe.error}")
            high = mid - 1
            continue

        if probe.epoch <= target_epoch:
            best = mid
            low = mid + 1
        else:
            high = mid - 1
        log.debug(f"Sequence {mid} at {format_epoch(probe.epoch)} -> window {low}..{high}")

    if best is None:
        raise NoSuitableSequence(f"No suitable state file found for {format_epoch(target_epoch)}")
    return best
