"""
Replication sequence locator.

Ties URL resolution, descriptor reading, timestamp normalization and
bisection together to find the replication state file for a point in time.

Usage:
    url, outcome = locate("day", "2024-05-16", "https://planet.osm.org/replication/")
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger

from osm_diff_state.config.models import LocatorConfigModel
from osm_diff_state.constants import SEQUENCE_NUMBER_KEY, TIMESTAMP_KEY, Period
from osm_diff_state.core.search import Probe, bisect_sequence, estimate_window
from osm_diff_state.errors import FieldNotFound
from osm_diff_state.replication.sequence import sequence_url, state_url
from osm_diff_state.replication.state_client import StateClient
from osm_diff_state.utils.timestamps import format_epoch, to_epoch
from osm_diff_state.utils.url_resolver import resolve_base_url, validate_base_url
from osm_diff_state.utils.validation import validate_period


class Outcome(str, Enum):
    """How the returned descriptor relates to the requested time."""
    EXACT = "exact"
    """Latest descriptor at or before the target"""
    FUTURE_APPROXIMATION = "future_approximation"
    """Target is after the newest descriptor; the newest one is returned"""


@dataclass
class LocateResult:
    """
    Result of a locate call.

    Attributes:
        url: Descriptor URL of the selected sequence.
        outcome: Exact match or future approximation.
        sequence: Selected sequence number.
        timestamp: Epoch of the selected descriptor, when it was read.
        target_epoch: Requested time.
        base_url: Resolved replication directory.
        probes: Number of descriptors read during bisection.
    """
    url: str
    outcome: Outcome
    sequence: int
    timestamp: int | None
    target_epoch: int
    base_url: str
    probes: int = 0


@dataclass
class SequenceLocator:
    """
    Finds the replication descriptor for a timestamp.

    Holds only configuration and the HTTP client; every call to locate()
    starts from scratch and reads fresh remote data.
    """
    config: LocatorConfigModel = field(default_factory=LocatorConfigModel)
    client: Any = None
    probe: bool = True
    log: Any = field(default=logger.bind(component="locator"), repr=False)

    def __post_init__(self):
        """Creates the default HTTP client from configuration."""
        if self.client is None:
            self.client = StateClient(
                fetch_timeout=self.config.fetch_timeout,
                max_redirects=self.config.max_redirects,
                verify_ssl=self.config.verify_ssl,
                user_agent=self.config.user_agent,
                log=self.log.bind(component="client"),
            )

    def read_latest_state(self, base_url: str) -> tuple[int, str]:
        """
        Reads the sequence number and timestamp from state.txt.

        Returns:
            Tuple of (sequence_number, raw_timestamp).

        Raises:
            FetchError: If state.txt cannot be fetched.
            FieldNotFound: If a field is missing or the sequence is not numeric.
        """
        url = state_url(base_url)
        values = self.client.get_state_params(url, (SEQUENCE_NUMBER_KEY, TIMESTAMP_KEY))
        raw_sequence = values[SEQUENCE_NUMBER_KEY]
        if not raw_sequence.isdecimal():
            raise FieldNotFound(f"Invalid sequenceNumber '{raw_sequence}' in {url}", url=url)
        return int(raw_sequence), values[TIMESTAMP_KEY]

    def check_result(self, url: str) -> None:
        """Sanity check of the selected descriptor (short timeout, few retries)."""
        if self.probe:
            self.client.check_url_accessibility(
                url,
                timeout=self.config.result_probe_timeout,
                retries=self.config.result_probe_retries,
            )

    def locate_detailed(
        self,
        period: str | Period,
        timestamp: str,
        base_url: str | None = None,
        osm_like: bool | None = None,
        on_probe: Callable[[Probe], Any] | None = None,
    ) -> LocateResult:
        """
        Finds the descriptor of the latest sequence at or before a timestamp.

        Args:
            period: Replication period (minute, hour, day).
            timestamp: Target time, YYYY-MM-DD[THH[:MM[:SS]]][Z], UTC.
            base_url: Replication root, period directory or descriptor URL.
                Defaults to the configured URL.
            osm_like: Whether the server uses the planet.osm.org layout.
                Defaults to the configured value.
            on_probe: Called for every descriptor read during bisection.

        Returns:
            A LocateResult.

        Raises:
            InvalidPeriod: If the period is unknown.
            InvalidTimestamp: If the timestamp, or the one in state.txt,
                cannot be parsed.
            InvalidBaseUrl: If the URL resolves to an unusable directory.
            Unreachable: If the directory or the result does not answer.
            FetchError: If state.txt cannot be fetched.
            FieldNotFound: If state.txt lacks a required field.
            NoSuitableSequence: If every sequence is after the timestamp.
        """
        period = validate_period(period)
        target_epoch = to_epoch(timestamp)
        if base_url is None:
            base_url = self.config.default_url
        if osm_like is None:
            osm_like = self.config.osm_like

        effective_url = validate_base_url(resolve_base_url(base_url, period, osm_like, log=self.log))

        if self.probe:
            self.client.check_url_accessibility(
                effective_url,
                timeout=self.config.base_probe_timeout,
                retries=self.config.base_probe_retries,
            )

        latest_sequence, latest_raw = self.read_latest_state(effective_url)
        latest_epoch = to_epoch(latest_raw)
        self.log.info(f"Latest state: sequence {latest_sequence} at {format_epoch(latest_epoch)}")

        if target_epoch > latest_epoch:
            self.log.warning(
                f"Requested time {timestamp} is in the future. "
                f"Using latest available state ({format_epoch(latest_epoch)})"
            )
            latest_url = sequence_url(effective_url, latest_sequence)
            self.check_result(latest_url)
            return LocateResult(
                url=latest_url,
                outcome=Outcome.FUTURE_APPROXIMATION,
                sequence=latest_sequence,
                timestamp=latest_epoch,
                target_epoch=target_epoch,
                base_url=effective_url,
            )

        low, high = estimate_window(
            latest_sequence, latest_epoch, target_epoch, period, clamp=self.config.clamp_low_bound
        )
        self.log.debug(f"Initial search window: {low}..{high}")

        probes: list[Probe] = []

        def record(probe: Probe):
            probes.append(probe)
            if on_probe is not None:
                on_probe(probe)

        found = bisect_sequence(
            self.client, effective_url, target_epoch, low, high,
            on_probe=record, log=self.log,
        )
        found_epoch = next((p.epoch for p in reversed(probes) if p.sequence == found), None)
        result_url = sequence_url(effective_url, found)
        self.check_result(result_url)

        self.log.info(f"Found sequence {found} after {len(probes)} probes: {result_url}")
        return LocateResult(
            url=result_url,
            outcome=Outcome.EXACT,
            sequence=found,
            timestamp=found_epoch,
            target_epoch=target_epoch,
            base_url=effective_url,
            probes=len(probes),
        )

    def locate(
        self,
        period: str | Period,
        timestamp: str,
        base_url: str | None = None,
        osm_like: bool | None = None,
    ) -> tuple[str, Outcome]:
        """
        Finds the descriptor URL for a timestamp.

        Returns:
            Tuple of (descriptor_url, outcome).
        """
        result = self.locate_detailed(period, timestamp, base_url, osm_like)
        return result.url, result.outcome


def locate(
    period: str | Period,
    timestamp: str,
    base_url: str | None = None,
    osm_like: bool | None = None,
    config: LocatorConfigModel | None = None,
) -> tuple[str, Outcome]:
    """
    Module-level shortcut for SequenceLocator(config).locate(...).

    base_url and osm_like default to the configured values.

    Returns:
        Tuple of (descriptor_url, outcome).
    """
    locator = SequenceLocator(config=config or LocatorConfigModel())
    return locator.locate(period, timestamp, base_url, osm_like)
