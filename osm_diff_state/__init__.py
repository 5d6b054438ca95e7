"""
OpenStreetMap replication state locator.

Finds the replication state file for a point in time by bisecting the
sequence numbers published on a replication server.
"""

from .core.locator import LocateResult, Outcome, SequenceLocator, locate
from .errors import (
    FetchError,
    FieldNotFound,
    InvalidBaseUrl,
    InvalidPeriod,
    InvalidSequenceNumber,
    InvalidTimestamp,
    LocatorError,
    NoSuitableSequence,
    Unreachable,
)

__version__ = "1.0.0"

__all__ = [
    "locate",
    "SequenceLocator",
    "LocateResult",
    "Outcome",
    "LocatorError",
    "InvalidTimestamp",
    "InvalidPeriod",
    "InvalidBaseUrl",
    "FetchError",
    "Unreachable",
    "FieldNotFound",
    "InvalidSequenceNumber",
    "NoSuitableSequence",
]
