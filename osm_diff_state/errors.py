"""
Exceptions raised by the replication sequence locator.

Every error derives from LocatorError so callers can report any failure
with a single handler. Failures seen while probing during bisection are
absorbed by the search loop and never reach the caller.
"""


class LocatorError(Exception):
    """Base exception for locator errors."""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class InvalidTimestamp(LocatorError):
    """Timestamp string matches none of the accepted formats."""
    pass


class InvalidPeriod(LocatorError):
    """Period is not one of minute, hour or day."""
    pass


class InvalidBaseUrl(LocatorError):
    """Replication URL could not be reduced to a usable directory."""
    pass


class FetchError(LocatorError):
    """Transport or HTTP failure while fetching a resource."""
    pass


class Unreachable(FetchError):
    """Resource did not answer the existence probe after all retries."""
    pass


class FieldNotFound(LocatorError):
    """Descriptor lacks the requested field or its value is empty."""
    pass


class InvalidSequenceNumber(LocatorError):
    """Sequence number is not a non-negative integer in the addressable range."""
    pass


class NoSuitableSequence(LocatorError):
    """Search window exhausted without a descriptor at or before the target."""
    pass
