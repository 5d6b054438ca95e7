"""
Input validation helpers.
"""

from osm_diff_state.constants import VALID_PERIODS, Period
from osm_diff_state.errors import InvalidPeriod


def validate_period(period: str | Period) -> Period:
    """
    Checks that the period is one of the supported replication periods.

    Args:
        period: Period name (case insensitive) or Period member.

    Returns:
        The matching Period.

    Raises:
        InvalidPeriod: For any other value.
    """
    if isinstance(period, Period):
        return period
    try:
        return Period(str(period).strip().lower())
    except ValueError:
        raise InvalidPeriod(
            f"Period must be one of: {', '.join(VALID_PERIODS)} (got {period!r})"
        ) from None
