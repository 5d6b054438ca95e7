"""
Replication URL normalization.

Reduces whatever the user points at (replication root, period directory,
state.txt or a sequence descriptor) to the directory that directly holds
state.txt and the sharded sequence folders.
"""

import re
from urllib.parse import urlsplit

from loguru import logger

from osm_diff_state.constants import Period
from osm_diff_state.errors import InvalidBaseUrl

# Query string and fragment
QUERY_FRAGMENT_RE = re.compile(r"[?#].*$", re.DOTALL)

# /000/001/234.state.txt (sequence descriptor) or /state.txt (latest state)
DESCRIPTOR_SUFFIX_RE = re.compile(r"(?:/\d{3}/\d{3}/\d{3})?[/.]state\.txt$")

ALLOWED_SCHEMES = ("http", "https")


def strip_descriptor_suffix(url: str) -> str:
    """
    Removes a trailing descriptor file name, leaving its parent directory.

    Args:
        url: URL without query string or fragment.

    Returns:
        The URL with the file name replaced by '/', or unchanged.
    """
    return DESCRIPTOR_SUFFIX_RE.sub("/", url, count=1)


def resolve_base_url(input_url: str, period: str | Period, osm_like: bool, log=logger) -> str:
    """
    Determines the directory URL containing state.txt for a period.

    For OSM-like layouts the period is a path segment below the replication
    root, so '<period>/' is appended unless the directory already ends with
    it. Otherwise the stripped directory is used as is.

    Args:
        input_url: URL provided by the user.
        period: Replication period (minute, hour, day).
        osm_like: True if the server follows the planet.osm.org layout.
        log: Logger receiving debug traces.

    Returns:
        Directory URL ending with '/', or an empty string for empty input.
    """
    period_name = period.value if isinstance(period, Period) else str(period)
    log.debug(f"Resolving base URL '{input_url}' (period={period_name}, osm_like={osm_like})")

    base_dir = QUERY_FRAGMENT_RE.sub("", input_url.strip())
    stripped = strip_descriptor_suffix(base_dir)
    if stripped != base_dir:
        log.debug(f"Removed descriptor file name: '{base_dir}' -> '{stripped}'")
    base_dir = stripped

    if osm_like:
        if not base_dir.endswith(f"/{period_name}/"):
            base_dir = f"{base_dir.removesuffix('/')}/{period_name}/" if base_dir else ""
    # Non OSM-like servers: the stripped directory already holds the sequences.

    if base_dir and not base_dir.endswith("/"):
        base_dir += "/"

    log.info(f"Resolved replication directory: '{input_url}' -> '{base_dir}'")
    return base_dir


def validate_base_url(base_url: str) -> str:
    """
    Rejects resolved directories that cannot be fetched.

    Raises:
        InvalidBaseUrl: If the URL is empty or lacks an http(s) scheme and host.
    """
    if not base_url:
        raise InvalidBaseUrl("Replication URL resolved to an empty directory")
    parts = urlsplit(base_url)
    if parts.scheme.lower() not in ALLOWED_SCHEMES or not parts.netloc:
        raise InvalidBaseUrl(f"Unusable replication URL: '{base_url}'", url=base_url)
    return base_url
