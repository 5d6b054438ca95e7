"""
Replication state client.

Fetches state.txt descriptors over HTTP(S), extracts their fields and
checks that replication resources are reachable.
"""

import http.client
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from osm_diff_state.constants import (
    FETCH_TIMEOUT,
    MAX_REDIRECTS,
    PROBE_RETRIES,
    PROBE_TIMEOUT,
    USER_AGENT,
)
from osm_diff_state.errors import FetchError, FieldNotFound, Unreachable

# Transport failures surfaced by urllib besides URLError
TRANSPORT_ERRORS = (urllib.error.URLError, http.client.HTTPException, OSError, ValueError)


class BoundedRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Redirect handler that gives up after a fixed number of hops."""

    def __init__(self, max_redirections: int = MAX_REDIRECTS):
        super().__init__()
        self.max_redirections = max_redirections

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        """Keeps HEAD requests as HEAD across redirects."""
        new_request = super().redirect_request(req, fp, code, msg, headers, newurl)
        if new_request is not None and req.get_method() == "HEAD":
            new_request.method = "HEAD"
        return new_request


def clean_state_value(raw: str) -> str:
    """
    Normalizes a descriptor value.

    Removes backslash escapes (state.txt writes '2024-05-16T12\\:00\\:00Z'),
    surrounding whitespace and line terminators, and a trailing 'Z'.
    """
    value = raw.replace("\\", "").strip()
    if value.endswith("Z"):
        value = value[:-1]
    return value.strip()


def parse_state_text(text: str) -> dict[str, str]:
    """
    Parses a key=value descriptor body.

    Lines without '=' are ignored. When a key repeats, the first occurrence
    wins.

    Args:
        text: Raw descriptor content.

    Returns:
        Mapping of keys to cleaned values.
    """
    params: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if key and key not in params:
            params[key] = clean_state_value(value)
    return params


@dataclass
class StateClient:
    """
    HTTP client for replication descriptors.

    A single opener is built per client and reused for every request. Each
    request carries its own timeout; nothing is cached between calls.
    """
    fetch_timeout: float = FETCH_TIMEOUT
    max_redirects: int = MAX_REDIRECTS
    verify_ssl: bool = True
    user_agent: str = USER_AGENT
    log: Any = field(default=logger.bind(component="client"), repr=False)

    def __post_init__(self):
        """Builds the URL opener with bounded redirects and SSL context."""
        self.ssl_context = None
        if not self.verify_ssl:
            self.ssl_context = ssl._create_unverified_context()

        self.opener = urllib.request.build_opener(
            BoundedRedirectHandler(self.max_redirects),
            urllib.request.HTTPSHandler(context=self.ssl_context),
        )

    def _request(self, url: str, method: str = "GET") -> urllib.request.Request:
        return urllib.request.Request(url, method=method, headers={"User-Agent": self.user_agent})

    def fetch_text(self, url: str) -> str:
        """
        Downloads a resource as text.

        Args:
            url: Resource URL.

        Returns:
            Decoded body.

        Raises:
            FetchError: On transport failure, HTTP error status or too
                many redirects.
        """
        try:
            with self.opener.open(self._request(url), timeout=self.fetch_timeout) as response:
                body = response.read()
        except urllib.error.HTTPError as e:
            raise FetchError(f"Failed to fetch {url}: HTTP {e.code}", url=url) from e
        except urllib.error.URLError as e:
            raise FetchError(f"Failed to fetch {url}: {e.reason}", url=url) from e
        except TRANSPORT_ERRORS as e:
            raise FetchError(f"Failed to fetch {url}: {e}", url=url) from e

        return body.decode("utf-8", errors="replace")

    def fetch_state(self, url: str) -> dict[str, str]:
        """
        Fetches and parses a whole descriptor.

        Raises:
            FetchError: If the descriptor cannot be downloaded.
        """
        params = parse_state_text(self.fetch_text(url))
        self.log.debug(f"Fetched {url}: {len(params)} fields")
        return params

    def get_state_params(self, url: str, names: list[str] | tuple[str, ...]) -> dict[str, str]:
        """
        Reads several descriptor fields with a single request.

        Args:
            url: Descriptor URL.
            names: Field names to extract.

        Returns:
            Mapping of each requested name to its cleaned value.

        Raises:
            FetchError: If the descriptor cannot be downloaded.
            FieldNotFound: If any field is missing or empty.
        """
        params = self.fetch_state(url)
        values = {}
        for name in names:
            value = params.get(name, "")
            if not value:
                raise FieldNotFound(f"Parameter '{name}' not found or empty in {url}", url=url)
            values[name] = value
        return values

    def get_state_param(self, url: str, name: str) -> str:
        """
        Fetches a descriptor and extracts one field.

        Args:
            url: Descriptor URL.
            name: Field name, e.g. 'sequenceNumber' or 'timestamp'.

        Returns:
            The cleaned field value.

        Raises:
            FetchError: If the descriptor cannot be downloaded.
            FieldNotFound: If the field is missing or empty.
        """
        return self.get_state_params(url, (name,))[name]

    def check_url_accessibility(
        self,
        url: str,
        timeout: float = PROBE_TIMEOUT,
        retries: int = PROBE_RETRIES,
    ) -> None:
        """
        Checks that a URL answers a HEAD request.

        Makes up to retries + 1 attempts, each bounded by timeout, and
        returns on the first success.

        Args:
            url: URL to probe.
            timeout: Seconds allowed per attempt.
            retries: Extra attempts after the first failure.

        Raises:
            Unreachable: If no attempt succeeded.
        """
        if not url:
            raise Unreachable("No URL provided for accessibility check")

        max_attempts = max(retries, 0) + 1
        self.log.debug(f"Checking URL accessibility: {url} (timeout: {timeout}s, retries: {retries})")

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                self.log.debug(f"Retrying URL check (attempt {attempt}/{max_attempts}): {url}")
            try:
                with self.opener.open(self._request(url, method="HEAD"), timeout=timeout):
                    pass
            except TRANSPORT_ERRORS as e:
                self.log.debug(f"URL check attempt {attempt} failed: {e}")
                continue
            self.log.debug(f"URL is accessible: {url}")
            return

        raise Unreachable(
            f"URL is not accessible after {max_attempts} attempts or timed out: {url}",
            url=url,
        )
