"""
Shared pytest fixtures for the replication state locator test suite.

This module provides:
- An in-memory replication server (FakeReplication) standing in for the
  HTTP client in engine, locator and CLI tests
- A local threaded HTTP server for tests that exercise the real client
- Epoch helpers

Usage:
    Fixtures are automatically discovered by pytest.
"""

import sys
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

# Ensure the project root is importable (main.py lives there)
sys.path.insert(0, str(Path(__file__).parent.parent))

from osm_diff_state.errors import FetchError, FieldNotFound, InvalidSequenceNumber, Unreachable
from osm_diff_state.replication.sequence import parse_sequence_url, state_url
from osm_diff_state.utils.timestamps import format_epoch

DAY = 86400
HOUR = 3600

BASE_URL = "https://replication.test/replication/day/"


# ===========================
# In-memory replication server
# ===========================

class FakeReplication:
    """
    Replication directory served from memory.

    Attributes:
        base_url: Directory URL that holds state.txt.
        epochs: Sequence number -> descriptor epoch for published sequences.
        latest: Sequence advertised by state.txt.
        raw_timestamps: Sequence -> raw timestamp overriding the epoch
            (used to simulate malformed descriptors).
        fetched: URLs read through get_state_param(s), in order.
        probed: (url, timeout, retries) for every accessibility check.
    """

    def __init__(self, base_url: str, epochs: dict[int, int], latest: int | None = None):
        self.base_url = base_url
        self.epochs = dict(epochs)
        self.latest = max(self.epochs) if latest is None else latest
        self.raw_timestamps: dict[int, str] = {}
        self.unreachable: set[str] = set()
        self.fetched: list[str] = []
        self.probed: list[tuple[str, float, int]] = []

    def descriptor(self, url: str) -> dict[str, str]:
        if url == state_url(self.base_url):
            return {
                "sequenceNumber": str(self.latest),
                "timestamp": format_epoch(self.epochs[self.latest], "%Y-%m-%dT%H:%M:%S"),
            }
        if not url.startswith(self.base_url):
            raise FetchError(f"Failed to fetch {url}: HTTP 404", url=url)
        try:
            sequence = parse_sequence_url(url)
        except InvalidSequenceNumber:
            raise FetchError(f"Failed to fetch {url}: HTTP 404", url=url) from None
        if sequence in self.raw_timestamps:
            return {"sequenceNumber": str(sequence), "timestamp": self.raw_timestamps[sequence]}
        if sequence not in self.epochs:
            raise FetchError(f"Failed to fetch {url}: HTTP 404", url=url)
        return {
            "sequenceNumber": str(sequence),
            "timestamp": format_epoch(self.epochs[sequence], "%Y-%m-%dT%H:%M:%S"),
        }

    def get_state_params(self, url, names):
        self.fetched.append(url)
        params = self.descriptor(url)
        values = {}
        for name in names:
            if not params.get(name):
                raise FieldNotFound(f"Parameter '{name}' not found or empty in {url}", url=url)
            values[name] = params[name]
        return values

    def get_state_param(self, url, name):
        return self.get_state_params(url, (name,))[name]

    def check_url_accessibility(self, url, timeout=10, retries=2):
        self.probed.append((url, timeout, retries))
        if url in self.unreachable:
            raise Unreachable(f"URL is not accessible after {retries + 1} attempts or timed out: {url}", url=url)
        if url != self.base_url:
            self.descriptor(url)

    @property
    def sequence_fetches(self) -> int:
        """Number of historical descriptors read (state.txt excluded)."""
        return sum(1 for url in self.fetched if not url.endswith("/state.txt"))


@pytest.fixture
def target_2025_05_16() -> int:
    """Epoch of 2025-05-16T00:00:00Z."""
    return 1747353600


@pytest.fixture
def daily_replication(target_2025_05_16) -> FakeReplication:
    """
    Daily sequences 0..4629 with epoch(seq) = seq * 86400 + C.

    C is chosen so that sequence 4000 is one hour before 2025-05-16.
    """
    offset = target_2025_05_16 - 4000 * DAY - HOUR
    return FakeReplication(BASE_URL, {seq: seq * DAY + offset for seq in range(4630)})


# ===========================
# Local HTTP server
# ===========================

class _ReplicationHandler(BaseHTTPRequestHandler):
    """Serves routes registered on the server; anything else is a 404."""

    def do_GET(self):
        self._serve(send_body=True)

    def do_HEAD(self):
        self._serve(send_body=False)

    def _serve(self, send_body: bool):
        self.server.requests.append((self.command, self.path))
        if self.server.failures.get(self.path, 0) > 0:
            self.server.failures[self.path] -= 1
            self.send_error(self.server.failure_status)
            return
        route = self.server.routes.get(self.path)
        if route is None:
            self.send_error(404)
            return
        status, body, headers = route
        data = body.encode("utf-8")
        self.send_response(status)
        for key, value in headers.items():
            self.send_header(key, value)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        if send_body:
            self.wfile.write(data)

    def log_message(self, format, *args):
        pass


class LocalServer:
    """Handle on the running test server."""

    def __init__(self, server: ThreadingHTTPServer):
        self._server = server
        host, port = server.server_address[:2]
        self.root = f"http://{host}:{port}"

    @property
    def requests(self) -> list[tuple[str, str]]:
        return self._server.requests

    def add(self, path: str, body: str = "", status: int = 200, headers: dict[str, str] | None = None):
        self._server.routes[path] = (status, body, headers or {})

    def redirect(self, path: str, location: str, status: int = 302):
        self.add(path, status=status, headers={"Location": location})

    def fail(self, path: str, times: int = 1, status: int = 503):
        """Answers the next `times` requests for path with an error status."""
        self._server.failures[path] = times
        self._server.failure_status = status

    def url(self, path: str) -> str:
        return f"{self.root}{path}"


@pytest.fixture
def http_server():
    """Threaded HTTP server on a free localhost port."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _ReplicationHandler)
    server.routes = {}
    server.failures = {}
    server.failure_status = 503
    server.requests = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield LocalServer(server)
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


def state_body(sequence: int, epoch: int) -> str:
    """Descriptor body in the form written by replication servers."""
    stamp = format_epoch(epoch).replace(":", "\\:")
    return f"#Sat May 16 00:00:02 UTC 2025\nsequenceNumber={sequence}\ntimestamp={stamp}\n"
