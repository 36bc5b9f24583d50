"""
Shared pytest fixtures for the spfcheck test suite.

Fixtures use an in-memory fake resolver so tests are fully isolated and
require no real DNS lookups.
"""

from __future__ import annotations

from typing import Any

import pytest

from spfcheck import create_app


# ---------------------------------------------------------------------------
# Fake resolver
# ---------------------------------------------------------------------------


def dns_ok(*records: str) -> dict[str, Any]:
    """Return a successful query result containing *records*."""
    return {
        "success": True,
        "records": list(records),
        "error_type": None,
        "error_message": None,
        "temporary": False,
    }


def dns_fail(
    error_type: str = "NXDOMAIN",
    message: str = "Not found",
    temporary: bool = False,
) -> dict[str, Any]:
    """Return a failed query result."""
    return {
        "success": False,
        "records": [],
        "error_type": error_type,
        "error_message": message,
        "temporary": temporary,
    }


def dns_timeout() -> dict[str, Any]:
    """Return a temporary (timeout) query failure."""
    return dns_fail("TIMEOUT", "DNS query timed out", temporary=True)


class FakeResolver:
    """Deterministic SpfResolver serving canned answers.

    Each table maps a name to either a list of record strings (success) or a
    query-result dict (typically a failure).  Unknown names answer NXDOMAIN.
    Every lookup is recorded in ``calls`` as a (kind, name) tuple.
    """

    def __init__(
        self,
        txt: dict[str, Any] | None = None,
        mx: dict[str, Any] | None = None,
        ip: dict[str, Any] | None = None,
        addr: dict[str, Any] | None = None,
    ) -> None:
        self.txt = txt or {}
        self.mx = mx or {}
        self.ip = ip or {}
        self.addr = addr or {}
        self.calls: list[tuple[str, str]] = []
        self.ip_versions: list[int | None] = []

    def _answer(self, kind: str, table: dict[str, Any], name: str) -> dict[str, Any]:
        self.calls.append((kind, name))
        value = table.get(name)
        if value is None:
            return dns_fail("NXDOMAIN", f"Domain {name} does not exist (NXDOMAIN)")
        if isinstance(value, dict):
            return value
        return dns_ok(*value)

    def lookup_txt(self, name: str) -> dict[str, Any]:
        return self._answer("TXT", self.txt, name)

    def lookup_mx(self, name: str) -> dict[str, Any]:
        return self._answer("MX", self.mx, name)

    def lookup_ip(self, name: str, version: int | None = None) -> dict[str, Any]:
        self.ip_versions.append(version)
        return self._answer("IP", self.ip, name)

    def lookup_addr(self, ip: str) -> dict[str, Any]:
        return self._answer("PTR", self.addr, ip)


# ---------------------------------------------------------------------------
# Test configuration
# ---------------------------------------------------------------------------


class TestConfig:
    """Minimal Flask config for automated testing."""

    TESTING = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SPF_RESOLVERS = ["192.0.2.53"]
    SPF_DNS_TIMEOUT = 1.0
    SPF_DNS_RETRIES = 1


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="function")
def fake_resolver():
    """Return an empty FakeResolver; tests fill its tables."""
    return FakeResolver()


@pytest.fixture(scope="function")
def app(fake_resolver):
    """Create a Flask application wired to the fake resolver."""
    flask_app = create_app(TestConfig, resolver=fake_resolver)
    with flask_app.app_context():
        yield flask_app


@pytest.fixture(scope="function")
def client(app):
    """Return a Flask test client."""
    return app.test_client()
