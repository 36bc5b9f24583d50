"""
Route tests for the spfcheck JSON API.

All tests use the Flask test client backed by the FakeResolver; no real
server or DNS calls occur.
"""

from __future__ import annotations

from spfcheck import create_app
from spfcheck.checker.resolver import DnsResolver


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


def test_health_returns_ok(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    data = response.get_json()
    assert data["status"] == "ok"
    assert data["service"] == "spfcheck"
    assert "timestamp" in data


def test_security_headers_are_set(client):
    response = client.get("/api/v1/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Cache-Control"] == "no-store"


# ---------------------------------------------------------------------------
# Check endpoint
# ---------------------------------------------------------------------------


def test_check_with_domain(client, fake_resolver):
    fake_resolver.txt["example.com"] = ["v=spf1 ip4:203.0.113.0/24 -all"]

    response = client.get("/api/v1/check?ip=203.0.113.5&domain=example.com")

    assert response.status_code == 200
    assert response.get_json() == {
        "ip": "203.0.113.5",
        "domain": "example.com",
        "result": "pass",
        "diagnostic": "matched 'ip'",
    }


def test_check_with_sender_uses_sender_domain(client, fake_resolver):
    fake_resolver.txt["example.com"] = ["v=spf1 -all"]

    response = client.get(
        "/api/v1/check",
        query_string={"ip": "192.0.2.1", "helo": "mail.example.net", "sender": "user@example.com"},
    )

    data = response.get_json()
    assert response.status_code == 200
    assert data["domain"] == "example.com"
    assert data["result"] == "fail"


def test_check_with_helo_only(client, fake_resolver):
    fake_resolver.txt["mail.example.net"] = ["v=spf1 ~all"]

    response = client.get("/api/v1/check?ip=192.0.2.1&helo=mail.example.net")

    data = response.get_json()
    assert data["domain"] == "mail.example.net"
    assert data["result"] == "softfail"


def test_check_without_record_returns_none(client):
    response = client.get("/api/v1/check?ip=192.0.2.1&domain=example.com")

    assert response.status_code == 200
    assert response.get_json()["result"] == "none"


def test_check_missing_ip_is_400(client):
    response = client.get("/api/v1/check?domain=example.com")

    assert response.status_code == 400
    assert "ip" in response.get_json()["error"]


def test_check_missing_domain_and_helo_is_400(client):
    response = client.get("/api/v1/check?ip=192.0.2.1")

    assert response.status_code == 400


def test_check_invalid_ip_is_400(client, fake_resolver):
    response = client.get("/api/v1/check?ip=not-an-ip&domain=example.com")

    assert response.status_code == 400
    assert fake_resolver.calls == []


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def test_create_app_builds_dns_resolver_from_config():
    class _Config:
        TESTING = True
        SPF_RESOLVERS = ["192.0.2.53"]
        SPF_DNS_TIMEOUT = 3.0
        SPF_DNS_RETRIES = 2

    app = create_app(_Config)
    resolver = app.extensions["spf_resolver"]

    assert isinstance(resolver, DnsResolver)
    assert resolver.settings.get_resolvers() == ["192.0.2.53"]
    assert resolver.settings.timeout_seconds == 3.0
    assert resolver.settings.retries == 2
