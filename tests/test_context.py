"""
Unit tests for spfcheck/checker/context.py
"""

from __future__ import annotations

import ipaddress

import pytest

from conftest import FakeResolver, dns_fail
from spfcheck.checker.context import LOOKUP_LIMIT, LookupLimitReached, Resolution, parse_ip


def _resolution(**tables) -> Resolution:
    return Resolution(parse_ip("192.0.2.7"), FakeResolver(**tables), sender="user@example.com")


class TestParseIp:
    def test_ipv4_string(self):
        assert parse_ip("192.0.2.1") == ipaddress.IPv4Address("192.0.2.1")

    def test_strips_whitespace(self):
        assert parse_ip(" 2001:db8::1 ") == ipaddress.IPv6Address("2001:db8::1")

    def test_ipv4_mapped_becomes_ipv4(self):
        assert parse_ip("::ffff:192.0.2.1") == ipaddress.IPv4Address("192.0.2.1")

    def test_address_object_passes_through(self):
        addr = ipaddress.IPv6Address("2001:db8::1")
        assert parse_ip(addr) is addr

    def test_invalid_raises(self):
        with pytest.raises(ValueError):
            parse_ip("192.0.2.300")


class TestLookupBudget:
    def test_spend_counts_up_to_the_limit(self):
        ctx = _resolution()
        for _ in range(LOOKUP_LIMIT):
            ctx.spend_lookup("test")
        assert ctx.count == LOOKUP_LIMIT

    def test_spend_beyond_limit_raises_without_counting(self):
        ctx = _resolution()
        ctx.count = LOOKUP_LIMIT
        with pytest.raises(LookupLimitReached):
            ctx.spend_lookup("test")
        assert ctx.count == LOOKUP_LIMIT

    def test_refused_lookup_is_not_issued(self):
        ctx = _resolution(txt={"example.com": ["v=spf1 -all"]})
        ctx.count = LOOKUP_LIMIT
        with pytest.raises(LookupLimitReached):
            ctx.txt("example.com")
        assert ctx.resolver.calls == []


class TestReverseNames:
    def test_success_is_cached(self):
        ctx = _resolution(addr={"192.0.2.7": ["mail.example.com."]})
        first = ctx.reverse_names()
        second = ctx.reverse_names()

        assert first["records"] == second["records"] == ["mail.example.com."]
        assert ctx.resolver.calls == [("PTR", "192.0.2.7")]
        assert ctx.count == 1

    def test_failure_is_not_cached(self):
        ctx = _resolution(addr={"192.0.2.7": dns_fail()})
        ctx.reverse_names()
        ctx.reverse_names()

        assert ctx.ip_names is None
        assert ctx.count == 2


def test_sender_is_kept_unchanged():
    ctx = _resolution()
    assert ctx.sender == "user@example.com"
