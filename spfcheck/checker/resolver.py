"""
Robust DNS resolver wrapper for SPF evaluation.

Provides thread-safe DNS resolution with configurable nameservers,
timeouts, retries, and comprehensive error handling for NXDOMAIN,
SERVFAIL, timeouts, and truncated responses.

Every failure is tagged *temporary* (server failure, timeout: retrying
later may succeed) or *permanent* (the name or record does not exist,
or the name is not a valid domain name).
The SPF engine relies on that distinction, so any replacement resolver
must preserve it.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import dns.exception
import dns.name
import dns.resolver
import dns.reversename

from spfcheck.config import Config
from spfcheck.models import DnsSettings

logger = logging.getLogger(__name__)


class SpfResolver(Protocol):
    """The four lookups the SPF engine needs from its environment.

    Each method returns a query-result dict as produced by query_dns().
    """

    def lookup_txt(self, name: str) -> dict[str, Any]: ...

    def lookup_mx(self, name: str) -> dict[str, Any]: ...

    def lookup_ip(self, name: str, version: int | None = None) -> dict[str, Any]: ...

    def lookup_addr(self, ip: str) -> dict[str, Any]: ...


def _load_settings() -> DnsSettings:
    """Build DnsSettings from the environment-driven Config.

    Only used as a safety net when no settings object is passed by the
    caller.
    """
    return DnsSettings.from_config(Config)


def create_resolver(settings: DnsSettings) -> dns.resolver.Resolver:
    """Create a fresh dns.resolver.Resolver configured from *settings*.

    A new instance is created every time to ensure thread safety.

    Args:
        settings: DnsSettings instance containing resolver config.

    Returns:
        A configured dns.resolver.Resolver instance.
    """
    resolver = dns.resolver.Resolver(configure=False)

    nameservers = settings.get_resolvers()
    if nameservers:
        resolver.nameservers = nameservers
    else:
        resolver.nameservers = ["8.8.8.8", "1.1.1.1"]

    resolver.timeout = float(settings.timeout_seconds)
    resolver.lifetime = float(settings.timeout_seconds * settings.retries)
    resolver.retry_servfail = True

    return resolver


def _failure(error_type: str, message: str, temporary: bool) -> dict[str, Any]:
    return {
        "success": False,
        "records": [],
        "error_type": error_type,
        "error_message": message,
        "temporary": temporary,
    }


def _extract_records(answer: Any, rdtype: str) -> list[str]:
    """Turn a dnspython answer into plain strings for *rdtype*."""
    rdtype = rdtype.upper()
    if rdtype == "TXT":
        # TXT records come as multiple byte strings that need joining
        return [b"".join(rdata.strings).decode("utf-8", errors="replace") for rdata in answer]
    if rdtype == "MX":
        ordered = sorted(answer, key=lambda rdata: rdata.preference)
        return [rdata.exchange.to_text() for rdata in ordered]
    return [rdata.to_text() for rdata in answer]


def query_dns(
    domain: str,
    rdtype: str,
    settings: DnsSettings | None = None,
) -> dict[str, Any]:
    """Execute a DNS query with robust error handling.

    Args:
        domain: The domain name to query.
        rdtype: DNS record type string (e.g. "TXT", "A", "MX", "PTR").
        settings: Optional DnsSettings; built from Config if not provided.

    Returns:
        A dict with keys:
            success (bool): Whether the query returned records.
            records (list[str]): The resolved record strings.
            error_type (str|None): Category of error if failed.
            error_message (str|None): Human-readable error description.
            temporary (bool): True when the failure may go away on retry.
    """
    if settings is None:
        settings = _load_settings()

    resolver = create_resolver(settings)

    try:
        answer = resolver.resolve(domain, rdtype)
        records = _extract_records(answer, rdtype)

        logger.debug("DNS query %s/%s returned %d records", domain, rdtype, len(records))
        return {
            "success": True,
            "records": records,
            "error_type": None,
            "error_message": None,
            "temporary": False,
        }

    except dns.resolver.NXDOMAIN:
        logger.info("NXDOMAIN for %s/%s", domain, rdtype)
        return _failure("NXDOMAIN", f"Domain {domain} does not exist (NXDOMAIN)", False)

    except dns.resolver.NoAnswer:
        logger.info("NoAnswer for %s/%s", domain, rdtype)
        return _failure("NO_ANSWER", f"No {rdtype} records found for {domain}", False)

    except dns.resolver.YXDOMAIN:
        logger.info("YXDOMAIN for %s/%s", domain, rdtype)
        return _failure("YXDOMAIN", f"Name {domain} is too long after expansion", False)

    except dns.resolver.NoNameservers:
        logger.warning("NoNameservers for %s/%s", domain, rdtype)
        return _failure(
            "DNS_ERROR",
            f"No nameservers available for {domain} (SERVFAIL or all failed)",
            True,
        )

    except dns.resolver.Timeout:
        logger.warning("Timeout for %s/%s", domain, rdtype)
        return _failure("TIMEOUT", f"DNS query timed out for {domain}/{rdtype}", True)

    except (
        dns.name.EmptyLabel,
        dns.name.LabelTooLong,
        dns.name.NameTooLong,
        dns.name.BadEscape,
    ) as exc:
        # Raised while parsing the name, before any query is sent.
        logger.info("Invalid name %r for %s: %s", domain, rdtype, exc)
        return _failure("INVALID_NAME", f"Invalid domain name {domain!r}: {exc}", False)

    except dns.exception.DNSException as exc:
        logger.error("DNSException for %s/%s: %s", domain, rdtype, exc)
        return _failure("DNS_ERROR", f"DNS error for {domain}/{rdtype}: {exc}", True)

    except Exception as exc:
        logger.exception("Unexpected error querying %s/%s", domain, rdtype)
        return _failure("DNS_ERROR", f"Unexpected error for {domain}/{rdtype}: {exc}", True)


class DnsResolver:
    """Production SpfResolver backed by dnspython."""

    def __init__(self, settings: DnsSettings | None = None) -> None:
        self.settings = settings if settings is not None else _load_settings()

    def lookup_txt(self, name: str) -> dict[str, Any]:
        return query_dns(name, "TXT", self.settings)

    def lookup_mx(self, name: str) -> dict[str, Any]:
        return query_dns(name, "MX", self.settings)

    def lookup_ip(self, name: str, version: int | None = None) -> dict[str, Any]:
        """Resolve the addresses of *name* as a single lookup.

        With *version* 4 or 6 only the A or AAAA records are queried;
        otherwise both families are merged.
        """
        if version == 4:
            return query_dns(name, "A", self.settings)
        if version == 6:
            return query_dns(name, "AAAA", self.settings)

        v4 = query_dns(name, "A", self.settings)
        v6 = query_dns(name, "AAAA", self.settings)
        if v4["success"] or v6["success"]:
            return {
                "success": True,
                "records": v4["records"] + v6["records"],
                "error_type": None,
                "error_message": None,
                "temporary": False,
            }
        # A transient failure on either family wins over "does not exist".
        if v6["temporary"] and not v4["temporary"]:
            return v6
        return v4

    def lookup_addr(self, ip: str) -> dict[str, Any]:
        try:
            reverse_name = dns.reversename.from_address(ip).to_text()
        except (dns.exception.SyntaxError, ValueError) as exc:
            return _failure("DNS_ERROR", f"Cannot build reverse name for {ip}: {exc}", False)
        return query_dns(reverse_name, "PTR", self.settings)
