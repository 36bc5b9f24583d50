"""
Per-check resolution state shared across include/redirect recursion.
"""

from __future__ import annotations

import ipaddress
import logging
from typing import Any

from spfcheck.checker.resolver import SpfResolver

logger = logging.getLogger(__name__)

# RFC 7208 section 4.6.4
LOOKUP_LIMIT = 10

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


class LookupLimitReached(Exception):
    """Raised when a lookup would exceed the per-check budget."""


def parse_ip(ip: str | IPAddress) -> IPAddress:
    """Parse *ip*, folding IPv4-mapped IPv6 addresses to plain IPv4.

    Raises:
        ValueError: if *ip* is not a valid address.
    """
    if isinstance(ip, str):
        ip = ipaddress.ip_address(ip.strip())
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


class Resolution:
    """Mutable state for one top-level check and its whole recursion tree.

    Attributes:
        ip: The address under test.
        resolver: The injected SpfResolver used for every lookup.
        sender: The MAIL FROM string; kept for reference, never mutated.
        count: Lookups spent so far.
        ip_names: Reverse-lookup names of *ip*, fetched at most once.
    """

    def __init__(self, ip: IPAddress, resolver: SpfResolver, sender: str = "") -> None:
        self.ip = ip
        self.resolver = resolver
        self.sender = sender
        self.count = 0
        self.ip_names: list[str] | None = None

    def spend_lookup(self, what: str) -> None:
        """Charge one DNS lookup against the budget, before issuing it.

        Raises:
            LookupLimitReached: if LOOKUP_LIMIT lookups were already spent.
        """
        if self.count >= LOOKUP_LIMIT:
            logger.debug("lookup limit reached, refusing %s", what)
            raise LookupLimitReached(what)
        self.count += 1
        logger.debug("lookup %d: %s", self.count, what)

    # ------------------------------------------------------------------
    # Budgeted lookups
    # ------------------------------------------------------------------

    def txt(self, domain: str) -> dict[str, Any]:
        self.spend_lookup(f"TXT {domain}")
        return self.resolver.lookup_txt(domain)

    def mx(self, domain: str) -> dict[str, Any]:
        self.spend_lookup(f"MX {domain}")
        return self.resolver.lookup_mx(domain)

    def addresses(self, domain: str) -> dict[str, Any]:
        self.spend_lookup(f"A/AAAA {domain}")
        # Only the tested address family can ever match.
        return self.resolver.lookup_ip(domain, self.ip.version)

    def reverse_names(self) -> dict[str, Any]:
        """Return the reverse-lookup names of the tested address.

        A successful answer is cached for the rest of the check; failures
        are returned as-is and not cached.
        """
        if self.ip_names is not None:
            return {
                "success": True,
                "records": self.ip_names,
                "error_type": None,
                "error_message": None,
                "temporary": False,
            }
        self.spend_lookup(f"PTR {self.ip}")
        answer = self.resolver.lookup_addr(str(self.ip))
        if answer["success"]:
            self.ip_names = list(answer["records"])
        return answer
