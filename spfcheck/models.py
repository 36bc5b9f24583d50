"""
Resolver settings used by the SPF checker.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_RESOLVERS: list[str] = ["8.8.8.8", "1.1.1.1"]


@dataclass
class DnsSettings:
    """DNS resolver configuration: nameservers, per-try timeout and retries."""

    resolvers: list[str] = field(default_factory=lambda: list(DEFAULT_RESOLVERS))
    timeout_seconds: float = 5.0
    retries: int = 3

    @classmethod
    def from_config(cls, config: Any) -> DnsSettings:
        """Build settings from a Config class or a Flask ``app.config`` mapping."""
        if isinstance(config, dict):
            get = config.get
        else:
            def get(key: str, default: Any = None) -> Any:
                return getattr(config, key, default)

        settings = cls(
            timeout_seconds=float(get("SPF_DNS_TIMEOUT", 5.0)),
            retries=int(get("SPF_DNS_RETRIES", 3)),
        )
        settings.set_resolvers(list(get("SPF_RESOLVERS", DEFAULT_RESOLVERS) or []))
        return settings

    # ------------------------------------------------------------------
    # Resolver list helpers
    # ------------------------------------------------------------------

    def get_resolvers(self) -> list[str]:
        """Return the resolver list, falling back to the public defaults."""
        return list(self.resolvers) or list(DEFAULT_RESOLVERS)

    def set_resolvers(self, resolver_list: list[str]) -> None:
        """Replace the resolver list with *resolver_list*."""
        self.resolvers = [r.strip() for r in resolver_list if r.strip()]
