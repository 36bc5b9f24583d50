"""
Configuration module for spfcheck.

Loads settings from environment variables with sensible defaults.
"""

import os


def _env_list(name: str, default: str) -> list[str]:
    """Split a comma-separated environment variable into a list."""
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    """Base configuration shared by all environments."""

    # Security
    SECRET_KEY: str = os.environ.get("SECRET_KEY", "dev-secret-change-me")

    # DNS resolver used for SPF evaluation
    SPF_RESOLVERS: list[str] = _env_list("SPF_RESOLVERS", "8.8.8.8,1.1.1.1")
    SPF_DNS_TIMEOUT: float = float(os.environ.get("SPF_DNS_TIMEOUT", "5.0"))
    SPF_DNS_RETRIES: int = int(os.environ.get("SPF_DNS_RETRIES", "3"))

    # Payload limits for the JSON API
    MAX_CONTENT_LENGTH: int = 64 * 1024  # 64 KB
