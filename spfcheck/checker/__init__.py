"""
SPF checker package.

Provides the record fetcher, directive tokenizer, mechanism evaluator and
the dnspython-backed resolver used to authorize mail senders.
"""

from spfcheck.checker.resolver import DnsResolver, SpfResolver
from spfcheck.checker.results import Result
from spfcheck.checker.spf import check_host, check_host_with_sender

__all__ = [
    "DnsResolver",
    "Result",
    "SpfResolver",
    "check_host",
    "check_host_with_sender",
]
