"""
SPF record retrieval and tokenization.

At most one SPF record is considered per domain (RFC 7208 sections 3 and
4.5). When a domain publishes several, the first qualifying TXT string
wins and a warning is logged.
"""

from __future__ import annotations

import logging

from spfcheck.checker.context import Resolution
from spfcheck.checker.results import NO_RECORD, Result, Terminal

logger = logging.getLogger(__name__)

VERSION_TAG = "v=spf1"
REDIRECT_PREFIX = "redirect="


def select_record(txts: list[str]) -> str | None:
    """Return the applicable SPF record among *txts*, or None."""
    spf_records = [
        txt for txt in txts
        # An empty record ("v=spf1" alone) is explicitly allowed.
        if txt.startswith(VERSION_TAG + " ") or txt == VERSION_TAG
    ]
    if not spf_records:
        return None
    if len(spf_records) > 1:
        logger.warning(
            "Multiple SPF records found (%d); evaluating the first one", len(spf_records)
        )
    return spf_records[0]


def fetch_record(ctx: Resolution, domain: str) -> str | Terminal:
    """Fetch the SPF record of *domain* with one budgeted TXT lookup.

    Returns:
        The record text, or a Terminal carrying ``temperror`` (transient
        DNS failure) or ``none`` (name missing, no TXT, or no SPF record).

    Raises:
        LookupLimitReached: if the lookup budget is already spent.
    """
    answer = ctx.txt(domain)
    if not answer["success"]:
        if answer.get("temporary"):
            logger.debug("dns temp error for %s: %s", domain, answer["error_message"])
            return Terminal(Result.TEMPERROR, answer["error_message"])
        # Could not resolve the name, it may be missing the record.
        logger.debug("dns perm error for %s: %s", domain, answer["error_message"])
        return Terminal(Result.NONE, answer["error_message"])

    record = select_record(answer["records"])
    if record is None:
        logger.debug("no SPF record for %s", domain)
        return Terminal(Result.NONE, NO_RECORD)
    return record


def tokenize(record: str) -> list[str]:
    """Split *record* into directives, moving redirects to the end.

    The leading version tag is dropped. A redirect may only apply when no
    other directive produced a result, so placing redirect modifiers after
    every other directive lets a single pass honour that rule.
    """
    fields = record.split()
    if fields and fields[0] == VERSION_TAG:
        fields = fields[1:]

    directives: list[str] = []
    redirects: list[str] = []
    for field in fields:
        if field.lower().startswith(REDIRECT_PREFIX):
            redirects.append(field)
        else:
            directives.append(field)
    return directives + redirects
