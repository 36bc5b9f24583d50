"""
SPF (Sender Policy Framework) evaluation, RFC 7208 section 4.

Fetches the SPF record of a domain, walks its directives and decides
whether an IP address is authorized to send mail for that domain.

Supported mechanisms and modifiers:
- all, include, a, mx, ip4, ip6, ptr
- redirect, exp (ignored)

Not supported (the check returns neutral when they are used):
- exists
- macros

Both are rare and convoluted; degrading to neutral is the documented
behaviour rather than a failure.
"""

from __future__ import annotations

import ipaddress
import logging
import re
from typing import Callable

from spfcheck.checker import results
from spfcheck.checker.context import IPAddress, LookupLimitReached, Resolution, parse_ip
from spfcheck.checker.record import fetch_record, tokenize
from spfcheck.checker.resolver import DnsResolver, SpfResolver
from spfcheck.checker.results import (
    QUALIFIERS,
    DirectiveOutcome,
    Matched,
    NoMatch,
    Result,
    Terminal,
)

logger = logging.getLogger(__name__)

# "/24", "//64" or "/24//64" after an a or mx mechanism.
_DUAL_CIDR_RE = re.compile(r"(?:/(\d{1,3}))?(?://(\d{1,3}))?")
_MODIFIER_RE = re.compile(r"(?:redirect|exp)=", re.IGNORECASE)


def check_host(
    ip: str | IPAddress,
    domain: str,
    resolver: SpfResolver | None = None,
) -> tuple[Result, str | None]:
    """Evaluate the SPF policy of *domain* for the sending address *ip*.

    Args:
        ip: The connecting client address.
        domain: The domain whose policy is checked.
        resolver: Lookup backend; a DnsResolver built from Config if omitted.

    Returns:
        (result, diagnostic). The diagnostic is advisory only; callers
        must act on the result.

    Raises:
        ValueError: if *ip* is not a valid address or *domain* is empty.
    """
    address = parse_ip(ip)
    domain = _clean_domain(domain)
    logger.debug("check host %s %s", address, domain)
    ctx = Resolution(address, resolver if resolver is not None else DnsResolver())
    return _check(ctx, domain)


def check_host_with_sender(
    ip: str | IPAddress,
    helo: str,
    sender: str,
    resolver: SpfResolver | None = None,
) -> tuple[Result, str | None]:
    """Evaluate SPF for the domain of *sender*, or *helo* when it has none."""
    address = parse_ip(ip)
    _, domain = split_sender(sender)
    if not domain:
        domain = helo
    domain = _clean_domain(domain)
    logger.debug("check host with sender %s %r %r (%s)", address, helo, sender, domain)
    ctx = Resolution(address, resolver if resolver is not None else DnsResolver(), sender)
    return _check(ctx, domain)


def split_sender(addr: str) -> tuple[str, str]:
    """Split a user@domain address into user and domain."""
    user, sep, domain = addr.partition("@")
    if not sep:
        return addr, ""
    return user, domain


def _clean_domain(domain: str) -> str:
    domain = (domain or "").strip()
    if not domain:
        raise ValueError("domain must not be empty")
    return domain


# ---------------------------------------------------------------------------
# Evaluation loop
# ---------------------------------------------------------------------------


def _check(ctx: Resolution, domain: str) -> tuple[Result, str | None]:
    """Evaluate the record of *domain* within an existing resolution."""
    logger.debug("check %s (%d lookups spent)", domain, ctx.count)
    try:
        fetched = fetch_record(ctx, domain)
    except LookupLimitReached:
        return Result.PERMERROR, results.LOOKUP_LIMIT_REACHED
    if isinstance(fetched, Terminal):
        return fetched.result, fetched.diagnostic
    if "%" in fetched:
        # A macro anywhere makes the whole record unsupported.
        return Result.NEUTRAL, results.MACROS_NOT_SUPPORTED

    for field in tokenize(fetched):
        try:
            outcome = _evaluate(ctx, field, domain)
        except LookupLimitReached:
            return Result.PERMERROR, results.LOOKUP_LIMIT_REACHED

        if isinstance(outcome, NoMatch):
            continue
        logger.debug("%s: %r -> %s (%s)", domain, field, outcome.result, outcome.diagnostic)
        return outcome.result, outcome.diagnostic

    # Got to the end of the evaluation without a result.
    # https://tools.ietf.org/html/rfc7208#section-4.7
    logger.debug("%s: fallback to neutral", domain)
    return Result.NEUTRAL, None


def _evaluate(ctx: Resolution, field: str, domain: str) -> DirectiveOutcome:
    """Evaluate a single directive of the record of *domain*."""
    # https://tools.ietf.org/html/rfc7208#section-4.6.2
    qualifier = QUALIFIERS.get(field[0])
    if qualifier is not None:
        field = field[1:]
        # https://tools.ietf.org/html/rfc7208#section-4.6.1
        if _MODIFIER_RE.match(field):
            logger.debug("permerror, qualified modifier %r", field)
            return Terminal(Result.PERMERROR, results.QUALIFIED_MODIFIER)
    else:
        qualifier = Result.PASS

    for pattern, handler in _DIRECTIVES:
        match = pattern.fullmatch(field)
        if match is not None:
            return handler(ctx, qualifier, match, domain)

    # http://www.openspf.org/SPF_Record_Syntax
    logger.debug("permerror, unknown field %r", field)
    return Terminal(Result.PERMERROR, results.UNKNOWN_FIELD)


# ---------------------------------------------------------------------------
# Directive handlers
# ---------------------------------------------------------------------------


def _all(ctx: Resolution, qualifier: Result, match: re.Match, domain: str) -> DirectiveOutcome:
    # https://tools.ietf.org/html/rfc7208#section-5.1
    return Matched(qualifier, results.matched("all"))


def _include(ctx: Resolution, qualifier: Result, match: re.Match, domain: str) -> DirectiveOutcome:
    # https://tools.ietf.org/html/rfc7208#section-5.2
    target = match["domain"]
    if not target:
        return Terminal(Result.PERMERROR, results.INVALID_DOMAIN)

    inner, diagnostic = _check(ctx, target)
    if inner is Result.PASS:
        return Matched(qualifier, results.matched(f"include:{target}"))
    if inner in (Result.FAIL, Result.SOFTFAIL, Result.NEUTRAL):
        return NoMatch(diagnostic)
    if inner is Result.NONE:
        return Terminal(Result.PERMERROR, results.NO_RESULT)
    return Terminal(inner, diagnostic)


def _a(ctx: Resolution, qualifier: Result, match: re.Match, domain: str) -> DirectiveOutcome:
    # https://tools.ietf.org/html/rfc7208#section-5.3
    target = _target_domain(match, domain)
    masks = _parse_dual_cidr(match["cidr"])
    if target is None:
        return Terminal(Result.PERMERROR, results.INVALID_DOMAIN)
    if masks is None:
        return Terminal(Result.PERMERROR, results.INVALID_MASK)

    answer = ctx.addresses(target)
    if not answer["success"]:
        return _lookup_failure(answer)
    if _any_address_matches(ctx.ip, answer["records"], masks):
        return Matched(qualifier, results.matched("a"))
    return NoMatch()


def _mx(ctx: Resolution, qualifier: Result, match: re.Match, domain: str) -> DirectiveOutcome:
    # https://tools.ietf.org/html/rfc7208#section-5.4
    target = _target_domain(match, domain)
    masks = _parse_dual_cidr(match["cidr"])
    if target is None:
        return Terminal(Result.PERMERROR, results.INVALID_DOMAIN)
    if masks is None:
        return Terminal(Result.PERMERROR, results.INVALID_MASK)

    answer = ctx.mx(target)
    if not answer["success"]:
        return _lookup_failure(answer)

    for host in answer["records"]:
        # Null MX (RFC 7505) has no addresses to look up.
        if host.strip(".") == "":
            continue
        # Each exchanger costs a lookup; the budget is checked every time.
        host_answer = ctx.addresses(host)
        if not host_answer["success"]:
            if host_answer.get("temporary"):
                return Terminal(Result.TEMPERROR, host_answer["error_message"])
            logger.debug("skipping mx host %s: %s", host, host_answer["error_message"])
            continue
        if _any_address_matches(ctx.ip, host_answer["records"], masks):
            return Matched(qualifier, results.matched("mx"))
    return NoMatch()


def _ip4(ctx: Resolution, qualifier: Result, match: re.Match, domain: str) -> DirectiveOutcome:
    return _ip_network(ctx, qualifier, match["network"], ipaddress.IPv4Network)


def _ip6(ctx: Resolution, qualifier: Result, match: re.Match, domain: str) -> DirectiveOutcome:
    return _ip_network(ctx, qualifier, match["network"], ipaddress.IPv6Network)


def _ip_network(
    ctx: Resolution,
    qualifier: Result,
    literal: str,
    network_type: type[ipaddress.IPv4Network] | type[ipaddress.IPv6Network],
) -> DirectiveOutcome:
    # https://tools.ietf.org/html/rfc7208#section-5.6
    try:
        network = network_type(literal, strict=False)
    except ValueError:
        if "/" in literal:
            return Terminal(Result.PERMERROR, results.INVALID_MASK)
        return Terminal(Result.PERMERROR, results.INVALID_IP)

    # Containment is False across address families.
    if ctx.ip in network:
        return Matched(qualifier, results.matched("ip"))
    return NoMatch()


def _ptr(ctx: Resolution, qualifier: Result, match: re.Match, domain: str) -> DirectiveOutcome:
    # https://tools.ietf.org/html/rfc7208#section-5.5
    target = _target_domain(match, domain)
    if target is None:
        return Terminal(Result.PERMERROR, results.INVALID_DOMAIN)

    answer = ctx.reverse_names()
    if not answer["success"]:
        return _lookup_failure(answer)

    for name in answer["records"]:
        if _is_subdomain(name, target):
            return Matched(qualifier, results.matched("ptr"))
    return NoMatch()


def _exists(ctx: Resolution, qualifier: Result, match: re.Match, domain: str) -> DirectiveOutcome:
    logger.debug("exists, neutral / not supported")
    return Terminal(Result.NEUTRAL, results.EXISTS_NOT_SUPPORTED)


def _exp(ctx: Resolution, qualifier: Result, match: re.Match, domain: str) -> DirectiveOutcome:
    logger.debug("exp= not used, skipping")
    return NoMatch()


def _redirect(ctx: Resolution, qualifier: Result, match: re.Match, domain: str) -> DirectiveOutcome:
    # https://tools.ietf.org/html/rfc7208#section-6.1
    target = match["domain"]
    if not target:
        return Terminal(Result.PERMERROR, results.INVALID_DOMAIN)

    logger.debug("redirect to %s", target)
    inner, diagnostic = _check(ctx, target)
    if inner is Result.NONE:
        return Terminal(Result.PERMERROR, diagnostic or results.NO_RESULT)
    return Terminal(inner, diagnostic)


Handler = Callable[[Resolution, Result, re.Match, str], DirectiveOutcome]

# First full match wins. "ptr" must be bare or followed by ":domain";
# anything else (e.g. "ptrfoo") is an unknown field.
_DIRECTIVES: list[tuple[re.Pattern, Handler]] = [
    (re.compile(r"all", re.IGNORECASE), _all),
    (re.compile(r"include:(?P<domain>.*)", re.IGNORECASE), _include),
    (re.compile(r"a(?::(?P<domain>[^/]*))?(?P<cidr>/.*)?", re.IGNORECASE), _a),
    (re.compile(r"mx(?::(?P<domain>[^/]*))?(?P<cidr>/.*)?", re.IGNORECASE), _mx),
    (re.compile(r"ip4:(?P<network>.*)", re.IGNORECASE), _ip4),
    (re.compile(r"ip6:(?P<network>.*)", re.IGNORECASE), _ip6),
    (re.compile(r"ptr(?::(?P<domain>.*))?", re.IGNORECASE), _ptr),
    (re.compile(r"exists(?::.*)?", re.IGNORECASE), _exists),
    (re.compile(r"exp=.*", re.IGNORECASE), _exp),
    (re.compile(r"redirect=(?P<domain>.*)", re.IGNORECASE), _redirect),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _target_domain(match: re.Match, domain: str) -> str | None:
    """Return the explicit ":domain" of *match*, *domain* if absent, None if empty."""
    target = match["domain"]
    if target is None:
        return domain
    return target or None


def _parse_dual_cidr(cidr: str | None) -> tuple[int | None, int | None] | None:
    """Parse "/m4", "//m6" or "/m4//m6"; None when malformed or out of range."""
    if not cidr:
        return None, None
    groups = _DUAL_CIDR_RE.fullmatch(cidr)
    if groups is None:
        return None
    v4 = int(groups[1]) if groups[1] is not None else None
    v6 = int(groups[2]) if groups[2] is not None else None
    if (v4 is not None and v4 > 32) or (v6 is not None and v6 > 128):
        return None
    return v4, v6


def _any_address_matches(
    ip: IPAddress,
    records: list[str],
    masks: tuple[int | None, int | None],
) -> bool:
    """True if *ip* equals, or falls within the mask of, any of *records*."""
    v4_mask, v6_mask = masks
    for record in records:
        try:
            candidate = parse_ip(record)
        except ValueError:
            logger.debug("ignoring unparsable address record %r", record)
            continue
        if candidate.version != ip.version:
            continue
        mask = v4_mask if candidate.version == 4 else v6_mask
        if mask is None:
            if candidate == ip:
                return True
        elif ip in ipaddress.ip_network(f"{candidate}/{mask}", strict=False):
            return True
    return False


def _is_subdomain(name: str, domain: str) -> bool:
    """True if *name* is *domain* or ends with ".<domain>", ignoring case and root dots."""
    name = name.rstrip(".").lower()
    domain = domain.rstrip(".").lower()
    return name == domain or name.endswith("." + domain)


def _lookup_failure(answer: dict) -> DirectiveOutcome:
    """Map a failed a/mx/ptr lookup: temporary stops the check, permanent does not match."""
    if answer.get("temporary"):
        return Terminal(Result.TEMPERROR, answer["error_message"])
    return NoMatch(answer["error_message"])
