"""
Command-line SPF check.

Evaluates the SPF policy of a domain for a client address and prints the
result, for ad-hoc checks and troubleshooting of published records.

USAGE
=====
  # Check a domain directly
  spfcheck --ip 203.0.113.5 --domain example.com

  # Check the MAIL FROM domain, falling back to the HELO name
  spfcheck --ip 203.0.113.5 --helo mail.example.com --sender user@example.com

  # Enable debug-level logging (traces every directive and lookup)
  spfcheck --ip 203.0.113.5 --domain example.com --verbose

OUTPUT
======
  One line: "<result> <diagnostic>", where <result> is one of
  none, neutral, pass, fail, softfail, temperror, permerror.

EXIT CODES
==========
  0 - The check ran (whatever the SPF result)
  2 - Invalid input (bad address, missing domain)
"""

from __future__ import annotations

import argparse
import logging
import sys
import time


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="spfcheck",
        description="Evaluate the SPF policy of a domain for a client address.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--ip", required=True, help="Connecting client address.")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--domain",
        metavar="HOSTNAME",
        help="Domain whose SPF policy is evaluated.",
    )
    target.add_argument(
        "--helo",
        metavar="HOSTNAME",
        help="HELO/EHLO name, used when the sender has no domain part.",
    )
    parser.add_argument(
        "--sender",
        metavar="ADDRESS",
        default="",
        help="MAIL FROM address (used together with --helo).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Enable DEBUG-level logging output.",
    )
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> logging.Logger:
    """Configure root logger for the command.

    Args:
        verbose: If True, set level to DEBUG; otherwise WARNING.

    Returns:
        A logger instance named after this module.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    return logging.getLogger(__name__)


def main(argv: list[str] | None = None, resolver: object | None = None) -> int:
    """Run a single SPF check and print its result.

    Returns:
        Integer exit code: 0 when the check ran, 2 for invalid input.
    """
    args = _parse_args(argv)
    logger = _configure_logging(args.verbose)

    from spfcheck.checker import check_host, check_host_with_sender

    t0 = time.monotonic()
    try:
        if args.domain:
            result, diagnostic = check_host(args.ip, args.domain, resolver)
        else:
            result, diagnostic = check_host_with_sender(args.ip, args.helo, args.sender, resolver)
    except ValueError as exc:
        logger.error("Invalid input: %s", exc)
        return 2

    logger.debug("check finished in %.3fs", time.monotonic() - t0)
    print(f"{result} {diagnostic or ''}".rstrip())
    return 0


if __name__ == "__main__":
    sys.exit(main())
