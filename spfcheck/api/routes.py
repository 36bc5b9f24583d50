"""
API blueprint routes.

Provides JSON endpoints for evaluating the SPF policy of a domain against a
connecting address, plus an application health check.
"""

from __future__ import annotations

from datetime import datetime, timezone

from flask import current_app, jsonify, request

from spfcheck.api import bp
from spfcheck.checker import check_host, check_host_with_sender
from spfcheck.checker.spf import split_sender


@bp.route("/health")
def health():
    """Public health-check endpoint."""
    return jsonify(
        {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": "spfcheck",
        }
    )


@bp.route("/check")
def check():
    """Evaluate SPF for a client address.

    Query parameters:
        ip: The connecting client address (required).
        domain: Domain whose policy is evaluated, or
        helo + sender: HELO name and MAIL FROM address; the sender's domain
            is used, falling back to the HELO name.

    Response format:
    {
        "ip": "203.0.113.5",
        "domain": "example.com",
        "result": "pass",
        "diagnostic": "matched 'ip'"
    }
    """
    ip = (request.args.get("ip") or "").strip()
    domain = (request.args.get("domain") or "").strip()
    helo = (request.args.get("helo") or "").strip()
    sender = (request.args.get("sender") or "").strip()

    if not ip:
        return jsonify({"error": "Parameter 'ip' is required"}), 400
    if not domain and not helo:
        return jsonify({"error": "Parameter 'domain' or 'helo' is required"}), 400

    resolver = current_app.extensions["spf_resolver"]
    try:
        if domain:
            result, diagnostic = check_host(ip, domain, resolver)
        else:
            result, diagnostic = check_host_with_sender(ip, helo, sender, resolver)
            domain = split_sender(sender)[1] or helo
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    return jsonify(
        {
            "ip": ip,
            "domain": domain,
            "result": result.value,
            "diagnostic": diagnostic,
        }
    )
