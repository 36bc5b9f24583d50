"""
WSGI entry point for the spfcheck JSON API.

WSGI hosts import this module and look for the ``app`` variable.  The
development server can also be started by running this file directly.

=============================================================================
DEPLOYMENT
=============================================================================

1. INSTALL
     pip install .

2. SET ENVIRONMENT VARIABLES
     SECRET_KEY=<a-long-random-string>
     SPF_RESOLVERS=9.9.9.9,149.112.112.112   (comma-separated, optional)
     SPF_DNS_TIMEOUT=5.0                     (seconds per try, optional)
     SPF_DNS_RETRIES=3                       (optional)

   Outbound DNS (UDP/TCP port 53) to the configured resolvers is required;
   without it every check ends in temperror.

3. SERVE
     Point any WSGI server at wsgi:app.

=============================================================================
LOCAL DEVELOPMENT
=============================================================================

  export SECRET_KEY=dev-only-not-for-production
  python wsgi.py

Then query http://127.0.0.1:5000/api/v1/check?ip=203.0.113.5&domain=example.com

For testing:

  pip install -e ".[test]"
  pytest tests/ -v

=============================================================================
"""

from __future__ import annotations

from spfcheck import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=True)
