"""
HTTPS SSL helper for voice downloads.

Some local Python installs (notably Homebrew Python on macOS) fail urllib
requests with CERTIFICATE_VERIFY_FAILED. We build the context from certifi's
CA bundle so downloads from the Telegram file endpoint verify everywhere.
"""

from __future__ import annotations

import ssl

import certifi


def create_ssl_context() -> ssl.SSLContext:
    return ssl.create_default_context(cafile=certifi.where())
