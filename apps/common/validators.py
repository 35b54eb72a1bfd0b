"""
Security event logging helpers shared by the Billable platform apps.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

# Keys whose values must never reach the logs
SENSITIVE_KEYS = frozenset({
    "password",
    "secret",
    "api_key",
    "token",
    "source",
    "card_number",
    "cvc",
    "cvv",
})


def redact_sensitive(details: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``details`` with sensitive values masked."""
    redacted: dict[str, Any] = {}
    for key, value in details.items():
        if key.lower() in SENSITIVE_KEYS and value:
            redacted[key] = "***"
        elif isinstance(value, dict):
            redacted[key] = redact_sensitive(value)
        else:
            redacted[key] = value
    return redacted


def log_security_event(event_type: str, details: dict[str, Any], request_ip: str | None = None) -> None:
    """
    Log security events for monitoring and forensics
    """
    try:
        logger.warning(f"🚨 [Security] {event_type}: {redact_sensitive(details)} from IP: {request_ip}")
    except Exception as e:
        logger.error(f"Failed to log security event: {e}")
