"""Slack request verification."""

import hashlib
import hmac
import time

from structlog import get_logger

logger = get_logger()

SLACK_SIGNATURE_VERSION = "v0"
# Slack's recommended replay window
MAX_REQUEST_AGE_SECONDS = 300


def compute_slack_signature(secret: str, timestamp: str, body: str) -> str:
    """Signature Slack sends for `body`: v0=hex(HMAC-SHA256("v0:{ts}:{body}"))."""
    basestring = f"{SLACK_SIGNATURE_VERSION}:{timestamp}:{body}"
    digest = hmac.new(secret.encode(), basestring.encode(), hashlib.sha256).hexdigest()
    return f"{SLACK_SIGNATURE_VERSION}={digest}"


def verify_slack_signature(
    secret: str,
    body: str,
    timestamp: str | None,
    provided_signature: str | None,
    now: float | None = None,
) -> bool:
    """
    Verify a Slack slash-command request.

    Rejects missing headers, timestamps outside the replay window and
    signatures that do not match. Comparison is constant-time.

    Args:
        secret: Slack signing secret
        body: Raw form-encoded request body
        timestamp: X-Slack-Request-Timestamp header
        provided_signature: X-Slack-Signature header
        now: Current Unix time (defaults to time.time())

    Returns:
        True if the request is authentic and fresh
    """
    if not timestamp or not provided_signature:
        logger.warning("slack_signature_headers_missing")
        return False

    try:
        request_ts = int(timestamp)
    except ValueError:
        logger.warning("slack_signature_invalid_timestamp", timestamp=timestamp)
        return False

    current = int(now if now is not None else time.time())
    age = abs(current - request_ts)
    if age > MAX_REQUEST_AGE_SECONDS:
        logger.warning(
            "slack_signature_timestamp_too_old",
            age=age,
            max_allowed=MAX_REQUEST_AGE_SECONDS,
        )
        return False

    expected = compute_slack_signature(secret, timestamp, body)
    if not hmac.compare_digest(expected, provided_signature):
        logger.warning(
            "slack_signature_invalid",
            provided_prefix=provided_signature[:15],
        )
        return False

    return True
