"""
Webhook signature verification.

Stripe events are verified with the SDK (``stripe.Webhook.construct_event``),
which also enforces its own timestamp tolerance.

Paddle sends ``Paddle-Signature: ts=<unix seconds>;h1=<hex digest>`` where
the digest is HMAC-SHA256 over ``"<ts>:<raw body>"`` keyed with the
notification secret. We compare digests in constant time and reject
timestamps further than the tolerance from now, which stops replays of
captured requests. During secret rotation Paddle may send several h1
values; any match is accepted.

Signatures are always computed over the raw request bytes, never over
re-serialized JSON.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from collections.abc import Callable

import stripe

from paygate.core.exceptions import SignatureError

logger = logging.getLogger(__name__)

DEFAULT_PADDLE_TOLERANCE_SECONDS = 300


def verify_stripe_event(raw_body: bytes, signature_header: str, secret: str) -> dict:
    """Verify a Stripe webhook and return the event as a plain dict."""
    if not signature_header:
        raise SignatureError("Missing Stripe-Signature header", code="missing_signature")
    if not secret:
        raise SignatureError("Stripe webhook secret is not configured", code="no_secret")
    try:
        stripe.Webhook.construct_event(raw_body, signature_header, secret)
    except (ValueError, stripe.SignatureVerificationError) as exc:
        raise SignatureError(f"Webhook Error: {exc}") from exc
    return json.loads(raw_body)


def build_paddle_signature(secret: str, timestamp: int | str, raw_body: bytes) -> str:
    """Header value Paddle would send for ``raw_body`` at ``timestamp``."""
    signed = f"{timestamp}:".encode() + raw_body
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"ts={timestamp};h1={digest}"


def parse_paddle_signature(header: str) -> tuple[int, list[str]]:
    timestamp = None
    digests = []
    for part in (header or "").split(";"):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "ts":
            try:
                timestamp = int(value)
            except ValueError:
                raise SignatureError(
                    "Malformed Paddle-Signature timestamp",
                    code="malformed_signature",
                ) from None
        elif key == "h1" and value:
            digests.append(value.lower())
    if timestamp is None or not digests:
        raise SignatureError("Malformed Paddle-Signature header", code="malformed_signature")
    return timestamp, digests


def verify_paddle_signature(
    raw_body: bytes,
    signature_header: str,
    secret: str,
    *,
    tolerance: int = DEFAULT_PADDLE_TOLERANCE_SECONDS,
    now: Callable[[], float] = time.time,
) -> None:
    """
    Raise SignatureError unless the header is fresh and matches the body.

    ``now`` is injectable for tests.
    """
    if not signature_header:
        raise SignatureError("Missing signature", code="missing_signature")
    if not secret:
        raise SignatureError("Paddle webhook secret is not configured", code="no_secret")

    timestamp, digests = parse_paddle_signature(signature_header)
    if abs(now() - timestamp) > tolerance:
        raise SignatureError("Webhook timestamp outside tolerance", code="stale_signature")

    signed = f"{timestamp}:".encode() + raw_body
    expected = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest().encode()
    # header digests are arbitrary text; compare as bytes
    if not any(
        hmac.compare_digest(expected, digest.encode("utf-8", "surrogateescape"))
        for digest in digests
    ):
        raise SignatureError("Invalid signature")
