"""Webhook security utilities.

Provides HMAC signature generation and verification for inbound webhook
callbacks. The signature is HMAC-SHA1 over the exact raw request body,
hex encoded, carried in the ``X-SE-Signature`` header.
"""

import hashlib
import hmac
from collections.abc import Mapping

import structlog

logger = structlog.get_logger(__name__)

SIGNATURE_HEADER = "X-SE-Signature"
CHALLENGE_HEADER = "X-SE-Challenge"


def _to_bytes(value: bytes | str) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


def sign(secret: bytes | str, payload: bytes | str) -> str:
    """Compute the HMAC-SHA1 signature of a payload.

    The payload must be the bytes exactly as they were sent; re-serialized
    JSON can differ in whitespace or key order and will not verify.

    Args:
        secret: Shared webhook secret.
        payload: Raw request body.

    Returns:
        Lowercase hex digest.
    """
    return hmac.new(_to_bytes(secret), _to_bytes(payload), hashlib.sha1).hexdigest()


def verify(received: bytes | str | None, computed: bytes | str) -> bool:
    """Compare two signatures in constant time.

    Args:
        received: Signature taken from the request (may be missing).
        computed: Signature computed locally.

    Returns:
        True if both signatures are identical.
    """
    if received is None:
        received = b""
    return hmac.compare_digest(_to_bytes(received), _to_bytes(computed))


def verify_payload(
    payload: bytes | str,
    signature: str | None,
    secret: bytes | str,
) -> bool:
    """Verify a received signature against a raw payload.

    Args:
        payload: Raw request body.
        signature: Claimed signature.
        secret: Shared webhook secret.

    Returns:
        True if the signature is valid, False otherwise.
    """
    is_valid = verify(signature, sign(secret, payload))

    if not is_valid:
        logger.warning(
            "webhook_signature_invalid",
            payload_length=len(payload),
            signature_present=bool(signature),
        )
    else:
        logger.debug("webhook_signature_verified")

    return is_valid


def verify_from_headers(
    payload: bytes | str,
    headers: Mapping[str, str],
    secret: bytes | str,
) -> bool:
    """Verify webhook signature from request headers.

    A missing signature header counts as a mismatch rather than an error.

    Args:
        payload: Raw request body.
        headers: Request headers (case-insensitive mapping for real requests).
        secret: Shared webhook secret.

    Returns:
        True if the signature is valid.
    """
    return verify_payload(payload, headers.get(SIGNATURE_HEADER), secret)


def create_signature_headers(payload: bytes | str, secret: bytes | str) -> dict[str, str]:
    """Create HTTP headers carrying a signature for a payload.

    Used by tests and local tooling that replay callbacks.

    Args:
        payload: Raw request body.
        secret: Shared webhook secret.

    Returns:
        Dictionary of headers to include in the request.
    """
    return {
        "Content-Type": "application/json",
        SIGNATURE_HEADER: sign(secret, payload),
    }
