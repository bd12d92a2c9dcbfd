"""Shared-secret verification for inbound webhooks.

Webhooks are registered without the JWT auth dependency; callers prove
themselves with either a bearer secret (Make.com) or an HMAC signature of the
raw body (GoHighLevel).
"""

import base64
import binascii
import hashlib
import hmac
import re

BEARER_PREFIX = "Bearer "

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def safe_equals(a: str | bytes, b: str | bytes) -> bool:
    """Compare two secrets in time independent of where they differ.

    Lengths are compared first and a mismatch returns immediately; otherwise
    every byte pair is XORed into one accumulator and only the accumulator is
    inspected.
    """
    left = a.encode("utf-8") if isinstance(a, str) else a
    right = b.encode("utf-8") if isinstance(b, str) else b

    if len(left) != len(right):
        return False

    mismatch = 0
    for x, y in zip(left, right):
        mismatch |= x ^ y
    return mismatch == 0


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an 'Authorization: Bearer <token>' header value."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):].strip()


def verify_bearer_token(authorization: str | None, secret: str) -> bool:
    """Check a bearer header against the configured secret."""
    token = extract_bearer_token(authorization)
    if token is None:
        return False
    return safe_equals(token, secret)


def parse_signature_bytes(signature: str) -> bytes | None:
    """Decode a signature header given as hex or (url-safe) base64."""
    cleaned = re.sub(r"^sha256=", "", signature.strip(), flags=re.IGNORECASE).strip()
    if not cleaned:
        return None

    if _HEX_RE.match(cleaned) and len(cleaned) % 2 == 0:
        return bytes.fromhex(cleaned)

    normalized = re.sub(r"\s+", "", cleaned).replace("-", "+").replace("_", "/")
    padding = len(normalized) % 4
    if padding:
        normalized += "=" * (4 - padding)
    try:
        return base64.b64decode(normalized, validate=True)
    except (binascii.Error, ValueError):
        return None


def compute_signature(body: bytes, secret: str) -> bytes:
    """HMAC-SHA256 digest of the raw request body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()


def verify_hmac_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """Verify an HMAC-SHA256 signature header against the raw body."""
    if not signature:
        return False
    provided = parse_signature_bytes(signature)
    if provided is None:
        return False
    return safe_equals(provided, compute_signature(body, secret))
