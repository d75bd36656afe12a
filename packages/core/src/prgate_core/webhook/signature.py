"""Webhook signature verification.

GitHub signs every delivery with an HMAC of the raw body keyed by the shared
webhook secret and sends it as ``sha256=<hexdigest>`` in
``X-Hub-Signature-256`` (or ``sha1=<hexdigest>`` in the legacy
``X-Hub-Signature``). Verification must happen before the body is parsed.
"""

from __future__ import annotations

import hashlib
import hmac

from prgate_core.errors import AuthenticationError

_DIGESTS = {
    "sha256": hashlib.sha256,
    "sha1": hashlib.sha1,
}


def compute_signature(body: bytes, secret: str, algorithm: str = "sha256") -> str:
    """Return the signature header value GitHub would send for ``body``."""
    mac = hmac.new(secret.encode("utf-8"), msg=body, digestmod=_DIGESTS[algorithm])
    return f"{algorithm}={mac.hexdigest()}"


def verify_signature(body: bytes, signature_header: str | None, secret: str | None) -> None:
    """Raise AuthenticationError unless ``signature_header`` signs ``body`` with ``secret``.

    Fails closed: an unconfigured secret rejects every delivery.
    """
    if not secret:
        raise AuthenticationError("Webhook secret is not configured")
    if not signature_header:
        raise AuthenticationError("Missing signature header")

    algorithm, sep, digest = signature_header.partition("=")
    if not sep or not digest:
        raise AuthenticationError("Malformed signature header")
    if algorithm not in _DIGESTS:
        raise AuthenticationError(f"Unsupported signature algorithm: {algorithm}")

    expected = compute_signature(body, secret, algorithm)
    if not hmac.compare_digest(expected.encode("ascii"), signature_header.encode("utf-8", "surrogateescape")):
        raise AuthenticationError("Signature does not match")
