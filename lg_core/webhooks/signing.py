# lg_core/webhooks/signing.py
from __future__ import annotations

import hashlib
import hmac
import time
from typing import Optional

TIMESTAMP_HEADER = "X-Webhook-Timestamp"
SIGNATURE_HEADER = "X-Webhook-Signature"


def sign(*, secret: str, timestamp: str, body: bytes) -> str:
    msg = timestamp.encode() + b"." + body
    return "sha256=" + hmac.new(secret.encode(), msg, hashlib.sha256).hexdigest()


def signature_headers(*, secret: str, body: bytes, timestamp: Optional[str] = None) -> dict[str, str]:
    """
    Empty dict when no secret is configured.
    Receivers recompute HMAC-SHA256 over "<timestamp>.<body>".
    """
    if not secret:
        return {}
    ts = timestamp or str(int(time.time()))
    return {TIMESTAMP_HEADER: ts, SIGNATURE_HEADER: sign(secret=secret, timestamp=ts, body=body)}


def verify(*, secret: str, timestamp: str, body: bytes, signature: str) -> bool:
    return hmac.compare_digest(sign(secret=secret, timestamp=timestamp, body=body), signature or "")
