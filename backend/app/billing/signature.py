"""Verification of gateway payment signatures."""
from __future__ import annotations

import hashlib
import hmac


class PaymentSignatureVerifier:
    """HMAC-SHA256 check of ``order_id|payment_id`` against the gateway secret."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("secret must be provided")
        self._secret = secret.encode("utf-8")

    def expected_signature(self, order_id: str, payment_id: str) -> str:
        message = f"{order_id}|{payment_id}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def verify(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not signature:
            return False
        expected = self.expected_signature(order_id, payment_id)
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
