"""Gateway payment confirmation signatures (HMAC-SHA256, hex)."""

import hashlib
import hmac
from typing import Optional

from libs.common.config import get_settings
from services.marketplace_service.errors import SignatureMismatchError, ValidationError


def _secret_or_default(secret: Optional[str]) -> str:
    secret = secret if secret is not None else get_settings().PAYMENT_GATEWAY_KEY_SECRET
    if not secret:
        raise ValueError("PAYMENT_GATEWAY_KEY_SECRET is required")
    return secret


def compute_payment_signature(
    gateway_order_id: str, gateway_payment_id: str, secret: Optional[str] = None
) -> str:
    """HMAC-SHA256 hex digest of ``"{order_id}|{payment_id}"``."""
    message = f"{gateway_order_id}|{gateway_payment_id}".encode("utf-8")
    key = _secret_or_default(secret).encode("utf-8")
    return hmac.new(key, message, hashlib.sha256).hexdigest()


def verify_payment_signature(
    gateway_order_id: str,
    gateway_payment_id: str,
    signature: str,
    *,
    secret: Optional[str] = None,
) -> bool:
    """Return True when the signature was issued by the gateway.

    Raises ``SignatureMismatchError`` otherwise. The supplied signature is
    compared as-is in constant time; no case folding or trimming.
    """
    if not gateway_order_id or not gateway_payment_id:
        raise ValidationError("Gateway order and payment references are required")
    if not isinstance(signature, str) or not signature:
        raise SignatureMismatchError()

    expected = compute_payment_signature(gateway_order_id, gateway_payment_id, secret)
    if not hmac.compare_digest(
        expected.encode("utf-8"), signature.encode("utf-8", errors="replace")
    ):
        raise SignatureMismatchError()
    return True
