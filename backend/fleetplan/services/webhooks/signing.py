"""HMAC-SHA256 signing of webhook bodies."""

import hashlib
import hmac
import secrets


def sign_payload(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the raw body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: str, secret: str) -> bool:
    """Constant-time check of a received X-Webhook-Signature header."""
    return hmac.compare_digest(sign_payload(body, secret), signature)


def generate_webhook_secret() -> str:
    """Random 256-bit secret for a new subscription."""
    return secrets.token_hex(32)
