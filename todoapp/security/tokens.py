from __future__ import annotations

import hashlib
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..config import settings


def _get_serializer() -> URLSafeTimedSerializer:
    # Use a stable salt to bind purpose; change to rotate
    return URLSafeTimedSerializer(secret_key=settings.RESET_TOKEN_SECRET, salt="todoapp.reset.v1")


def _fingerprint(password_hash: str) -> str:
    # Changes whenever the password does, which retires outstanding tokens.
    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]


def create_reset_token(email: str, password_hash: str) -> str:
    """Signed, time-limited proof that `email` passed password-reset OTP verification."""
    s = _get_serializer()
    return s.dumps({"email": email, "fp": _fingerprint(password_hash)})


def read_reset_token(token: str, password_hash: str, max_age: Optional[int] = None) -> Optional[str]:
    """Return the email bound to a valid token, or None.

    Invalid signature, expiry and a password changed since issuance all give None.
    """
    if not token:
        return None
    s = _get_serializer()
    try:
        payload = s.loads(token, max_age=max_age or settings.RESET_TOKEN_TTL_SECONDS)
    except (BadSignature, SignatureExpired):
        return None
    if not isinstance(payload, dict) or payload.get("fp") != _fingerprint(password_hash):
        return None
    return payload.get("email")
