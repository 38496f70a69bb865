# PURPOSE: one-time codes for registration and password reset.
# Codes are six random digits bound to (email, purpose) and valid for OTP_TTL_MINUTES.
# Issuing never revokes earlier codes, so several may be valid at once. Verifying
# consumes a code with a conditional UPDATE; only one concurrent caller can claim it.

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from .config import settings
from .db_models import OTPDB, now_utc

logger = logging.getLogger(__name__)

PURPOSES = ("registration", "password_reset")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def generate_code() -> str:
    """Uniformly random code in 100000..999999."""
    return str(100000 + secrets.randbelow(900000))


def _check_purpose(purpose: str) -> None:
    if purpose not in PURPOSES:
        raise ValueError(f"unknown OTP purpose: {purpose!r}")


def issue_otp(db: Session, email: str, purpose: str, *, now: datetime | None = None) -> str:
    """Store a fresh code for (email, purpose) and return it."""
    _check_purpose(purpose)
    now = now or now_utc()
    purge_expired_otps(db, now=now, commit=False)
    row = OTPDB(
        email=normalize_email(email),
        code=generate_code(),
        type=purpose,
        expires_at=now + timedelta(minutes=settings.OTP_TTL_MINUTES),
        is_used=False,
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.commit()
    logger.info("otp issued email=%s purpose=%s expires_at=%s", row.email, purpose, row.expires_at.isoformat())
    return row.code


def verify_otp(
    db: Session, email: str, code: str, purpose: str, *, now: datetime | None = None
) -> bool:
    """Consume a matching, unused, unexpired code. Returns False otherwise.

    Wrong code, expired code and already-used code are indistinguishable to
    the caller.
    """
    if purpose not in PURPOSES or not code:
        return False
    now = now or now_utc()
    email = normalize_email(email)
    candidates = (
        db.query(OTPDB.id)
        .filter(
            OTPDB.email == email,
            OTPDB.code == code,
            OTPDB.type == purpose,
            OTPDB.is_used.is_(False),
            OTPDB.expires_at > now,
        )
        .order_by(OTPDB.created_at.desc(), OTPDB.id.desc())
        .all()
    )
    for (otp_id,) in candidates:
        # compare-and-set: only the first writer flips is_used
        claimed = (
            db.query(OTPDB)
            .filter(OTPDB.id == otp_id, OTPDB.is_used.is_(False))
            .update({OTPDB.is_used: True, OTPDB.updated_at: now}, synchronize_session=False)
        )
        if claimed == 1:
            db.commit()
            logger.info("otp verified email=%s purpose=%s", email, purpose)
            return True
    db.rollback()
    logger.info("otp rejected email=%s purpose=%s", email, purpose)
    return False


def purge_expired_otps(db: Session, *, now: datetime | None = None, commit: bool = True) -> int:
    """Physically remove expired codes. Verification never relies on this."""
    now = now or now_utc()
    removed = (
        db.query(OTPDB)
        .filter(OTPDB.expires_at <= now)
        .delete(synchronize_session=False)
    )
    if commit:
        db.commit()
    if removed:
        logger.debug("otp sweep removed=%s", removed)
    return removed
