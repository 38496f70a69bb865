# tests/test_otp.py
# PURPOSE: one-time code issuance, expiry, single use and purpose binding.

import threading
from datetime import datetime, timedelta

import pytest

from todoapp.db_models import OTPDB
from todoapp.otp import generate_code, issue_otp, purge_expired_otps, verify_otp

T0 = datetime(2026, 3, 10, 12, 0, 0)


def _wrong(code: str) -> str:
    # generated codes never start with 0
    return "012345" if code != "012345" else "098765"


def test_generate_code_is_six_digits():
    for _ in range(50):
        code = generate_code()
        assert len(code) == 6 and code.isdigit()
        assert 100000 <= int(code) <= 999999


def test_code_is_single_use(db):
    code = issue_otp(db, "a@b.com", "registration", now=T0)
    assert verify_otp(db, "a@b.com", code, "registration", now=T0 + timedelta(minutes=1))
    assert not verify_otp(db, "a@b.com", code, "registration", now=T0 + timedelta(minutes=2))


def test_code_expires_after_ttl(db):
    code = issue_otp(db, "a@b.com", "registration", now=T0)
    assert not verify_otp(db, "a@b.com", code, "registration", now=T0 + timedelta(minutes=11))


def test_code_valid_just_before_expiry(db):
    code = issue_otp(db, "a@b.com", "registration", now=T0)
    assert verify_otp(db, "a@b.com", code, "registration", now=T0 + timedelta(minutes=9, seconds=59))


def test_email_is_case_insensitive(db):
    code = issue_otp(db, "Alice@Example.COM", "password_reset", now=T0)
    row = db.query(OTPDB).one()
    assert row.email == "alice@example.com"
    assert verify_otp(db, "alice@example.com", code, "password_reset", now=T0)


def test_purpose_must_match(db):
    code = issue_otp(db, "a@b.com", "registration", now=T0)
    assert not verify_otp(db, "a@b.com", code, "password_reset", now=T0)
    # a failed attempt does not consume the code
    assert verify_otp(db, "a@b.com", code, "registration", now=T0)


def test_wrong_code_and_other_email_rejected(db):
    code = issue_otp(db, "a@b.com", "registration", now=T0)
    assert not verify_otp(db, "a@b.com", _wrong(code), "registration", now=T0)
    assert not verify_otp(db, "c@d.com", code, "registration", now=T0)
    assert not verify_otp(db, "a@b.com", "", "registration", now=T0)


def test_reissue_keeps_earlier_codes_valid(db):
    first = issue_otp(db, "a@b.com", "registration", now=T0)
    second = issue_otp(db, "a@b.com", "registration", now=T0 + timedelta(minutes=1))
    assert db.query(OTPDB).count() == 2
    assert verify_otp(db, "a@b.com", first, "registration", now=T0 + timedelta(minutes=2))
    assert verify_otp(db, "a@b.com", second, "registration", now=T0 + timedelta(minutes=2))


def test_claimed_code_cannot_be_verified_again(db):
    # simulates a concurrent verifier that flipped is_used first
    code = issue_otp(db, "a@b.com", "registration", now=T0)
    db.query(OTPDB).update({OTPDB.is_used: True})
    db.commit()
    assert not verify_otp(db, "a@b.com", code, "registration", now=T0)


def test_unknown_purpose(db):
    with pytest.raises(ValueError):
        issue_otp(db, "a@b.com", "login", now=T0)
    assert not verify_otp(db, "a@b.com", "123456", "login", now=T0)


def test_purge_removes_only_expired(db):
    issue_otp(db, "old@b.com", "registration", now=T0)
    issue_otp(db, "new@b.com", "registration", now=T0 + timedelta(minutes=8))
    removed = purge_expired_otps(db, now=T0 + timedelta(minutes=12))
    assert removed == 1
    assert [r.email for r in db.query(OTPDB).all()] == ["new@b.com"]


def test_concurrent_verifications_claim_code_once(session_factory):
    setup = session_factory()
    try:
        code = issue_otp(setup, "race@b.com", "registration", now=T0)
    finally:
        setup.close()

    workers = 8
    barrier = threading.Barrier(workers)
    results, errors = [], []

    def attempt():
        session = session_factory()
        try:
            barrier.wait()
            results.append(verify_otp(session, "race@b.com", code, "registration", now=T0 + timedelta(minutes=1)))
        except Exception as exc:  # surfaced by the assertion below
            errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=attempt) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert results.count(True) == 1
    assert results.count(False) == workers - 1
