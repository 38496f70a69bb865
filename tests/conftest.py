# tests/conftest.py
# PURPOSE: temp SQLite per test, DB + mailer dependency overrides, users and auth headers.

# Ensure project root is on sys.path so `import todoapp` works when running pytest.
import sys, os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import smtplib
import tempfile
import pytest

from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from todoapp.auth import create_access_token, hash_password
from todoapp.config import settings
from todoapp.db import Base, make_engine  # DB metadata
from todoapp.db_models import OTPDB, UserDB
from todoapp.mailer import Mailer, get_mailer
from todoapp.main import app  # FastAPI app
from todoapp.rate_limit import limiter
from todoapp.store_db import get_db  # original dependency to override


class RecordingMailer(Mailer):
    """Keeps messages in memory instead of talking to an SMTP relay."""

    def __init__(self):
        super().__init__(settings)
        self.sent = []
        self.fail = False

    @property
    def configured(self) -> bool:
        return True

    def deliver(self, recipient: str, subject: str, html: str) -> None:
        if self.fail:
            raise smtplib.SMTPException("relay unavailable")
        self.sent.append({"to": recipient, "subject": subject, "html": html})


@pytest.fixture()
def session_factory():
    # 1) Temporary SQLite file so data is isolated per test
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    engine = make_engine(f"sqlite:///{tmp.name}")
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # 2) Create tables for tests
    Base.metadata.create_all(bind=engine)

    yield TestingSessionLocal

    # 3) Cleanup: drop tables, dispose engine, delete temp file
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    os.unlink(tmp.name)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def outbox():
    return RecordingMailer()


@pytest.fixture()
def api(session_factory, outbox):
    """TestClient without credentials."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: outbox
    # limiter storage is process-wide; start every test with fresh counters
    limiter.reset()

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    def _make(
        email: str = "owner@example.com",
        username: str = "owner",
        password: str = "secret1",
        name: str = "Owner",
    ) -> UserDB:
        row = UserDB(name=name, username=username, email=email, password_hash=hash_password(password))
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    return _make


def auth_headers(user: UserDB) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.email)}"}


@pytest.fixture()
def user(make_user):
    return make_user()


@pytest.fixture()
def client(api, user):
    """TestClient authenticated as `user`."""
    api.headers.update(auth_headers(user))
    return api


@pytest.fixture()
def latest_code(session_factory):
    """Read the newest stored code for (email, purpose), as a mail recipient would."""

    def _read(email: str, purpose: str) -> str:
        session = session_factory()
        try:
            row = (
                session.query(OTPDB)
                .filter(OTPDB.email == email.lower(), OTPDB.type == purpose)
                .order_by(OTPDB.id.desc())
                .first()
            )
            assert row is not None, f"no {purpose} code for {email}"
            return row.code
        finally:
            session.close()

    return _read
