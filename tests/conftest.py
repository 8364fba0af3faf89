from datetime import datetime, timezone

import jwt
import pytest

from app import create_app
from models import db
from utils.identity import Caller

IDENTITY_SECRET = "identity-secret-for-tests-0123456789abcdef"
TOKEN_SECRET = "token-secret-for-tests-0123456789abcdef"


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds

    def utc(self):
        return datetime.fromtimestamp(self.now, timezone.utc).replace(tzinfo=None)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app(clock):
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "ATTENDANCE_SECRET": TOKEN_SECRET,
            "IDENTITY_JWT_SECRET": IDENTITY_SECRET,
            "ROTATION_SECONDS": 30,
            "SESSION_MINUTES": 60,
            "STRICT_DEVICE_BINDING": True,
            "ROTATION_TICK_SECONDS": 30,
            "ROTATION_SCHEDULER": False,
            "AUTO_CLOSE_EXPIRED": False,
            "ADMIN_EMAILS": ["boss@example.edu"],
        },
        token_clock=clock,
        clock=clock.utc,
    )
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def core(ctx):
    return ctx.extensions["attendance"]


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin():
    return Caller(uid="admin-1", email="admin@example.edu", claims={"sub": "admin-1", "admin": True})


@pytest.fixture
def student():
    return Caller(uid="student-1", email="student1@example.edu", claims={"sub": "student-1"})


def bearer(uid, email=None, admin=False):
    claims = {"sub": uid}
    if email:
        claims["email"] = email
    if admin:
        claims["admin"] = True
    token = jwt.encode(claims, IDENTITY_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}
