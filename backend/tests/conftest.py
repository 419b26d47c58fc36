from __future__ import annotations

import pathlib
import sys
from collections.abc import Callable
from dataclasses import dataclass

import pytest
from flask import g
from sqlalchemy.pool import StaticPool

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _load_dependencies():
    from app import Config, create_app
    from backend.app.extensions import db

    return Config, create_app, db


ConfigBase, create_app, db = _load_dependencies()


class TestConfig(ConfigBase):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite+pysqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {
        "poolclass": StaticPool,
        "connect_args": {"check_same_thread": False},
    }
    CORS_ALLOWED_ORIGINS = "http://localhost"
    OPENAI_API_KEY = ""
    WEBHOOK_RATE_LIMIT = "1000 per minute"
    CHAT_RATE_LIMIT = "1000 per minute"
    SIGN_IN_RATE_LIMIT = "1000 per minute"


@dataclass
class SignedInUser:
    id: str
    email: str
    headers: dict[str, str]


@pytest.fixture(scope="module")
def app():
    app = create_app(TestConfig)
    ctx = app.app_context()
    ctx.push()
    yield app
    db.session.remove()
    ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def cleanup_tables(app):
    yield

    db.session.rollback()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    db.session.expunge_all()
    # The module-scoped app context is reused by every request, so clear the
    # per-request globals left behind by the previous test.
    g.pop("api_token", None)
    g.pop("current_user", None)


@pytest.fixture()
def sign_in(client) -> Callable[[str], SignedInUser]:
    def factory(email: str) -> SignedInUser:
        response = client.post("/api/auth/sign-in", json={"email": email})
        assert response.status_code == 200
        data = response.get_json()
        return SignedInUser(
            id=data["user"]["id"],
            email=email,
            headers={"Authorization": f"Bearer {data['token']}"},
        )

    return factory


@pytest.fixture()
def alice(sign_in) -> SignedInUser:
    return sign_in("alice@example.com")


@pytest.fixture()
def bob(sign_in) -> SignedInUser:
    return sign_in("bob@example.com")
