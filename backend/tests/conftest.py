from __future__ import annotations

import os
import tempfile
import threading
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite:///{Path(tempfile.gettempdir()) / 'notifyhub-tests.sqlite3'}",
)
os.environ.setdefault("SECRET_KEY", "tests-secret-key")
os.environ.setdefault("DISPATCH_RATE_LIMIT", "1000/minute")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")

from sqlmodel import Session

from notifyhub.core.exceptions import ProviderDeliveryFailure
from notifyhub.core.limiter import limiter
from notifyhub.core.security import create_access_token
from notifyhub.db import build_engine, init_db
from notifyhub.main import create_application
from notifyhub.models import ROLE_ADMIN, ROLE_USER, PushSubscription, User
from notifyhub.services.web_push import PushEndpoint


class StubProvider:
    """Delivery provider that fails only for the endpoints it is told to."""

    def __init__(self) -> None:
        self.failures: dict[str, Exception] = {}
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def fail(self, endpoint: str, status_code: int | None = None, permanent: bool = False) -> None:
        self.failures[endpoint] = ProviderDeliveryFailure(
            f"Push service responded with {status_code}",
            status_code=status_code,
            permanent=permanent,
        )

    def send(self, endpoint: PushEndpoint, payload: dict) -> None:
        with self._lock:
            self.calls.append(endpoint.endpoint)
        failure = self.failures.get(endpoint.endpoint)
        if failure:
            raise failure


@pytest.fixture()
def engine(tmp_path: Path):
    engine = build_engine(f"sqlite:///{tmp_path / 'notifyhub.sqlite3'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def provider() -> StubProvider:
    return StubProvider()


@pytest.fixture()
def make_user(engine):
    def _make_user(username: str, role: str = ROLE_USER, is_active: bool = True) -> User:
        with Session(engine) as session:
            user = User(
                username=username,
                email=f"{username}@example.com",
                role=role,
                is_active=is_active,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            return user

    return _make_user


@pytest.fixture()
def admin(make_user) -> User:
    return make_user("admin", role=ROLE_ADMIN)


@pytest.fixture()
def subscribe(engine):
    def _subscribe(user: User, endpoint: str, is_active: bool = True) -> PushSubscription:
        with Session(engine) as session:
            subscription = PushSubscription(
                user_id=user.id,
                endpoint=endpoint,
                p256dh=f"p256dh-{endpoint}",
                auth=f"auth-{endpoint}",
                is_active=is_active,
            )
            session.add(subscription)
            session.commit()
            session.refresh(subscription)
            return subscription

    return _subscribe


@pytest.fixture()
def app(engine, provider):
    limiter.reset()
    return create_application(engine=engine, provider=provider)


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _auth_headers
