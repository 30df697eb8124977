"""Pytest configuration and fixtures."""
import os

# Must be set before app.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789-abcdefghijklmnop")
os.environ.setdefault("APP_ENV", "testing")

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt

from app.config import settings
from app.core.exceptions import UpstreamError
from app.db.base_class import Base
from app.db.session import build_engine, build_session_factory
from app.services.branding_store import BrandingStore
from app.services.components import build_components

# Import all models so Base.metadata knows every table
import app.models  # noqa: F401,E402

TENANT_A = "tenant-a"
TENANT_B = "tenant-b"


# --- Fakes for external capabilities ---

class FakeVerifier:
    """Scripted CNAME verifier. Each call pops the next outcome; the last one repeats."""

    def __init__(self, outcomes: Optional[List] = None):
        self.outcomes = list(outcomes or [False])
        self.calls = []

    def check_cname(self, domain: str, expected_target: str, timeout: float) -> bool:
        self.calls.append((domain, expected_target, timeout))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingTls:
    def __init__(self, fail: bool = False):
        self.requests = []
        self.fail = fail

    def request_certificate(self, tenant_id: str, domain: str) -> None:
        self.requests.append((tenant_id, domain))
        if self.fail:
            raise RuntimeError("edge provider down")


class FakeClock:
    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class UnreachableStore:
    """Store stand-in whose backend is down."""

    def __init__(self):
        self.calls = 0

    def _fail(self, key):
        self.calls += 1
        raise UpstreamError("Branding store unavailable", operation="get", key=key)

    def get_by_domain(self, domain):
        return self._fail(domain)

    def get_by_tenant(self, tenant_id):
        return self._fail(tenant_id)


# --- DB fixtures ---

@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so concurrent threads get their own connections."""
    engine = build_engine(f"sqlite:///{tmp_path / 'branding.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return BrandingStore(session_factory)


# --- Component fixtures ---

@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def tls():
    return RecordingTls()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def components(session_factory, verifier, tls, clock):
    return build_components(
        session_factory,
        settings,
        verifier=verifier,
        tls=tls,
        clock=clock,
        sleep=lambda seconds: None,
        verify_interval=0,
    )


@pytest.fixture
async def client(components):
    from app.main import create_app

    fastapi_app = create_app(components)
    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


# --- Auth helpers ---

def make_token(tenant_id: str, role: str = "owner", sub: str = "user-1", expires_in: timedelta = timedelta(hours=1)) -> str:
    return jwt.encode(
        {
            "sub": sub,
            "tenant_id": tenant_id,
            "role": role,
            "exp": datetime.now(timezone.utc) + expires_in,
        },
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )


@pytest.fixture
def auth_headers():
    def _headers(tenant_id: str = TENANT_A, role: str = "owner") -> dict:
        return {"Authorization": f"Bearer {make_token(tenant_id, role)}"}
    return _headers
