import os
import uuid

# Settings are read at import time, so the test environment goes first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./identity_service_test.db")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("FRONTEND_URL", "http://localhost:3000")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_AUTO_CREATE"] = "false"
for _provider in ("GITHUB", "GOOGLE", "DISCORD", "SPOTIFY", "FACEBOOK"):
    os.environ.setdefault(f"{_provider}_CLIENT_ID", f"{_provider.lower()}-client-id")
    os.environ.setdefault(f"{_provider}_CLIENT_SECRET", f"{_provider.lower()}-client-secret")
    os.environ.setdefault(f"{_provider}_REDIRECT_URL", f"http://localhost:3000/auth/{_provider.lower()}/callback")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from identity_service.DB import get_db
from identity_service.DB.database import Base
from identity_service.main import app
from identity_service.tests.utils.fixtures import FakeProviderApi
from identity_service.utils.oauth_providers import build_oauth_providers, get_oauth_providers
from shared.emails.email import Email


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'identity.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession
    )


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def provider_api():
    return FakeProviderApi()


@pytest.fixture
async def test_client(session_factory, provider_api):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_oauth_providers] = lambda: build_oauth_providers(transport=provider_api.transport)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Capture outgoing mail instead of talking to SMTP."""
    sent = []

    def fake_send_email(self, subject: str, body: str) -> bool:
        sent.append({"to": self.user.email, "subject": subject, "body": body})
        return True

    monkeypatch.setattr(Email, "_send_email", fake_send_email)
    return sent


@pytest.fixture
def random_email():
    return f"test_{uuid.uuid4().hex}@example.com"
