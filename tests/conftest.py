"""Shared test fixtures for vouch."""

import base64
import os
from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from vouch.core.app import create_app
from vouch.core.settings import AuthSettings
from vouch.crypto.jwt_manager import JWTManager
from vouch.crypto.key_manager import KeyLifecycleManager
from vouch.crypto.kms import LocalKmsClient
from vouch.db.base import BaseEntity

KMS_KEY_ID = "test-kms-key"
AAD_CONTEXT = "vouch-tests"
SIGNING_KEY_ID = "jwt-signing-key"
ALGORITHM = "HMAC-SHA256"
TOKEN_TTL_MS = 60_000


class RecordingPublisher:
    """MessagePublisher that keeps every published message."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str, dict]] = []

    async def publish(self, exchange: str, routing_key: str, payload: dict) -> None:
        self.messages.append((exchange, routing_key, payload))


async def make_engine() -> AsyncEngine:
    """In-memory SQLite engine whose sessions all share one connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)
    return engine


@pytest.fixture(autouse=True)
def _set_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables for test settings."""
    monkeypatch.setenv("AUTH_KMS_PROVIDER", "local")
    monkeypatch.setenv("AUTH_KMS_KEY_ID", KMS_KEY_ID)
    monkeypatch.setenv("AUTH_KMS_AAD_CONTEXT", AAD_CONTEXT)
    monkeypatch.setenv(
        "AUTH_LOCAL_KMS_MASTER_KEY", base64.b64encode(os.urandom(32)).decode()
    )
    monkeypatch.setenv("AUTH_GATEWAY_URL", "http://gateway.test")


@pytest.fixture
def settings() -> AuthSettings:
    return AuthSettings(token_ttl_ms=TOKEN_TTL_MS)


@pytest.fixture
def kms() -> LocalKmsClient:
    return LocalKmsClient(os.urandom(32), KMS_KEY_ID, AAD_CONTEXT)


@pytest.fixture
async def session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Session factory over a fresh in-memory database."""
    engine = await make_engine()
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def file_session_factory(
    tmp_path: Path,
) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Session factory over a SQLite file, one pooled connection per session."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'vouch.sqlite'}")
    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def key_manager(
    session_factory: async_sessionmaker[AsyncSession], kms: LocalKmsClient
) -> KeyLifecycleManager:
    return KeyLifecycleManager(
        session_factory, kms, key_id=SIGNING_KEY_ID, algorithm=ALGORITHM
    )


@pytest.fixture
def jwt_mgr(key_manager: KeyLifecycleManager, kms: LocalKmsClient) -> JWTManager:
    return JWTManager(key_manager, kms, algorithm=ALGORITHM, ttl_ms=TOKEN_TTL_MS)


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
async def client(
    settings: AuthSettings,
    session_factory: async_sessionmaker[AsyncSession],
    kms: LocalKmsClient,
    publisher: RecordingPublisher,
) -> AsyncIterator[AsyncClient]:
    """httpx client against an app wired to the test database and KMS."""
    app = create_app(
        settings=settings,
        session_factory=session_factory,
        kms=kms,
        publisher=publisher,
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
