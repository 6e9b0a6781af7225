"""Pytest fixtures."""

import os

os.environ.setdefault("CUSTODY_GATE_QR_ENCRYPTION_KEY", "0123456789abcdef0123456789abcdef")

from collections.abc import AsyncIterator, Iterator  # noqa: E402
from pathlib import Path  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from custody_gate.config import get_settings  # noqa: E402
from custody_gate.crypto.codec import QRCodec  # noqa: E402
from custody_gate.database import Base, get_session  # noqa: E402
from custody_gate.main import app  # noqa: E402
from custody_gate.models.holder import Holder  # noqa: E402
from custody_gate.models.operator import ROLE_GATEKEEPER, Operator  # noqa: E402
from custody_gate.routers.dependencies import get_codec  # noqa: E402

TEST_KEY = b"0123456789abcdef0123456789abcdef"


@pytest.fixture(autouse=True)
def _clear_settings_cache(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Reset cached settings and codec and pin the test key.

    Parameters
    ----------
    monkeypatch : pytest.MonkeyPatch
        Environment monkeypatch helper.

    Yields
    ------
    None
        Applies environment overrides for each test.
    """
    get_settings.cache_clear()
    get_codec.cache_clear()
    monkeypatch.setenv("CUSTODY_GATE_QR_ENCRYPTION_KEY", TEST_KEY.decode("ascii"))
    yield
    get_settings.cache_clear()
    get_codec.cache_clear()


@pytest.fixture()
async def session_factory(tmp_path: Path) -> AsyncIterator[async_sessionmaker]:
    """Create a session factory bound to a fresh SQLite database.

    Parameters
    ----------
    tmp_path : Path
        Temporary directory for the test database.

    Yields
    ------
    async_sessionmaker
        Factory producing sessions on the test database.
    """
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    engine = create_async_engine(database_url, future=True)
    factory = async_sessionmaker(
        engine,
        expire_on_commit=False,
        class_=AsyncSession,
    )
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    yield factory
    await engine.dispose()


@pytest.fixture()
async def db_session(session_factory: async_sessionmaker) -> AsyncIterator[AsyncSession]:
    """Yield a session on the test database."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def codec() -> QRCodec:
    """Return a codec bound to the test key."""
    return QRCodec(TEST_KEY)


@pytest.fixture()
async def operator(db_session: AsyncSession) -> Operator:
    """Persist a gatekeeper operator."""
    row = Operator(name="gate-1", role=ROLE_GATEKEEPER)
    db_session.add(row)
    await db_session.commit()
    return row


@pytest.fixture()
async def holder(db_session: AsyncSession) -> Holder:
    """Persist a holder."""
    row = Holder(document="1002003004", first_name="Ana", last_name="Rojas")
    db_session.add(row)
    await db_session.commit()
    return row


@pytest.fixture()
async def client(session_factory: async_sessionmaker) -> AsyncIterator[AsyncClient]:
    """Create a test HTTP client backed by SQLite.

    Parameters
    ----------
    session_factory : async_sessionmaker
        Factory bound to the test database.

    Yields
    ------
    AsyncClient
        Configured test client.
    """

    async def _override_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://testserver",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()
