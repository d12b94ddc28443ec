import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database import Base, enable_sqlite_foreign_keys, get_db
from main import app
import models  # noqa: F401
import schema_sql


# Stand-in for uuid-ossp on servers built without contrib modules (PostgreSQL 13+).
UUID_GENERATE_V4_SHIM = """
CREATE OR REPLACE FUNCTION uuid_generate_v4()
RETURNS uuid AS 'SELECT gen_random_uuid()' LANGUAGE sql
"""


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path):
    """File-backed SQLite engine with the ORM schema and ON DELETE actions enforced."""
    db_path = tmp_path / "fantabuild.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(sqlite_engine):
    return async_sessionmaker(sqlite_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def api_client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.pop(get_db, None)


@pytest.fixture(scope="session")
def postgres_server(tmp_path_factory):
    """Embedded PostgreSQL shared by the run. Tests using it are skipped when pgserver is not installed."""
    pgserver = pytest.importorskip("pgserver")
    server = pgserver.get_server(str(tmp_path_factory.mktemp("pgdata")), cleanup_mode="stop")
    yield server
    server.cleanup()


@pytest_asyncio.fixture
async def pg_engine(postgres_server, monkeypatch):
    """Async engine bound to a fresh, empty PostgreSQL database."""
    server_url = make_url(postgres_server.get_uri()).set(drivername="postgresql+asyncpg")
    name = f"fantabuild_{uuid.uuid4().hex[:12]}"

    maintenance = create_async_engine(server_url, isolation_level="AUTOCOMMIT")
    async with maintenance.connect() as conn:
        await conn.execute(text(f'CREATE DATABASE "{name}"'))
    await maintenance.dispose()

    engine = create_async_engine(server_url.set(database=name))
    async with engine.connect() as conn:
        has_uuid_ossp = await conn.scalar(
            text("SELECT count(*) FROM pg_available_extensions WHERE name = 'uuid-ossp'")
        )
    if not has_uuid_ossp:
        monkeypatch.setattr(schema_sql, "UUID_EXTENSION", UUID_GENERATE_V4_SHIM)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def pg_session_maker(pg_engine):
    return async_sessionmaker(pg_engine, class_=AsyncSession, expire_on_commit=False)
