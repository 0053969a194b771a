import asyncio
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from tuneserver.database import Base, get_db
from tuneserver.main import app
from tuneserver.relay import TokenRelay, get_token_relay


@pytest.fixture
def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)

    async def create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())
    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def relay():
    return TokenRelay()


@pytest.fixture
def client(session_factory, relay):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_relay] = lambda: relay
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def run(session_factory):
    """Run a coroutine against a fresh session of the test database."""
    def _run(func, *args):
        async def _call():
            async with session_factory() as session:
                return await func(session, *args)
        return asyncio.run(_call())
    return _run


class UnavailableSession:
    """Stands in for a session whose database has gone away."""

    async def execute(self, *args, **kwargs):
        raise SQLAlchemyError("database unavailable")

    async def commit(self):
        raise SQLAlchemyError("database unavailable")

    async def rollback(self):
        pass


@pytest.fixture
def broken_client(relay):
    async def override_get_db():
        yield UnavailableSession()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_relay] = lambda: relay
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def run_concurrently(session_factory):
    """Run ``func`` once per argument, each call on its own session, all at once."""
    def _run(func, *calls):
        async def _one(args):
            async with session_factory() as session:
                try:
                    return await func(session, *args)
                except Exception as exc:
                    return exc

        async def _all():
            return await asyncio.gather(*(_one(args) for args in calls))

        return asyncio.run(_all())
    return _run
