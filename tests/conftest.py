from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from libs.auth.models import User
from libs.auth.tokens import issue_token
from libs.common.asset_host import StoredAsset, get_asset_host
from libs.common.exceptions import UpstreamFailure
from libs.db.base import Base
from libs.db.session import get_async_db
from services.store_service import models as _store_models  # noqa: F401
from services.store_service.app.main import app


class FakeAssetHost:
    """In-memory stand-in for the asset host API."""

    def __init__(self):
        self.stored: dict[str, StoredAsset] = {}
        self.deleted: list[str] = []
        self.fail_uploads_for: set[str] = set()
        self._counter = 0

    async def upload(self, filename: str, data: bytes, content_type: str = "image/jpeg"):
        if filename in self.fail_uploads_for:
            raise UpstreamFailure("Failed to upload images")
        self._counter += 1
        storage_id = f"products/{self._counter}-{filename}"
        asset = StoredAsset(url=f"https://assets.example.com/{storage_id}", storage_id=storage_id)
        self.stored[storage_id] = asset
        return asset

    async def delete(self, storage_id: str) -> None:
        self.deleted.append(storage_id)
        self.stored.pop(storage_id, None)


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    Per-test SQLite database file.

    Transactions start with BEGIN IMMEDIATE so concurrent sessions take the
    write lock up front and queue behind each other, which is how the row
    locks behave on PostgreSQL.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'store.db'}",
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _configure_connection(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for calling service functions directly (no HTTP layer)."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def asset_host() -> FakeAssetHost:
    return FakeAssetHost()


@pytest_asyncio.fixture
async def client(session_factory, asset_host) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient bound to the app, with one fresh DB session per
    request and the fake asset host.
    """

    async def _override_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_db] = _override_db
    app.dependency_overrides[get_asset_host] = lambda: asset_host

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers(user: User, token: Optional[str] = None) -> dict:
    """Authorization header carrying a freshly issued token for ``user``."""
    return {"Authorization": f"Bearer {token or issue_token(user.id, user.is_admin)}"}


async def persist(session_factory, *instances):
    """Insert model instances in their own committed transaction."""
    async with session_factory() as session:
        session.add_all(instances)
        await session.commit()
    return instances[0] if len(instances) == 1 else instances


@pytest_asyncio.fixture
async def admin_user(session_factory) -> User:
    from tests.factories import UserFactory

    return await persist(session_factory, UserFactory.create(is_admin=True, name="Admin"))


@pytest_asyncio.fixture
async def shopper(session_factory) -> User:
    from tests.factories import UserFactory

    return await persist(session_factory, UserFactory.create(name="Shopper"))
