import os
import sys
import pytest
from pathlib import Path

# Add project root (2 levels up from tests/) to sys.path so tests can import 'fanhub'
root = Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

# Settings are read at import time: keep the module-level engine off Postgres
# and the presence mirror off Redis before anything imports 'fanhub'.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PRESENCE_MIRROR_ENABLED", "false")


from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from fanhub.models.database import Base as DBBase, get_db


@pytest.fixture
async def session_factory():
    """Fresh in-memory SQLite database with all tables, per test."""
    test_engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool)
    async with test_engine.begin() as conn:
        await conn.run_sync(DBBase.metadata.create_all)
    yield async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    await test_engine.dispose()


@pytest.fixture
async def async_db(session_factory):
    """Point the app's get_db dependency at the per-test database."""
    async def _get_test_db():
        async with session_factory() as session:
            yield session

    from fanhub.main import app as _app
    _app.dependency_overrides[get_db] = _get_test_db
    yield session_factory
    _app.dependency_overrides.clear()
