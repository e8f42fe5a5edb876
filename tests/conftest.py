import os
import tempfile

import pytest

# must be set before app.config is imported
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="pilldetect-test-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DATA_DIR}/test.sqlite3"
os.environ["DATA_DIR"] = _TEST_DATA_DIR


@pytest.fixture(autouse=True, scope="session")
def setup_test_db():
    import asyncio

    # Disable API key auth and outbound services for tests
    from app.config import settings
    settings.api_key = ""
    settings.openai_api_key = ""
    settings.search_api_key = ""
    settings.search_engine_id = ""

    from app.database import Base, engine, create_tables

    async def _setup():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await create_tables()

    asyncio.run(_setup())


@pytest.fixture
def openai_key():
    from app.config import settings
    settings.openai_api_key = "sk-test-key"
    yield settings.openai_api_key
    settings.openai_api_key = ""
