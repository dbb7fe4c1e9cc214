"""
Test configuration and fixtures for the A11y Crawl API.

Points the application at a throw-away SQLite database before anything from
``app`` is imported.
"""

import os
import tempfile
from typing import Generator

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

load_dotenv()

test_db_path = tempfile.mktemp(suffix=".db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{test_db_path}"

from app.features.crawl.services.frontier import FrontierService  # noqa: E402
from app.platform.db.session import init_models  # noqa: E402
from app.platform.websocket_manager import ProgressBroadcaster  # noqa: E402
from tests.fakes import RecordingSubscriber  # noqa: E402


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from app.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app) -> Generator[TestClient, None, None]:
    """
    Create a test client for making HTTP requests.
    Entering the client runs the lifespan, which creates the tables.
    """
    with TestClient(test_app) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Fresh SQLite database per test with the frontier table created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'frontier.db'}")
    await init_models(engine)

    yield async_sessionmaker(engine, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def frontier(session_factory) -> FrontierService:
    return FrontierService(session_factory)


@pytest.fixture
def broadcaster() -> ProgressBroadcaster:
    return ProgressBroadcaster()


@pytest_asyncio.fixture
async def subscriber(broadcaster) -> RecordingSubscriber:
    recorder = RecordingSubscriber()
    await broadcaster.connect(recorder)
    return recorder
