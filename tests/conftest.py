"""
Shared fixtures: an isolated SQLite store per test and an HTTP client
bound to an app built on top of it.
"""

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from codedrop.database import ReferenceStore
from codedrop.main import create_app


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "data" / "codedrop.db"


@pytest_asyncio.fixture
async def store(db_path) -> ReferenceStore:
    store = ReferenceStore(db_path)
    await store.init()
    return store


@pytest_asyncio.fixture
async def api_app(db_path) -> FastAPI:
    app = create_app(database_path=db_path)
    # ASGITransport does not run the lifespan, initialise the schema by hand
    await app.state.store.init()
    return app


@pytest_asyncio.fixture
async def api_client(api_app: FastAPI) -> AsyncClient:
    transport = ASGITransport(app=api_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
