import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from auth import admin_tokens
from config import ADMIN_PASSWORD
from db import create_tables
from main import app, get_db


@pytest.fixture
def client(tmp_path):
    # A fresh SQLite file per test; NullPool keeps connections off the event loop
    # that created the schema.
    engine_test = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'links.db'}", poolclass=NullPool
    )
    TestingSessionLocal = sessionmaker(engine_test, expire_on_commit=False, class_=AsyncSession)
    asyncio.run(create_tables(engine_test))

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    admin_tokens.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
    admin_tokens.clear()
    asyncio.run(engine_test.dispose())


@pytest.fixture
def admin_headers(client):
    response = client.post("/admin/auth", json={"password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}
