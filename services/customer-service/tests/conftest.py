import asyncio
import os

# Must be set before the app modules build their engine
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENV_MODE"] = "test"
os.environ["JWT_SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from app import crud, models
from app.main import app
from backoffice_common.database import DatabaseManager
from backoffice_common.security import create_access_token


@pytest.fixture()
def client():
    """Each client runs the lifespan, so every test starts on an empty in-memory database."""
    with TestClient(app) as c:
        yield c


def _auth_headers(role: str) -> dict:
    token = create_access_token(f"{role.lower()}@backoffice.be", role, user_id=1)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers():
    return _auth_headers("ADMIN")


@pytest.fixture()
def accountant_headers():
    return _auth_headers("ACCOUNTANT")


@pytest.fixture()
def run_db():
    """
    Runs `scenario(session_factory)` on a fresh seeded in-memory database and
    returns its result.
    """
    def _run(scenario):
        async def _main():
            manager = DatabaseManager("sqlite+aiosqlite://", echo=False)
            await manager.create_all(models.Base.metadata)
            async with manager.session_factory() as db:
                await crud.seed_countries(db)
            try:
                return await scenario(manager.session_factory)
            finally:
                await manager.dispose()

        return asyncio.run(_main())

    return _run
