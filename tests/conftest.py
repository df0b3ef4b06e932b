import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# Ensure project root is on sys.path so `core.*` / `services.*` imports work
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


# Explicitly enable pytest-asyncio plugin for async tests/fixtures
pytest_plugins = ("pytest_asyncio",)


from config.settings import Settings  # noqa: E402
from core.auth import issue_token  # noqa: E402
from main import create_app  # noqa: E402

BACKEND_TOKEN = "test-backend-token"
JWT_SECRET = "test-jwt-secret"


@pytest.fixture()
def settings():
    # In-memory SQLite replaces MySQL for the whole HTTP surface
    return Settings(
        DATABASE_URL="sqlite+aiosqlite://",
        BACKEND_API_TOKEN=BACKEND_TOKEN,
        JWT_SECRET=JWT_SECRET,
        CORS_ORIGIN="*",
    )


@pytest_asyncio.fixture()
async def app(settings):
    application = create_app(settings)
    container = application.state.container
    await container.create_all()
    yield application
    await container.dispose()


@pytest_asyncio.fixture()
async def client(app):
    """Async test client running the app in-process."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture()
def admin_headers():
    return {"Authorization": f"Bearer {issue_token('admin-1', 'admin', JWT_SECRET)}"}


@pytest.fixture()
def passenger_headers():
    def make(auth0_id: str) -> dict:
        return {"Authorization": f"Bearer {issue_token(auth0_id, 'passenger', JWT_SECRET)}"}
    return make


@pytest.fixture()
def sync_headers():
    return {
        "Authorization": f"Bearer {BACKEND_TOKEN}",
        "X-Auth0-Action": "post-user-registration",
    }
