import pytest
from unittest.mock import Mock, AsyncMock
from fastapi.testclient import TestClient
import os
import sys
from typing import Any, Dict, Generator, List, Optional

# Add the parent directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import Settings, reset_settings
from core.exceptions import BackendError
from main import create_app
from providers.ai_provider import AIProvider
from providers.data_gateway import TableGateway
from services.link_resolver import LinkResolver

TEST_JWT_SECRET = "test-jwt-secret-for-nexia-tests-0123456789"
APP_URL = "https://nexia.naveennuwantha.lk"


class FakeAIProvider(AIProvider):
    """AI provider returning canned replies and recording prompts"""

    def __init__(self, reply: str = "Hello! How can I help you today?"):
        self.reply = reply
        self.prompts: List[str] = []
        self.error: Optional[Exception] = None

    @property
    def model_name(self) -> str:
        return "fake-model"

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


class InMemoryGateway(TableGateway):
    """Dict-backed table gateway for service tests"""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.fail_on: set = set()
        self.calls: List[str] = []

    def _check(self, operation: str, table: str):
        self.calls.append(f"{operation}:{table}")
        if operation in self.fail_on:
            raise BackendError(f"{operation} {table}", "simulated failure")

    @staticmethod
    def _matches(row, filters):
        return all(row.get(key) == value for key, value in (filters or {}).items())

    async def select(self, table, filters=None, order_by=None, descending=False, limit=None):
        self._check("select", table)
        rows = [dict(r) for r in self.tables.get(table, []) if self._matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: r.get(order_by), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def insert(self, table, row):
        self._check("insert", table)
        stored = dict(row)
        stored.setdefault("id", f"{table}-{len(self.tables.get(table, [])) + 1}")
        self.tables.setdefault(table, []).append(stored)
        return dict(stored)

    async def update(self, table, filters, values):
        self._check("update", table)
        updated = []
        for row in self.tables.get(table, []):
            if self._matches(row, filters):
                row.update(values)
                updated.append(dict(row))
        return updated

    async def delete(self, table, filters):
        self._check("delete", table)
        rows = self.tables.get(table, [])
        keep = [r for r in rows if not self._matches(r, filters)]
        self.tables[table] = keep
        return len(rows) - len(keep)

    async def ping(self):
        return True


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("SUPABASE_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        environment="test",
        log_level="DEBUG",
        backend="local",
        database_url="sqlite+aiosqlite:///:memory:",
        supabase_jwt_secret=TEST_JWT_SECRET,
        app_url=APP_URL,
        media_dir=str(tmp_path / "media"),
        media_base_url="http://localhost:8000/media",
        theme_store="memory",
        cors_origins=["http://localhost:3000"],
    )


@pytest.fixture
def fake_ai() -> FakeAIProvider:
    return FakeAIProvider()


@pytest.fixture
def test_client(test_settings, fake_ai) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app on an in-memory database."""
    app = create_app(test_settings)
    with TestClient(app) as client:
        client.app.state.container.ai_provider = fake_ai
        yield client


@pytest.fixture
def auth_headers(test_client):
    """Factory for bearer headers of an arbitrary user id."""
    token_manager = test_client.app.state.container.token_manager

    def make(user_id: str = "user-1", email: Optional[str] = "user1@example.com"):
        return {"Authorization": f"Bearer {token_manager.issue(user_id, email)}"}

    return make


@pytest.fixture
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture
def resolver() -> LinkResolver:
    return LinkResolver(APP_URL)


@pytest.fixture
def mock_storage():
    """Create a mock storage provider for testing."""
    storage = Mock()
    storage.upload = AsyncMock(side_effect=lambda bucket, path, data, content_type="image/jpeg": path)
    storage.public_url = Mock(
        side_effect=lambda bucket, path: f"https://cdn.example.com/{bucket}/{path}"
    )
    storage.remove = AsyncMock()
    return storage


@pytest.fixture
def sample_profile_data():
    """Sample profile draft for testing."""
    return {
        "username": "jdoe",
        "full_name": "Jane Doe",
        "title": "Engineer",
        "bio": "Builds things",
        "heading": [{"id": 1700000000000, "title": "About", "subheading": "Hi"}],
        "contact_info": {
            "mobile": "+94 771234567",
            "email": "jane@example.com",
            "sms": "",
            "enabled": ["mobile", "email"],
        },
        "address": {
            "line1": "12 Main St",
            "city": "Colombo",
            "state": "Western",
            "country": "Sri Lanka",
            "zipcode": "00100",
        },
        "social_links": {
            "github": {"url": "https://github.com/jdoe", "enabled": True},
            "facebook": {"url": "https://facebook.com/jdoe", "enabled": False},
            "website": {"url": "https://jdoe.dev", "enabled": True},
        },
    }


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing."""
    logger = Mock()
    logger.info = Mock()
    logger.error = Mock()
    logger.warning = Mock()
    logger.debug = Mock()
    return logger
