import os

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

# In-memory stores and no external API keys for tests
os.environ["OPENAI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["DUMMY_MODE"] = "false"
os.environ["DATABASE_PATH"] = ":memory:"
os.environ["STATE_STORE_PATH"] = ":memory:"
os.environ["INFERENCE_API_URL"] = "http://inference.test"

from scandesk.database import close_db, init_db
from scandesk.main import app
from scandesk.models.form import UploadedScan
from scandesk.services.lifecycle import SessionSignals
from scandesk.services.llm import get_llm_client
from scandesk.services.persistence import DiagnosticsStore, FormStateStore
from scandesk.services.form_state import FormStateContainer
from scandesk.services.sessions import SessionRegistry
from scandesk.services.storage import MemoryStorage


class FakeLLM:
    """Stand-in for LLMClient: returns canned replies or raises ``error``."""

    def __init__(self, reply: str = "Fake reply", error: Exception | None = None, available: bool = True):
        self.reply = reply
        self.error = error
        self._available = available
        self.calls: list[dict] = []

    def available(self) -> bool:
        return self._available

    async def complete(self, messages, *, system=None, max_tokens=1024):
        self.calls.append({"messages": messages, "system": system})
        if self.error is not None:
            raise self.error
        return self.reply


def _make_upload(n: int, **overrides) -> UploadedScan:
    fields = {
        "id": str(1_700_000_000_000 + n),
        "image": f"data:image/png;base64,AAA{n}",
        "scan_type": "X-ray scan",
        "diagnosis_area": "Bone Fractures",
        "body_part_imaged": "Bone suspected of being fractured",
        "fractured_bone": "Femur",
        "date": "2026-10-19",
    }
    fields.update(overrides)
    return UploadedScan(**fields)


@pytest.fixture
def make_upload():
    """Factory for archived uploads with distinct ids."""
    return _make_upload


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def container(storage):
    return FormStateContainer(FormStateStore(storage), DiagnosticsStore(storage))


@pytest.fixture
def registry():
    """Fresh in-memory session registry installed as the app's registry."""
    import scandesk.services.sessions as sessions_mod

    previous = sessions_mod._registry
    reg = SessionRegistry(MemoryStorage(), SessionSignals())
    sessions_mod._registry = reg
    yield reg
    reg.close_all()
    sessions_mod._registry = previous


@pytest.fixture
def fake_llm():
    llm = FakeLLM()
    app.dependency_overrides[get_llm_client] = lambda: llm
    yield llm
    app.dependency_overrides.pop(get_llm_client, None)


@pytest_asyncio.fixture
async def db():
    """Provide a fresh in-memory database for each test."""
    import scandesk.database as db_mod

    if db_mod._db is not None:
        try:
            await db_mod._db.close()
        except Exception:
            pass
    db_mod._db = None
    db_mod.DATABASE_PATH = ":memory:"

    await init_db()
    database = await db_mod.get_db()
    yield database
    await close_db()


@pytest.fixture
def client(registry):
    """Provide a synchronous TestClient for WebSocket tests."""
    return TestClient(app)


@pytest_asyncio.fixture
async def async_client(db, registry):
    """Provide an async httpx client; it keeps the session cookie between calls."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
