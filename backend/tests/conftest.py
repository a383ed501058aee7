"""
LectureSnap Backend - Test Configuration (conftest.py)
========================================================

Shared fixtures for the whole suite. No test touches the network, a real
Gemini key or PostgreSQL.

Fixture Hierarchy (all function-scoped):
    ├── png_bytes / wide_png_bytes: Pillow-generated page photos
    ├── lecture_payload / lecture_json: a well-formed model answer
    ├── stub_provider: ModelProvider that records the models it was asked for
    ├── temp_storage / storage_service: object store under tmp_path
    ├── db_engine / db_session: in-memory aiosqlite with the schema created
    ├── lecture_service: LectureService wired to the stubs above
    ├── make_app / test_app: apps built from test settings (plus overrides)
    └── test_client: HTTPX AsyncClient against test_app
"""

import json
import os
import tempfile
from io import BytesIO
from typing import Dict, List, Optional, Sequence, Tuple, Union

# Must be set before anything imports app.config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="lecturesnap_test_")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import Settings
from app.database import Base, get_db_session
from app.models.lecture import Lecture  # noqa: F401
from app.services.generation_service import GenerationConfig, NoteGenerator
from app.services.image_service import ImageProcessor
from app.services.lecture_service import LectureService
from app.services.llm_base import ModelProvider
from app.services.storage_service import StorageService

TEST_MODELS = ["gemini-2.0-flash", "gemini-1.5-flash", "gemini-1.5-pro"]


# ══════════════════════════════════════════════════════════════════════════
# Stub model provider
# ══════════════════════════════════════════════════════════════════════════

class StubProvider(ModelProvider):
    """
    Answers per model name from `responses`: a string is returned, an
    exception instance is raised. Unlisted models answer `default`.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, Union[str, Exception]]] = None,
        default: Union[str, Exception] = "",
        healthy: bool = True,
    ):
        self.responses = dict(responses or {})
        self.default = default
        self.healthy = healthy
        self.calls: List[Tuple[str, str, List[str]]] = []

    @property
    def models_called(self) -> List[str]:
        return [model for model, _, _ in self.calls]

    async def generate(self, model_name: str, prompt: str, images_b64: Sequence[str] = ()) -> str:
        self.calls.append((model_name, prompt, list(images_b64)))
        answer = self.responses.get(model_name, self.default)
        if isinstance(answer, Exception):
            raise answer
        return answer

    async def health_check(self) -> bool:
        return self.healthy


# ══════════════════════════════════════════════════════════════════════════
# Images and model output
# ══════════════════════════════════════════════════════════════════════════

def make_image_bytes(size=(800, 600), fmt="PNG", color=(250, 250, 250)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    """A small whiteboard-ish page, narrower than the width limit."""
    return make_image_bytes((800, 600))


@pytest.fixture
def wide_png_bytes() -> bytes:
    """A phone-camera sized page that has to be downscaled."""
    return make_image_bytes((3000, 2000), color=(30, 60, 30))


@pytest.fixture
def lecture_payload() -> dict:
    return {
        "title": "Introduction to Recursion",
        "subject": "Computer Science",
        "summary": (
            "Recursion solves a problem by reducing it to smaller instances of itself.\n\n"
            "Every recursive definition needs a base case that stops the descent."
        ),
        "keyPoints": [
            "A recursive function calls itself on a smaller input.",
            "The base case returns without recursing.",
            "Each call gets its own stack frame.",
            "Missing base cases lead to stack overflow.",
            "Many recursive algorithms can be rewritten iteratively.",
        ],
        "quiz": [
            {
                "question": "What stops a recursive function from recursing forever?",
                "options": ["A loop", "The base case", "A global flag", "The compiler"],
                "correctAnswer": 1,
            },
            {
                "question": "Where does each recursive call keep its local variables?",
                "options": ["The heap", "A register", "Its own stack frame", "The disk"],
                "correctAnswer": 2,
            },
        ],
    }


@pytest.fixture
def lecture_json(lecture_payload) -> str:
    return json.dumps(lecture_payload)


@pytest.fixture
def stub_provider(lecture_json) -> StubProvider:
    return StubProvider(default=lecture_json)


@pytest.fixture
def make_provider(lecture_json):
    """Factory for StubProviders with per-model answers; unlisted models answer the lecture JSON."""

    def factory(responses=None, default=None, healthy=True) -> StubProvider:
        return StubProvider(responses, default=lecture_json if default is None else default, healthy=healthy)

    return factory


# ══════════════════════════════════════════════════════════════════════════
# Services
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path) -> str:
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def storage_service(temp_storage) -> StorageService:
    return StorageService(temp_storage)


@pytest.fixture
def image_processor() -> ImageProcessor:
    return ImageProcessor()


@pytest.fixture
def note_generator(stub_provider) -> NoteGenerator:
    return NoteGenerator(GenerationConfig(api_key="test-key", models=list(TEST_MODELS)), stub_provider)


@pytest.fixture
def lecture_service(storage_service, note_generator, image_processor) -> LectureService:
    return LectureService(storage=storage_service, generator=note_generator, processor=image_processor)


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings(temp_storage) -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        gemini_api_key="test-key-not-real",
        gemini_models=list(TEST_MODELS),
        storage_root=temp_storage,
        log_level="WARNING",
    )


@pytest.fixture
def make_app(test_settings, stub_provider, db_engine):
    """
    Factory for apps built from test settings plus any overrides, with the
    session dependency on the test engine.

    Usage:
        application = make_app(max_pages=1, user_id_header="X-Auth-User")
    """
    from app.main import create_app

    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_db_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    def build(**overrides):
        config = test_settings.model_copy(update=overrides) if overrides else test_settings
        application = create_app(config=config, provider=stub_provider)
        application.dependency_overrides[get_db_session] = override_db_session
        return application

    return build


@pytest.fixture
def test_app(make_app):
    return make_app()


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"X-User-ID": "student-42"}
