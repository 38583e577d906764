"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("OPENAI_API_KEY", "sk-test-openai-key")
os.environ.setdefault("DEFAULT_LANGUAGE", "en")

from hearttoheart.schemas.generation import ChatResponse, ReportResult, StoryResponse  # noqa: E402
from hearttoheart.services.flow_store import FlowStore, FlowStoreConfig  # noqa: E402
from hearttoheart.services.generation_service import GenerationService  # noqa: E402
from hearttoheart.services.solution_library import SolutionLibraryRegistry  # noqa: E402

REPORT_TEXT = "**Evaluation Summary**\nLow concern overall.\n**Next Steps**\nKeep observing."
TIP_TEXT = "Notice the effort, not the outcome."


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from hearttoheart.core.config import get_settings

    get_settings.cache_clear()

    settings = get_settings()
    yield settings

    get_settings.cache_clear()


@pytest.fixture
def mock_generation_service() -> MagicMock:
    """Provide a generation service whose calls all succeed.

    Returns:
        MagicMock: Stand-in with AsyncMock generation methods.
    """
    service = MagicMock(spec=GenerationService)
    service.generate_report = AsyncMock(return_value=ReportResult(text=REPORT_TEXT, succeeded=True))
    service.generate_tip = AsyncMock(return_value=TIP_TEXT)
    service.generate_scenario = AsyncMock(return_value="1. **Typical Negative Reaction**: ...")
    service.generate_story = AsyncMock(
        return_value=StoryResponse(text="Once upon a time, Mia...", audio_base64="UklGRg==", mime_type="audio/wav")
    )
    service.send_chat_message = AsyncMock(
        return_value=ChatResponse(text="Try the [Attention Assessment](assessment:attention_snap?age=7).")
    )
    return service


@pytest.fixture
def mock_openai_client() -> MagicMock:
    """Provide a mocked TimedOpenAIClient with one canned completion.

    Returns:
        MagicMock: Client whose chat.create returns a response with text.
    """
    client = MagicMock()
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = "Generated text"
    client.chat.create.return_value = response
    client.speech.create.return_value = b"\x00\x01" * 10
    return client


@pytest.fixture
def flow_store(mock_generation_service: MagicMock) -> FlowStore:
    """Provide an empty flow store wired to the mock generation service."""
    return FlowStore(FlowStoreConfig(), generation_service=mock_generation_service)


@pytest.fixture
def solution_registry(mock_generation_service: MagicMock) -> SolutionLibraryRegistry:
    """Provide an empty solution library registry wired to the mock generation service."""
    return SolutionLibraryRegistry(mock_generation_service)


@pytest.fixture
def client(
    flow_store: FlowStore,
    solution_registry: SolutionLibraryRegistry,
    mock_generation_service: MagicMock,
) -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application.

    Args:
        flow_store: Isolated flow store.
        solution_registry: Isolated solution library registry.
        mock_generation_service: Mocked generation service.

    Yields:
        TestClient: FastAPI test client.
    """
    from hearttoheart.api.deps import get_generation, get_solutions, get_store
    from hearttoheart.main import app

    app.dependency_overrides[get_store] = lambda: flow_store
    app.dependency_overrides[get_generation] = lambda: mock_generation_service
    app.dependency_overrides[get_solutions] = lambda: solution_registry

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
