"""Pytest configuration and shared fixtures for QuoteDesk tests."""

import os
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock, patch


# ============================================================================
# Ensure local imports work (config/, models/, services/, validators/)
# ============================================================================
#
# The codebase uses absolute imports like `from models...` / `from services...`.
# This guarantees that `functions/` is importable as the top-level module root.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


# ============================================================================
# LLM Mocks
# ============================================================================

@pytest.fixture
def mock_chat_openai():
    """Mock ChatOpenAI client."""
    mock = AsyncMock()
    mock.ainvoke.return_value = MagicMock(
        content="Mock response content",
        response_metadata={"token_usage": {"total_tokens": 100}}
    )
    return mock


@pytest.fixture
def mock_llm_service(mock_chat_openai):
    """LLMService with a mocked ChatOpenAI client."""
    from services.llm_service import LLMService

    with patch('services.llm_service.ChatOpenAI', return_value=mock_chat_openai):
        service = LLMService(model="gpt-4o-mini", temperature=0.0, api_key="test-api-key")
        service._client = mock_chat_openai
        return service


@pytest.fixture
def json_llm_service():
    """Stand-in LLMService whose generate_json is an AsyncMock."""
    service = MagicMock()
    service.generate_json = AsyncMock(return_value={"content": {}, "tokens_used": 0})
    return service


# ============================================================================
# State Fixtures
# ============================================================================

@pytest.fixture
def empty_state():
    """Fresh conversation state."""
    from models.conversation import ConversationState

    return ConversationState()


@pytest.fixture
def hardscaping_project():
    """Hardscaping, standard tier, 100 m², no excavator access."""
    from tests.fixtures.mock_conversation_data import build_project

    return build_project()


@pytest.fixture
def ready_state():
    """Hardscaping fact set with everything but the postcode."""
    from tests.fixtures.mock_conversation_data import build_state, READY_FACTS

    return build_state(**{k: v for k, v in READY_FACTS.items() if k != "postal_code"})


# ============================================================================
# Environment Setup
# ============================================================================

@pytest.fixture(autouse=True)
def mock_settings():
    """Mock settings for all tests."""
    with patch('config.settings.settings') as mock:
        mock.openai_api_key = "test-api-key"
        mock.llm_model = "gpt-4o"
        mock.llm_temperature = 0.0
        mock.remote_extraction_enabled = False
        mock.remote_timeout_seconds = 8.0
        mock.estimate_review_enabled = False
        mock.lead_webhook_url = None
        mock.lead_webhook_timeout_seconds = 10.0
        mock.log_level = "INFO"
        yield mock
