"""
Shared fixtures for the bylaws assistant test suite.
"""
from pathlib import Path
from typing import Callable, Optional
from unittest.mock import MagicMock

import pytest

from app.models.chunk import SearchResult
from app.models.config import RAGConfig
from app.services.answer_service import Completion
from app.services.retrieval_orchestrator import RetrievalOrchestrator

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@pytest.fixture
def sample_bylaws_text() -> str:
    """Full sample bylaws document shipped in data/."""
    return (DATA_DIR / "bylaws.txt").read_text(encoding="utf-8")


@pytest.fixture
def make_result() -> Callable[..., SearchResult]:
    """Factory for search results."""
    def _make(
        chunk_id: str,
        score: float,
        section_number: Optional[str] = None,
        section_title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> SearchResult:
        return SearchResult(
            id=chunk_id,
            content=content or f"Content of {chunk_id}",
            section_number=section_number,
            section_title=section_title,
            has_section=section_number is not None,
            score=score,
            search_score=score,
        )
    return _make


@pytest.fixture
def embedding_provider() -> MagicMock:
    """Embedding provider returning one fixed vector per input."""
    provider = MagicMock()
    provider.embed.side_effect = lambda texts: [[0.1, 0.2, 0.3] for _ in texts]
    return provider


@pytest.fixture
def index_provider() -> MagicMock:
    """Index provider with no results by default."""
    provider = MagicMock()
    provider.search.return_value = []
    return provider


@pytest.fixture
def completion_provider() -> MagicMock:
    """Completion provider answering with a single citation."""
    provider = MagicMock()
    provider.complete.return_value = Completion(
        text="Owners pay an annual assessment under Section 4.1.",
        usage={"prompt_tokens": 100, "completion_tokens": 12, "total_tokens": 112},
    )
    return provider


@pytest.fixture
def orchestrator(embedding_provider, index_provider, completion_provider) -> RetrievalOrchestrator:
    """Orchestrator wired to mock providers with default settings."""
    return RetrievalOrchestrator(
        embedding_provider=embedding_provider,
        index_provider=index_provider,
        completion_provider=completion_provider,
        config=RAGConfig(),
    )
