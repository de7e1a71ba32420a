"""
Exception hierarchy for the bylaws assistant.

Provider services translate SDK errors into these types so callers never
have to know which Azure client raised them.
"""
from typing import Optional


class RAGError(Exception):
    """Base class for all bylaws assistant errors."""


class InvalidInput(RAGError, ValueError):
    """A question or document text was empty, blank or not a string."""


class ConfigurationError(RAGError):
    """Required provider configuration is missing."""


class ProviderError(RAGError):
    """An external provider call failed or timed out."""


class EmbeddingError(ProviderError):
    """The embedding provider returned an error."""


class SearchIndexError(ProviderError):
    """The search index provider returned an error."""


class IndexNotFound(SearchIndexError):
    """The search index does not exist yet (ingestion has not run)."""


class GenerationError(ProviderError):
    """The chat completion provider returned an error."""


class RetrievalFailed(RAGError):
    """Raised by the orchestrator when embedding or searching fails."""

    def __init__(self, message: str, stage: str = "retrieving"):
        super().__init__(message)
        self.stage = stage


class GenerationFailed(RAGError):
    """Raised by the orchestrator when answer generation fails."""

    def __init__(self, message: str, stage: str = "generating"):
        super().__init__(message)
        self.stage = stage


class QueryCancelled(RAGError):
    """The caller cancelled the query between stages."""

    def __init__(self, stage: Optional[str] = None):
        super().__init__(f"Query cancelled before stage '{stage}'" if stage else "Query cancelled")
        self.stage = stage
