"""
FastAPI dependencies for search and question answering.
"""
from fastapi import Depends
from azure.search.documents import SearchClient

from app.db.client import search_client_manager
from app.services.answer_service import AnswerService
from app.services.embedding_service import EmbeddingService
from app.services.retrieval_orchestrator import RetrievalOrchestrator
from app.services.search_service import SearchService


def get_search_client() -> SearchClient:
    """
    Dependency function to get Azure AI Search client.
    Used in FastAPI route dependencies.
    """
    return search_client_manager.get_client()


def get_orchestrator(search_client: SearchClient = Depends(get_search_client)) -> RetrievalOrchestrator:
    """
    Dependency function building a RetrievalOrchestrator per request.

    Raises ConfigurationError before any network call when a provider is not configured.
    """
    return RetrievalOrchestrator(
        embedding_provider=EmbeddingService(),
        index_provider=SearchService(search_client),
        completion_provider=AnswerService(),
    )
