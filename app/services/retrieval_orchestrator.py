"""
Retrieval-augmented answering over the HOA bylaws.

A query moves through a fixed sequence of stages:

    VALIDATING -> RETRIEVING -> NO_RESULTS                                  (done)
                             -> GENERATING -> RECONCILING_CITATIONS         (done)

Each stage depends on the previous one, so provider calls are made in order.
Nothing is kept between calls; one orchestrator can serve concurrent queries.
"""
import logging
import threading
from enum import Enum
from typing import Dict, List, Optional, Protocol, Sequence

from app.core.errors import (
    ConfigurationError,
    EmbeddingError,
    GenerationError,
    GenerationFailed,
    IndexNotFound,
    InvalidInput,
    QueryCancelled,
    RetrievalFailed,
    SearchIndexError,
)
from app.models.chunk import RAGResponse, SearchResult
from app.models.config import RAGConfig
from app.services.answer_service import Completion, build_system_prompt
from app.services.citation_service import reconcile_citations

logger = logging.getLogger(__name__)

NOT_COVERED_MESSAGE = (
    "I don't have information about that topic in the HOA bylaws. Please check the complete "
    "bylaws document or contact your HOA board for assistance with questions not covered in the bylaws."
)
INDEX_NOT_INITIALIZED_MESSAGE = (
    "I apologize, but the HOA bylaws database is not currently available. "
    "Please contact your HOA administrator or try again later."
)
INDEX_NOT_INITIALIZED_ERROR = "Bylaws database not initialized"
NO_RESPONSE_MESSAGE = "I apologize, but I could not generate a response. Please try again."
GENERIC_ERROR_MESSAGE = (
    "I apologize, but I encountered an error while processing your question. Please try again."
)
CONFIGURATION_ERROR_MESSAGE = "The AI service is not properly configured. Please contact your administrator."
GENERATION_ERROR_MESSAGE = "I had trouble generating a response. Please try rephrasing your question."


class QueryStage(str, Enum):
    """Stages of a single query."""
    VALIDATING = "validating"
    RETRIEVING = "retrieving"
    NO_RESULTS = "no_results"
    GENERATING = "generating"
    RECONCILING_CITATIONS = "reconciling_citations"


class EmbeddingProvider(Protocol):
    def embed(self, texts: List[str]) -> List[List[float]]: ...


class IndexProvider(Protocol):
    def search(
        self,
        query: str,
        vector: Optional[List[float]],
        top: int = ...,
        select_fields: Optional[Sequence[str]] = ...,
        knn_count: Optional[int] = ...,
        include_text_search: bool = ...,
    ) -> List[SearchResult]: ...


class CompletionProvider(Protocol):
    def complete(self, messages: List[Dict[str, str]], max_tokens: int) -> Completion: ...


class RetrievalOrchestrator:
    """Turns a question into a grounded answer with verifiable section citations."""

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        index_provider: IndexProvider,
        completion_provider: CompletionProvider,
        config: Optional[RAGConfig] = None,
    ):
        self.embedding_provider = embedding_provider
        self.index_provider = index_provider
        self.completion_provider = completion_provider
        self.config = config or RAGConfig()

    def answer(
        self,
        question: str,
        config: Optional[RAGConfig] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> RAGResponse:
        """
        Answer a question from the bylaws.

        Args:
            question: User question
            config: Per-call settings; defaults to the orchestrator's config
            cancel_event: Optional token checked before every stage

        Returns:
            RAGResponse. A missing index yields a degraded response instead of an error.

        Raises:
            InvalidInput: question is not a non-blank string
            RetrievalFailed: embedding or search provider failed
            GenerationFailed: chat completion provider failed
            QueryCancelled: cancel_event was set
        """
        config = config or self.config

        self._check_cancelled(cancel_event, QueryStage.VALIDATING)
        question = self.validate_question(question)
        logger.info(f"Processing RAG question: {question[:100]}")

        self._check_cancelled(cancel_event, QueryStage.RETRIEVING)
        try:
            results = self.retrieve(question, config)
        except IndexNotFound as e:
            logger.warning(f"Bylaws index unavailable: {e}")
            return RAGResponse(
                response=INDEX_NOT_INITIALIZED_MESSAGE,
                error=INDEX_NOT_INITIALIZED_ERROR,
            )
        logger.info(f"Retrieved {len(results)} relevant chunks")

        if not results:
            logger.info(f"Stage {QueryStage.NO_RESULTS.value}: nothing above threshold {config.threshold}")
            return RAGResponse(response=NOT_COVERED_MESSAGE)

        self._check_cancelled(cancel_event, QueryStage.GENERATING)
        answer_text = self.generate(question, results, config)

        self._check_cancelled(cancel_event, QueryStage.RECONCILING_CITATIONS)
        sources = reconcile_citations(answer_text, results, config)

        return RAGResponse(
            response=answer_text,
            sources=sources,
            retrieved_chunks=len(results),
            has_relevant_content=len(results) > 0,
        )

    @staticmethod
    def validate_question(question) -> str:
        """Return the trimmed question or raise InvalidInput."""
        if not isinstance(question, str) or not question.strip():
            raise InvalidInput("Question is required and must be a non-empty string")
        return question.strip()

    def retrieve(self, question: str, config: RAGConfig) -> List[SearchResult]:
        """
        Hybrid retrieval with thresholding.

        Returns at most `config.top` results, all scoring at least
        `config.threshold`, sorted by score descending.
        """
        vector = None
        if config.include_vector_search:
            try:
                vectors = self.embedding_provider.embed([question])
                if len(vectors) != 1:
                    raise EmbeddingError(f"Expected 1 question embedding, received {len(vectors)}")
                vector = vectors[0]
            except EmbeddingError as e:
                raise RetrievalFailed(f"Embedding the question failed: {e}", QueryStage.RETRIEVING.value) from e

        try:
            candidates = self.index_provider.search(
                question,
                vector,
                top=config.top,
                knn_count=config.top * 2,
                include_text_search=config.include_text_search,
            )
        except IndexNotFound:
            raise
        except SearchIndexError as e:
            raise RetrievalFailed(f"Searching the bylaws index failed: {e}", QueryStage.RETRIEVING.value) from e

        passing = [result for result in candidates if result.score >= config.threshold]
        passing.sort(key=lambda result: result.score, reverse=True)
        return passing[:config.top]

    def generate(self, question: str, results: List[SearchResult], config: RAGConfig) -> str:
        """Ask the completion provider for an answer grounded in `results`."""
        messages = [
            {"role": "system", "content": build_system_prompt(results)},
            {"role": "user", "content": question},
        ]
        try:
            completion = self.completion_provider.complete(messages, max_tokens=config.max_response_tokens)
        except GenerationError as e:
            raise GenerationFailed(f"Answer generation failed: {e}", QueryStage.GENERATING.value) from e

        if completion.text is None:
            logger.warning("Completion provider returned no text")
            return NO_RESPONSE_MESSAGE
        return completion.text

    @staticmethod
    def error_response(error: Exception) -> RAGResponse:
        """User-facing response for a failed query. Never includes provider details."""
        if isinstance(error, ConfigurationError):
            message = CONFIGURATION_ERROR_MESSAGE
        elif isinstance(error, GenerationFailed):
            message = GENERATION_ERROR_MESSAGE
        else:
            message = GENERIC_ERROR_MESSAGE
        return RAGResponse(response=message, error=message)

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], stage: QueryStage) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise QueryCancelled(stage.value)
