"""
Hybrid search service using Azure AI Search.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.search.documents import SearchClient
from azure.search.documents.models import VectorizedQuery

from app.core.errors import IndexNotFound, SearchIndexError
from app.models.chunk import Chunk, SearchResult
from app.services.embedding_service import EMBEDDING_DIMENSIONS

logger = logging.getLogger(__name__)

DEFAULT_SELECT_FIELDS = [
    "id", "content", "sectionNumber", "sectionTitle", "chunkIndex", "hasSection", "wordCount",
]
UPLOAD_BATCH_SIZE = 100


class SearchService:
    """Service for search and upload operations on the bylaws index."""

    def __init__(self, search_client: SearchClient):
        """
        Initialize search service.

        Args:
            search_client: Azure AI Search client bound to the bylaws index
        """
        self.client = search_client
        self.index_name = getattr(search_client, "_index_name", None)

    def _translate_error(self, error: AzureError, action: str) -> SearchIndexError:
        """Map an Azure SDK error onto the search error taxonomy."""
        error_msg = str(error)
        if isinstance(error, ResourceNotFoundError) or "index not found" in error_msg.lower():
            return IndexNotFound(
                f"Index not found. Make sure the index '{self.index_name}' exists in Azure AI Search. "
                f"Original error: {error_msg}"
            )
        if "401" in error_msg or "Unauthorized" in error_msg:
            return SearchIndexError(
                f"Authentication failed while {action}. Check your AZURE_SEARCH_KEY. "
                f"Original error: {error_msg}"
            )
        return SearchIndexError(f"Error {action}: {error_msg}")

    def search(
        self,
        query: str,
        vector: Optional[List[float]],
        top: int = 5,
        select_fields: Optional[Sequence[str]] = None,
        knn_count: Optional[int] = None,
        include_text_search: bool = True,
    ) -> List[SearchResult]:
        """
        Run a hybrid vector + full-text query.

        Args:
            query: Raw question text for the full-text leg
            vector: Query embedding for the vector leg, or None to skip it
            top: Number of results requested from the index
            select_fields: Fields to return (defaults to DEFAULT_SELECT_FIELDS)
            knn_count: Nearest-neighbour candidates for the vector leg (defaults to top * 2)
            include_text_search: When False only the vector leg is used

        Returns:
            Results with provider-native scores, in provider order
        """
        search_options: Dict[str, Any] = {
            "top": top,
            "select": list(select_fields or DEFAULT_SELECT_FIELDS),
            "include_total_count": True,
        }

        if vector:
            search_options["vector_queries"] = [
                VectorizedQuery(
                    vector=vector,
                    k_nearest_neighbors=knn_count or top * 2,
                    fields="contentVector"
                )
            ]

        if include_text_search:
            search_options["search_mode"] = "any"

        try:
            results = self.client.search(
                search_text=query if include_text_search else "*",
                **search_options
            )
            # Results are paged lazily, so errors can surface while iterating
            formatted_results = [self._to_search_result(result) for result in results]
        except AzureError as e:
            logger.error(f"Search request against '{self.index_name}' failed: {e}", exc_info=True)
            raise self._translate_error(e, "searching documents") from e

        logger.info(f"Search returned {len(formatted_results)} candidates")
        return formatted_results

    def _to_search_result(self, result: Dict[str, Any]) -> SearchResult:
        """Parse one provider document; empty section fields become None."""
        score = result.get("@search.score")
        return SearchResult(
            id=result["id"],
            content=result.get("content") or "",
            section_number=result.get("sectionNumber") or None,
            section_title=result.get("sectionTitle") or None,
            chunk_index=result.get("chunkIndex"),
            has_section=bool(result.get("hasSection")),
            word_count=result.get("wordCount"),
            score=score if score is not None else 0.0,
            search_score=score,
            reranker_score=result.get("@search.reranker_score"),
        )

    def upload_chunks(self, chunks: List[Chunk], embeddings: List[List[float]]) -> int:
        """
        Upload chunks with their embeddings in batches.

        Args:
            chunks: Chunks produced by ChunkService
            embeddings: One vector per chunk, in chunk order

        Returns:
            Number of documents that were stored
        """
        if len(chunks) != len(embeddings):
            raise ValueError("Number of chunks must match number of embeddings")

        documents = [chunk.to_index_document(embedding) for chunk, embedding in zip(chunks, embeddings)]
        total_batches = (len(documents) + UPLOAD_BATCH_SIZE - 1) // UPLOAD_BATCH_SIZE
        succeeded = 0

        for batch_num, i in enumerate(range(0, len(documents), UPLOAD_BATCH_SIZE), 1):
            batch = documents[i:i + UPLOAD_BATCH_SIZE]
            try:
                results = self.client.upload_documents(documents=batch)
            except AzureError as e:
                raise self._translate_error(e, "uploading documents") from e

            failures = [r for r in results if not r.succeeded]
            for failure in failures:
                logger.warning(f"Failed to upload document {failure.key}: {failure.error_message}")
            succeeded += len(batch) - len(failures)
            logger.info(f"Uploaded batch {batch_num}/{total_batches} ({len(batch) - len(failures)} successful)")

        return succeeded

    def clear_index(self) -> int:
        """Delete every document from the index. Returns the number deleted."""
        try:
            results = self.client.search(search_text="*", select=["id"], top=10000)
            ids_to_delete = [result["id"] for result in results]

            if not ids_to_delete:
                logger.info("Index is already empty")
                return 0

            for i in range(0, len(ids_to_delete), UPLOAD_BATCH_SIZE):
                batch = ids_to_delete[i:i + UPLOAD_BATCH_SIZE]
                self.client.delete_documents(documents=[{"id": doc_id} for doc_id in batch])
        except AzureError as e:
            raise self._translate_error(e, "clearing index") from e

        logger.info(f"Deleted {len(ids_to_delete)} documents from '{self.index_name}'")
        return len(ids_to_delete)

    def get_index_stats(self, embedding_model: Optional[str] = None) -> Dict[str, Any]:
        """
        Get statistics about the indexed bylaws.

        Returns:
            Dictionary with document count and a sample document
        """
        try:
            count_results = self.client.search(search_text="*", top=0, include_total_count=True)
            document_count = count_results.get_count() or 0

            sample_document = None
            for result in self.client.search(
                search_text="*",
                top=1,
                select=["id", "sectionNumber", "sectionTitle", "hasSection"],
            ):
                sample_document = {
                    "id": result.get("id"),
                    "section_number": result.get("sectionNumber") or None,
                    "section_title": result.get("sectionTitle") or None,
                    "has_section": bool(result.get("hasSection")),
                }
                break
        except AzureError as e:
            raise self._translate_error(e, "getting index statistics") from e

        return {
            "index_name": self.index_name,
            "document_count": document_count,
            "has_documents": document_count > 0,
            "sample_document": sample_document,
            "embedding_model": embedding_model,
            "embedding_dimensions": EMBEDDING_DIMENSIONS,
        }
