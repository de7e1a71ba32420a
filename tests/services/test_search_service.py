"""
Tests for SearchService against a mocked Azure SearchClient.
"""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError, ServiceRequestError

from app.core.errors import IndexNotFound, SearchIndexError
from app.models.chunk import Chunk
from app.services.search_service import DEFAULT_SELECT_FIELDS, SearchService


@pytest.fixture
def search_client() -> MagicMock:
    client = MagicMock()
    client._index_name = "hoa-bylaws-index"
    client.search.return_value = []
    return client


@pytest.fixture
def search_service(search_client) -> SearchService:
    return SearchService(search_client)


def make_chunk(index: int, section_number=None) -> Chunk:
    content = f"Owners shall pay assessment number {index}."
    return Chunk(
        id=f"chunk_{index}",
        content=content,
        start_position=index * 10,
        end_position=index * 10 + len(content),
        length=len(content),
        chunk_index=index,
        section_number=section_number,
        has_section=section_number is not None,
        word_count=len(content.split()),
        has_legal_terms=True,
        contains_numbers=True,
    )


class TestSearch:

    def test_builds_hybrid_query(self, search_service, search_client) -> None:
        search_service.search("late fees", [0.1, 0.2], top=4)

        kwargs = search_client.search.call_args.kwargs
        assert kwargs["search_text"] == "late fees"
        assert kwargs["top"] == 4
        assert kwargs["select"] == DEFAULT_SELECT_FIELDS
        assert kwargs["search_mode"] == "any"
        [vector_query] = kwargs["vector_queries"]
        assert vector_query.vector == [0.1, 0.2]
        assert vector_query.k_nearest_neighbors == 8
        assert vector_query.fields == "contentVector"

    def test_explicit_knn_count_and_vector_only(self, search_service, search_client) -> None:
        search_service.search("late fees", [0.1], top=4, knn_count=20, include_text_search=False)

        kwargs = search_client.search.call_args.kwargs
        assert kwargs["search_text"] == "*"
        assert "search_mode" not in kwargs
        assert kwargs["vector_queries"][0].k_nearest_neighbors == 20

    def test_text_only_when_no_vector(self, search_service, search_client) -> None:
        search_service.search("late fees", None)

        assert "vector_queries" not in search_client.search.call_args.kwargs

    def test_parses_results(self, search_service, search_client) -> None:
        search_client.search.return_value = [
            {
                "id": "chunk_3",
                "content": "Each owner shall pay an annual assessment.",
                "sectionNumber": "4.1",
                "sectionTitle": "Annual Assessments",
                "chunkIndex": 3,
                "hasSection": True,
                "wordCount": 7,
                "@search.score": 0.82,
                "@search.reranker_score": 2.5,
            },
            {"id": "chunk_9", "content": "Unlabelled.", "sectionNumber": "", "sectionTitle": ""},
        ]

        first, second = search_service.search("dues", [0.1])

        assert first.section_number == "4.1"
        assert first.score == 0.82
        assert first.search_score == 0.82
        assert first.reranker_score == 2.5
        assert second.section_number is None
        assert second.section_title is None
        assert second.score == 0.0
        assert second.has_section is False

    def test_missing_index_raises_index_not_found(self, search_service, search_client) -> None:
        search_client.search.side_effect = ResourceNotFoundError("The index 'hoa-bylaws-index' was not found")

        with pytest.raises(IndexNotFound):
            search_service.search("dues", [0.1])

    def test_other_http_errors_raise_search_index_error(self, search_service, search_client) -> None:
        search_client.search.side_effect = HttpResponseError("503 Service Unavailable")

        with pytest.raises(SearchIndexError) as exc_info:
            search_service.search("dues", [0.1])

        assert not isinstance(exc_info.value, IndexNotFound)

    def test_errors_while_paging_are_translated(self, search_service, search_client) -> None:
        def failing_pages():
            yield {"id": "chunk_0", "content": "first", "@search.score": 0.9}
            raise ServiceRequestError("connection reset")

        search_client.search.return_value = failing_pages()

        with pytest.raises(SearchIndexError):
            search_service.search("dues", [0.1])


class TestUploadAndMaintenance:

    def test_upload_uses_batches_of_one_hundred(self, search_service, search_client) -> None:
        chunks = [make_chunk(i) for i in range(250)]
        search_client.upload_documents.side_effect = lambda documents: [
            SimpleNamespace(succeeded=True, key=d["id"], error_message=None) for d in documents
        ]

        uploaded = search_service.upload_chunks(chunks, [[0.0, 1.0]] * 250)

        assert uploaded == 250
        batch_sizes = [len(call.kwargs["documents"]) for call in search_client.upload_documents.call_args_list]
        assert batch_sizes == [100, 100, 50]

    def test_upload_document_shape_and_partial_failures(self, search_service, search_client) -> None:
        chunks = [make_chunk(0, "4.1"), make_chunk(1)]
        search_client.upload_documents.return_value = [
            SimpleNamespace(succeeded=True, key="chunk_0", error_message=None),
            SimpleNamespace(succeeded=False, key="chunk_1", error_message="Invalid document"),
        ]

        uploaded = search_service.upload_chunks(chunks, [[0.5], [0.6]])

        assert uploaded == 1
        documents = search_client.upload_documents.call_args.kwargs["documents"]
        assert documents[0]["sectionNumber"] == "4.1"
        assert documents[0]["contentVector"] == [0.5]
        assert documents[1]["sectionNumber"] == ""
        assert documents[1]["hasSection"] is False

    def test_upload_requires_one_embedding_per_chunk(self, search_service) -> None:
        with pytest.raises(ValueError):
            search_service.upload_chunks([make_chunk(0)], [])

    def test_clear_index_deletes_every_document(self, search_service, search_client) -> None:
        search_client.search.return_value = [{"id": f"chunk_{i}"} for i in range(150)]

        deleted = search_service.clear_index()

        assert deleted == 150
        assert search_client.delete_documents.call_count == 2
        first_batch = search_client.delete_documents.call_args_list[0].kwargs["documents"]
        assert first_batch[0] == {"id": "chunk_0"}

    def test_clear_empty_index(self, search_service, search_client) -> None:
        assert search_service.clear_index() == 0
        search_client.delete_documents.assert_not_called()

    def test_index_stats(self, search_service, search_client) -> None:
        count_results = MagicMock()
        count_results.get_count.return_value = 42
        search_client.search.side_effect = [
            count_results,
            iter([{"id": "chunk_0", "sectionNumber": "Article I", "sectionTitle": "NAME", "hasSection": True}]),
        ]

        stats = search_service.get_index_stats(embedding_model="text-embedding-ada-002")

        assert stats["index_name"] == "hoa-bylaws-index"
        assert stats["document_count"] == 42
        assert stats["has_documents"] is True
        assert stats["sample_document"]["section_number"] == "Article I"
        assert stats["embedding_dimensions"] == 1536
