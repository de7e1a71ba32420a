"""
Service for creating and managing the bylaws search index.
"""
import logging
import os
from typing import Optional

from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.search.documents.indexes import SearchIndexClient
from azure.search.documents.indexes.models import (
    HnswAlgorithmConfiguration,
    HnswParameters,
    SearchableField,
    SearchField,
    SearchFieldDataType,
    SearchIndex,
    SimpleField,
    VectorSearch,
    VectorSearchAlgorithmKind,
    VectorSearchProfile,
)

from app.core.errors import ConfigurationError, SearchIndexError
from app.core.settings import provider_timeout, search_index_name
from app.services.embedding_service import EMBEDDING_DIMENSIONS

logger = logging.getLogger(__name__)

VECTOR_PROFILE_NAME = "hoa-vector-profile"
HNSW_ALGORITHM_NAME = "hoa-hnsw-algorithm"


class IndexService:
    """Service for managing the Azure AI Search index schema."""

    def __init__(self, index_name: Optional[str] = None):
        self.endpoint = os.getenv("AZURE_SEARCH_ENDPOINT")
        self.api_key = os.getenv("AZURE_SEARCH_KEY")
        self.index_name = index_name or search_index_name()

        if not self.endpoint or not self.api_key:
            raise ConfigurationError(
                "Missing Azure Search configuration. "
                "Please set AZURE_SEARCH_ENDPOINT and AZURE_SEARCH_KEY environment variables."
            )

        timeout = provider_timeout()
        self.index_client = SearchIndexClient(
            endpoint=self.endpoint,
            credential=AzureKeyCredential(self.api_key),
            connection_timeout=timeout,
            read_timeout=timeout,
        )

    def build_index(self, vector_dimension: int = EMBEDDING_DIMENSIONS) -> SearchIndex:
        """Index definition matching Chunk.to_index_document()."""
        fields = [
            SimpleField(name="id", type=SearchFieldDataType.String, key=True, filterable=True),
            SearchableField(
                name="content",
                type=SearchFieldDataType.String,
                analyzer_name="standard.lucene",
            ),
            SearchField(
                name="contentVector",
                type=SearchFieldDataType.Collection(SearchFieldDataType.Single),
                searchable=True,
                hidden=True,
                vector_search_dimensions=vector_dimension,
                vector_search_profile_name=VECTOR_PROFILE_NAME,
            ),
            SearchableField(name="sectionNumber", type=SearchFieldDataType.String, filterable=True),
            SearchableField(name="sectionTitle", type=SearchFieldDataType.String),
            SimpleField(name="chunkIndex", type=SearchFieldDataType.Int32, filterable=True),
            SimpleField(name="hasSection", type=SearchFieldDataType.Boolean, filterable=True),
            SimpleField(name="wordCount", type=SearchFieldDataType.Int32, filterable=True),
            SimpleField(name="hasLegalTerms", type=SearchFieldDataType.Boolean, filterable=True),
        ]

        vector_search = VectorSearch(
            profiles=[
                VectorSearchProfile(
                    name=VECTOR_PROFILE_NAME,
                    algorithm_configuration_name=HNSW_ALGORITHM_NAME
                )
            ],
            algorithms=[
                HnswAlgorithmConfiguration(
                    name=HNSW_ALGORITHM_NAME,
                    kind=VectorSearchAlgorithmKind.HNSW,
                    parameters=HnswParameters(
                        m=4,
                        ef_construction=400,
                        ef_search=500,
                        metric="cosine"
                    )
                )
            ]
        )

        return SearchIndex(name=self.index_name, fields=fields, vector_search=vector_search)

    def create_or_update_index(self, vector_dimension: int = EMBEDDING_DIMENSIONS) -> SearchIndex:
        """
        Create the search index, or update the schema of an existing one.

        Args:
            vector_dimension: Dimension of the embedding vectors (1536 for text-embedding-ada-002)
        """
        try:
            index = self.index_client.create_or_update_index(self.build_index(vector_dimension))
        except AzureError as e:
            raise SearchIndexError(f"Failed to create index '{self.index_name}': {e}") from e
        logger.info(f"Index '{self.index_name}' created/updated successfully")
        return index

    def delete_index(self) -> bool:
        """Delete the search index. Returns False if it did not exist."""
        try:
            self.index_client.delete_index(self.index_name)
            return True
        except ResourceNotFoundError:
            return False
        except AzureError as e:
            raise SearchIndexError(f"Failed to delete index: {e}") from e

    def index_exists(self) -> bool:
        """Check if the index exists."""
        try:
            self.index_client.get_index(self.index_name)
            return True
        except ResourceNotFoundError:
            return False
        except AzureError as e:
            raise SearchIndexError(f"Failed to look up index: {e}") from e

    def get_index_info(self) -> dict:
        """Get information about the index."""
        try:
            index = self.index_client.get_index(self.index_name)
        except ResourceNotFoundError as e:
            return {
                "exists": False,
                "error": str(e)
            }
        except AzureError as e:
            raise SearchIndexError(f"Failed to read index info: {e}") from e

        return {
            "exists": True,
            "name": index.name,
            "fields": [
                {
                    "name": f.name,
                    "type": str(f.type),
                    "key": getattr(f, 'key', False),
                    "searchable": getattr(f, 'searchable', False),
                    "filterable": getattr(f, 'filterable', False),
                    "vector_dimensions": getattr(f, 'vector_search_dimensions', None)
                }
                for f in index.fields
            ]
        }
