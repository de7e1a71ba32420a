"""
Bylaws ingestion: chunk, embed and upload the document to the search index.

The index is always rebuilt from the whole document; there are no partial updates.
"""
import logging
from typing import Dict, Optional

from app.core.errors import InvalidInput
from app.models.config import INGESTION_CHUNK_CONFIG, ChunkConfig
from app.services.chunk_service import ChunkService
from app.services.embedding_service import EmbeddingService
from app.services.index_service import IndexService
from app.services.search_service import SearchService

logger = logging.getLogger(__name__)


class IngestionService:
    """Runs the offline ingestion pipeline for the bylaws document."""

    def __init__(
        self,
        chunk_service: ChunkService,
        embedding_service: EmbeddingService,
        index_service: IndexService,
        search_service: SearchService,
    ):
        self.chunk_service = chunk_service
        self.embedding_service = embedding_service
        self.index_service = index_service
        self.search_service = search_service

    def ingest(self, text: str, config: Optional[ChunkConfig] = None, clear_first: bool = False) -> Dict:
        """
        Ingest the bylaws text.

        Args:
            text: Full bylaws document
            config: Chunk sizes; defaults to INGESTION_CHUNK_CONFIG
            clear_first: Delete existing documents before uploading

        Returns:
            Summary with chunk, section and upload counts
        """
        if not isinstance(text, str) or not text.strip():
            raise InvalidInput("Bylaws text is empty or contains only whitespace")

        chunks = self.chunk_service.chunk(text, config or INGESTION_CHUNK_CONFIG)
        if not chunks:
            raise InvalidInput("No chunks created from the bylaws text")
        logger.info(f"Created {len(chunks)} chunks ({sum(1 for c in chunks if c.has_section)} with sections)")

        embeddings = self.embedding_service.embed_in_batches([chunk.content for chunk in chunks])
        logger.info(f"Generated embeddings for {len(embeddings)} chunks")

        self.index_service.create_or_update_index()

        deleted = 0
        if clear_first:
            deleted = self.search_service.clear_index()

        uploaded = self.search_service.upload_chunks(chunks, embeddings)

        return {
            "status": "success" if uploaded == len(chunks) else "partial",
            "chunks_created": len(chunks),
            "sections_found": sum(1 for chunk in chunks if chunk.has_section),
            "embeddings_generated": len(embeddings),
            "documents_deleted": deleted,
            "chunks_indexed": uploaded,
        }
