"""
API endpoints for bylaws ingestion and index management.
"""
import logging
from typing import Optional

from azure.search.documents import SearchClient
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, ValidationError

from app.core.errors import InvalidInput, RAGError
from app.core.settings import embedding_deployment
from app.db.deps import get_search_client
from app.models.config import INGESTION_CHUNK_CONFIG, ChunkConfig
from app.services.chunk_service import ChunkService
from app.services.embedding_service import EMBEDDING_DIMENSIONS, EmbeddingService
from app.services.index_service import IndexService
from app.services.ingestion_service import IngestionService
from app.services.search_service import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


class ChunkOptions(BaseModel):
    """Optional chunk size overrides."""
    max_chunk_size: int = INGESTION_CHUNK_CONFIG.max_chunk_size
    overlap_size: int = INGESTION_CHUNK_CONFIG.overlap_size
    min_chunk_size: int = INGESTION_CHUNK_CONFIG.min_chunk_size

    def to_config(self) -> ChunkConfig:
        return ChunkConfig(**self.model_dump())


class BylawsTextRequest(BaseModel):
    """Request carrying the full bylaws text."""
    text: str
    options: ChunkOptions = Field(default_factory=ChunkOptions)
    clear: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "text": "ARTICLE I\nNAME\nThe name of this corporation is Example HOA.",
                "options": {"max_chunk_size": 1000, "overlap_size": 200, "min_chunk_size": 100},
                "clear": True
            }
        }


class CreateIndexRequest(BaseModel):
    """Request model for creating index."""
    vector_dimension: int = EMBEDDING_DIMENSIONS
    index_name: Optional[str] = None


def _chunk_config(request: BylawsTextRequest) -> ChunkConfig:
    try:
        return request.options.to_config()
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid chunk options: {e}")


@router.post("/preview")
def preview_chunking(request: BylawsTextRequest):
    """Chunk the text without calling any provider (dry run)."""
    config = _chunk_config(request)
    try:
        return ChunkService().preview_chunking(request.text, config)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/ingest")
def ingest_bylaws(
    request: BylawsTextRequest,
    search_client: SearchClient = Depends(get_search_client)
):
    """
    Rebuild the bylaws index from raw text.

    Chunks the text, embeds every chunk, creates or updates the index schema,
    optionally clears existing documents, then uploads.
    """
    config = _chunk_config(request)
    try:
        ingestion = IngestionService(
            chunk_service=ChunkService(),
            embedding_service=EmbeddingService(),
            index_service=IndexService(),
            search_service=SearchService(search_client),
        )
        return ingestion.ingest(request.text, config, clear_first=request.clear)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RAGError as e:
        logger.error(f"Ingestion failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error ingesting bylaws: {str(e)}")


@router.post("/create-index")
def create_index(request: CreateIndexRequest = CreateIndexRequest()):
    """
    Create or update the bylaws index schema.

    Returns:
        Status of index creation with the resulting field list
    """
    try:
        index_service = IndexService(index_name=request.index_name)
        index_service.create_or_update_index(vector_dimension=request.vector_dimension)
        return {
            "status": "created",
            "message": f"Index '{index_service.index_name}' created/updated successfully",
            "index_info": index_service.get_index_info()
        }
    except RAGError as e:
        raise HTTPException(status_code=500, detail=f"Error creating index: {str(e)}")


@router.get("/index-info")
def get_index_info():
    """Get information about the current search index."""
    try:
        index_service = IndexService()
        return {
            "status": "success",
            "index_name": index_service.index_name,
            "index_info": index_service.get_index_info()
        }
    except RAGError as e:
        raise HTTPException(status_code=500, detail=f"Error getting index info: {str(e)}")


@router.delete("/delete-index")
def delete_index():
    """
    Delete the bylaws search index.

    ⚠️ WARNING: This will delete all indexed chunks!
    """
    try:
        index_service = IndexService()
        if index_service.delete_index():
            return {
                "status": "deleted",
                "message": f"Index '{index_service.index_name}' deleted successfully"
            }
        return {
            "status": "not_found",
            "message": f"Index '{index_service.index_name}' does not exist"
        }
    except RAGError as e:
        raise HTTPException(status_code=500, detail=f"Error deleting index: {str(e)}")


@router.get("/stats")
def get_stats(search_client: SearchClient = Depends(get_search_client)):
    """Document count and a sample document from the bylaws index."""
    try:
        return SearchService(search_client).get_index_stats(embedding_model=embedding_deployment())
    except RAGError as e:
        raise HTTPException(status_code=500, detail=f"Error getting index statistics: {str(e)}")
