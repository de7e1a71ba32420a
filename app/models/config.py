"""
Immutable configuration for chunking and retrieval.

Every chunker and orchestrator call receives one of these explicitly; there
are no module-level mutable defaults.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ChunkConfig(BaseModel):
    """Character-based chunking parameters."""
    model_config = ConfigDict(frozen=True)

    max_chunk_size: int = Field(default=1500, gt=0)
    overlap_size: int = Field(default=300, ge=0)
    min_chunk_size: int = Field(default=100, ge=0)
    # Optional hard cap on emitted chunks; None keeps the historical unbounded behaviour
    max_chunks: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _check_progress(self) -> "ChunkConfig":
        if self.overlap_size >= self.max_chunk_size:
            raise ValueError(
                f"overlap_size ({self.overlap_size}) must be smaller than "
                f"max_chunk_size ({self.max_chunk_size})"
            )
        if self.min_chunk_size > self.max_chunk_size:
            raise ValueError(
                f"min_chunk_size ({self.min_chunk_size}) must not exceed "
                f"max_chunk_size ({self.max_chunk_size})"
            )
        return self


INGESTION_CHUNK_CONFIG = ChunkConfig(max_chunk_size=1000, overlap_size=200)


class CitationFallback(str, Enum):
    """What to cite when the generated answer names no numeric section."""
    ALL = "all"
    CAPPED = "capped"


class RAGConfig(BaseModel):
    """Retrieval, generation and citation parameters for a single query."""
    model_config = ConfigDict(frozen=True)

    top: int = Field(default=8, gt=0)
    threshold: float = Field(default=0.5, ge=0.0)
    max_response_tokens: int = Field(default=800, gt=0)
    citation_fallback: CitationFallback = CitationFallback.ALL
    fallback_source_limit: int = Field(default=3, gt=0)
    include_vector_search: bool = True
    include_text_search: bool = True

    @classmethod
    def legacy(cls) -> "RAGConfig":
        """The first production settings: fewer, stricter results and capped fallback citations."""
        return cls(top=5, threshold=0.7, citation_fallback=CitationFallback.CAPPED)
