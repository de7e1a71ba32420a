"""
Chunk, search result and RAG response models.

Field names are snake_case in Python and camelCase on the wire, which is also
the field naming of the search index.
"""
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that serializes with camelCase aliases."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SectionFound(BaseModel):
    """A section marker was recognised in the chunk."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["found"] = "found"
    number: str
    title: Optional[str] = None

    @property
    def has_section(self) -> bool:
        return True


class SectionNotFound(BaseModel):
    """No section marker matched."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["not_found"] = "not_found"

    @property
    def has_section(self) -> bool:
        return False


SectionInfo = Union[SectionFound, SectionNotFound]


class Chunk(CamelModel):
    """A contiguous slice of the cleaned bylaws text with structural metadata."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "chunk_0",
                "content": "ARTICLE I NAME The name of this corporation is Example HOA.",
                "startPosition": 0,
                "endPosition": 59,
                "length": 59,
                "chunkIndex": 0,
                "sectionNumber": "Article I",
                "sectionTitle": "NAME",
                "hasSection": True,
                "wordCount": 10,
                "hasLegalTerms": False,
                "containsNumbers": False,
                "containsDates": False,
            }
        },
    )

    id: str
    content: str
    start_position: int = Field(ge=0)
    end_position: int = Field(gt=0)
    length: int = Field(ge=0)
    chunk_index: int = Field(ge=0)
    section_number: Optional[str] = None
    section_title: Optional[str] = None
    has_section: bool = False
    word_count: int = Field(ge=1)
    has_legal_terms: bool = False
    contains_numbers: bool = False
    contains_dates: bool = False

    def to_index_document(self, embedding: List[float]) -> Dict[str, Any]:
        """
        Build the document uploaded to the search index.

        This schema is the persisted contract between ingestion and retrieval;
        missing section fields are stored as empty strings.
        """
        return {
            "id": self.id,
            "content": self.content,
            "contentVector": embedding,
            "sectionNumber": self.section_number or "",
            "sectionTitle": self.section_title or "",
            "chunkIndex": self.chunk_index,
            "hasSection": self.has_section,
            "wordCount": self.word_count,
            "hasLegalTerms": self.has_legal_terms,
        }


class SearchResult(CamelModel):
    """A chunk returned by the index together with its retrieval scores."""
    id: str
    content: str
    section_number: Optional[str] = None
    section_title: Optional[str] = None
    chunk_index: Optional[int] = None
    has_section: bool = False
    word_count: Optional[int] = None
    score: float
    search_score: Optional[float] = None
    reranker_score: Optional[float] = None


class Source(CamelModel):
    """A citation returned alongside a generated answer."""
    section_number: Optional[str] = None
    section_title: Optional[str] = None
    relevance_score: float
    content: str


class RAGResponse(CamelModel):
    """Answer to a single question. Created per query and never persisted."""
    response: str
    sources: List[Source] = Field(default_factory=list)
    retrieved_chunks: int = 0
    has_relevant_content: bool = False
    error: Optional[str] = None
