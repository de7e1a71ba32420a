"""Match section numbers cited in a generated answer back to retrieved chunks."""
import re
from typing import List, Set

from app.models.chunk import SearchResult, Source
from app.models.config import CitationFallback, RAGConfig

_SECTION_CITATION = re.compile(r"Section\s+(\d+\.\d+)", re.IGNORECASE)


def extract_cited_sections(answer: str) -> Set[str]:
    """Distinct numeric section numbers ("7.1") mentioned as "Section 7.1" in the answer."""
    return set(_SECTION_CITATION.findall(answer))


def _to_source(chunk: SearchResult) -> Source:
    return Source(
        section_number=chunk.section_number,
        section_title=chunk.section_title,
        relevance_score=chunk.score,
        content=chunk.content,
    )


def reconcile_citations(answer: str, chunks: List[SearchResult], config: RAGConfig) -> List[Source]:
    """
    Build the source list for an answer.

    Chunks whose section number the answer cites are kept in retrieval order.
    When the answer cites no numeric section at all, every retrieved chunk
    with a section number is returned instead, limited to
    `config.fallback_source_limit` under CitationFallback.CAPPED.
    """
    cited_sections = extract_cited_sections(answer)

    if cited_sections:
        return [_to_source(chunk) for chunk in chunks if chunk.section_number in cited_sections]

    fallback = [chunk for chunk in chunks if chunk.section_number]
    if config.citation_fallback == CitationFallback.CAPPED:
        fallback = fallback[:config.fallback_source_limit]
    return [_to_source(chunk) for chunk in fallback]
