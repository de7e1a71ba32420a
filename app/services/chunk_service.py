"""Text chunking service for splitting bylaws into overlapping, section-tagged chunks."""
import logging
import re
from typing import Callable, Dict, List, NamedTuple, Optional, Pattern, Sequence, Tuple, Union

from app.core.errors import InvalidInput
from app.models.chunk import Chunk, SectionFound, SectionInfo, SectionNotFound
from app.models.config import ChunkConfig

logger = logging.getLogger(__name__)

# Characters searched on each side of the naive chunk end for a better boundary
BOUNDARY_SEARCH_RANGE = 50

_SENTENCE_END = re.compile(r"[.!?]\s")
_PARAGRAPH_BREAK = re.compile(r"\n\n")
_WHITESPACE = re.compile(r"\s+")

_LEGAL_TERMS = re.compile(r"shall|may|must|required|prohibited|violation|fine|lien|assessment", re.IGNORECASE)
_NUMBERS = re.compile(r"\d+")
_DATES = re.compile(
    r"\d{1,2}/\d{1,2}/\d{4}|\d{4}-\d{2}-\d{2}|January|February|March|April|May|June|July"
    r"|August|September|October|November|December",
    re.IGNORECASE,
)

_SUBSECTION_MARKER = re.compile(r"^(?:[A-Z]|\d+)\.$")
_TRAILING_PUNCTUATION = ".,:;"


def normalize_text(text: str) -> str:
    """
    Remove markdown emphasis and headers and collapse whitespace.

    Passes are repeated until the text stops changing, so normalizing an
    already normalized string returns it unchanged.
    """
    previous = None
    while text != previous:
        previous = text
        text = text.replace("**", "")
        text = re.sub(r"#{1,6}\s+", "", text)
        text = re.sub(r"\n{3,}", "\n\n", text)
        text = _WHITESPACE.sub(" ", text)
        text = text.strip()
    return text


def find_sentence_boundary(text: str, position: int, search_range: int = BOUNDARY_SEARCH_RANGE) -> int:
    """
    Move a chunk end to the latest sentence ending near `position`.

    Falls back to the latest paragraph break, then the latest whitespace run,
    then `position` itself.
    """
    if position <= 0:
        return 0
    if position >= len(text):
        return len(text)

    start = max(0, position - search_range)
    end = min(len(text), position + search_range)
    window = text[start:end]

    sentence_endings = list(_SENTENCE_END.finditer(window))
    if sentence_endings:
        # +1 keeps the punctuation inside the chunk
        return start + sentence_endings[-1].start() + 1

    paragraph_breaks = list(_PARAGRAPH_BREAK.finditer(window))
    if paragraph_breaks:
        return start + paragraph_breaks[-1].start()

    word_breaks = list(_WHITESPACE.finditer(window))
    if word_breaks:
        return start + word_breaks[-1].start()

    return position


def _article_title(rest: str) -> Optional[str]:
    """Title following an ARTICLE numeral: the upper-case heading words, else the rest of the line."""
    words = []
    for word in rest.split():
        if _SUBSECTION_MARKER.match(word) or word != word.upper() or not any(c.isalpha() for c in word):
            break
        if word[-1] in _TRAILING_PUNCTUATION:
            words.append(word.rstrip(_TRAILING_PUNCTUATION))
            break
        words.append(word)
    if words:
        return " ".join(words)

    line = rest.split("\n", 1)[0]
    sentence = re.split(r"[.!?](?:\s|$)", line, maxsplit=1)[0]
    title = sentence[:50].strip()
    return title or None


def _match_article(match: "re.Match[str]") -> Optional[SectionFound]:
    title = _article_title(match.group(2))
    if title is None:
        return None
    return SectionFound(number=f"Article {match.group(1)}", title=title)


def _match_letter(match: "re.Match[str]") -> SectionFound:
    return SectionFound(number=match.group(1), title=match.group(2).strip())


def _match_numbered(match: "re.Match[str]") -> SectionFound:
    return SectionFound(number=match.group(1), title=match.group(2)[:50].strip())


def _match_legacy_section(match: "re.Match[str]") -> SectionFound:
    return SectionFound(number=match.group(1) or match.group(2), title=match.group(3).strip())


def _match_legacy_bold(match: "re.Match[str]") -> SectionFound:
    return SectionFound(number=match.group(1), title=match.group(2).strip())


class SectionRule(NamedTuple):
    """A section marker pattern and the extractor applied to its match."""
    name: str
    pattern: Pattern[str]
    extract: Callable[["re.Match[str]"], Optional[SectionFound]]


# Evaluated in order; the first rule that yields a section wins
SECTION_RULES: Sequence[SectionRule] = (
    SectionRule(
        "article",
        re.compile(r"\b(?i:ARTICLE)\s+([IVX]+|\d+)\b\s*[-–:.]?\s*(.*)", re.DOTALL),
        _match_article,
    ),
    SectionRule("letter", re.compile(r"^([A-Z])\.\s+(.+?)(?:\n|\.)", re.MULTILINE), _match_letter),
    SectionRule("numbered", re.compile(r"^(\d+)\.\s+(.+?)(?:\n|\.)", re.MULTILINE), _match_numbered),
    SectionRule(
        "legacy_section",
        re.compile(r"(?:Section\s+(\d+\.\d+)|ARTICLE\s+([IVX]+))\s*[-–]\s*(.+?)(?:\n|$)", re.IGNORECASE),
        _match_legacy_section,
    ),
    SectionRule(
        "legacy_bold",
        re.compile(r"\*\*Section\s+(\d+\.\d+)\s*[-–]\s*(.+?)\*\*", re.IGNORECASE),
        _match_legacy_bold,
    ),
)


def extract_section_info(text: str, rules: Sequence[SectionRule] = SECTION_RULES) -> SectionInfo:
    """Return the section identity of `text` using the first matching rule."""
    for rule in rules:
        match = rule.pattern.search(text)
        if not match:
            continue
        section = rule.extract(match)
        if section is not None:
            return section
    return SectionNotFound()


class ChunkService:
    """Service for chunking the bylaws text into overlapping character windows."""

    def chunk(self, text: str, config: Optional[ChunkConfig] = None) -> List[Chunk]:
        """
        Split text into overlapping chunks with section metadata.

        Args:
            text: Raw bylaws text (markdown allowed)
            config: Chunk sizes; defaults to ChunkConfig()

        Returns:
            Chunks in document order. Positions refer to the normalized text.
        """
        if not isinstance(text, str):
            raise InvalidInput("Text to chunk must be a string")
        config = config or ChunkConfig()

        cleaned_text = normalize_text(text)
        text_length = len(cleaned_text)
        chunks: List[Chunk] = []
        position = 0
        covered_until = 0

        while position < text_length:
            naive_end = min(position + config.max_chunk_size, text_length)
            end = find_sentence_boundary(cleaned_text, naive_end)
            # The search window can reach back behind text earlier chunks already cover
            if end <= max(position, covered_until):
                end = naive_end

            content = cleaned_text[position:end].strip()
            if len(content) < config.min_chunk_size and end < naive_end:
                end = naive_end
                content = cleaned_text[position:end].strip()
            while len(content) < config.min_chunk_size and end < text_length:
                end += 1
                content = cleaned_text[position:end].strip()

            if len(content) < config.min_chunk_size:
                # Only the trailing remainder of the text can be this short
                break

            if content:
                chunks.append(self._build_chunk(content, position, end, len(chunks)))
                covered_until = end

                if config.max_chunks is not None and len(chunks) >= config.max_chunks:
                    logger.warning(f"Chunk limit of {config.max_chunks} reached at position {end}/{text_length}")
                    break

            if end >= text_length:
                break

            # +1 floor guarantees progress when the overlap swallows the whole chunk
            position = max(end - config.overlap_size, position + 1)

            if position >= text_length - config.min_chunk_size:
                break

        logger.info(f"Chunked {text_length} characters into {len(chunks)} chunks")
        return chunks

    def _build_chunk(self, content: str, start: int, end: int, chunk_index: int) -> Chunk:
        """Create a chunk with section metadata and content flags."""
        section = extract_section_info(content)
        return Chunk(
            id=f"chunk_{chunk_index}",
            content=content,
            start_position=start,
            end_position=end,
            length=len(content),
            chunk_index=chunk_index,
            section_number=section.number if isinstance(section, SectionFound) else None,
            section_title=section.title if isinstance(section, SectionFound) else None,
            has_section=section.has_section,
            word_count=len(content.split()),
            has_legal_terms=bool(_LEGAL_TERMS.search(content)),
            contains_numbers=bool(_NUMBERS.search(content)),
            contains_dates=bool(_DATES.search(content)),
        )

    def get_chunks_by_section(self, chunks: List[Chunk], section_number: str) -> List[Chunk]:
        """Chunks tagged with `section_number` or mentioning it as 'Section <number>'."""
        return [
            chunk for chunk in chunks
            if chunk.section_number == section_number or f"Section {section_number}" in chunk.content
        ]

    def search_chunks_by_keywords(
        self,
        chunks: List[Chunk],
        keywords: Union[str, List[str]],
    ) -> List[Tuple[Chunk, int]]:
        """
        Score chunks by keyword occurrences.

        Each case-insensitive occurrence counts one point and a keyword found
        in the section title adds two. Chunks without any hit are dropped.
        """
        terms = [keywords] if isinstance(keywords, str) else list(keywords)
        scored = []

        for chunk in chunks:
            score = 0
            lower_content = chunk.content.lower()
            lower_title = (chunk.section_title or "").lower()
            for term in terms:
                lower_term = term.lower()
                if not lower_term:
                    continue
                score += len(re.findall(re.escape(lower_term), lower_content))
                if lower_term in lower_title:
                    score += 2
            if score > 0:
                scored.append((chunk, score))

        scored.sort(key=lambda item: item[1], reverse=True)
        return scored

    def preview_chunking(self, text: str, config: Optional[ChunkConfig] = None) -> Dict:
        """Summarize chunking results without calling any provider."""
        chunks = self.chunk(text, config)
        total_length = sum(chunk.length for chunk in chunks)

        section_numbers = []
        for chunk in chunks:
            if chunk.section_number and chunk.section_number not in section_numbers:
                section_numbers.append(chunk.section_number)

        return {
            "total_chunks": len(chunks),
            "average_chunk_size": round(total_length / len(chunks)) if chunks else 0,
            "sections_found": sum(1 for chunk in chunks if chunk.has_section),
            "section_numbers": section_numbers,
            "total_characters": len(text),
            "coverage_percentage": round(total_length / len(text) * 100) if text else 0,
            "sample_chunks": [
                {
                    "id": chunk.id,
                    "length": chunk.length,
                    "section_number": chunk.section_number,
                    "section_title": chunk.section_title,
                    "preview": chunk.content[:100] + "...",
                }
                for chunk in chunks[:3]
            ],
        }
