"""
Tests for matching cited section numbers back to retrieved chunks.
"""
from app.models.config import CitationFallback, RAGConfig
from app.services.citation_service import extract_cited_sections, reconcile_citations


class TestExtractCitedSections:

    def test_collects_distinct_numbers_case_insensitively(self) -> None:
        answer = "See Section 7.1, SECTION 7.2 and section 7.1 again."

        assert extract_cited_sections(answer) == {"7.1", "7.2"}

    def test_ignores_non_numeric_references(self) -> None:
        assert extract_cited_sections("Refer to Article I, Section C and Section 4.") == set()


class TestReconcileCitations:

    def test_keeps_only_cited_chunks_in_retrieval_order(self, make_result) -> None:
        chunks = [
            make_result("c1", 0.9, "7.2", "Late Fees"),
            make_result("c2", 0.8, "7.1", "Annual Assessments"),
            make_result("c3", 0.7, "9.3", "Pets"),
        ]

        sources = reconcile_citations("The fee is set under Section 7.1 and Section 7.2.", chunks, RAGConfig())

        assert [s.section_number for s in sources] == ["7.2", "7.1"]
        assert sources[0].relevance_score == 0.9
        assert sources[0].content == "Content of c1"

    def test_cited_section_missing_from_chunks_yields_no_sources(self, make_result) -> None:
        chunks = [make_result("c1", 0.9, "4.1")]

        assert reconcile_citations("Per Section 9.9 you may not.", chunks, RAGConfig()) == []

    def test_fallback_all_returns_every_sectioned_chunk(self, make_result) -> None:
        chunks = [
            make_result("c1", 0.9, "Article I", "NAME"),
            make_result("c2", 0.8),
            make_result("c3", 0.7, "A", "Architectural Control Committee"),
            make_result("c4", 0.6, "1", "Pets"),
            make_result("c5", 0.55, "4.1", "Annual Assessments"),
        ]

        sources = reconcile_citations("The Association is named Example HOA.", chunks, RAGConfig())

        assert [s.section_number for s in sources] == ["Article I", "A", "1", "4.1"]

    def test_fallback_capped_limits_sources(self, make_result) -> None:
        chunks = [make_result(f"c{i}", 0.9 - i / 100, f"Article {numeral}") for i, numeral in enumerate("I II III IV V".split())]
        config = RAGConfig(citation_fallback=CitationFallback.CAPPED, fallback_source_limit=3)

        sources = reconcile_citations("No numbered section applies.", chunks, config)

        assert [s.section_number for s in sources] == ["Article I", "Article II", "Article III"]

    def test_legacy_settings_cap_fallback(self) -> None:
        config = RAGConfig.legacy()

        assert config.top == 5
        assert config.threshold == 0.7
        assert config.citation_fallback == CitationFallback.CAPPED
