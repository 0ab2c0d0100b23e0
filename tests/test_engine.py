"""End-to-end tests for the citation engine facade."""

from concurrent.futures import ThreadPoolExecutor

from structlog.testing import capture_logs

import lexcite
from lexcite.citations.authorities import AuthoritySection
from lexcite.citations.models import (
    CaseComponents,
    CitationKind,
    CitationStyle,
    IdScope,
    IssueCode,
    Resolution,
    StatuteComponents,
)
from lexcite.config import EngineSettings
from lexcite.engine import CitationEngine, form_feed_breaks, get_default_engine, paragraph_breaks


BRIEF = (
    "Plaintiff relies on Roe v. Wade, 410 U.S. 113 (1973). Id. at 115. "
    "See also Doe v. Bolton, 410 U.S. 179 (1973). Under 42 U.S.C. § 1983 and "
    "Fed. R. Civ. P. 56, the claim survives. Roe, supra, at 120."
)


# =============================================================================
# Consumer calls
# =============================================================================


class TestExtractCitations:

    def test_statute_scenario(self, engine):
        [citation] = engine.extract_citations("42 Pa.C.S. § 5524")
        assert citation.kind == CitationKind.STATUTE
        c = citation.components
        assert (c.title, c.code_abbrev, c.section) == ("42", "Pa.C.S.", "5524")
        assert citation.warnings == []
        assert citation.errors == []
        assert citation.canonical_form == "42 Pa.C.S. § 5524"

    def test_incomplete_case_scenario(self, engine):
        [citation] = engine.extract_citations("413 U.S.")
        assert citation.kind == CitationKind.CASE
        assert citation.confidence < 1.0
        assert IssueCode.INCOMPLETE_CASE_CITATION in [issue.code for issue in citation.errors]
        assert citation.canonical_form == "413 U.S."

    def test_canonical_form_uses_style(self, engine):
        text = "Charles Alan Wright & Arthur R. Miller, Federal Practice and Procedure § 1350 (3d ed., West, 2004)"
        [citation] = engine.extract_citations(text, CitationStyle.ALWD)
        assert citation.style == CitationStyle.ALWD
        assert citation.canonical_form.endswith("(3d ed., West 2004)")

    def test_no_citations(self, engine):
        assert engine.extract_citations("Nothing to see here.") == []

    def test_ex_parte_case_name(self, engine):
        [citation] = engine.extract_citations("See Ex parte Young, 209 U.S. 123 (1908).")
        assert citation.components.party_a == "Ex parte Young"
        assert citation.canonical_form == "Ex parte Young, 209 U.S. 123 (1908)"
        assert citation.warnings == []

    def test_state_compilation_outside_tables(self, engine):
        [citation] = engine.extract_citations("Under N.Y. Gen. Bus. Law § 349, the practice is deceptive.")
        assert citation.kind == CitationKind.STATUTE
        assert citation.issue_codes() == [IssueCode.UNKNOWN_CODE]
        assert citation.canonical_form == "N.Y. Gen. Bus. Law § 349"


class TestSingleCalls:

    def test_parse_citation(self, engine):
        citation = engine.parse_citation("Roe v. Wade, 410 U.S. 113 (1973)")
        assert citation.canonical_form == "Roe v. Wade, 410 U.S. 113 (1973)"
        assert citation.authority_key == "case|410|u.s.|113"
        assert engine.parse_citation("no citation") is None

    def test_format_citation(self, engine):
        components = StatuteComponents(title="42", code_abbrev="U.S.C.", section="1983")
        assert engine.format_citation(components) == "42 U.S.C. § 1983"
        assert engine.format_citation(components, CitationStyle.CHICAGO) == "42 U.S.C. § 1983"

    def test_pipeline_steps_compose(self, engine):
        citations = engine.extract_citations("See 410 U.S. 113. Id. at 115.")
        resolved = engine.resolve_short_forms(citations)
        assert [c.resolution for c in resolved] == [Resolution.FULL, Resolution.ID]
        assert resolved[0].authority_key == resolved[1].authority_key
        toa = engine.build_table_of_authorities(resolved)
        assert toa.as_rows() == [("Cases", [("410 U.S. 113", "113, 115", [])])]


# =============================================================================
# Whole documents
# =============================================================================


class TestProcessDocument:

    def test_brief(self, engine):
        result = engine.process_document(BRIEF)
        assert [c.display_form for c in result.citations] == [
            "Roe v. Wade, 410 U.S. 113 (1973)",
            "Id. at 115",
            "See also Doe v. Bolton, 410 U.S. 179 (1973)",
            "42 U.S.C. § 1983",
            "Fed. R. Civ. P. 56",
            "Roe, supra, at 120",
        ]
        assert result.flagged == []
        assert [section.heading for section in result.table_of_authorities.sections] == [
            AuthoritySection.CASES, AuthoritySection.STATUTES, AuthoritySection.RULES,
        ]
        cases = result.table_of_authorities.section(AuthoritySection.CASES).entries
        assert [(entry.formatted_authority, entry.merged_pincites) for entry in cases] == [
            ("Doe v. Bolton, 410 U.S. 179 (1973)", "179"),
            ("Roe v. Wade, 410 U.S. 113 (1973)", "113, 115, 120"),
        ]

    def test_form_feeds_give_pages(self, engine):
        text = "Roe v. Wade, 410 U.S. 113 (1973).\fId. at 115."
        [entry] = engine.process_document(text).table_of_authorities.sections[0].entries
        assert entry.page_references == [1, 2]

    def test_explicit_page_breaks(self, engine):
        text = "Roe v. Wade, 410 U.S. 113 (1973). Id. at 115."
        [entry] = engine.process_document(text, page_breaks=[34]).table_of_authorities.sections[0].entries
        assert entry.page_references == [1, 2]

    def test_chicago_document(self, engine):
        result = engine.process_document("Roe v. Wade, 410 U.S. 113 (1973). Id. at 115.", CitationStyle.CHICAGO)
        assert result.style == CitationStyle.CHICAGO
        assert result.citations[1].display_form == "Ibid., 115"

    def test_segment_scope_uses_paragraphs(self, tables):
        engine = CitationEngine(EngineSettings(id_scope=IdScope.SEGMENT), tables)
        result = engine.process_document("Roe v. Wade, 410 U.S. 113 (1973).\n\nRoe v. Wade, 410 U.S. 113, 115 (1973).")
        assert result.citations[1].display_form == "Roe, supra, at 115"

    def test_default_style_from_settings(self, tables):
        engine = CitationEngine(EngineSettings(default_style=CitationStyle.CHICAGO), tables)
        result = engine.process_document("Roe v. Wade, 410 U.S. 113 (1973). Id.")
        assert result.citations[1].display_form == "Ibid."

    def test_id_with_section_after_statute(self, engine):
        result = engine.process_document("42 U.S.C. § 1983. Id. § 1985.")
        first, second = result.citations
        assert "1985" in second.canonical_form
        assert second.display_form == "Id. § 1985"
        assert second.authority_key != first.authority_key
        entries = result.table_of_authorities.section(AuthoritySection.STATUTES).entries
        assert [entry.formatted_authority for entry in entries] == ["42 U.S.C. § 1983", "42 U.S.C. § 1985"]

    def test_flawed_citation_kept(self, engine):
        result = engine.process_document("413 U.S. and 42 U.S.C. § 1983.")
        assert len(result.citations) == 2
        assert result.flagged[0].raw_text == "413 U.S."
        [entry] = result.table_of_authorities.section(AuthoritySection.CASES).entries
        assert entry.flagged is True


class TestHints:

    def test_hint_fills_case_name_and_year(self, engine):
        hint = engine.parse_citation("Roe v. Wade, 410 U.S. 113 (1973)")
        [citation] = engine.extract_citations("See 410 U.S. 113, 115.", existing_citations_hint=[hint])
        c = citation.components
        assert (c.party_a, c.party_b, c.year, c.pincite) == ("Roe", "Wade", 1973, "115")
        assert citation.confidence == 1.0
        assert IssueCode.MISSING_COMPONENT not in citation.issue_codes()
        assert citation.canonical_form == "Roe v. Wade, 410 U.S. 113, 115 (1973)"

    def test_hint_fills_missing_first_page(self, engine):
        hint = engine.parse_citation("Roe v. Wade, 410 U.S. 113 (1973)")
        [citation] = engine.extract_citations("Roe v. Wade, 410 U.S.", existing_citations_hint=[hint])
        assert citation.components.first_page == "113"
        assert citation.authority_key == hint.authority_key
        assert citation.errors == []

    def test_unrelated_hint_ignored(self, engine):
        hint = engine.parse_citation("Doe v. Bolton, 410 U.S. 179 (1973)")
        [citation] = engine.extract_citations("410 U.S. 113", existing_citations_hint=[hint])
        assert citation.components.party_a is None

    def test_hint_does_not_replace_parsed_values(self, engine):
        hint = engine.parse_citation("Roe v. Wade, 410 U.S. 113, 120 (1973)")
        [citation] = engine.extract_citations("Roe v. Wade, 410 U.S. 113 (1974)", existing_citations_hint=[hint])
        assert citation.components.year == 1974
        assert citation.components.pincite is None


# =============================================================================
# Concurrency, logging and defaults
# =============================================================================


class TestConcurrency:

    def test_documents_processed_in_parallel(self, engine):
        documents = [
            BRIEF,
            "See 410 U.S. 113. Id. at 115.",
            "42 Pa.C.S. § 5524",
            "Rule 2. Rule 10. Rule 9.",
        ] * 4
        sequential = [engine.process_document(text).model_dump() for text in documents]
        with ThreadPoolExecutor(max_workers=4) as pool:
            parallel = [result.model_dump() for result in pool.map(engine.process_document, documents)]
        assert parallel == sequential


class TestLogging:

    def test_pipeline_events(self, tables):
        with capture_logs() as logs:
            engine = CitationEngine(EngineSettings(), tables)
            engine.process_document("See 410 U.S. 113. Id. at 115.")
        events = {entry["event"]: entry for entry in logs if entry.get("module") == "engine"}
        assert events["citations_extracted"]["count"] == 2
        assert events["short_forms_resolved"]["resolutions"] == {"full": 1, "id": 1}
        assert events["toa_built"]["entries"] == 1
        assert all("duration_ms" in entry for entry in events.values())


class TestDefaultEngine:

    def test_module_level_calls(self, monkeypatch):
        monkeypatch.setenv("LEXCITE_DEFAULT_STYLE", "chicago")
        get_default_engine.cache_clear()
        assert get_default_engine() is get_default_engine()
        assert get_default_engine().settings.default_style == CitationStyle.CHICAGO
        result = lexcite.process_document("Roe v. Wade, 410 U.S. 113 (1973). Id. at 115.")
        assert result.citations[1].display_form == "Ibid., 115"
        components = CaseComponents(volume="410", reporter_abbrev="U.S.", first_page="113")
        assert lexcite.format_citation(components) == "410 U.S. 113"

    def test_break_helpers(self):
        assert form_feed_breaks("a\fb\fc") == [2, 4]
        text = "First.\n\nSecond.\n  \nThird."
        assert paragraph_breaks(text) == [text.index("Second."), text.index("Third.")]
