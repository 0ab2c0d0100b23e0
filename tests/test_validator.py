"""Tests for the citation validator."""

from datetime import datetime, timezone

import pytest
from structlog.testing import capture_logs

from lexcite.citations.models import (
    CaseComponents,
    IssueCode,
    RuleComponents,
    Severity,
    StatuteComponents,
)
from lexcite.config import EngineSettings
from lexcite.verification.models import ValidationStatus
from lexcite.verification.validator import CitationValidator

from conftest import make_citation


def roe(**overrides) -> CaseComponents:
    values = dict(
        party_a="Roe", party_b="Wade", volume="410", reporter_abbrev="U.S.",
        first_page="113", court="U.S.", year=1973,
    )
    values.update(overrides)
    return CaseComponents(**values)


# =============================================================================
# Single citations
# =============================================================================


class TestCaseChecks:

    def test_clean_case(self, validator):
        result = validator.validate(make_citation(roe()))
        assert result.status == ValidationStatus.VALID
        assert result.issues == []

    def test_unknown_reporter(self, validator):
        result = validator.validate(make_citation(roe(reporter_abbrev="Xyz. Rptr.", court=None)))
        assert result.codes() == [IssueCode.UNKNOWN_REPORTER]
        assert result.status == ValidationStatus.WARNING

    def test_unknown_court(self, validator):
        result = validator.validate(make_citation(roe(reporter_abbrev="F.3d", year=1999, court="Xyz. Ct.")))
        assert result.codes() == [IssueCode.UNKNOWN_COURT]

    def test_implausible_years(self, validator):
        assert validator.validate(make_citation(roe(year=1650))).codes() == [IssueCode.IMPLAUSIBLE_YEAR]
        assert validator.validate(make_citation(roe(year=3000))).codes() == [IssueCode.IMPLAUSIBLE_YEAR]

    def test_next_year_is_plausible(self, validator):
        next_year = datetime.now(timezone.utc).year + 1
        result = validator.validate(make_citation(roe(reporter_abbrev="S. Ct.", year=next_year)))
        assert IssueCode.IMPLAUSIBLE_YEAR not in result.codes()

    def test_year_range_is_configurable(self, tables):
        validator = CitationValidator(tables, EngineSettings(min_year=1980))
        assert validator.validate(make_citation(roe())).codes() == [IssueCode.IMPLAUSIBLE_YEAR]

    def test_reporter_year_mismatch(self, validator):
        result = validator.validate(make_citation(roe(reporter_abbrev="F.3d", court="3d Cir.", year=1980)))
        assert result.codes() == [IssueCode.REPORTER_YEAR_MISMATCH]

    def test_incomplete_case_is_fatal(self, validator):
        components = CaseComponents(volume="413", reporter_abbrev="U.S.", court="U.S.")
        result = validator.validate(make_citation(components, raw_text="413 U.S."))
        assert result.status == ValidationStatus.INVALID
        assert [issue.code for issue in result.errors] == [IssueCode.INCOMPLETE_CASE_CITATION]
        assert result.errors[0].severity == Severity.ERROR

    def test_pincite_alone_is_enough(self, validator):
        components = CaseComponents(volume="410", reporter_abbrev="U.S.", pincite="115")
        assert validator.validate(make_citation(components)).errors == []

    def test_pincite_before_first_page(self, validator):
        result = validator.validate(make_citation(roe(pincite="100")))
        assert result.codes() == [IssueCode.PINCITE_BEFORE_FIRST_PAGE]


class TestOtherChecks:

    def test_unknown_code(self, validator):
        result = validator.validate(make_citation(StatuteComponents(code_abbrev="Xyz. Code", section="1")))
        assert result.codes() == [IssueCode.UNKNOWN_CODE]

    def test_statute_year(self, validator):
        components = StatuteComponents(title="42", code_abbrev="U.S.C.", section="1983", year="West 1650")
        assert validator.validate(make_citation(components)).codes() == [IssueCode.IMPLAUSIBLE_YEAR]

    def test_unknown_rule_set(self, validator):
        result = validator.validate(make_citation(RuleComponents(rule_set="Xyz. R.", rule_number="4")))
        assert result.codes() == [IssueCode.UNKNOWN_RULE_SET]

    def test_unresolved_short_form_has_nothing_to_check(self, validator, parser):
        citation = parser.parse("Id. at 5")
        assert validator.validate(citation).status == ValidationStatus.VALID

    def test_state_compilation_outside_tables(self, validator, parser):
        citation = validator.annotate(parser.parse("N.Y. Gen. Bus. Law § 349"))
        assert citation.issue_codes() == [IssueCode.UNKNOWN_CODE]


class TestSuggestions:

    def test_unknown_reporter_points_to_table(self, validator):
        [issue] = validator.validate(make_citation(roe(reporter_abbrev="Xyz. Rptr.", court=None))).issues
        assert "T1" in issue.suggestion

    def test_unknown_court_points_to_table(self, validator):
        [issue] = validator.validate(make_citation(roe(reporter_abbrev="F.3d", year=1999, court="Xyz. Ct."))).issues
        assert "T7" in issue.suggestion

    def test_reporter_year_mismatch_gives_run(self, validator):
        [issue] = validator.validate(make_citation(roe(reporter_abbrev="F.3d", court="3d Cir.", year=1980))).issues
        assert "1993-2021" in issue.suggestion

    def test_incomplete_case(self, validator):
        components = CaseComponents(volume="413", reporter_abbrev="U.S.")
        [issue] = validator.validate(make_citation(components, raw_text="413 U.S.")).errors
        assert issue.suggestion == "Add the first page of the opinion"

    def test_missing_component_from_parser(self, parser):
        citation = parser.parse("410 U.S. 113")
        suggestions = {issue.component: issue.suggestion for issue in citation.warnings}
        assert suggestions["case_name"] == "Add the case name"
        assert suggestions["year"] == "Add the year"


# =============================================================================
# Parallel citations
# =============================================================================


@pytest.fixture
def strict(tables):
    return CitationValidator(tables, EngineSettings(require_parallel_citations=True))


class TestParallelCitations:

    def test_not_required_by_default(self, validator):
        result = validator.validate(make_citation(roe(volume="93", reporter_abbrev="S. Ct.", first_page="705")))
        assert IssueCode.MISSING_PARALLEL_CITATION not in result.codes()

    def test_unofficial_reporter_flagged(self, strict):
        result = strict.validate(make_citation(roe(volume="93", reporter_abbrev="S. Ct.", first_page="705")))
        [issue] = result.issues
        assert issue.code == IssueCode.MISSING_PARALLEL_CITATION
        assert issue.severity == Severity.WARNING
        assert "Supreme Court Reporter" in issue.message
        assert issue.suggestion == "Add a parallel citation to U.S."

    def test_official_reporter_passes(self, strict):
        assert strict.validate(make_citation(roe())).issues == []

    def test_suggestion_follows_court(self, strict):
        components = roe(volume="550", reporter_abbrev="A.2d", first_page="1", court="Pa. Super. Ct.", year=1990)
        [issue] = strict.validate(make_citation(components)).issues
        assert issue.suggestion == "Add a parallel citation to Pa. Super."

    def test_generic_suggestion_without_official_reporter(self, strict):
        components = roe(volume="123", reporter_abbrev="F.3d", first_page="456", court="3d Cir.", year=1997)
        [issue] = strict.validate(make_citation(components)).issues
        assert issue.suggestion == "Include a parallel citation to the official reporter when available"

    def test_parallel_cite_after_official_one(self, strict, parser):
        text = "Roe v. Wade, 410 U.S. 113, 93 S. Ct. 705 (1973). See 93 S. Ct. 705 (1973)."
        official, parallel, alone = strict.validate_sequence(parser.parse_text(text))
        assert IssueCode.MISSING_PARALLEL_CITATION not in official.issue_codes()
        assert IssueCode.MISSING_PARALLEL_CITATION not in parallel.issue_codes()
        assert IssueCode.MISSING_PARALLEL_CITATION in alone.issue_codes()


# =============================================================================
# Annotation and sequences
# =============================================================================


class TestAnnotation:

    def test_annotate_returns_copy(self, validator):
        citation = make_citation(roe(year=1650))
        annotated = validator.annotate(citation)
        assert annotated.issue_codes() == [IssueCode.IMPLAUSIBLE_YEAR]
        assert citation.warnings == []

    def test_annotate_is_not_cumulative(self, validator):
        once = validator.annotate(make_citation(roe(year=1650)))
        twice = validator.annotate(once)
        assert twice.issue_codes() == [IssueCode.IMPLAUSIBLE_YEAR]

    def test_sequence_flags_conflicting_year(self, validator):
        citations = [
            make_citation(roe(), start=0),
            make_citation(roe(pincite="115"), start=50),
            make_citation(roe(year=1974), start=100),
        ]
        annotated = validator.validate_sequence(citations)
        assert len(annotated) == 3
        assert annotated[1].issue_codes() == []
        assert annotated[2].issue_codes() == [IssueCode.INCONSISTENT_AUTHORITY]

    def test_sequence_flags_conflicting_name(self, validator):
        citations = [make_citation(roe(), start=0), make_citation(roe(party_a="Doe"), start=50)]
        annotated = validator.validate_sequence(citations)
        assert annotated[1].issue_codes() == [IssueCode.INCONSISTENT_AUTHORITY]

    def test_sequence_never_drops_citations(self, validator, parser):
        citations = parser.parse_text("413 U.S. Id. at 5. 42 U.S.C. § 1983.")
        assert len(validator.validate_sequence(citations)) == len(citations)


class TestAuditLogging:

    def test_outcomes_logged(self, tables):
        with capture_logs() as logs:
            validator = CitationValidator(tables, EngineSettings())
            validator.validate(make_citation(roe()))
            validator.validate(make_citation(CaseComponents(volume="413", reporter_abbrev="U.S."), raw_text="413 U.S."))

        events = [entry for entry in logs if entry["event"] == "citation_validation"]
        assert [entry["result"] for entry in events] == ["VALID", "INVALID"]
        assert [entry["log_level"] for entry in events] == ["info", "warning"]
        assert events[1]["reason"] == "IncompleteCaseCitation"
        assert events[1]["suggestions"] == ["Add the first page of the opinion"]
        assert events[0]["module"] == "validator"
