"""
Citation validator.

Checks parsed citations for structural completeness and plausibility:
- Reporter, court, code and rule-set abbreviations against the reference tables
- Years inside the configured plausible range and the reporter's run
- Cases with neither first page nor pincite (fatal)
- Pincites that precede the first page
- Cases cited only to an unofficial reporter, when parallel citations are required
- Same authority cited with conflicting names or years (sequence level)

Validation never removes a citation; it only attaches issues. Every
outcome is logged via the audit logger.
"""

import re
import time
from typing import Dict, List, Optional, Sequence

from lexcite.citations.models import (
    CaseComponents,
    Citation,
    CitationIssue,
    IssueCode,
    RuleComponents,
    SecondaryComponents,
    Severity,
    StatuteComponents,
)
from lexcite.citations.reference import ReferenceTables, ReporterInfo, load_reference_tables
from lexcite.citations.short_forms import names_match
from lexcite.config import EngineSettings
from lexcite.verification.audit import AuditEvent, elapsed_ms, get_audit_logger, log_validation_outcome
from lexcite.verification.models import ValidationResult


def _run(reporter: ReporterInfo) -> str:
    """Years a reporter was published: "1880-1924", "1993-present"."""
    return f"{reporter.start_year or '?'}-{reporter.end_year or 'present'}"


class CitationValidator:
    """
    Attaches warnings and fatal errors to citations.

    Usage:
        validator = CitationValidator()
        result = validator.validate(citation)
        if result.status == ValidationStatus.INVALID:
            ...
        annotated = validator.validate_sequence(citations)
    """

    def __init__(self, tables: Optional[ReferenceTables] = None, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()
        self.tables = tables or load_reference_tables(self.settings.reference_data_path)
        self.logger = get_audit_logger("validator")

    def validate(self, citation: Citation) -> ValidationResult:
        """
        Check a single citation.

        Args:
            citation: Parsed citation; it is not modified

        Returns:
            ValidationResult holding the new warnings and errors
        """
        start_time = time.time()
        issues: List[CitationIssue] = []
        components = citation.components

        if isinstance(components, CaseComponents):
            issues.extend(self._check_case(components))
        elif isinstance(components, StatuteComponents):
            issues.extend(self._check_statute(components))
        elif isinstance(components, RuleComponents):
            if self.tables.rule_set_info(components.rule_set) is None:
                issues.append(CitationIssue.warning(
                    IssueCode.UNKNOWN_RULE_SET,
                    f"Rule set '{components.rule_set}' is not in the reference tables",
                    component="rule_set",
                    suggestion="Check the rule set against the court rules in Bluebook Table T1",
                ))
            issues.extend(self._check_year(components.year))
        elif isinstance(components, SecondaryComponents):
            issues.extend(self._check_year(components.year))

        result = ValidationResult(
            warnings=[issue for issue in issues if issue.severity == Severity.WARNING],
            errors=[issue for issue in issues if issue.severity == Severity.ERROR],
            validation_time_ms=elapsed_ms(start_time),
        )
        self._log_validation(citation, result)
        return result

    def annotate(self, citation: Citation) -> Citation:
        """Return a copy of citation carrying the issues validate() finds."""
        return citation.with_issues(self.validate(citation).issues)

    def validate_sequence(self, citations: Sequence[Citation]) -> List[Citation]:
        """
        Validate every citation, then check same-authority consistency.

        A case cited again under the same authority key but with a different
        party name or year gets an InconsistentAuthority warning. An unofficial
        reporter cite that directly follows an official one is its parallel
        citation and loses its MissingParallelCitation warning.

        Returns:
            Annotated copies, in the same order.
        """
        annotated = [self.annotate(citation) for citation in citations]

        for i in range(1, len(annotated)):
            if self._parallel_pair(annotated[i - 1], annotated[i]):
                annotated[i] = annotated[i].model_copy(update={"warnings": [
                    issue for issue in annotated[i].warnings if issue.code != IssueCode.MISSING_PARALLEL_CITATION
                ]})

        first_seen: Dict[str, CaseComponents] = {}
        for i, citation in enumerate(annotated):
            components = citation.components
            if not isinstance(components, CaseComponents) or citation.is_short_form:
                continue
            key = citation.authority_key
            earlier = first_seen.get(key)
            if earlier is None:
                first_seen[key] = components
                continue
            conflict = self._conflict(earlier, components)
            if conflict:
                annotated[i] = citation.with_issues([CitationIssue.warning(
                    IssueCode.INCONSISTENT_AUTHORITY,
                    f"Cited earlier with a different {conflict}",
                    component=conflict,
                    suggestion=f"Use the same {conflict} each time the authority is cited",
                )])
        return annotated

    # Checks

    def _check_case(self, c: CaseComponents) -> List[CitationIssue]:
        issues = []
        reporter = self.tables.reporter_info(c.reporter_abbrev)
        if c.reporter_abbrev and reporter is None:
            issues.append(CitationIssue.warning(
                IssueCode.UNKNOWN_REPORTER,
                f"Reporter '{c.reporter_abbrev}' is not in the reference tables",
                component="reporter_abbrev",
                suggestion="Check the reporter abbreviation against Bluebook Table T1",
            ))
        if c.court and self.tables.court_info(c.court) is None:
            issues.append(CitationIssue.warning(
                IssueCode.UNKNOWN_COURT,
                f"Court '{c.court}' is not in the reference tables",
                component="court",
                suggestion="Verify the court abbreviation against Bluebook Table T7",
            ))

        year_issues = self._check_year(c.year)
        issues.extend(year_issues)
        if c.year is not None and not year_issues and reporter is not None and not reporter.covers_year(c.year):
            issues.append(CitationIssue.warning(
                IssueCode.REPORTER_YEAR_MISMATCH,
                f"{reporter.abbreviation} was not published in {c.year}",
                component="year",
                suggestion=f"Check the year or reporter; {reporter.abbreviation} covers {_run(reporter)}",
            ))

        if self.settings.require_parallel_citations and reporter is not None and not reporter.official:
            issues.append(self._missing_parallel(c, reporter))

        if not c.first_page and not c.pincite:
            issues.append(CitationIssue.error(
                IssueCode.INCOMPLETE_CASE_CITATION,
                "Case citation has neither a first page nor a pincite",
                component="first_page",
                suggestion="Add the first page of the opinion",
            ))
        elif c.first_page and c.pincite:
            pin = re.match(r"\d+", c.pincite)
            if pin and c.first_page.isdigit() and int(pin.group()) < int(c.first_page):
                issues.append(CitationIssue.warning(
                    IssueCode.PINCITE_BEFORE_FIRST_PAGE,
                    f"Pincite {c.pincite} precedes first page {c.first_page}",
                    component="pincite",
                    suggestion="Check the pincite; it must fall within the opinion",
                ))
        return issues

    def _missing_parallel(self, c: CaseComponents, reporter: ReporterInfo) -> CitationIssue:
        official = self.tables.official_reporters(c.court or reporter.court)
        if official:
            suggestion = f"Add a parallel citation to {' or '.join(official)}"
        else:
            suggestion = "Include a parallel citation to the official reporter when available"
        return CitationIssue.warning(
            IssueCode.MISSING_PARALLEL_CITATION,
            f"{reporter.abbreviation} ({reporter.name}) is not an official reporter",
            component="reporter_abbrev",
            suggestion=suggestion,
        )

    def _check_statute(self, c: StatuteComponents) -> List[CitationIssue]:
        issues = []
        if self.tables.code_info(c.code_abbrev) is None:
            issues.append(CitationIssue.warning(
                IssueCode.UNKNOWN_CODE,
                f"Code '{c.code_abbrev}' is not in the reference tables",
                component="code_abbrev",
                suggestion="Check the code abbreviation against the statutory compilations in Bluebook Table T1",
            ))
        if c.year:
            found = re.search(r"\d{4}", c.year)
            issues.extend(self._check_year(int(found.group()) if found else None))
        return issues

    def _check_year(self, year: Optional[int]) -> List[CitationIssue]:
        if year is None:
            return []
        low, high = self.settings.min_year, self.settings.max_year
        if len(str(year)) == 4 and low <= year <= high:
            return []
        return [CitationIssue.warning(
            IssueCode.IMPLAUSIBLE_YEAR,
            f"Year {year} is outside {low}..{high}",
            component="year",
            suggestion=f"Use a four-digit year between {low} and {high}",
        )]

    def _parallel_pair(self, previous: Citation, citation: Citation) -> bool:
        """Whether citation is the unofficial parallel of the official cite just before it."""
        if not isinstance(previous.components, CaseComponents) or not isinstance(citation.components, CaseComponents):
            return False
        # Parallel cites share one trailing parenthetical: "410 U.S. 113, 93 S. Ct. 705 (1973)".
        if previous.components.year is not None or citation.span[0] - previous.span[1] > 2:
            return False
        reporter = self.tables.reporter_info(previous.components.reporter_abbrev)
        return reporter is not None and reporter.official

    @staticmethod
    def _conflict(earlier: CaseComponents, later: CaseComponents) -> Optional[str]:
        if earlier.party_a and later.party_a and not (
            names_match(earlier.party_a, later.party_a) or names_match(later.party_a, earlier.party_a)
        ):
            return "case name"
        if earlier.year is not None and later.year is not None and earlier.year != later.year:
            return "year"
        return None

    def _log_validation(self, citation: Citation, result: ValidationResult) -> None:
        """
        Log a validation outcome using the audit logger.

        Args:
            citation: Citation that was checked
            result: Outcome of the check
        """
        log_validation_outcome(self.logger, AuditEvent.for_validation(citation, result))
