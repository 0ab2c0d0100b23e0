"""
Pydantic models for citation handling in lexcite.

Provides data structures for:
- Citation kinds, styles, signals and short-form vocabularies
- Kind-specific components (case, statute, constitution, rule, secondary)
- Issues (warnings and fatal errors) attached to citations
- Formatted output with markup-neutral italic spans
- The Citation record produced by every parse pass
"""

import re
from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


class CitationKind(str, Enum):
    """Closed set of authority kinds."""
    CASE = "case"
    STATUTE = "statute"
    CONSTITUTION = "constitution"
    RULE = "rule"
    SECONDARY = "secondary_authority"


class CitationStyle(str, Enum):
    """Supported citation manuals."""
    BLUEBOOK = "bluebook"
    ALWD = "alwd"
    CHICAGO = "chicago"


class IdScope(str, Enum):
    """How far back an id. may reach."""
    DOCUMENT = "document"   # id. may follow any preceding citation
    SEGMENT = "segment"     # id. never crosses a footnote/paragraph boundary


class Signal(str, Enum):
    """Introductory signals, stored in their capitalized form."""
    SEE = "See"
    SEE_ALSO = "See also"
    SEE_GENERALLY = "See generally"
    CF = "Cf."
    COMPARE = "Compare"
    EG = "E.g.,"
    ACCORD = "Accord"
    BUT_SEE = "But see"
    BUT_CF = "But cf."
    CONTRA = "Contra"

    @classmethod
    def from_text(cls, text: str) -> Optional["Signal"]:
        """Look up a signal regardless of capitalization and spacing."""
        wanted = " ".join(text.split()).rstrip(",").casefold()
        for signal in cls:
            if signal.value.rstrip(",").casefold() == wanted:
                return signal
        return None


class ShortFormMarker(str, Enum):
    """Short forms an author can type."""
    ID = "id"
    SUPRA = "supra"
    SHORT_CITE = "short_cite"


class Resolution(str, Enum):
    """Form chosen by the short-form resolver."""
    FULL = "full"
    ID = "id"
    SUPRA = "supra"
    SHORT = "short"


class Severity(str, Enum):
    """Severity of a citation issue."""
    WARNING = "warning"
    ERROR = "error"


class IssueCode(str, Enum):
    """Codes for every problem the engine records on a citation."""
    MISSING_COMPONENT = "MissingComponent"
    UNKNOWN_REPORTER = "UnknownReporter"
    UNKNOWN_COURT = "UnknownCourt"
    UNKNOWN_CODE = "UnknownCode"
    UNKNOWN_RULE_SET = "UnknownRuleSet"
    IMPLAUSIBLE_YEAR = "ImplausibleYear"
    REPORTER_YEAR_MISMATCH = "ReporterYearMismatch"
    PINCITE_BEFORE_FIRST_PAGE = "PinciteBeforeFirstPage"
    INCONSISTENT_AUTHORITY = "InconsistentAuthority"
    MISSING_PARALLEL_CITATION = "MissingParallelCitation"
    PINCITE_NOT_APPLICABLE = "PinciteNotApplicable"
    INCOMPLETE_CASE_CITATION = "IncompleteCaseCitation"
    ORPHAN_SHORT_FORM = "OrphanShortForm"


class CitationIssue(BaseModel):
    """A warning or fatal error recorded on a citation."""

    model_config = ConfigDict(frozen=True)

    code: IssueCode = Field(description="Machine-readable issue code")
    severity: Severity = Field(description="warning (non-fatal) or error (fatal to formatting)")
    message: str = Field(description="Human-readable explanation")
    component: Optional[str] = Field(
        default=None,
        description="Name of the component the issue concerns, if any"
    )
    suggestion: Optional[str] = Field(
        default=None,
        description="How the author can fix the citation"
    )

    @classmethod
    def warning(
        cls,
        code: IssueCode,
        message: str,
        component: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> "CitationIssue":
        """Create a non-fatal issue."""
        return cls(code=code, severity=Severity.WARNING, message=message, component=component, suggestion=suggestion)

    @classmethod
    def error(
        cls,
        code: IssueCode,
        message: str,
        component: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> "CitationIssue":
        """Create a fatal issue."""
        return cls(code=code, severity=Severity.ERROR, message=message, component=component, suggestion=suggestion)


def _key(value: Optional[object]) -> str:
    """Normalize one authority-key part: no whitespace, case-folded."""
    if value is None:
        return ""
    return re.sub(r"\s+", "", str(value)).casefold()


def _name_key(value: Optional[str]) -> str:
    if not value:
        return ""
    return re.sub(r"[^0-9a-z]+", "", value.casefold())


_GOVERNMENT_PARTIES = frozenset({
    "united states", "commonwealth", "state", "people", "government",
    "united states of america", "the people",
})


class _Components(BaseModel):
    model_config = ConfigDict(frozen=True)


class CaseComponents(_Components):
    """
    Components of a case citation.

    Bluebook form: "Roe v. Wade, 410 U.S. 113, 115 (1973)".
    """

    kind: Literal[CitationKind.CASE] = CitationKind.CASE
    party_a: Optional[str] = Field(default=None, description="First party (e.g., 'Roe', 'In re Gault')")
    party_b: Optional[str] = Field(default=None, description="Second party (e.g., 'Wade')")
    volume: Optional[str] = Field(default=None, description="Reporter volume")
    reporter_abbrev: Optional[str] = Field(default=None, description="Reporter abbreviation (e.g., 'U.S.', 'F.3d')")
    first_page: Optional[str] = Field(default=None, description="First page of the opinion")
    pincite: Optional[str] = Field(default=None, description="Pinpoint page(s) (e.g., '118', '118–19')")
    court: Optional[str] = Field(default=None, description="Court abbreviation, inferred from the reporter when absent")
    year: Optional[int] = Field(default=None, description="Decision year")
    parenthetical: Optional[str] = Field(default=None, description="Explanatory parenthetical text")

    @property
    def case_name(self) -> Optional[str]:
        if self.party_a and self.party_b:
            return f"{self.party_a} v. {self.party_b}"
        return self.party_a or self.party_b

    @property
    def short_name(self) -> Optional[str]:
        """
        Name used in supra and short cites.

        Governmental first parties ("Commonwealth", "United States") are
        skipped in favour of the other party.
        """
        party = self.party_a
        if party and self.party_b and party.casefold() in _GOVERNMENT_PARTIES:
            party = self.party_b
        party = party or self.party_b
        if not party:
            return None
        return party.split(",")[0].strip()

    def authority_key(self) -> str:
        if self.first_page:
            return f"case|{_key(self.volume)}|{_key(self.reporter_abbrev)}|{_key(self.first_page)}"
        # Without a first page the name is the only thing telling cases apart.
        return (
            f"case|{_key(self.volume)}|{_key(self.reporter_abbrev)}|"
            f"?{_name_key(self.party_a)}:{_name_key(self.party_b)}"
        )


class StatuteComponents(_Components):
    """Components of a statutory citation: "42 U.S.C. § 1983(a) (2018)"."""

    kind: Literal[CitationKind.STATUTE] = CitationKind.STATUTE
    title: Optional[str] = Field(default=None, description="Title number (e.g., '42')")
    code_abbrev: str = Field(description="Code abbreviation (e.g., 'U.S.C.', 'Pa.C.S.')")
    section: str = Field(description="Section number")
    subsection: Optional[str] = Field(default=None, description="Subsection chain (e.g., '(a)(1)')")
    year: Optional[str] = Field(default=None, description="Year or edition (e.g., '2018', 'West 2020')")
    multiple_sections: bool = Field(
        default=False,
        description="Cites several sections at once ('§§ 1331-1332')"
    )

    @property
    def section_symbol(self) -> str:
        return "§§" if self.multiple_sections else "§"

    @property
    def short_name(self) -> str:
        return f"{self.section_symbol} {self.section}{self.subsection or ''}"

    def authority_key(self) -> str:
        return (
            f"statute|{_key(self.title)}|{_key(self.code_abbrev)}|"
            f"{_key(self.section)}|{_key(self.subsection)}"
        )


class ConstitutionComponents(_Components):
    """Components of a constitutional citation: "U.S. Const. art. I, § 8, cl. 3"."""

    kind: Literal[CitationKind.CONSTITUTION] = CitationKind.CONSTITUTION
    jurisdiction: str = Field(description="Jurisdiction abbreviation (e.g., 'U.S.', 'Pa.')")
    part: Literal["art.", "amend."] = Field(description="Article or amendment")
    number: str = Field(description="Roman numeral of the article or amendment")
    section: Optional[str] = Field(default=None, description="Section number")
    clause: Optional[str] = Field(default=None, description="Clause number")

    def authority_key(self) -> str:
        return (
            f"constitution|{_key(self.jurisdiction)}|{_key(self.part)}|{_key(self.number)}|"
            f"{_key(self.section)}|{_key(self.clause)}"
        )


class RuleComponents(_Components):
    """Components of a court-rule citation: "Fed. R. Civ. P. 12(b)(6)"."""

    kind: Literal[CitationKind.RULE] = CitationKind.RULE
    rule_set: str = Field(description="Rule set abbreviation (e.g., 'Fed. R. Civ. P.', 'Rule')")
    rule_number: str = Field(description="Rule number (e.g., '12', '1035.2')")
    subdivision: Optional[str] = Field(default=None, description="Subdivision chain (e.g., '(b)(6)')")
    year: Optional[int] = Field(default=None, description="Year of the rules edition")

    def authority_key(self) -> str:
        return f"rule|{_key(self.rule_set)}|{_key(self.rule_number)}|{_key(self.subdivision)}"


class SecondaryComponents(_Components):
    """
    Components of a secondary authority.

    Articles carry volume/journal/first_page; treatises carry section,
    edition and publisher.
    """

    kind: Literal[CitationKind.SECONDARY] = CitationKind.SECONDARY
    author: str = Field(description="Author(s)")
    title: str = Field(description="Article or book title")
    volume: Optional[str] = Field(default=None, description="Journal volume")
    journal: Optional[str] = Field(default=None, description="Journal abbreviation (e.g., 'Harv. L. Rev.')")
    first_page: Optional[str] = Field(default=None, description="First page of an article")
    section: Optional[str] = Field(default=None, description="Treatise section")
    pincite: Optional[str] = Field(default=None, description="Pinpoint page")
    edition: Optional[str] = Field(default=None, description="Edition (e.g., '3d ed.')")
    publisher: Optional[str] = Field(default=None, description="Publisher")
    year: Optional[int] = Field(default=None, description="Publication year")

    @property
    def is_article(self) -> bool:
        return self.journal is not None

    @property
    def short_name(self) -> str:
        return self.author

    def authority_key(self) -> str:
        return (
            f"secondary|{_name_key(self.author)}|{_name_key(self.title)}|{_key(self.volume)}|"
            f"{_key(self.journal)}|{_key(self.first_page)}|{_key(self.section)}"
        )


CitationComponents = Annotated[
    Union[CaseComponents, StatuteComponents, ConstitutionComponents, RuleComponents, SecondaryComponents],
    Field(discriminator="kind"),
]


class ShortFormReference(BaseModel):
    """How the source text referred back to an earlier authority."""

    model_config = ConfigDict(frozen=True)

    marker: ShortFormMarker = Field(description="id., supra or short case cite")
    name: Optional[str] = Field(default=None, description="Short name typed before supra or a short cite")
    volume: Optional[str] = Field(default=None, description="Volume of a short case cite")
    reporter_abbrev: Optional[str] = Field(default=None, description="Reporter of a short case cite")
    pincite: Optional[str] = Field(default=None, description="Pinpoint typed after 'at'")
    note: Optional[str] = Field(default=None, description="Footnote number in 'supra note N'")
    section: Optional[str] = Field(default=None, description="Section typed after id. ('Id. § 1985')")
    subsection: Optional[str] = Field(default=None, description="Subsection chain typed after the section")
    multiple_sections: bool = Field(default=False, description="Whether '§§' was typed")


class ItalicSpan(BaseModel):
    """Half-open character range of a rendered string set in italics."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=0)
    end: int = Field(ge=0)

    def shifted(self, offset: int) -> "ItalicSpan":
        return ItalicSpan(start=self.start + offset, end=self.end + offset)


class FormattedCitation(BaseModel):
    """Rendered citation text with its emphasis."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Rendered citation string")
    italic_spans: Tuple[ItalicSpan, ...] = Field(
        default=(),
        description="Ranges of text to italicize"
    )

    def italic_text(self) -> List[str]:
        """Return the italicized substrings, mainly for inspection."""
        return [self.text[span.start:span.end] for span in self.italic_spans]


class Citation(BaseModel):
    """
    One citation found in a document.

    Citations are created fresh on each parse pass. Pipeline stages return
    updated copies (``model_copy``) rather than mutating their input.
    """

    raw_text: str = Field(description="Exact substring matched in the source text")
    span: Tuple[int, int] = Field(description="(start, end) offsets into the source text")
    components: Optional[CitationComponents] = Field(
        default=None,
        description="Kind-specific components; absent for unresolved short forms"
    )
    signal: Optional[Signal] = Field(default=None, description="Introductory signal, if any")
    short_form: Optional[ShortFormReference] = Field(
        default=None,
        description="Typed short form (id., supra, short cite); absent for full citations"
    )
    confidence: float = Field(default=1.0, ge=0.0, le=1.0, description="Parse confidence")
    authority_key: Optional[str] = Field(
        default=None,
        description="Normalized key shared by every citation of the same authority"
    )
    style: Optional[CitationStyle] = Field(default=None, description="Style used for canonical_form")
    canonical_form: str = Field(default="", description="Formatter output, or raw_text when fatally flawed")
    italic_spans: List[ItalicSpan] = Field(default_factory=list, description="Italics within canonical_form")
    resolution: Optional[Resolution] = Field(default=None, description="Form chosen by the short-form resolver")
    display_form: Optional[str] = Field(default=None, description="String chosen by the short-form resolver")
    display_italic_spans: List[ItalicSpan] = Field(default_factory=list, description="Italics within display_form")
    warnings: List[CitationIssue] = Field(default_factory=list)
    errors: List[CitationIssue] = Field(default_factory=list)

    @computed_field
    @property
    def kind(self) -> Optional[CitationKind]:
        """Kind of the cited authority, None until a short form is resolved."""
        return self.components.kind if self.components is not None else None

    @property
    def has_fatal_errors(self) -> bool:
        return bool(self.errors)

    @property
    def is_short_form(self) -> bool:
        return self.short_form is not None

    def issue_codes(self) -> List[IssueCode]:
        return [issue.code for issue in (*self.warnings, *self.errors)]

    def with_issues(self, issues: List[CitationIssue]) -> "Citation":
        """Return a copy with extra issues sorted into warnings and errors."""
        warnings = list(self.warnings)
        errors = list(self.errors)
        for issue in issues:
            if issue in warnings or issue in errors:
                continue
            (errors if issue.severity == Severity.ERROR else warnings).append(issue)
        return self.model_copy(update={"warnings": warnings, "errors": errors})
