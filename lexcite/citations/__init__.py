"""
Citation handling for lexcite.

Provides citation scanning, parsing, formatting, short-form resolution
and Table of Authorities generation for US legal citation styles
(Bluebook, ALWD, Chicago).
"""

from lexcite.citations.models import (
    CitationKind,
    CitationStyle,
    IdScope,
    Signal,
    ShortFormMarker,
    Resolution,
    Severity,
    IssueCode,
    CitationIssue,
    CaseComponents,
    StatuteComponents,
    ConstitutionComponents,
    RuleComponents,
    SecondaryComponents,
    CitationComponents,
    ShortFormReference,
    ItalicSpan,
    FormattedCitation,
    Citation,
)
from lexcite.citations.reference import (
    ReferenceTables,
    ReporterInfo,
    CourtInfo,
    CodeInfo,
    RuleSetInfo,
    abbreviation_key,
    load_reference_tables,
)
from lexcite.citations.scanner import (
    CandidateSpan,
    CitationScanner,
    ScanKind,
    normalize_for_matching,
)
from lexcite.citations.parser import CitationParser, normalize_pincite
from lexcite.citations.formatter import CitationFormatter, StyleProfile
from lexcite.citations.short_forms import ShortFormResolver, ResolverState, names_match
from lexcite.citations.authorities import (
    AuthoritySection,
    TOAEntry,
    TOASection,
    TableOfAuthorities,
    TableOfAuthoritiesBuilder,
    collapse_range,
    merge_pincites,
)

__all__ = [
    # Vocabularies
    "CitationKind",
    "CitationStyle",
    "IdScope",
    "Signal",
    "ShortFormMarker",
    "Resolution",
    "Severity",
    "IssueCode",
    # Models
    "CitationIssue",
    "CaseComponents",
    "StatuteComponents",
    "ConstitutionComponents",
    "RuleComponents",
    "SecondaryComponents",
    "CitationComponents",
    "ShortFormReference",
    "ItalicSpan",
    "FormattedCitation",
    "Citation",
    # Reference tables
    "ReferenceTables",
    "ReporterInfo",
    "CourtInfo",
    "CodeInfo",
    "RuleSetInfo",
    "abbreviation_key",
    "load_reference_tables",
    # Scanner and parser
    "CandidateSpan",
    "CitationScanner",
    "ScanKind",
    "normalize_for_matching",
    "CitationParser",
    "normalize_pincite",
    # Formatter
    "CitationFormatter",
    "StyleProfile",
    # Short forms
    "ShortFormResolver",
    "ResolverState",
    "names_match",
    # Table of Authorities
    "AuthoritySection",
    "TOAEntry",
    "TOASection",
    "TableOfAuthorities",
    "TableOfAuthoritiesBuilder",
    "collapse_range",
    "merge_pincites",
]
