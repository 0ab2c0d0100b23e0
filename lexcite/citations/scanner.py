"""
Citation scanner: slices text into candidate citation spans.

Provides:
- normalize_for_matching(): length-preserving punctuation normalization
- ScanRule / CandidateSpan: the grammar rules and their matches
- SINGLE_PARTY_PREFIX: procedural openings of one-party case names ("Ex parte")
- select_candidates(): the longest-match, priority tie-break
- CitationScanner: applies the ordered grammar to a text

The scanner only finds spans. Turning a span into components is the
parser's job.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from lexcite.citations.reference import ReferenceTables, load_reference_tables


class ScanKind(str, Enum):
    """Kinds a candidate span can be tagged with, in priority order."""
    CASE = "case"
    STATUTE = "statute"
    CONSTITUTION = "constitution"
    RULE = "rule"
    SECONDARY = "secondary_authority"
    SHORT_FORM = "short_form"


SCAN_PRIORITY = {kind: rank for rank, kind in enumerate(ScanKind)}

# Every replacement is a single character, so offsets survive normalization.
_NORMALIZATION = str.maketrans({
    "‘": "'",   # left single quote
    "’": "'",   # right single quote
    "‚": "'",
    "‛": "'",
    "′": "'",   # prime
    "“": '"',
    "”": '"',
    "„": '"',
    " ": " ",   # no-break space
    " ": " ",
    " ": " ",
    " ": " ",
    " ": " ",   # thin space
    " ": " ",
    "\t": " ",
    "‐": "-",
    "‑": "-",   # non-breaking hyphen
    "‒": "-",
    "–": "-",   # en dash
    "—": "-",   # em dash
    "―": "-",
    "−": "-",   # minus sign
})


def normalize_for_matching(text: str) -> str:
    """Fold quote, space and dash variants; the result has the same length as the input."""
    return text.translate(_NORMALIZATION)


def flexible_abbreviation(spelling: str) -> str:
    """
    Regex for an abbreviation that tolerates spacing variants.

    "F. Supp. 2d" also matches "F.Supp.2d"; "Pa.R.Crim.P." also matches
    "Pa. R. Crim. P.".
    """
    tokens = spelling.split()
    parts = []
    for i, token in enumerate(tokens):
        pieces = token.split(".")
        body = r"\.\s*".join(re.escape(piece) for piece in pieces)
        if token.endswith("."):
            body = body[: -len(r"\s*")]
        parts.append(body)
        if i < len(tokens) - 1:
            parts.append(r"\s*" if token.endswith(".") else r"\s+")
    return "".join(parts)


def _alternation(spellings: Iterable[str]) -> str:
    return "(?:" + "|".join(flexible_abbreviation(s) for s in spellings) + ")"


# Grammar building blocks

_START = r"(?<![A-Za-z0-9])"
_SIGNAL = (
    r"(?:(?P<signal>[Ss]ee\s+also|[Ss]ee\s+generally|[Bb]ut\s+see|[Bb]ut\s+cf\.|[Ss]ee"
    r"|[Cc]f\.|[Cc]ompare|[Ee]\.\s?g\.|[Aa]ccord|[Cc]ontra),?\s+)?"
)
_WORD = r"[A-Z][\w'.&-]*"
_CONNECTOR = r"(?:&|of|the|and|for|ex\s+rel\.|de|del|la|van|von|du)"
_PARTY = rf"{_WORD}(?:\s+(?:{_WORD}|{_CONNECTOR}|\d+))*"
_ENTITY_SUFFIX = r"(?:Inc\.|Co\.|Corp\.|Ltd\.|LLC|L\.L\.C\.|L\.P\.|N\.A\.|P\.C\.)"
_PARTY_B = rf"[A-Z0-9][\w'.&-]*(?:\s+(?:{_WORD}|{_CONNECTOR}|\d+))*(?:,\s+{_ENTITY_SUFFIX})?"
_SHORT_NAME = rf"{_WORD}(?:\s+(?:{_WORD}|&|of|the|and)){{0,5}}"
_GENERIC_REPORTER = r"[A-Z][A-Za-z']*\.(?:\s?(?:[A-Z][A-Za-z']*\.|App'x|\d+(?:st|nd|rd|th|d)\b|&))*"
_PIN = r"\d+(?!\d)(?:\s*-\s*\d+(?!\d))?(?:\s*n\.\s*\d+(?!\d))?"
# A pincite is never the volume of the next citation ("113, 42 U.S.C.").
_PINCITE = rf"(?:,\s*(?P<pincite>{_PIN})(?!\s*[A-Z][A-Za-z]*\.))?"
_COURT_YEAR = r"(?:\s*\((?P<court>[A-Z0-9][^()]*?)?\s*(?P<year>\d{4})\))?"
_EXPLANATORY = r"(?:\s*\((?P<parenthetical>[a-z][^()]*)\))?"
_SECTION = r"\d+[A-Za-z]?(?:[.:-]\d+[A-Za-z]?)*(?!\d)"
_SUBSECTION = r"(?:\((?:[a-z]{1,4}|[A-Z]|\d{1,2})\))*"
_AUTHOR = r"[A-Z][\w.'-]*(?:\s+[A-Z][\w.'-]*){0,3}(?:\s+&\s+[A-Z][\w.'-]*(?:\s+[A-Z][\w.'-]*){0,3})?"
_TITLE = r"[A-Z][^,;()\"§]*?"
_JOURNAL = r"(?:(?:[A-Z][A-Za-z.]*|&)\s?){0,4}L\.\s?(?:Rev\.|J\.|Q\.)"
_EDITION = r"\d+(?:st|nd|rd|th|d)\s+ed\."
# Procedural openings that make a one-party case name ("In re Gault", "Ex parte Young").
SINGLE_PARTY_PREFIX = (
    r"(?:In\s+re|Ex\s+parte|In\s+the\s+Matter\s+of|Matter\s+of|Estate\s+of|Application\s+of|Petition\s+of)"
)


@dataclass(frozen=True)
class ScanRule:
    """One grammar rule; rules are tried in list order."""
    name: str
    kind: ScanKind
    pattern: "re.Pattern[str]"


@dataclass(frozen=True)
class CandidateSpan:
    """A candidate citation span tagged with its likely kind."""
    start: int
    end: int
    kind: ScanKind
    rule: str

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def priority(self) -> int:
        return SCAN_PRIORITY[self.kind]

    def overlaps(self, other: "CandidateSpan") -> bool:
        return self.start < other.end and other.start < self.end


def build_rules(tables: ReferenceTables) -> Tuple[ScanRule, ...]:
    """Compile the ordered grammar against the given reference tables."""
    reporters = _alternation(tables.known_reporter_variants())
    codes = _alternation(tables.known_code_variants())
    rule_sets = _alternation(tables.known_rule_set_variants())

    case_tail = (
        rf",\s+(?P<volume>\d+)\s+(?P<reporter>{_GENERIC_REPORTER})(?![A-Za-z0-9])"
        rf"(?:\s+(?P<first_page>\d+)(?!\d))?(?!\s+at\s)"
        rf"{_PINCITE}{_COURT_YEAR}{_EXPLANATORY}"
    )
    generic_code = r"(?:[A-Z][A-Za-z]*\.?\s+){1,4}Code(?:\s+Ann\.)?"
    # State compilations outside the tables: "N.Y. Gen. Bus. Law", "Colo. Rev. Stat."
    generic_law = r"(?:[A-Z][A-Za-z.']*\.\s*){1,5}(?:Laws?|Stat\.|Statutes)(?:\s+Ann\.)?"

    rules = [
        ("case_named", ScanKind.CASE,
         rf"{_START}{_SIGNAL}(?P<party_a>{_PARTY})\s+v\.\s+(?P<party_b>{_PARTY_B}){case_tail}"),
        ("case_single_party", ScanKind.CASE,
         rf"{_START}{_SIGNAL}(?P<party_a>{SINGLE_PARTY_PREFIX}\s+{_PARTY}){case_tail}"),
        # One name before a known reporter and first page: "Roe, 410 U.S. 113 (1973)".
        ("case_one_name", ScanKind.CASE,
         rf"{_START}{_SIGNAL}(?P<party_a>{_PARTY}),\s+(?P<volume>\d+)\s+(?P<reporter>{reporters})(?![A-Za-z0-9])"
         rf"\s+(?P<first_page>\d+)(?!\d){_PINCITE}{_COURT_YEAR}{_EXPLANATORY}"),
        ("case_bare", ScanKind.CASE,
         rf"{_START}{_SIGNAL}(?P<volume>\d+)\s+(?P<reporter>{reporters})(?![A-Za-z0-9])"
         rf"\s+(?P<first_page>\d+)(?!\d){_PINCITE}{_COURT_YEAR}{_EXPLANATORY}"),
        ("case_partial", ScanKind.CASE,
         rf"{_START}{_SIGNAL}(?P<volume>\d+)\s+(?P<reporter>{reporters})(?![A-Za-z0-9])"
         r"(?!\s*(?:\d|at\s))"),
        ("statute", ScanKind.STATUTE,
         rf"{_START}{_SIGNAL}(?:(?P<title>\d+)\s+)?(?P<code>{codes}|{generic_code}|{generic_law})\s*(?P<symbol>§§?)\s*"
         rf"(?P<section>{_SECTION})(?P<subsection>{_SUBSECTION})"
         r"(?:\s*\((?P<year>[^()]*?\d{4})\))?"),
        ("constitution", ScanKind.CONSTITUTION,
         rf"{_START}{_SIGNAL}(?P<jurisdiction>(?:[A-Z][a-z]*\.\s?){{1,3}})\s*Const\.\s*"
         r"(?P<part>art\.|amend\.)\s*(?P<number>[IVXLC]+)\b"
         r"(?:,?\s*§\s*(?P<section>\d+))?(?:,?\s*cl\.\s*(?P<clause>\d+))?"),
        ("rule", ScanKind.RULE,
         rf"{_START}{_SIGNAL}(?P<rule_set>{rule_sets})\s*(?P<rule_number>\d+(?:\.\d+)*[A-Za-z]?)(?!\d)"
         r"(?P<subdivision>(?:\([A-Za-z0-9]{1,3}\))*)(?:\s*\((?P<year>\d{4})\))?"),
        ("secondary_article", ScanKind.SECONDARY,
         rf"{_START}{_SIGNAL}(?P<author>{_AUTHOR}),\s+"
         rf"(?:\"(?P<quoted_title>[^\"]+?),?\"\s*,?|(?P<title>{_TITLE}),)\s+"
         rf"(?P<volume>\d+)\s+(?P<journal>{_JOURNAL})\s+(?P<first_page>\d+)(?!\d)"
         rf"{_PINCITE}\s*\((?P<year>\d{{4}})\)"),
        ("secondary_book_edition", ScanKind.SECONDARY,
         rf"{_START}{_SIGNAL}(?P<author>{_AUTHOR}),\s+(?P<title>{_TITLE})"
         rf"(?:\s+§\s*(?P<section>{_SECTION})|\s+(?P<pincite>\d+)(?!\d))?\s*"
         rf"\((?P<edition>{_EDITION})(?:,\s*(?P<publisher>[A-Z][^()]*?))?,?\s+(?P<year>\d{{4}})\)"),
        ("secondary_book_section", ScanKind.SECONDARY,
         rf"{_START}{_SIGNAL}(?P<author>{_AUTHOR}),\s+(?P<title>{_TITLE})\s+§\s*(?P<section>{_SECTION})"
         r"(?:\s*\((?:(?P<publisher>[A-Z][^()\d]*?),?\s+)?(?P<year>\d{4})\))?"),
        ("id", ScanKind.SHORT_FORM,
         rf"{_START}{_SIGNAL}(?P<marker>[Ii]d\.|[Ii]bid\.)"
         rf"(?:,?\s*(?P<symbol>§§?)\s*(?P<section>{_SECTION})(?P<subsection>{_SUBSECTION})"
         rf"|(?:,?\s+at\s+|,\s*)(?P<pincite>{_PIN})(?!\s*[A-Z][A-Za-z]*\.))?"),
        ("supra", ScanKind.SHORT_FORM,
         rf"{_START}{_SIGNAL}(?P<name>{_SHORT_NAME}),\s+supra\b(?:\s+note\s+(?P<note>\d+))?"
         rf"(?:,\s+at\s+(?P<pincite>{_PIN}))?"),
        ("short_cite", ScanKind.SHORT_FORM,
         rf"{_START}{_SIGNAL}(?:(?P<name>{_SHORT_NAME}),\s+)?(?P<volume>\d+)\s+"
         rf"(?P<reporter>{_GENERIC_REPORTER})(?![A-Za-z0-9])\s+at\s+(?P<pincite>{_PIN})"),
    ]
    return tuple(ScanRule(name, kind, re.compile(pattern)) for name, kind, pattern in rules)


def select_candidates(candidates: Iterable[CandidateSpan]) -> List[CandidateSpan]:
    """
    Resolve overlaps between candidates.

    The longest span wins; on equal length the higher-priority kind wins;
    remaining ties go to the earlier span. The survivors are returned in
    source order.
    """
    ranked = sorted(
        set(candidates),
        key=lambda c: (-c.length, c.priority, c.start, c.rule),
    )
    chosen: List[CandidateSpan] = []
    for candidate in ranked:
        if candidate.length == 0:
            continue
        if any(candidate.overlaps(kept) for kept in chosen):
            continue
        chosen.append(candidate)
    return sorted(chosen, key=lambda c: c.start)


class CitationScanner:
    """
    Applies the ordered citation grammar to text.

    Usage:
        scanner = CitationScanner()
        spans = scanner.scan("See 410 U.S. 113. Id. at 115.")
        # -> [CandidateSpan(0, 16, CASE, 'case_bare'), CandidateSpan(18, 28, SHORT_FORM, 'id')]
    """

    def __init__(self, tables: Optional[ReferenceTables] = None):
        self.tables = tables or load_reference_tables()
        self.rules: Sequence[ScanRule] = build_rules(self.tables)
        self._by_name = {rule.name: rule for rule in self.rules}

    def rule(self, name: str) -> ScanRule:
        return self._by_name[name]

    def scan(self, text: str) -> List[CandidateSpan]:
        """
        Find non-overlapping candidate spans in source order.

        Args:
            text: Source text; it is never modified.

        Returns:
            Candidate spans. Text with no citations yields an empty list.
        """
        return self.scan_normalized(normalize_for_matching(text))

    def scan_normalized(self, buffer: str) -> List[CandidateSpan]:
        candidates = []
        for rule in self.rules:
            for match in rule.pattern.finditer(buffer):
                if match.end() > match.start():
                    candidates.append(CandidateSpan(match.start(), match.end(), rule.kind, rule.name))
        return select_candidates(candidates)
