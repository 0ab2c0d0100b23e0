"""
Table of Authorities builder.

Provides:
- merge_pincites() / collapse_range(): pincite merging with repetitious
  digits dropped ("118–19", "1020–25", "99–101")
- TOAEntry, TOASection, TableOfAuthorities: the table model
- TableOfAuthoritiesBuilder: groups, sorts and paginates citations
"""

import re
from bisect import bisect_right
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, computed_field

from lexcite.citations.formatter import CitationFormatter
from lexcite.citations.models import (
    CaseComponents,
    Citation,
    CitationKind,
    CitationStyle,
    ConstitutionComponents,
    ItalicSpan,
    RuleComponents,
    SecondaryComponents,
    StatuteComponents,
)

EN_DASH = "–"


class AuthoritySection(str, Enum):
    """TOA headings, declared in the order they appear."""
    CASES = "Cases"
    STATUTES = "Statutes"
    RULES = "Rules"
    CONSTITUTIONAL_PROVISIONS = "Constitutional Provisions"
    SECONDARY_AUTHORITY = "Secondary Authority"


SECTION_FOR_KIND = {
    CitationKind.CASE: AuthoritySection.CASES,
    CitationKind.STATUTE: AuthoritySection.STATUTES,
    CitationKind.RULE: AuthoritySection.RULES,
    CitationKind.CONSTITUTION: AuthoritySection.CONSTITUTIONAL_PROVISIONS,
    CitationKind.SECONDARY: AuthoritySection.SECONDARY_AUTHORITY,
}


def collapse_range(start: int, end: int) -> str:
    """
    Render a page range, dropping repetitious digits but keeping at least two.

    Example:
        >>> collapse_range(118, 119)
        '118–19'
        >>> collapse_range(99, 101)
        '99–101'
    """
    first, last = str(start), str(end)
    if len(first) != len(last) or len(last) <= 2:
        return f"{first}{EN_DASH}{last}"
    shared = 0
    while shared < len(last) - 2 and first[shared] == last[shared]:
        shared += 1
    return f"{first}{EN_DASH}{last[shared:]}"


def _expand(pincite: str) -> Optional[List[int]]:
    """Pages covered by a numeric pincite ("118–19" -> [118, 119]); None if not numeric."""
    match = re.fullmatch(r"(\d+)(?:\s*[-–—]\s*(\d+))?", pincite.strip())
    if match is None:
        return None
    start = int(match.group(1))
    if match.group(2) is None:
        return [start]
    tail = match.group(2)
    head = match.group(1)
    end = int(head[: max(0, len(head) - len(tail))] + tail)
    if end < start:
        return [start]
    return list(range(start, end + 1))


def merge_pincites(pincites: Sequence[str]) -> str:
    """
    Merge pincites into a sorted, deduplicated, comma-joined list.

    Consecutive pages collapse into ranges. Pincites that are not plain
    pages ("118 n.3") are kept verbatim after the numeric ones.
    """
    pages = set()
    others = []
    for pincite in pincites:
        expanded = _expand(pincite)
        if expanded is None:
            if pincite not in others:
                others.append(pincite)
        else:
            pages.update(expanded)

    parts = []
    ordered = sorted(pages)
    i = 0
    while i < len(ordered):
        j = i
        while j + 1 < len(ordered) and ordered[j + 1] == ordered[j] + 1:
            j += 1
        parts.append(str(ordered[i]) if i == j else collapse_range(ordered[i], ordered[j]))
        i = j + 1
    parts.extend(sorted(others, key=natural_key))
    return ", ".join(parts)


def natural_key(value: Optional[str]) -> Tuple:
    """Sort key comparing digit runs numerically: "Rule 9" < "Rule 10"."""
    return tuple(
        (0, int(token), "") if token.isdigit() else (1, 0, token.casefold())
        for token in re.findall(r"\d+|\D+", value or "")
    )


_ROMAN = {"I": 1, "V": 5, "X": 10, "L": 50, "C": 100}


def roman_to_int(numeral: str) -> int:
    total = 0
    previous = 0
    for char in reversed(numeral.upper()):
        value = _ROMAN.get(char, 0)
        total = total - value if value < previous else total + value
        previous = max(previous, value)
    return total


def _without_article(name: Optional[str]) -> str:
    return re.sub(r"^(?:the|a|an)\s+", "", (name or "").strip(), flags=re.IGNORECASE).casefold()


def sort_key(components) -> Tuple:
    """Per-kind sort key within a TOA section."""
    if isinstance(components, CaseComponents):
        named = components.party_a or components.party_b
        return (
            0 if named else 1,
            _without_article(named),
            _without_article(components.party_b),
            natural_key(components.volume),
            (components.reporter_abbrev or "").casefold(),
            natural_key(components.first_page),
        )
    if isinstance(components, StatuteComponents):
        return (
            natural_key(components.title),
            natural_key(components.section),
            components.code_abbrev.casefold(),
            natural_key(components.subsection),
        )
    if isinstance(components, RuleComponents):
        return (
            components.rule_set.casefold(),
            natural_key(components.rule_number),
            natural_key(components.subdivision),
        )
    if isinstance(components, ConstitutionComponents):
        return (
            0 if components.jurisdiction == "U.S." else 1,
            components.jurisdiction.casefold(),
            0 if components.part == "art." else 1,
            roman_to_int(components.number),
            natural_key(components.section),
            natural_key(components.clause),
        )
    if isinstance(components, SecondaryComponents):
        return (components.author.casefold(), components.title.casefold(), natural_key(components.volume))
    raise TypeError(f"Cannot sort {type(components).__name__}")


class TOAEntry(BaseModel):
    """One authority in the table."""

    authority_key: str = Field(description="Key shared by the grouped citations")
    formatted_authority: str = Field(description="Full citation without pincite")
    italic_spans: List[ItalicSpan] = Field(default_factory=list, description="Italics within formatted_authority")
    merged_pincites: str = Field(default="", description="Merged pincites, e.g. '113, 118–19'")
    page_references: List[int] = Field(default_factory=list, description="Document pages citing the authority")
    passim: bool = Field(default=False, description="Cited on so many pages that pages read 'passim'")
    citation_count: int = Field(ge=1, description="Number of citations grouped into this entry")
    flagged: bool = Field(default=False, description="True when any grouped citation carries a fatal error")

    @computed_field
    @property
    def page_label(self) -> str:
        if self.passim:
            return "passim"
        return ", ".join(str(page) for page in self.page_references)


class TOASection(BaseModel):
    """A titled group of entries."""

    heading: AuthoritySection
    entries: List[TOAEntry] = Field(default_factory=list)


class TableOfAuthorities(BaseModel):
    """
    Grouped, sorted authorities of a document.

    Only non-empty sections are present, always in AuthoritySection order.
    """

    style: CitationStyle = Field(default=CitationStyle.BLUEBOOK)
    sections: List[TOASection] = Field(default_factory=list)

    def section(self, heading: AuthoritySection) -> Optional[TOASection]:
        for section in self.sections:
            if section.heading == heading:
                return section
        return None

    def as_rows(self) -> List[Tuple[str, List[Tuple[str, str, List[int]]]]]:
        """Plain (section, [(formatted_authority, merged_pincites, page_references)]) rows."""
        return [
            (
                section.heading.value,
                [(entry.formatted_authority, entry.merged_pincites, list(entry.page_references))
                 for entry in section.entries],
            )
            for section in self.sections
        ]


class TableOfAuthoritiesBuilder:
    """
    Builds a TableOfAuthorities from an ordered citation list.

    Usage:
        builder = TableOfAuthoritiesBuilder(passim_threshold=5)
        toa = builder.build(resolved_citations, page_breaks=[1800, 3600])
        toa.as_rows()
        # -> [("Cases", [("Roe v. Wade, 410 U.S. 113 (1973)", "113, 115", [1, 2])])]
    """

    def __init__(self, formatter: Optional[CitationFormatter] = None, passim_threshold: int = 5):
        self.formatter = formatter or CitationFormatter()
        self.passim_threshold = passim_threshold

    def build(
        self,
        citations: Sequence[Citation],
        style: CitationStyle = CitationStyle.BLUEBOOK,
        page_breaks: Optional[Sequence[int]] = None,
    ) -> TableOfAuthorities:
        """
        Group citations by authority and lay them out by section.

        Args:
            citations: Citations in source order (resolved or not)
            style: Citation manual for formatted authorities
            page_breaks: Offsets where pages 2, 3, ... begin. Without them
                entries carry no page references.

        Returns:
            TableOfAuthorities. Citations without components (orphan short
            forms) are left out.
        """
        groups: Dict[str, List[Citation]] = {}
        for citation in citations:
            if citation.components is None or citation.authority_key is None:
                continue
            groups.setdefault(citation.authority_key, []).append(citation)

        breaks = sorted(page_breaks) if page_breaks is not None else None
        by_section: Dict[AuthoritySection, List[Tuple[Tuple, TOAEntry]]] = {}
        for key, group in groups.items():
            representative = self._representative(group)
            entry = self._entry(key, group, representative, style, breaks)
            heading = SECTION_FOR_KIND[representative.components.kind]
            by_section.setdefault(heading, []).append((sort_key(representative.components), entry))

        sections = []
        for heading in AuthoritySection:
            if heading not in by_section:
                continue
            ordered = sorted(by_section[heading], key=lambda item: (item[0], item[1].formatted_authority))
            sections.append(TOASection(heading=heading, entries=[entry for _, entry in ordered]))
        return TableOfAuthorities(style=style, sections=sections)

    @staticmethod
    def _representative(group: List[Citation]) -> Citation:
        """Most complete citation of the group; earliest on ties."""
        best = group[0]
        for citation in group[1:]:
            if (not citation.has_fatal_errors, citation.confidence) > (not best.has_fatal_errors, best.confidence):
                best = citation
        return best

    def _entry(
        self,
        key: str,
        group: List[Citation],
        representative: Citation,
        style: CitationStyle,
        breaks: Optional[List[int]],
    ) -> TOAEntry:
        flagged = any(citation.has_fatal_errors for citation in group)
        if representative.has_fatal_errors:
            text, spans = representative.raw_text, []
        else:
            formatted = self.formatter.format_for_table(representative.components, style)
            text, spans = formatted.text, list(formatted.italic_spans)

        pincites = []
        for citation in group:
            pincite = getattr(citation.components, "pincite", None)
            if pincite:
                pincites.append(pincite)
            elif isinstance(citation.components, CaseComponents) and citation.components.first_page:
                # A case cited without a pinpoint is cited at its first page.
                pincites.append(citation.components.first_page)

        pages: List[int] = []
        if breaks is not None:
            pages = sorted({bisect_right(breaks, citation.span[0]) + 1 for citation in group})

        return TOAEntry(
            authority_key=key,
            formatted_authority=text,
            italic_spans=spans,
            merged_pincites=merge_pincites(pincites),
            page_references=pages,
            passim=len(pages) >= self.passim_threshold,
            citation_count=len(group),
            flagged=flagged,
        )
