"""
Citation engine facade.

Wires the pipeline together: scanner -> parser -> validator -> formatter,
then the short-form resolver and the Table of Authorities builder.

Provides:
- CitationEngine: the stateless pipeline object (safe to share across threads)
- DocumentCitations: everything process_document() returns
- Module-level shortcuts backed by a lazily created default engine
"""

import re
import time
from functools import lru_cache
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from lexcite.citations.authorities import TableOfAuthorities, TableOfAuthoritiesBuilder
from lexcite.citations.formatter import CitationFormatter
from lexcite.citations.models import (
    CaseComponents,
    Citation,
    CitationStyle,
    IdScope,
    IssueCode,
)
from lexcite.citations.parser import CitationParser
from lexcite.citations.reference import ReferenceTables, abbreviation_key, load_reference_tables
from lexcite.citations.scanner import CitationScanner
from lexcite.citations.short_forms import ShortFormResolver, names_match
from lexcite.config import EngineSettings, load_settings
from lexcite.verification.audit import configure_audit_logging, elapsed_ms, get_audit_logger
from lexcite.verification.validator import CitationValidator

# Components never copied from a hint: they describe one particular citation.
_CITATION_SPECIFIC = frozenset({"kind", "pincite", "parenthetical"})


class DocumentCitations(BaseModel):
    """Result of running the whole pipeline over one document."""

    style: CitationStyle = Field(description="Style used for canonical and display forms")
    citations: List[Citation] = Field(default_factory=list, description="Resolved citations in source order")
    table_of_authorities: TableOfAuthorities = Field(description="Grouped, sorted authorities")

    @property
    def flagged(self) -> List[Citation]:
        return [citation for citation in self.citations if citation.has_fatal_errors]


def paragraph_breaks(text: str) -> List[int]:
    """Offsets where a paragraph (blank-line separated) begins."""
    return [match.end() for match in re.finditer(r"\n[ \t]*\n\s*", text)]


def form_feed_breaks(text: str) -> List[int]:
    """Offsets where a new page begins, from form feed characters."""
    return [i + 1 for i, char in enumerate(text) if char == "\f"]


class CitationEngine:
    """
    Legal citation engine.

    Holds only immutable configuration and reference tables, so one
    instance can process many documents, including from several threads.

    Usage:
        engine = CitationEngine()
        result = engine.process_document("See 410 U.S. 113. Id. at 115.")
        [c.display_form for c in result.citations]
        # -> ["See 410 U.S. 113", "Id. at 115"]
    """

    def __init__(self, settings: Optional[EngineSettings] = None, tables: Optional[ReferenceTables] = None):
        self.settings = settings or EngineSettings()
        self.tables = tables or load_reference_tables(self.settings.reference_data_path)
        self.scanner = CitationScanner(self.tables)
        self.parser = CitationParser(self.tables, self.scanner)
        self.validator = CitationValidator(self.tables, self.settings)
        self.formatter = CitationFormatter(self.tables)
        self.resolver = ShortFormResolver(self.formatter, self.settings.id_scope)
        self.toa_builder = TableOfAuthoritiesBuilder(self.formatter, self.settings.passim_threshold)
        self.logger = get_audit_logger("engine")

    def _style(self, style: Optional[CitationStyle]) -> CitationStyle:
        return CitationStyle(style) if style is not None else self.settings.default_style

    def extract_citations(
        self,
        text: str,
        style: Optional[CitationStyle] = None,
        existing_citations_hint: Optional[Sequence[Citation]] = None,
    ) -> List[Citation]:
        """
        Parse and validate every citation in text.

        Args:
            text: Plain document text; never modified
            style: Style for canonical_form (settings default when None)
            existing_citations_hint: Previously parsed citations whose
                components fill gaps in same-authority citations

        Returns:
            Citations in source order with canonical_form, warnings and errors
        """
        start_time = time.time()
        style = self._style(style)
        citations = self.parser.parse_text(text)
        if existing_citations_hint:
            citations = [self._apply_hint(citation, existing_citations_hint) for citation in citations]
        citations = self.validator.validate_sequence(citations)
        citations = [self.formatter.canonicalize(citation, style) for citation in citations]

        self.logger.info(
            "citations_extracted",
            count=len(citations),
            flagged=sum(1 for citation in citations if citation.has_fatal_errors),
            style=style.value,
            duration_ms=elapsed_ms(start_time),
        )
        return citations

    def parse_citation(self, raw_text: str, style: Optional[CitationStyle] = None) -> Optional[Citation]:
        """
        Parse one provider-supplied citation string.

        Returns:
            The validated, formatted citation, or None when the text holds none
        """
        citation = self.parser.parse(raw_text)
        if citation is None:
            return None
        return self.formatter.canonicalize(self.validator.annotate(citation), self._style(style))

    def format_citation(self, components, style: Optional[CitationStyle] = None) -> str:
        """Render components in the given style."""
        return self.formatter.format_text(components, self._style(style))

    def resolve_short_forms(
        self,
        citations: Sequence[Citation],
        style: Optional[CitationStyle] = None,
        scope_breaks: Optional[Sequence[int]] = None,
    ) -> List[Citation]:
        """Choose full, id., supra or short forms for an ordered citation list."""
        start_time = time.time()
        resolved = self.resolver.resolve(citations, self._style(style), scope_breaks)
        counts: Dict[str, int] = {}
        for citation in resolved:
            label = citation.resolution.value if citation.resolution else "orphan"
            counts[label] = counts.get(label, 0) + 1
        self.logger.info(
            "short_forms_resolved",
            count=len(resolved),
            resolutions=counts,
            duration_ms=elapsed_ms(start_time),
        )
        return resolved

    def build_table_of_authorities(
        self,
        citations: Sequence[Citation],
        style: Optional[CitationStyle] = None,
        page_breaks: Optional[Sequence[int]] = None,
    ) -> TableOfAuthorities:
        """Group, sort and paginate citations into a Table of Authorities."""
        start_time = time.time()
        table = self.toa_builder.build(citations, self._style(style), page_breaks)
        self.logger.info(
            "toa_built",
            sections=len(table.sections),
            entries=sum(len(section.entries) for section in table.sections),
            duration_ms=elapsed_ms(start_time),
        )
        return table

    def process_document(
        self,
        text: str,
        style: Optional[CitationStyle] = None,
        existing_citations_hint: Optional[Sequence[Citation]] = None,
        scope_breaks: Optional[Sequence[int]] = None,
        page_breaks: Optional[Sequence[int]] = None,
    ) -> DocumentCitations:
        """
        Run the whole pipeline over one document.

        Args:
            text: Plain document text
            style: Citation style (settings default when None)
            existing_citations_hint: Previously parsed citations used to fill
                missing components
            scope_breaks: Segment start offsets for IdScope.SEGMENT;
                paragraph boundaries when None
            page_breaks: Page start offsets for TOA page references;
                form feeds in the text when None

        Returns:
            DocumentCitations with resolved citations and the TOA
        """
        style = self._style(style)
        citations = self.extract_citations(text, style, existing_citations_hint)
        if scope_breaks is None and self.settings.id_scope == IdScope.SEGMENT:
            scope_breaks = paragraph_breaks(text)
        resolved = self.resolve_short_forms(citations, style, scope_breaks)
        if page_breaks is None:
            page_breaks = form_feed_breaks(text)
        table = self.build_table_of_authorities(resolved, style, page_breaks)
        return DocumentCitations(style=style, citations=resolved, table_of_authorities=table)

    # Hints

    def _apply_hint(self, citation: Citation, hints: Sequence[Citation]) -> Citation:
        components = citation.components
        if components is None:
            return citation
        hint = self._matching_hint(citation, hints)
        if hint is None:
            return citation

        fill = {
            name: value
            for name, value in hint.components
            if name not in _CITATION_SPECIFIC and value is not None and getattr(components, name) is None
        }
        if not fill:
            return citation

        enriched = components.model_copy(update=fill)
        confidence, missing = self.parser.assess(enriched)
        warnings = [issue for issue in citation.warnings if issue.code != IssueCode.MISSING_COMPONENT]
        return citation.model_copy(update={
            "components": enriched,
            "confidence": confidence,
            "authority_key": enriched.authority_key(),
            "warnings": warnings + missing,
        })

    @staticmethod
    def _matching_hint(citation: Citation, hints: Sequence[Citation]) -> Optional[Citation]:
        components = citation.components
        for hint in hints:
            if hint.components is None or hint.components.kind != components.kind:
                continue
            if hint.authority_key == citation.authority_key:
                return hint
        if isinstance(components, CaseComponents) and not components.first_page:
            # Pageless cases are keyed by name; match on volume, reporter and name instead.
            for hint in hints:
                other = hint.components
                if not isinstance(other, CaseComponents) or other.volume != components.volume:
                    continue
                if abbreviation_key(other.reporter_abbrev or "") != abbreviation_key(components.reporter_abbrev or ""):
                    continue
                if components.party_a is None or names_match(components.party_a, other.party_a):
                    return hint
        return None


@lru_cache(maxsize=1)
def get_default_engine() -> CitationEngine:
    """Engine built from LEXCITE_* settings, with audit logging configured."""
    settings = load_settings()
    configure_audit_logging(settings.log_level, settings.log_json)
    return CitationEngine(settings)


def extract_citations(text: str, style: Optional[CitationStyle] = None) -> List[Citation]:
    return get_default_engine().extract_citations(text, style)


def parse_citation(raw_text: str, style: Optional[CitationStyle] = None) -> Optional[Citation]:
    return get_default_engine().parse_citation(raw_text, style)


def format_citation(components, style: Optional[CitationStyle] = None) -> str:
    return get_default_engine().format_citation(components, style)


def resolve_short_forms(citations: Sequence[Citation], style: Optional[CitationStyle] = None) -> List[Citation]:
    return get_default_engine().resolve_short_forms(citations, style)


def build_table_of_authorities(
    citations: Sequence[Citation],
    style: Optional[CitationStyle] = None,
    page_breaks: Optional[Sequence[int]] = None,
) -> TableOfAuthorities:
    return get_default_engine().build_table_of_authorities(citations, style, page_breaks)


def process_document(
    text: str,
    style: Optional[CitationStyle] = None,
    existing_citations_hint: Optional[Sequence[Citation]] = None,
) -> DocumentCitations:
    return get_default_engine().process_document(text, style, existing_citations_hint)
