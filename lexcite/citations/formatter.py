"""
Citation formatter for US legal citation styles.

Provides formatting methods for:
- Cases: "Roe v. Wade, 410 U.S. 113, 115 (1973)"
- Statutes: "42 U.S.C. § 1983 (2018)"
- Constitutional provisions: "U.S. Const. art. I, § 8, cl. 3"
- Court rules: "Fed. R. Civ. P. 12(b)(6)"
- Secondary authority: articles and treatises
- Short forms: "Id. at 115", "Roe, supra, at 120", "410 U.S. at 115", "§ 5524"

Output is a FormattedCitation: plain text plus italic spans, so callers
decide how emphasis is rendered.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from lexcite.citations.models import (
    CaseComponents,
    Citation,
    CitationStyle,
    ConstitutionComponents,
    FormattedCitation,
    ItalicSpan,
    RuleComponents,
    SecondaryComponents,
    Signal,
    StatuteComponents,
)
from lexcite.citations.reference import ReferenceTables, load_reference_tables


@dataclass(frozen=True)
class StyleProfile:
    """Per-style choices; everything not listed here is shared by all styles."""
    id_marker: str
    id_pincite_joiner: str
    id_section_joiner: str
    quote_article_titles: bool
    book_parenthetical: str   # "edition_year" | "edition_publisher_year" | "edition_publisher_comma_year"


class _Rendering:
    """Accumulates text pieces and records which of them are italic."""

    def __init__(self):
        self._parts: List[str] = []
        self._italics: List[ItalicSpan] = []
        self._length = 0

    def add(self, text: Optional[str], italic: bool = False) -> "_Rendering":
        if not text:
            return self
        if italic:
            self._italics.append(ItalicSpan(start=self._length, end=self._length + len(text)))
        self._parts.append(text)
        self._length += len(text)
        return self

    def build(self) -> FormattedCitation:
        return FormattedCitation(text="".join(self._parts), italic_spans=tuple(self._italics))


class CitationFormatter:
    """
    Formatter for case, statute, constitution, rule and secondary citations.

    Every method is a pure function of its arguments: document order is the
    short-form resolver's concern, never the formatter's.

    Usage:
        formatter = CitationFormatter()
        formatter.format_text(CaseComponents(party_a="Roe", party_b="Wade", volume="410",
                                             reporter_abbrev="U.S.", first_page="113", year=1973))
        # -> "Roe v. Wade, 410 U.S. 113 (1973)"
    """

    STYLE_PROFILES: dict[CitationStyle, StyleProfile] = {
        CitationStyle.BLUEBOOK: StyleProfile(
            id_marker="Id.",
            id_pincite_joiner=" at ",
            id_section_joiner=" ",
            quote_article_titles=False,
            book_parenthetical="edition_year",
        ),
        CitationStyle.ALWD: StyleProfile(
            id_marker="Id.",
            id_pincite_joiner=" at ",
            id_section_joiner=" ",
            quote_article_titles=False,
            book_parenthetical="edition_publisher_year",
        ),
        CitationStyle.CHICAGO: StyleProfile(
            id_marker="Ibid.",
            id_pincite_joiner=", ",
            id_section_joiner=", ",
            quote_article_titles=True,
            book_parenthetical="edition_publisher_comma_year",
        ),
    }

    def __init__(self, tables: Optional[ReferenceTables] = None):
        self.tables = tables or load_reference_tables()

    def format(self, components, style: CitationStyle = CitationStyle.BLUEBOOK) -> FormattedCitation:
        """
        Render components in full form.

        Args:
            components: Any member of the components union
            style: Citation manual to follow

        Returns:
            FormattedCitation with text and italic spans
        """
        return self._render(components, style, for_table=False)

    def format_text(self, components, style: CitationStyle = CitationStyle.BLUEBOOK) -> str:
        return self.format(components, style).text

    def format_for_table(self, components, style: CitationStyle = CitationStyle.BLUEBOOK) -> FormattedCitation:
        """Full form without pincites or explanatory parentheticals, as listed in a TOA."""
        return self._render(components, style, for_table=True)

    def _render(self, components, style: CitationStyle, for_table: bool) -> FormattedCitation:
        r = _Rendering()
        if isinstance(components, CaseComponents):
            self._case(r, components, for_table)
        elif isinstance(components, StatuteComponents):
            self._statute(r, components)
        elif isinstance(components, ConstitutionComponents):
            self._constitution(r, components)
        elif isinstance(components, RuleComponents):
            self._rule(r, components)
        elif isinstance(components, SecondaryComponents):
            self._secondary(r, components, self.STYLE_PROFILES[style], for_table)
        else:
            raise TypeError(f"Cannot format {type(components).__name__}")
        return r.build()

    # Full forms

    def _case(self, r: _Rendering, c: CaseComponents, for_table: bool) -> None:
        name = c.case_name
        r.add(name, italic=True)
        location = " ".join(part for part in (c.volume, c.reporter_abbrev, c.first_page) if part)
        if location:
            r.add(", " if name else "")
            r.add(location)
        if c.pincite and not for_table:
            r.add(f", {c.pincite}")
        if c.year is not None:
            court = c.court
            if court and self.tables.court_implied_by(court, c.reporter_abbrev):
                court = None
            r.add(f" ({court} {c.year})" if court else f" ({c.year})")
        if c.parenthetical and not for_table:
            r.add(f" ({c.parenthetical})")

    def _statute(self, r: _Rendering, c: StatuteComponents) -> None:
        if c.title:
            r.add(f"{c.title} ")
        r.add(f"{c.code_abbrev} {c.short_name}")
        if c.year:
            r.add(f" ({c.year})")

    def _constitution(self, r: _Rendering, c: ConstitutionComponents) -> None:
        r.add(f"{c.jurisdiction} Const. {c.part} {c.number}")
        if c.section:
            r.add(f", § {c.section}")
        if c.clause:
            r.add(f", cl. {c.clause}")

    def _rule(self, r: _Rendering, c: RuleComponents) -> None:
        r.add(f"{c.rule_set} {c.rule_number}{c.subdivision or ''}")
        if c.year is not None:
            r.add(f" ({c.year})")

    def _secondary(self, r: _Rendering, c: SecondaryComponents, profile: StyleProfile, for_table: bool) -> None:
        r.add(f"{c.author}, ")
        if c.is_article:
            if profile.quote_article_titles:
                r.add(f'"{c.title}," ')
            else:
                r.add(c.title, italic=True).add(", ")
            r.add(" ".join(part for part in (c.volume, c.journal, c.first_page) if part))
            if c.pincite and not for_table:
                r.add(f", {c.pincite}")
            if c.year is not None:
                r.add(f" ({c.year})")
            return

        r.add(c.title, italic=True)
        if c.section:
            r.add(f" § {c.section}")
        elif c.pincite and not for_table:
            r.add(f" {c.pincite}")
        parenthetical = self._book_parenthetical(c, profile)
        if parenthetical:
            r.add(f" ({parenthetical})")

    @staticmethod
    def _book_parenthetical(c: SecondaryComponents, profile: StyleProfile) -> str:
        """
        Edition, publisher and year of a treatise.

        Example:
            Bluebook: "3d ed. 2004"; ALWD: "3d ed., West 2004";
            Chicago: "3d ed., West, 2004"
        """
        year = str(c.year) if c.year is not None else None
        if profile.book_parenthetical == "edition_year":
            return " ".join(part for part in (c.edition, year) if part)
        if profile.book_parenthetical == "edition_publisher_year":
            published = " ".join(part for part in (c.publisher, year) if part)
            if c.edition and not c.publisher:
                return " ".join(part for part in (c.edition, year) if part)
            return ", ".join(part for part in (c.edition, published) if part)
        if c.edition and not c.publisher:
            return " ".join(part for part in (c.edition, year) if part)
        return ", ".join(part for part in (c.edition, c.publisher, year) if part)

    # Short forms

    def format_id(
        self,
        style: CitationStyle = CitationStyle.BLUEBOOK,
        pincite: Optional[str] = None,
        lowercase: bool = False,
        section: Optional[str] = None,
    ) -> FormattedCitation:
        """
        Render an immediate repeat.

        Args:
            style: Citation manual (Chicago uses "Ibid.")
            pincite: Pinpoint to add, if it differs from the previous citation
            lowercase: True after a signal ("see id. at 5")
            section: Section of the same code ("Id. § 1985"); replaces the pincite

        Example:
            >>> CitationFormatter().format_id(pincite="115").text
            'Id. at 115'
        """
        profile = self.STYLE_PROFILES[style]
        marker = profile.id_marker
        if lowercase:
            marker = marker[0].lower() + marker[1:]
        r = _Rendering().add(marker, italic=True)
        if section:
            r.add(f"{profile.id_section_joiner}{section}")
        elif pincite:
            r.add(f"{profile.id_pincite_joiner}{pincite}")
        return r.build()

    def format_supra(
        self,
        name: str,
        pincite: Optional[str] = None,
        note: Optional[str] = None,
        italic_name: bool = True,
    ) -> FormattedCitation:
        """
        Render a repeat of an authority cited earlier: "Roe, supra, at 120".

        Example:
            >>> CitationFormatter().format_supra("Roe", pincite="120").text
            'Roe, supra, at 120'
        """
        r = _Rendering().add(name, italic=italic_name).add(", ").add("supra", italic=True)
        if note:
            r.add(f" note {note}")
        if pincite:
            r.add(f", at {pincite}")
        return r.build()

    def format_short_case(self, components: CaseComponents, pincite: Optional[str] = None) -> FormattedCitation:
        """
        Render a short case cite: "Roe, 410 U.S. at 115".

        Falls back to the first page when there is no pincite.
        """
        r = _Rendering()
        name = components.short_name
        if name:
            r.add(name, italic=True).add(", ")
        page = pincite or components.first_page
        location = " ".join(part for part in (components.volume, components.reporter_abbrev) if part)
        r.add(f"{location} at {page}" if page else location)
        return r.build()

    def format_short_statute(self, components: StatuteComponents) -> FormattedCitation:
        """Render a statute's short form: "§ 5524"."""
        return _Rendering().add(components.short_name).build()

    @staticmethod
    def with_signal(formatted: FormattedCitation, signal: Optional[Signal]) -> FormattedCitation:
        """Prefix an introductory signal, shifting italic spans to match."""
        if signal is None:
            return formatted
        prefix = f"{signal.value} "
        spans: Tuple[ItalicSpan, ...] = (ItalicSpan(start=0, end=len(signal.value)),) + tuple(
            span.shifted(len(prefix)) for span in formatted.italic_spans
        )
        return FormattedCitation(text=prefix + formatted.text, italic_spans=spans)

    def canonicalize(self, citation: Citation, style: CitationStyle = CitationStyle.BLUEBOOK) -> Citation:
        """
        Return a copy of citation with canonical_form set for style.

        Citations with fatal errors, and short forms not yet bound to an
        antecedent, keep their raw text.
        """
        if citation.components is None or citation.has_fatal_errors:
            update = {"canonical_form": citation.raw_text, "italic_spans": []}
        else:
            formatted = self.format(citation.components, style)
            update = {"canonical_form": formatted.text, "italic_spans": list(formatted.italic_spans)}
        update["style"] = style
        return citation.model_copy(update=update)
