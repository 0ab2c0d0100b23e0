"""
Short-form resolution across a document.

Provides:
- ResolverState: the explicit "last cited / seen" state of one pass
- ShortFormResolver: binds typed short forms (Id., supra, short case cites)
  to their antecedents and chooses the form each citation should take

A new ResolverState is created for every call, so one resolver can serve
many documents concurrently.
"""

import re
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from lexcite.citations.formatter import CitationFormatter
from lexcite.citations.models import (
    CaseComponents,
    Citation,
    CitationIssue,
    CitationStyle,
    FormattedCitation,
    IdScope,
    IssueCode,
    Resolution,
    SecondaryComponents,
    ShortFormMarker,
    ShortFormReference,
    StatuteComponents,
)
from lexcite.citations.reference import abbreviation_key


def _words(name: Optional[str]) -> List[str]:
    return re.findall(r"[0-9a-z]+", (name or "").casefold())


def names_match(typed: Optional[str], known: Optional[str]) -> bool:
    """
    Whether a typed short name refers to a known name.

    "Roe" matches "Roe"; "Earlier Roe" matches "Roe" (sentence text
    before the name); "Planned" matches "Planned Parenthood".
    """
    typed_words, known_words = _words(typed), _words(known)
    if not typed_words or not known_words:
        return False
    return typed_words[-len(known_words):] == known_words or known_words[:len(typed_words)] == typed_words


def _pincite(citation: Citation) -> Optional[str]:
    return getattr(citation.components, "pincite", None)


def _cited_by_section(components) -> bool:
    """Statutes and treatises cited by section accept "Id. § N"."""
    if isinstance(components, StatuteComponents):
        return True
    return isinstance(components, SecondaryComponents) and not components.is_article


def _section_label(components) -> str:
    if isinstance(components, StatuteComponents):
        return components.short_name
    return f"§ {components.section}"


@dataclass
class ResolverState:
    """State of a single resolution pass over one document."""
    last_authority_key: Optional[str] = None
    last_pincite: Optional[str] = None
    # authority_key -> first full citation of that authority, most recently cited last
    seen_authorities: Dict[str, Citation] = field(default_factory=dict)
    segment: int = 0

    def remember(self, citation: Citation) -> None:
        key = citation.authority_key
        if key is None:
            return
        self.seen_authorities[key] = self.seen_authorities.pop(key, citation)
        self.last_authority_key = key
        self.last_pincite = _pincite(citation)

    def interrupt(self) -> None:
        self.last_authority_key = None
        self.last_pincite = None

    def recent(self) -> Iterable[Citation]:
        return reversed(list(self.seen_authorities.values()))


class ShortFormResolver:
    """
    Rewrites repeated citations as id., supra or short forms.

    For each citation in order: the same authority as the previous
    citation becomes id.; an authority seen earlier becomes supra (cases
    and secondary authority) or its short form (statutes); anything else
    keeps its full form. Rules and constitutional provisions never use
    supra.

    Usage:
        resolver = ShortFormResolver()
        resolved = resolver.resolve(citations)
        [c.display_form for c in resolved]
        # -> ["Roe v. Wade, 410 U.S. 113 (1973)", "Id. at 115", ...]
    """

    def __init__(self, formatter: Optional[CitationFormatter] = None, id_scope: IdScope = IdScope.DOCUMENT):
        self.formatter = formatter or CitationFormatter()
        self.id_scope = id_scope

    def resolve(
        self,
        citations: Sequence[Citation],
        style: CitationStyle = CitationStyle.BLUEBOOK,
        scope_breaks: Optional[Sequence[int]] = None,
    ) -> List[Citation]:
        """
        Resolve short forms over an ordered citation sequence.

        Args:
            citations: Citations in source order; they are not modified
            style: Citation manual for canonical and display forms
            scope_breaks: Offsets where a new segment (footnote, paragraph)
                starts. Only used with IdScope.SEGMENT.

        Returns:
            New citations with resolution and display_form set. Typed short
            forms are bound to their antecedent's components and authority
            key, or flagged with OrphanShortForm.
        """
        state = ResolverState()
        breaks = sorted(scope_breaks or ())
        resolved = []

        for citation in citations:
            if self.id_scope == IdScope.SEGMENT:
                segment = bisect_right(breaks, citation.span[0])
                if segment != state.segment:
                    state.segment = segment
                    state.interrupt()

            if citation.components is None:
                citation = self._bind(citation, state)
                if citation.components is None:
                    state.interrupt()
                    resolved.append(citation)
                    continue

            citation = self.formatter.canonicalize(citation, style)
            resolved.append(self._choose_form(citation, state, style))
        return resolved

    # Binding typed short forms

    def _bind(self, citation: Citation, state: ResolverState) -> Citation:
        reference = citation.short_form
        antecedent = None
        if reference is not None:
            if reference.marker == ShortFormMarker.ID:
                if state.last_authority_key is not None:
                    antecedent = state.seen_authorities.get(state.last_authority_key)
            elif reference.marker == ShortFormMarker.SUPRA:
                antecedent = self._find_by_name(reference.name, state)
            else:
                antecedent = self._find_case(reference, state)

        if antecedent is None:
            return self._orphan(citation, f"'{citation.raw_text}' does not refer to any earlier citation")
        if reference.section is not None and not _cited_by_section(antecedent.components):
            return self._orphan(
                citation,
                f"'{citation.raw_text}' names a section, but the preceding authority has no sections",
            )

        components = antecedent.components
        authority_key = antecedent.authority_key
        issues: List[CitationIssue] = []
        if reference.section is not None:
            # Another section of the same code or treatise is another authority.
            update = {"section": reference.section}
            if isinstance(components, StatuteComponents):
                update.update(subsection=reference.subsection, multiple_sections=reference.multiple_sections)
            else:
                update["pincite"] = None
            components = components.model_copy(update=update)
            authority_key = components.authority_key()
        elif isinstance(components, (CaseComponents, SecondaryComponents)):
            pincite = reference.pincite
            if pincite is None and reference.marker == ShortFormMarker.ID:
                pincite = state.last_pincite
            components = components.model_copy(update={"pincite": pincite})
        elif reference.pincite is not None:
            issues.append(CitationIssue.warning(
                IssueCode.PINCITE_NOT_APPLICABLE,
                f"'{citation.raw_text}' gives a page, but {components.kind.value} citations have no pages",
                component="pincite",
                suggestion="Cite a section instead of a page, e.g. 'Id. § 1985'",
            ))

        return citation.with_issues(issues).model_copy(update={
            "components": components,
            "authority_key": authority_key,
            "errors": [issue for issue in citation.errors if issue.code != IssueCode.ORPHAN_SHORT_FORM],
        })

    @staticmethod
    def _orphan(citation: Citation, message: str) -> Citation:
        issue = CitationIssue.error(
            IssueCode.ORPHAN_SHORT_FORM,
            message,
            suggestion="Cite the authority in full before referring back to it",
        )
        return citation.with_issues([issue]).model_copy(update={
            "canonical_form": citation.raw_text,
            "italic_spans": [],
            "display_form": citation.raw_text,
            "display_italic_spans": [],
            "resolution": None,
            "authority_key": None,
        })

    def _find_by_name(self, name: Optional[str], state: ResolverState) -> Optional[Citation]:
        for candidate in state.recent():
            components = candidate.components
            if isinstance(components, CaseComponents):
                names = (components.short_name, components.party_a, components.party_b)
            elif isinstance(components, SecondaryComponents):
                names = (components.author, components.author.split("&")[0].split()[-1])
            else:
                continue
            if any(names_match(name, known) for known in names if known):
                return candidate
        return None

    def _find_case(self, reference: ShortFormReference, state: ResolverState) -> Optional[Citation]:
        fallback = None
        for candidate in state.recent():
            components = candidate.components
            if not isinstance(components, CaseComponents):
                continue
            if components.volume != reference.volume:
                continue
            if abbreviation_key(components.reporter_abbrev or "") != abbreviation_key(reference.reporter_abbrev or ""):
                continue
            if reference.name is None or any(
                names_match(reference.name, known) for known in (components.short_name, components.party_b)
            ):
                return candidate
            fallback = fallback or candidate
        return fallback

    # Choosing the form

    def _choose_form(self, citation: Citation, state: ResolverState, style: CitationStyle) -> Citation:
        key = citation.authority_key
        components = citation.components
        pincite = _pincite(citation)
        if pincite is None and citation.short_form is not None and not hasattr(components, "pincite"):
            pincite = citation.short_form.pincite

        if citation.has_fatal_errors:
            resolution = Resolution.FULL
            formatted = FormattedCitation(text=citation.raw_text)
        elif key is not None and key == state.last_authority_key:
            resolution = Resolution.ID
            formatted = self.formatter.format_id(
                style,
                pincite=pincite if pincite != state.last_pincite else None,
                lowercase=citation.signal is not None,
            )
        elif self._typed_section_id(citation, state):
            resolution = Resolution.ID
            formatted = self.formatter.format_id(
                style,
                lowercase=citation.signal is not None,
                section=_section_label(components),
            )
        elif key in state.seen_authorities:
            resolution, formatted = self._repeat_form(citation, style)
        else:
            resolution = Resolution.FULL
            formatted = FormattedCitation(text=citation.canonical_form, italic_spans=tuple(citation.italic_spans))

        if not citation.has_fatal_errors:
            formatted = self.formatter.with_signal(formatted, citation.signal)
        state.remember(citation)
        return citation.model_copy(update={
            "resolution": resolution,
            "display_form": formatted.text,
            "display_italic_spans": list(formatted.italic_spans),
        })

    def _repeat_form(self, citation: Citation, style: CitationStyle):
        components = citation.components
        pincite = _pincite(citation)
        if isinstance(components, CaseComponents):
            if components.short_name:
                return Resolution.SUPRA, self.formatter.format_supra(components.short_name, pincite=pincite)
            return Resolution.SHORT, self.formatter.format_short_case(components, pincite)
        if isinstance(components, SecondaryComponents):
            return Resolution.SUPRA, self.formatter.format_supra(components.author, pincite=pincite, italic_name=False)
        if isinstance(components, StatuteComponents):
            return Resolution.SHORT, self.formatter.format_short_statute(components)
        # Rules and constitutional provisions are always cited in full.
        return Resolution.FULL, FormattedCitation(text=citation.canonical_form, italic_spans=tuple(citation.italic_spans))

    @staticmethod
    def _typed_section_id(citation: Citation, state: ResolverState) -> bool:
        """Whether citation is an "Id. § N" naming another section of the previous authority."""
        reference = citation.short_form
        if reference is None or reference.marker != ShortFormMarker.ID or reference.section is None:
            return False
        previous = state.seen_authorities.get(state.last_authority_key) if state.last_authority_key else None
        if previous is None:
            return False
        current, other = citation.components, previous.components
        if isinstance(current, StatuteComponents) and isinstance(other, StatuteComponents):
            return (
                current.title == other.title
                and abbreviation_key(current.code_abbrev) == abbreviation_key(other.code_abbrev)
            )
        if isinstance(current, SecondaryComponents) and isinstance(other, SecondaryComponents):
            return current.author == other.author and current.title == other.title
        return False
