"""
Citation parser: turns candidate spans into structured Citation records.

Provides:
- CitationParser.parse_text(): scan and parse every citation in a text
- CitationParser.parse(): parse a single provider-supplied citation string
- CitationParser.assess(): confidence and MissingComponent warnings

Matching runs on a normalized copy of the text (see
normalize_for_matching); raw_text is always sliced from the original.
"""

import re
from typing import List, NamedTuple, Optional, Tuple

from lexcite.citations.models import (
    CaseComponents,
    Citation,
    CitationIssue,
    ConstitutionComponents,
    IssueCode,
    RuleComponents,
    SecondaryComponents,
    ShortFormMarker,
    ShortFormReference,
    Signal,
    StatuteComponents,
)
from lexcite.citations.reference import ReferenceTables, load_reference_tables
from lexcite.citations.scanner import (
    CandidateSpan,
    SINGLE_PARTY_PREFIX,
    CitationScanner,
    ScanKind,
    normalize_for_matching,
)

# Capitalized words that can open a sentence before a case name or author
# ("In Roe v. Wade", "Under Tribe, ...") without belonging to it.
_LEADING_WORDS = frozenset({
    "in", "under", "following", "citing", "quoting", "also", "and", "but",
    "moreover", "however", "thus", "therefore", "because", "although",
    "while", "per", "as", "after", "before", "when", "since", "unlike",
    "like", "accordingly", "finally", "similarly", "here", "there",
    "see", "generally", "cf.", "compare", "e.g.", "e.g.,", "accord", "contra",
})

# Period-terminated words that continue a party name rather than end a sentence.
_NAME_ABBREVIATIONS = frozenset({
    "acad.", "adm'r", "admin.", "am.", "ass'n", "auth.", "ave.", "bd.", "bhd.",
    "bros.", "bus.", "cent.", "chem.", "cmty.", "co.", "comm.", "comm'n",
    "comm'r", "cnty.", "coop.", "corp.", "ctr.", "def.", "dep't", "dev.",
    "dir.", "dist.", "div.", "econ.", "educ.", "elec.", "emp.", "eng'g",
    "enter.", "env't", "equip.", "exch.", "fed.", "fin.", "found.", "gen.",
    "gov't", "grp.", "hosp.", "hous.", "inc.", "indep.", "indus.", "info.",
    "ins.", "int'l", "inv.", "lab.", "liab.", "ltd.", "mach.", "mfg.", "med.",
    "mem'l", "metro.", "mgmt.", "mun.", "mut.", "nat'l", "no.", "org.",
    "pharm.", "prod.", "prop.", "prot.", "pub.", "ry.", "reg'l", "rep.",
    "res.", "sav.", "sch.", "sci.", "sec.", "serv.", "soc.", "sys.", "tech.",
    "tel.", "transp.", "twp.", "univ.", "util.", "vill.", "jr.", "sr.", "st.",
    "mr.", "mrs.", "ms.", "dr.", "prof.", "rel.", "ex.",
})

_SINGLE_PARTY = re.compile(SINGLE_PARTY_PREFIX + r"\s")


class _Parsed(NamedTuple):
    start: int
    signal: Optional[Signal]
    components: Optional[object] = None
    short_form: Optional[ShortFormReference] = None


def _clean(value: Optional[str]) -> Optional[str]:
    """Collapse whitespace; empty strings become None."""
    if value is None:
        return None
    value = " ".join(value.split()).strip(" ,")
    return value or None


def normalize_pincite(value: Optional[str]) -> Optional[str]:
    """Canonical pincite spelling: "118 - 19" -> "118–19", "118 n. 3" -> "118 n.3"."""
    value = _clean(value)
    if value is None:
        return None
    value = re.sub(r"\s*[-–—]\s*", "–", value)
    return re.sub(r"\s*n\.\s*", " n.", value)


def _is_sentence_end(token: str) -> bool:
    if not token.endswith("."):
        return False
    word = token[:-1]
    if "." in word or len(word) <= 1:
        return False
    return token.casefold() not in _NAME_ABBREVIATIONS


def _int(value: Optional[str]) -> Optional[int]:
    return int(value) if value else None


class CitationParser:
    """
    Parses candidate spans into Citation records.

    Usage:
        parser = CitationParser()
        citations = parser.parse_text("42 Pa.C.S. § 5524")
        citations[0].components.code_abbrev   # -> "Pa.C.S."
    """

    def __init__(self, tables: Optional[ReferenceTables] = None, scanner: Optional[CitationScanner] = None):
        self.tables = tables or load_reference_tables()
        self.scanner = scanner or CitationScanner(self.tables)
        self._builders = {
            ScanKind.CASE: self._build_case,
            ScanKind.STATUTE: self._build_statute,
            ScanKind.CONSTITUTION: self._build_constitution,
            ScanKind.RULE: self._build_rule,
            ScanKind.SECONDARY: self._build_secondary,
            ScanKind.SHORT_FORM: self._build_short_form,
        }

    def parse_text(self, text: str) -> List[Citation]:
        """Scan and parse every citation in text, in source order."""
        buffer = normalize_for_matching(text)
        return [
            self.parse_candidate(text, candidate, buffer)
            for candidate in self.scanner.scan_normalized(buffer)
        ]

    def parse(self, raw_text: str) -> Optional[Citation]:
        """
        Parse a single citation string, e.g. one returned by a search provider.

        Args:
            raw_text: Text expected to hold one citation.

        Returns:
            The citation covering the longest span, or None when nothing matches.
        """
        buffer = normalize_for_matching(raw_text)
        candidates = self.scanner.scan_normalized(buffer)
        if not candidates:
            return None
        best = max(candidates, key=lambda c: (c.length, -c.priority, -c.start))
        return self.parse_candidate(raw_text, best, buffer)

    def parse_candidate(self, text: str, candidate: CandidateSpan, buffer: Optional[str] = None) -> Citation:
        """Build a Citation from one candidate span of text."""
        if buffer is None:
            buffer = normalize_for_matching(text)
        pattern = self.scanner.rule(candidate.rule).pattern
        match = pattern.fullmatch(buffer, candidate.start, candidate.end) or pattern.match(buffer, candidate.start)
        parsed = self._builders[candidate.kind](match)

        start, end = parsed.start, candidate.end
        components = parsed.components
        if components is not None:
            confidence, warnings = self.assess(components)
            authority_key = components.authority_key()
        else:
            confidence, warnings, authority_key = 1.0, [], None

        return Citation(
            raw_text=text[start:end],
            span=(start, end),
            components=components,
            signal=parsed.signal,
            short_form=parsed.short_form,
            confidence=confidence,
            authority_key=authority_key,
            warnings=warnings,
        )

    def assess(self, components) -> Tuple[float, List[CitationIssue]]:
        """
        Score how complete a set of components is.

        Returns:
            (confidence, MissingComponent warnings). Confidence starts at 1.0
            and drops for each optional-but-expected component that is absent.
        """
        missing: List[Tuple[str, float]] = []
        if isinstance(components, CaseComponents):
            if not (components.party_a or components.party_b):
                missing.append(("case_name", 0.15))
            if not components.first_page:
                missing.append(("first_page", 0.4))
            if components.year is None:
                missing.append(("year", 0.1))
        elif isinstance(components, StatuteComponents):
            code = self.tables.code_info(components.code_abbrev)
            if components.title is None and code is not None and code.titled:
                missing.append(("title", 0.2))
        elif isinstance(components, SecondaryComponents):
            if components.year is None:
                missing.append(("year", 0.1))

        confidence = round(max(0.0, 1.0 - sum(weight for _, weight in missing)), 2)
        warnings = [
            CitationIssue.warning(
                IssueCode.MISSING_COMPONENT,
                f"Citation has no {name.replace('_', ' ')}",
                component=name,
                suggestion=f"Add the {name.replace('_', ' ')}",
            )
            for name, _ in missing
        ]
        return confidence, warnings

    # Span bookkeeping

    def _leading(self, match: "re.Match[str]", group: str) -> Tuple[Optional[str], int, Optional[Signal]]:
        """
        Strip sentence text and signal words captured ahead of a name.

        Returns:
            (name, span start, signal). The span starts at the signal when one
            is found, otherwise at the name itself.
        """
        signal = Signal.from_text(match.group("signal")) if match.group("signal") else None
        if match.group(group) is None:
            return None, match.start(), signal

        base = match.start(group)
        value = match.group(group)
        tokens = list(re.finditer(r"\S+", value))

        first = 0
        for i, token in enumerate(tokens[:-1]):
            if _is_sentence_end(token.group()):
                first = i + 1

        leading = []
        while first < len(tokens) - 1:
            word = tokens[first].group()
            if _SINGLE_PARTY.match(value, tokens[first].start()):
                break
            if word.casefold() not in _LEADING_WORDS:
                break
            leading.append(tokens[first])
            first += 1

        name_start = tokens[first].start()
        start = match.start() if signal is not None else base + name_start
        if signal is None and leading:
            found = Signal.from_text(" ".join(token.group() for token in leading))
            if found is not None:
                signal = found
                start = base + leading[0].start()
        return _clean(value[name_start:]), start, signal

    def _signal_only(self, match: "re.Match[str]") -> Tuple[int, Optional[Signal]]:
        signal = Signal.from_text(match.group("signal")) if match.group("signal") else None
        return match.start(), signal

    # Builders, one per scan kind

    def _build_case(self, match: "re.Match[str]") -> _Parsed:
        groups = match.groupdict()
        if "party_a" in groups:
            party_a, start, signal = self._leading(match, "party_a")
        else:
            party_a = None
            start, signal = self._signal_only(match)

        reporter = self.tables.normalize_reporter(groups["reporter"])
        court = _clean(groups.get("court"))
        court = self.tables.normalize_court(court) if court else self.tables.infer_court(reporter)

        components = CaseComponents(
            party_a=party_a,
            party_b=_clean(groups.get("party_b")),
            volume=groups["volume"],
            reporter_abbrev=reporter,
            first_page=groups.get("first_page"),
            pincite=normalize_pincite(groups.get("pincite")),
            court=court,
            year=_int(groups.get("year")),
            parenthetical=_clean(groups.get("parenthetical")),
        )
        return _Parsed(start, signal, components)

    def _build_statute(self, match: "re.Match[str]") -> _Parsed:
        start, signal = self._signal_only(match)
        components = StatuteComponents(
            title=match.group("title"),
            code_abbrev=self.tables.normalize_code(match.group("code")),
            section=match.group("section"),
            subsection=match.group("subsection") or None,
            multiple_sections=match.group("symbol") == "§§",
            year=_clean(match.group("year")),
        )
        return _Parsed(start, signal, components)

    def _build_constitution(self, match: "re.Match[str]") -> _Parsed:
        start, signal = self._signal_only(match)
        components = ConstitutionComponents(
            jurisdiction=re.sub(r"\s+", "", match.group("jurisdiction")),
            part=match.group("part"),
            number=match.group("number"),
            section=match.group("section"),
            clause=match.group("clause"),
        )
        return _Parsed(start, signal, components)

    def _build_rule(self, match: "re.Match[str]") -> _Parsed:
        start, signal = self._signal_only(match)
        components = RuleComponents(
            rule_set=self.tables.normalize_rule_set(match.group("rule_set")),
            rule_number=match.group("rule_number"),
            subdivision=match.group("subdivision") or None,
            year=_int(match.group("year")),
        )
        return _Parsed(start, signal, components)

    def _build_secondary(self, match: "re.Match[str]") -> _Parsed:
        groups = match.groupdict()
        author, start, signal = self._leading(match, "author")
        components = SecondaryComponents(
            author=author,
            title=_clean(groups.get("quoted_title") or groups.get("title")),
            volume=groups.get("volume"),
            journal=_clean(groups.get("journal")),
            first_page=groups.get("first_page"),
            section=groups.get("section"),
            pincite=normalize_pincite(groups.get("pincite")),
            edition=_clean(groups.get("edition")),
            publisher=_clean(groups.get("publisher")),
            year=_int(groups.get("year")),
        )
        return _Parsed(start, signal, components)

    def _build_short_form(self, match: "re.Match[str]") -> _Parsed:
        groups = match.groupdict()
        if "marker" in groups:
            start, signal = self._signal_only(match)
            reference = ShortFormReference(
                marker=ShortFormMarker.ID,
                pincite=normalize_pincite(groups.get("pincite")),
                section=groups.get("section"),
                subsection=groups.get("subsection") or None,
                multiple_sections=groups.get("symbol") == "§§",
            )
            return _Parsed(start, signal, short_form=reference)

        name, start, signal = self._leading(match, "name")
        if "reporter" in groups:
            reference = ShortFormReference(
                marker=ShortFormMarker.SHORT_CITE,
                name=name,
                volume=groups["volume"],
                reporter_abbrev=self.tables.normalize_reporter(groups["reporter"]),
                pincite=normalize_pincite(groups.get("pincite")),
            )
        else:
            reference = ShortFormReference(
                marker=ShortFormMarker.SUPRA,
                name=name,
                pincite=normalize_pincite(groups.get("pincite")),
                note=groups.get("note"),
            )
        return _Parsed(start, signal, short_form=reference)
