"""
Reference tables for reporters, courts, statutory codes and rule sets.

Provides:
- Typed records for each table entry
- ReferenceTables: immutable lookup helpers over the packaged JSON data
- load_reference_tables(): loads the tables once per path

Abbreviations are matched on a whitespace-free, case-folded key, so
"F. Supp. 2d", "F.Supp.2d" and "F. Supp.2d" all resolve to the same entry.
"""

import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from lexcite.errors import ReferenceDataError

logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_PATH = Path(__file__).resolve().parent.parent / "data" / "reference_tables.json"


def abbreviation_key(value: str) -> str:
    """Key used to compare abbreviations regardless of spacing and case."""
    return re.sub(r"\s+", "", value).casefold()


class _Entry(BaseModel):
    model_config = ConfigDict(frozen=True)

    abbreviation: str = Field(description="Canonical abbreviation")
    name: str = Field(description="Full name")
    jurisdiction: str = Field(description="Jurisdiction tag (federal, pennsylvania, regional, ...)")
    variants: Tuple[str, ...] = Field(default=(), description="Alternative spellings")

    @property
    def spellings(self) -> Tuple[str, ...]:
        return (self.abbreviation, *self.variants)


class ReporterInfo(_Entry):
    """Reporter metadata."""
    court: Optional[str] = Field(default=None, description="Court whose decisions the reporter publishes exclusively")
    court_implied: bool = Field(default=False, description="Whether the reporter alone identifies the court")
    official: bool = Field(default=False, description="Official reporter for its jurisdiction")
    start_year: Optional[int] = Field(default=None, description="First year of publication")
    end_year: Optional[int] = Field(default=None, description="Last year of publication, None if current")

    def covers_year(self, year: int) -> bool:
        if self.start_year is not None and year < self.start_year:
            return False
        if self.end_year is not None and year > self.end_year:
            return False
        return True


class CourtInfo(_Entry):
    """Court metadata."""
    level: Literal["trial", "appellate", "supreme"] = Field(description="Position in the court hierarchy")


class CodeInfo(_Entry):
    """Statutory code metadata."""
    titled: bool = Field(default=False, description="Whether citations to the code carry a title number")


class RuleSetInfo(_Entry):
    """Court-rule set metadata."""


def _index(entries: Mapping[str, _Entry]) -> Mapping[str, str]:
    index: Dict[str, str] = {}
    for abbreviation, entry in entries.items():
        for spelling in entry.spellings:
            index[abbreviation_key(spelling)] = abbreviation
    return MappingProxyType(index)


class ReferenceTables:
    """
    Immutable reference tables.

    Safe to share between threads: nothing is written after construction.

    Usage:
        tables = load_reference_tables()
        tables.normalize_reporter("F. 3d")      # -> "F.3d"
        tables.reporter_info("U.S.").court      # -> "U.S."
    """

    def __init__(
        self,
        reporters: Mapping[str, ReporterInfo],
        courts: Mapping[str, CourtInfo],
        codes: Mapping[str, CodeInfo],
        rule_sets: Mapping[str, RuleSetInfo],
    ):
        self._reporters = MappingProxyType(dict(reporters))
        self._courts = MappingProxyType(dict(courts))
        self._codes = MappingProxyType(dict(codes))
        self._rule_sets = MappingProxyType(dict(rule_sets))
        self._reporter_index = _index(self._reporters)
        self._court_index = _index(self._courts)
        self._code_index = _index(self._codes)
        self._rule_set_index = _index(self._rule_sets)

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping[str, dict]]) -> "ReferenceTables":
        """
        Build tables from the JSON layout.

        Raises:
            ReferenceDataError: If a table is missing or an entry is malformed.
        """
        def build(table: str, model):
            if table not in data:
                raise ReferenceDataError(f"Reference data has no '{table}' table")
            try:
                return {
                    abbreviation: model(abbreviation=abbreviation, **entry)
                    for abbreviation, entry in data[table].items()
                }
            except (TypeError, ValidationError) as exc:
                raise ReferenceDataError(f"Malformed entry in '{table}' table: {exc}") from exc

        return cls(
            reporters=build("reporters", ReporterInfo),
            courts=build("courts", CourtInfo),
            codes=build("codes", CodeInfo),
            rule_sets=build("rule_sets", RuleSetInfo),
        )

    @classmethod
    def from_json(cls, path: Path) -> "ReferenceTables":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise ReferenceDataError(f"Cannot load reference tables from {path}: {exc}") from exc
        tables = cls.from_dict(data)
        logger.info(
            f"Loaded reference tables from {path}: {len(tables._reporters)} reporters, "
            f"{len(tables._courts)} courts, {len(tables._codes)} codes, {len(tables._rule_sets)} rule sets"
        )
        return tables

    # Reporters

    def reporter_info(self, abbreviation: Optional[str]) -> Optional[ReporterInfo]:
        if not abbreviation:
            return None
        canonical = self._reporter_index.get(abbreviation_key(abbreviation))
        return self._reporters[canonical] if canonical else None

    def normalize_reporter(self, abbreviation: str) -> str:
        """Canonical spelling of a known reporter, else the input with collapsed spaces."""
        return self._reporter_index.get(abbreviation_key(abbreviation), " ".join(abbreviation.split()))

    def known_reporter_variants(self) -> Tuple[str, ...]:
        return _spellings(self._reporters.values())

    # Courts

    def court_info(self, abbreviation: Optional[str]) -> Optional[CourtInfo]:
        if not abbreviation:
            return None
        canonical = self._court_index.get(abbreviation_key(abbreviation))
        return self._courts[canonical] if canonical else None

    def normalize_court(self, abbreviation: str) -> str:
        return self._court_index.get(abbreviation_key(abbreviation), " ".join(abbreviation.split()))

    def infer_court(self, reporter: Optional[str]) -> Optional[str]:
        """Court implied by a reporter, if the reporter publishes a single court."""
        info = self.reporter_info(reporter)
        return info.court if info else None

    def court_implied_by(self, court: Optional[str], reporter: Optional[str]) -> bool:
        info = self.reporter_info(reporter)
        if not court or info is None or not info.court_implied:
            return False
        return abbreviation_key(info.court) == abbreviation_key(self.normalize_court(court))

    def official_reporters(self, court: Optional[str]) -> Tuple[str, ...]:
        """Official reporters that publish the given court's decisions."""
        if not court:
            return ()
        key = abbreviation_key(self.normalize_court(court))
        return tuple(
            abbreviation
            for abbreviation, info in self._reporters.items()
            if info.official and info.court and abbreviation_key(info.court) == key
        )

    # Statutory codes

    def code_info(self, abbreviation: Optional[str]) -> Optional[CodeInfo]:
        if not abbreviation:
            return None
        canonical = self._code_index.get(abbreviation_key(abbreviation))
        return self._codes[canonical] if canonical else None

    def normalize_code(self, abbreviation: str) -> str:
        return self._code_index.get(abbreviation_key(abbreviation), " ".join(abbreviation.split()))

    def known_code_variants(self) -> Tuple[str, ...]:
        return _spellings(self._codes.values())

    # Rule sets

    def rule_set_info(self, abbreviation: Optional[str]) -> Optional[RuleSetInfo]:
        if not abbreviation:
            return None
        canonical = self._rule_set_index.get(abbreviation_key(abbreviation))
        return self._rule_sets[canonical] if canonical else None

    def normalize_rule_set(self, abbreviation: str) -> str:
        return self._rule_set_index.get(abbreviation_key(abbreviation), " ".join(abbreviation.split()))

    def known_rule_set_variants(self) -> Tuple[str, ...]:
        return _spellings(self._rule_sets.values())


def _spellings(entries: Iterable[_Entry]) -> Tuple[str, ...]:
    """All spellings, longest first so regex alternations prefer the longest."""
    spellings = {spelling for entry in entries for spelling in entry.spellings}
    return tuple(sorted(spellings, key=lambda s: (-len(s), s)))


@lru_cache(maxsize=None)
def load_reference_tables(path: Optional[Path] = None) -> ReferenceTables:
    """
    Load reference tables once per path.

    Args:
        path: JSON file to load; the packaged tables when None.

    Returns:
        Shared, immutable ReferenceTables instance.
    """
    return ReferenceTables.from_json(Path(path) if path else DEFAULT_REFERENCE_PATH)
