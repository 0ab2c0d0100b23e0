"""
lexcite: legal citation engine.

Finds, parses, validates and formats US legal citations in plain text,
resolves id./supra short forms, and builds Tables of Authorities.

Usage:
    import lexcite

    result = lexcite.process_document("See 410 U.S. 113. Id. at 115.")
    [c.display_form for c in result.citations]
    # -> ["See 410 U.S. 113", "Id. at 115"]
"""

from lexcite.citations.models import (
    CitationKind,
    CitationStyle,
    IdScope,
    Citation,
    CaseComponents,
    StatuteComponents,
    ConstitutionComponents,
    RuleComponents,
    SecondaryComponents,
)
from lexcite.citations.authorities import TableOfAuthorities
from lexcite.config import EngineSettings, load_settings
from lexcite.errors import CitationEngineError, ReferenceDataError, SettingsError
from lexcite.engine import (
    CitationEngine,
    DocumentCitations,
    get_default_engine,
    extract_citations,
    parse_citation,
    format_citation,
    resolve_short_forms,
    build_table_of_authorities,
    process_document,
)

__version__ = "0.1.0"

__all__ = [
    # Engine
    "CitationEngine",
    "DocumentCitations",
    "get_default_engine",
    "extract_citations",
    "parse_citation",
    "format_citation",
    "resolve_short_forms",
    "build_table_of_authorities",
    "process_document",
    # Models
    "CitationKind",
    "CitationStyle",
    "IdScope",
    "Citation",
    "CaseComponents",
    "StatuteComponents",
    "ConstitutionComponents",
    "RuleComponents",
    "SecondaryComponents",
    "TableOfAuthorities",
    # Configuration
    "EngineSettings",
    "load_settings",
    # Errors
    "CitationEngineError",
    "ReferenceDataError",
    "SettingsError",
]
