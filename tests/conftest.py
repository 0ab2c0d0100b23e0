"""Shared fixtures for the lexcite test suite."""

import pytest
import structlog

from lexcite.citations.authorities import TableOfAuthoritiesBuilder
from lexcite.citations.formatter import CitationFormatter
from lexcite.citations.models import Citation
from lexcite.citations.parser import CitationParser
from lexcite.citations.reference import load_reference_tables
from lexcite.citations.scanner import CitationScanner
from lexcite.citations.short_forms import ShortFormResolver
from lexcite.config import EngineSettings
from lexcite.engine import CitationEngine, get_default_engine
from lexcite.verification.validator import CitationValidator


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo structlog configuration and the cached default engine after each test."""
    yield
    structlog.reset_defaults()
    get_default_engine.cache_clear()


@pytest.fixture(scope="session")
def tables():
    return load_reference_tables()


@pytest.fixture(scope="session")
def scanner(tables):
    return CitationScanner(tables)


@pytest.fixture(scope="session")
def parser(tables, scanner):
    return CitationParser(tables, scanner)


@pytest.fixture(scope="session")
def formatter(tables):
    return CitationFormatter(tables)


@pytest.fixture
def validator(tables):
    return CitationValidator(tables, EngineSettings())


@pytest.fixture
def resolver(formatter):
    return ShortFormResolver(formatter)


@pytest.fixture
def builder(formatter):
    return TableOfAuthoritiesBuilder(formatter)


@pytest.fixture
def engine(tables):
    return CitationEngine(EngineSettings(), tables)


def make_citation(components, start=0, raw_text=None, **extra) -> Citation:
    """Build a Citation directly from components, bypassing the parser."""
    raw_text = raw_text or f"citation at {start}"
    return Citation(
        raw_text=raw_text,
        span=(start, start + len(raw_text)),
        components=components,
        authority_key=components.authority_key() if components is not None else None,
        **extra,
    )
