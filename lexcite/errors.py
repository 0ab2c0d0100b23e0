"""
Exception types for the citation engine.

Problems with individual citations are never raised: they are recorded as
CitationIssue data on the citation. Exceptions are reserved for broken
configuration and broken reference data.
"""


class CitationEngineError(Exception):
    """Base class for all engine exceptions."""


class ReferenceDataError(CitationEngineError):
    """Reference tables are missing or malformed."""


class SettingsError(CitationEngineError, ValueError):
    """Engine settings failed validation."""
