"""
Engine configuration.

Settings come from keyword overrides, then LEXCITE_* environment variables
(optionally loaded from a .env file), then defaults.

Environment variables:
    LEXCITE_DEFAULT_STYLE        bluebook | alwd | chicago
    LEXCITE_MIN_YEAR             earliest plausible citation year
    LEXCITE_MAX_YEAR_OFFSET      latest plausible year = current year + offset
    LEXCITE_ID_SCOPE             document | segment
    LEXCITE_PASSIM_THRESHOLD     pages before a TOA entry reads "passim"
    LEXCITE_REQUIRE_PARALLEL_CITATIONS  true | false
    LEXCITE_REFERENCE_DATA_PATH  alternative reference_tables.json
    LEXCITE_LOG_LEVEL            DEBUG | INFO | WARNING | ERROR
    LEXCITE_LOG_JSON             true | false
"""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from lexcite.citations.models import CitationStyle, IdScope
from lexcite.errors import SettingsError

ENV_PREFIX = "LEXCITE_"


class EngineSettings(BaseModel):
    """Immutable engine settings, passed explicitly to the components that need them."""

    model_config = ConfigDict(frozen=True)

    default_style: CitationStyle = Field(
        default=CitationStyle.BLUEBOOK,
        description="Style used when a call does not name one"
    )
    min_year: int = Field(
        default=1700,
        ge=1000,
        le=9999,
        description="Earliest plausible citation year"
    )
    max_year_offset: int = Field(
        default=1,
        ge=0,
        description="Latest plausible year is the current year plus this offset"
    )
    id_scope: IdScope = Field(
        default=IdScope.DOCUMENT,
        description="Whether id. may cross segment (footnote/paragraph) boundaries"
    )
    passim_threshold: int = Field(
        default=5,
        ge=2,
        description="Number of distinct pages at which a TOA entry reads 'passim'"
    )
    require_parallel_citations: bool = Field(
        default=False,
        description="Warn when a case is cited only to an unofficial reporter"
    )
    reference_data_path: Optional[Path] = Field(
        default=None,
        description="Alternative reference tables; packaged tables when unset"
    )
    log_level: str = Field(default="INFO", description="Minimum level for audit logging")
    log_json: bool = Field(default=True, description="Render audit logs as JSON lines")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level '{value}'")
        return level

    @property
    def max_year(self) -> int:
        return datetime.now(timezone.utc).year + self.max_year_offset


def load_settings(env_file: Optional[str] = None, **overrides) -> EngineSettings:
    """
    Build settings from overrides, LEXCITE_* environment variables and defaults.

    Args:
        env_file: Optional .env file to load before reading the environment.
            Variables already set in the environment are not overridden.
        **overrides: Explicit values that win over the environment.

    Returns:
        Validated EngineSettings.

    Raises:
        SettingsError: If any value fails validation.
    """
    load_dotenv(env_file)

    values = {}
    for name in EngineSettings.model_fields:
        raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None and raw.strip() != "":
            values[name] = raw.strip()
    values.update(overrides)

    try:
        return EngineSettings(**values)
    except ValidationError as exc:
        raise SettingsError(f"Invalid lexcite settings: {exc}") from exc
