"""Tests for engine settings and environment loading."""

from datetime import datetime, timezone

import pytest

from lexcite.citations.models import CitationStyle, IdScope
from lexcite.config import ENV_PREFIX, EngineSettings, load_settings
from lexcite.errors import CitationEngineError, SettingsError


@pytest.fixture
def clean_env(monkeypatch):
    """
    Remove every LEXCITE_* variable for the test.

    Each variable is set then deleted so monkeypatch also removes values a
    .env file loads during the test.
    """
    for name in EngineSettings.model_fields:
        monkeypatch.setenv(f"{ENV_PREFIX}{name.upper()}", "placeholder")
        monkeypatch.delenv(f"{ENV_PREFIX}{name.upper()}")
    return monkeypatch


# =============================================================================
# Defaults and validation
# =============================================================================


class TestEngineSettings:

    def test_defaults(self):
        settings = EngineSettings()
        assert settings.default_style == CitationStyle.BLUEBOOK
        assert settings.id_scope == IdScope.DOCUMENT
        assert (settings.min_year, settings.passim_threshold) == (1700, 5)
        assert settings.max_year == datetime.now(timezone.utc).year + 1
        assert settings.reference_data_path is None
        assert settings.require_parallel_citations is False

    def test_log_level_normalized(self):
        assert EngineSettings(log_level="debug").log_level == "DEBUG"

    def test_settings_are_frozen(self):
        settings = EngineSettings()
        with pytest.raises(Exception):
            settings.min_year = 1800


# =============================================================================
# Loading
# =============================================================================


class TestLoadSettings:

    def test_environment(self, clean_env):
        clean_env.setenv("LEXCITE_DEFAULT_STYLE", "alwd")
        clean_env.setenv("LEXCITE_ID_SCOPE", "segment")
        clean_env.setenv("LEXCITE_PASSIM_THRESHOLD", "3")
        clean_env.setenv("LEXCITE_LOG_JSON", "false")
        clean_env.setenv("LEXCITE_REQUIRE_PARALLEL_CITATIONS", "true")
        settings = load_settings()
        assert settings.default_style == CitationStyle.ALWD
        assert settings.id_scope == IdScope.SEGMENT
        assert settings.passim_threshold == 3
        assert settings.log_json is False
        assert settings.require_parallel_citations is True

    def test_blank_values_fall_back_to_defaults(self, clean_env):
        clean_env.setenv("LEXCITE_MIN_YEAR", "  ")
        assert load_settings().min_year == 1700

    def test_overrides_win(self, clean_env):
        clean_env.setenv("LEXCITE_MIN_YEAR", "1800")
        assert load_settings(min_year=1900).min_year == 1900

    def test_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("LEXCITE_MIN_YEAR=1850\nLEXCITE_DEFAULT_STYLE=chicago\n", encoding="utf-8")
        settings = load_settings(env_file=str(env_file))
        assert settings.min_year == 1850
        assert settings.default_style == CitationStyle.CHICAGO

    def test_environment_beats_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("LEXCITE_MIN_YEAR=1850\n", encoding="utf-8")
        clean_env.setenv("LEXCITE_MIN_YEAR", "1750")
        assert load_settings(env_file=str(env_file)).min_year == 1750

    @pytest.mark.parametrize("variable, value", [
        ("LEXCITE_PASSIM_THRESHOLD", "1"),
        ("LEXCITE_DEFAULT_STYLE", "mla"),
        ("LEXCITE_LOG_LEVEL", "LOUD"),
        ("LEXCITE_MIN_YEAR", "soon"),
    ])
    def test_invalid_values(self, clean_env, variable, value):
        clean_env.setenv(variable, value)
        with pytest.raises(SettingsError) as exc_info:
            load_settings()
        assert isinstance(exc_info.value, CitationEngineError)
        assert isinstance(exc_info.value, ValueError)
