"""Tests for the packaged reference tables and their lookup helpers."""

import json

import pytest

from lexcite.citations.reference import (
    ReferenceTables,
    abbreviation_key,
    load_reference_tables,
)
from lexcite.errors import ReferenceDataError


# =============================================================================
# Lookups
# =============================================================================


class TestReporterLookups:

    def test_spacing_variants_resolve_to_canonical_spelling(self, tables):
        assert tables.normalize_reporter("F. 3d") == "F.3d"
        assert tables.normalize_reporter("F.Supp.2d") == "F. Supp. 2d"
        assert tables.normalize_reporter("s. ct.") == "S. Ct."

    def test_unknown_reporter_keeps_collapsed_input(self, tables):
        assert tables.normalize_reporter("Xyz.   Rptr.") == "Xyz. Rptr."
        assert tables.reporter_info("Xyz. Rptr.") is None

    def test_reporter_metadata(self, tables):
        info = tables.reporter_info("U.S.")
        assert info.court == "U.S."
        assert info.court_implied is True
        assert info.official is True

    def test_publication_years(self, tables):
        info = tables.reporter_info("F.3d")
        assert info.covers_year(2000)
        assert not info.covers_year(1980)

    def test_court_inference(self, tables):
        assert tables.infer_court("U.S.") == "U.S."
        assert tables.infer_court("F.3d") is None
        assert tables.court_implied_by("U.S.", "S. Ct.")
        assert not tables.court_implied_by("3d Cir.", "F.3d")

    def test_official_reporters_by_court(self, tables):
        assert tables.official_reporters("U.S.") == ("U.S.",)
        assert tables.official_reporters("Pa. Super.") == ("Pa. Super.",)
        assert tables.official_reporters("Cal.") == ("Cal. 4th", "Cal. 5th")
        assert tables.official_reporters("3d Cir.") == ()
        assert tables.official_reporters(None) == ()

    def test_variants_listed_longest_first(self, tables):
        lengths = [len(spelling) for spelling in tables.known_reporter_variants()]
        assert lengths == sorted(lengths, reverse=True)


class TestOtherTables:

    def test_court_variants(self, tables):
        assert tables.normalize_court("3rd Cir.") == "3d Cir."
        assert tables.court_info("3d Cir.").level == "appellate"

    def test_code_variants(self, tables):
        assert tables.normalize_code("Pa. Cons. Stat.") == "Pa.C.S."
        assert tables.code_info("U.S.C.").titled is True

    def test_rule_set_variants(self, tables):
        assert tables.normalize_rule_set("Pa. R. Civ. P.") == "Pa.R.C.P."
        assert tables.rule_set_info("Fed. R. Civ. P.") is not None
        assert tables.rule_set_info("Xyz. R.") is None

    def test_abbreviation_key_ignores_spacing_and_case(self):
        assert abbreviation_key("F. Supp. 2d") == abbreviation_key("f.supp.2D")


# =============================================================================
# Loading
# =============================================================================


class TestLoading:

    def test_tables_loaded_once(self):
        assert load_reference_tables() is load_reference_tables()

    def test_missing_table_rejected(self):
        with pytest.raises(ReferenceDataError):
            ReferenceTables.from_dict({"reporters": {}, "courts": {}, "codes": {}})

    def test_malformed_entry_rejected(self):
        data = {
            "reporters": {},
            "courts": {"X.": {"name": "X Court", "jurisdiction": "x"}},
            "codes": {},
            "rule_sets": {},
        }
        with pytest.raises(ReferenceDataError):
            ReferenceTables.from_dict(data)

    def test_unreadable_file_rejected(self, tmp_path):
        with pytest.raises(ReferenceDataError):
            ReferenceTables.from_json(tmp_path / "missing.json")

    def test_custom_file(self, tmp_path):
        path = tmp_path / "tables.json"
        path.write_text(json.dumps({
            "reporters": {"X. Rep.": {"name": "X Reports", "jurisdiction": "x"}},
            "courts": {},
            "codes": {},
            "rule_sets": {},
        }), encoding="utf-8")
        tables = ReferenceTables.from_json(path)
        assert tables.normalize_reporter("X.Rep.") == "X. Rep."
        assert tables.known_code_variants() == ()
