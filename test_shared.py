"""
Tests for shared constants, status classification, display formatting,
and environment-driven settings.

Run: python -m pytest test_shared.py -v
"""

import pytest

from conftest import make_unit
from config import _Settings
from shared import (
    DowntimeCategory,
    DowntimeType,
    format_delta,
    format_duration,
    format_oee_percentage,
    oee_status,
    oee_status_label,
    pareto_band,
    unit_name,
)


# =====================================================================
# Closed vocabularies
# =====================================================================

class TestVocabularies:
    def test_six_categories(self):
        assert {c.value for c in DowntimeCategory} == {
            "Machine Failure", "Material Shortage", "Planned Maintenance",
            "Changeover", "Quality Issue", "Labor Shortage",
        }

    def test_types(self):
        assert DowntimeType("planned") is DowntimeType.PLANNED
        assert DowntimeType("unplanned") is DowntimeType.UNPLANNED


# =====================================================================
# oee_status: threshold bands
# =====================================================================

class TestOEEStatus:
    def test_bands(self):
        assert oee_status(0.90, 0.85, 0.65) == "excellent"
        assert oee_status(0.85, 0.85, 0.65) == "excellent"
        assert oee_status(0.70, 0.85, 0.65) == "acceptable"
        assert oee_status(0.65, 0.85, 0.65) == "acceptable"
        assert oee_status(0.40, 0.85, 0.65) == "poor"

    def test_labels(self):
        assert oee_status_label(0.9, 0.85, 0.65) == "World-Class"
        assert oee_status_label(0.7, 0.85, 0.65) == "Acceptable"
        assert oee_status_label(0.1, 0.85, 0.65) == "Needs Attention"

    def test_pareto_bands(self):
        assert [pareto_band(r) for r in range(1, 6)] == [
            "critical", "critical", "secondary", "secondary", "minor",
        ]


# =====================================================================
# Formatting helpers
# =====================================================================

class TestFormatting:
    def test_oee_percentage(self):
        assert format_oee_percentage(0.7438) == "74.4%"
        assert format_oee_percentage(0.0) == "0.0%"
        assert format_oee_percentage(1.0) == "100.0%"

    def test_delta_positive(self):
        d = format_delta(0.0312)
        assert d.value == "+0.03"
        assert d.sign == "+"
        assert d.is_improvement

    def test_delta_negative_percentage(self):
        d = format_delta(-4.26, is_percentage=True)
        assert d.value == "-4.3%"
        assert d.sign == "-"
        assert not d.is_improvement

    def test_delta_zero(self):
        d = format_delta(0)
        assert d.value == "0.00"
        assert d.sign == ""
        assert d.is_improvement

    def test_duration(self):
        assert format_duration(45) == "45m"
        assert format_duration(150) == "2h 30m"
        assert format_duration(60) == "1h 0m"
        assert format_duration(0) == "0m"

    def test_unit_name_lookup(self):
        units = [make_unit(id="u1", name="Morning Shift")]
        assert unit_name(units, "u1") == "Morning Shift"
        assert unit_name(units, "u9") == "u9"


# =====================================================================
# Settings
# =====================================================================

class TestSettings:
    def test_defaults(self, monkeypatch):
        for var in ["OEE_WORLD_CLASS_TARGET", "OEE_MINIMUM_ACCEPTABLE",
                    "OEE_EXPORT_TOP_REASONS", "OEE_LOG_LEVEL"]:
            monkeypatch.delenv(var, raising=False)
        s = _Settings()
        assert s.WORLD_CLASS_TARGET == 0.85
        assert s.MINIMUM_ACCEPTABLE == 0.65
        assert s.EXPORT_TOP_REASONS == 10
        assert s.LOG_LEVEL == "INFO"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("OEE_WORLD_CLASS_TARGET", "0.9")
        monkeypatch.setenv("OEE_EXPORT_TOP_REASONS", "5")
        monkeypatch.setenv("OEE_LOG_LEVEL", "debug")
        s = _Settings()
        assert s.WORLD_CLASS_TARGET == 0.9
        assert s.EXPORT_TOP_REASONS == 5
        assert s.LOG_LEVEL == "DEBUG"

    def test_inverted_thresholds_rejected(self, monkeypatch):
        monkeypatch.setenv("OEE_WORLD_CLASS_TARGET", "0.5")
        monkeypatch.setenv("OEE_MINIMUM_ACCEPTABLE", "0.6")
        with pytest.raises(ValueError, match="OEE_MINIMUM_ACCEPTABLE"):
            _Settings()
