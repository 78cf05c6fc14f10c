"""
Tests for construction_config: loading, validation, checksum and bridges.
"""

from datetime import date

import pytest

from construction_config import get_active_config
from construction_config.bridges import build_scanner, build_template_service
from construction_config.loader import compute_checksum, parse_settings
from construction_config.validator import validate_settings
from construction_kernel.domain.dtos import TemplateCategorySpec, UnitType

VALID_SET = """\
name: custom
version: 2
schedule:
  alert_horizon_days: 3
  starting_soon_horizon_days: 10
  poll_interval_seconds: 30
templates:
  sequencing: Sequential
"""


class TestGetActiveConfig:
    def test_default_set(self):
        settings = get_active_config()

        assert settings.name == "default"
        assert settings.schedule.alert_horizon_days == 2
        assert settings.schedule.starting_soon_horizon_days == 7
        assert settings.schedule.poll_interval_seconds == 60
        assert settings.templates.sequencing == "anchored"
        assert len(settings.checksum) == 64

    def test_sequential_set(self):
        assert get_active_config("sequential").templates.sequencing == "sequential"

    def test_trace_is_logged(self, captured_logs):
        settings = get_active_config()

        trace = next(r for r in captured_logs() if r["message"] == "CONSTRUCTION_CONFIG_TRACE")
        assert trace["checksum"] == settings.checksum
        assert trace["config_set"] == "default"

    def test_missing_set(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config("nope", config_dir=tmp_path)

    def test_custom_directory(self, tmp_path):
        (tmp_path / "custom.yaml").write_text(VALID_SET)

        settings = get_active_config("custom", config_dir=tmp_path)

        assert settings.version == 2
        assert settings.schedule.alert_horizon_days == 3
        assert settings.templates.sequencing == "sequential"

    def test_invalid_set_rejected(self, tmp_path):
        (tmp_path / "broken.yaml").write_text(
            "name: broken\nversion: 1\nschedule:\n  alert_horizon_days: -1\n"
            "templates:\n  sequencing: random\n"
        )

        with pytest.raises(ValueError) as exc_info:
            get_active_config("broken", config_dir=tmp_path)
        message = str(exc_info.value)
        assert "alert_horizon_days" in message
        assert "sequencing" in message

    def test_non_integer_value_rejected(self, tmp_path):
        (tmp_path / "typo.yaml").write_text(
            "name: typo\nversion: 1\nschedule:\n  alert_horizon_days: two\n"
        )

        with pytest.raises(ValueError):
            get_active_config("typo", config_dir=tmp_path)

    def test_short_starting_soon_horizon_warns(self, tmp_path, captured_logs):
        (tmp_path / "odd.yaml").write_text(
            "name: odd\nversion: 1\nschedule:\n  alert_horizon_days: 5\n"
            "  starting_soon_horizon_days: 3\n"
        )

        get_active_config("odd", config_dir=tmp_path)

        assert any(r["message"] == "config_warning" for r in captured_logs())


class TestChecksum:
    def test_key_order_does_not_matter(self):
        assert compute_checksum({"a": 1, "b": {"c": 2}}) == compute_checksum({"b": {"c": 2}, "a": 1})

    def test_values_matter(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})

    def test_defaults_fill_missing_sections(self):
        settings = parse_settings({"name": "bare", "version": 1})

        assert settings.schedule.alert_horizon_days == 2
        assert validate_settings(settings).is_valid


class TestBridges:
    def test_scanner_uses_alert_horizon(self, session, clock, hierarchy_service, unit):
        settings = get_active_config()

        assert build_scanner(session, settings, clock).scan().horizon_days == 2
        assert build_scanner(session, settings, clock, starting_soon=True).scan().horizon_days == 7

    def test_template_service_uses_configured_sequencing(self, session, clock, unit, hierarchy_service):
        service = build_template_service(session, get_active_config("sequential"), clock)
        template = service.create_template(
            "Shell",
            UnitType.VILLA,
            [
                TemplateCategorySpec(name="Footings", order=1, duration_days=4),
                TemplateCategorySpec(name="Walls", order=2, duration_days=6),
            ],
        )

        result = service.apply_template(template.id, unit.id, date(2024, 7, 1))

        walls = hierarchy_service.get_category(result.category_ids[1])
        assert walls.start_date == date(2024, 7, 5)
