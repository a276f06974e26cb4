from types import SimpleNamespace

import pytest

from clinicops.domain.hold_settings import (
    ClinicHoldSettings,
    EngineFallbacks,
    ServiceTypeOverride,
    first_positive,
    resolve_hold_settings,
)


class TestFirstPositive:
    def test_skips_none_and_non_positive(self):
        assert first_positive(None, 0, -3, 15, 20) == 15

    def test_returns_none_when_nothing_set(self):
        assert first_positive(None, 0) is None


class TestClinicHoldSettingsFromMapping:
    def test_none_block_stays_none(self):
        assert ClinicHoldSettings.from_mapping(None) is None

    def test_reads_camel_case_keys(self):
        parsed = ClinicHoldSettings.from_mapping(
            {
                "ttlMinutes": 45,
                "minAdvanceMinutes": 120,
                "maxAdvanceMinutes": 2880,
                "allowOverbooking": True,
                "overbookingThreshold": 1.5,
                "resourceMatchingStrict": False,
            }
        )
        assert parsed == ClinicHoldSettings(
            ttl_minutes=45,
            min_advance_minutes=120,
            max_advance_minutes=2880,
            allow_overbooking=True,
            overbooking_threshold=1.5,
            resource_matching_strict=False,
        )

    def test_reads_snake_case_keys_and_ignores_garbage(self):
        parsed = ClinicHoldSettings.from_mapping({"ttl_minutes": "20", "min_advance_minutes": "soon"})
        assert parsed is not None
        assert parsed.ttl_minutes == 20
        assert parsed.min_advance_minutes is None
        assert parsed.resource_matching_strict is True

    def test_malformed_threshold_is_ignored(self, caplog):
        parsed = ClinicHoldSettings.from_mapping({"overbookingThreshold": "80%", "ttlMinutes": 30})
        assert parsed is not None
        assert parsed.overbooking_threshold is None
        assert parsed.ttl_minutes == 30
        assert "Ignoring non-numeric hold setting value" in caplog.text

    def test_numeric_string_threshold_is_parsed(self):
        parsed = ClinicHoldSettings.from_mapping({"overbooking_threshold": "0.8"})
        assert parsed is not None
        assert parsed.overbooking_threshold == pytest.approx(0.8)

    @pytest.mark.parametrize(
        "raw, expected",
        [("false", False), ("False", False), ("0", False), ("true", True), ("yes", True), (0, False)],
    )
    def test_string_booleans_are_parsed(self, raw, expected):
        parsed = ClinicHoldSettings.from_mapping(
            {"allowOverbooking": raw, "resourceMatchingStrict": raw}
        )
        assert parsed is not None
        assert parsed.allow_overbooking is expected
        assert parsed.resource_matching_strict is expected

    def test_unrecognised_boolean_keeps_default(self):
        parsed = ClinicHoldSettings.from_mapping(
            {"allowOverbooking": "maybe", "resourceMatchingStrict": "maybe"}
        )
        assert parsed is not None
        assert parsed.allow_overbooking is False
        assert parsed.resource_matching_strict is True


class TestResolveHoldSettings:
    def test_clinic_without_settings_uses_fallbacks(self):
        effective = resolve_hold_settings(None)
        assert effective.ttl_minutes == 30
        assert effective.min_advance_minutes == 60
        assert effective.max_advance_minutes is None
        assert effective.max_advance_days == 90
        assert effective.buffer_minutes == 15

    def test_empty_block_means_no_minimum_notice(self):
        effective = resolve_hold_settings(ClinicHoldSettings())
        assert effective.min_advance_minutes == 0
        assert effective.ttl_minutes == 30

    def test_service_override_wins_over_clinic(self):
        effective = resolve_hold_settings(
            ClinicHoldSettings(min_advance_minutes=30, max_advance_minutes=10080),
            ServiceTypeOverride(min_advance_minutes=90, max_advance_minutes=1440),
        )
        assert effective.min_advance_minutes == 90
        assert effective.max_advance_minutes == 1440
        assert effective.max_advance_days == 1

    def test_zero_service_minimum_overrides_clinic(self):
        effective = resolve_hold_settings(
            ClinicHoldSettings(min_advance_minutes=120), ServiceTypeOverride(min_advance_minutes=0)
        )
        assert effective.min_advance_minutes == 0

    def test_zero_max_collapses_to_day_fallback(self, caplog):
        effective = resolve_hold_settings(ClinicHoldSettings(max_advance_minutes=0))
        assert effective.max_advance_minutes is None
        assert effective.max_advance_days == 90
        assert "treated as unlimited" in caplog.text

    def test_zero_service_max_falls_through_to_clinic(self):
        effective = resolve_hold_settings(
            ClinicHoldSettings(max_advance_minutes=4320), ServiceTypeOverride(max_advance_minutes=0)
        )
        assert effective.max_advance_minutes == 4320
        assert effective.max_advance_days == 3

    @pytest.mark.parametrize("minutes,days", [(1, 1), (1440, 1), (1441, 2), (129600, 90)])
    def test_max_days_rounds_up(self, minutes, days):
        effective = resolve_hold_settings(ClinicHoldSettings(max_advance_minutes=minutes))
        assert effective.max_advance_days == days

    @pytest.mark.parametrize("ttl", [0, -10, None])
    def test_unset_ttl_uses_fallback(self, ttl):
        effective = resolve_hold_settings(
            ClinicHoldSettings(ttl_minutes=ttl), fallbacks=EngineFallbacks(ttl_minutes=12)
        )
        assert effective.ttl_minutes == 12

    def test_negative_minimum_floored_at_zero(self):
        effective = resolve_hold_settings(ClinicHoldSettings(min_advance_minutes=-30))
        assert effective.min_advance_minutes == 0

    def test_overbooking_fields_carried_through(self):
        effective = resolve_hold_settings(
            ClinicHoldSettings(allow_overbooking=True, overbooking_threshold=2.0)
        )
        assert effective.allow_overbooking is True
        assert effective.overbooking_threshold == 2.0


def test_engine_fallbacks_from_settings():
    settings = SimpleNamespace(
        hold_fallback_ttl_minutes=10,
        hold_fallback_min_advance_minutes=20,
        hold_fallback_max_advance_days=30,
        hold_fallback_buffer_minutes=5,
    )
    assert EngineFallbacks.from_settings(settings) == EngineFallbacks(10, 20, 30, 5)


def test_service_override_from_model():
    model = SimpleNamespace(
        min_advance_minutes=15, max_advance_minutes=None, duration_minutes=45, is_active=False
    )
    override = ServiceTypeOverride.from_model(model)
    assert override.min_advance_minutes == 15
    assert override.is_active is False
