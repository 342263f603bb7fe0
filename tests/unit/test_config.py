"""Unit tests for configuration."""

import pytest
from pydantic import ValidationError

from ecocapacity.config import (
    DEFAULT_POLICY_CONFIG,
    AlertConfig,
    NotifierConfig,
    PolicyConfig,
    SustainabilityConfig,
    TierPolicy,
    WeatherThresholdConfig,
)
from ecocapacity.models.enums import AlertLevel, SensitivityLevel


def test_default_tier_multipliers():
    """Test default multipliers per sensitivity tier."""
    multipliers = {
        level: DEFAULT_POLICY_CONFIG.tiers[level].capacity_multiplier
        for level in SensitivityLevel.ordered()
    }

    assert multipliers == {
        SensitivityLevel.LOW: 1.0,
        SensitivityLevel.MEDIUM: 0.85,
        SensitivityLevel.HIGH: 0.65,
        SensitivityLevel.CRITICAL: 0.40,
    }


def test_default_weather_factors():
    """Test weather factors only degrade from medium upwards."""
    factors = DEFAULT_POLICY_CONFIG.weather_factors

    assert AlertLevel.LOW not in factors
    assert factors[AlertLevel.MEDIUM] == 0.85
    assert factors[AlertLevel.HIGH] == 0.65
    assert factors[AlertLevel.CRITICAL] == 0.40


def test_tier_multipliers_must_strictly_decrease():
    """Test a tier table where a stricter tier gets more capacity is rejected."""
    tiers = dict(DEFAULT_POLICY_CONFIG.tiers)
    tiers[SensitivityLevel.HIGH] = TierPolicy(capacity_multiplier=0.9)

    with pytest.raises(ValidationError, match="strictly decrease"):
        PolicyConfig(tiers=tiers)


def test_tier_table_must_cover_every_level():
    """Test a tier table missing a level is rejected."""
    tiers = dict(DEFAULT_POLICY_CONFIG.tiers)
    del tiers[SensitivityLevel.CRITICAL]

    with pytest.raises(ValidationError, match="Missing tier policies: critical"):
        PolicyConfig(tiers=tiers)


def test_weather_factor_out_of_range_rejected():
    with pytest.raises(ValidationError, match="must be in"):
        PolicyConfig(weather_factors={AlertLevel.HIGH: 1.5})


def test_threshold_tables_reject_none_level():
    with pytest.raises(ValidationError, match="'none' level"):
        WeatherThresholdConfig(wind_speed_ms={AlertLevel.NONE: 1.0})


def test_alert_thresholds_must_be_ordered():
    with pytest.raises(ValidationError):
        AlertConfig(high_utilization=0.9, critical_utilization=0.85)


def test_sustainability_weights_must_sum_to_one():
    with pytest.raises(ValidationError, match="sum to 1.0"):
        SustainabilityConfig(carbon_weight=0.5)


def test_heartbeat_timeout_must_exceed_interval():
    with pytest.raises(ValidationError, match="heartbeat_timeout_seconds"):
        NotifierConfig(heartbeat_interval_seconds=30, heartbeat_timeout_seconds=20)


def test_policy_overrides_from_environment(monkeypatch):
    """Test JSON overrides through POLICY_ environment variables."""
    monkeypatch.setenv("POLICY_WEATHER_FACTORS", '{"medium": 0.9, "high": 0.7, "critical": 0.5}')

    config = PolicyConfig()

    assert config.weather_factors[AlertLevel.HIGH] == 0.7
