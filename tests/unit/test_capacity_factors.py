"""Unit tests for the season and infrastructure capacity factors."""

from datetime import date

import pytest

from ecocapacity.calculators.infrastructure import calculate_infrastructure_factor
from ecocapacity.calculators.rounding import clamp, round_half_up
from ecocapacity.calculators.season import calculate_season_factor, in_window
from ecocapacity.config import (
    DEFAULT_POLICY_CONFIG,
    InfrastructureConfig,
    PolicyConfig,
    SeasonMode,
    SeasonWindow,
)
from ecocapacity.models.enums import SensitivityLevel
from tests.utils import NOW, make_destination, make_samples

WINTER = SeasonWindow(
    name="Winter closure",
    start_month=12,
    start_day=1,
    end_month=2,
    end_day=28,
    factor=0.5,
)


class TestRounding:
    @pytest.mark.parametrize(
        ("value", "expected"), [(162.5, 163), (0.5, 1), (649.4999, 649), (650.0, 650)]
    )
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_clamp(self):
        assert clamp(-3, 0, 10) == 0
        assert clamp(12, 0, 10) == 10
        assert clamp(5, 0, 10) == 5


class TestSeasonFactor:
    """Tests for calendar window handling."""

    @pytest.mark.parametrize(
        ("day", "inside"),
        [
            (date(2026, 12, 1), True),
            (date(2027, 1, 15), True),
            (date(2027, 2, 28), True),
            (date(2027, 3, 1), False),
            (date(2026, 11, 30), False),
        ],
    )
    def test_window_wraps_year_end(self, day, inside):
        assert in_window(day, WINTER) is inside

    def test_monsoon_applies_to_high_sensitivity(self):
        destination = make_destination(sensitivity=SensitivityLevel.HIGH)

        season = calculate_season_factor(destination, date(2026, 7, 10), DEFAULT_POLICY_CONFIG)

        assert season.factor == 0.80
        assert season.active
        assert season.window.name == "Monsoon season"

    def test_monsoon_skips_low_sensitivity(self):
        destination = make_destination(sensitivity=SensitivityLevel.LOW)

        season = calculate_season_factor(destination, date(2026, 7, 10), DEFAULT_POLICY_CONFIG)

        assert season.factor == 1.0
        assert not season.active
        assert season.window is None

    def test_smallest_applicable_factor_wins(self):
        config = PolicyConfig(
            season_windows=[
                WINTER,
                SeasonWindow(
                    name="January storms",
                    start_month=1,
                    start_day=1,
                    end_month=1,
                    end_day=31,
                    factor=0.3,
                ),
            ]
        )

        season = calculate_season_factor(make_destination(), date(2027, 1, 10), config)

        assert season.factor == 0.3
        assert season.window.name == "January storms"

    def test_outside_mode_narrows_off_season(self):
        """Test an off-season window applies everywhere except its dates."""
        open_season = SeasonWindow(
            name="Off-season staffing",
            start_month=5,
            start_day=1,
            end_month=9,
            end_day=30,
            factor=0.7,
            mode=SeasonMode.OUTSIDE,
        )
        config = PolicyConfig(destination_season_windows={"dest-1": [open_season]})
        destination = make_destination()

        assert calculate_season_factor(destination, date(2026, 11, 1), config).factor == 0.7
        assert calculate_season_factor(destination, date(2026, 6, 1), config).factor == 1.0

    def test_destination_windows_replace_defaults(self):
        config = PolicyConfig(destination_season_windows={"dest-1": [WINTER]})
        destination = make_destination(sensitivity=SensitivityLevel.HIGH)

        # Monsoon default no longer applies to dest-1
        assert calculate_season_factor(destination, date(2026, 7, 10), config).factor == 1.0
        assert calculate_season_factor(destination, date(2027, 1, 10), config).factor == 0.5


class TestInfrastructureFactor:
    """Tests for sustained-load strain."""

    config = InfrastructureConfig()

    def test_sustained_strain_reduces_capacity(self):
        # base 650, strain level 520
        samples = make_samples("dest-1", [600, 610, 580])

        assert calculate_infrastructure_factor(650, samples, NOW, self.config) == 0.90

    def test_one_quiet_sample_breaks_strain(self):
        samples = make_samples("dest-1", [600, 400, 580])

        assert calculate_infrastructure_factor(650, samples, NOW, self.config) == 1.0

    def test_sparse_history_never_strains(self):
        samples = make_samples("dest-1", [600, 610])

        assert calculate_infrastructure_factor(650, samples, NOW, self.config) == 1.0

    def test_samples_outside_window_ignored(self):
        """Test samples older than window_days do not count toward min_samples."""
        samples = make_samples("dest-1", [600, 600, 600, 600], hours_apart=24 * 5)

        # Only the two newest samples fall within the 7-day window
        assert calculate_infrastructure_factor(650, samples, NOW, self.config) == 1.0

    def test_future_samples_ignored(self):
        samples = make_samples("dest-1", [600, 600, 600], end=NOW.replace(day=16))

        assert calculate_infrastructure_factor(650, samples, NOW, self.config) == 1.0
