"""Tests for bm65/statistics.py - descriptive statistics and WHO classification."""

import math

import pytest

from bm65.exceptions import EmptySetError, SetTooSmallError
from bm65.statistics import (
    CATEGORIES,
    ISOLATED_SYSTOLIC_HYPERTENSION,
    BPValues,
    class_distribution,
    classify,
    mean_absolute_deviation,
    median,
    round_half_up,
    standard_deviation,
)
from bm65.statistics import average as bp_average

# ============== FIXTURES ==============


@pytest.fixture
def make_values(make_measurement):
    """Build measurements from (systolic, diastolic, pulse) tuples."""

    def factory(*values):
        return [
            make_measurement(day=i + 1, systolic=s, diastolic=d, pulse=p)
            for i, (s, d, p) in enumerate(values)
        ]

    return factory


@pytest.fixture
def pair(make_values):
    """Two measurements with an exact average."""
    return make_values((120, 80, 60), (130, 90, 70))


# ============== TEST CLASSES ==============


class TestRoundHalfUp:
    """Tests for round_half_up."""

    @pytest.mark.parametrize(
        "value,expected",
        [(125.0, 125), (120.5, 121), (121.5, 122), (120.49, 120), (0.5, 1)],
    )
    def test_rounding(self, value, expected):
        """Halves are rounded up, unlike round()."""
        assert round_half_up(value) == expected


class TestAverage:
    """Tests for average."""

    def test_exact_average(self, pair):
        """Average of two readings."""
        assert bp_average(pair) == BPValues(125, 85, 65)

    def test_rounds_half_up(self, make_values):
        """Means ending in .5 are rounded up."""
        items = make_values((120, 80, 60), (121, 81, 61))
        assert bp_average(items) == BPValues(121, 81, 61)

    def test_returns_integers(self, make_values):
        """Averages are integers."""
        result = bp_average(make_values((120, 80, 60), (121, 80, 60), (121, 80, 60)))
        assert result.systolic == 121
        assert isinstance(result.systolic, int)

    def test_empty_set(self):
        """Empty input raises EmptySetError."""
        with pytest.raises(EmptySetError):
            bp_average([])


class TestMedian:
    """Tests for median."""

    def test_odd_count(self, make_values):
        """Middle value of an odd count."""
        items = make_values((130, 85, 70), (110, 75, 60), (120, 80, 65))
        assert median(items).systolic == 120

    def test_even_count(self, make_values):
        """Mean of the two middle values of an even count."""
        items = make_values((110, 70, 60), (140, 90, 70), (120, 80, 61), (130, 85, 66))
        assert median(items) == BPValues(125, 82, 63)

    def test_even_count_truncates(self, make_values):
        """Mean of the middle values is truncated, not rounded."""
        items = make_values((120, 80, 60), (121, 81, 61))
        assert median(items) == BPValues(120, 80, 60)

    def test_single_value(self, make_values):
        """Median of one value is that value."""
        assert median(make_values((120, 80, 60))) == BPValues(120, 80, 60)

    def test_empty_set(self):
        """Empty input raises EmptySetError."""
        with pytest.raises(EmptySetError):
            median([])


class TestDeviation:
    """Tests for standard_deviation and mean_absolute_deviation."""

    def test_population_standard_deviation(self, pair):
        """Divisor is the number of measurements."""
        assert standard_deviation(pair) == BPValues(5.0, 5.0, 5.0)

    def test_standard_deviation_uses_rounded_average(self, make_values):
        """Deviations are taken from the rounded average (121, not 120.5)."""
        items = make_values((120, 80, 60), (121, 80, 60))
        result = standard_deviation(items)
        assert math.isclose(result.systolic, math.sqrt(0.5))
        assert result.diastolic == 0.0

    def test_mean_absolute_deviation(self, make_values):
        """Mean of absolute differences from the average."""
        items = make_values((110, 80, 60), (120, 80, 70), (130, 80, 80))
        result = mean_absolute_deviation(items)
        assert math.isclose(result.systolic, 20 / 3)
        assert result.diastolic == 0.0
        assert math.isclose(result.pulse, 20 / 3)

    def test_mean_absolute_deviation_pair(self, pair):
        """Deviation of a symmetric pair."""
        assert mean_absolute_deviation(pair) == BPValues(5.0, 5.0, 5.0)

    @pytest.mark.parametrize("count", [0, 1])
    def test_standard_deviation_too_small(self, make_values, count):
        """Fewer than two measurements raise SetTooSmallError."""
        items = make_values(*[(120, 80, 60)] * count)
        with pytest.raises(SetTooSmallError):
            standard_deviation(items)

    @pytest.mark.parametrize("count", [0, 1])
    def test_mean_absolute_deviation_too_small(self, make_values, count):
        """Fewer than two measurements raise SetTooSmallError."""
        items = make_values(*[(120, 80, 60)] * count)
        with pytest.raises(SetTooSmallError):
            mean_absolute_deviation(items)


class TestClassify:
    """Tests for WHO classification."""

    @pytest.mark.parametrize(
        "systolic,diastolic,expected_category",
        [
            # Optimal: < 120 and < 80
            (110, 70, "Optimal"),
            (119, 79, "Optimal"),
            # Normal: < 130 and < 85
            (120, 79, "Normal"),
            (129, 84, "Normal"),
            # High-Normal: < 140 and < 90
            (130, 85, "High-Normal"),
            (139, 89, "High-Normal"),
            # Mild: < 160 and < 100
            (140, 90, "Mild Hypertension"),
            (159, 99, "Mild Hypertension"),
            # Moderate: < 180 and < 110
            (160, 100, "Moderate Hypertension"),
            (179, 109, "Moderate Hypertension"),
            # Severe: everything else
            (180, 110, "Severe Hypertension"),
            (110, 115, "Severe Hypertension"),
        ],
    )
    def test_category(self, make_measurement, systolic, diastolic, expected_category):
        """Thresholds are evaluated in order, first match wins."""
        result = classify(make_measurement(systolic=systolic, diastolic=diastolic))
        assert result.category == expected_category
        assert CATEGORIES[result.index] == expected_category

    def test_isolated_systolic_with_mild(self, make_measurement):
        """145/85 is mild hypertension with isolated systolic hypertension."""
        result = classify(make_measurement(systolic=145, diastolic=85))

        assert result.category == "Mild Hypertension"
        assert result.isolated_systolic is True
        assert result.flag == ISOLATED_SYSTOLIC_HYPERTENSION
        assert str(result) == "Mild Hypertension (Isolated Systolic Hypertension)"

    def test_isolated_systolic_with_severe(self, make_measurement):
        """Flag is independent of the category."""
        result = classify(make_measurement(systolic=185, diastolic=70))
        assert result.category == "Severe Hypertension"
        assert result.isolated_systolic is True

    @pytest.mark.parametrize("systolic,diastolic", [(139, 70), (150, 90), (120, 80)])
    def test_no_isolated_systolic(self, make_measurement, systolic, diastolic):
        """Flag needs systolic >= 140 and diastolic < 90."""
        result = classify(make_measurement(systolic=systolic, diastolic=diastolic))
        assert result.isolated_systolic is False
        assert result.flag is None
        assert str(result) == result.category

    def test_ordinal(self, make_measurement):
        """Isolated systolic hypertension adds half a step."""
        assert classify(make_measurement(systolic=110, diastolic=70)).ordinal == 0.0
        assert classify(make_measurement(systolic=145, diastolic=85)).ordinal == 3.5


class TestClassDistribution:
    """Tests for class_distribution."""

    def test_counts_and_average(self, make_values):
        """Counts, percentages and average classification."""
        items = make_values((110, 70, 60), (125, 82, 65), (145, 85, 70))

        result = class_distribution(items)

        assert result.total == 3
        assert result.counts["Optimal"] == 1
        assert result.counts["Normal"] == 1
        assert result.counts["Mild Hypertension"] == 1
        assert result.counts["Severe Hypertension"] == 0
        assert list(result.counts) == list(CATEGORIES)
        assert math.isclose(result.percentages["Optimal"], 100 / 3)
        assert result.isolated_systolic == 1
        # (0 + 1 + 3.5) / 3 = 1.5, rounded half up to High-Normal
        assert result.average_ordinal == 1.5
        assert result.average_category == "High-Normal"

    def test_average_category_is_clamped(self, make_values):
        """Severe readings with the flag do not go past the last category."""
        result = class_distribution(make_values((200, 80, 70), (210, 85, 75)))
        assert result.average_ordinal == 5.5
        assert result.average_category == "Severe Hypertension"

    def test_percentages_sum_to_hundred(self, make_values):
        """Category percentages add up to 100."""
        items = make_values((110, 70, 60), (110, 70, 60), (165, 95, 80), (132, 86, 70))
        result = class_distribution(items)
        assert math.isclose(sum(result.percentages.values()), 100.0)

    def test_empty_set(self):
        """Empty input raises EmptySetError."""
        with pytest.raises(EmptySetError):
            class_distribution([])
