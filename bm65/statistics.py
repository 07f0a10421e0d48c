"""Descriptive statistics and WHO classification of measurements.

All aggregate functions take a collection of measurements and work on
the systolic, diastolic and pulse values independently.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import pandas as pd

from bm65.exceptions import EmptySetError, SetTooSmallError
from bm65.models import Measurement

logger = logging.getLogger(__name__)

VALUE_FIELDS = ("systolic", "diastolic", "pulse")

# WHO/ESC thresholds: (systolic below, diastolic below, category)
# Evaluated in order, first match wins.
CLASSIFICATION_TABLE: tuple[tuple[int, int, str], ...] = (
    (120, 80, "Optimal"),
    (130, 85, "Normal"),
    (140, 90, "High-Normal"),
    (160, 100, "Mild Hypertension"),
    (180, 110, "Moderate Hypertension"),
)
FALLBACK_CATEGORY = "Severe Hypertension"
CATEGORIES = tuple(label for _, _, label in CLASSIFICATION_TABLE) + (FALLBACK_CATEGORY,)

ISOLATED_SYSTOLIC_HYPERTENSION = "Isolated Systolic Hypertension"
ISOLATED_SYSTOLIC_MIN_SYSTOLIC = 140
ISOLATED_SYSTOLIC_MAX_DIASTOLIC = 90  # exclusive


@dataclass(frozen=True)
class BPValues:
    """One value per measured quantity."""

    systolic: float
    diastolic: float
    pulse: float

    def as_dict(self) -> dict[str, float]:
        return {field: getattr(self, field) for field in VALUE_FIELDS}


@dataclass(frozen=True)
class Classification:
    """WHO classification of a single measurement."""

    category: str
    index: int  # position of category in CATEGORIES
    isolated_systolic: bool = False

    @property
    def flag(self) -> str | None:
        """Isolated systolic hypertension label, if applicable."""
        return ISOLATED_SYSTOLIC_HYPERTENSION if self.isolated_systolic else None

    @property
    def ordinal(self) -> float:
        """Category index, half a step higher for isolated systolic hypertension."""
        return self.index + (0.5 if self.isolated_systolic else 0.0)

    def __str__(self) -> str:
        if self.flag:
            return f"{self.category} ({self.flag})"
        return self.category


@dataclass(frozen=True)
class ClassDistribution:
    """Classification counts over a measurement collection."""

    total: int
    counts: dict[str, int]
    isolated_systolic: int
    average_ordinal: float

    @property
    def percentages(self) -> dict[str, float]:
        return {category: 100.0 * count / self.total for category, count in self.counts.items()}

    @property
    def isolated_systolic_percentage(self) -> float:
        return 100.0 * self.isolated_systolic / self.total

    @property
    def average_category(self) -> str:
        """Category closest to the average ordinal."""
        index = min(round_half_up(self.average_ordinal), len(CATEGORIES) - 1)
        return CATEGORIES[index]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


def _values_frame(items: Sequence[Measurement]) -> pd.DataFrame:
    """Build a frame with one row per measurement and one column per quantity."""
    return pd.DataFrame(
        [[m.systolic, m.diastolic, m.pulse] for m in items],
        columns=list(VALUE_FIELDS),
    )


def _require_items(items: Sequence[Measurement], minimum: int, statistic: str) -> None:
    if not items:
        if minimum > 1:
            raise SetTooSmallError(f"Cannot compute {statistic} of an empty set")
        raise EmptySetError(f"Cannot compute {statistic} of an empty set")
    if len(items) < minimum:
        raise SetTooSmallError(
            f"Cannot compute {statistic} of {len(items)} measurement(s), need at least {minimum}"
        )


def average(items: Sequence[Measurement]) -> BPValues:
    """Compute the mean of each quantity, rounded half up to an integer.

    Raises:
        EmptySetError: No measurements given
    """
    _require_items(items, 1, "average")
    means = _values_frame(items).mean()
    return BPValues(*(round_half_up(float(means[field])) for field in VALUE_FIELDS))


def median(items: Sequence[Measurement]) -> BPValues:
    """Compute the median of each quantity.

    For an even number of measurements the median is the mean of the two
    middle values, truncated to an integer.

    Raises:
        EmptySetError: No measurements given
    """
    _require_items(items, 1, "median")
    medians = _values_frame(items).median()
    return BPValues(*(int(medians[field]) for field in VALUE_FIELDS))


def _deviations(items: Sequence[Measurement]) -> pd.DataFrame:
    """Differences between each value and the (rounded) average."""
    center = pd.Series(average(items).as_dict())
    return _values_frame(items) - center


def standard_deviation(items: Sequence[Measurement]) -> BPValues:
    """Compute the population standard deviation of each quantity.

    Deviations are taken from the rounded average and the sum of their
    squares is divided by the number of measurements (not N - 1).

    Raises:
        SetTooSmallError: Fewer than two measurements given
    """
    _require_items(items, 2, "standard deviation")
    variance = (_deviations(items) ** 2).sum() / len(items)
    return BPValues(*(math.sqrt(float(variance[field])) for field in VALUE_FIELDS))


def mean_absolute_deviation(items: Sequence[Measurement]) -> BPValues:
    """Compute the mean absolute deviation from the average of each quantity.

    Raises:
        SetTooSmallError: Fewer than two measurements given
    """
    _require_items(items, 2, "mean absolute deviation")
    mad = _deviations(items).abs().sum() / len(items)
    return BPValues(*(float(mad[field]) for field in VALUE_FIELDS))


def classify(measurement: Measurement) -> Classification:
    """Classify a measurement according to the WHO/ESC thresholds.

    Args:
        measurement: Measurement to classify

    Returns:
        Category, with the isolated systolic hypertension flag set
        independently of the category
    """
    isolated = (
        measurement.systolic >= ISOLATED_SYSTOLIC_MIN_SYSTOLIC
        and measurement.diastolic < ISOLATED_SYSTOLIC_MAX_DIASTOLIC
    )

    for index, (max_systolic, max_diastolic, label) in enumerate(CLASSIFICATION_TABLE):
        if measurement.systolic < max_systolic and measurement.diastolic < max_diastolic:
            return Classification(label, index, isolated)

    return Classification(FALLBACK_CATEGORY, len(CLASSIFICATION_TABLE), isolated)


def class_distribution(items: Sequence[Measurement]) -> ClassDistribution:
    """Count measurements per WHO category.

    The average classification is the mean of the category ordinals,
    where each isolated systolic hypertension adds half a step.

    Raises:
        EmptySetError: No measurements given
    """
    _require_items(items, 1, "class distribution")
    classifications = [classify(m) for m in items]

    counts = (
        pd.Series([c.category for c in classifications], dtype=object)
        .value_counts()
        .reindex(list(CATEGORIES), fill_value=0)
    )
    isolated = sum(1 for c in classifications if c.isolated_systolic)
    average_ordinal = sum(c.ordinal for c in classifications) / len(classifications)

    logger.debug(f"Class distribution over {len(items)} records, average {average_ordinal:.2f}")
    return ClassDistribution(
        total=len(items),
        counts={category: int(counts[category]) for category in CATEGORIES},
        isolated_systolic=isolated,
        average_ordinal=average_ordinal,
    )
