"""Text output of measurements and statistics."""

from __future__ import annotations

from collections.abc import Sequence

from bm65.models import Measurement
from bm65.statistics import (
    BPValues,
    ClassDistribution,
    average,
    classify,
    mean_absolute_deviation,
    median,
    standard_deviation,
)

SEPARATOR = ";"


def format_timestamp(measurement: Measurement) -> str:
    """Format measurement time as ``YYYY-MM-DD HH:MM``."""
    m = measurement
    return f"{m.year}-{m.month:02d}-{m.day:02d} {m.hour:02d}:{m.minute:02d}"


def format_csv_row(index: int, measurement: Measurement, with_class: bool = False) -> str:
    """Format one measurement as a delimited row.

    Columns: index, header (hex), time, systolic, diastolic, pulse and
    optionally the WHO classification.
    """
    m = measurement
    columns = [
        str(index),
        f"{m.header:x}",
        format_timestamp(m),
        str(m.systolic),
        str(m.diastolic),
        str(m.pulse),
    ]
    if with_class:
        columns.append(str(classify(m)))
    return SEPARATOR.join(columns)


def format_csv(items: Sequence[Measurement], with_class: bool = False) -> list[str]:
    """Format measurements as delimited rows numbered from 1."""
    return [format_csv_row(i, m, with_class) for i, m in enumerate(items, 1)]


def format_values(label: str, values: BPValues, decimals: int = 0) -> str:
    """Format one statistic as ``label: systolic;diastolic;pulse``."""
    numbers = [values.systolic, values.diastolic, values.pulse]
    return f"{label}: " + SEPARATOR.join(f"{v:.{decimals}f}" for v in numbers)


def format_statistics(items: Sequence[Measurement], full: bool = False) -> list[str]:
    """Format the average and, with ``full``, the other statistics.

    Deviations need at least two measurements and are left out otherwise.
    """
    lines = [format_values("Average", average(items))]
    if not full:
        return lines

    lines.append(format_values("Median", median(items)))
    if len(items) > 1:
        lines.append(format_values("Standard deviation", standard_deviation(items), 1))
        lines.append(format_values("Mean absolute deviation", mean_absolute_deviation(items), 1))
    return lines


def format_class_distribution(distribution: ClassDistribution) -> list[str]:
    """Format counts and percentages per WHO category."""
    lines = [f"Classification over {distribution.total} record(s):"]
    percentages = distribution.percentages
    for category, count in distribution.counts.items():
        lines.append(f"  {category}: {count} ({percentages[category]:.1f}%)")
    lines.append(
        f"  Isolated Systolic Hypertension: {distribution.isolated_systolic} "
        f"({distribution.isolated_systolic_percentage:.1f}%)"
    )
    lines.append(
        f"Average classification: {distribution.average_category} "
        f"({distribution.average_ordinal:.2f})"
    )
    return lines
