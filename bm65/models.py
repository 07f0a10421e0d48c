"""Data models for the BM65 reader."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from bm65.exceptions import MalformedStoredRecordError

# Field order of a stored record (also the order of the device record)
MEASUREMENT_FIELDS = (
    "header",
    "systolic",
    "diastolic",
    "pulse",
    "month",
    "day",
    "hour",
    "minute",
    "year",
)


@dataclass(frozen=True)
class Measurement:
    """Blood pressure measurement stored on a BM65 device."""

    header: int  # raw status byte, passed through unmodified
    systolic: int  # mmHg
    diastolic: int  # mmHg
    pulse: int  # bpm
    month: int
    day: int
    hour: int
    minute: int
    year: int

    @property
    def sort_key(self) -> tuple[int, int, int, int, int]:
        """Chronological key, most significant field first."""
        return (self.year, self.month, self.day, self.hour, self.minute)

    @property
    def timestamp(self) -> datetime:
        """Measurement time (seconds are not recorded by the device).

        Merging, filtering and output work on the raw fields and never
        need this value.

        Raises:
            ValueError: Device fields do not form a valid date (e.g. month 13)
        """
        return datetime(self.year, self.month, self.day, self.hour, self.minute)

    @property
    def minute_of_day(self) -> int:
        return self.hour * 60 + self.minute

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary using the stored-file field names."""
        return {name.capitalize(): getattr(self, name) for name in MEASUREMENT_FIELDS}

    @classmethod
    def from_dict(cls, data: Any) -> Measurement:
        """Build a measurement from a stored record.

        Keys are matched case-insensitively, so both ``"Systolic"`` and
        ``"systolic"`` are accepted.

        Args:
            data: Mapping of field names to integer values

        Returns:
            Decoded measurement

        Raises:
            MalformedStoredRecordError: Record is not a mapping, misses a
                field or holds a non-integer value
        """
        if not isinstance(data, dict):
            raise MalformedStoredRecordError(f"Expected an object, got {type(data).__name__}")

        lowered = {str(key).lower(): value for key, value in data.items()}
        values: dict[str, int] = {}
        for name in MEASUREMENT_FIELDS:
            if name not in lowered:
                raise MalformedStoredRecordError(f"Missing field '{name}' in {data!r}")
            value = lowered[name]
            # bool is an int subclass but never a valid field value
            if isinstance(value, bool) or not isinstance(value, int):
                raise MalformedStoredRecordError(f"Field '{name}' is not an integer: {value!r}")
            values[name] = value

        return cls(**values)

    def __str__(self) -> str:
        """Human-readable representation."""
        return (
            f"{self.year}-{self.month:02d}-{self.day:02d} {self.hour:02d}:{self.minute:02d} "
            f"BP: {self.systolic}/{self.diastolic} mmHg, "
            f"Pulse: {self.pulse} bpm"
        )


@dataclass(frozen=True, order=True)
class SimpleTime:
    """Time of day used as a filter bound."""

    hour: int
    minute: int = 0

    @property
    def minutes(self) -> int:
        """Minutes since midnight."""
        return self.hour * 60 + self.minute

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"
