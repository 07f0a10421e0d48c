"""Shared pytest fixtures for bm65-reader tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from bm65.models import Measurement

DESCRIPTION = b"BM65 Beurer GmbH".ljust(32, b"\x00")


class FakeChannel:
    """In-memory byte channel replaying canned device responses.

    Reads return the next bytes of ``responses`` (at most ``chunk_size``
    per call) and an empty result once they run out, like a serial port
    whose timeout expired.
    """

    def __init__(
        self,
        responses: bytes = b"",
        chunk_size: int | None = None,
        read_error_after: int | None = None,
        write_error_at: int | None = None,
    ):
        self._rx = bytearray(responses)
        self.chunk_size = chunk_size
        self.read_error_after = read_error_after
        self.write_error_at = write_error_at
        self.bytes_read = 0
        self.writes: list[bytes] = []
        self.close_count = 0

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    def write(self, data: bytes) -> int:
        if self.write_error_at is not None and len(self.writes) == self.write_error_at:
            raise OSError("write failed")
        self.writes.append(bytes(data))
        return len(data)

    def read(self, size: int = 1) -> bytes:
        if self.read_error_after is not None and self.bytes_read >= self.read_error_after:
            raise OSError("device disconnected")
        size = min(size, self.chunk_size or size)
        chunk = bytes(self._rx[:size])
        del self._rx[:size]
        self.bytes_read += len(chunk)
        return chunk

    def close(self) -> None:
        self.close_count += 1


def record_bytes(
    year: int = 2016,
    month: int = 6,
    day: int = 1,
    hour: int = 8,
    minute: int = 5,
    systolic: int = 120,
    diastolic: int = 80,
    pulse: int = 70,
    header: int = 0x80,
) -> bytes:
    """Encode a record the way the device sends it."""
    return bytes(
        [header, systolic - 25, diastolic - 25, pulse, month, day, hour, minute, year - 2000]
    )


def device_responses(records: list[bytes], count: int | None = None) -> bytes:
    """Concatenate the responses of a complete fetch."""
    if count is None:
        count = len(records)
    return b"\x55" + DESCRIPTION + bytes([count]) + b"".join(records)


@pytest.fixture
def device_description() -> bytes:
    """Raw 32-byte device description."""
    return DESCRIPTION


@pytest.fixture
def fake_channel() -> Callable[..., FakeChannel]:
    """Factory for in-memory byte channels."""
    return FakeChannel


@pytest.fixture
def encode_record() -> Callable[..., bytes]:
    """Factory for raw 9-byte device records."""
    return record_bytes


@pytest.fixture
def build_responses() -> Callable[..., bytes]:
    """Factory for the full response stream of a fetch."""
    return device_responses


@pytest.fixture
def make_measurement() -> Callable[..., Measurement]:
    """Factory for measurements with sensible defaults."""

    def factory(
        year: int = 2016,
        month: int = 6,
        day: int = 1,
        hour: int = 8,
        minute: int = 0,
        systolic: int = 120,
        diastolic: int = 80,
        pulse: int = 70,
        header: int = 0x80,
    ) -> Measurement:
        return Measurement(
            header=header,
            systolic=systolic,
            diastolic=diastolic,
            pulse=pulse,
            month=month,
            day=day,
            hour=hour,
            minute=minute,
            year=year,
        )

    return factory


@pytest.fixture
def sample_measurement(make_measurement) -> Measurement:
    """Create a sample measurement for testing."""
    return make_measurement(2016, 6, 1, 8, 5, systolic=120, diastolic=80, pulse=70)


@pytest.fixture
def multiple_measurements(make_measurement) -> list[Measurement]:
    """Create measurements over three days, latest first."""
    return [
        make_measurement(2016, 6, 3, 20, 0, systolic=125, diastolic=80, pulse=68),
        make_measurement(2016, 6, 2, 12, 0, systolic=122, diastolic=82, pulse=74),
        make_measurement(2016, 6, 1, 8, 0, systolic=118, diastolic=78, pulse=70),
    ]
