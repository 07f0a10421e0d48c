"""Beurer BM65 device driver.

Protocol details from atbrask's write-up (http://www.atbrask.dk/?p=98).
The BM58 and other monitors sold with the same USB cable speak the
same protocol.
"""

from __future__ import annotations

import logging
from enum import Enum

from bm65.exceptions import ChannelIOError, HandshakeFailedError, NoMeasurementsFoundError
from bm65.models import Measurement
from bm65.serial_link.protocol import BM65Protocol, bytes_to_hex

logger = logging.getLogger(__name__)


class DeviceState(Enum):
    """Phases of a fetch from the device."""

    IDLE = "idle"
    HANDSHAKING = "handshaking"
    DESCRIBING_DEVICE = "describing_device"
    COUNTING = "counting"
    FETCHING_RECORDS = "fetching_records"
    CLOSED = "closed"


class BM65Device:
    """Driver for the Beurer BM65 blood pressure monitor.

    A fetch runs four phases in a fixed order: handshake, device
    description, record counter and one request per stored record.
    Nothing is retried; any failure ends the exchange.
    """

    # Requests (single-byte opcodes)
    handshake_request = 0xAA
    handshake_ack = 0x55
    description_request = 0xA4
    count_request = 0xA2
    record_request = 0xA3

    # Response sizes
    description_size = 32
    count_size = 1
    record_size = 9

    # Value offsets applied when decoding a record
    pressure_offset = 25
    year_offset = 2000

    def __init__(self, protocol: BM65Protocol):
        """Initialize device driver.

        Args:
            protocol: Protocol handler over an opened channel
        """
        self.protocol = protocol
        self.state = DeviceState.IDLE

    def parse_record(self, record_bytes: bytes) -> Measurement:
        """Parse raw record bytes into a Measurement.

        Record format (9 bytes):
        - Byte 0: header (status byte, kept as is)
        - Byte 1: systolic (add 25 to get actual value)
        - Byte 2: diastolic (add 25 to get actual value)
        - Byte 3: pulse (bpm)
        - Byte 4: month
        - Byte 5: day
        - Byte 6: hour
        - Byte 7: minute
        - Byte 8: year (offset from 2000)

        Args:
            record_bytes: 9 bytes of raw record data

        Returns:
            Parsed Measurement
        """
        if len(record_bytes) != self.record_size:
            raise ValueError(f"Record must be {self.record_size} bytes, got {len(record_bytes)}")

        return Measurement(
            header=record_bytes[0],
            systolic=record_bytes[1] + self.pressure_offset,
            diastolic=record_bytes[2] + self.pressure_offset,
            pulse=record_bytes[3],
            month=record_bytes[4],
            day=record_bytes[5],
            hour=record_bytes[6],
            minute=record_bytes[7],
            year=record_bytes[8] + self.year_offset,
        )

    def handshake(self) -> None:
        """Check that the device is present and ready.

        Raises:
            HandshakeFailedError: Device did not acknowledge, or the
                exchange failed
        """
        self.state = DeviceState.HANDSHAKING
        logger.info("Sending handshake...")

        try:
            response = self.protocol.exchange(bytes([self.handshake_request]), 1)
        except ChannelIOError as e:
            raise HandshakeFailedError(f"Handshake failed: {e}") from e

        if response != bytes([self.handshake_ack]):
            logger.debug(f"({len(response)} bytes) {response!r}")
            raise HandshakeFailedError(
                f"Handshake failed, device answered {bytes_to_hex(response)!r}"
            )

        logger.info("Device acknowledged handshake")

    def read_description(self) -> bytes:
        """Read the 32-byte device description.

        Returns:
            Raw description bytes (not interpreted)
        """
        self.state = DeviceState.DESCRIBING_DEVICE
        logger.info("Requesting device description...")

        description = self.protocol.exchange(
            bytes([self.description_request]), self.description_size
        )
        if len(description) < self.description_size:
            raise ChannelIOError(
                "Incomplete device description "
                f"({len(description)}/{self.description_size} bytes)"
            )

        logger.info(f"Device description: {description!r}")
        return description

    def read_record_count(self) -> int:
        """Read the number of records stored on the device.

        Raises:
            NoMeasurementsFoundError: Device sent no counter
        """
        self.state = DeviceState.COUNTING
        logger.info("Requesting record counter...")

        response = self.protocol.exchange(bytes([self.count_request]), self.count_size)
        if not response:
            raise NoMeasurementsFoundError("Device returned no record counter")

        count = response[0]
        logger.info(f"Device reports {count} stored record(s)")
        return count

    def read_record(self, index: int) -> Measurement:
        """Read one stored record.

        Args:
            index: 1-based record index as assigned by the device

        Returns:
            Decoded measurement
        """
        response = self.protocol.exchange(bytes([self.record_request, index]), self.record_size)
        if len(response) < self.record_size:
            raise ChannelIOError(
                f"Incomplete record {index} ({len(response)}/{self.record_size} bytes)"
            )

        measurement = self.parse_record(response)
        logger.debug(f"Record {index}: {measurement}")
        return measurement

    def get_all_records(self) -> list[Measurement]:
        """Run all phases and read every stored record.

        Records are returned in device index order, which is not
        necessarily chronological.

        Returns:
            Measurements read from the device
        """
        self.handshake()
        self.read_description()
        count = self.read_record_count()

        self.state = DeviceState.FETCHING_RECORDS
        records = [self.read_record(index) for index in range(1, count + 1)]

        logger.info(f"Read {len(records)} records from device")
        return records

    def close(self) -> None:
        """Close the underlying channel."""
        self.protocol.close()
        self.state = DeviceState.CLOSED
