"""BM65 serial client - main interface for reading the monitor."""

from __future__ import annotations

import logging

import serial

from bm65.exceptions import ChannelIOError
from bm65.merge import merge_measurements
from bm65.models import Measurement
from bm65.serial_link.device import BM65Device
from bm65.serial_link.protocol import BM65Protocol, ByteChannel

logger = logging.getLogger(__name__)

DEFAULT_PORT = "/dev/ttyUSB0"
DEFAULT_BAUDRATE = 4800


def fetch_measurements(
    channel: ByteChannel,
    read_timeout: float | None = None,
) -> list[Measurement]:
    """Read every stored measurement over an opened channel.

    The channel is closed once the exchange ends, whether it succeeded
    or not. On failure nothing is returned: records read before the
    error are discarded.

    Args:
        channel: Opened byte channel connected to the device
        read_timeout: Seconds to wait for each response, None to block

    Returns:
        Measurements sorted latest first, without duplicates
    """
    device = BM65Device(BM65Protocol(channel, read_timeout))

    try:
        records = device.get_all_records()
    except Exception as e:
        logger.error(f"Fetch failed during {device.state.value}: {e}")
        raise
    finally:
        device.close()

    return merge_measurements(records, [])


class BM65Client:
    """High-level client for the BM65 blood pressure monitor.

    The serial port is opened for the duration of one fetch and closed
    afterwards; the client holds no open handle between fetches.
    """

    def __init__(
        self,
        port: str = DEFAULT_PORT,
        baudrate: int = DEFAULT_BAUDRATE,
        read_timeout: float | None = None,
    ):
        """Initialize BM65 client.

        Args:
            port: Serial device (e.g. "/dev/ttyUSB0" or "COM3")
            baudrate: Line speed, 4800 for the BM65 cable
            read_timeout: Seconds to wait for each response,
                None to block until the device answers
        """
        self.port = port
        self.baudrate = baudrate
        self.read_timeout = read_timeout

    def open_channel(self) -> serial.Serial:
        """Open the serial port.

        Raises:
            ChannelIOError: Port could not be opened
        """
        logger.info(f"Opening {self.port} at {self.baudrate} baud...")
        try:
            return serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.read_timeout,
            )
        except serial.SerialException as e:
            raise ChannelIOError(f"Could not open {self.port}: {e}") from e

    def read_records(self) -> list[Measurement]:
        """Read blood pressure records from the device.

        Returns:
            Measurements sorted latest first
        """
        channel = self.open_channel()
        records = fetch_measurements(channel, self.read_timeout)
        logger.info(f"Read {len(records)} records total")
        return records


def read_bm65_device(
    port: str = DEFAULT_PORT,
    baudrate: int = DEFAULT_BAUDRATE,
    read_timeout: float | None = None,
) -> list[Measurement]:
    """Convenience function to read records from a BM65 device.

    Args:
        port: Serial device
        baudrate: Line speed
        read_timeout: Seconds to wait for each response

    Returns:
        Measurements sorted latest first
    """
    client = BM65Client(port, baudrate, read_timeout)
    return client.read_records()
