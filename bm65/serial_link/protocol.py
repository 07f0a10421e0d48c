"""BM65 serial protocol handler.

Handles the low-level exchange with the monitor: every request is a
short write followed by a blocking read of a fixed number of bytes.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol

from bm65.exceptions import ChannelIOError

logger = logging.getLogger(__name__)


class ByteChannel(Protocol):
    """Duplex byte stream the protocol runs over (e.g. ``serial.Serial``)."""

    def write(self, data: bytes) -> int | None: ...

    def read(self, size: int = 1) -> bytes: ...

    def close(self) -> None: ...


def bytes_to_hex(array: bytes | bytearray) -> str:
    """Convert byte array to hex string."""
    return bytes(array).hex()


class BM65Protocol:
    """Handles TX/RX over a byte channel connected to a BM65 monitor.

    Reads are exact: partial reads are accumulated until the requested
    number of bytes has arrived. With a read timeout set, a read gives up
    once the deadline passes and returns the bytes collected so far.
    """

    def __init__(self, channel: ByteChannel, read_timeout: float | None = None):
        """Initialize protocol handler.

        Args:
            channel: Opened byte channel
            read_timeout: Seconds to wait for a complete response,
                None to block until it arrives
        """
        self.channel = channel
        self.read_timeout = read_timeout
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def write(self, request: bytes) -> None:
        """Send a request to the device.

        Raises:
            ChannelIOError: Write failed or was incomplete
        """
        logger.debug(f"TX > {bytes_to_hex(request)}")
        try:
            written = self.channel.write(request)
        except OSError as e:
            raise ChannelIOError(f"Write of {bytes_to_hex(request)} failed: {e}") from e

        if written is not None and written != len(request):
            raise ChannelIOError(f"Short write: {written}/{len(request)} bytes sent")

    def read_exact(self, size: int) -> bytes:
        """Read ``size`` bytes, looping over partial reads.

        Args:
            size: Number of bytes expected

        Returns:
            Received bytes; shorter than ``size`` if the read timeout
            expired first, or if the channel returned nothing while no
            timeout is set (end of stream)

        Raises:
            ChannelIOError: Channel reported an error
        """
        data = bytearray()
        deadline = None if self.read_timeout is None else time.monotonic() + self.read_timeout

        while len(data) < size:
            try:
                chunk = self.channel.read(size - len(data))
            except OSError as e:
                raise ChannelIOError(f"Read failed after {len(data)}/{size} bytes: {e}") from e

            if chunk:
                data += chunk
            elif deadline is None:
                # A blocking read only comes back empty at end of stream
                logger.debug(f"Channel closed after {len(data)}/{size} bytes")
                break
            elif time.monotonic() >= deadline:
                logger.debug(f"Read timed out after {len(data)}/{size} bytes")
                break

        logger.debug(f"RX < {bytes_to_hex(data)}")
        return bytes(data)

    def exchange(self, request: bytes, response_size: int) -> bytes:
        """Send a request and read its fixed-size response."""
        self.write(request)
        return self.read_exact(response_size)

    def close(self) -> None:
        """Close the channel. Further calls do nothing."""
        if self._closed:
            return
        self._closed = True
        try:
            self.channel.close()
        except OSError as e:
            logger.warning(f"Error closing channel: {e}")
