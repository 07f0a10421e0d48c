"""Exceptions raised by the BM65 reader.

Every error derives from BM65Error and from the builtin exception that
best describes it, so callers can catch either.
"""


class BM65Error(Exception):
    """Base class for all BM65 reader errors."""


class ChannelIOError(BM65Error, OSError):
    """Read or write failure on the serial byte channel."""


class HandshakeFailedError(BM65Error, ConnectionError):
    """Device did not acknowledge the handshake."""


class NoMeasurementsFoundError(BM65Error, LookupError):
    """Device returned no data for the record counter."""


class EmptySetError(BM65Error, ValueError):
    """Statistic requested over an empty measurement set."""


class SetTooSmallError(BM65Error, ValueError):
    """Statistic requested over a set with fewer than two measurements."""


class MalformedStoredRecordError(BM65Error, ValueError):
    """Stored measurement collection could not be decoded."""


class InvalidTimeOrDateSpecError(BM65Error, ValueError):
    """Date or time-of-day string could not be parsed."""
