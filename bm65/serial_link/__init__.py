"""BM65 serial communication module.

Provides synchronous communication with Beurer BM65 blood pressure
monitors over their USB serial cable.
"""

from bm65.serial_link.client import BM65Client, fetch_measurements, read_bm65_device
from bm65.serial_link.device import BM65Device, DeviceState
from bm65.serial_link.protocol import BM65Protocol

__all__ = [
    "BM65Client",
    "BM65Device",
    "BM65Protocol",
    "DeviceState",
    "fetch_measurements",
    "read_bm65_device",
]
