"""Beurer BM65 blood pressure monitor reader.

Reads stored measurements over the monitor's serial cable, merges them
with saved JSON files and computes statistics and WHO classifications.
"""

from bm65.exceptions import BM65Error
from bm65.models import Measurement, SimpleTime

__version__ = "0.1.0"

__all__ = [
    "BM65Error",
    "Measurement",
    "SimpleTime",
    "__version__",
]
