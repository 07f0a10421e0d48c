"""Chronological merge of measurement collections.

Collections read from the device and from stored files overlap: the
device keeps its last records in memory and every saved file holds a
snapshot of them. Merging produces one collection, latest record first,
in which every record appears once.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from bm65.models import Measurement

logger = logging.getLogger(__name__)


def is_later_or_equal(a: Measurement, b: Measurement) -> bool:
    """Check whether ``a`` was taken at the same minute as ``b`` or later."""
    return a.sort_key >= b.sort_key


def sort_descending(items: Iterable[Measurement]) -> list[Measurement]:
    """Sort measurements latest first.

    The sort is stable: measurements taken within the same minute keep
    their relative input order.
    """
    return sorted(items, key=lambda m: m.sort_key, reverse=True)


def _insert(result: list[Measurement], item: Measurement) -> bool:
    """Insert a measurement into a descending list, skipping duplicates.

    The insertion point follows every element that is later than or
    equal to ``item``. Duplicates share the same timestamp, so only the
    run of equal-timestamp elements just before that point is checked.

    Args:
        result: List sorted latest first, modified in place
        item: Measurement to insert

    Returns:
        True if the measurement was inserted, False if it was a duplicate
    """
    position = 0
    while position < len(result) and is_later_or_equal(result[position], item):
        position += 1

    index = position - 1
    while index >= 0 and result[index].sort_key == item.sort_key:
        if result[index] == item:
            return False
        index -= 1

    result.insert(position, item)
    return True


def merge_measurements(
    new_items: Sequence[Measurement],
    old_items: Sequence[Measurement],
) -> list[Measurement]:
    """Merge two collections into one duplicate-free list, latest first.

    Every record of ``new_items`` is inserted before any record of
    ``old_items``, so within a minute new records precede old ones and an
    identical record present in both inputs is kept from ``new_items``.

    Args:
        new_items: Freshly obtained measurements (e.g. from the device)
        old_items: Previously stored measurements

    Returns:
        Merged measurements sorted latest first
    """
    result: list[Measurement] = []
    duplicates = 0

    for source in (sort_descending(new_items), sort_descending(old_items)):
        for item in source:
            if not _insert(result, item):
                duplicates += 1

    logger.debug(
        f"Merged {len(new_items)} new and {len(old_items)} old records: "
        f"{len(result)} kept, {duplicates} duplicates"
    )
    return result


def merge_all(collections: Iterable[Sequence[Measurement]]) -> list[Measurement]:
    """Merge any number of collections pairwise.

    Each collection is merged as the new side against the accumulated
    result of the previous ones.
    """
    merged: list[Measurement] = []
    for items in collections:
        merged = merge_measurements(items, merged)
    return merged
