"""JSON storage of measurement collections.

Files hold a JSON array of records with the fields ``Header``,
``Systolic``, ``Diastolic``, ``Pulse``, ``Month``, ``Day``, ``Hour``,
``Minute`` and ``Year``, latest record first.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable, Sequence
from pathlib import Path

from bm65.exceptions import MalformedStoredRecordError
from bm65.merge import merge_all
from bm65.models import Measurement

logger = logging.getLogger(__name__)

# Records are personal health data
FILE_MODE = 0o600


def measurements_to_json(items: Iterable[Measurement]) -> str:
    """Serialize measurements to an indented JSON array."""
    return json.dumps([m.to_dict() for m in items], indent=2)


def measurements_from_json(text: str, source: str = "<string>") -> list[Measurement]:
    """Deserialize measurements from a JSON array.

    Args:
        text: JSON document
        source: Name used in error messages

    Returns:
        Measurements in stored order

    Raises:
        MalformedStoredRecordError: Document is not a valid record array
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedStoredRecordError(f"{source}: invalid JSON: {e}") from e

    if data is None:
        return []
    if not isinstance(data, list):
        raise MalformedStoredRecordError(f"{source}: expected a list of records")

    items = []
    for position, record in enumerate(data):
        try:
            items.append(Measurement.from_dict(record))
        except MalformedStoredRecordError as e:
            raise MalformedStoredRecordError(f"{source}: record {position}: {e}") from e
    return items


def load_measurements(path: str | Path) -> list[Measurement]:
    """Load measurements from a JSON file.

    Raises:
        MalformedStoredRecordError: File content is not a valid record array
        OSError: File could not be read
    """
    path = Path(path)
    items = measurements_from_json(path.read_text(encoding="utf-8"), source=str(path))
    logger.info(f"Loaded {len(items)} records from {path}")
    return items


def load_and_merge(paths: Sequence[str | Path]) -> list[Measurement]:
    """Load several files and merge them into one collection.

    Args:
        paths: JSON files, merged pairwise in the given order

    Returns:
        Merged measurements sorted latest first
    """
    return merge_all(load_measurements(path) for path in paths)


def save_measurements(path: str | Path, items: Sequence[Measurement]) -> None:
    """Write measurements to a JSON file readable only by its owner.

    Raises:
        OSError: File could not be written
    """
    path = Path(path)
    if path.parent != Path():
        path.parent.mkdir(parents=True, exist_ok=True)

    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(measurements_to_json(items))
        f.write("\n")

    logger.info(f"Saved {len(items)} records to {path}")
