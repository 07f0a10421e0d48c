#!/usr/bin/env python3
"""Main entry point for the BM65 reader.

This module provides the command line tool that:
1. Reads blood pressure records from the BM65 device and/or JSON files
2. Merges them chronologically without duplicates
3. Filters them by date, time of day and count
4. Prints them with statistics and WHO classification, or saves them

Usage:
    # Read the device and print all records
    bm65

    # Latest 3 records with their average
    bm65 -l 3 --average

    # Records since a date, as JSON
    bm65 --since "2016-06-01" --format json

    # Merge device records into a saved file
    bm65 -i data.json --merge -o data-new.json

    # Evening records of saved files with statistics and classification
    bm65 -i 2016.json -i 2017.json --from-time 18:00 --to-time 23:59 --stats --class-stats
"""

from __future__ import annotations

import argparse
import copy
import logging
import sys
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from bm65.filters import (
    apply_limit,
    filter_by_date,
    filter_by_time_of_day,
    parse_date,
    parse_time,
)
from bm65.merge import merge_measurements
from bm65.models import Measurement, SimpleTime
from bm65.report import format_class_distribution, format_csv, format_statistics
from bm65.serial_link.client import DEFAULT_BAUDRATE, DEFAULT_PORT, BM65Client
from bm65.statistics import class_distribution
from bm65.storage import load_and_merge, measurements_to_json, save_measurements

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("csv", "json")

# Default configuration
DEFAULT_CONFIG: dict[str, Any] = {
    "device": {
        "port": DEFAULT_PORT,
        "baudrate": DEFAULT_BAUDRATE,
        "read_timeout": None,
    },
    "output": {
        "format": "csv",
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    },
}


class BM65Reader:
    """Collects, merges and filters measurements from device and files."""

    def __init__(self, config: dict):
        """Initialize the reader with configuration.

        Args:
            config: Configuration dictionary
        """
        self.config = config

    def read_from_device(self) -> list[Measurement]:
        """Read blood pressure records from the BM65 device.

        Returns:
            Measurements sorted latest first
        """
        device_config = self.config.get("device") or {}
        client = BM65Client(
            port=device_config.get("port", DEFAULT_PORT),
            baudrate=device_config.get("baudrate", DEFAULT_BAUDRATE),
            read_timeout=device_config.get("read_timeout"),
        )

        records = client.read_records()
        logger.info(f"Read {len(records)} records from device")
        return records

    def collect(self, input_files: Sequence[str] = (), merge: bool = False) -> list[Measurement]:
        """Get measurements from the device, the input files, or both.

        Args:
            input_files: JSON files to load; when empty the device is read
            merge: Also read the device and merge it with the input files

        Returns:
            Measurements sorted latest first
        """
        if not input_files:
            return self.read_from_device()

        stored = load_and_merge(input_files)
        if not merge:
            return stored

        fetched = self.read_from_device()
        merged = merge_measurements(fetched, stored)
        logger.info(
            f"Merged {len(fetched)} device and {len(stored)} stored records "
            f"into {len(merged)} records"
        )
        return merged

    def select(
        self,
        items: Sequence[Measurement],
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        from_time: SimpleTime | None = None,
        to_time: SimpleTime | None = None,
        limit: int = 0,
    ) -> list[Measurement]:
        """Apply date range, time-of-day and count filters.

        Returns:
            Selected measurements, latest first
        """
        selected = filter_by_date(items, from_date, to_date)
        selected = filter_by_time_of_day(selected, from_time, to_time)
        selected = apply_limit(selected, limit)
        logger.info(f"Selected {len(selected)} of {len(items)} records")
        return selected


def load_config(config_path: str | None = None) -> dict:
    """Load configuration from file or use defaults.

    Values given in the file (serial port, baud rate, read timeout,
    output format, logging) replace the defaults key by key; sections
    left out, or left empty, keep their defaults.

    Args:
        config_path: Path to YAML config file

    Returns:
        Configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path and Path(config_path).exists():
        with open(config_path) as f:
            user_config = yaml.safe_load(f)
            if user_config and isinstance(user_config, dict):
                # Deep merge user config into defaults
                for section, values in user_config.items():
                    if values is None:
                        values = {}
                    section_config = config.get(section)
                    if (
                        section_config is not None
                        and isinstance(section_config, dict)
                        and isinstance(values, dict)
                    ):
                        section_config.update(values)
                    else:
                        config[section] = values

    return config


def setup_logging(config: dict) -> None:
    """Setup logging based on configuration.

    Log lines go to stderr so that records and statistics printed on
    stdout can be piped; the ``logging`` section may add a log file.

    Args:
        config: Configuration dictionary
    """
    log_config = config.get("logging") or {}
    level = getattr(logging, str(log_config.get("level", "INFO")).upper())
    format_str = log_config.get("format", DEFAULT_CONFIG["logging"]["format"])

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    log_file = log_config.get("file")
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=format_str, handlers=handlers)


def apply_overrides(args: argparse.Namespace, config: dict) -> dict:
    """Apply command line options on top of the configuration."""
    if args.device:
        config["device"]["port"] = args.device
    if args.timeout is not None:
        config["device"]["read_timeout"] = args.timeout
    if args.debug:
        config["logging"]["level"] = "DEBUG"
    return config


def cmd_read(args: argparse.Namespace, config: dict) -> int:
    """Handle reading, filtering and printing records.

    Args:
        args: Parsed command line arguments
        config: Configuration dictionary

    Returns:
        Exit code
    """
    # Parse bounds before touching the device
    from_date = parse_date(args.from_date)
    to_date = parse_date(args.to_date)
    from_time = parse_time(args.from_time)
    to_time = parse_time(args.to_time)

    output_format = args.format
    if not output_format and not args.output_file:
        output_format = (config.get("output") or {}).get("format", "csv")
    if output_format and output_format not in OUTPUT_FORMATS:
        logger.error(f"Unknown output format {output_format!r}, choose from {OUTPUT_FORMATS}")
        return 1

    reader = BM65Reader(config)
    items = reader.collect(args.input_file or [], merge=args.merge)
    items = reader.select(items, from_date, to_date, from_time, to_time, args.limit)

    if output_format == "csv":
        for row in format_csv(items, with_class=args.with_class):
            print(row)

    if args.average or args.stats:
        if items:
            for line in format_statistics(items, full=args.stats):
                print(line)
        else:
            logger.warning("No records selected, statistics skipped")

    if args.class_stats:
        if items:
            for line in format_class_distribution(class_distribution(items)):
                print(line)
        else:
            logger.warning("No records selected, classification skipped")

    if output_format == "json":
        print(measurements_to_json(items))

    if args.output_file:
        try:
            save_measurements(args.output_file, items)
        except OSError as e:
            logger.error(f"Could not write output file {args.output_file}: {e}")
            return 1

    return 0


def build_parser() -> argparse.ArgumentParser:
    """Create the command line parser."""
    parser = argparse.ArgumentParser(
        description="Beurer BM65 blood pressure monitor reader",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/config.yaml",
        help="Path to config file (default: config/config.yaml)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--device",
        "-d",
        type=str,
        help=f"Serial device (default from config, else {DEFAULT_PORT})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Seconds to wait for each device response (default: wait forever)",
    )

    # Sources
    parser.add_argument(
        "--input-file",
        "-i",
        action="append",
        help="Input JSON file (can be given several times)",
    )
    parser.add_argument(
        "--merge",
        "-m",
        action="store_true",
        help="Read the device and merge its records with the input files",
    )
    parser.add_argument(
        "--output-file",
        "-o",
        type=str,
        help="Output JSON file",
    )

    # Filters
    parser.add_argument(
        "--from-date",
        "--since",
        dest="from_date",
        help="Keep records from date (YYYY-mm-dd [HH:MM[:SS]])",
    )
    parser.add_argument(
        "--to-date",
        dest="to_date",
        help="Keep records before date (YYYY-mm-dd [HH:MM[:SS]])",
    )
    parser.add_argument(
        "--from-time",
        dest="from_time",
        help="Keep records from time of day (HH:MM)",
    )
    parser.add_argument(
        "--to-time",
        dest="to_time",
        help="Keep records up to time of day (HH:MM), may wrap past midnight",
    )
    parser.add_argument(
        "--limit",
        "-l",
        type=int,
        default=0,
        help="Limit number of records to the N latest",
    )

    # Output
    parser.add_argument(
        "--format",
        "-f",
        choices=OUTPUT_FORMATS,
        help="Output format (default: csv unless an output file is given)",
    )
    parser.add_argument(
        "--average",
        "-a",
        action="store_true",
        help="Compute average",
    )
    parser.add_argument(
        "--stats",
        "-s",
        action="store_true",
        help="Compute average, median, standard and mean absolute deviation",
    )
    parser.add_argument(
        "--class",
        dest="with_class",
        action="store_true",
        help="Add WHO classification to each record",
    )
    parser.add_argument(
        "--class-stats",
        dest="class_stats",
        action="store_true",
        help="Print WHO classification distribution",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load config
    config = apply_overrides(args, load_config(args.config))

    # Setup logging
    setup_logging(config)

    try:
        exit_code = cmd_read(args, config)
        sys.exit(exit_code)

    except KeyboardInterrupt:
        print("\nCancelled.")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        if args.debug:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
