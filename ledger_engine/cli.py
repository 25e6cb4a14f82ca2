"""
cli.py - Command-line dispatch loop

Usage:
    python -m ledger_engine transactions.csv > accounts.csv
    ledger-engine transactions.csv --cache-size-limit 100000 --log-level DEBUG

Reads every row of the input file, feeds it to a LedgerRegistry and writes the
final account snapshot to stdout. Rejected rows are logged to stderr and
skipped. The run fails (exit code 1) only when the input cannot be opened, the
output cannot be written, or a transaction store fails.
"""

from __future__ import annotations
import argparse
import logging
import sys
from typing import List, Optional, TextIO

from .core import (
    DEFAULT_CACHE_SIZE_LIMIT, DEFAULT_PARTITION_WIDTH,
    EngineConfig, InvalidRecord, RecordRejected, StoreIoError,
)
from .csv_io import read_records, write_snapshot
from .registry import LedgerRegistry

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.WARNING) -> logging.Logger:
    """
    Send log output to stderr; stdout carries the CSV snapshot.

    Args:
        level: Minimum level to emit

    Returns:
        The configured root logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root_logger.addHandler(handler)
    return root_logger


def process_stream(registry: LedgerRegistry, stream: TextIO) -> int:
    """
    Feed every row of stream into registry.

    The header row is skipped by read_records. Every rejected row, whether it
    failed to decode or was refused by the registry, is logged at WARNING and
    processing continues.

    Returns:
        Number of rows that were rejected

    Raises:
        StoreIoError: If a transaction store fails
    """
    rejected = 0
    for record in read_records(stream):
        if isinstance(record, InvalidRecord):
            logger.warning("Ignoring error %s", record)
            rejected += 1
            continue

        try:
            registry.process_record(record)
        except RecordRejected as e:
            logger.warning("Ignoring error: %s for record: %s", e, record)
            rejected += 1
    return rejected


def _positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return value


def _non_negative_int(text: str) -> int:
    value = int(text)
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-engine",
        description="Replay a CSV stream of transactions and print final account balances.",
    )
    parser.add_argument("input", help="Path to the input transactions CSV")
    parser.add_argument(
        "--cache-size-limit", type=_non_negative_int, default=DEFAULT_CACHE_SIZE_LIMIT,
        help=f"Resident transactions per store before spilling to disk (default: {DEFAULT_CACHE_SIZE_LIMIT})",
    )
    parser.add_argument(
        "--partition-width", type=_positive_int, default=DEFAULT_PARTITION_WIDTH,
        help=f"Transaction ids per on-disk partition (default: {DEFAULT_PARTITION_WIDTH})",
    )
    parser.add_argument(
        "--log-level", default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for stderr output (default: WARNING)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(getattr(logging, args.log_level))

    config = EngineConfig(
        cache_size_limit=args.cache_size_limit,
        partition_width=args.partition_width,
    )

    with LedgerRegistry(config) as registry:
        try:
            # Undecodable bytes reach read_records as surrogates and are rejected per row.
            with open(args.input, "r", newline="", encoding="utf-8-sig",
                      errors="surrogateescape") as stream:
                rejected = process_stream(registry, stream)
        except OSError as e:
            logger.error("Could not read input file %s: %s", args.input, e)
            return 1
        except StoreIoError as e:
            logger.error("Transaction store failure: %s", e)
            return 1

        logger.info("Processed %s with %d rejected rows", args.input, rejected)
        try:
            write_snapshot(sys.stdout, registry.finalize())
            sys.stdout.flush()
        except OSError as e:
            logger.error("Could not write output: %s", e)
            return 1
    return 0
