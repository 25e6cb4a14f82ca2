"""
csv_io.py - CSV input decoding and snapshot output

Input rows carry the columns `type, client, tx[, amount]` with surrounding
whitespace trimmed. Columns are positional unless the first row is a header
naming them (`type`, `client`, `tx` and optionally `amount`, in any order),
in which case each row is read by those names.

Rows are decoded one at a time so a malformed row is reported and skipped
without stopping the stream. This covers rows the csv module cannot parse and
rows holding bytes that are not valid UTF-8 (the input is opened with
errors="surrogateescape" so such bytes reach decode_row as lone surrogates).

Output is one row per account: `client_id, available, held, total, locked`.
"""

from __future__ import annotations
import csv
import logging
from typing import Dict, Iterable, Iterator, List, Optional, TextIO, Union

from .account import AccountSnapshot
from .core import (
    MAX_ACCOUNT_ID, MAX_TRANSACTION_ID,
    InvalidRecord, TransactionRecord,
)

logger = logging.getLogger(__name__)

INPUT_COLUMNS = ("type", "client", "tx", "amount")
OUTPUT_HEADER = ["client_id", "available", "held", "total", "locked"]


# ============================================================================
# INPUT
# ============================================================================

def read_records(stream: TextIO) -> Iterator[Union[TransactionRecord, InvalidRecord]]:
    """
    Decode every non-blank row of stream.

    A bad row is yielded as an InvalidRecord instance instead of being raised,
    so the caller sees it in order and the stream carries on. The first row is
    dropped (logged at DEBUG) when it names the columns or otherwise fails to
    decode, since it is then taken to be a header.

    Yields:
        A TransactionRecord per good row, an InvalidRecord per bad one
    """
    reader = csv.reader(stream)
    positions: Optional[Dict[str, int]] = None
    first = True
    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            first = False
            yield InvalidRecord(f"Unreadable row at line {reader.line_num}: {e}")
            continue

        fields = [value.strip() for value in row]
        if not any(fields):
            continue

        is_first, first = first, False
        if is_first:
            header = _header_positions(fields)
            if header is not None:
                logger.debug("Skipping header row %s", fields)
                positions = header or None
                continue

        try:
            if positions is not None:
                fields = _reorder(fields, positions)
            item: Union[TransactionRecord, InvalidRecord] = decode_row(fields)
        except InvalidRecord as e:
            if is_first:
                logger.debug("Skipping header row %s", fields)
                continue
            item = e
        yield item


def _header_positions(fields: List[str]) -> Optional[Dict[str, int]]:
    """
    Column positions named by a header row.

    Returns None if fields is not a header, an empty dict if it is a header in
    the default positional order, else the position of each named column.
    """
    names = set(fields)
    if len(names) != len(fields) or not names <= set(INPUT_COLUMNS):
        return None
    if not {"type", "client", "tx"} <= names:
        return None
    if fields == list(INPUT_COLUMNS[:len(fields)]):
        return {}
    return {name: index for index, name in enumerate(fields)}


def _reorder(fields: List[str], positions: Dict[str, int]) -> List[str]:
    """Put a row read under a custom header back into positional order."""
    if len(fields) > len(positions):
        raise InvalidRecord(f"Expected at most {len(positions)} columns, got {len(fields)}: {fields!r}")
    return [
        fields[positions[name]] if positions[name] < len(fields) else ""
        for name in INPUT_COLUMNS
        if name in positions
    ]


def _parse_id(value: str, name: str, upper: int) -> int:
    # int() alone would also accept signs and underscores.
    if not (value.isascii() and value.isdigit()):
        raise InvalidRecord(f"Invalid {name}: {value!r}")
    parsed = int(value)
    if parsed > upper:
        raise InvalidRecord(f"{name} out of range [0, {upper}]: {parsed}")
    return parsed


def decode_row(fields: List[str]) -> TransactionRecord:
    """
    Decode one positional row into a TransactionRecord.

    An empty amount column is treated as absent.

    Raises:
        InvalidRecord: If the row is not valid UTF-8, the column count is wrong
                       or an id is not a valid integer
    """
    try:
        for value in fields:
            value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidRecord(f"Row is not valid UTF-8: {fields!r}") from e
    if len(fields) not in (3, 4):
        raise InvalidRecord(f"Expected 3 or 4 columns, got {len(fields)}: {fields!r}")
    amount = fields[3] if len(fields) == 4 and fields[3] else None
    return TransactionRecord(
        transaction_type=fields[0],
        client=_parse_id(fields[1], "client", MAX_ACCOUNT_ID),
        tx=_parse_id(fields[2], "tx", MAX_TRANSACTION_ID),
        amount=amount,
    )


# ============================================================================
# OUTPUT
# ============================================================================

def write_snapshot(stream: TextIO, snapshots: Iterable[AccountSnapshot]) -> None:
    """Write the header and one row per account snapshot."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_HEADER)
    for snapshot in snapshots:
        writer.writerow(snapshot.as_row())
