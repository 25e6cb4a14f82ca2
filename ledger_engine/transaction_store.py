"""
transaction_store.py - Partitioned, disk-backed transaction map

TransactionStore behaves like a dict from TransactionId to Transaction whose
resident footprint is bounded. Transaction ids are grouped into partitions
(tx_id // partition_width); a partition is the unit of disk I/O and is never
read or written one transaction at a time.

Spill policy:
    After every insert, if more than cache_size_limit transactions are resident,
    every resident partition is written to its file and the in-memory map is
    dropped. The next access to any partition reloads it from disk.

Lazy load:
    A partition is read from disk at most once between flushes. Partitions with
    no file are treated as empty. Every access path (including insert) loads the
    owning partition first, so a flush never overwrites records already on disk.

Each store owns a private temporary directory that is removed by close().
"""

from __future__ import annotations
from dataclasses import dataclass, field
import json
import logging
import os
import tempfile
from typing import Dict, Optional

from .core import (
    EngineConfig, Transaction, TransactionId,
    StoreIoError,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CacheLine:
    """
    Transactions sharing one partition key.

    Attributes:
        loaded: True once the partition's on-disk content (if any) has been merged.
        transactions: Resident transactions of this partition.
    """
    loaded: bool = False
    transactions: Dict[TransactionId, Transaction] = field(default_factory=dict)


class TransactionStore:
    """
    Exactly-once recall of transactions with a bounded resident footprint.

    Example:
        with TransactionStore(EngineConfig(cache_size_limit=1000)) as store:
            store.insert(tx.tx_id, tx)
            assert store.get(tx.tx_id) == tx
    """

    def __init__(self, config: Optional[EngineConfig] = None, prefix: str = "transaction_cache"):
        """
        Create a store backed by a fresh temporary directory.

        Args:
            config: Sizing constants (default: EngineConfig())
            prefix: Name prefix for the temporary directory

        Raises:
            StoreIoError: If the working directory cannot be created
        """
        self.config = config or EngineConfig()
        self._lines: Dict[int, CacheLine] = {}
        self._resident_count = 0
        try:
            self._tmp_dir = tempfile.TemporaryDirectory(prefix=prefix)
        except OSError as e:
            raise StoreIoError(f"Could not create cache dir because of: {e}") from e

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    @property
    def directory(self) -> str:
        """Path of the private working directory."""
        return self._tmp_dir.name

    @property
    def resident_count(self) -> int:
        """Number of transactions currently held in memory."""
        return self._resident_count

    def partition_key(self, tx_id: TransactionId) -> int:
        return tx_id // self.config.partition_width

    def get(self, tx_id: TransactionId) -> Optional[Transaction]:
        """Return the transaction stored under tx_id, or None."""
        return self._line_for(tx_id).transactions.get(tx_id)

    def contains(self, tx_id: TransactionId) -> bool:
        return tx_id in self._line_for(tx_id).transactions

    def __contains__(self, tx_id: TransactionId) -> bool:
        return self.contains(tx_id)

    def remove(self, tx_id: TransactionId) -> Optional[Transaction]:
        """Delete tx_id and return the removed transaction, or None if absent."""
        removed = self._line_for(tx_id).transactions.pop(tx_id, None)
        if removed is not None:
            self._resident_count -= 1
        return removed

    def insert(self, tx_id: TransactionId, transaction: Transaction) -> Optional[Transaction]:
        """
        Store a transaction and apply the spill policy.

        Args:
            tx_id: Key to store under
            transaction: Transaction to store

        Returns:
            The previously stored transaction for tx_id (None under correct usage)

        Raises:
            StoreIoError: If loading the partition or spilling to disk fails
        """
        line = self._line_for(tx_id)
        previous = line.transactions.get(tx_id)
        line.transactions[tx_id] = transaction
        if previous is None:
            self._resident_count += 1
        self._spill_if_needed()
        return previous

    def close(self) -> None:
        """Drop resident state and remove the working directory."""
        self._lines.clear()
        self._resident_count = 0
        self._tmp_dir.cleanup()

    def __enter__(self) -> TransactionStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"TransactionStore({self._resident_count} resident, "
            f"{len(self._lines)} partitions, dir={self.directory})"
        )

    # ========================================================================
    # DISK I/O
    # ========================================================================

    def _line_for(self, tx_id: TransactionId) -> CacheLine:
        """Return the owning partition of tx_id, loading it from disk if needed."""
        key = self.partition_key(tx_id)
        line = self._lines.get(key)
        if line is None:
            line = CacheLine()
            self._lines[key] = line
        if not line.loaded:
            self._resident_count += self._load_line(key, line)
        return line

    def _partition_path(self, key: int) -> str:
        return os.path.join(self.directory, str(key))

    def _load_line(self, key: int, line: CacheLine) -> int:
        """
        Merge the on-disk content of a partition into its cache line.

        Returns:
            Number of transactions read from disk (0 if the partition has no file)
        """
        path = self._partition_path(key)
        stored: Dict[TransactionId, Transaction] = {}
        if os.path.exists(path):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
                stored = {int(k): Transaction.from_dict(v) for k, v in raw.items()}
            except OSError as e:
                raise StoreIoError(f"Could not read partition {key} because of: {e}") from e
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                raise StoreIoError(f"Malformed partition {key}: {e}") from e
            logger.debug("Loaded %d transactions from partition %d", len(stored), key)

        # Entries already resident take precedence over the disk copy.
        added = sum(1 for tx_id in stored if tx_id not in line.transactions)
        stored.update(line.transactions)
        line.transactions = stored
        line.loaded = True
        return added

    def _spill_if_needed(self) -> None:
        if self._resident_count <= self.config.cache_size_limit:
            return
        logger.debug(
            "Spilling %d transactions in %d partitions to %s",
            self._resident_count, len(self._lines), self.directory,
        )
        for key, line in self._lines.items():
            self._store_line(key, line)
        self._lines.clear()
        self._resident_count = 0

    def _store_line(self, key: int, line: CacheLine) -> None:
        payload = {str(tx_id): tx.to_dict() for tx_id, tx in line.transactions.items()}
        try:
            with open(self._partition_path(key), "w", encoding="utf-8") as f:
                json.dump(payload, f)
        except OSError as e:
            raise StoreIoError(f"Could not write partition {key} because of: {e}") from e
