"""
ledger_engine - Transaction Ledger Engine

Replays an ordered stream of deposits, withdrawals, disputes, resolves and
chargebacks against per-account balances, keeping the full transaction history
in partitioned stores that spill to disk once they grow past a limit.

Usage:
    from ledger_engine import LedgerRegistry, TransactionRecord

    with LedgerRegistry() as registry:
        registry.process_record(TransactionRecord("deposit", 1, 1, "1.5"))
        registry.process_record(TransactionRecord("withdrawal", 1, 2, "0.5"))
        for snapshot in registry.finalize():
            print(snapshot.as_row())   # ['1', '1.0000', '0.0000', '1.0000', 'false']
"""

# Core types
from .core import (
    Amount,
    AccountId,
    TransactionId,
    TransactionKind,
    TransactionRecord,
    Transaction,
    EngineConfig,
    LedgerError,
    RecordRejected,
    AmountError,
    InvalidPrecision,
    InvalidFormat,
    AmountOverflow,
    InvalidRecord,
    DuplicateTransaction,
    InsufficientFunds,
    AccountLocked,
    AlreadyDisputed,
    TransactionNotFound,
    WrongTransactionType,
    UnrecognizedTransactionType,
    StoreIoError,
    AMOUNT_PRECISION,
    MAX_AMOUNT,
    MAX_ACCOUNT_ID,
    MAX_TRANSACTION_ID,
    DEFAULT_CACHE_SIZE_LIMIT,
    DEFAULT_PARTITION_WIDTH,
)

# Storage
from .transaction_store import TransactionStore, CacheLine

# Accounts
from .account import Account, AccountSnapshot

# Registry
from .registry import LedgerRegistry, DEFAULT_HANDLERS

# CSV
from .csv_io import read_records, decode_row, write_snapshot, OUTPUT_HEADER

__all__ = [
    # Core
    'Amount', 'AccountId', 'TransactionId', 'TransactionKind',
    'TransactionRecord', 'Transaction', 'EngineConfig',
    'LedgerError', 'RecordRejected', 'AmountError',
    'InvalidPrecision', 'InvalidFormat', 'AmountOverflow', 'InvalidRecord',
    'DuplicateTransaction', 'InsufficientFunds', 'AccountLocked',
    'AlreadyDisputed', 'TransactionNotFound', 'WrongTransactionType',
    'UnrecognizedTransactionType', 'StoreIoError',
    'AMOUNT_PRECISION', 'MAX_AMOUNT', 'MAX_ACCOUNT_ID', 'MAX_TRANSACTION_ID',
    'DEFAULT_CACHE_SIZE_LIMIT', 'DEFAULT_PARTITION_WIDTH',
    # Storage
    'TransactionStore', 'CacheLine',
    # Accounts
    'Account', 'AccountSnapshot',
    # Registry
    'LedgerRegistry', 'DEFAULT_HANDLERS',
    # CSV
    'read_records', 'decode_row', 'write_snapshot', 'OUTPUT_HEADER',
]

__version__ = '1.0.0'
