"""
helpers.py - Test helpers for building transactions and checking balances
"""

from typing import Optional

from ledger_engine import (
    Account, Amount, Transaction, TransactionKind, TransactionRecord,
)


def amt(text: str) -> Amount:
    """Shorthand for Amount.parse()."""
    return Amount.parse(text)


def deposit(account: int, tx_id: int, amount: str) -> Transaction:
    return Transaction(TransactionKind.DEPOSIT, account, tx_id, Amount.parse(amount))


def withdrawal(account: int, tx_id: int, amount: str) -> Transaction:
    return Transaction(TransactionKind.WITHDRAWAL, account, tx_id, Amount.parse(amount))


def record(transaction_type: str, client: int, tx: int, amount: Optional[str] = None) -> TransactionRecord:
    return TransactionRecord(transaction_type, client, tx, amount)


def assert_balances(account: Account, available: str, held: str, total: str, locked: bool = False):
    """Assert all four balance fields at once."""
    assert account.available == amt(available)
    assert account.held == amt(held)
    assert account.total == amt(total)
    assert account.locked is locked
