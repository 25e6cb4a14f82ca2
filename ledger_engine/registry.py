"""
registry.py - Owner of all accounts and entry point for transactions

The LedgerRegistry maps account ids to Account state machines, creating each
account the first time any transaction references it, and routes every
transaction to the matching Account operation.

Key responsibilities:
    - Decode TransactionRecords into Transactions (process_record)
    - Dispatch by transaction kind through a handler dict (route)
    - Enumerate final balances in account-id order (finalize)
    - Check total == available + held across all accounts (verify_balances)
"""

from __future__ import annotations
import logging
from typing import Any, Callable, Dict, List, Optional

from .account import Account, AccountSnapshot
from .core import (
    AccountId, EngineConfig, Transaction, TransactionKind, TransactionRecord,
    UnrecognizedTransactionType,
)

logger = logging.getLogger(__name__)


# ============================================================================
# HANDLERS
# ============================================================================

def handle_deposit(account: Account, transaction: Transaction) -> None:
    account.deposit(transaction)


def handle_withdrawal(account: Account, transaction: Transaction) -> None:
    account.withdraw(transaction)


def handle_dispute(account: Account, transaction: Transaction) -> None:
    account.dispute(transaction.tx_id)


def handle_resolve(account: Account, transaction: Transaction) -> None:
    account.resolve(transaction.tx_id)


def handle_chargeback(account: Account, transaction: Transaction) -> None:
    account.chargeback(transaction.tx_id)


# Every routable kind maps to exactly one operation; UNRECOGNIZED is absent.
DEFAULT_HANDLERS: Dict[TransactionKind, Callable[[Account, Transaction], None]] = {
    TransactionKind.DEPOSIT: handle_deposit,
    TransactionKind.WITHDRAWAL: handle_withdrawal,
    TransactionKind.DISPUTE: handle_dispute,
    TransactionKind.RESOLVE: handle_resolve,
    TransactionKind.CHARGEBACK: handle_chargeback,
}


# ============================================================================
# REGISTRY
# ============================================================================

class LedgerRegistry:
    """
    Process-lifetime owner of every Account.

    Not thread-safe: transactions are expected one at a time, in stream order.

    Example:
        with LedgerRegistry() as registry:
            registry.process_record(TransactionRecord("deposit", 1, 1, "1.5"))
            for snapshot in registry.finalize():
                print(snapshot.as_row())
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Create an empty registry.

        Args:
            config: Store sizing handed to every account created (default: EngineConfig())
        """
        self.config = config or EngineConfig()
        self._accounts: Dict[AccountId, Account] = {}

    def get(self, account_id: AccountId) -> Optional[Account]:
        """Return the account for account_id, or None if it was never referenced."""
        return self._accounts.get(account_id)

    def get_or_create(self, account_id: AccountId) -> Account:
        account = self._accounts.get(account_id)
        if account is None:
            account = Account(account_id, self.config)
            self._accounts[account_id] = account
            logger.debug("Created account %d", account_id)
        return account

    def __len__(self) -> int:
        return len(self._accounts)

    def __contains__(self, account_id: AccountId) -> bool:
        return account_id in self._accounts

    # ========================================================================
    # PROCESSING
    # ========================================================================

    def process_record(self, record: TransactionRecord) -> None:
        """
        Decode a raw record and route it.

        Raises:
            RecordRejected: If the amount is invalid or the operation is rejected
            StoreIoError: If an account's transaction store fails
        """
        self.route(Transaction.from_record(record))

    def route(self, transaction: Transaction) -> None:
        """
        Apply a transaction to the account it references.

        Unrecognized transactions are rejected before any account is created.

        Raises:
            UnrecognizedTransactionType: If transaction.kind is UNRECOGNIZED
            RecordRejected: If the account operation rejects the transaction
            StoreIoError: If an account's transaction store fails
        """
        handler = DEFAULT_HANDLERS.get(transaction.kind)
        if handler is None:
            raise UnrecognizedTransactionType(f"Unrecognized transaction: {transaction!r}")
        handler(self.get_or_create(transaction.account), transaction)

    # ========================================================================
    # REPORTING
    # ========================================================================

    def finalize(self) -> List[AccountSnapshot]:
        """
        Snapshot every known account.

        Accounts are sorted by id so the output is deterministic.
        """
        return [self._accounts[account_id].snapshot() for account_id in sorted(self._accounts)]

    def verify_balances(self) -> Dict[str, Any]:
        """
        Verify total == available + held for every account.

        Returns:
            Dict with keys:
            - 'valid': bool - True if every account satisfies the invariant
            - 'discrepancies': List[Dict] - account, expected, actual for each violation

        Example:
            result = registry.verify_balances()
            assert result['valid'], f"Invariant violated: {result['discrepancies']}"
        """
        discrepancies = []
        for account_id in sorted(self._accounts):
            check = self._accounts[account_id].verify_balances()
            if not check['valid']:
                discrepancies.append({
                    'account': account_id,
                    'expected': check['expected'],
                    'actual': check['actual'],
                })
        return {
            'valid': len(discrepancies) == 0,
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # LIFETIME
    # ========================================================================

    def close(self) -> None:
        """Release every account's transaction stores."""
        for account in self._accounts.values():
            account.close()

    def __enter__(self) -> LedgerRegistry:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"LedgerRegistry({len(self._accounts)} accounts)"
