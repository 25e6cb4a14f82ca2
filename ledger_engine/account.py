"""
account.py - Per-account balance state machine

An Account tracks available, held and total funds for one client and enforces
the rules for the five transaction kinds. It owns two TransactionStores:

    processed: every deposit and withdrawal ever applied (duplicate detection,
               dispute lookup)
    disputed:  deposits currently under dispute

States:
    Active -> Locked (after a chargeback). Locked is terminal: deposits,
    withdrawals, resolves and chargebacks are rejected with AccountLocked.
    Disputes do not check the lock and are still recorded on a locked account.

Invariant:
    total == available + held after every operation. Each operation checks all
    of its preconditions and computes its new balances before assigning any of
    them, so a rejected operation leaves the account untouched.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .core import (
    Amount, AccountId, EngineConfig, Transaction, TransactionId, TransactionKind,
    AccountLocked, AlreadyDisputed, DuplicateTransaction, InsufficientFunds,
    TransactionNotFound, WrongTransactionType,
)
from .transaction_store import TransactionStore


@dataclass(frozen=True, slots=True)
class AccountSnapshot:
    """
    Final balances of one account.

    Attributes:
        account: Account identifier
        available: Funds available for withdrawal
        held: Funds held by open disputes
        total: available + held
        locked: True once a chargeback has occurred
    """
    account: AccountId
    available: Amount
    held: Amount
    total: Amount
    locked: bool

    def as_row(self) -> List[str]:
        """Render as output columns: client_id, available, held, total, locked."""
        return [
            str(self.account),
            str(self.available),
            str(self.held),
            str(self.total),
            "true" if self.locked else "false",
        ]


class Account:
    """
    Balance state machine for a single client.

    Example:
        account = Account(1)
        account.deposit(Transaction(TransactionKind.DEPOSIT, 1, 1, Amount.parse("10")))
        account.dispute(1)
        account.chargeback(1)
        assert account.locked
    """

    def __init__(
        self,
        account_id: AccountId,
        config: Optional[EngineConfig] = None,
        processed: Optional[TransactionStore] = None,
        disputed: Optional[TransactionStore] = None,
    ):
        """
        Create an active account with zero balances.

        Args:
            account_id: Client identifier
            config: Sizing for the stores created here (default: EngineConfig())
            processed: Pre-built store for processed transactions (created if None)
            disputed: Pre-built store for disputed transactions (created if None)
        """
        config = config or EngineConfig()
        self._account_id = account_id
        self._available = Amount.zero()
        self._held = Amount.zero()
        self._total = Amount.zero()
        self._locked = False
        self._processed = processed if processed is not None else TransactionStore(
            config, prefix=f"account_{account_id}_processed_"
        )
        self._disputed = disputed if disputed is not None else TransactionStore(
            config, prefix=f"account_{account_id}_disputed_"
        )

    # ========================================================================
    # ACCESSORS
    # ========================================================================

    @property
    def account_id(self) -> AccountId:
        return self._account_id

    @property
    def available(self) -> Amount:
        return self._available

    @property
    def held(self) -> Amount:
        return self._held

    @property
    def total(self) -> Amount:
        return self._total

    @property
    def locked(self) -> bool:
        return self._locked

    def snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            account=self._account_id,
            available=self._available,
            held=self._held,
            total=self._total,
            locked=self._locked,
        )

    def verify_balances(self) -> Dict[str, Any]:
        """
        Check the total == available + held invariant.

        Returns:
            Dict with keys 'valid', 'expected' (available + held) and 'actual' (total)
        """
        expected = self._available + self._held
        return {
            'valid': expected == self._total,
            'expected': expected,
            'actual': self._total,
        }

    # ========================================================================
    # STATE MACHINE
    # ========================================================================

    def can_process(self) -> None:
        """Raise AccountLocked if the account no longer accepts mutations."""
        if self._locked:
            raise AccountLocked(f"Account {self._account_id} locked")

    def deposit(self, transaction: Transaction) -> None:
        """
        Credit a deposit to available and total.

        Raises:
            AccountLocked: If the account is locked
            WrongTransactionType: If transaction is not a deposit
            DuplicateTransaction: If the transaction id was already processed
        """
        self.can_process()
        if transaction.kind is not TransactionKind.DEPOSIT:
            raise WrongTransactionType(f"Expected deposit, got {transaction.kind.value}")
        if transaction.tx_id in self._processed:
            raise DuplicateTransaction(f"Transaction {transaction.tx_id} already processed")

        available = self._available + transaction.amount
        total = self._total + transaction.amount
        self._processed.insert(transaction.tx_id, transaction)
        self._available = available
        self._total = total

    def withdraw(self, transaction: Transaction) -> None:
        """
        Debit a withdrawal from available and total.

        Raises:
            AccountLocked: If the account is locked
            WrongTransactionType: If transaction is not a withdrawal
            DuplicateTransaction: If the transaction id was already processed
            InsufficientFunds: If the amount exceeds the available balance
        """
        self.can_process()
        if transaction.kind is not TransactionKind.WITHDRAWAL:
            raise WrongTransactionType(f"Expected withdrawal, got {transaction.kind.value}")
        if transaction.tx_id in self._processed:
            raise DuplicateTransaction(f"Transaction {transaction.tx_id} already processed")
        if transaction.amount > self._available:
            raise InsufficientFunds(
                f"Insufficient funds: requested {transaction.amount}, available {self._available}"
            )

        available = self._available - transaction.amount
        total = self._total - transaction.amount
        self._processed.insert(transaction.tx_id, transaction)
        self._available = available
        self._total = total

    def dispute(self, tx_id: TransactionId) -> None:
        """
        Move a processed deposit's amount from available to held.

        The lock is not checked: disputes are still recorded on a locked account.
        The processed store keeps its copy of the deposit.

        Raises:
            AlreadyDisputed: If tx_id is already under dispute
            TransactionNotFound: If tx_id was never processed on this account
            WrongTransactionType: If tx_id refers to a withdrawal
        """
        if tx_id in self._disputed:
            raise AlreadyDisputed(f"Transaction {tx_id} already disputed")
        disputed_transaction = self._processed.get(tx_id)
        if disputed_transaction is None:
            raise TransactionNotFound(f"Could not find disputed transaction {tx_id}")
        if disputed_transaction.kind is not TransactionKind.DEPOSIT:
            raise WrongTransactionType(
                f"Only deposits can be disputed, {tx_id} is a {disputed_transaction.kind.value}"
            )

        available = self._available - disputed_transaction.amount
        held = self._held + disputed_transaction.amount
        self._disputed.insert(tx_id, disputed_transaction)
        self._available = available
        self._held = held

    def resolve(self, tx_id: TransactionId) -> None:
        """
        Release a disputed deposit back to available, consuming the dispute.

        Raises:
            AccountLocked: If the account is locked
            TransactionNotFound: If tx_id is not under dispute
            WrongTransactionType: If the disputed transaction is not a deposit
        """
        self.can_process()
        disputed_transaction = self._find_disputed(tx_id)
        available = self._available + disputed_transaction.amount
        held = self._held - disputed_transaction.amount
        self._disputed.remove(tx_id)
        self._available = available
        self._held = held

    def chargeback(self, tx_id: TransactionId) -> None:
        """
        Remove a disputed deposit's funds permanently and lock the account.

        Raises:
            AccountLocked: If the account is locked
            TransactionNotFound: If tx_id is not under dispute
            WrongTransactionType: If the disputed transaction is not a deposit
        """
        self.can_process()
        disputed_transaction = self._find_disputed(tx_id)
        total = self._total - disputed_transaction.amount
        held = self._held - disputed_transaction.amount
        self._disputed.remove(tx_id)
        self._locked = True
        self._total = total
        self._held = held

    def _find_disputed(self, tx_id: TransactionId) -> Transaction:
        """Look up an open dispute without consuming it."""
        disputed_transaction = self._disputed.get(tx_id)
        if disputed_transaction is None:
            raise TransactionNotFound(f"Could not find disputed transaction {tx_id}")
        if disputed_transaction.kind is not TransactionKind.DEPOSIT:
            raise WrongTransactionType(
                f"Disputed transaction {tx_id} is a {disputed_transaction.kind.value}"
            )
        return disputed_transaction

    # ========================================================================
    # LIFETIME
    # ========================================================================

    def close(self) -> None:
        """Release both transaction stores and their working directories."""
        self._processed.close()
        self._disputed.close()

    def __repr__(self) -> str:
        state = "locked" if self._locked else "active"
        return (
            f"Account({self._account_id}, available={self._available}, "
            f"held={self._held}, total={self._total}, {state})"
        )
