"""
Core types for the ledger engine.

This module provides the foundational data structures shared by every other module:
1. Exceptions: LedgerError and the per-record / storage error types
2. Amount: fixed-precision monetary value with strict parsing
3. Transactions: TransactionRecord (raw, decoded input) and Transaction (validated)
4. Configuration: EngineConfig and the process-wide constants

Nothing in this module touches account state or the disk.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN, InvalidOperation, getcontext
from enum import Enum
import re
from typing import Any, Dict, Optional


# ============================================================================
# DECIMAL CONTEXT CONFIGURATION
# ============================================================================
#
# Amounts are bounded by MAX_AMOUNT (29 integer digits) with at most
# AMOUNT_PRECISION fractional digits, so prec=50 keeps every add/subtract exact.
#
_ENGINE_DECIMAL_CONTEXT = getcontext()
_ENGINE_DECIMAL_CONTEXT.prec = 50
_ENGINE_DECIMAL_CONTEXT.rounding = ROUND_HALF_EVEN


# ============================================================================
# CONSTANTS
# ============================================================================

# Maximum number of fractional digits accepted in an amount.
AMOUNT_PRECISION = 4

# Largest magnitude an amount may reach (96-bit decimal mantissa).
MAX_AMOUNT = Decimal("79228162514264337593543950335")

# Identifier ranges of the input format.
MAX_ACCOUNT_ID = 2 ** 16 - 1
MAX_TRANSACTION_ID = 2 ** 32 - 1

# Resident transactions a store may hold before it spills to disk.
DEFAULT_CACHE_SIZE_LIMIT = 1_048_576

# Number of consecutive transaction ids grouped into one on-disk partition.
DEFAULT_PARTITION_WIDTH = 65_536

_AMOUNT_PATTERN = re.compile(r"^[+-]?(?:[0-9]+(?:\.([0-9]*))?|\.([0-9]+))$")


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Account (client) identifier, unsigned 16-bit.
AccountId = int

# Globally unique transaction identifier, unsigned 32-bit.
TransactionId = int


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger engine errors."""
    pass


class RecordRejected(LedgerError):
    """
    A single input record could not be applied.

    Recoverable: the record is discarded and account state is left exactly as
    it was before the attempt.
    """
    pass


class AmountError(RecordRejected):
    """Raised when an amount cannot be parsed or computed."""
    pass


class InvalidPrecision(AmountError):
    """Raised when an amount has more than AMOUNT_PRECISION fractional digits."""
    pass


class InvalidFormat(AmountError):
    """Raised when an amount is not a well-formed, non-negative decimal number."""
    pass


class AmountOverflow(AmountError):
    """Raised when an arithmetic result would exceed MAX_AMOUNT."""
    pass


class InvalidRecord(RecordRejected):
    """Raised when a raw input row cannot be decoded into a TransactionRecord."""
    pass


class DuplicateTransaction(RecordRejected):
    """Raised when a deposit or withdrawal reuses an already processed transaction id."""
    pass


class InsufficientFunds(RecordRejected):
    """Raised when a withdrawal exceeds the available balance."""
    pass


class AccountLocked(RecordRejected):
    """Raised when a mutating operation targets a locked (charged back) account."""
    pass


class AlreadyDisputed(RecordRejected):
    """Raised when disputing a transaction that is already under dispute."""
    pass


class TransactionNotFound(RecordRejected):
    """Raised when the referenced transaction is not in the relevant store."""
    pass


class WrongTransactionType(RecordRejected):
    """Raised when an operation receives a transaction of the wrong kind."""
    pass


class UnrecognizedTransactionType(RecordRejected):
    """Raised when routing a transaction whose type string is unknown."""
    pass


class StoreIoError(LedgerError):
    """
    Raised when a transaction store cannot spill to or load from disk.

    Not recoverable for the store instance: the run is aborted rather than
    continuing with an incomplete transaction history.
    """
    pass


# ============================================================================
# AMOUNT
# ============================================================================

@dataclass(frozen=True, slots=True, order=True)
class Amount:
    """
    Fixed-precision monetary value.

    Wraps a Decimal with at most AMOUNT_PRECISION fractional digits. Arithmetic
    is exact; comparisons are exact decimal comparisons, so Amount("1.5") equals
    Amount("1.5000").

    Attributes:
        value: The underlying Decimal.
    """
    value: Decimal = Decimal("0.0000")

    def __post_init__(self):
        if not isinstance(self.value, Decimal):
            raise TypeError(f"Amount value must be Decimal, got {type(self.value)}")
        if not self.value.is_finite():
            raise InvalidFormat(f"Amount must be finite, got {self.value}")
        if -self.value.as_tuple().exponent > AMOUNT_PRECISION:
            raise InvalidPrecision(
                f"Amount {self.value} has more than {AMOUNT_PRECISION} decimal places"
            )
        if abs(self.value) > MAX_AMOUNT:
            raise AmountOverflow(f"Amount {self.value} exceeds {MAX_AMOUNT}")

    @classmethod
    def zero(cls) -> Amount:
        """Return a zero amount at full precision (0.0000)."""
        return cls(Decimal(0).scaleb(-AMOUNT_PRECISION))

    @classmethod
    def parse(cls, text: str) -> Amount:
        """
        Parse an amount from its textual form.

        Accepts an optional sign, digits and an optional fractional part.
        Exponents, NaN and Infinity are rejected. Excess precision is an
        error, never rounded.

        Args:
            text: Decimal text such as "1.5" or "100.1234"

        Returns:
            The parsed Amount

        Raises:
            InvalidFormat: If text is not a plain decimal number
            InvalidPrecision: If text has more than AMOUNT_PRECISION fractional digits
        """
        if not isinstance(text, str):
            raise InvalidFormat(f"Amount text must be str, got {type(text)}")
        stripped = text.strip()
        match = _AMOUNT_PATTERN.match(stripped)
        if match is None:
            raise InvalidFormat(f"Invalid amount: {text!r}")
        fraction = match.group(1) or match.group(2) or ""
        if len(fraction) > AMOUNT_PRECISION:
            raise InvalidPrecision(
                f"Amount {text!r} has {len(fraction)} decimal places, "
                f"max is {AMOUNT_PRECISION}"
            )
        try:
            return cls(Decimal(stripped))
        except InvalidOperation as e:
            raise InvalidFormat(f"Invalid amount: {text!r}") from e

    def is_negative(self) -> bool:
        return self.value < 0

    def __add__(self, other: Amount) -> Amount:
        if not isinstance(other, Amount):
            return NotImplemented
        return Amount(self.value + other.value)

    def __sub__(self, other: Amount) -> Amount:
        if not isinstance(other, Amount):
            return NotImplemented
        return Amount(self.value - other.value)

    def __str__(self) -> str:
        # Fixed-point notation: Decimal's str() switches to exponents for small scales.
        return format(self.value, "f")

    def __repr__(self) -> str:
        return f"Amount({self})"


# ============================================================================
# TRANSACTIONS
# ============================================================================

class TransactionKind(Enum):
    """
    Closed set of transaction kinds.

    Only DEPOSIT and WITHDRAWAL carry an amount; DISPUTE, RESOLVE and
    CHARGEBACK reference a prior transaction by id. UNRECOGNIZED covers any
    other type string and is never routed to an account.
    """
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"
    UNRECOGNIZED = "unrecognized"

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionKind.DEPOSIT, TransactionKind.WITHDRAWAL)


_KINDS_BY_TYPE: Dict[str, TransactionKind] = {
    kind.value: kind for kind in TransactionKind if kind is not TransactionKind.UNRECOGNIZED
}


@dataclass(frozen=True, slots=True)
class TransactionRecord:
    """
    A raw transaction as decoded from one input row.

    Attributes:
        transaction_type: Type string ("deposit", "withdrawal", ...).
        client: Account identifier.
        tx: Transaction identifier.
        amount: Amount text, present only for deposits and withdrawals.
    """
    transaction_type: str
    client: AccountId
    tx: TransactionId
    amount: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    A validated, immutable transaction.

    Attributes:
        kind: Which of the closed set of kinds this is.
        account: Account the transaction applies to (0 for UNRECOGNIZED).
        tx_id: Transaction identifier; for DISPUTE/RESOLVE/CHARGEBACK this is
               the id of the referenced deposit.
        amount: Amount for DEPOSIT/WITHDRAWAL, None otherwise.
    """
    kind: TransactionKind
    account: AccountId = 0
    tx_id: TransactionId = 0
    amount: Optional[Amount] = None

    def __post_init__(self):
        if self.kind.carries_amount and self.amount is None:
            raise ValueError(f"{self.kind.value} requires an amount")
        if not self.kind.carries_amount and self.amount is not None:
            raise ValueError(f"{self.kind.value} does not carry an amount")

    @classmethod
    def unrecognized(cls) -> Transaction:
        return cls(TransactionKind.UNRECOGNIZED)

    @classmethod
    def from_record(cls, record: TransactionRecord) -> Transaction:
        """
        Build a Transaction from a decoded record.

        A deposit or withdrawal without an amount is treated as a zero amount.

        Raises:
            InvalidFormat: If the amount is malformed or negative
            InvalidPrecision: If the amount has too many decimal places
        """
        kind = _KINDS_BY_TYPE.get(record.transaction_type)
        if kind is None:
            return cls.unrecognized()
        if not kind.carries_amount:
            return cls(kind, record.client, record.tx)

        amount = Amount.zero() if record.amount is None else Amount.parse(record.amount)
        if amount.is_negative():
            raise InvalidFormat(f"{kind.value} amount must not be negative: {record.amount!r}")
        return cls(kind, record.client, record.tx, amount)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict (amounts as text)."""
        return {
            "type": self.kind.value,
            "client": self.account,
            "tx": self.tx_id,
            "amount": None if self.amount is None else str(self.amount),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Transaction:
        """Inverse of to_dict()."""
        amount = data["amount"]
        return cls(
            kind=TransactionKind(data["type"]),
            account=int(data["client"]),
            tx_id=int(data["tx"]),
            amount=None if amount is None else Amount(Decimal(amount)),
        )

    def __repr__(self) -> str:
        if self.kind is TransactionKind.UNRECOGNIZED:
            return "Transaction(unrecognized)"
        amount = f", amount={self.amount}" if self.amount is not None else ""
        return f"Transaction({self.kind.value}, client={self.account}, tx={self.tx_id}{amount})"


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class EngineConfig:
    """
    Store sizing shared by every transaction store in a run.

    Attributes:
        cache_size_limit: Resident transactions a store may hold; exceeding it
                          after an insert flushes every partition to disk.
        partition_width: Transaction ids per on-disk partition
                         (partition key = tx_id // partition_width).
    """
    cache_size_limit: int = DEFAULT_CACHE_SIZE_LIMIT
    partition_width: int = DEFAULT_PARTITION_WIDTH

    def __post_init__(self):
        if self.cache_size_limit < 0:
            raise ValueError(f"cache_size_limit must be >= 0, got {self.cache_size_limit}")
        if self.partition_width < 1:
            raise ValueError(f"partition_width must be >= 1, got {self.partition_width}")
