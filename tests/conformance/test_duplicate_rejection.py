"""
Duplicate Rejection Conformance Tests

INVARIANT: A transaction id is applied at most once per account.

    ∀ account A, ∀ transaction id t:
        deposit/withdrawal t applied ⟹ any later deposit/withdrawal t is rejected
        state after the rejected repeat = state before it

Duplicate detection must hold even when the first occurrence has been
spilled to disk.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ledger_engine import (
    DuplicateTransaction, EngineConfig, LedgerRegistry,
    Transaction, TransactionKind,
)

from helpers import amt

from .strategies import amounts


TINY = EngineConfig(cache_size_limit=1, partition_width=2)


class TestDuplicateRejectionProperties:
    """Property-based duplicate detection tests."""

    @given(
        st.lists(st.integers(min_value=0, max_value=200), min_size=1, max_size=60),
        amounts(max_units=10),
    )
    @settings(max_examples=75, deadline=None)
    def test_each_id_deposited_once(self, tx_ids, amount):
        """
        PROPERTY: Only the first deposit of each id is credited.
        """
        accepted = set()
        with LedgerRegistry(TINY) as registry:
            for tx_id in tx_ids:
                tx = Transaction(TransactionKind.DEPOSIT, 1, tx_id, amount)
                try:
                    registry.route(tx)
                    assert tx_id not in accepted
                    accepted.add(tx_id)
                except DuplicateTransaction:
                    assert tx_id in accepted
            total = registry.get(1).total.value
        assert total == amount.value * len(accepted)

    @given(st.integers(min_value=1, max_value=50), st.integers(min_value=0, max_value=50))
    @settings(max_examples=50, deadline=None)
    def test_withdrawal_cannot_reuse_deposit_id(self, tx_id, filler):
        """
        PROPERTY: Deposits and withdrawals share one id space per account.
        """
        with LedgerRegistry(TINY) as registry:
            registry.route(Transaction(TransactionKind.DEPOSIT, 1, tx_id, amt("100")))
            # Push the original deposit out to disk
            for offset in range(filler):
                registry.route(Transaction(TransactionKind.DEPOSIT, 1, 1000 + offset, amt("1")))
            before = registry.get(1).snapshot()
            with pytest.raises(DuplicateTransaction):
                registry.route(Transaction(TransactionKind.WITHDRAWAL, 1, tx_id, amt("1")))
            assert registry.get(1).snapshot() == before
