"""
test_processing_scenarios.py - End-to-end record processing scenarios

Tests complete transaction streams through LedgerRegistry.process_record:
- Long deposit and deposit/withdrawal loops
- Duplicate records interleaved with valid ones
- Dispute / resolve / chargeback sequences
- The same streams with stores small enough to spill constantly
"""

import pytest

from ledger_engine import (
    EngineConfig, LedgerRegistry, RecordRejected,
    AccountLocked, AlreadyDisputed, InsufficientFunds, TransactionNotFound,
)

from helpers import assert_balances, record


SPILLING = EngineConfig(cache_size_limit=64, partition_width=16)

DEPOSIT_ID = 8 * 1024


@pytest.fixture(params=[None, SPILLING], ids=["default", "spilling"])
def processor(request):
    """LedgerRegistry with default sizing and with constantly spilling stores."""
    r = LedgerRegistry(request.param)
    yield r
    r.close()


class TestLoops:
    """Tests for long runs of simple transactions."""

    def test_deposit_loop(self, processor):
        for tx_id in range(1024):
            processor.process_record(record("deposit", 1, tx_id, "1"))

        assert len(processor) == 1
        assert_balances(processor.get(1), "1024", "0", "1024")

    def test_deposit_withdraw_loop(self, processor):
        for i in range(2048):
            processor.process_record(record("deposit", 1, i * 2, "1"))
            processor.process_record(record("withdrawal", 1, i * 2 + 1, "1"))

        assert len(processor) == 1
        assert_balances(processor.get(1), "0", "0", "0")

    def test_duplicate_transactions_do_nothing(self, processor):
        for i in range(2048):
            deposit = record("deposit", 1, i * 2, "1")
            processor.process_record(deposit)
            with pytest.raises(RecordRejected):
                processor.process_record(deposit)

            withdrawal = record("withdrawal", 1, i * 2 + 1, "1")
            processor.process_record(withdrawal)
            with pytest.raises(RecordRejected):
                processor.process_record(withdrawal)

        assert_balances(processor.get(1), "0", "0", "0")

    def test_many_accounts(self, processor):
        for tx_id in range(600):
            processor.process_record(record("deposit", tx_id % 7, tx_id, "0.5"))
        snapshots = processor.finalize()
        assert [s.account for s in snapshots] == list(range(7))
        assert processor.verify_balances()['valid']


class TestDisputeScenarios:
    """Tests for dispute lifecycles on a single deposit."""

    def test_deposit_dispute_withdraw_resolve_withdraw(self, processor):
        processor.process_record(record("deposit", 1, DEPOSIT_ID, "1"))
        processor.process_record(record("dispute", 1, DEPOSIT_ID))

        with pytest.raises(InsufficientFunds):
            processor.process_record(record("withdrawal", 1, DEPOSIT_ID + 1, "1"))

        processor.process_record(record("resolve", 1, DEPOSIT_ID))
        with pytest.raises(TransactionNotFound):
            processor.process_record(record("resolve", 1, DEPOSIT_ID))

        processor.process_record(record("withdrawal", 1, DEPOSIT_ID + 1, "1"))
        assert_balances(processor.get(1), "0", "0", "0")

    def test_deposit_dispute_twice_resolve_twice(self, processor):
        processor.process_record(record("deposit", 1, DEPOSIT_ID, "1"))

        processor.process_record(record("dispute", 1, DEPOSIT_ID))
        with pytest.raises(AlreadyDisputed):
            processor.process_record(record("dispute", 1, DEPOSIT_ID))

        processor.process_record(record("resolve", 1, DEPOSIT_ID))
        with pytest.raises(TransactionNotFound):
            processor.process_record(record("resolve", 1, DEPOSIT_ID))

        assert_balances(processor.get(1), "1", "0", "1")

    def test_deposit_dispute_withdraw_chargeback_withdraw(self, processor):
        processor.process_record(record("deposit", 1, DEPOSIT_ID, "1"))
        processor.process_record(record("dispute", 1, DEPOSIT_ID))

        with pytest.raises(InsufficientFunds):
            processor.process_record(record("withdrawal", 1, DEPOSIT_ID + 1, "1"))

        processor.process_record(record("chargeback", 1, DEPOSIT_ID))
        with pytest.raises(AccountLocked):
            processor.process_record(record("chargeback", 1, DEPOSIT_ID))

        with pytest.raises(AccountLocked):
            processor.process_record(record("withdrawal", 1, DEPOSIT_ID + 1, "1"))

        assert_balances(processor.get(1), "0", "0", "0", locked=True)

    def test_dispute_deposit_buried_under_later_history(self, processor):
        """The disputed deposit has long since been spilled when the dispute arrives."""
        processor.process_record(record("deposit", 1, 0, "250.1234"))
        for tx_id in range(1, 500):
            processor.process_record(record("deposit", 1, tx_id, "1"))

        processor.process_record(record("dispute", 1, 0))
        assert_balances(processor.get(1), "499", "250.1234", "749.1234")
        processor.process_record(record("chargeback", 1, 0))
        assert_balances(processor.get(1), "499", "0", "499", locked=True)


class TestPrecision:
    """Tests for exact four-place arithmetic over long streams."""

    def test_small_amounts_accumulate_exactly(self, processor):
        for tx_id in range(10_000):
            processor.process_record(record("deposit", 1, tx_id, "0.0001"))
        assert_balances(processor.get(1), "1", "0", "1")

    def test_mixed_scales(self, processor):
        processor.process_record(record("deposit", 1, 1, "1.1"))
        processor.process_record(record("deposit", 1, 2, "2.22"))
        processor.process_record(record("deposit", 1, 3, "3.333"))
        processor.process_record(record("withdrawal", 1, 4, "0.0003"))
        snapshot = processor.finalize()[0]
        assert snapshot.as_row() == ["1", "6.6527", "0.0000", "6.6527", "false"]
