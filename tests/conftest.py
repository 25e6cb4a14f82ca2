"""
conftest.py - Shared pytest fixtures for ledger engine tests

Provides:
- Small EngineConfig values that force frequent spills
- Store, account and registry fixtures that clean up their temp directories
"""

import pytest

from ledger_engine import Account, EngineConfig, LedgerRegistry, TransactionStore

from helpers import deposit


@pytest.fixture
def small_config():
    """Config that spills after 4 resident transactions, 8 ids per partition."""
    return EngineConfig(cache_size_limit=4, partition_width=8)


@pytest.fixture
def store(small_config):
    s = TransactionStore(small_config)
    yield s
    s.close()


@pytest.fixture
def account(small_config):
    a = Account(1, small_config)
    yield a
    a.close()


@pytest.fixture
def funded_account(account):
    """Account 1 with a 100 deposit under tx 1."""
    account.deposit(deposit(1, 1, "100"))
    return account


@pytest.fixture
def registry():
    r = LedgerRegistry()
    yield r
    r.close()


@pytest.fixture
def small_registry(small_config):
    r = LedgerRegistry(small_config)
    yield r
    r.close()
