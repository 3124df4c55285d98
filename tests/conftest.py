"""
conftest.py - Shared pytest fixtures for deposit ledger tests

Provides common fixtures used across unit, functional and conformance tests:
- Stores (empty, instantiated, funded)
- Host environment
"""

import pytest

from klub_deposit import Store

from tests.mocks import mock_env, deposit, instantiated_store


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def env():
    return mock_env()


@pytest.fixture
def empty_store():
    """Fresh store with nothing written."""
    return Store("test")


@pytest.fixture
def store():
    """Store instantiated with the KJuno / Klubj setup by ADDR1."""
    return instantiated_store()


@pytest.fixture
def funded_store(store):
    """Instantiated store where alice deposited 100 and bob 50."""
    deposit(store, "alice", 100)
    deposit(store, "bob", 50)
    return store
