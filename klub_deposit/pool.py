"""
pool.py - Pool Ledger

Aggregate accounting mirror of the client registry: total reserve held,
total reserve staked, and total pending claims.

record_deposit() is the only mutator. A claim flow would be the only other
writer; it lowers total_staked without lowering total_amount until the claim
settles, which is why the pool keeps three totals.
"""

from __future__ import annotations

from .core import (
    POOL_SLOT, ITEM_KEY,
    PoolLedger, RecordChange, StoreView,
    checked_add, validate_amount,
)
from .store import Store


def plan_pool_deposit(view: StoreView, quantity: int) -> RecordChange:
    """
    Compute the pool update for a deposit without writing it.

    Raises:
        NotInstantiated: If the pool was never set up
        AmountOverflow: If either total would exceed Uint128
    """
    validate_amount(quantity, "quantity")
    pool = view.load(POOL_SLOT)
    updated = PoolLedger(
        total_amount=checked_add(pool.total_amount, quantity),
        total_staked=checked_add(pool.total_staked, quantity),
        total_pending_claim=pool.total_pending_claim,
    )
    return RecordChange(slot=POOL_SLOT, key=ITEM_KEY, old=pool, new=updated)


class Pool:
    """Pool ledger bound to a store."""

    def __init__(self, store: Store):
        self.store = store

    def initialize(self) -> PoolLedger:
        """Write a zeroed pool."""
        pool = PoolLedger()
        self.store.save(POOL_SLOT, pool)
        return pool

    def get(self) -> PoolLedger:
        return self.store.load(POOL_SLOT)

    def plan_deposit(self, quantity: int) -> RecordChange:
        return plan_pool_deposit(self.store, quantity)

    def commit(self, change: RecordChange) -> PoolLedger:
        """Apply a change produced by plan_deposit()."""
        if change.slot != POOL_SLOT:
            raise ValueError(f"Pool cannot apply a change to slot {change.slot}")
        self.store.apply((change,))
        return change.new

    def record_deposit(self, quantity: int) -> PoolLedger:
        """Increment total_amount and total_staked by quantity."""
        return self.commit(self.plan_deposit(quantity))
