"""
registry.py - Client Registry

Single source of truth for each depositor's stake and for the ordered set of
known depositors. Client records (keyed by identity) and the client index are
only ever changed together, through upsert().

INVARIANT: an identity is in the index iff a ClientRecord exists for it,
and appears in the index at most once.
"""

from __future__ import annotations
from typing import Iterator, List, Optional, Tuple

from .core import (
    CLIENTS_SLOT, CLIENTS_LIST_SLOT, ITEM_KEY,
    ClientRecord, ClientsList, RecordChange, StoreView,
    checked_add, validate_amount,
)
from .store import Store

_REGISTRY_SLOTS = frozenset({CLIENTS_SLOT, CLIENTS_LIST_SLOT})


def plan_upsert(view: StoreView, identity: str, delta: int) -> Tuple[RecordChange, ...]:
    """
    Compute the registry writes for crediting delta to identity.

    An existing client gets its staked_amount incremented. A new client gets
    a fresh record and is appended to the index; both changes are returned
    so they are applied as one unit.

    Returns:
        One change for an existing client, two (index, record) for a new one

    Raises:
        NotInstantiated: If the client index was never set up
        AmountOverflow: If the stake would exceed Uint128
    """
    validate_amount(delta, "delta")
    existing = view.may_load(CLIENTS_SLOT, identity)
    if existing is not None:
        updated = ClientRecord(
            staked_amount=checked_add(existing.staked_amount, delta),
            yield_generated=existing.yield_generated,
        )
        return (RecordChange(CLIENTS_SLOT, identity, existing, updated),)

    index = view.load(CLIENTS_LIST_SLOT)
    return (
        RecordChange(CLIENTS_LIST_SLOT, ITEM_KEY, index, index.append(identity)),
        RecordChange(CLIENTS_SLOT, identity, None, ClientRecord(staked_amount=delta)),
    )


class ClientRegistry:
    """Client records and client index bound to a store."""

    def __init__(self, store: Store):
        self.store = store

    def initialize(self) -> ClientsList:
        """Write an empty client index."""
        index = ClientsList()
        self.store.save(CLIENTS_LIST_SLOT, index)
        return index

    def get(self, identity: str) -> Optional[ClientRecord]:
        return self.store.may_load(CLIENTS_SLOT, identity)

    def list_all(self) -> List[str]:
        """Every known depositor, in order of first deposit."""
        return list(self.store.load(CLIENTS_LIST_SLOT))

    def plan_upsert(self, identity: str, delta: int) -> Tuple[RecordChange, ...]:
        return plan_upsert(self.store, identity, delta)

    def commit(self, changes: Tuple[RecordChange, ...]) -> ClientRecord:
        """
        Apply changes produced by plan_upsert().

        Returns:
            The client's record after the change
        """
        stray = [c.slot for c in changes if c.slot not in _REGISTRY_SLOTS]
        if stray:
            raise ValueError(f"ClientRegistry cannot apply changes to slots {stray}")
        self.store.apply(changes)
        return next(c.new for c in changes if c.slot == CLIENTS_SLOT)

    def upsert(self, identity: str, delta: int) -> ClientRecord:
        """Credit delta to identity, creating and indexing the client if new."""
        return self.commit(self.plan_upsert(identity, delta))

    def total_staked(self) -> int:
        """Sum of staked_amount over every client record."""
        return sum(record.staked_amount for _, record in self.store.items(CLIENTS_SLOT))

    def records(self) -> Iterator[Tuple[str, ClientRecord]]:
        """Yield (identity, record) in index order."""
        for identity in self.list_all():
            yield identity, self.store.load(CLIENTS_SLOT, identity)

    def __contains__(self, identity: object) -> bool:
        return self.store.has(CLIENTS_SLOT, identity)

    def __len__(self) -> int:
        return len(self.store.keys(CLIENTS_SLOT))
