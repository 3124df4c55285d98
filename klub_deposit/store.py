"""
store.py - Transactional Key-Value Store

The Store class holds every persisted slot of the contract: configuration, pool,
client records, client index, and the receipt token's metadata and balances.

Key responsibilities:
    - Implements StoreView protocol for safe read-only access by planning functions
    - Provides transaction(): every write inside commits together or rolls back together
    - Applies planned RecordChanges with an old-value check
    - Keeps a journal of committed transactions (audit trail)
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Hashable, Iterable, Iterator, List, Optional, Tuple
import logging

from .core import (
    ITEM_KEY,
    RecordChange,
    NotInstantiated, StaleRecord,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Commit:
    """
    A committed transaction - represents FACT.

    Attributes:
        sequence: Monotonic sequence number within the store
        label: What the transaction did (e.g., "deposit", "transfer")
        changes: Every write performed, in order
        block_time: Logical time supplied by the caller (if any)
    """
    sequence: int
    label: str
    changes: Tuple[RecordChange, ...]
    block_time: Optional[datetime] = None

    def __repr__(self) -> str:
        return f"Commit(#{self.sequence} {self.label}: {len(self.changes)} changes)"


class Store:
    """
    In-memory transactional store with named slots.

    A slot is either a singleton item (stored under ITEM_KEY) or a map keyed by
    identity. Stored values are expected to be immutable records, so a snapshot
    only needs to copy the slot dictionaries.

    Thread Safety:
        Not thread-safe. Requests are processed one at a time.

    Example:
        store = Store("main")
        with store.transaction("setup"):
            store.save(POOL_SLOT, PoolLedger())
        store.load(POOL_SLOT)
    """

    def __init__(self, name: str = "main"):
        self.name = name
        self._slots: Dict[str, Dict[Hashable, Any]] = {}
        self.journal: List[Commit] = []
        self._next_sequence = 0
        # Writes made by the open transaction(s); empty when none is open
        self._pending: List[RecordChange] = []
        self._depth = 0

    # ========================================================================
    # StoreView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    def may_load(self, slot: str, key: Hashable = ITEM_KEY) -> Optional[Any]:
        return self._slots.get(slot, {}).get(key)

    def load(self, slot: str, key: Hashable = ITEM_KEY) -> Any:
        """
        Load a stored value.

        Raises:
            NotInstantiated: If nothing was saved under slot/key
        """
        entries = self._slots.get(slot, {})
        if key not in entries:
            where = slot if key is ITEM_KEY else f"{slot}[{key}]"
            raise NotInstantiated(f"{where} not found")
        return entries[key]

    def has(self, slot: str, key: Hashable = ITEM_KEY) -> bool:
        return key in self._slots.get(slot, {})

    def keys(self, slot: str) -> List[Hashable]:
        return list(self._slots.get(slot, {}).keys())

    def items(self, slot: str) -> List[Tuple[Hashable, Any]]:
        """Return (key, value) pairs of a map slot in insertion order."""
        return list(self._slots.get(slot, {}).items())

    def list_slots(self) -> List[str]:
        """List all slot names that hold at least one value."""
        return sorted(s for s, entries in self._slots.items() if entries)

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    # ========================================================================
    # WRITES (Mutating)
    # ========================================================================

    def save(self, slot: str, value: Any, key: Hashable = ITEM_KEY) -> RecordChange:
        """
        Store a value, replacing any previous one.

        Returns:
            The RecordChange describing the write
        """
        entries = self._slots.setdefault(slot, {})
        change = RecordChange(slot=slot, key=key, old=entries.get(key), new=value)
        entries[key] = value
        self._record(change)
        return change

    def apply(self, changes: Iterable[RecordChange]) -> None:
        """
        Apply planned changes atomically.

        Every change is checked before any is written, so a stale plan leaves
        the store untouched. Changes to the same key are checked in order, each
        against the value the previous one would leave.

        Raises:
            StaleRecord: If a change's old value no longer matches the store
        """
        changes = tuple(changes)
        staged: Dict[Tuple[str, Hashable], Any] = {}
        for change in changes:
            where = (change.slot, change.key)
            current = staged[where] if where in staged else self.may_load(change.slot, change.key)
            staged[where] = change.new
            if current != change.old:
                raise StaleRecord(
                    f"{change.slot}[{change.key}] changed since planning: "
                    f"expected {change.old!r}, found {current!r}"
                )
        for change in changes:
            self._slots.setdefault(change.slot, {})[change.key] = change.new
            self._record(change)

    def _record(self, change: RecordChange) -> None:
        if self._depth > 0:
            self._pending.append(change)
        else:
            # Write outside any transaction commits on its own
            self._commit("write", (change,), None)

    def _commit(self, label: str, changes: Tuple[RecordChange, ...], block_time: Optional[datetime]) -> None:
        if not changes:
            return
        self.journal.append(Commit(self._next_sequence, label, changes, block_time))
        self._next_sequence += 1

    # ========================================================================
    # TRANSACTIONS
    # ========================================================================

    def _snapshot(self) -> Dict[str, Dict[Hashable, Any]]:
        return {slot: dict(entries) for slot, entries in self._slots.items()}

    @contextmanager
    def transaction(self, label: str = "transaction", block_time: Optional[datetime] = None) -> Iterator[Store]:
        """
        Run a block of writes atomically.

        All writes succeed together or all are rolled back together. Nested
        transactions roll back only to their own starting point and re-raise;
        only the outermost transaction appends to the journal.

        Example:
            with store.transaction("deposit"):
                token.mint(...)
                registry.commit(...)
        """
        snapshot = self._snapshot()
        pending_mark = len(self._pending)
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._slots = snapshot
            del self._pending[pending_mark:]
            logger.debug("%s: rolled back %s", self.name, label)
            raise
        finally:
            self._depth -= 1
        if self._depth == 0:
            changes = tuple(self._pending)
            self._pending = []
            self._commit(label, changes, block_time)

    # ========================================================================
    # STORE OPERATIONS
    # ========================================================================

    def clone(self) -> Store:
        """
        Create an independent copy of this store.

        Records are immutable, so copying the slot dictionaries is enough for
        full independence. The journal is copied as well.
        """
        if self._depth:
            raise RuntimeError("Cannot clone a store with an open transaction")
        cloned = Store(self.name)
        cloned._slots = self._snapshot()
        cloned.journal = list(self.journal)
        cloned._next_sequence = self._next_sequence
        return cloned

    def replay(self) -> Store:
        """
        Rebuild a store by re-applying every journaled commit in order.

        Raises:
            StaleRecord: If the journal is inconsistent
        """
        replayed = Store(f"{self.name}_replayed")
        for commit in self.journal:
            with replayed.transaction(commit.label, commit.block_time):
                replayed.apply(commit.changes)
        return replayed

    def snapshot(self) -> Dict[str, Dict[Hashable, Any]]:
        """Return a copy of all slots, for comparing states in tests and audits."""
        return self._snapshot()
