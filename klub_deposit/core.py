"""
Core types and pure functions for the deposit ledger.

This module provides the foundational data structures shared by every other module:
1. Protocols: StoreView for read-only access to persisted slots
2. Immutable records: ConfigurationRecord, PoolLedger, ClientRecord, ClientsList
3. Host types: Coin, Env, MessageInfo, Response, ReceiveMsg
4. Exceptions: ContractError and domain-specific error types
5. Amount arithmetic: Uint128-bounded checked_add / checked_sub
6. RecordChange: before/after snapshot of a single slot write

All functions in this module are pure. Nothing here can mutate stored state.
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from datetime import datetime
from typing import (
    Any, Dict, Hashable, Iterator, List, Optional, Protocol, Tuple,
    runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

CONTRACT_NAME = "crates.io:Klub-Deposit"
CONTRACT_VERSION = "0.1.0"

# Reserve asset accepted by deposit() unless overridden at setup.
DEFAULT_PAYMENT_DENOM = "upebble"

# Amounts are unsigned 128-bit integers on the wire.
UINT128_MAX = 2 ** 128 - 1

# Slot names. Singleton items are stored under ITEM_KEY.
CONFIG_SLOT = "config"
POOL_SLOT = "pool"
CLIENTS_SLOT = "clients"
CLIENTS_LIST_SLOT = "clients_list"
TOKEN_INFO_SLOT = "token_info"
BALANCE_SLOT = "balance"
CONTRACT_INFO_SLOT = "contract_info"

ITEM_KEY = None


# ============================================================================
# EXCEPTIONS
# ============================================================================

class ContractError(Exception):
    """Base exception for all contract errors."""
    pass


class WrongPaymentToken(ContractError):
    """Raised when no attached coin matches the accepted reserve denomination."""

    def __init__(self, accepted_denom: str = "", attached: Tuple[str, ...] = ()):
        self.accepted_denom = accepted_denom
        self.attached = tuple(attached)
        super().__init__(
            f"Wrong payment token: expected {accepted_denom!r}, got {list(self.attached)}"
        )


class UnexpectedFunds(ContractError):
    """Raised when coins other than the reserve denomination are attached and rejected."""
    pass


class InvalidZeroAmount(ContractError):
    """Raised when a token operation is requested for an amount of zero."""
    pass


class Unauthorized(ContractError):
    """Raised when an identity attempts an operation reserved for another identity."""
    pass


class CannotExceedCap(ContractError):
    """Raised when minting would push total supply above the minting cap."""
    pass


class InsufficientFunds(ContractError):
    """Raised when a debit is larger than the holder's balance."""
    pass


class AmountOverflow(ContractError):
    """Raised when amount arithmetic leaves the Uint128 range."""
    pass


class InvalidIdentity(ContractError):
    """Raised when an identity string is not in normalized form."""
    pass


class NotInstantiated(ContractError):
    """Raised when a required slot has never been written."""
    pass


class StaleRecord(ContractError):
    """Raised when a planned change no longer matches the stored value it was built from."""
    pass


# ============================================================================
# AMOUNT ARITHMETIC
# ============================================================================

def validate_amount(amount: Any, label: str = "amount") -> int:
    """
    Check that a value is a Uint128 amount.

    bool is rejected explicitly since it is an int subclass.

    Raises:
        ValueError: If the value is not an int in [0, UINT128_MAX]
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"{label} must be int, got {type(amount).__name__}")
    if amount < 0:
        raise ValueError(f"{label} must be non-negative, got {amount}")
    if amount > UINT128_MAX:
        raise ValueError(f"{label} exceeds Uint128 range: {amount}")
    return amount


def checked_add(a: int, b: int) -> int:
    """Add two amounts, raising AmountOverflow above UINT128_MAX."""
    result = a + b
    if result > UINT128_MAX:
        raise AmountOverflow(f"Cannot add {a} + {b}: exceeds Uint128")
    return result


def checked_sub(a: int, b: int) -> int:
    """Subtract two amounts, raising AmountOverflow below zero."""
    if b > a:
        raise AmountOverflow(f"Cannot sub {a} - {b}: underflow")
    return a - b


def validate_identity(identity: Any, label: str = "address") -> str:
    """
    Check that an identity is in normalized form.

    Normalized means a non-empty lowercase string without whitespace.
    Returns the identity unchanged.
    """
    if not isinstance(identity, str) or not identity:
        raise InvalidIdentity(f"Invalid {label}: empty")
    if any(ch.isspace() for ch in identity):
        raise InvalidIdentity(f"Invalid {label}: {identity!r} contains whitespace")
    if identity != identity.lower():
        raise InvalidIdentity(f"Invalid {label}: {identity!r} not normalized")
    return identity


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class StoreView(Protocol):
    """
    Read-only interface to persisted slots.

    Planning functions accept a StoreView to declare that they only read.
    The Store class implements this protocol but also provides mutation methods.
    """

    def may_load(self, slot: str, key: Hashable = ITEM_KEY) -> Optional[Any]:
        """Return the stored value, or None if nothing was saved."""
        ...

    def load(self, slot: str, key: Hashable = ITEM_KEY) -> Any:
        """Return the stored value, raising NotInstantiated if absent."""
        ...

    def has(self, slot: str, key: Hashable = ITEM_KEY) -> bool:
        """Return True if a value was saved under slot/key."""
        ...

    def keys(self, slot: str) -> List[Hashable]:
        """Return the keys of a map slot in insertion order."""
        ...


# ============================================================================
# HOST TYPES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Coin:
    """
    A quantity of a native denomination attached to a call.

    Attributes:
        denom: Denomination identifier (e.g., "upebble")
        amount: Uint128 amount
    """
    denom: str
    amount: int

    def __post_init__(self):
        if not self.denom or not self.denom.strip():
            raise ValueError("Coin denom cannot be empty")
        validate_amount(self.amount, "Coin amount")

    def __repr__(self) -> str:
        return f"Coin({self.amount}{self.denom})"


@dataclass(frozen=True, slots=True)
class Env:
    """
    Execution environment supplied by the host.

    Attributes:
        contract_address: Identity of this contract (the minting authority)
        block_time: Logical time of the call
        block_height: Monotonic block counter
    """
    contract_address: str
    block_time: datetime = datetime(1970, 1, 1)
    block_height: int = 0


@dataclass(frozen=True, slots=True)
class MessageInfo:
    """
    Caller identity and the coins attached to the call.

    Denominations are unique within funds; a list is accepted and frozen to a tuple.
    """
    sender: str
    funds: Tuple[Coin, ...] = ()

    def __post_init__(self):
        if not self.sender or not self.sender.strip():
            raise ValueError("MessageInfo sender cannot be empty")
        funds = tuple(self.funds)
        denoms = [c.denom for c in funds]
        if len(denoms) != len(set(denoms)):
            raise ValueError(f"Duplicate denominations in funds: {denoms}")
        object.__setattr__(self, 'funds', funds)


@dataclass(frozen=True, slots=True)
class ReceiveMsg:
    """
    Hook message delivered to a contract that receives tokens via send().

    Attributes:
        contract: Receiving contract identity
        sender: Identity that sent the tokens
        amount: Amount sent
        msg: Opaque payload forwarded to the receiver
    """
    contract: str
    sender: str
    amount: int
    msg: bytes = b""


def attr(key: str, value: Any) -> Tuple[str, str]:
    """Build a response attribute with a stringified value."""
    return (key, str(value))


@dataclass(frozen=True, slots=True)
class Response:
    """
    Result of an applied action: audit attributes plus outbound messages.

    Responses are immutable; add_attribute() and add_message() return new instances.
    """
    attributes: Tuple[Tuple[str, str], ...] = ()
    messages: Tuple[ReceiveMsg, ...] = ()

    def add_attribute(self, key: str, value: Any) -> Response:
        return Response(self.attributes + (attr(key, value),), self.messages)

    def add_message(self, message: ReceiveMsg) -> Response:
        return Response(self.attributes, self.messages + (message,))

    def get(self, key: str) -> Optional[str]:
        """Return the first attribute value for key, or None."""
        for k, v in self.attributes:
            if k == key:
                return v
        return None


# ============================================================================
# PERSISTED RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class ConfigurationRecord:
    """
    Contract configuration written once at setup.

    Attributes:
        admin: Identity that instantiated the contract
        financial_officer: Identity responsible for treasury operations
        accepted_denom: Reserve denomination accepted by deposit()
        min_withdrawal: Minimum amount for a future withdrawal
    """
    admin: str
    financial_officer: str
    accepted_denom: str
    min_withdrawal: int

    def __post_init__(self):
        validate_amount(self.min_withdrawal, "min_withdrawal")


@dataclass(frozen=True, slots=True)
class PoolLedger:
    """
    Aggregate pool totals.

    INVARIANT: total_staked <= total_amount. A future claim flow only lowers
    total_staked (moving the difference into total_pending_claim) until the
    claim settles.
    """
    total_amount: int = 0
    total_staked: int = 0
    total_pending_claim: int = 0

    def __post_init__(self):
        validate_amount(self.total_amount, "total_amount")
        validate_amount(self.total_staked, "total_staked")
        validate_amount(self.total_pending_claim, "total_pending_claim")
        if self.total_staked > self.total_amount:
            raise ValueError(
                f"total_staked {self.total_staked} exceeds total_amount {self.total_amount}"
            )


@dataclass(frozen=True, slots=True)
class ClientRecord:
    """Per-depositor stake. yield_generated is reserved for yield distribution."""
    staked_amount: int = 0
    yield_generated: int = 0

    def __post_init__(self):
        validate_amount(self.staked_amount, "staked_amount")
        validate_amount(self.yield_generated, "yield_generated")


@dataclass(frozen=True, slots=True)
class ClientsList:
    """Ordered, duplicate-free list of every depositor identity."""
    identities: Tuple[str, ...] = ()

    def __post_init__(self):
        identities = tuple(self.identities)
        if len(identities) != len(set(identities)):
            raise ValueError("ClientsList contains duplicate identities")
        object.__setattr__(self, 'identities', identities)

    def __contains__(self, identity: object) -> bool:
        return identity in self.identities

    def __iter__(self) -> Iterator[str]:
        return iter(self.identities)

    def __len__(self) -> int:
        return len(self.identities)

    def append(self, identity: str) -> ClientsList:
        """Return a new list with identity appended."""
        if identity in self.identities:
            raise ValueError(f"Identity {identity} already listed")
        return ClientsList(self.identities + (identity,))


@dataclass(frozen=True, slots=True)
class ContractVersion:
    """Name and version recorded at setup for migration bookkeeping."""
    contract: str
    version: str


# ============================================================================
# RECORD CHANGE
# ============================================================================

@dataclass(frozen=True, slots=True)
class RecordChange:
    """
    Before/after snapshot of one slot write.

    Planning functions return RecordChanges instead of writing. The store
    applies them only if old still matches what is stored, and keeps them
    in its journal for audit.

    Attributes:
        slot: Slot name
        key: Map key, or ITEM_KEY for singleton slots
        old: Stored value before the change (None if absent)
        new: Value to store
    """
    slot: str
    key: Hashable
    old: Any
    new: Any

    def changed_fields(self) -> Dict[str, Tuple[Any, Any]]:
        """
        Compute fields that differ between old and new.

        Returns:
            Dict mapping field name to (old_value, new_value) tuples.
            A newly created record reports every field with old_value None.
        """
        new_fields = {f.name: getattr(self.new, f.name) for f in fields(self.new)}
        if self.old is None:
            return {name: (None, value) for name, value in new_fields.items()}
        changes = {}
        for name, new_val in new_fields.items():
            old_val = getattr(self.old, name)
            if old_val != new_val:
                changes[name] = (old_val, new_val)
        return changes

    def __repr__(self) -> str:
        where = self.slot if self.key is ITEM_KEY else f"{self.slot}[{self.key}]"
        return f"RecordChange({where}: {self.old!r} → {self.new!r})"
