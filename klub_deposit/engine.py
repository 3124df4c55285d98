"""
engine.py - Deposit Accounting Engine

Processes one incoming deposit of the reserve asset:

1. plan_deposit() - pure: validate funds, compute pool and registry changes
2. process_deposit() - mint receipt tokens, then commit the planned changes

Local changes are planned before the external mint and committed only after
the mint succeeds; the whole call also runs inside one store transaction, so
any failure leaves pool, registry, and token supply untouched.

Pattern:
    deposit 100 upebble from alice
        pool:     total_amount += 100, total_staked += 100
        clients:  alice.staked_amount += 100  (created + indexed if new)
        token:    mint(contract, alice, 100)
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Sequence, Tuple
import logging

from .core import (
    CONFIG_SLOT, CLIENTS_SLOT, CLIENTS_LIST_SLOT, POOL_SLOT,
    Coin, ConfigurationRecord, Env, RecordChange, Response, StoreView,
    WrongPaymentToken, UnexpectedFunds,
)
from .pool import Pool, plan_pool_deposit
from .registry import ClientRegistry, plan_upsert
from .store import Store
from .token import ReceiptToken

logger = logging.getLogger(__name__)


class ExtraFundsPolicy(Enum):
    """
    What to do with coins attached alongside the reserve denomination.

    IGNORE: Accept the deposit; the extra coins stay with the contract unaccounted.
    REJECT: Fail the deposit with UnexpectedFunds before any mutation.
    """
    IGNORE = "ignore"
    REJECT = "reject"


@dataclass(frozen=True, slots=True)
class DepositPlan:
    """
    Everything a deposit will do, computed before anything is written.

    Attributes:
        depositor: Identity credited with the deposit
        quantity: Reserve amount deposited and receipt amount to mint
        pool_change: Update of the pool totals
        registry_changes: Client record update (plus index append for a new client)
        ignored_funds: Attached coins of other denominations
    """
    depositor: str
    quantity: int
    pool_change: RecordChange
    registry_changes: Tuple[RecordChange, ...]
    ignored_funds: Tuple[Coin, ...] = ()

    @property
    def is_new_client(self) -> bool:
        return any(c.slot == CLIENTS_LIST_SLOT for c in self.registry_changes)

    @property
    def changes(self) -> Tuple[RecordChange, ...]:
        return (self.pool_change,) + self.registry_changes


def find_payment(
    config: ConfigurationRecord,
    funds: Sequence[Coin],
    policy: ExtraFundsPolicy = ExtraFundsPolicy.IGNORE,
) -> Tuple[Coin, Tuple[Coin, ...]]:
    """
    Pick the reserve coin out of the attached funds.

    Returns:
        (payment, other coins)

    Raises:
        WrongPaymentToken: If no coin has the accepted denomination
        UnexpectedFunds: If other coins are attached under ExtraFundsPolicy.REJECT
    """
    payment = next((c for c in funds if c.denom == config.accepted_denom), None)
    if payment is None:
        raise WrongPaymentToken(config.accepted_denom, tuple(c.denom for c in funds))
    others = tuple(c for c in funds if c.denom != config.accepted_denom)
    if others and policy is ExtraFundsPolicy.REJECT:
        raise UnexpectedFunds(
            f"Only {config.accepted_denom} accepted, also got {[c.denom for c in others]}"
        )
    return payment, others


def plan_deposit(
    view: StoreView,
    depositor: str,
    funds: Sequence[Coin],
    policy: ExtraFundsPolicy = ExtraFundsPolicy.IGNORE,
) -> DepositPlan:
    """
    Validate a deposit and compute its pool and registry changes.

    Pure: reads the view, writes nothing.

    Args:
        view: Read-only store access
        depositor: Caller identity supplied by the host
        funds: Coins attached to the call
        policy: Treatment of coins other than the reserve denomination

    Returns:
        DepositPlan ready for process_deposit() to commit

    Raises:
        WrongPaymentToken: If no attached coin has the accepted denomination
        UnexpectedFunds: If policy is REJECT and other coins are attached
        AmountOverflow: If a pool or client total would exceed Uint128
    """
    config = view.load(CONFIG_SLOT)
    payment, others = find_payment(config, funds, policy)
    quantity = payment.amount
    return DepositPlan(
        depositor=depositor,
        quantity=quantity,
        pool_change=plan_pool_deposit(view, quantity),
        registry_changes=plan_upsert(view, depositor, quantity),
        ignored_funds=others,
    )


def process_deposit(
    store: Store,
    env: Env,
    depositor: str,
    funds: Sequence[Coin],
    policy: ExtraFundsPolicy = ExtraFundsPolicy.IGNORE,
) -> Response:
    """
    Apply one deposit: credit pool and client, mint receipt tokens 1:1.

    Args:
        store: Contract store
        env: Host environment; env.contract_address is the minting authority
        depositor: Caller identity supplied by the host
        funds: Coins attached to the call
        policy: Treatment of coins other than the reserve denomination

    Returns:
        Response with action, quantity_minted and address_to_mint attributes

    Raises:
        WrongPaymentToken: Before any mutation, if the reserve coin is missing
        Any error from the mint (InvalidZeroAmount, Unauthorized, ...), after
        which every write of this call is rolled back
    """
    plan = plan_deposit(store, depositor, funds, policy)
    if plan.ignored_funds:
        logger.info("deposit from %s: ignoring attached %s", depositor, list(plan.ignored_funds))

    with store.transaction("deposit", env.block_time):
        ReceiptToken(store).mint(env.contract_address, depositor, plan.quantity)
        Pool(store).commit(plan.pool_change)
        ClientRegistry(store).commit(plan.registry_changes)

    return (Response()
            .add_attribute("action", "Deposit")
            .add_attribute("quantity_minted", plan.quantity)
            .add_attribute("address_to_mint", depositor))


def verify_invariants(view: StoreView) -> Dict[str, Any]:
    """
    Verify that the pool mirrors the client registry.

    Checks:
    1. total_staked <= total_amount
    2. total_staked == sum of client staked_amount
    3. Every indexed identity has a record and every record is indexed

    Returns:
        Dict with keys:
        - 'valid': bool - True if every invariant holds
        - 'total_staked': int - Pool's recorded stake
        - 'clients_staked': int - Sum over client records
        - 'violations': List[str] - Description of each failed check

    Example:
        result = verify_invariants(store)
        assert result['valid'], result['violations']
    """
    pool = view.load(POOL_SLOT)
    index = list(view.load(CLIENTS_LIST_SLOT))
    record_ids = view.keys(CLIENTS_SLOT)
    clients_staked = sum(view.load(CLIENTS_SLOT, i).staked_amount for i in record_ids)
    violations: List[str] = []

    if pool.total_staked > pool.total_amount:
        violations.append(f"total_staked {pool.total_staked} > total_amount {pool.total_amount}")
    if pool.total_staked != clients_staked:
        violations.append(f"total_staked {pool.total_staked} != client stakes {clients_staked}")
    missing = [i for i in index if i not in record_ids]
    unindexed = [i for i in record_ids if i not in index]
    if missing:
        violations.append(f"indexed without record: {missing}")
    if unindexed:
        violations.append(f"record without index entry: {unindexed}")

    return {
        'valid': not violations,
        'total_staked': pool.total_staked,
        'clients_staked': clients_staked,
        'violations': violations,
    }
