"""
test_deposit_engine.py - Unit tests for deposit planning and processing

Tests:
- find_payment: denomination matching, extra-funds policies
- plan_deposit: pure planning against a FakeView
- process_deposit: mint-then-commit ordering and rollback on failure
- verify_invariants: detects pool/registry drift
"""

import logging

import pytest

from klub_deposit import (
    Coin, Env, ConfigurationRecord, PoolLedger, ClientRecord, ClientsList,
    ExtraFundsPolicy, find_payment, plan_deposit, process_deposit, verify_invariants,
    Pool, ClientRegistry, ReceiptToken, TokenInfo, MinterData,
    WrongPaymentToken, UnexpectedFunds, InvalidZeroAmount, Unauthorized,
    CannotExceedCap, InvalidIdentity, AmountOverflow, UINT128_MAX,
)
from klub_deposit.core import (
    CONFIG_SLOT, POOL_SLOT, CLIENTS_SLOT, CLIENTS_LIST_SLOT, TOKEN_INFO_SLOT, ITEM_KEY,
)
from klub_deposit.engine import DepositPlan

from tests.fake_view import FakeView
from tests.mocks import mock_env, ledger_state, MOCK_CONTRACT_ADDR

CONFIG = ConfigurationRecord("admin", "admin", "upebble", 5)


def view_with(pool=None, index=(), clients=None):
    return FakeView({
        CONFIG_SLOT: {ITEM_KEY: CONFIG},
        POOL_SLOT: {ITEM_KEY: pool or PoolLedger()},
        CLIENTS_LIST_SLOT: {ITEM_KEY: ClientsList(tuple(index))},
        CLIENTS_SLOT: dict(clients or {}),
    })


# =============================================================================
# find_payment
# =============================================================================

class TestFindPayment:

    def test_single_matching_coin(self):
        payment, others = find_payment(CONFIG, [Coin("upebble", 10)])
        assert payment == Coin("upebble", 10)
        assert others == ()

    def test_no_funds(self):
        with pytest.raises(WrongPaymentToken) as exc_info:
            find_payment(CONFIG, [])
        assert exc_info.value.accepted_denom == "upebble"
        assert exc_info.value.attached == ()

    def test_wrong_denom_reports_attached(self):
        with pytest.raises(WrongPaymentToken) as exc_info:
            find_payment(CONFIG, [Coin("utokenfail", 100)])
        assert exc_info.value.attached == ("utokenfail",)

    def test_extra_denoms_ignored_by_default(self):
        payment, others = find_payment(CONFIG, [Coin("uatom", 3), Coin("upebble", 10)])
        assert payment == Coin("upebble", 10)
        assert others == (Coin("uatom", 3),)

    def test_extra_denoms_rejected(self):
        with pytest.raises(UnexpectedFunds, match="uatom"):
            find_payment(CONFIG, [Coin("upebble", 10), Coin("uatom", 3)], ExtraFundsPolicy.REJECT)

    def test_reject_policy_accepts_single_coin(self):
        payment, _ = find_payment(CONFIG, [Coin("upebble", 10)], ExtraFundsPolicy.REJECT)
        assert payment.amount == 10


# =============================================================================
# plan_deposit
# =============================================================================

class TestPlanDeposit:

    def test_first_deposit_plan(self):
        plan = plan_deposit(view_with(), "alice", [Coin("upebble", 100)])

        assert isinstance(plan, DepositPlan)
        assert plan.quantity == 100
        assert plan.is_new_client
        assert plan.pool_change.new == PoolLedger(100, 100, 0)
        assert plan.registry_changes[-1].new == ClientRecord(100, 0)
        assert len(plan.changes) == 3

    def test_repeat_deposit_plan(self):
        view = view_with(PoolLedger(100, 100), ["alice"], {"alice": ClientRecord(100)})
        plan = plan_deposit(view, "alice", [Coin("upebble", 50)])

        assert not plan.is_new_client
        assert plan.pool_change.new == PoolLedger(150, 150, 0)
        assert [c.new for c in plan.registry_changes] == [ClientRecord(150, 0)]

    def test_plan_only_reads(self):
        view = view_with()
        before = {slot: dict(entries) for slot, entries in view._slots.items()}
        plan_deposit(view, "alice", [Coin("upebble", 1)])
        assert view._slots == before

    def test_wrong_denom_fails_before_reading_state(self):
        view = view_with()
        with pytest.raises(WrongPaymentToken):
            plan_deposit(view, "alice", [Coin("uatom", 1)])
        assert view.reads == [(CONFIG_SLOT, ITEM_KEY)]

    def test_ignored_funds_carried_on_plan(self):
        plan = plan_deposit(view_with(), "alice", [Coin("upebble", 1), Coin("uatom", 2)])
        assert plan.ignored_funds == (Coin("uatom", 2),)

    def test_pool_overflow(self):
        view = view_with(PoolLedger(UINT128_MAX, UINT128_MAX), ["bob"], {"bob": ClientRecord(UINT128_MAX)})
        with pytest.raises(AmountOverflow):
            plan_deposit(view, "alice", [Coin("upebble", 1)])


# =============================================================================
# process_deposit
# =============================================================================

class TestProcessDeposit:

    def test_response_attributes(self, store):
        res = process_deposit(store, mock_env(), "alice", [Coin("upebble", 7)])
        assert res.attributes == (
            ("action", "Deposit"),
            ("quantity_minted", "7"),
            ("address_to_mint", "alice"),
        )

    def test_zero_deposit_leaves_no_trace(self, store):
        before = ledger_state(store)
        with pytest.raises(InvalidZeroAmount):
            process_deposit(store, mock_env(), "alice", [Coin("upebble", 0)])
        assert ledger_state(store) == before
        assert "alice" not in ClientRegistry(store)

    def test_wrong_minting_authority_rolls_back(self, store):
        env = mock_env()
        foreign = Env(contract_address="someone_else", block_time=env.block_time)
        before = ledger_state(store)
        with pytest.raises(Unauthorized):
            process_deposit(store, foreign, "alice", [Coin("upebble", 10)])
        assert ledger_state(store) == before

    def test_cap_exceeded_rolls_back(self, store):
        info = ReceiptToken(store).metadata()
        store.save(TOKEN_INFO_SLOT, TokenInfo(
            info.name, info.symbol, info.decimals, 0, MinterData(MOCK_CONTRACT_ADDR, cap=50),
        ))
        process_deposit(store, mock_env(), "alice", [Coin("upebble", 40)])
        before = ledger_state(store)

        with pytest.raises(CannotExceedCap):
            process_deposit(store, mock_env(), "bob", [Coin("upebble", 20)])

        assert ledger_state(store) == before
        assert Pool(store).get() == PoolLedger(40, 40)

    def test_invalid_depositor_rolls_back(self, store):
        before = ledger_state(store)
        with pytest.raises(InvalidIdentity):
            process_deposit(store, mock_env(), "Alice", [Coin("upebble", 10)])
        assert ledger_state(store) == before

    def test_reject_policy_writes_nothing(self, store):
        before = ledger_state(store)
        with pytest.raises(UnexpectedFunds):
            process_deposit(store, mock_env(), "alice",
                            [Coin("upebble", 10), Coin("uatom", 1)], ExtraFundsPolicy.REJECT)
        assert ledger_state(store) == before

    def test_ignored_funds_logged(self, store, caplog):
        with caplog.at_level(logging.INFO, logger="klub_deposit.engine"):
            process_deposit(store, mock_env(), "alice", [Coin("upebble", 10), Coin("uatom", 1)])
        assert "ignoring attached" in caplog.text
        assert Pool(store).get().total_amount == 10

    def test_single_journal_commit(self, store):
        journal_len = len(store.journal)
        process_deposit(store, mock_env(), "alice", [Coin("upebble", 10)])
        assert len(store.journal) == journal_len + 1
        commit = store.journal[-1]
        assert commit.label == "deposit"
        assert commit.block_time == mock_env().block_time
        assert {c.slot for c in commit.changes} == {
            TOKEN_INFO_SLOT, "balance", POOL_SLOT, CLIENTS_SLOT, CLIENTS_LIST_SLOT,
        }


# =============================================================================
# verify_invariants
# =============================================================================

class TestVerifyInvariants:

    def test_valid_after_deposits(self, funded_store):
        result = verify_invariants(funded_store)
        assert result['valid'], result['violations']
        assert result['total_staked'] == 150
        assert result['clients_staked'] == 150

    def test_detects_pool_drift(self, funded_store):
        funded_store.save(POOL_SLOT, PoolLedger(200, 160))
        result = verify_invariants(funded_store)
        assert not result['valid']
        assert any("client stakes" in v for v in result['violations'])

    def test_detects_unindexed_record(self, funded_store):
        funded_store.save(CLIENTS_SLOT, ClientRecord(0), key="carol")
        result = verify_invariants(funded_store)
        assert not result['valid']
        assert any("carol" in v for v in result['violations'])
