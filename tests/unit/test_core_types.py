"""
test_core_types.py - Unit tests for core data structures

Tests:
- Coin, MessageInfo: creation, validation, immutability
- PoolLedger, ClientRecord, ClientsList: invariants on construction
- Amount arithmetic: Uint128 bounds
- validate_identity: normalized form
- RecordChange, Response
"""

import pytest
from dataclasses import FrozenInstanceError

from klub_deposit import (
    Coin, MessageInfo, Response, ReceiveMsg, attr,
    PoolLedger, ClientRecord, ClientsList, RecordChange,
    AmountOverflow, InvalidIdentity,
    checked_add, checked_sub, validate_amount, validate_identity,
    UINT128_MAX,
)
from klub_deposit.core import POOL_SLOT, CLIENTS_SLOT, ITEM_KEY


class TestCoin:

    def test_create_valid_coin(self):
        coin = Coin("upebble", 100)
        assert coin.denom == "upebble"
        assert coin.amount == 100

    def test_zero_amount_allowed(self):
        assert Coin("upebble", 0).amount == 0

    def test_negative_amount_raises(self):
        with pytest.raises(ValueError, match="non-negative"):
            Coin("upebble", -1)

    def test_float_amount_raises(self):
        with pytest.raises(ValueError, match="must be int"):
            Coin("upebble", 1.5)

    def test_bool_amount_raises(self):
        with pytest.raises(ValueError, match="must be int"):
            Coin("upebble", True)

    def test_empty_denom_raises(self):
        with pytest.raises(ValueError, match="denom cannot be empty"):
            Coin("  ", 1)

    def test_immutable(self):
        coin = Coin("upebble", 1)
        with pytest.raises(FrozenInstanceError):
            coin.amount = 2


class TestMessageInfo:

    def test_funds_frozen_to_tuple(self):
        info = MessageInfo("alice", [Coin("upebble", 1)])
        assert info.funds == (Coin("upebble", 1),)

    def test_no_funds(self):
        assert MessageInfo("alice").funds == ()

    def test_duplicate_denoms_raise(self):
        with pytest.raises(ValueError, match="Duplicate denominations"):
            MessageInfo("alice", [Coin("upebble", 1), Coin("upebble", 2)])

    def test_empty_sender_raises(self):
        with pytest.raises(ValueError, match="sender cannot be empty"):
            MessageInfo("")


class TestRecords:

    def test_pool_defaults_to_zero(self):
        pool = PoolLedger()
        assert (pool.total_amount, pool.total_staked, pool.total_pending_claim) == (0, 0, 0)

    def test_pool_staked_cannot_exceed_amount(self):
        with pytest.raises(ValueError, match="exceeds total_amount"):
            PoolLedger(total_amount=10, total_staked=11)

    def test_pool_staked_below_amount_allowed(self):
        pool = PoolLedger(total_amount=10, total_staked=4, total_pending_claim=6)
        assert pool.total_staked == 4

    def test_client_record_defaults(self):
        assert ClientRecord() == ClientRecord(staked_amount=0, yield_generated=0)

    def test_clients_list_append_returns_new(self):
        empty = ClientsList()
        one = empty.append("alice")
        assert list(empty) == []
        assert list(one) == ["alice"]
        assert "alice" in one
        assert len(one) == 1

    def test_clients_list_append_duplicate_raises(self):
        with pytest.raises(ValueError, match="already listed"):
            ClientsList(("alice",)).append("alice")

    def test_clients_list_rejects_duplicates(self):
        with pytest.raises(ValueError, match="duplicate"):
            ClientsList(("alice", "bob", "alice"))

    def test_clients_list_preserves_order(self):
        index = ClientsList().append("carol").append("alice").append("bob")
        assert list(index) == ["carol", "alice", "bob"]


class TestAmountArithmetic:

    def test_checked_add(self):
        assert checked_add(2, 3) == 5

    def test_checked_add_at_max(self):
        assert checked_add(UINT128_MAX - 1, 1) == UINT128_MAX

    def test_checked_add_overflow(self):
        with pytest.raises(AmountOverflow):
            checked_add(UINT128_MAX, 1)

    def test_checked_sub(self):
        assert checked_sub(5, 3) == 2

    def test_checked_sub_underflow(self):
        with pytest.raises(AmountOverflow):
            checked_sub(3, 5)

    def test_validate_amount_range(self):
        assert validate_amount(UINT128_MAX) == UINT128_MAX
        with pytest.raises(ValueError, match="exceeds Uint128"):
            validate_amount(UINT128_MAX + 1)


class TestValidateIdentity:

    @pytest.mark.parametrize("identity", ["alice", "wasm1p98s59lc86eycdnk09c0jhdv2p9k6m0hrcf4zs"])
    def test_valid(self, identity):
        assert validate_identity(identity) == identity

    @pytest.mark.parametrize("identity", ["", "Alice", "al ice", None, 42])
    def test_invalid(self, identity):
        with pytest.raises(InvalidIdentity):
            validate_identity(identity)


class TestRecordChange:

    def test_changed_fields_update(self):
        change = RecordChange(POOL_SLOT, ITEM_KEY, PoolLedger(10, 10), PoolLedger(15, 15))
        assert change.changed_fields() == {
            "total_amount": (10, 15),
            "total_staked": (10, 15),
        }

    def test_changed_fields_create(self):
        change = RecordChange(CLIENTS_SLOT, "alice", None, ClientRecord(5))
        assert change.changed_fields() == {
            "staked_amount": (None, 5),
            "yield_generated": (None, 0),
        }

    def test_repr_names_key(self):
        change = RecordChange(CLIENTS_SLOT, "alice", None, ClientRecord(5))
        assert "clients[alice]" in repr(change)


class TestResponse:

    def test_add_attribute_stringifies(self):
        res = Response().add_attribute("amount", 100)
        assert res.attributes == (("amount", "100"),)
        assert res.attributes[0] == attr("amount", 100)

    def test_add_attribute_returns_new(self):
        base = Response()
        base.add_attribute("action", "x")
        assert base.attributes == ()

    def test_get(self):
        res = Response().add_attribute("action", "mint").add_attribute("to", "bob")
        assert res.get("to") == "bob"
        assert res.get("missing") is None

    def test_add_message(self):
        msg = ReceiveMsg(contract="vault", sender="alice", amount=5)
        assert Response().add_message(msg).messages == (msg,)
