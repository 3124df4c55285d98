"""
token.py - Receipt Token Ledger

A fungible token ledger with CW20 semantics: mint, transfer, burn, send,
balance and token info. Its metadata and balances live in the shared Store,
so a deposit's mint commits or rolls back together with the pool and
registry writes.

Every mutating operation:
    - Rejects a zero amount (InvalidZeroAmount)
    - Computes every new value before writing anything
    - Returns a Response with action/from/to/amount attributes
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from .core import (
    TOKEN_INFO_SLOT, BALANCE_SLOT,
    Response, ReceiveMsg, StoreView,
    InvalidZeroAmount, Unauthorized, CannotExceedCap, InsufficientFunds,
    checked_add, checked_sub, validate_amount, validate_identity,
)
from .store import Store


@dataclass(frozen=True, slots=True)
class MinterData:
    """Identity allowed to mint, and an optional supply cap (None = unlimited)."""
    minter: str
    cap: Optional[int] = None

    def __post_init__(self):
        if self.cap is not None:
            validate_amount(self.cap, "cap")


@dataclass(frozen=True, slots=True)
class TokenInfo:
    """
    Receipt token metadata and supply.

    Attributes:
        name: Human-readable token name (e.g., "KJuno")
        symbol: Ticker (e.g., "Klubj")
        decimals: Display decimals
        total_supply: Sum of all balances
        mint: Minting authority, or None if the supply is fixed
    """
    name: str
    symbol: str
    decimals: int
    total_supply: int = 0
    mint: Optional[MinterData] = None

    def __post_init__(self):
        validate_amount(self.total_supply, "total_supply")

    def get_cap(self) -> Optional[int]:
        return self.mint.cap if self.mint else None


def balance_of(view: StoreView, address: str) -> int:
    """Return the token balance of address (0 if it never held any)."""
    return view.may_load(BALANCE_SLOT, address) or 0


def _check_nonzero(amount: int) -> None:
    validate_amount(amount)
    if amount == 0:
        raise InvalidZeroAmount("Invalid zero amount")


class ReceiptToken:
    """
    Receipt token ledger bound to a store.

    Example:
        token = ReceiptToken(store)
        token.initialize("KJuno", "Klubj", 8, minter=env.contract_address)
        token.mint(env.contract_address, "alice", 100)
        token.balance_of("alice")  # 100
    """

    def __init__(self, store: Store):
        self.store = store

    # ========================================================================
    # QUERIES
    # ========================================================================

    def metadata(self) -> TokenInfo:
        return self.store.load(TOKEN_INFO_SLOT)

    def balance_of(self, address: str) -> int:
        return balance_of(self.store, address)

    def holders(self) -> Dict[str, int]:
        """All non-zero balances keyed by holder."""
        return {addr: bal for addr, bal in self.store.items(BALANCE_SLOT) if bal}

    def verify_supply(self) -> Dict[str, Any]:
        """
        Verify that total_supply equals the sum of all balances.

        Returns:
            Dict with keys:
            - 'valid': bool - True if supply and balances agree
            - 'total_supply': int - Recorded supply
            - 'balances_sum': int - Sum over every holder
        """
        recorded = self.metadata().total_supply
        summed = sum(bal for _, bal in self.store.items(BALANCE_SLOT))
        return {
            'valid': recorded == summed,
            'total_supply': recorded,
            'balances_sum': summed,
        }

    # ========================================================================
    # OPERATIONS (Mutating)
    # ========================================================================

    def initialize(
        self,
        name: str,
        symbol: str,
        decimals: int,
        minter: Optional[str] = None,
        cap: Optional[int] = None,
    ) -> TokenInfo:
        """Write token metadata with zero supply."""
        mint = MinterData(minter=validate_identity(minter, "minter"), cap=cap) if minter else None
        info = TokenInfo(name=name, symbol=symbol, decimals=decimals, total_supply=0, mint=mint)
        self.store.save(TOKEN_INFO_SLOT, info)
        return info

    def mint(self, authority: str, recipient: str, amount: int) -> Response:
        """
        Create amount new tokens for recipient.

        Raises:
            InvalidZeroAmount: If amount is zero
            Unauthorized: If authority is not the minter, or minting is disabled
            CannotExceedCap: If the new supply would exceed the cap
            AmountOverflow: If supply or balance would exceed Uint128
        """
        _check_nonzero(amount)
        info = self.metadata()
        if info.mint is None or info.mint.minter != authority:
            raise Unauthorized(f"{authority} is not allowed to mint")

        new_supply = checked_add(info.total_supply, amount)
        cap = info.get_cap()
        if cap is not None and new_supply > cap:
            raise CannotExceedCap(f"Minting {amount} would exceed cap {cap}")
        recipient = validate_identity(recipient, "recipient")
        new_balance = checked_add(self.balance_of(recipient), amount)

        self.store.save(TOKEN_INFO_SLOT, replace(info, total_supply=new_supply))
        self.store.save(BALANCE_SLOT, new_balance, key=recipient)
        return (Response()
                .add_attribute("action", "mint")
                .add_attribute("to", recipient)
                .add_attribute("amount", amount))

    def transfer(self, sender: str, recipient: str, amount: int) -> Response:
        """
        Move amount from sender to recipient.

        Raises:
            InvalidZeroAmount: If amount is zero
            InvalidIdentity: If recipient is not normalized
            InsufficientFunds: If sender holds less than amount
        """
        _check_nonzero(amount)
        recipient = validate_identity(recipient, "recipient")
        self._move(sender, recipient, amount)
        return (Response()
                .add_attribute("action", "transfer")
                .add_attribute("from", sender)
                .add_attribute("to", recipient)
                .add_attribute("amount", amount))

    def burn(self, sender: str, amount: int) -> Response:
        """
        Destroy amount of sender's tokens, lowering total supply.

        Raises:
            InvalidZeroAmount: If amount is zero
            InsufficientFunds: If sender holds less than amount
        """
        _check_nonzero(amount)
        info = self.metadata()
        new_balance = self._debit(sender, amount)
        new_supply = checked_sub(info.total_supply, amount)

        self.store.save(BALANCE_SLOT, new_balance, key=sender)
        self.store.save(TOKEN_INFO_SLOT, replace(info, total_supply=new_supply))
        return (Response()
                .add_attribute("action", "burn")
                .add_attribute("from", sender)
                .add_attribute("amount", amount))

    def send(self, sender: str, contract: str, amount: int, msg: bytes = b"") -> Response:
        """
        Move amount to a contract and notify it with a ReceiveMsg.

        Raises:
            InvalidZeroAmount: If amount is zero
            InvalidIdentity: If contract is not normalized
            InsufficientFunds: If sender holds less than amount
        """
        _check_nonzero(amount)
        contract = validate_identity(contract, "contract")
        self._move(sender, contract, amount)
        return (Response()
                .add_attribute("action", "send")
                .add_attribute("from", sender)
                .add_attribute("to", contract)
                .add_attribute("amount", amount)
                .add_message(ReceiveMsg(contract=contract, sender=sender, amount=amount, msg=msg)))

    def _debit(self, holder: str, amount: int) -> int:
        balance = self.balance_of(holder)
        if amount > balance:
            raise InsufficientFunds(f"{holder} holds {balance}, needs {amount}")
        return balance - amount

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        new_sender = self._debit(sender, amount)
        if sender == recipient:
            return
        new_recipient = checked_add(self.balance_of(recipient), amount)
        self.store.save(BALANCE_SLOT, new_sender, key=sender)
        self.store.save(BALANCE_SLOT, new_recipient, key=recipient)
