"""
contract.py - Contract Entry Points

instantiate(), execute() and query() take an explicit Store handle, so each
call operates on whatever store the host passes in.

Key responsibilities:
    - instantiate: record version, token metadata, configuration, zeroed pool, empty index
    - execute: dispatch Deposit to the engine and Transfer/Burn/Send to the token,
      each inside one store transaction (all writes commit or none do)
    - query: token balance and token info only; pool and client state are not exposed
"""

from __future__ import annotations
from typing import Any, Dict
import logging

from .core import (
    CONFIG_SLOT, CONTRACT_INFO_SLOT, CONTRACT_NAME, CONTRACT_VERSION,
    ConfigurationRecord, ContractVersion, Env, MessageInfo, Response,
    validate_identity,
)
from .engine import ExtraFundsPolicy, process_deposit
from .msg import (
    InstantiateMsg, ExecuteMsg, QueryMsg,
    Deposit, Transfer, Burn, Send, BalanceQuery, TokenInfoQuery,
)
from .pool import Pool
from .registry import ClientRegistry
from .store import Store
from .token import ReceiptToken

logger = logging.getLogger(__name__)


def instantiate(store: Store, env: Env, info: MessageInfo, msg: InstantiateMsg) -> Response:
    """
    Set up the contract.

    The receipt token starts with zero supply and the contract itself as the
    only minter, with no cap. The financial officer defaults to the sender.

    Raises:
        InvalidIdentity: If cfo is given but not a normalized identity
    """
    with store.transaction("instantiate", env.block_time):
        store.save(CONTRACT_INFO_SLOT, ContractVersion(CONTRACT_NAME, CONTRACT_VERSION))
        ReceiptToken(store).initialize(
            name=msg.name,
            symbol=msg.symbol,
            decimals=msg.decimals,
            minter=env.contract_address,
            cap=None,
        )
        cfo = validate_identity(msg.cfo if msg.cfo is not None else info.sender, "cfo")
        store.save(CONFIG_SLOT, ConfigurationRecord(
            admin=info.sender,
            financial_officer=cfo,
            accepted_denom=msg.accepted_denom,
            min_withdrawal=msg.min_withdrawal,
        ))
        Pool(store).initialize()
        ClientRegistry(store).initialize()

    logger.info("instantiated %s %s by %s", CONTRACT_NAME, msg.symbol, info.sender)
    return Response().add_attribute("action", "instantiate")


def execute(
    store: Store,
    env: Env,
    info: MessageInfo,
    msg: ExecuteMsg,
    extra_funds: ExtraFundsPolicy = ExtraFundsPolicy.IGNORE,
) -> Response:
    """
    Apply one action atomically.

    Any exception rolls back every write made by this call and is re-raised
    unchanged; the caller may resubmit.

    Args:
        store: Contract store
        env: Host environment
        info: Caller identity and attached funds
        msg: Deposit, Transfer, Burn or Send
        extra_funds: Treatment of non-reserve coins attached to a Deposit
    """
    token = ReceiptToken(store)
    try:
        with store.transaction(msg.tag, env.block_time):
            match msg:
                case Deposit():
                    response = process_deposit(store, env, info.sender, info.funds, extra_funds)
                case Transfer(recipient=recipient, amount=amount):
                    response = token.transfer(info.sender, recipient, amount)
                case Burn(amount=amount):
                    response = token.burn(info.sender, amount)
                case Send(contract=contract, amount=amount, msg=payload):
                    response = token.send(info.sender, contract, amount, payload)
                case _:
                    raise TypeError(f"Unsupported execute message {type(msg).__name__}")
    except Exception as e:
        logger.warning("%s from %s rejected: %s", msg.tag, info.sender, e)
        raise

    logger.info("%s from %s applied: %s", msg.tag, info.sender, dict(response.attributes))
    return response


def query(store: Store, env: Env, msg: QueryMsg) -> Dict[str, Any]:
    """
    Answer a token query.

    Returns:
        For BalanceQuery: {"balance": str}
        For TokenInfoQuery: {"name", "symbol", "decimals", "total_supply"}
    """
    token = ReceiptToken(store)
    match msg:
        case BalanceQuery(address=address):
            return {"balance": str(token.balance_of(validate_identity(address)))}
        case TokenInfoQuery():
            info = token.metadata()
            return {
                "name": info.name,
                "symbol": info.symbol,
                "decimals": info.decimals,
                "total_supply": str(info.total_supply),
            }
        case _:
            raise TypeError(f"Unsupported query message {type(msg).__name__}")
