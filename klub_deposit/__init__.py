"""
klub_deposit - Custodial Staking Deposit Ledger

Depositors attach the reserve asset to a deposit and receive receipt tokens
1:1. The contract tracks each client's stake and the pool totals.

Usage:
    from klub_deposit import (
        Store, Env, MessageInfo, Coin,
        InstantiateMsg, Deposit, BalanceQuery,
        instantiate, execute, query,
    )

    store = Store("main")
    env = Env(contract_address="contract")

    instantiate(store, env, MessageInfo("admin"), InstantiateMsg(
        name="KJuno", symbol="Klubj", decimals=8, min_withdrawal=5,
    ))

    # Deposit 100 upebble, receive 100 Klubj
    execute(store, env, MessageInfo("alice", [Coin("upebble", 100)]), Deposit())
    query(store, env, BalanceQuery(address="alice"))  # {"balance": "100"}
"""

# Core types
from .core import (
    StoreView,
    Coin,
    Env,
    MessageInfo,
    Response,
    ReceiveMsg,
    attr,
    ConfigurationRecord,
    PoolLedger,
    ClientRecord,
    ClientsList,
    ContractVersion,
    RecordChange,
    ContractError,
    WrongPaymentToken,
    UnexpectedFunds,
    InvalidZeroAmount,
    Unauthorized,
    CannotExceedCap,
    InsufficientFunds,
    AmountOverflow,
    InvalidIdentity,
    NotInstantiated,
    StaleRecord,
    checked_add,
    checked_sub,
    validate_amount,
    validate_identity,
    CONTRACT_NAME,
    CONTRACT_VERSION,
    DEFAULT_PAYMENT_DENOM,
    UINT128_MAX,
)

# Store
from .store import Store, Commit

# Pool, registry, token
from .pool import Pool, plan_pool_deposit
from .registry import ClientRegistry, plan_upsert
from .token import ReceiptToken, TokenInfo, MinterData, balance_of

# Deposit engine
from .engine import (
    ExtraFundsPolicy,
    DepositPlan,
    find_payment,
    plan_deposit,
    process_deposit,
    verify_invariants,
)

# Messages
from .msg import (
    InstantiateMsg,
    ExecuteMsg,
    QueryMsg,
    Deposit,
    Transfer,
    Burn,
    Send,
    BalanceQuery,
    TokenInfoQuery,
    parse_execute_msg,
    parse_query_msg,
    instantiate_msg_schema,
    execute_msg_schema,
    query_msg_schema,
)

# Entry points
from .contract import instantiate, execute, query

__all__ = [
    # Core
    'StoreView', 'Coin', 'Env', 'MessageInfo', 'Response', 'ReceiveMsg', 'attr',
    'ConfigurationRecord', 'PoolLedger', 'ClientRecord', 'ClientsList',
    'ContractVersion', 'RecordChange',
    'ContractError', 'WrongPaymentToken', 'UnexpectedFunds', 'InvalidZeroAmount',
    'Unauthorized', 'CannotExceedCap', 'InsufficientFunds', 'AmountOverflow',
    'InvalidIdentity', 'NotInstantiated', 'StaleRecord',
    'checked_add', 'checked_sub', 'validate_amount', 'validate_identity',
    'CONTRACT_NAME', 'CONTRACT_VERSION', 'DEFAULT_PAYMENT_DENOM', 'UINT128_MAX',
    # Store
    'Store', 'Commit',
    # Pool, registry, token
    'Pool', 'plan_pool_deposit',
    'ClientRegistry', 'plan_upsert',
    'ReceiptToken', 'TokenInfo', 'MinterData', 'balance_of',
    # Engine
    'ExtraFundsPolicy', 'DepositPlan', 'find_payment', 'plan_deposit',
    'process_deposit', 'verify_invariants',
    # Messages
    'InstantiateMsg', 'ExecuteMsg', 'QueryMsg',
    'Deposit', 'Transfer', 'Burn', 'Send', 'BalanceQuery', 'TokenInfoQuery',
    'parse_execute_msg', 'parse_query_msg',
    'instantiate_msg_schema', 'execute_msg_schema', 'query_msg_schema',
    # Entry points
    'instantiate', 'execute', 'query',
]

__version__ = CONTRACT_VERSION
