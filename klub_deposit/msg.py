"""
msg.py - Contract Messages

Setup, execute and query messages as pydantic models.

Wire format is snake_case and externally tagged, one variant per object:

    {"deposit": {}}
    {"transfer": {"recipient": "bob", "amount": "100"}}
    {"send": {"contract": "vault", "amount": "5", "msg": "eyJzdGFrZSI6e319"}}
    {"balance": {"address": "alice"}}

Uint128 amounts are decimal strings on the wire (ints are accepted too);
binary payloads are base64 strings.
"""

from __future__ import annotations
import base64
import binascii
import json
from typing import Annotated, Any, ClassVar, Dict, Optional, Type, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer

from .core import DEFAULT_PAYMENT_DENOM, UINT128_MAX


def _parse_uint128(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("Uint128 cannot be a boolean")
    if isinstance(value, str):
        if not value.isdigit():
            raise ValueError(f"Uint128 must be a decimal string, got {value!r}")
        value = int(value)
    if not isinstance(value, int):
        raise ValueError(f"Uint128 must be int or str, got {type(value).__name__}")
    if not 0 <= value <= UINT128_MAX:
        raise ValueError(f"Uint128 out of range: {value}")
    return value


def _parse_binary(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 payload: {e}") from e
    raise ValueError(f"Binary must be base64 str or bytes, got {type(value).__name__}")


Uint128 = Annotated[
    int,
    BeforeValidator(_parse_uint128),
    PlainSerializer(lambda v: str(v), return_type=str, when_used="json"),
]

Binary = Annotated[
    bytes,
    BeforeValidator(_parse_binary),
    PlainSerializer(lambda v: base64.b64encode(v).decode("ascii"), return_type=str, when_used="json"),
]


class _Msg(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    tag: ClassVar[str] = ""

    def to_wire(self) -> Dict[str, Any]:
        """Externally tagged JSON-ready form of this message."""
        return {self.tag: self.model_dump(mode="json")}


# ============================================================================
# SETUP
# ============================================================================

class InstantiateMsg(_Msg):
    """
    Setup message: receipt token metadata plus contract configuration.

    cfo defaults to the instantiating identity when omitted.
    """
    name: str = Field(..., min_length=3, max_length=50)
    symbol: str = Field(..., pattern=r"^[a-zA-Z\-]{3,12}$")
    decimals: int = Field(..., ge=0, le=18)
    cfo: Optional[str] = None
    min_withdrawal: Uint128
    accepted_denom: str = Field(DEFAULT_PAYMENT_DENOM, min_length=1)


# ============================================================================
# EXECUTE
# ============================================================================

class Deposit(_Msg):
    """Deposit the attached reserve coins and receive receipt tokens."""
    tag: ClassVar[str] = "deposit"


class Transfer(_Msg):
    tag: ClassVar[str] = "transfer"

    recipient: str
    amount: Uint128


class Burn(_Msg):
    tag: ClassVar[str] = "burn"

    amount: Uint128


class Send(_Msg):
    """Transfer to a contract and trigger its receive hook with msg."""
    tag: ClassVar[str] = "send"

    contract: str
    amount: Uint128
    msg: Binary = b""


ExecuteMsg = Union[Deposit, Transfer, Burn, Send]


# ============================================================================
# QUERY
# ============================================================================

class BalanceQuery(_Msg):
    tag: ClassVar[str] = "balance"

    address: str


class TokenInfoQuery(_Msg):
    tag: ClassVar[str] = "token_info"


QueryMsg = Union[BalanceQuery, TokenInfoQuery]


# ============================================================================
# PARSING
# ============================================================================

_EXECUTE_VARIANTS: Dict[str, Type[_Msg]] = {
    cls.tag: cls for cls in (Deposit, Transfer, Burn, Send)
}
_QUERY_VARIANTS: Dict[str, Type[_Msg]] = {
    cls.tag: cls for cls in (BalanceQuery, TokenInfoQuery)
}


def _parse_tagged(raw: Union[str, bytes, Dict[str, Any]], variants: Dict[str, Type[_Msg]], kind: str) -> _Msg:
    data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"{kind} must be an object with exactly one variant")
    (tag, body), = data.items()
    if tag not in variants:
        raise ValueError(f"Unknown {kind} variant {tag!r}, expected one of {sorted(variants)}")
    return variants[tag].model_validate(body if body is not None else {})


def parse_execute_msg(raw: Union[str, bytes, Dict[str, Any]]) -> ExecuteMsg:
    """
    Decode an execute message from its wire form.

    Raises:
        ValueError: If the envelope is malformed or the variant unknown
        pydantic.ValidationError: If the variant body is invalid
    """
    return _parse_tagged(raw, _EXECUTE_VARIANTS, "ExecuteMsg")


def parse_query_msg(raw: Union[str, bytes, Dict[str, Any]]) -> QueryMsg:
    """Decode a query message from its wire form."""
    return _parse_tagged(raw, _QUERY_VARIANTS, "QueryMsg")


def _tagged_schema(title: str, variants: Dict[str, Type[_Msg]]) -> Dict[str, Any]:
    return {
        "title": title,
        "oneOf": [
            {
                "type": "object",
                "required": [tag],
                "properties": {tag: cls.model_json_schema()},
                "additionalProperties": False,
            }
            for tag, cls in variants.items()
        ],
    }


def instantiate_msg_schema() -> Dict[str, Any]:
    return InstantiateMsg.model_json_schema()


def execute_msg_schema() -> Dict[str, Any]:
    return _tagged_schema("ExecuteMsg", _EXECUTE_VARIANTS)


def query_msg_schema() -> Dict[str, Any]:
    return _tagged_schema("QueryMsg", _QUERY_VARIANTS)
