"""Provider-native transfer records, one model per Etherscan feed.

Etherscan returns every numeric field as a string of base-unit integers, so the
models keep amounts as ``int`` (wei for native transfers, raw token units for
token transfers). Conversion to display units happens in the ledger builder.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class _TransferBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    hash: str
    timestamp: int = Field(alias="timeStamp")
    block_number: int = Field(alias="blockNumber")
    from_address: str = Field(alias="from")
    to_address: str = Field(default="", alias="to")
    value: int = 0

    @field_validator("to_address", mode="before")
    @classmethod
    def _missing_recipient(cls, value: str | None) -> str:
        # Contract creations come back with an empty or null recipient.
        return value or ""

    @field_validator("value", mode="before")
    @classmethod
    def _blank_value(cls, value: Any) -> Any:
        if value == "" or value is None:
            return 0
        return value

    @field_validator("value")
    @classmethod
    def _non_negative_value(cls, value: int) -> int:
        if value < 0:
            raise ValueError("transfer value must be >= 0")
        return value


class _GasTransfer(_TransferBase):
    gas_used: int = Field(default=0, alias="gasUsed")
    gas_price: int = Field(default=0, alias="gasPrice")
    is_error: bool = Field(default=False, alias="isError")

    @field_validator("gas_used", "gas_price", mode="before")
    @classmethod
    def _blank_gas(cls, value: Any) -> Any:
        if value == "" or value is None:
            return 0
        return value

    @field_validator("is_error", mode="before")
    @classmethod
    def _error_flag(cls, value: Any) -> Any:
        if value == "" or value is None:
            return False
        return value


class NativeTransfer(_GasTransfer):
    """Top-level transaction from ``action=txlist``."""

    kind: Literal["native"] = "native"


class InternalTransfer(_GasTransfer):
    """Contract-initiated value movement from ``action=txlistinternal``.

    Internal traces report ``gasUsed`` but no ``gasPrice``, so their gas cost
    normally evaluates to zero.
    """

    kind: Literal["internal"] = "internal"


class TokenTransfer(_TransferBase):
    """ERC-20 transfer from ``action=tokentx``."""

    kind: Literal["token"] = "token"
    contract_address: str = Field(default="", alias="contractAddress")
    token_name: str | None = Field(default=None, alias="tokenName")
    token_symbol: str | None = Field(default=None, alias="tokenSymbol")
    token_decimal: int = Field(default=0, alias="tokenDecimal")

    @field_validator("token_name", "token_symbol", mode="before")
    @classmethod
    def _blank_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("token_decimal", mode="before")
    @classmethod
    def _blank_decimals(cls, value: Any) -> Any:
        if value == "" or value is None:
            return 0
        return value

    @field_validator("token_decimal")
    @classmethod
    def _non_negative_decimals(cls, value: int) -> int:
        if value < 0:
            raise ValueError("tokenDecimal must be >= 0")
        return value


RawEvent = Annotated[Union[NativeTransfer, InternalTransfer, TokenTransfer], Field(discriminator="kind")]
EventKind = Literal["native", "internal", "token"]

_RAW_EVENT_ADAPTER: TypeAdapter[RawEvent] = TypeAdapter(RawEvent)


def parse_events(kind: EventKind, entries: list[dict[str, Any]]) -> list[RawEvent]:
    """Tag provider dicts with their feed and validate them into the matching model."""
    return [_RAW_EVENT_ADAPTER.validate_python({**entry, "kind": kind}) for entry in entries]


__all__ = ["EventKind", "InternalTransfer", "NativeTransfer", "RawEvent", "TokenTransfer", "parse_events"]
