from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from domain.base_types import UNKNOWN_ASSET, Direction
from utils.fixed_point import parse_decimal
from utils.formatting import format_decimal

LedgerRow = dict[str, str]

LEDGER_COLUMNS: tuple[str, ...] = (
    "TxHash",
    "Timestamp",
    "Chain",
    "Asset",
    "TokenName",
    "Direction",
    "From",
    "To",
    "Value",
    "BlockNumber",
    "GasCost",
)


class LedgerRecord(BaseModel):
    """One normalized on-chain movement relative to the tracked wallet.

    ``value`` is always a non-negative magnitude; the sign lives in
    ``direction``. ``gas_cost`` is denominated in the chain's native asset and
    is only non-zero on native sends.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    tx_hash: str = Field(alias="TxHash")
    timestamp: int = Field(alias="Timestamp")
    block_number: int = Field(alias="BlockNumber")
    chain: str = Field(alias="Chain")
    asset_symbol: str = Field(alias="Asset")
    asset_name: str = Field(alias="TokenName")
    direction: Direction = Field(alias="Direction")
    from_address: str = Field(alias="From")
    to_address: str = Field(default="", alias="To")
    value: Decimal = Field(alias="Value")
    gas_cost: Decimal = Field(default=Decimal(0), alias="GasCost")

    @field_validator("direction", mode="before")
    @classmethod
    def _normalize_direction(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("value", mode="before")
    @classmethod
    def _exact_value(cls, value: Any) -> Decimal:
        return parse_decimal(value)

    @field_validator("gas_cost", mode="before")
    @classmethod
    def _exact_gas_cost(cls, value: Any) -> Decimal:
        return parse_decimal(value, blank_as_zero=True)

    @model_validator(mode="after")
    def _validate_amounts(self) -> LedgerRecord:
        if self.value < 0:
            raise ValueError("LedgerRecord.value must be >= 0")
        if self.gas_cost < 0:
            raise ValueError("LedgerRecord.gas_cost must be >= 0")
        return self

    @classmethod
    def from_row(cls, row: Mapping[str, str | None]) -> LedgerRecord:
        payload = {column: (row.get(column) or "").strip() for column in LEDGER_COLUMNS}
        payload["TokenName"] = display_name(payload["TokenName"], payload["Asset"])
        payload["Asset"] = payload["Asset"] or UNKNOWN_ASSET
        # Ordering columns never affect a balance; unreadable ones read as 0.
        for column in ("Timestamp", "BlockNumber"):
            if not (payload[column].isascii() and payload[column].isdecimal()):
                payload[column] = "0"
        return cls.model_validate(payload)

    def to_row(self) -> LedgerRow:
        return {
            "TxHash": self.tx_hash,
            "Timestamp": str(self.timestamp),
            "Chain": self.chain,
            "Asset": self.asset_symbol,
            "TokenName": self.asset_name,
            "Direction": self.direction.value,
            "From": self.from_address,
            "To": self.to_address,
            "Value": format_decimal(self.value),
            "BlockNumber": str(self.block_number),
            "GasCost": format_decimal(self.gas_cost),
        }


def display_name(name: str | None, symbol: str | None) -> str:
    return (name or "").strip() or (symbol or "").strip() or UNKNOWN_ASSET


__all__ = ["LEDGER_COLUMNS", "LedgerRecord", "LedgerRow", "display_name"]
