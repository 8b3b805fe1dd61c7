from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from chains import ChainConfig
from domain.base_types import UNKNOWN_ASSET, Direction, WalletAddress, is_spam, same_address
from domain.ledger import LedgerRecord, display_name
from domain.raw_events import InternalTransfer, NativeTransfer, RawEvent, TokenTransfer
from utils.fixed_point import int_to_decimal

logger = logging.getLogger(__name__)

NATIVE_DECIMALS = 18


class LedgerBuilder:
    """Normalizes one chain's three provider feeds into a single ordered ledger."""

    def __init__(self, wallet_address: WalletAddress, chain: ChainConfig) -> None:
        self.wallet_address = wallet_address
        self.chain = chain

    def build(
        self,
        native: Iterable[NativeTransfer],
        internal: Iterable[InternalTransfer],
        tokens: Iterable[TokenTransfer],
    ) -> list[LedgerRecord]:
        records: list[LedgerRecord] = []
        spam = 0
        for event in [*native, *internal, *tokens]:
            record = self.normalize(event)
            if record is None:
                spam += 1
                continue
            records.append(record)

        if spam:
            logger.info("Dropped %d spam token transfers on %s", spam, self.chain.key)

        # list.sort is stable: equal (timestamp, block) keep feed order.
        records.sort(key=lambda record: (record.timestamp, record.block_number))
        return records

    def normalize(self, event: RawEvent) -> LedgerRecord | None:
        if isinstance(event, TokenTransfer):
            return self._from_token(event)
        return self._from_native(event)

    def _direction(self, from_address: str) -> Direction:
        return Direction.SEND if same_address(from_address, self.wallet_address) else Direction.RECEIVE

    def _from_native(self, tx: NativeTransfer | InternalTransfer) -> LedgerRecord:
        direction = self._direction(tx.from_address)
        gas_cost = Decimal(0)
        if direction == Direction.SEND:
            # Failed sends move nothing but still pay for gas.
            gas_cost = int_to_decimal(tx.gas_used * tx.gas_price, NATIVE_DECIMALS)
        value = Decimal(0) if tx.is_error else int_to_decimal(tx.value, NATIVE_DECIMALS)

        return LedgerRecord(
            tx_hash=tx.hash,
            timestamp=tx.timestamp,
            block_number=tx.block_number,
            chain=self.chain.name,
            asset_symbol=self.chain.native_symbol,
            asset_name=self.chain.native_name,
            direction=direction,
            from_address=tx.from_address,
            to_address=tx.to_address,
            value=value,
            gas_cost=gas_cost,
        )

    def _from_token(self, tx: TokenTransfer) -> LedgerRecord | None:
        if is_spam(tx.token_symbol, tx.token_name):
            logger.debug(
                "Skipping spam token symbol=%s name=%s tx=%s chain=%s",
                tx.token_symbol,
                tx.token_name,
                tx.hash,
                self.chain.key,
            )
            return None

        return LedgerRecord(
            tx_hash=tx.hash,
            timestamp=tx.timestamp,
            block_number=tx.block_number,
            chain=self.chain.name,
            asset_symbol=tx.token_symbol or UNKNOWN_ASSET,
            asset_name=display_name(tx.token_name, tx.token_symbol),
            direction=self._direction(tx.from_address),
            from_address=tx.from_address,
            to_address=tx.to_address,
            value=int_to_decimal(tx.value, tx.token_decimal),
        )


__all__ = ["NATIVE_DECIMALS", "LedgerBuilder"]
