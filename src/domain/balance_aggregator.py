from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Mapping

from pydantic import ValidationError

from chains import ChainConfig
from domain.base_types import ChainKey, Direction, WalletAddress, chain_label, is_spam, same_address
from domain.ledger import LedgerRecord
from utils.fixed_point import decimal_to_int, int_to_decimal

logger = logging.getLogger(__name__)

MATERIALITY_THRESHOLD = Decimal("0.0001")
DEFAULT_NATIVE_NAME = "Ether"


@dataclass(frozen=True)
class BalanceEntry:
    label: str
    net_amount: Decimal
    asset_name: str
    chain: ChainKey
    is_native: bool


@dataclass
class AggregationResult:
    entries: list[BalanceEntry] = field(default_factory=list)
    chains: list[ChainKey] = field(default_factory=list)
    rows_read: int = 0
    rows_skipped: dict[ChainKey, int] = field(default_factory=dict)
    rows_ignored: int = 0
    spam_rows: int = 0
    below_threshold: list[str] = field(default_factory=list)
    unreadable_ledgers: list[ChainKey] = field(default_factory=list)

    @property
    def total_skipped(self) -> int:
        return sum(self.rows_skipped.values())


@dataclass
class _Position:
    asset_name: str
    chain: ChainKey
    is_native: bool
    units: int = 0


class BalanceAggregator:
    """Folds per-chain ledgers into net balances per ``"<asset> (<Chain>)"`` label.

    Amounts are accumulated as integers on an 18-digit fixed-point scale and
    converted back to ``Decimal`` once the fold is complete. The accumulator
    lives only for the duration of one ``aggregate`` call.
    """

    def __init__(
        self,
        wallet_address: WalletAddress,
        *,
        chains: Iterable[ChainConfig] = (),
        threshold: Decimal = MATERIALITY_THRESHOLD,
    ) -> None:
        self.wallet_address = wallet_address
        self._native_names = {chain.key: chain.native_name for chain in chains}
        self.threshold = threshold

    def native_name(self, chain: ChainKey) -> str:
        return self._native_names.get(chain, DEFAULT_NATIVE_NAME)

    def aggregate(
        self,
        ledgers: Mapping[ChainKey, Iterable[Mapping[str, str | None]]],
        *,
        unreadable: Iterable[ChainKey] = (),
    ) -> AggregationResult:
        result = AggregationResult(unreadable_ledgers=list(unreadable))
        positions: dict[str, _Position] = {}
        skipped: defaultdict[ChainKey, int] = defaultdict(int)

        for chain, rows in ledgers.items():
            result.chains.append(chain)
            for line_no, row in enumerate(rows, start=1):
                result.rows_read += 1
                try:
                    record = LedgerRecord.from_row(row)
                except ValidationError as exc:
                    skipped[chain] += 1
                    logger.warning(
                        "Skipping invalid row %d in %s ledger: %s",
                        line_no,
                        chain,
                        "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in exc.errors()),
                    )
                    continue
                self._apply(result, positions, chain, record)

        result.rows_skipped = dict(skipped)
        result.entries = self._finalize(result, positions)
        return result

    def _apply(
        self,
        result: AggregationResult,
        positions: dict[str, _Position],
        chain: ChainKey,
        record: LedgerRecord,
    ) -> None:
        label = f"{record.asset_name} ({chain_label(chain)})"
        if is_spam(label):
            result.spam_rows += 1
            return

        is_native = record.asset_name == self.native_name(chain)
        if record.direction == Direction.RECEIVE and same_address(record.to_address, self.wallet_address):
            delta = decimal_to_int(record.value)
        elif record.direction == Direction.SEND and same_address(record.from_address, self.wallet_address):
            delta = -decimal_to_int(record.value)
            if is_native:
                delta -= decimal_to_int(record.gas_cost)
        else:
            # Third-party legs of a transaction the wallet took part in.
            result.rows_ignored += 1
            return

        position = positions.get(label)
        if position is None:
            position = positions[label] = _Position(asset_name=record.asset_name, chain=chain, is_native=is_native)
        position.units += delta

    def _finalize(self, result: AggregationResult, positions: dict[str, _Position]) -> list[BalanceEntry]:
        threshold_units = decimal_to_int(self.threshold)
        entries: list[BalanceEntry] = []
        for label, position in positions.items():
            if abs(position.units) < threshold_units:
                result.below_threshold.append(label)
                continue
            entries.append(
                BalanceEntry(
                    label=label,
                    net_amount=int_to_decimal(position.units),
                    asset_name=position.asset_name,
                    chain=position.chain,
                    is_native=position.is_native,
                )
            )

        # Stable: equal magnitudes keep first-seen order.
        entries.sort(key=lambda entry: (not entry.is_native, -abs(entry.net_amount)))
        return entries


__all__ = ["MATERIALITY_THRESHOLD", "AggregationResult", "BalanceAggregator", "BalanceEntry"]
