from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, Sequence

from domain.balance_aggregator import BalanceEntry
from utils.formatting import format_amount

from .ledger_store import write_csv

logger = logging.getLogger(__name__)

BALANCE_COLUMNS: tuple[str, ...] = ("Token", "Amount")
MIN_DECIMALS = 6
MAX_DECIMALS = 18


class BalanceStore(Protocol):
    def write(self, entries: Sequence[BalanceEntry]) -> None: ...


class CsvBalanceStore(BalanceStore):
    def __init__(self, *, path: Path, decimals: int = MIN_DECIMALS) -> None:
        if not MIN_DECIMALS <= decimals <= MAX_DECIMALS:
            msg = f"decimals must be between {MIN_DECIMALS} and {MAX_DECIMALS}"
            raise ValueError(msg)
        self.path = path
        self.decimals = decimals

    def write(self, entries: Sequence[BalanceEntry]) -> None:
        rows = [{"Token": entry.label, "Amount": format_amount(entry.net_amount, self.decimals)} for entry in entries]
        write_csv(self.path, BALANCE_COLUMNS, rows)
        logger.info("Saved %d balances to %s", len(rows), self.path)


__all__ = ["BALANCE_COLUMNS", "BalanceStore", "CsvBalanceStore"]
