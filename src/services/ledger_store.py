from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable, Protocol, Sequence

from domain.base_types import ChainKey
from domain.ledger import LEDGER_COLUMNS, LedgerRecord, LedgerRow

logger = logging.getLogger(__name__)

LEDGER_SUFFIX = "-ledger.csv"


class PersistenceError(RuntimeError):
    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(f"{message}: {path}")
        self.path = path


class LedgerStore(Protocol):
    def write(self, chain: ChainKey, records: Sequence[LedgerRecord]) -> None: ...

    def read_all(self) -> dict[ChainKey, list[LedgerRow]]: ...


def write_csv(path: Path, header: Sequence[str], rows: Iterable[dict[str, str]]) -> None:
    """Write rows via a sibling temp file so a failed write never leaves a half-written table."""
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tmp_path.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=list(header))
            writer.writeheader()
            writer.writerows(rows)
        tmp_path.replace(path)
    except (OSError, csv.Error) as exc:
        if tmp_path.exists():
            tmp_path.unlink()
        raise PersistenceError("Failed to write table", path=path) from exc


class CsvLedgerStore(LedgerStore):
    """One ``<chain>-ledger.csv`` per chain under ``root_dir``."""

    def __init__(self, *, root_dir: Path) -> None:
        self.root_dir = root_dir
        self._unreadable: list[ChainKey] = []

    def write(self, chain: ChainKey, records: Sequence[LedgerRecord]) -> None:
        path = self.path_for(chain)
        write_csv(path, LEDGER_COLUMNS, (record.to_row() for record in records))
        logger.info("Wrote %d ledger records for %s to %s", len(records), chain, path)

    def read_all(self) -> dict[ChainKey, list[LedgerRow]]:
        ledgers: dict[ChainKey, list[LedgerRow]] = {}
        self._unreadable = []
        if not self.root_dir.exists():
            logger.warning("Ledger directory %s does not exist", self.root_dir)
            return ledgers

        for path in sorted(self.root_dir.glob(f"*{LEDGER_SUFFIX}")):
            chain = ChainKey(path.name.removesuffix(LEDGER_SUFFIX))
            try:
                with path.open("r", encoding="utf-8", newline="") as handle:
                    ledgers[chain] = [dict(row) for row in csv.DictReader(handle)]
            except (UnicodeDecodeError, csv.Error, OSError) as exc:
                self._unreadable.append(chain)
                logger.warning("Skipping unreadable ledger %s: %s", path, exc)
                continue
            logger.info("Read %d ledger rows for %s from %s", len(ledgers[chain]), chain, path)
        return ledgers

    @property
    def unreadable(self) -> list[ChainKey]:
        """Ledgers the last ``read_all`` found but could not decode."""
        return list(self._unreadable)

    def path_for(self, chain: ChainKey) -> Path:
        return self.root_dir / f"{chain}{LEDGER_SUFFIX}"


__all__ = ["LEDGER_SUFFIX", "CsvLedgerStore", "LedgerStore", "PersistenceError", "write_csv"]
