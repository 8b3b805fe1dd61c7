from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

import main
from config import AppSettings
from domain.base_types import ChainKey, Direction
from domain.ledger import LedgerRecord
from services.ledger_store import CsvLedgerStore
from tests.constants import ARBITRUM, COUNTERPARTY, WALLET


def _settings(tmp_path: Path, **overrides: object) -> AppSettings:
    values: dict[str, object] = {
        "etherscan_api_key": "token",
        "wallet_address": WALLET,
        "ledger_dir": tmp_path / "ledgers",
        "balances_file": tmp_path / "final-balances.csv",
    }
    values.update(overrides)
    return AppSettings(**values)  # type: ignore[arg-type]


def _record(direction: Direction, value: str, *, gas: str = "0") -> LedgerRecord:
    sending = direction == Direction.SEND
    return LedgerRecord(
        tx_hash="0xabc",
        timestamp=1_700_000_000,
        block_number=1,
        chain=ARBITRUM.name,
        asset_symbol="ETH",
        asset_name="Ether",
        direction=direction,
        from_address=WALLET if sending else COUNTERPARTY,
        to_address=COUNTERPARTY if sending else WALLET,
        value=Decimal(value),
        gas_cost=Decimal(gas),
    )


def _seed_ledger(settings: AppSettings) -> None:
    CsvLedgerStore(root_dir=settings.ledger_dir).write(
        ChainKey("arbitrum"),
        [_record(Direction.RECEIVE, "1.5"), _record(Direction.SEND, "0.5", gas="0.002")],
    )


def test_run_balances_writes_report_and_prints_it(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    settings = _settings(tmp_path)
    _seed_ledger(settings)

    result = main.run_balances(settings, [ARBITRUM], decimals=6)

    assert [(entry.label, entry.net_amount) for entry in result.entries] == [("Ether (Arbitrum)", Decimal("0.998"))]
    assert settings.balances_file.read_text().splitlines() == ["Token,Amount", "Ether (Arbitrum),0.998000"]
    assert "Ether (Arbitrum)" in capsys.readouterr().out


def test_main_balances_command(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    settings = _settings(tmp_path, amount_decimals=8)
    _seed_ledger(settings)
    monkeypatch.setattr(main, "config", lambda: settings)

    exit_code = main.main(["balances"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "0.99800000" in out
    assert "Run summary:" in out


def test_main_returns_error_when_report_cannot_be_saved(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    settings = _settings(tmp_path, balances_file=blocker / "final-balances.csv")
    _seed_ledger(settings)
    monkeypatch.setattr(main, "config", lambda: settings)

    assert main.main(["balances"]) == 1


def test_missing_wallet_address_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        main.run_balances(_settings(tmp_path, wallet_address=""), [ARBITRUM], decimals=6)


def test_amount_decimals_are_bounded(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        _settings(tmp_path, amount_decimals=19)


def test_out_of_range_decimals_flag_stops_before_any_work(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    settings = _settings(tmp_path)
    monkeypatch.setattr(main, "config", lambda: settings)

    def _fail(*_args: object, **_kwargs: object) -> None:
        raise AssertionError("export must not start")

    monkeypatch.setattr(main, "run_export", _fail)

    assert main.main(["run", "--decimals", "19"]) == 2
    assert not settings.balances_file.exists()


def test_undecodable_ledger_does_not_abort_balances(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    settings = _settings(tmp_path)
    _seed_ledger(settings)
    (settings.ledger_dir / "optimism-ledger.csv").write_bytes(b"TxHash,Value\n\xff\xfe,1\n")
    monkeypatch.setattr(main, "config", lambda: settings)

    assert main.main(["balances"]) == 0

    out = capsys.readouterr().out
    assert "0.998000" in out
    assert "Ledgers unreadable:  optimism" in out
