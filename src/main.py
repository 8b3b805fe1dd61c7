from __future__ import annotations

import argparse
import logging
import sys
from time import perf_counter
from typing import Sequence

from chains import ChainConfig, load_chains
from clients.etherscan import EtherscanClient
from config import AppSettings, config
from domain.balance_aggregator import AggregationResult, BalanceAggregator
from domain.base_types import WalletAddress
from importers.etherscan_importer import EtherscanImporter, ExportSummary, etherscan_feed_factory, select_chains
from services.balance_store import MAX_DECIMALS, MIN_DECIMALS, CsvBalanceStore
from services.ledger_store import CsvLedgerStore, PersistenceError
from utils.balance_report import render_balance_report
from utils.run_summary import RunSummary, render_run_summary

logger = logging.getLogger(__name__)


def _wallet(settings: AppSettings) -> WalletAddress:
    if not settings.wallet_address:
        msg = "WALLET_ADDRESS must be configured"
        raise ValueError(msg)
    return WalletAddress(settings.wallet_address)


def run_export(settings: AppSettings, chains: list[ChainConfig]) -> ExportSummary:
    client = EtherscanClient(
        api_key=settings.etherscan_api_key,
        page_size=settings.page_size,
        delay_seconds=settings.request_delay_seconds,
    )
    importer = EtherscanImporter(
        _wallet(settings),
        chains,
        feed_factory=etherscan_feed_factory(client),
        store=CsvLedgerStore(root_dir=settings.ledger_dir),
        max_workers=settings.max_workers,
    )

    logger.info("Exporting %d chains to %s", len(chains), settings.ledger_dir)
    started = perf_counter()
    summary = importer.export_all()
    logger.info(
        "Export finished in %.2fs: exported=%d empty=%d failed=%d",
        perf_counter() - started,
        len(summary.exported),
        len(summary.empty),
        len(summary.failed),
    )
    return summary


def run_balances(settings: AppSettings, chains: list[ChainConfig], *, decimals: int) -> AggregationResult:
    ledger_store = CsvLedgerStore(root_dir=settings.ledger_dir)
    balance_store = CsvBalanceStore(path=settings.balances_file, decimals=decimals)
    aggregator = BalanceAggregator(_wallet(settings), chains=chains)

    started = perf_counter()
    ledgers = ledger_store.read_all()
    result = aggregator.aggregate(ledgers, unreadable=ledger_store.unreadable)
    logger.info(
        "Aggregated %d rows from %d ledgers in %.2fs",
        result.rows_read,
        len(ledgers),
        perf_counter() - started,
    )

    balance_store.write(result.entries)
    print(render_balance_report(result.entries, decimals=decimals))
    return result


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export per-chain wallet ledgers and compute net balances.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser("export", help="Fetch transfers and write one ledger CSV per chain.")
    balances_parser = subparsers.add_parser("balances", help="Aggregate ledgers on disk into a balance report.")
    run_parser = subparsers.add_parser("run", help="Export, then aggregate.")

    for sub in (export_parser, run_parser):
        sub.add_argument("--chains", nargs="+", metavar="KEY", help="Only process these chain keys.")
    for sub in (balances_parser, run_parser):
        sub.add_argument("--decimals", type=int, default=None, help="Fractional digits in the report (6-18).")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    settings = config()
    chains = load_chains(settings.chains_file)
    decimals = getattr(args, "decimals", None)
    if decimals is None:
        decimals = settings.amount_decimals
    if not MIN_DECIMALS <= decimals <= MAX_DECIMALS:
        logger.error("--decimals must be between %d and %d, got %d", MIN_DECIMALS, MAX_DECIMALS, decimals)
        return 2
    summary = RunSummary()

    try:
        if args.command in ("export", "run"):
            summary.export = run_export(settings, select_chains(chains, args.chains))
        if args.command in ("balances", "run"):
            summary.aggregation = run_balances(settings, chains, decimals=decimals)
    except PersistenceError:
        logger.exception("Results were computed but could not be saved")
        return 1

    print(render_run_summary(summary))
    return 0


def cli() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    sys.exit(main())


if __name__ == "__main__":
    cli()
