from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Sequence

import pytest

from chains import ChainConfig
from clients.etherscan import EtherscanAPIError
from domain.balance_aggregator import BalanceAggregator
from domain.base_types import ChainKey, WalletAddress
from domain.ledger import LedgerRecord, LedgerRow
from domain.raw_events import InternalTransfer, NativeTransfer, TokenTransfer, parse_events
from importers.etherscan_importer import EtherscanImporter, TransferFeed, select_chains
from services.ledger_store import CsvLedgerStore, LedgerStore, PersistenceError
from tests.constants import ARBITRUM, COUNTERPARTY, ETHEREUM, WALLET, WEI
from tests.helpers.provider_payloads import native_tx, token_tx

OPTIMISM = ChainConfig(key=ChainKey("optimism"), name="Optimism Mainnet", chain_id=10)


class _StubFeed:
    def __init__(
        self,
        *,
        native: list[dict[str, object]] | None = None,
        tokens: list[dict[str, object]] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.native = native or []
        self.tokens = tokens or []
        self.error = error
        self.addresses: list[WalletAddress] = []

    def fetch_native_transfers(self, address: WalletAddress) -> list[NativeTransfer]:
        self.addresses.append(address)
        if self.error is not None:
            raise self.error
        return parse_events("native", self.native)  # type: ignore[return-value]

    def fetch_internal_transfers(self, address: WalletAddress) -> list[InternalTransfer]:
        return []

    def fetch_token_transfers(self, address: WalletAddress) -> list[TokenTransfer]:
        return parse_events("token", self.tokens)  # type: ignore[return-value]


class _MemoryLedgerStore:
    def __init__(self) -> None:
        self.ledgers: dict[ChainKey, list[LedgerRecord]] = {}

    def write(self, chain: ChainKey, records: Sequence[LedgerRecord]) -> None:
        self.ledgers[chain] = list(records)

    def read_all(self) -> dict[ChainKey, list[LedgerRow]]:
        return {chain: [record.to_row() for record in records] for chain, records in self.ledgers.items()}


class _FailingStore(_MemoryLedgerStore):
    def write(self, chain: ChainKey, records: Sequence[LedgerRecord]) -> None:
        raise PersistenceError("Failed to write table", path=Path(f"{chain}-ledger.csv"))


def _importer(feeds: dict[ChainKey, _StubFeed], store: LedgerStore, chains: list[ChainConfig]) -> EtherscanImporter:
    def _factory(chain: ChainConfig) -> TransferFeed:
        return feeds[chain.key]

    return EtherscanImporter(WALLET, chains, feed_factory=_factory, store=store, max_workers=2)


def test_export_writes_one_ledger_per_chain_and_summarizes() -> None:
    feeds = {
        ETHEREUM.key: _StubFeed(native=[native_tx(value=WEI)]),
        ARBITRUM.key: _StubFeed(native=[native_tx(value=WEI)], tokens=[token_tx(value=1_000_000)]),
        OPTIMISM.key: _StubFeed(),
    }
    store = _MemoryLedgerStore()

    summary = _importer(feeds, store, [ETHEREUM, ARBITRUM, OPTIMISM]).export_all()

    assert summary.exported == {ETHEREUM.key: 1, ARBITRUM.key: 2}
    assert summary.empty == [OPTIMISM.key]
    assert summary.failed == {}
    assert set(store.ledgers) == {ETHEREUM.key, ARBITRUM.key}
    assert feeds[ETHEREUM.key].addresses == [WALLET]


def test_failed_chain_is_skipped_without_affecting_others() -> None:
    feeds = {
        ETHEREUM.key: _StubFeed(error=EtherscanAPIError("Etherscan error: Max rate limit reached")),
        ARBITRUM.key: _StubFeed(native=[native_tx(value=3 * WEI // 2)]),
    }
    store = _MemoryLedgerStore()

    summary = _importer(feeds, store, [ETHEREUM, ARBITRUM]).export_all()

    assert summary.failed == {ETHEREUM.key: "Etherscan error: Max rate limit reached"}
    assert summary.exported == {ARBITRUM.key: 1}
    assert ETHEREUM.key not in store.ledgers

    result = BalanceAggregator(WALLET, chains=[ETHEREUM, ARBITRUM]).aggregate(store.read_all())
    assert [(entry.label, entry.net_amount) for entry in result.entries] == [("Ether (Arbitrum)", Decimal("1.5"))]


def test_malformed_provider_payload_fails_only_that_chain() -> None:
    feeds = {
        ETHEREUM.key: _StubFeed(native=[{**native_tx(), "value": "not-a-number"}]),
        ARBITRUM.key: _StubFeed(native=[native_tx(value=WEI)]),
    }
    store = _MemoryLedgerStore()

    summary = _importer(feeds, store, [ETHEREUM, ARBITRUM]).export_all()

    assert list(summary.failed) == [ETHEREUM.key]
    assert summary.exported == {ARBITRUM.key: 1}


def test_persistence_errors_surface() -> None:
    feeds = {ETHEREUM.key: _StubFeed(native=[native_tx(value=WEI)])}

    with pytest.raises(PersistenceError):
        _importer(feeds, _FailingStore(), [ETHEREUM]).export_all()


def test_export_then_aggregate_end_to_end(tmp_path: Path) -> None:
    feeds = {
        ARBITRUM.key: _StubFeed(
            native=[
                native_tx(tx_hash="0x1", value=3 * WEI // 2, timestamp=100, block=1),
                native_tx(
                    tx_hash="0x2",
                    sender=WALLET,
                    recipient=COUNTERPARTY,
                    value=WEI // 2,
                    timestamp=200,
                    block=2,
                    gas_used=100_000,
                    gas_price=20 * 10**9,
                ),
            ],
            tokens=[token_tx(tx_hash="0x3", value=1_000_000, timestamp=150, block=1)],
        )
    }
    store = CsvLedgerStore(root_dir=tmp_path)

    _importer(feeds, store, [ARBITRUM]).export_all()
    result = BalanceAggregator(WALLET, chains=[ARBITRUM]).aggregate(store.read_all())

    assert [row["TxHash"] for row in store.read_all()[ARBITRUM.key]] == ["0x1", "0x3", "0x2"]
    assert {entry.label: entry.net_amount for entry in result.entries} == {
        "Ether (Arbitrum)": Decimal("0.998"),
        "USD Coin (Arbitrum)": Decimal("1"),
    }


def test_select_chains_filters_and_validates() -> None:
    chains = [ETHEREUM, ARBITRUM, OPTIMISM]

    assert select_chains(chains, None) == chains
    assert select_chains(chains, ["Arbitrum"]) == [ARBITRUM]
    with pytest.raises(ValueError):
        select_chains(chains, ["solana"])
