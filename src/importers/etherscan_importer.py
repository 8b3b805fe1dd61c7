from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from time import perf_counter
from typing import Callable, Iterable, Protocol, Sequence

from pydantic import ValidationError

from chains import ChainConfig
from clients.etherscan import EtherscanAPIError, EtherscanChainFeed, EtherscanClient
from domain.base_types import ChainKey, WalletAddress
from domain.ledger import LedgerRecord
from domain.ledger_builder import LedgerBuilder
from domain.raw_events import InternalTransfer, NativeTransfer, TokenTransfer
from services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


class TransferFeed(Protocol):
    def fetch_native_transfers(self, address: WalletAddress) -> list[NativeTransfer]: ...

    def fetch_internal_transfers(self, address: WalletAddress) -> list[InternalTransfer]: ...

    def fetch_token_transfers(self, address: WalletAddress) -> list[TokenTransfer]: ...


FeedFactory = Callable[[ChainConfig], TransferFeed]

# Errors that mean "this chain's data is unavailable right now".
CHAIN_FETCH_ERRORS: tuple[type[Exception], ...] = (EtherscanAPIError, ValidationError)


@dataclass
class ExportSummary:
    exported: dict[ChainKey, int] = field(default_factory=dict)
    empty: list[ChainKey] = field(default_factory=list)
    failed: dict[ChainKey, str] = field(default_factory=dict)


class EtherscanImporter:
    def __init__(
        self,
        wallet_address: WalletAddress,
        chains: Iterable[ChainConfig],
        *,
        feed_factory: FeedFactory,
        store: LedgerStore,
        max_workers: int = 4,
    ) -> None:
        self.wallet_address = wallet_address
        self.chains = list(chains)
        self.feed_factory = feed_factory
        self.store = store
        self.max_workers = max(1, max_workers)

    def export_all(self) -> ExportSummary:
        summary = ExportSummary()
        if not self.chains:
            return summary

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(self.chains))) as executor:
            futures = {executor.submit(self.export_chain, chain): chain for chain in self.chains}
            for future in as_completed(futures):
                chain = futures[future]
                try:
                    count = future.result()
                except CHAIN_FETCH_ERRORS as exc:
                    logger.warning("Skipping chain %s: %s", chain.key, exc)
                    summary.failed[chain.key] = str(exc)
                    continue

                if count:
                    summary.exported[chain.key] = count
                else:
                    summary.empty.append(chain.key)

        # as_completed yields in finishing order; report in configured order.
        order = {chain.key: index for index, chain in enumerate(self.chains)}
        summary.exported = dict(sorted(summary.exported.items(), key=lambda item: order[item[0]]))
        summary.empty.sort(key=order.__getitem__)
        summary.failed = dict(sorted(summary.failed.items(), key=lambda item: order[item[0]]))
        return summary

    def export_chain(self, chain: ChainConfig) -> int:
        started = perf_counter()
        records = self.build_chain(chain)
        if not records:
            logger.info("No events for %s", chain.key)
            return 0

        self.store.write(chain.key, records)
        logger.info("Exported %d events for %s in %.2fs", len(records), chain.key, perf_counter() - started)
        return len(records)

    def build_chain(self, chain: ChainConfig) -> list[LedgerRecord]:
        feed = self.feed_factory(chain)
        address = self.wallet_address

        # Join on all three feeds before merging; a failure in any one fails the chain.
        with ThreadPoolExecutor(max_workers=3) as executor:
            native = executor.submit(feed.fetch_native_transfers, address)
            internal = executor.submit(feed.fetch_internal_transfers, address)
            tokens = executor.submit(feed.fetch_token_transfers, address)
            native_events = native.result()
            internal_events = internal.result()
            token_events = tokens.result()

        logger.info(
            "Fetched %s: native=%d internal=%d token=%d",
            chain.key,
            len(native_events),
            len(internal_events),
            len(token_events),
        )
        return LedgerBuilder(address, chain).build(native_events, internal_events, token_events)


def etherscan_feed_factory(client: EtherscanClient) -> FeedFactory:
    def _factory(chain: ChainConfig) -> TransferFeed:
        return EtherscanChainFeed(client, chain.chain_id)

    return _factory


def select_chains(chains: Sequence[ChainConfig], keys: Iterable[str] | None) -> list[ChainConfig]:
    if not keys:
        return list(chains)
    wanted = {key.lower() for key in keys}
    unknown = wanted - {chain.key for chain in chains}
    if unknown:
        msg = f"Unknown chain keys: {', '.join(sorted(unknown))}"
        raise ValueError(msg)
    return [chain for chain in chains if chain.key in wanted]


__all__ = [
    "CHAIN_FETCH_ERRORS",
    "EtherscanImporter",
    "ExportSummary",
    "FeedFactory",
    "TransferFeed",
    "etherscan_feed_factory",
    "select_chains",
]
