from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from domain.base_types import ChainKey


@dataclass(frozen=True)
class ChainConfig:
    key: ChainKey
    name: str
    chain_id: int
    native_symbol: str = "ETH"
    native_name: str = "Ether"


# Etherscan V2 serves all of these through one endpoint, selected by chain id.
DEFAULT_CHAINS: tuple[ChainConfig, ...] = (
    ChainConfig(key=ChainKey("ethereum"), name="Ethereum Mainnet", chain_id=1),
    ChainConfig(key=ChainKey("arbitrum"), name="Arbitrum One", chain_id=42161),
    ChainConfig(key=ChainKey("optimism"), name="Optimism Mainnet", chain_id=10),
    ChainConfig(key=ChainKey("bnb"), name="BNB Smart Chain", chain_id=56, native_symbol="BNB", native_name="BNB"),
)


def _parse_chain(entry: Any) -> ChainConfig:
    if not isinstance(entry, dict):
        msg = "Each chain entry must be an object with 'key', 'name' and 'chain_id'."
        raise ValueError(msg)
    key = entry.get("key")
    name = entry.get("name")
    chain_id = entry.get("chain_id")
    if not isinstance(key, str) or not key.strip() or not isinstance(name, str):
        msg = "Each chain entry must include 'key' (non-empty string) and 'name' (string)."
        raise ValueError(msg)
    if not isinstance(chain_id, int) or isinstance(chain_id, bool):
        msg = f"Chain {key!r} must include an integer 'chain_id'."
        raise ValueError(msg)

    native_symbol = entry.get("native_symbol", "ETH")
    native_name = entry.get("native_name", "Ether")
    if not isinstance(native_symbol, str) or not isinstance(native_name, str):
        msg = f"Chain {key!r} has a non-string native asset."
        raise ValueError(msg)

    return ChainConfig(
        key=ChainKey(key.strip().lower()),
        name=name,
        chain_id=chain_id,
        native_symbol=native_symbol,
        native_name=native_name,
    )


def load_chains(path: Path | None = None) -> list[ChainConfig]:
    if path is None:
        return list(DEFAULT_CHAINS)

    payload = json.loads(path.read_text())
    if not isinstance(payload, list):
        msg = "Chains file must contain a JSON list of objects."
        raise ValueError(msg)

    chains: list[ChainConfig] = []
    seen: set[str] = set()
    for entry in payload:
        chain = _parse_chain(entry)
        if chain.key in seen:
            continue
        seen.add(chain.key)
        chains.append(chain)
    return chains


def chains_by_key(chains: list[ChainConfig]) -> dict[ChainKey, ChainConfig]:
    return {chain.key: chain for chain in chains}


__all__ = ["DEFAULT_CHAINS", "ChainConfig", "chains_by_key", "load_chains"]
