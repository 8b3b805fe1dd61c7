from __future__ import annotations

from enum import StrEnum
from typing import NewType

ChainKey = NewType("ChainKey", str)
WalletAddress = NewType("WalletAddress", str)

SPAM_MARKERS = frozenset("!#$")
UNKNOWN_ASSET = "UNKNOWN"


class Direction(StrEnum):
    SEND = "send"
    RECEIVE = "receive"


def same_address(left: str | None, right: str | None) -> bool:
    if not left or not right:
        return False
    return left.strip().lower() == right.strip().lower()


def is_spam(*texts: str | None) -> bool:
    """Providers list scam tokens with `!`, `#` or `$` in their symbol or name."""
    return any(text and not SPAM_MARKERS.isdisjoint(text) for text in texts)


def chain_label(chain: str) -> str:
    return chain[:1].upper() + chain[1:]
