from __future__ import annotations

from typing import Sequence

from domain.balance_aggregator import BalanceEntry

from .formatting import format_amount


def render_balance_report(entries: Sequence[BalanceEntry], *, decimals: int = 6) -> str:
    token_label = "Token"
    amount_label = "Amount"

    if not entries:
        return "Final balances:\n  (empty)"

    rows = [(entry.label, format_amount(entry.net_amount, decimals)) for entry in entries]
    token_width = max(len(token_label), max(len(label) for label, _ in rows))
    amount_width = max(len(amount_label), max(len(amount) for _, amount in rows))

    header = f"{token_label:<{token_width}} {amount_label:>{amount_width}}"
    lines = ["Final balances:", header, "-" * len(header)]
    for label, amount in rows:
        lines.append(f"{label:<{token_width}} {amount:>{amount_width}}")
    lines.append("-" * len(header))
    return "\n".join(lines)
