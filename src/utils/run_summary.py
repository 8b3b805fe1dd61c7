from __future__ import annotations

from dataclasses import dataclass

from domain.balance_aggregator import AggregationResult
from importers.etherscan_importer import ExportSummary


@dataclass
class RunSummary:
    export: ExportSummary | None = None
    aggregation: AggregationResult | None = None


def render_run_summary(summary: RunSummary) -> str:
    lines = ["Run summary:"]

    export = summary.export
    if export is not None:
        processed = ", ".join(f"{chain} ({count})" for chain, count in export.exported.items()) or "-"
        lines.append(f"  Chains exported:     {processed}")
        lines.append(f"  Chains without data: {', '.join(export.empty) or '-'}")
        skipped = ", ".join(f"{chain} ({reason})" for chain, reason in export.failed.items()) or "-"
        lines.append(f"  Chains skipped:      {skipped}")

    result = summary.aggregation
    if result is not None:
        lines.append(f"  Ledgers aggregated:  {', '.join(result.chains) or '-'}")
        if result.unreadable_ledgers:
            lines.append(f"  Ledgers unreadable:  {', '.join(result.unreadable_ledgers)}")
        lines.append(f"  Rows read:           {result.rows_read}")
        per_chain = ", ".join(f"{chain}={count}" for chain, count in result.rows_skipped.items())
        lines.append(f"  Rows skipped:        {result.total_skipped}" + (f" ({per_chain})" if per_chain else ""))
        lines.append(f"  Rows not ours:       {result.rows_ignored}")
        lines.append(f"  Spam rows:           {result.spam_rows}")
        lines.append(f"  Balances reported:   {len(result.entries)}")
        lines.append(f"  Below threshold:     {len(result.below_threshold)}")

    return "\n".join(lines)
