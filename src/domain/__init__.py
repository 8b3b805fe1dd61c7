"""Domain models and logic for the multi-chain wallet ledger.

This package holds the in-memory (Pydantic) models for raw provider transfers
and normalized ledger records, plus the two pure components built on them:
the per-chain ledger builder and the balance aggregator. Nothing in here
performs I/O so that the logic can be tested without network or disk.
"""

__all__ = [
    "balance_aggregator",
    "base_types",
    "ledger",
    "ledger_builder",
    "raw_events",
]
