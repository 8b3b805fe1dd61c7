"""File-backed stores for ledgers and balance reports."""
