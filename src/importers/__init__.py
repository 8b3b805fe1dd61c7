"""Importers that turn provider transaction history into per-chain ledgers."""

from importers.etherscan_importer import EtherscanImporter, ExportSummary

__all__ = ["EtherscanImporter", "ExportSummary"]
