"""HTTP clients for transaction history providers."""
