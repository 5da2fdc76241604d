"""Historical block indexer: RPC ledger -> flat transaction table."""

__version__ = "0.1.0"
