from ethindexer.db.repos.eth_tx_repo import EthTxRepo

__all__ = ["EthTxRepo"]
