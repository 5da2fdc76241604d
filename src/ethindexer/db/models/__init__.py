from ethindexer.db.models.eth_tx import EthTx

__all__ = ["EthTx"]
