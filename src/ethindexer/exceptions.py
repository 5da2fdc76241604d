class IndexerError(Exception):
    """Base for every error raised by the indexer."""


class ConfigError(IndexerError):
    """Configuration is missing or malformed. Fatal at startup."""


class ExternalServiceError(IndexerError):
    """Transient failure talking to the RPC node (rate limit, 5xx, dropped connection)."""


class RPCError(IndexerError):
    """The node answered with a JSON-RPC error that retrying will not fix."""

    def __init__(self, method: str, code: int | None, message: str) -> None:
        super().__init__(f"RPC error ({method}): [{code}] {message}")
        self.method = method
        self.code = code


class TransportError(IndexerError):
    """RPC call still failing once the retry budget is spent."""


class BlockNotFoundError(IndexerError):
    """Node reports no block at the requested height."""

    def __init__(self, height: int) -> None:
        super().__init__(f"Block {height} not found")
        self.height = height


class WriteError(IndexerError):
    """A block's row batch could not be persisted. Nothing from that block was committed."""


class ConversionError(IndexerError):
    """Malformed numeric input from the ledger. Never coerced to a default."""
