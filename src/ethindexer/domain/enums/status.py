from enum import Enum


class BlockState(str, Enum):
    """Lifecycle of one block height during a sweep."""

    PENDING = "PENDING"
    FETCHING = "FETCHING"
    FETCHED = "FETCHED"
    WRITING = "WRITING"
    COMMITTED = "COMMITTED"
    FETCH_FAILED = "FETCH_FAILED"
    WRITE_FAILED = "WRITE_FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (BlockState.COMMITTED, BlockState.FETCH_FAILED, BlockState.WRITE_FAILED)
