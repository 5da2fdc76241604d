from ethindexer.domain.enums.status import BlockState

__all__ = ["BlockState"]
