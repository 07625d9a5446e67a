"""Bundled migration strategies.

- MemoryStrategy: in-process changelog, for tests and experiments
- SurrealDBStrategy: changelog and locks in SurrealDB tables
"""

from .memory import MemoryStrategy
from .surreal import SurrealDBStrategy, SurrealStrategyOptions

__all__ = [
    "MemoryStrategy",
    "SurrealDBStrategy",
    "SurrealStrategyOptions",
]
