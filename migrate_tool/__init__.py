"""Ordered, reversible migrations driven through pluggable strategies.

Provides:
- A Migrator that applies, reverts and rolls back migrations in name order
- Per-migration locking and batch tracking delegated to a strategy
- Bundled in-memory and SurrealDB strategies
- A ``migrate`` command line tool

Usage:
    from migrate_tool import define_config, open_migrator
    from migrate_tool.strategies import MemoryStrategy

    config = define_config(strategy=MemoryStrategy(), migrations_dir="migrations")

    async with open_migrator(config) as migrator:
        await migrator.latest()
"""

from .config import MigrateConfig, define_config, load_config
from .errors import (
    BackendError,
    ConfigurationError,
    IntegrityError,
    LockHeldError,
    MigrationError,
    MissingExportError,
    MissingFileError,
)
from .lifecycle import open_migrator, run_with_migrator
from .migrator import Migrator
from .strategy import (
    MigrationApply,
    MigrationContent,
    MigrationFile,
    MigrationRecord,
    MigrationStrategy,
)

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "MigrateConfig",
    "define_config",
    "load_config",
    # Orchestration
    "Migrator",
    "open_migrator",
    "run_with_migrator",
    # Strategy contract
    "MigrationApply",
    "MigrationContent",
    "MigrationFile",
    "MigrationRecord",
    "MigrationStrategy",
    # Errors
    "BackendError",
    "ConfigurationError",
    "IntegrityError",
    "LockHeldError",
    "MigrationError",
    "MissingExportError",
    "MissingFileError",
    "__version__",
]
