"""Migration descriptors and the strategy contract.

A strategy is the backend adapter the Migrator drives: it persists the
changelog, holds per-migration locks and executes migration scripts.

The contract is split into a required protocol every backend implements
and small capability protocols for the optional hooks (setup, destroy,
local discovery). The Migrator checks the
capabilities before calling them, so a backend only implements what it
needs.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Protocol, Union, runtime_checkable


@dataclass(frozen=True)
class MigrationFile:
    """A discovered migration.

    Attributes:
        name: Migration file name; doubles as the sort key
        filepath: Full path to the migration script
    """

    name: str
    filepath: Path


@dataclass(frozen=True)
class MigrationApply(MigrationFile):
    """A migration about to be applied, with its changelog dates."""

    apply_date: Optional[datetime] = None
    batch_date: Optional[datetime] = None


@dataclass
class MigrationRecord:
    """A changelog entry for an applied migration."""

    name: str
    batch_date: datetime
    apply_date: datetime


@dataclass(frozen=True)
class MigrationContent:
    """One file produced by ``create_migration``."""

    filename: str
    content: str


ContentItem = Union[str, MigrationContent, Mapping[str, str]]
CreateMigrationResult = Union[ContentItem, Sequence[ContentItem]]


@runtime_checkable
class MigrationStrategy(Protocol):
    """Protocol every migration backend must implement."""

    async def create_migration(self, migration: MigrationFile) -> CreateMigrationResult:
        """Return the content of a new migration.

        Either a single content string or a list of strings and
        ``MigrationContent`` entries for multi-file migrations.
        """
        ...

    async def up(self, migration: MigrationApply) -> None:
        """Run the forward direction and record the migration."""
        ...

    async def down(self, migration: MigrationFile) -> None:
        """Run the backward direction and remove the changelog record."""
        ...

    async def lock(self, migration: MigrationFile) -> None:
        """Mark a migration as locked."""
        ...

    async def unlock(self, migration: MigrationFile) -> None:
        """Release the lock on a migration."""
        ...

    async def is_locked(self, migration: MigrationFile) -> bool:
        """Check whether a migration is locked."""
        ...

    async def get_latest_batch_date(self) -> Optional[datetime]:
        """Date of the most recent batch, or None without history."""
        ...

    async def get_batch(self, batch_date: datetime) -> list[str]:
        """Names of the migrations recorded under a batch date."""
        ...

    def get_migration_file_name(self, migration_name: str) -> str:
        """Generate the file name for a new migration.

        Must be unique, sortable and free of parent directories; the
        order of migrations is the order of their file names.
        """
        ...

    async def get_latest_migration_name(self) -> Optional[str]:
        """Name of the latest applied migration, or None."""
        ...


@runtime_checkable
class SupportsSetup(Protocol):
    """Strategy that prepares backend resources before use."""

    async def setup(self, config: Any) -> None: ...


@runtime_checkable
class SupportsDestroy(Protocol):
    """Strategy that releases backend resources after use."""

    async def destroy(self) -> None: ...


@runtime_checkable
class SupportsLocalDiscovery(Protocol):
    """Strategy that lists local migrations itself."""

    async def read_local_migrations(self, migrations_dir: Path) -> list[MigrationFile]: ...
