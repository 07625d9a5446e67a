"""Migration orchestrator.

Computes pending work from the local migrations and the strategy's
changelog, then applies or reverts migrations one at a time under a
per-migration lock.

Ordering rules:
- Migrations apply in ascending name order and revert in descending order.
- Every migration applied by one ``up``/``latest`` call shares a single
  batch date; ``rollback`` reverts the newest batch as a unit.
- A failure stops the sequence at the failing migration. Its lock is
  released before the error propagates and the changelog reflects exactly
  what completed.
"""

import logging
import os
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .config import MigrateConfig
from .discovery import read_local_migrations
from .errors import (
    ConfigurationError,
    IntegrityError,
    LockHeldError,
    MigrationError,
    MissingFileError,
)
from .strategy import (
    CreateMigrationResult,
    MigrationApply,
    MigrationContent,
    MigrationFile,
    SupportsDestroy,
    SupportsLocalDiscovery,
    SupportsSetup,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _display_path(path: Path) -> str:
    """Path relative to the working directory when possible."""
    try:
        return os.path.relpath(path)
    except ValueError:
        return str(path)


def normalize_migration_content(
    result: CreateMigrationResult,
    default_filename: str,
) -> list[MigrationContent]:
    """Normalize a ``create_migration`` result into file entries.

    Bare strings, alone or inside a sequence, are written to the default
    file name. Several bare strings in one result therefore target the
    same file; multi-file migrations must name their extra files.

    Args:
        result: Value returned by the strategy
        default_filename: File name generated for the migration

    Returns:
        Ordered list of files to write

    Raises:
        ConfigurationError: If the strategy returned anything else
    """
    if isinstance(result, (str, MigrationContent, Mapping)):
        items = [result]
    elif isinstance(result, Sequence) and not isinstance(result, (bytes, bytearray)):
        items = list(result)
    else:
        items = [result]

    files: list[MigrationContent] = []
    for item in items:
        if isinstance(item, str):
            files.append(MigrationContent(filename=default_filename, content=item))
        elif isinstance(item, MigrationContent):
            files.append(item)
        elif isinstance(item, Mapping) and {"filename", "content"} <= item.keys():
            files.append(MigrationContent(filename=item["filename"], content=item["content"]))
        else:
            raise ConfigurationError(
                f"Unsupported migration content for {default_filename}: "
                f"{type(item).__name__}. Expected a string, MigrationContent "
                f"or a mapping with 'filename' and 'content'.",
                migration=default_filename,
            )

    return files


class Migrator:
    """Drives a migration strategy.

    Holds no state between calls: discovery and the pending set are
    recomputed from disk and from the backend on every operation.
    """

    def __init__(self, config: MigrateConfig):
        """Initialize the migrator.

        Args:
            config: Resolved configuration with strategy and migrations dir
        """
        self.config = config

    @property
    def strategy(self):
        return self.config.strategy

    @property
    def migrations_dir(self) -> Path:
        return Path(self.config.migrations_dir)

    async def setup(self) -> None:
        """Prepare the strategy, if it needs preparing."""
        if isinstance(self.strategy, SupportsSetup):
            await self.strategy.setup(self.config)

    async def destroy(self) -> None:
        """Release strategy resources (connections, handles)."""
        if isinstance(self.strategy, SupportsDestroy):
            await self.strategy.destroy()

    async def get_current(self) -> Optional[str]:
        """Get the name of the latest applied migration.

        Returns:
            Migration name, or None if nothing has been applied
        """
        return await self.strategy.get_latest_migration_name()

    async def get_migrations(self) -> list[MigrationFile]:
        """List local migrations, deferring to the strategy if it can."""
        if isinstance(self.strategy, SupportsLocalDiscovery):
            return list(await self.strategy.read_local_migrations(self.migrations_dir))
        return read_local_migrations(self.migrations_dir)

    async def get_pending_migrations(self) -> list[MigrationFile]:
        """Get the migrations after the latest applied one.

        Returns:
            Pending migrations in ascending order (all of them when
            nothing has been applied)

        Raises:
            IntegrityError: If the latest applied migration is not present
                in the migrations directory
        """
        latest = await self.strategy.get_latest_migration_name()
        migrations = await self.get_migrations()

        if not latest:
            return migrations

        latest_index = self._index_of(migrations, latest)
        if latest_index == -1:
            raise IntegrityError(
                f'Latest migration "{latest}" not found in the migrations directory.',
                migration=latest,
            )

        return migrations[latest_index + 1 :]

    @staticmethod
    def _index_of(migrations: list[MigrationFile], name: str) -> int:
        for index, migration in enumerate(migrations):
            if migration.name == name:
                return index
        return -1

    async def _with_lock(
        self,
        migration: MigrationFile,
        action: Callable[[], Awaitable[None]],
    ) -> None:
        """Run an action while holding the migration's lock.

        The lock is released on every exit path once it has been taken.
        Migration errors that do not name a migration yet are tagged with
        this one before they propagate.

        Raises:
            LockHeldError: If another run already holds the lock
        """
        if await self.strategy.is_locked(migration):
            raise LockHeldError(
                f'Migration "{migration.name}" is already locked.',
                migration=migration.name,
            )

        await self.strategy.lock(migration)
        try:
            await action()
        except Exception as e:
            if isinstance(e, MigrationError) and e.migration is None:
                e.migration = migration.name
            logger.error(f'Migration "{migration.name}" failed: {e}')
            raise
        finally:
            await self.strategy.unlock(migration)

    async def _apply(self, migration: MigrationFile, batch_date: datetime) -> None:
        async def action() -> None:
            await self.strategy.up(
                MigrationApply(
                    name=migration.name,
                    filepath=migration.filepath,
                    apply_date=_now(),
                    batch_date=batch_date,
                )
            )
            logger.info(f'Migration "{migration.name}" applied successfully.')

        await self._with_lock(migration, action)

    async def _revert(self, migration: MigrationFile) -> None:
        async def action() -> None:
            await self.strategy.down(migration)
            logger.info(f'Migration "{migration.name}" reverted successfully.')

        await self._with_lock(migration, action)

    async def up(self, name: Optional[str] = None) -> list[MigrationFile]:
        """Apply pending migrations up to and including ``name``.

        Args:
            name: Migration to stop at. Defaults to the first pending
                migration, so a bare ``up()`` applies exactly one.

        Returns:
            The migrations applied, in order
        """
        pending = await self.get_pending_migrations()

        if not pending:
            logger.info("No pending migrations to apply.")
            return []

        batch_date = _now()
        target = name or pending[0].name
        applied: list[MigrationFile] = []

        for migration in pending:
            await self._apply(migration, batch_date)
            applied.append(migration)

            if migration.name == target:
                break

        return applied

    async def latest(self) -> list[MigrationFile]:
        """Apply every pending migration as one batch.

        Returns:
            The migrations applied, in order
        """
        pending = await self.get_pending_migrations()

        if not pending:
            logger.info("No pending migrations to apply.")
            return []

        batch_date = _now()
        for migration in pending:
            await self._apply(migration, batch_date)

        return pending

    async def down(self, name: Optional[str] = None) -> list[MigrationFile]:
        """Revert migrations down to and including ``name``.

        Walks the full local list from its end down to the target, so
        local migrations newer than the latest applied one are handed to
        the strategy's ``down`` as well.

        Args:
            name: Migration to revert to. Defaults to the latest applied.

        Returns:
            The migrations reverted, newest first

        Raises:
            IntegrityError: If nothing has been applied, the target is not
                in the migrations directory, or the target is newer than
                the latest applied migration
        """
        latest = await self.strategy.get_latest_migration_name()

        if not latest:
            raise IntegrityError("No migrations have been applied yet.")

        target = name or latest
        migrations = await self.get_migrations()
        latest_index = self._index_of(migrations, latest)
        target_index = self._index_of(migrations, target)

        if target_index == -1:
            raise IntegrityError(
                f'Migration "{target}" not found in the migrations directory.',
                migration=target,
            )

        if latest_index == -1:
            raise IntegrityError(
                f'Latest migration "{latest}" not found in the migrations directory.',
                migration=latest,
            )

        if target_index > latest_index:
            raise IntegrityError(
                f'Cannot revert to migration "{target}" as it is newer than '
                f'the latest applied migration "{latest}".',
                migration=target,
            )

        reverted: list[MigrationFile] = []
        for migration in reversed(migrations[target_index:]):
            await self._revert(migration)
            reverted.append(migration)

        return reverted

    async def revert_all(self) -> list[MigrationFile]:
        """Revert every local migration, newest first.

        Raises:
            IntegrityError: If nothing has been applied
        """
        latest = await self.strategy.get_latest_migration_name()

        if not latest:
            raise IntegrityError("No migrations have been applied yet.")

        reverted: list[MigrationFile] = []
        for migration in reversed(await self.get_migrations()):
            await self._revert(migration)
            reverted.append(migration)

        return reverted

    async def rollback(self) -> list[MigrationFile]:
        """Revert the latest batch.

        Every file of the batch is checked before anything is reverted.

        Returns:
            The migrations reverted, newest first

        Raises:
            MissingFileError: If a batch member is missing from disk
        """
        batch_date = await self.strategy.get_latest_batch_date()

        if not batch_date:
            logger.info("No migrations have been applied yet.")
            return []

        batch = await self.strategy.get_batch(batch_date)

        if not batch:
            logger.info("No migrations to rollback in the latest batch.")
            return []

        migrations: list[MigrationFile] = []
        for migration_name in batch:
            filepath = self.migrations_dir / migration_name

            if not filepath.exists():
                raise MissingFileError(
                    f'Migration file "{_display_path(filepath)}" is missing.',
                    migration=migration_name,
                    path=str(filepath),
                )

            migrations.append(MigrationFile(name=migration_name, filepath=filepath))

        migrations.sort(key=lambda m: m.name, reverse=True)
        for migration in migrations:
            await self._revert(migration)

        return migrations

    async def create(self, migration_name: str) -> Path:
        """Create the files for a new migration.

        Args:
            migration_name: Descriptive name, e.g. "add_users"

        Returns:
            Path of the primary migration file
        """
        file_name = self.strategy.get_migration_file_name(migration_name)
        filepath = self.migrations_dir / file_name

        result = await self.strategy.create_migration(
            MigrationFile(name=file_name, filepath=filepath)
        )

        for entry in normalize_migration_content(result, file_name):
            target = self.migrations_dir / entry.filename
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(entry.content, encoding="utf-8")
            logger.info(f'Migration file created: "{_display_path(target)}"')

        return filepath
