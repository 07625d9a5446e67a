"""In-memory migration strategy.

Keeps the changelog, the lock rows and a dict "database" in process
memory. Useful for tests, examples and dry experiments with migration
scripts; nothing survives the process.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..discovery import read_local_migrations
from ..scripts import render_migration_template, run_migration_function, timestamped_file_name
from ..strategy import MigrationApply, MigrationFile, MigrationRecord

logger = logging.getLogger(__name__)


class MemoryStrategy:
    """Migration strategy backed by plain Python structures.

    Attributes:
        db: Dict handed to every migration's up()/down()
        changelog: Applied migrations in insertion order
        locks: Held locks, keyed by migration name
    """

    def __init__(self, extension: str = ".py", db: Optional[dict[str, Any]] = None):
        """Initialize the strategy.

        Args:
            extension: Script extension used for discovery and naming
            db: Pre-populated database dict (a new one if omitted)
        """
        self.extension = extension
        self.db: dict[str, Any] = db if db is not None else {}
        self.changelog: list[MigrationRecord] = []
        self.locks: dict[str, datetime] = {}

    async def read_local_migrations(self, migrations_dir: Path) -> list[MigrationFile]:
        """List migration scripts, ignoring other files."""
        return [
            m
            for m in read_local_migrations(migrations_dir)
            if m.name.endswith(self.extension) and Path(m.filepath).is_file()
        ]

    async def create_migration(self, migration: MigrationFile) -> str:
        return render_migration_template(migration.name, "in-memory database dict")

    async def up(self, migration: MigrationApply) -> None:
        await run_migration_function(migration.filepath, "up", self.db)

        self.changelog.append(
            MigrationRecord(
                name=migration.name,
                batch_date=migration.batch_date or datetime.now(timezone.utc),
                apply_date=migration.apply_date or datetime.now(timezone.utc),
            )
        )

    async def down(self, migration: MigrationFile) -> None:
        """Run the script's down() and forget the record.

        Migrations that were never applied are reverted too; there is just
        no record to remove.
        """
        await run_migration_function(migration.filepath, "down", self.db)

        before = len(self.changelog)
        self.changelog = [r for r in self.changelog if r.name != migration.name]
        if len(self.changelog) == before:
            logger.debug(f"No changelog record for {migration.name}")

    async def lock(self, migration: MigrationFile) -> None:
        self.locks[migration.name] = datetime.now(timezone.utc)

    async def unlock(self, migration: MigrationFile) -> None:
        self.locks.pop(migration.name, None)

    async def is_locked(self, migration: MigrationFile) -> bool:
        return migration.name in self.locks

    def _latest_record(self) -> Optional[MigrationRecord]:
        if not self.changelog:
            return None
        return max(self.changelog, key=lambda r: (r.batch_date, r.name))

    async def get_latest_batch_date(self) -> Optional[datetime]:
        record = self._latest_record()
        return record.batch_date if record else None

    async def get_batch(self, batch_date: datetime) -> list[str]:
        return [r.name for r in self.changelog if r.batch_date == batch_date]

    def get_migration_file_name(self, migration_name: str) -> str:
        return timestamped_file_name(migration_name, self.extension)

    async def get_latest_migration_name(self) -> Optional[str]:
        record = self._latest_record()
        return record.name if record else None
