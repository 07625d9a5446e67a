"""SurrealDB migration strategy.

Stores the changelog and the per-migration locks in two SurrealDB tables
and runs Python migration scripts against the live connection.

Usage (migrate.config.py):
    from migrate_tool import define_config
    from migrate_tool.db import SurrealConfig
    from migrate_tool.strategies import SurrealDBStrategy, SurrealStrategyOptions

    config = define_config(
        strategy=SurrealDBStrategy(
            SurrealStrategyOptions(connection=SurrealConfig(database="my_app"))
        ),
    )
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..db.config import SurrealConfig
from ..db.connection import Connection
from ..discovery import read_local_migrations
from ..errors import ConfigurationError
from ..scripts import render_migration_template, run_migration_function, timestamped_file_name
from ..strategy import MigrationApply, MigrationFile

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

SUPPORTED_EXTENSIONS = (".py",)

# Tracking tables; names are validated identifiers
TRACKING_TABLES_SQL = """
DEFINE TABLE IF NOT EXISTS {changelog} SCHEMAFULL;
DEFINE FIELD IF NOT EXISTS name ON TABLE {changelog} TYPE string;
DEFINE FIELD IF NOT EXISTS batch_date ON TABLE {changelog} TYPE string;
DEFINE FIELD IF NOT EXISTS apply_date ON TABLE {changelog} TYPE string;
DEFINE INDEX IF NOT EXISTS idx_{changelog}_name ON TABLE {changelog} COLUMNS name UNIQUE;
DEFINE INDEX IF NOT EXISTS idx_{changelog}_batch ON TABLE {changelog} COLUMNS batch_date;
DEFINE TABLE IF NOT EXISTS {lock} SCHEMAFULL;
DEFINE FIELD IF NOT EXISTS name ON TABLE {lock} TYPE string;
DEFINE FIELD IF NOT EXISTS locked_at ON TABLE {lock} TYPE datetime;
"""


def to_iso(value: datetime) -> str:
    """Serialize a timestamp as UTC ISO-8601 with microseconds."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(value: Any) -> datetime:
    """Parse a stored timestamp back into an aware datetime."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass
class SurrealStrategyOptions:
    """Options for SurrealDBStrategy.

    Attributes:
        connection: SurrealDB connection settings
        lock_table: Table holding one row per locked migration
        changelog_table: Table holding applied migrations
        migration_extension: Extension of migration scripts
    """

    connection: SurrealConfig = field(default_factory=SurrealConfig)
    lock_table: str = "migrate_lock"
    changelog_table: str = "migrate_changelog"
    migration_extension: str = ".py"


class SurrealDBStrategy:
    """Migration strategy persisting to SurrealDB."""

    def __init__(
        self,
        options: Optional[SurrealStrategyOptions] = None,
        connection: Optional[Connection] = None,
    ):
        """Initialize the strategy.

        Args:
            options: Strategy options (defaults read SURREAL_* env vars)
            connection: Existing connection to use instead of opening one

        Raises:
            ConfigurationError: If a table name or extension is invalid
        """
        self.options = options or SurrealStrategyOptions()

        for table in (self.options.lock_table, self.options.changelog_table):
            if not IDENTIFIER_PATTERN.match(table):
                raise ConfigurationError(f"Invalid table name: {table!r}")

        if self.options.migration_extension not in SUPPORTED_EXTENSIONS:
            raise ConfigurationError(
                f"Unsupported migration extension: {self.options.migration_extension}! "
                f"Supported extensions are: {', '.join(SUPPORTED_EXTENSIONS)}"
            )

        self.conn = connection or Connection(self.options.connection)

    @property
    def changelog_table(self) -> str:
        return self.options.changelog_table

    @property
    def lock_table(self) -> str:
        return self.options.lock_table

    async def setup(self, config: Any) -> None:
        """Connect and make sure the tracking tables exist."""
        errors = self.options.connection.validate()
        for error in errors:
            logger.warning(f"SurrealDB configuration: {error}")

        await self.conn.connect()
        await self.conn.query(
            TRACKING_TABLES_SQL.format(changelog=self.changelog_table, lock=self.lock_table)
        )
        logger.debug(
            f"Tracking tables ready: {self.changelog_table}, {self.lock_table}"
        )

    async def destroy(self) -> None:
        await self.conn.disconnect()

    async def read_local_migrations(self, migrations_dir: Path) -> list[MigrationFile]:
        """List migration scripts with the configured extension."""
        extension = self.options.migration_extension
        return [
            m
            for m in read_local_migrations(migrations_dir)
            if m.name.endswith(extension) and Path(m.filepath).is_file()
        ]

    async def create_migration(self, migration: MigrationFile) -> str:
        return render_migration_template(
            migration.name, "SurrealDB connection (migrate_tool.db.Connection)"
        )

    async def up(self, migration: MigrationApply) -> None:
        """Run the script's up() and record it in the changelog."""
        await run_migration_function(migration.filepath, "up", self.conn)

        now = datetime.now(timezone.utc)
        await self.conn.query(
            "CREATE type::table($table) CONTENT $data",
            {
                "table": self.changelog_table,
                "data": {
                    "name": migration.name,
                    "batch_date": to_iso(migration.batch_date or now),
                    "apply_date": to_iso(migration.apply_date or now),
                },
            },
        )

    async def down(self, migration: MigrationFile) -> None:
        """Run the script's down() and drop its changelog record."""
        await run_migration_function(migration.filepath, "down", self.conn)

        await self.conn.query(
            "DELETE type::table($table) WHERE name = $name",
            {"table": self.changelog_table, "name": migration.name},
        )

    async def lock(self, migration: MigrationFile) -> None:
        """Create the lock row; fails if the row already exists."""
        await self.conn.query(
            "CREATE type::thing($table, $name) CONTENT { name: $name, locked_at: time::now() }",
            {"table": self.lock_table, "name": migration.name},
        )

    async def unlock(self, migration: MigrationFile) -> None:
        await self.conn.query(
            "DELETE type::thing($table, $name)",
            {"table": self.lock_table, "name": migration.name},
        )

    async def is_locked(self, migration: MigrationFile) -> bool:
        result = await self.conn.query(
            "SELECT name FROM type::thing($table, $name)",
            {"table": self.lock_table, "name": migration.name},
        )
        return bool(result)

    async def _latest_record(self) -> Optional[dict[str, Any]]:
        result = await self.conn.query(
            "SELECT name, batch_date FROM type::table($table) "
            "ORDER BY batch_date DESC, name DESC LIMIT 1",
            {"table": self.changelog_table},
        )
        return result[0] if result else None

    async def get_latest_batch_date(self) -> Optional[datetime]:
        record = await self._latest_record()
        if not record or not record.get("batch_date"):
            return None
        return from_iso(record["batch_date"])

    async def get_batch(self, batch_date: datetime) -> list[str]:
        result = await self.conn.query(
            "SELECT name FROM type::table($table) WHERE batch_date = $batch_date ORDER BY name ASC",
            {"table": self.changelog_table, "batch_date": to_iso(batch_date)},
        )
        return [r["name"] for r in result]

    def get_migration_file_name(self, migration_name: str) -> str:
        return timestamped_file_name(migration_name, self.options.migration_extension)

    async def get_latest_migration_name(self) -> Optional[str]:
        record = await self._latest_record()
        return record.get("name") if record else None
