"""Default discovery of local migrations.

Lists the migrations directory (non-recursively) and orders the entries
by name. No extension filtering happens here; strategies that need it
implement ``read_local_migrations`` themselves.
"""

import logging
import os
from pathlib import Path

from .strategy import MigrationFile

logger = logging.getLogger(__name__)


def read_local_migrations(migrations_dir: Path) -> list[MigrationFile]:
    """Discover all migrations in a directory.

    Args:
        migrations_dir: Directory holding the migration files

    Returns:
        Migrations sorted ascending by name (code point order, which
        matches byte-wise comparison of the UTF-8 names)
    """
    migrations_dir = Path(migrations_dir)

    if not migrations_dir.is_dir():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return []

    migrations = [
        MigrationFile(name=entry.name, filepath=migrations_dir / entry.name)
        for entry in os.scandir(migrations_dir)
    ]

    migrations.sort(key=lambda m: m.name)
    logger.debug(f"Discovered {len(migrations)} migrations in {migrations_dir}")
    return migrations
