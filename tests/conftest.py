"""Shared pytest fixtures for the migration tool tests.

Provides a temporary migrations directory, a factory for migration
scripts, and strategies backed by process memory.
"""

from pathlib import Path
from textwrap import dedent
from unittest.mock import AsyncMock, MagicMock

import pytest

from migrate_tool.config import define_config
from migrate_tool.migrator import Migrator
from migrate_tool.strategies.memory import MemoryStrategy
from migrate_tool.strategy import MigrationApply, MigrationFile

SCRIPT_TEMPLATE = dedent('''
    def up(db):
        {up_body}


    def down(db):
        {down_body}
''')

RECORD_CALL = 'db.setdefault("calls", []).append(("{direction}", "{name}"))'


class RecordingStrategy(MemoryStrategy):
    """MemoryStrategy that logs every lock and direction call in order."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.events: list[tuple[str, str]] = []

    async def is_locked(self, migration: MigrationFile) -> bool:
        self.events.append(("is_locked", migration.name))
        return await super().is_locked(migration)

    async def lock(self, migration: MigrationFile) -> None:
        self.events.append(("lock", migration.name))
        await super().lock(migration)

    async def unlock(self, migration: MigrationFile) -> None:
        self.events.append(("unlock", migration.name))
        await super().unlock(migration)

    async def up(self, migration: MigrationApply) -> None:
        self.events.append(("up", migration.name))
        await super().up(migration)

    async def down(self, migration: MigrationFile) -> None:
        self.events.append(("down", migration.name))
        await super().down(migration)


@pytest.fixture
def migrations_dir(tmp_path):
    """Create an empty migrations directory."""
    path = tmp_path / "migrations"
    path.mkdir()
    return path


@pytest.fixture
def write_migration(migrations_dir):
    """Factory writing a migration script that records its calls in db["calls"].

    Pass ``fail_up``/``fail_down`` to make a direction raise RuntimeError.
    """

    def _write(name: str, fail_up: bool = False, fail_down: bool = False) -> Path:
        up_body = (
            'raise RuntimeError("up failed")'
            if fail_up
            else RECORD_CALL.format(direction="up", name=name)
        )
        down_body = (
            'raise RuntimeError("down failed")'
            if fail_down
            else RECORD_CALL.format(direction="down", name=name)
        )
        path = migrations_dir / name
        path.write_text(
            SCRIPT_TEMPLATE.format(up_body=up_body, down_body=down_body),
            encoding="utf-8",
        )
        return path

    return _write


@pytest.fixture
def strategy():
    """Create a recording in-memory strategy."""
    return RecordingStrategy()


@pytest.fixture
def migrator(strategy, migrations_dir):
    """Create a Migrator over the recording strategy."""
    return Migrator(define_config(strategy=strategy, migrations_dir=migrations_dir))


@pytest.fixture
def mock_surreal_client():
    """Create a mock SurrealDB client."""
    client = MagicMock()
    client.connect = AsyncMock()
    client.signin = AsyncMock()
    client.authenticate = AsyncMock()
    client.use = AsyncMock()
    client.close = AsyncMock()
    client.query = AsyncMock(return_value=[{"result": []}])
    return client


@pytest.fixture
def mock_surreal_config():
    """Create a SurrealDB configuration for a local server."""
    from migrate_tool.db.config import SurrealConfig

    return SurrealConfig(
        url="ws://localhost:8000/rpc",
        namespace="test",
        database="test_db",
        user="root",
        password="root",
        connect_timeout=5.0,
        query_timeout=30.0,
    )


@pytest.fixture
def mock_conn():
    """Create a mock Connection for strategy tests."""
    conn = MagicMock()
    conn.connect = AsyncMock()
    conn.disconnect = AsyncMock()
    conn.query = AsyncMock(return_value=[])
    return conn
