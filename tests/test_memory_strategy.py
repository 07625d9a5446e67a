"""Tests for the in-memory strategy."""

from datetime import datetime, timedelta, timezone

import pytest

from migrate_tool.strategies.memory import MemoryStrategy
from migrate_tool.strategy import (
    MigrationApply,
    MigrationFile,
    MigrationStrategy,
    SupportsDestroy,
    SupportsLocalDiscovery,
    SupportsSetup,
)


@pytest.fixture
def memory():
    """Create a MemoryStrategy."""
    return MemoryStrategy()


def apply_descriptor(path, batch_date, apply_date=None):
    return MigrationApply(
        name=path.name,
        filepath=path,
        batch_date=batch_date,
        apply_date=apply_date or batch_date,
    )


class TestContract:
    """Tests for protocol conformance."""

    def test_satisfies_strategy_protocol(self, memory):
        """Test MemoryStrategy implements the required operations."""
        assert isinstance(memory, MigrationStrategy)

    def test_capabilities(self, memory):
        """Test only the discovery capability is provided."""
        assert isinstance(memory, SupportsLocalDiscovery)
        assert not isinstance(memory, SupportsSetup)
        assert not isinstance(memory, SupportsDestroy)


class TestLocking:
    """Tests for lock bookkeeping."""

    @pytest.mark.asyncio
    async def test_lock_round_trip(self, memory, tmp_path):
        """Test is_locked is false, true after lock and false after unlock."""
        migration = MigrationFile(name="a.py", filepath=tmp_path / "a.py")

        assert await memory.is_locked(migration) is False
        await memory.lock(migration)
        assert await memory.is_locked(migration) is True
        await memory.unlock(migration)
        assert await memory.is_locked(migration) is False

    @pytest.mark.asyncio
    async def test_locks_are_per_migration(self, memory, tmp_path):
        """Test locking one migration leaves others unlocked."""
        await memory.lock(MigrationFile(name="a.py", filepath=tmp_path / "a.py"))
        assert await memory.is_locked(MigrationFile(name="b.py", filepath=tmp_path / "b.py")) is False

    @pytest.mark.asyncio
    async def test_unlock_without_lock(self, memory, tmp_path):
        """Test unlocking an unlocked migration is harmless."""
        await memory.unlock(MigrationFile(name="a.py", filepath=tmp_path / "a.py"))
        assert memory.locks == {}


class TestChangelog:
    """Tests for changelog bookkeeping."""

    @pytest.mark.asyncio
    async def test_up_runs_script_and_records(self, memory, write_migration):
        """Test up() runs the script against db and records the dates."""
        path = write_migration("20240101-a.py")
        batch = datetime(2024, 1, 1, tzinfo=timezone.utc)

        await memory.up(apply_descriptor(path, batch))

        assert memory.db["calls"] == [("up", "20240101-a.py")]
        record = memory.changelog[0]
        assert record.name == "20240101-a.py"
        assert record.batch_date == batch
        assert record.apply_date == batch

    @pytest.mark.asyncio
    async def test_down_removes_record(self, memory, write_migration):
        """Test down() runs the script and forgets the record."""
        path = write_migration("20240101-a.py")
        await memory.up(apply_descriptor(path, datetime.now(timezone.utc)))

        await memory.down(MigrationFile(name=path.name, filepath=path))

        assert memory.changelog == []
        assert memory.db["calls"][-1] == ("down", "20240101-a.py")

    @pytest.mark.asyncio
    async def test_down_unapplied_is_tolerated(self, memory, write_migration):
        """Test down() of a never-applied migration runs the script only."""
        path = write_migration("20240101-a.py")

        await memory.down(MigrationFile(name=path.name, filepath=path))

        assert memory.changelog == []
        assert memory.db["calls"] == [("down", "20240101-a.py")]

    @pytest.mark.asyncio
    async def test_latest_by_batch_then_name(self, memory, write_migration):
        """Test the latest record is the highest name in the newest batch."""
        older = datetime(2024, 1, 1, tzinfo=timezone.utc)
        newer = older + timedelta(seconds=1)
        a = write_migration("20240101-a.py")
        b = write_migration("20240102-b.py")
        c = write_migration("20240103-c.py")

        await memory.up(apply_descriptor(a, older))
        await memory.up(apply_descriptor(c, newer))
        await memory.up(apply_descriptor(b, newer))

        assert await memory.get_latest_batch_date() == newer
        assert await memory.get_latest_migration_name() == "20240103-c.py"
        assert await memory.get_batch(newer) == ["20240103-c.py", "20240102-b.py"]
        assert await memory.get_batch(older) == ["20240101-a.py"]

    @pytest.mark.asyncio
    async def test_empty_history(self, memory):
        """Test queries on an empty changelog."""
        assert await memory.get_latest_batch_date() is None
        assert await memory.get_latest_migration_name() is None
        assert await memory.get_batch(datetime.now(timezone.utc)) == []

    @pytest.mark.asyncio
    async def test_shared_db(self, write_migration):
        """Test a supplied db dict is the one handed to scripts."""
        db = {"seed": True}
        memory = MemoryStrategy(db=db)
        path = write_migration("20240101-a.py")

        await memory.up(apply_descriptor(path, datetime.now(timezone.utc)))

        assert db["calls"] == [("up", "20240101-a.py")]


class TestFiles:
    """Tests for discovery and naming."""

    @pytest.mark.asyncio
    async def test_discovery_filters_extension_and_directories(self, memory, migrations_dir):
        """Test only script files are listed."""
        (migrations_dir / "20240101-a.py").write_text("", encoding="utf-8")
        (migrations_dir / "README.md").write_text("", encoding="utf-8")
        (migrations_dir / "__pycache__").mkdir()
        (migrations_dir / "dir.py").mkdir()

        migrations = await memory.read_local_migrations(migrations_dir)

        assert [m.name for m in migrations] == ["20240101-a.py"]

    def test_file_name_uses_extension(self, tmp_path):
        """Test generated names carry the configured extension."""
        assert MemoryStrategy(extension=".mig").get_migration_file_name("x").endswith("-x.mig")

    @pytest.mark.asyncio
    async def test_create_migration_template(self, memory, tmp_path):
        """Test the starter script names the migration."""
        content = await memory.create_migration(
            MigrationFile(name="20240101-a.py", filepath=tmp_path / "20240101-a.py")
        )

        assert "20240101-a.py" in content
        assert "async def up(db)" in content
        assert "async def down(db)" in content
