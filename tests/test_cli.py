"""Tests for the migrate command line interface."""

import io
from textwrap import dedent

import pytest
from rich.console import Console

from migrate_tool.cli import create_parser, main

A = "20240101000000-a.py"
B = "20240102000000-b.py"

CONFIG = dedent('''
    from migrate_tool import define_config
    from migrate_tool.strategies import MemoryStrategy

    config = define_config(strategy=MemoryStrategy(), migrations_dir="migrations")
''')

SCRIPT = dedent('''
    def up(db):
        pass


    def down(db):
        pass
''')


def run_cli(*argv):
    """Run main() and return its exit code and console output."""
    console = Console(file=io.StringIO(), width=200)
    with pytest.raises(SystemExit) as exc_info:
        main(list(argv), console=console)
    return exc_info.value.code, console.file.getvalue()


@pytest.fixture
def empty_dir(tmp_path, monkeypatch):
    """Run from a directory without configuration."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("MIGRATE_CONFIG", raising=False)
    return tmp_path


@pytest.fixture
def project(empty_dir):
    """Create a configured project with two migrations."""
    (empty_dir / "migrate.config.py").write_text(CONFIG, encoding="utf-8")
    migrations = empty_dir / "migrations"
    migrations.mkdir()
    for name in (A, B):
        (migrations / name).write_text(SCRIPT, encoding="utf-8")
    return empty_dir


class TestParser:
    """Tests for argument parsing."""

    def test_optional_target(self):
        """Test up and down take an optional migration name."""
        parser = create_parser()
        assert parser.parse_args(["up"]).name is None
        assert parser.parse_args(["down", A]).name == A

    def test_global_options(self):
        """Test --config and --verbose come before the command."""
        args = create_parser().parse_args(["-c", "other.py", "-v", "status"])
        assert args.config == "other.py"
        assert args.verbose is True
        assert args.command == "status"

    def test_command_required(self):
        """Test a command must be given."""
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args([])
        assert exc_info.value.code == 2

    def test_create_requires_name(self):
        """Test create needs a migration name."""
        with pytest.raises(SystemExit):
            create_parser().parse_args(["create"])


class TestInit:
    """Tests for the init command."""

    def test_init_writes_config(self, empty_dir):
        """Test init writes the starter configuration."""
        code, output = run_cli("init")

        assert code == 0
        assert (empty_dir / "migrate.config.py").exists()
        assert "created successfully" in output

    def test_init_custom_path(self, empty_dir):
        """Test init honours --config."""
        code, _ = run_cli("--config", "custom_config.py", "init")

        assert code == 0
        assert (empty_dir / "custom_config.py").exists()

    def test_init_existing_file(self, project):
        """Test init refuses to overwrite an existing configuration."""
        code, output = run_cli("init")

        assert code == 1
        assert 'Error: Configuration file "migrate.config.py" already exists.' in output


class TestCommands:
    """Tests for commands that drive the migrator."""

    def test_status_lists_pending(self, project):
        """Test status shows the current migration and the pending table."""
        code, output = run_cli("status")

        assert code == 0
        assert "Current migration: (none)" in output
        assert "Pending migrations (2)" in output
        assert A in output and B in output

    def test_status_up_to_date(self, empty_dir):
        """Test status with no migrations reports nothing pending."""
        (empty_dir / "migrate.config.py").write_text(CONFIG, encoding="utf-8")

        code, output = run_cli("status")

        assert code == 0
        assert "All migrations are up to date." in output

    def test_latest(self, project):
        """Test latest applies every pending migration."""
        code, output = run_cli("latest")

        assert code == 0
        assert "Applied 2 migration(s):" in output
        assert f"+ {A}" in output
        assert f"+ {B}" in output

    def test_up(self, project):
        """Test up applies only the next migration."""
        code, output = run_cli("up")

        assert code == 0
        assert "Applied 1 migration(s):" in output
        assert B not in output

    def test_up_to_target(self, project):
        """Test up with a name applies through that migration."""
        code, output = run_cli("up", B)

        assert code == 0
        assert "Applied 2 migration(s):" in output

    def test_rollback_nothing_applied(self, project):
        """Test rollback without history is not an error."""
        code, output = run_cli("rollback")

        assert code == 0
        assert "No migrations to rollback" in output

    @pytest.mark.parametrize("command", ["down", "revert-all"])
    def test_revert_without_history(self, project, command):
        """Test reverting with nothing applied fails with exit code 1."""
        code, output = run_cli(command)

        assert code == 1
        assert "Error: No migrations have been applied yet." in output

    def test_create(self, project):
        """Test create writes a new migration file."""
        code, output = run_cli("create", "add_users")

        created = list((project / "migrations").glob("*-add_users.py"))
        assert code == 0
        assert len(created) == 1
        assert f"Created migration: migrations/{created[0].name}" in output

    def test_missing_config(self, empty_dir):
        """Test commands fail cleanly without a configuration file."""
        code, output = run_cli("status")

        assert code == 1
        assert 'Error: Configuration file "migrate.config.py" does not exist' in output

    def test_config_option(self, project):
        """Test --config selects another configuration file."""
        (project / "migrate.config.py").rename(project / "settings.py")

        code, output = run_cli("-c", "settings.py", "status")

        assert code == 0
        assert "Pending migrations (2)" in output

    def test_config_without_strategy(self, empty_dir):
        """Test the untouched starter configuration is rejected."""
        run_cli("init")

        code, output = run_cli("status")

        assert code == 1
        assert '"strategy" is required' in output


class TestErrorReporting:
    """Tests for how failures are reported."""

    def test_failing_script(self, project):
        """Test an exception inside a script is reported with its migration."""
        (project / "migrations" / A).write_text(
            "def up(db):\n    raise RuntimeError('boom')\n",
            encoding="utf-8",
        )

        code, output = run_cli("latest")

        assert code == 1
        assert f'Error: Migration "{A}" failed in up(): boom' in output
        assert "Traceback" not in output

    def test_backend_failure_names_migration(self, project):
        """Test a strategy failure is suffixed with the migration it hit."""
        (project / "migrate.config.py").write_text(
            dedent('''
                from migrate_tool import define_config
                from migrate_tool.errors import BackendError
                from migrate_tool.strategies import MemoryStrategy


                class FailingStrategy(MemoryStrategy):
                    async def up(self, migration):
                        raise BackendError("Query failed: unique index violated")


                config = define_config(strategy=FailingStrategy(), migrations_dir="migrations")
            '''),
            encoding="utf-8",
        )

        code, output = run_cli("up")

        assert code == 1
        assert f'Error: Query failed: unique index violated (migration "{A}")' in output

    def test_dict_config_unknown_key(self, empty_dir):
        """Test a bad key in a dict config exits 1 with an error line."""
        (empty_dir / "migrate.config.py").write_text(
            dedent('''
                from migrate_tool.strategies import MemoryStrategy

                config = {"strategy": MemoryStrategy(), "dir": "migrations"}
            '''),
            encoding="utf-8",
        )

        code, output = run_cli("status")

        assert code == 1
        assert 'Error: Invalid "config" dict in "migrate.config.py"' in output
