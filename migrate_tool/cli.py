"""CLI for the migration tool.

Usage:
    migrate init
    migrate create add_users
    migrate up [migration_name]
    migrate down [migration_name]
    migrate latest
    migrate rollback
    migrate revert-all
    migrate status
    migrate --config path/to/migrate.config.py status
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from textwrap import dedent
from typing import Optional

from rich.box import ROUNDED
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .config import DEFAULT_CONFIG_FILES, load_config, write_config_template
from .errors import MigrationError
from .lifecycle import run_with_migrator
from .migrator import Migrator
from .strategy import MigrationFile

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _print_migrations(console: Console, title: str, migrations: list[MigrationFile], mark: str) -> None:
    console.print(f"{title} {len(migrations)} migration(s):")
    for migration in migrations:
        console.print(Text(f"  {mark} {migration.name}"))


def cmd_init(args: argparse.Namespace, console: Console) -> int:
    """Write a starter configuration file."""
    config_file = Path(args.config or DEFAULT_CONFIG_FILES[0])
    write_config_template(config_file)
    console.print(Text(f'Configuration file "{config_file}" created successfully.'))
    return 0


async def cmd_create(migrator: Migrator, args: argparse.Namespace, console: Console) -> int:
    """Create a new migration file."""
    filepath = await migrator.create(args.name)
    console.print(Text(f"Created migration: {os.path.relpath(filepath)}"))
    return 0


async def cmd_up(migrator: Migrator, args: argparse.Namespace, console: Console) -> int:
    """Apply pending migrations up to a target (default: the next one)."""
    applied = await migrator.up(args.name)
    if not applied:
        console.print("No pending migrations to apply.")
        return 0

    _print_migrations(console, "Applied", applied, "+")
    return 0


async def cmd_latest(migrator: Migrator, args: argparse.Namespace, console: Console) -> int:
    """Apply all pending migrations."""
    applied = await migrator.latest()
    if not applied:
        console.print("No pending migrations to apply.")
        return 0

    _print_migrations(console, "Applied", applied, "+")
    return 0


async def cmd_down(migrator: Migrator, args: argparse.Namespace, console: Console) -> int:
    """Revert migrations down to a target (default: the latest)."""
    reverted = await migrator.down(args.name)
    _print_migrations(console, "Reverted", reverted, "-")
    return 0


async def cmd_rollback(migrator: Migrator, args: argparse.Namespace, console: Console) -> int:
    """Revert the latest batch."""
    reverted = await migrator.rollback()
    if not reverted:
        console.print("No migrations to rollback")
        return 0

    _print_migrations(console, "Rolled back", reverted, "-")
    return 0


async def cmd_revert_all(migrator: Migrator, args: argparse.Namespace, console: Console) -> int:
    """Revert every migration."""
    reverted = await migrator.revert_all()
    _print_migrations(console, "Reverted", reverted, "-")
    return 0


async def cmd_status(migrator: Migrator, args: argparse.Namespace, console: Console) -> int:
    """Show the current migration and the pending list."""
    current = await migrator.get_current()
    pending = await migrator.get_pending_migrations()

    console.print(Text(f"Current migration: {current or '(none)'}"))

    if not pending:
        console.print("All migrations are up to date.")
        return 0

    table = Table(title=f"Pending migrations ({len(pending)})", box=ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Migration", style="cyan")

    for index, migration in enumerate(pending, 1):
        table.add_row(str(index), Text(migration.name))

    console.print(table)
    return 0


MIGRATOR_COMMANDS = {
    "create": cmd_create,
    "up": cmd_up,
    "down": cmd_down,
    "latest": cmd_latest,
    "rollback": cmd_rollback,
    "revert-all": cmd_revert_all,
    "status": cmd_status,
}


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="migrate",
        description="A simple migration tool for managing migration scripts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=dedent("""
            Examples:
              # Create a configuration file
              migrate init

              # Create a new migration
              migrate create add_users

              # Apply the next pending migration
              migrate up

              # Apply all pending migrations as one batch
              migrate latest

              # Revert the latest batch
              migrate rollback
        """),
    )

    parser.add_argument(
        "-c", "--config",
        default="",
        help="Path to the configuration file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init", help="Initialize the migration configuration file")

    create_cmd = subparsers.add_parser("create", help="Create a new migration file")
    create_cmd.add_argument("name", help="Migration name (e.g., add_users)")

    up_cmd = subparsers.add_parser(
        "up",
        help="Apply migrations up to the specified migration name",
    )
    up_cmd.add_argument("name", nargs="?", help="Migration to stop at (default: next pending)")

    down_cmd = subparsers.add_parser(
        "down",
        help="Revert migrations down to the specified migration name",
    )
    down_cmd.add_argument("name", nargs="?", help="Migration to revert to (default: latest)")

    subparsers.add_parser("latest", help="Apply all pending migrations")
    subparsers.add_parser("rollback", help="Revert the latest batch of migrations")
    subparsers.add_parser("revert-all", help="Revert all migrations")
    subparsers.add_parser("status", help="Show the status of migrations")

    return parser


async def async_main(args: argparse.Namespace, console: Console) -> int:
    """Async main entry point."""
    try:
        if args.command == "init":
            return cmd_init(args, console)

        command = MIGRATOR_COMMANDS.get(args.command)
        if command is None:
            console.print(Text(f"Unknown command: {args.command}"))
            return 1

        config = load_config(args.config or None)
        return await run_with_migrator(
            config,
            lambda migrator: command(migrator, args, console),
        )

    except MigrationError as e:
        logger.debug("Command failed", exc_info=True)
        message = str(e)
        if e.migration and e.migration not in message:
            message = f'{message} (migration "{e.migration}")'
        console.print(Text(f"Error: {message}", style="red"))
        return 1


def main(argv: Optional[list[str]] = None, console: Optional[Console] = None) -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    exit_code = asyncio.run(async_main(args, console or Console()))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
