"""Loading, running and scaffolding Python migration scripts.

A migration script is a plain Python file exposing ``up(db)`` and
``down(db)``. Either may be a coroutine function. Files are loaded into a
fresh module each time they are used and are not registered in
``sys.modules``.
"""

import importlib.util
import inspect
import logging
import re
import types
from datetime import datetime, timedelta, timezone
from pathlib import Path
from textwrap import dedent
from typing import Any, Optional

from .errors import MigrationError, MigrationScriptError, MissingExportError

logger = logging.getLogger(__name__)

DIRECTIONS = ("up", "down")

_last_prefix_time: Optional[datetime] = None


class UnloadableFileError(ImportError):
    """No import loader handles the file (e.g. an unknown extension)."""

    pass


def load_python_file(path: Path, module_name: Optional[str] = None) -> types.ModuleType:
    """Execute a Python file and return it as a module object.

    Args:
        path: Path to the file
        module_name: Name for the module (defaults to the file stem)

    Returns:
        The executed module

    Raises:
        UnloadableFileError: If no loader can handle the file
    """
    path = Path(path)
    name = module_name or re.sub(r"\W", "_", path.stem)

    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise UnloadableFileError(f"Cannot load Python file: {path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def get_migration_function(path: Path, direction: str) -> Any:
    """Load a migration script and return one of its directions.

    Args:
        path: Path to the migration script
        direction: "up" or "down"

    Returns:
        The callable implementing the direction

    Raises:
        MissingExportError: If the script cannot be loaded as Python or does
            not define the direction
    """
    if direction not in DIRECTIONS:
        raise ValueError(f"Unknown migration direction: {direction}")

    path = Path(path)
    try:
        module = load_python_file(path)
    except UnloadableFileError as e:
        raise MissingExportError(
            f"Migration file {path} cannot be loaded as a Python module.",
            migration=path.name,
            direction=direction,
        ) from e

    func = getattr(module, direction, None)

    if not callable(func):
        raise MissingExportError(
            f"Migration file {path} does not export an '{direction}' function.",
            migration=path.name,
            direction=direction,
        )

    return func


async def run_migration_function(path: Path, direction: str, *args: Any) -> Any:
    """Run one direction of a migration script.

    Sync and async functions are both supported; awaitable results are
    awaited.

    Raises:
        MissingExportError: If the direction is not available
        MigrationScriptError: If the script fails while loading or running
    """
    if direction not in DIRECTIONS:
        raise ValueError(f"Unknown migration direction: {direction}")

    path = Path(path)
    func = None
    logger.debug(f"Running {direction}() from {path.name}")

    try:
        func = get_migration_function(path, direction)
        result = func(*args)
        if inspect.isawaitable(result):
            result = await result
        return result
    except MigrationError:
        raise
    except Exception as e:
        stage = f"{direction}()" if func is not None else "loading"
        raise MigrationScriptError(
            f'Migration "{path.name}" failed in {stage}: {e}',
            migration=path.name,
            direction=direction,
        ) from e


def timestamped_file_name(migration_name: str, extension: str = ".py") -> str:
    """Build a sortable migration file name.

    The prefix is the current UTC time down to the microsecond. Prefixes
    handed out by this process strictly increase, so names generated in
    the same clock tick never collide.

    Example:
        >>> timestamped_file_name("create_users")  # doctest: +SKIP
        '20250706034848963512-create_users.py'
    """
    global _last_prefix_time

    now = datetime.now(timezone.utc)
    if _last_prefix_time is not None and now <= _last_prefix_time:
        now = _last_prefix_time + timedelta(microseconds=1)
    _last_prefix_time = now

    return f"{now.strftime('%Y%m%d%H%M%S%f')}-{migration_name}{extension}"


def render_migration_template(file_name: str, db_description: str = "database handle") -> str:
    """Render the starter script for a new migration.

    Args:
        file_name: File name of the migration being created
        db_description: What the strategy passes to up()/down()
    """
    return dedent(f'''
        """Migration file: {file_name}"""


        async def up(db):
            """Apply the migration.

            Args:
                db: The {db_description}.
            """
            # Insert logic here to apply the migration


        async def down(db):
            """Revert the migration.

            Args:
                db: The {db_description}.
            """
            # Insert logic here to revert the migration
    ''').lstrip()
