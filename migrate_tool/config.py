"""Migration tool configuration.

A project is configured by a Python file (``migrate.config.py`` by
default) that builds a ``config`` object with ``define_config``:

    from migrate_tool import define_config
    from migrate_tool.strategies.memory import MemoryStrategy

    config = define_config(
        strategy=MemoryStrategy(),
        migrations_dir="migrations",
    )
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from textwrap import dedent
from typing import Any, Optional, Union

from .errors import ConfigurationError
from .scripts import load_python_file
from .strategy import MigrationStrategy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILES = ("migrate.config.py", "migrate_config.py")
DEFAULT_MIGRATIONS_DIR = "migrations"

CONFIG_TEMPLATE = dedent('''
    from migrate_tool import define_config

    config = define_config(
        strategy=None,  # Replace with your migration strategy instance
        migrations_dir="migrations",
    )
''').lstrip()


@dataclass
class MigrateConfig:
    """Resolved configuration consumed by the Migrator.

    Attributes:
        strategy: Backend strategy implementing MigrationStrategy
        migrations_dir: Absolute path of the migrations directory
    """

    strategy: Any
    migrations_dir: Path

    def validate(self) -> list[str]:
        """Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.strategy is None:
            errors.append('A "strategy" is required')
        elif not isinstance(self.strategy, MigrationStrategy):
            errors.append(
                f"Strategy {type(self.strategy).__name__} does not implement MigrationStrategy"
            )

        if not self.migrations_dir:
            errors.append('A "migrations_dir" is required')

        return errors


def define_config(
    strategy: Any,
    migrations_dir: Union[str, Path] = DEFAULT_MIGRATIONS_DIR,
) -> MigrateConfig:
    """Build a configuration, resolving the migrations directory.

    Args:
        strategy: Migration strategy instance
        migrations_dir: Directory of migration files, relative to the
            current working directory unless absolute

    Returns:
        MigrateConfig with an absolute migrations_dir
    """
    path = Path(migrations_dir)
    if not path.is_absolute():
        path = Path.cwd() / path

    return MigrateConfig(strategy=strategy, migrations_dir=path)


def find_config_file(config_file: Optional[str] = None) -> Path:
    """Locate the configuration file.

    Resolution order: the explicit argument, the MIGRATE_CONFIG
    environment variable, then the default file names in the current
    working directory.

    Raises:
        ConfigurationError: If no configuration file exists
    """
    config_file = config_file or os.getenv("MIGRATE_CONFIG", "")

    if not config_file:
        for candidate in DEFAULT_CONFIG_FILES:
            if (Path.cwd() / candidate).exists():
                config_file = candidate
                break
        else:
            config_file = DEFAULT_CONFIG_FILES[0]

    path = Path(config_file)
    if not path.is_absolute():
        path = Path.cwd() / path

    if not path.exists():
        raise ConfigurationError(
            f'Configuration file "{config_file}" does not exist in the current directory.'
        )

    return path


def load_config(config_file: Optional[str] = None) -> MigrateConfig:
    """Load and validate a configuration file.

    Args:
        config_file: Path to the configuration file (optional)

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If the file is missing, fails to execute or
            does not define a usable ``config``
    """
    path = find_config_file(config_file)
    logger.debug(f"Loading configuration from {path}")

    try:
        module = load_python_file(path, module_name="migrate_config")
    except Exception as e:
        raise ConfigurationError(f'Failed to load configuration file "{path.name}": {e}') from e

    config = getattr(module, "config", None)

    if isinstance(config, dict):
        try:
            config = define_config(**config)
        except TypeError as e:
            raise ConfigurationError(
                f'Invalid "config" dict in "{path.name}": {e}'
            ) from e

    if not isinstance(config, MigrateConfig):
        raise ConfigurationError(
            f'Configuration file "{path.name}" must define a "config" object '
            f'with a "strategy" property.'
        )

    errors = config.validate()
    if errors:
        raise ConfigurationError(
            f'Invalid configuration in "{path.name}": ' + "; ".join(errors)
        )

    return config


def write_config_template(path: Path) -> None:
    """Write a starter configuration file.

    Raises:
        ConfigurationError: If the file already exists
    """
    path = Path(path)

    if path.exists():
        raise ConfigurationError(f'Configuration file "{path.name}" already exists.')

    path.write_text(CONFIG_TEMPLATE, encoding="utf-8")
    logger.info(f'Configuration file "{path.name}" created successfully.')
