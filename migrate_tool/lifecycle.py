"""Strategy lifecycle management.

Usage:
    async with open_migrator(config) as migrator:
        await migrator.latest()
"""

import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from .config import MigrateConfig
from .errors import ConfigurationError
from .migrator import Migrator

logger = logging.getLogger(__name__)

T = TypeVar("T")


@asynccontextmanager
async def open_migrator(config: MigrateConfig) -> AsyncGenerator[Migrator, None]:
    """Set up a strategy, yield a Migrator, and always tear it down.

    ``destroy`` runs even when setup or the body fails, so partially
    acquired resources (an open connection) are released. A teardown
    failure during such an error is logged and the original error wins.

    Raises:
        ConfigurationError: If the configuration has no usable strategy
    """
    errors = config.validate()
    if errors:
        raise ConfigurationError("; ".join(errors))

    migrator = Migrator(config)
    try:
        await migrator.setup()
        yield migrator
    except BaseException:
        try:
            await migrator.destroy()
        except Exception as e:
            logger.warning(f"Error destroying migration strategy: {e}")
        raise

    await migrator.destroy()
    logger.debug("Migration strategy destroyed")


async def run_with_migrator(
    config: MigrateConfig,
    callback: Callable[[Migrator], Awaitable[T]],
) -> T:
    """Run one operation inside a managed migrator.

    Args:
        config: Resolved configuration
        callback: Coroutine function receiving the Migrator

    Returns:
        Whatever the callback returns
    """
    async with open_migrator(config) as migrator:
        return await callback(migrator)
