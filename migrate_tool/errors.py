"""Exceptions raised by the migration engine.

Every failure the engine reports derives from MigrationError so callers
(the CLI, programmatic users) can catch one type. Strategy failures are
surfaced as BackendError subclasses by the bundled backends and are never
wrapped by the orchestrator.
"""

from typing import Optional


class MigrationError(Exception):
    """Base exception for migration errors."""

    def __init__(self, message: str, migration: Optional[str] = None):
        super().__init__(message)
        self.migration = migration


class ConfigurationError(MigrationError):
    """No usable strategy, or the configuration file could not be loaded."""

    pass


class IntegrityError(MigrationError):
    """The changelog and the migrations directory have drifted apart."""

    pass


class LockHeldError(MigrationError):
    """A migration is already locked by another run."""

    pass


class MissingExportError(MigrationError):
    """A migration script does not provide the requested direction."""

    def __init__(self, message: str, migration: Optional[str] = None, direction: str = ""):
        super().__init__(message, migration)
        self.direction = direction


class MissingFileError(MigrationError):
    """A recorded migration no longer exists on disk."""

    def __init__(self, message: str, migration: Optional[str] = None, path: Optional[str] = None):
        super().__init__(message, migration)
        self.path = path


class BackendError(MigrationError):
    """Failure reported by a persistence backend."""

    pass


class MigrationScriptError(BackendError):
    """A migration script raised while running one of its directions."""

    def __init__(self, message: str, migration: Optional[str] = None, direction: str = ""):
        super().__init__(message, migration)
        self.direction = direction
