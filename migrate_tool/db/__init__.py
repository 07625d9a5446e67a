"""SurrealDB access for the SurrealDB migration strategy."""

from .config import Environment, SurrealConfig
from .connection import Connection, DatabaseConnectionError, QueryError

__all__ = [
    "Connection",
    "DatabaseConnectionError",
    "Environment",
    "QueryError",
    "SurrealConfig",
]
