"""SurrealDB configuration.

Environment-based configuration for connecting to SurrealDB.
"""

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


@dataclass
class SurrealConfig:
    """SurrealDB connection configuration.

    Attributes:
        url: SurrealDB WebSocket URL (ws:// or wss://)
        namespace: SurrealDB namespace
        database: Database holding the migrated data and the changelog
        user: Authentication username
        password: Authentication password
        connect_timeout: Connection timeout in seconds
        query_timeout: Query timeout in seconds
    """

    url: str = field(default_factory=lambda: os.getenv("SURREAL_URL", "ws://localhost:8000/rpc"))
    namespace: str = field(default_factory=lambda: os.getenv("SURREAL_NAMESPACE", "migrate"))
    database: str = field(default_factory=lambda: os.getenv("SURREAL_DATABASE", "default"))
    user: str = field(default_factory=lambda: os.getenv("SURREAL_USER", "root"))
    password: str = field(
        default_factory=lambda: os.getenv("SURREAL_PASS", "root")  # Default for local development
    )
    connect_timeout: float = field(
        default_factory=lambda: float(os.getenv("SURREAL_CONNECT_TIMEOUT", "10.0"))
    )
    query_timeout: float = field(
        default_factory=lambda: float(os.getenv("SURREAL_QUERY_TIMEOUT", "30.0"))
    )

    @property
    def is_secure(self) -> bool:
        """Check if using secure WebSocket connection."""
        return self.url.startswith("wss://")

    @property
    def environment(self) -> Environment:
        """Detect environment from URL."""
        if "localhost" in self.url or "127.0.0.1" in self.url:
            return Environment.DEVELOPMENT
        elif "staging" in self.url:
            return Environment.STAGING
        return Environment.PRODUCTION

    def get_database_name(self, name: Optional[str] = None) -> str:
        """Get a SurrealDB-safe database name.

        Hyphens and spaces become underscores, other invalid characters
        are dropped, and names starting with a digit get a ``db_`` prefix.

        Examples:
            >>> SurrealConfig(database="default").get_database_name("my-app")
            'my_app'
        """
        raw = name or self.database
        safe_name = re.sub(r"[^a-zA-Z0-9_]", "", raw.replace("-", "_").replace(" ", "_"))
        safe_name = safe_name.lower()

        if safe_name and safe_name[0].isdigit():
            safe_name = f"db_{safe_name}"

        return safe_name or "default"

    def validate(self) -> list[str]:
        """Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.url:
            errors.append("SURREAL_URL is required")
        elif not self.url.startswith(("ws://", "wss://")):
            errors.append("SURREAL_URL must start with ws:// or wss://")

        if not self.namespace:
            errors.append("SURREAL_NAMESPACE is required")

        if not self.user:
            errors.append("SURREAL_USER is required")

        if self.environment == Environment.PRODUCTION:
            if not self.password:
                errors.append("SURREAL_PASS is required in production")
            if not self.is_secure:
                errors.append("Production should use wss:// (secure WebSocket)")

        return errors
