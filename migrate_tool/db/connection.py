"""SurrealDB connection used by the SurrealDB migration strategy.

One client per strategy: opened in ``setup``, shared by the tracking
queries and the migration scripts, closed in ``destroy``.
"""

import asyncio
import logging
from typing import Any, Optional

import requests
from surrealdb import AsyncSurreal

from ..errors import BackendError
from .config import SurrealConfig

logger = logging.getLogger(__name__)

# WebSocket scheme -> HTTP scheme of the signin endpoint
HTTP_SCHEMES = {"ws": "http", "wss": "https"}


class DatabaseConnectionError(BackendError):
    """Database connection error."""

    pass


class QueryError(BackendError):
    """Database query error."""

    pass


def flatten_results(result: Any) -> list[dict[str, Any]]:
    """Merge per-statement query results into one record list.

    Accepts both the ``[{"status": ..., "result": [...]}]`` statement
    envelope and plain record lists.

    Raises:
        QueryError: If a statement reports a non-OK status
    """
    if not result:
        return []
    if isinstance(result, dict):
        return [result]

    records: list[dict[str, Any]] = []
    for item in result:
        if isinstance(item, list):
            records.extend(item)
            continue
        if not isinstance(item, dict):
            continue
        if "result" not in item:
            records.append(item)
            continue

        if item.get("status", "OK") != "OK":
            raise QueryError(f"Query failed: {item.get('result')}")

        payload = item["result"] or []
        records.extend(payload if isinstance(payload, list) else [payload])

    return records


class Connection:
    """Lazily opened SurrealDB client bound to one namespace and database."""

    def __init__(self, config: SurrealConfig, database: Optional[str] = None):
        """Initialize connection.

        Args:
            config: SurrealDB configuration
            database: Database name to use (config.database if omitted)
        """
        self.config = config
        self.database = config.get_database_name(database)
        self._client: Optional[AsyncSurreal] = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def signin_url(self) -> str:
        """HTTP signin endpoint derived from the WebSocket URL."""
        base = self.config.url.removesuffix("/rpc")
        scheme, sep, rest = base.partition("://")
        return f"{HTTP_SCHEMES.get(scheme, scheme)}{sep}{rest}/signin"

    def _request_token(self) -> str:
        """Sign in over HTTP and return the session token."""
        try:
            resp = requests.post(
                self.signin_url,
                json={"user": self.config.user, "pass": self.config.password},
                headers={"Accept": "application/json"},
                timeout=self.config.connect_timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            raise DatabaseConnectionError(f"HTTP signin request failed: {e}") from e

        token = data.get("token") if data.get("code") == 200 else None
        if not token:
            raise DatabaseConnectionError(f"HTTP signin failed: {data}")
        return token

    async def _sign_in(self, client: AsyncSurreal) -> None:
        # Remote servers (wss://) take a token; local ones accept root signin
        if self.config.is_secure:
            token = await asyncio.to_thread(self._request_token)
            await client.authenticate(token)
        else:
            await client.signin({"username": self.config.user, "password": self.config.password})

    async def connect(self) -> None:
        """Open the client, sign in and select namespace/database.

        Raises:
            DatabaseConnectionError: On timeout or any client failure
        """
        async with self._lock:
            if self._client is not None:
                return

            client = AsyncSurreal(self.config.url)
            try:
                await asyncio.wait_for(client.connect(), timeout=self.config.connect_timeout)
                await self._sign_in(client)
                await client.use(self.config.namespace, self.database)
            except asyncio.TimeoutError as e:
                raise DatabaseConnectionError(
                    f"Connection timeout after {self.config.connect_timeout}s"
                ) from e
            except DatabaseConnectionError:
                raise
            except Exception as e:
                raise DatabaseConnectionError(f"Failed to connect: {e}") from e

            self._client = client
            logger.debug(f"Connected to SurrealDB: {self.config.namespace}/{self.database}")

    async def disconnect(self) -> None:
        """Close the client; close errors are only logged."""
        async with self._lock:
            client, self._client = self._client, None

        if client is None:
            return
        try:
            await client.close()
        except Exception as e:
            logger.warning(f"Error closing SurrealDB connection: {e}")

    async def query(
        self,
        sql: str,
        params: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        """Execute a SurrealQL query, connecting first if needed.

        Args:
            sql: SurrealQL query string
            params: Query parameters

        Returns:
            Records of all statements, in order
        """
        await self.connect()
        assert self._client is not None

        try:
            result = await asyncio.wait_for(
                self._client.query(sql, params or {}),
                timeout=self.config.query_timeout,
            )
        except asyncio.TimeoutError as e:
            raise QueryError(f"Query timeout after {self.config.query_timeout}s") from e
        except Exception as e:
            raise QueryError(f"Query failed: {e}") from e

        return flatten_results(result)
