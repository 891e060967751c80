"""
Postgres access for the app data backfill.

Two statements only: list the app data hashes referenced by orders that have
no full document yet, and insert a fetched document. The insert ignores
conflicts so a pass can be re-run at any time.
"""

import asyncio
import logging
from typing import List, Optional

import asyncpg

from core.errors import StoreError, ValidationError
from core.logging import LoggedClass, logged_operation

from appdata_backfill.cid import AppDataHash, validate_app_data_hash

DEFAULT_POOL_SIZE = 32
CONNECT_TIMEOUT_SECONDS = 30.0

SELECT_APP_DATA_WITHOUT_FULL = """
SELECT DISTINCT(app_data)
FROM orders
LEFT OUTER JOIN app_data ON (app_data = contract_app_data)
WHERE full_app_data IS NULL
;"""

INSERT_APP_DATA = """
INSERT INTO app_data (contract_app_data, full_app_data)
VALUES ($1, $2)
ON CONFLICT DO NOTHING
;"""


class PostgresStore(LoggedClass):
    """
    Async Postgres client backed by an asyncpg connection pool.

    Usage:
        async with PostgresStore(url) as store:
            hashes = await store.app_data_without_full()
            await store.insert(hashes[0], b"{...}")

    The pool is sized to the backfill concurrency so every in-flight item
    can insert without waiting for a connection.
    """

    log_component = "postgres"

    def __init__(
        self,
        url: str,
        pool_size: int = DEFAULT_POOL_SIZE,
        pool: Optional[asyncpg.Pool] = None,
    ):
        self._url = url
        self.pool_size = pool_size
        self._pool = pool
        self._owns_pool = pool is None
        super().__init__()

    async def __aenter__(self) -> "PostgresStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def connect(self) -> None:
        """
        Open the connection pool.

        Raises:
            StoreError: If the URL is invalid or the database cannot be reached
        """
        if self._pool is not None:
            return
        try:
            self._pool = await asyncpg.create_pool(
                dsn=self._url,
                min_size=1,
                max_size=self.pool_size,
                timeout=CONNECT_TIMEOUT_SECONDS,
            )
        except (
            asyncpg.PostgresError,
            asyncpg.InterfaceError,
            asyncio.TimeoutError,
            OSError,
        ) as e:
            raise StoreError("connect", cause=e) from e
        self._owns_pool = True
        self._log(logging.DEBUG, "Connected to Postgres", operation="connect")

    async def close(self) -> None:
        if self._pool is not None and self._owns_pool:
            await self._pool.close()
            self._pool = None

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise StoreError("Postgres pool is not connected")
        return self._pool

    @logged_operation(level=logging.DEBUG, log_start=True)
    async def app_data_without_full(self) -> List[AppDataHash]:
        """
        Return every app data hash referenced by an order but lacking a document.

        Raises:
            StoreError: If the query fails or any row is not a 32 byte hash
        """
        pool = self._require_pool()
        try:
            rows = await pool.fetch(SELECT_APP_DATA_WITHOUT_FULL)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            raise StoreError("query", cause=e) from e

        hashes: List[AppDataHash] = []
        for row in rows:
            try:
                hashes.append(validate_app_data_hash(row[0]))
            except ValidationError as e:
                raise StoreError("try_from", cause=e, category=e.category) from e
        return hashes

    async def insert(self, app_data_hash: AppDataHash, full: bytes) -> None:
        """
        Store a fetched document. Existing rows are left untouched.

        Raises:
            StoreError: If the insert fails
        """
        pool = self._require_pool()
        try:
            await pool.execute(INSERT_APP_DATA, bytes(app_data_hash), bytes(full))
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            raise StoreError("execute", cause=e) from e
