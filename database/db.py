"""
Database connection and query module.

Provides a clean interface for database operations with support
for both PostgreSQL and SQLite backends.
"""

import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Union

import asyncpg
import aiosqlite

from config import config

logger = logging.getLogger(__name__)


# Refund statuses after which a refund's status is final
TERMINAL_REFUND_STATUSES = ('FINALIZED', 'FINISHED', 'CANCELED')


class Database:
    """
    Async database connection manager.

    Supports PostgreSQL (production) and SQLite (development).
    Provides connection pooling and query execution methods.
    """

    def __init__(self, database_url: Optional[str] = None):
        """
        Initialize database manager.

        Args:
            database_url: Database connection URL. Uses config if not provided.
        """
        self.database_url = database_url or config.database.url
        self._pool = None
        self._sqlite_conn = None
        self._is_postgres = self.database_url.startswith('postgresql')

    async def connect(self) -> None:
        """Establish database connection(s)."""
        if self._is_postgres:
            logger.info("Connecting to PostgreSQL database...")
            self._pool = await asyncpg.create_pool(
                self.database_url,
                min_size=2,
                max_size=10,
                command_timeout=60
            )
        else:
            # SQLite for development
            db_path = self.database_url.replace('sqlite:///', '')
            logger.info(f"Connecting to SQLite database: {db_path}")
            self._sqlite_conn = await aiosqlite.connect(db_path)
            self._sqlite_conn.row_factory = aiosqlite.Row

        logger.info("Database connection established")

    async def disconnect(self) -> None:
        """Close database connection(s)."""
        if self._is_postgres and self._pool:
            await self._pool.close()
            self._pool = None
        elif self._sqlite_conn:
            await self._sqlite_conn.close()
            self._sqlite_conn = None

        logger.info("Database connection closed")

    async def execute(self, query: str, *args) -> int:
        """
        Execute a query without returning results.

        Args:
            query: SQL query to execute
            *args: Query parameters

        Returns:
            Number of rows affected
        """
        if self._is_postgres:
            async with self._pool.acquire() as conn:
                status = await conn.execute(query, *args)
                # asyncpg returns the command tag, e.g. "UPDATE 1" or "INSERT 0 1"
                last = status.split()[-1] if status else '0'
                return int(last) if last.isdigit() else 0
        else:
            sqlite_query = self._convert_params(query)
            cursor = await self._sqlite_conn.execute(sqlite_query, args)
            await self._sqlite_conn.commit()
            return cursor.rowcount

    async def fetch_one(self, query: str, *args) -> Optional[Dict[str, Any]]:
        """
        Execute a query and fetch one row.

        Args:
            query: SQL query to execute
            *args: Query parameters

        Returns:
            Row as dictionary or None if no results
        """
        if self._is_postgres:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(query, *args)
                return dict(row) if row else None
        else:
            # Convert $1, $2 style params to ?1, ?2 for SQLite
            sqlite_query = self._convert_params(query)
            cursor = await self._sqlite_conn.execute(sqlite_query, args)
            row = await cursor.fetchone()
            if row:
                columns = [d[0] for d in cursor.description]
                return dict(zip(columns, row))
            return None

    async def fetch_all(self, query: str, *args) -> List[Dict[str, Any]]:
        """
        Execute a query and fetch all rows.

        Args:
            query: SQL query to execute
            *args: Query parameters

        Returns:
            List of rows as dictionaries
        """
        if self._is_postgres:
            async with self._pool.acquire() as conn:
                rows = await conn.fetch(query, *args)
                return [dict(row) for row in rows]
        else:
            sqlite_query = self._convert_params(query)
            cursor = await self._sqlite_conn.execute(sqlite_query, args)
            rows = await cursor.fetchall()
            if rows:
                columns = [d[0] for d in cursor.description]
                return [dict(zip(columns, row)) for row in rows]
            return []

    def _convert_params(self, query: str) -> str:
        """Convert PostgreSQL $1, $2 style params to SQLite ?1, ?2 style."""
        return re.sub(r'\$(\d+)', r'?\1', query)

    def _timestamp(self, value: datetime) -> Union[datetime, str]:
        """asyncpg takes datetimes; SQLite stores ISO strings."""
        return value if self._is_postgres else value.isoformat()

    def _distinct(self) -> str:
        return 'IS DISTINCT FROM' if self._is_postgres else 'IS NOT'

    async def init_schema(self) -> None:
        """Initialize database schema from schema.sql file."""
        schema_path = os.path.join(os.path.dirname(__file__), 'schema.sql')

        with open(schema_path, 'r') as f:
            schema = f.read()

        # Split by semicolons and execute each statement
        statements = [s.strip() for s in schema.split(';') if s.strip()]

        for statement in statements:
            if self._is_postgres:
                async with self._pool.acquire() as conn:
                    await conn.execute(statement)
            else:
                await self._sqlite_conn.execute(statement)

        if not self._is_postgres:
            await self._sqlite_conn.commit()

        logger.info("Database schema initialized")

    # -------------------------------------------------------------------------
    # PayU Settings Operations
    # -------------------------------------------------------------------------

    async def get_payu_settings(self, store_scope: int) -> Optional[Dict[str, Any]]:
        """Get the settings row saved for a store scope."""
        return await self.fetch_one(
            "SELECT * FROM payu_settings WHERE store_scope = $1",
            store_scope
        )

    async def save_payu_settings(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create or replace the settings row for a store scope.

        Args:
            settings: Column values keyed by name; must include store_scope

        Returns:
            The saved row
        """
        now = self._timestamp(datetime.now(timezone.utc))
        values = (
            settings['store_scope'],
            settings.get('use_sandbox'),
            settings.get('sandbox_client_id'),
            settings.get('sandbox_client_secret'),
            settings.get('sandbox_second_key'),
            settings.get('client_id'),
            settings.get('client_secret'),
            settings.get('second_key'),
            settings.get('previous_sandbox_second_key'),
            settings.get('previous_second_key'),
            now
        )

        if self._is_postgres:
            await self.execute(
                """
                INSERT INTO payu_settings
                    (store_scope, use_sandbox, sandbox_client_id, sandbox_client_secret,
                     sandbox_second_key, client_id, client_secret, second_key,
                     previous_sandbox_second_key, previous_second_key, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                ON CONFLICT (store_scope) DO UPDATE SET
                    use_sandbox = EXCLUDED.use_sandbox,
                    sandbox_client_id = EXCLUDED.sandbox_client_id,
                    sandbox_client_secret = EXCLUDED.sandbox_client_secret,
                    sandbox_second_key = EXCLUDED.sandbox_second_key,
                    client_id = EXCLUDED.client_id,
                    client_secret = EXCLUDED.client_secret,
                    second_key = EXCLUDED.second_key,
                    previous_sandbox_second_key = EXCLUDED.previous_sandbox_second_key,
                    previous_second_key = EXCLUDED.previous_second_key,
                    updated_at = EXCLUDED.updated_at
                """,
                *values
            )
        else:
            await self.execute(
                """
                INSERT OR REPLACE INTO payu_settings
                    (store_scope, use_sandbox, sandbox_client_id, sandbox_client_secret,
                     sandbox_second_key, client_id, client_secret, second_key,
                     previous_sandbox_second_key, previous_second_key, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                """,
                *values
            )

        return await self.get_payu_settings(settings['store_scope'])

    # -------------------------------------------------------------------------
    # Order Operations
    # -------------------------------------------------------------------------

    async def get_order(self, ext_order_id: str) -> Optional[Dict[str, Any]]:
        """Get order by external order id."""
        return await self.fetch_one(
            "SELECT * FROM orders WHERE ext_order_id = $1",
            ext_order_id
        )

    async def create_order(
        self,
        ext_order_id: str,
        payment_status: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create an order awaiting PayU notifications (no-op if it exists)."""
        now = self._timestamp(datetime.now(timezone.utc))

        if self._is_postgres:
            await self.execute(
                """
                INSERT INTO orders (ext_order_id, payment_status, created_at, updated_at)
                VALUES ($1, $2, $3, $3)
                ON CONFLICT (ext_order_id) DO NOTHING
                """,
                ext_order_id, payment_status, now
            )
        else:
            await self.execute(
                """
                INSERT OR IGNORE INTO orders (ext_order_id, payment_status, created_at, updated_at)
                VALUES ($1, $2, $3, $3)
                """,
                ext_order_id, payment_status, now
            )

        return await self.get_order(ext_order_id)

    async def update_payment_status(
        self,
        ext_order_id: str,
        status: str,
        replaceable_statuses: Sequence[str] = (),
        payu_order_id: Optional[str] = None,
        payment_id: Optional[str] = None,
        total_amount: Optional[int] = None,
        currency_code: Optional[str] = None
    ) -> int:
        """
        Compare-and-set an order's payment status.

        The row only changes when it has no status yet or its stored status
        is one of replaceable_statuses, so repeated, out-of-order or late
        notifications are no-ops.

        Args:
            ext_order_id: External order id
            status: New payment status
            replaceable_statuses: Stored statuses the new one may overwrite

        Returns:
            Number of rows changed (0 or 1)
        """
        args = [
            ext_order_id, status, payu_order_id, payment_id, total_amount,
            currency_code, self._timestamp(datetime.now(timezone.utc))
        ]

        replaceable = ''
        if replaceable_statuses:
            placeholders = ', '.join(
                f'${n}' for n in range(len(args) + 1, len(args) + 1 + len(replaceable_statuses))
            )
            replaceable = f' OR payment_status IN ({placeholders})'
            args.extend(replaceable_statuses)

        return await self.execute(
            f"""
            UPDATE orders
            SET payment_status = $2,
                payu_order_id = COALESCE($3, payu_order_id),
                payment_id = COALESCE($4, payment_id),
                total_amount = COALESCE($5, total_amount),
                currency_code = COALESCE($6, currency_code),
                updated_at = $7
            WHERE ext_order_id = $1
              AND (payment_status IS NULL{replaceable})
            """,
            *args
        )

    async def update_refund_status(
        self,
        ext_order_id: str,
        refund_key: str,
        status: str
    ) -> int:
        """
        Insert or compare-and-set the status of one refund of an order.

        Returns:
            Number of rows changed (0 or 1)
        """
        excluded = 'EXCLUDED' if self._is_postgres else 'excluded'
        return await self.execute(
            f"""
            INSERT INTO order_refunds (ext_order_id, refund_key, status, updated_at)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (ext_order_id, refund_key) DO UPDATE SET
                status = {excluded}.status,
                updated_at = {excluded}.updated_at
            WHERE order_refunds.status {self._distinct()} {excluded}.status
              AND order_refunds.status NOT IN ($5, $6, $7)
            """,
            ext_order_id, refund_key, status, self._timestamp(datetime.now(timezone.utc)),
            *TERMINAL_REFUND_STATUSES
        )

    async def get_refunds(self, ext_order_id: str) -> List[Dict[str, Any]]:
        """Get all refunds recorded for an order."""
        return await self.fetch_all(
            "SELECT * FROM order_refunds WHERE ext_order_id = $1 ORDER BY refund_key",
            ext_order_id
        )


# Global database instance
_db: Optional[Database] = None


async def get_db() -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database()
        await _db.connect()
    return _db


async def close_db() -> None:
    """Close the global database connection."""
    global _db
    if _db is not None:
        await _db.disconnect()
        _db = None
