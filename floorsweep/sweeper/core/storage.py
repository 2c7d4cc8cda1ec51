"""
PostgreSQL storage for the sweeper agent.

Stores:
- Provisioned accounts, tagged by role (mint/buy)

Writes are idempotent: the same account set can be inserted on every
startup without creating duplicate rows.
"""

import logging
from typing import List, Optional, Sequence

import asyncpg

from sweeper.core.accounts import Account, AccountRole
from sweeper.core.errors import StorageError

logger = logging.getLogger(__name__)

SCHEMA = """
    CREATE TABLE IF NOT EXISTS accounts (
        id SERIAL PRIMARY KEY,
        address VARCHAR(255) NOT NULL,
        private_key TEXT NOT NULL,
        account_type INTEGER NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (address, account_type)
    );
    CREATE INDEX IF NOT EXISTS idx_accounts_type ON accounts(account_type);
"""

# Connection loss surfaces as OSError or InterfaceError, not PostgresError
DB_ERRORS = (OSError, asyncpg.PostgresError, asyncpg.InterfaceError)


async def create_pool(db_url: str, min_size: int = 1, max_size: int = 5) -> asyncpg.Pool:
    """
    Connect to PostgreSQL.

    Raises:
        StorageError: If the connection cannot be established
    """
    try:
        return await asyncpg.create_pool(db_url, min_size=min_size, max_size=max_size)
    except DB_ERRORS as e:
        raise StorageError(f"Failed to connect to database: {e}") from e


class Storage:
    """
    Account store on an asyncpg pool.

    Features:
    - Schema bootstrap
    - Idempotent account insertion per role
    - Account queries per role
    """

    def __init__(self, pool):
        """
        Args:
            pool: asyncpg pool (or anything with the same acquire() contract)
        """
        self.pool = pool

    async def init_schema(self):
        """Create the accounts table if it does not exist."""
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(SCHEMA)
            logger.info("Database schema initialized")
        except DB_ERRORS as e:
            logger.error(f"Failed to initialize database schema: {e}")
            raise StorageError(f"Failed to initialize schema: {e}") from e

    async def insert_accounts(self, role: AccountRole, accounts: Sequence[Account]) -> int:
        """
        Insert accounts for a role, skipping any already stored.

        Args:
            role: Pool role
            accounts: Accounts to persist

        Returns:
            Number of newly stored accounts

        Raises:
            StorageError: If the write fails
        """
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    rows = await conn.fetch(
                        "SELECT address FROM accounts WHERE account_type = $1",
                        int(role),
                    )
                    stored = {row['address'] for row in rows}

                    pending = []
                    for account in accounts:
                        if account.address in stored:
                            continue
                        stored.add(account.address)
                        pending.append((account.address, account.private_key, int(role)))

                    if pending:
                        await conn.executemany(
                            """
                            INSERT INTO accounts (address, private_key, account_type)
                            VALUES ($1, $2, $3)
                            ON CONFLICT (address, account_type) DO NOTHING
                            """,
                            pending,
                        )
        except DB_ERRORS as e:
            logger.error(f"Failed to insert {role.label} accounts: {e}")
            raise StorageError(f"Failed to insert {role.label} accounts: {e}") from e

        logger.debug(f"Inserted {len(pending)} {role.label} accounts")
        return len(pending)

    async def get_accounts(self, role: AccountRole) -> List[Account]:
        """Get stored accounts for a role in insertion order."""
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    "SELECT address, private_key FROM accounts WHERE account_type = $1 ORDER BY id",
                    int(role),
                )
        except DB_ERRORS as e:
            raise StorageError(f"Failed to load {role.label} accounts: {e}") from e

        return [Account(address=row['address'], private_key=row['private_key'], role=role) for row in rows]

    async def count_accounts(self, role: Optional[AccountRole] = None) -> int:
        """Count stored accounts, optionally for one role."""
        try:
            async with self.pool.acquire() as conn:
                if role is None:
                    return await conn.fetchval("SELECT COUNT(*) FROM accounts")
                return await conn.fetchval(
                    "SELECT COUNT(*) FROM accounts WHERE account_type = $1",
                    int(role),
                )
        except DB_ERRORS as e:
            raise StorageError(f"Failed to count accounts: {e}") from e

    async def close(self):
        await self.pool.close()
