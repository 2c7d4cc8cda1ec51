"""
Initial database schema.

Creates the accounts table for the mint and buy pools.
"""


async def upgrade(db):
    """Create initial schema."""

    await db.execute("""
        CREATE TABLE IF NOT EXISTS accounts (
            id SERIAL PRIMARY KEY,
            address VARCHAR(255) NOT NULL,
            private_key TEXT NOT NULL,
            account_type INTEGER NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (address, account_type)
        )
    """)
    print("   ✓ Created accounts table")

    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_accounts_type
        ON accounts(account_type)
    """)
    print("   ✓ Created indexes")


async def downgrade(db):
    """Drop initial schema."""
    await db.execute("DROP TABLE IF EXISTS accounts CASCADE")
    print("   ✓ Dropped accounts table")
