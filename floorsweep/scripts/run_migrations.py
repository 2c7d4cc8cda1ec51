#!/usr/bin/env python3
"""
Database migration runner for the sweeper.

Applies pending migrations in file-name order, or rolls back the most
recent one with --rollback.
"""

import asyncio
import asyncpg
import os
import sys
from pathlib import Path
import importlib.util
import argparse

from dotenv import load_dotenv

DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"


def load_migration(migration_file: Path):
    """Import a migration module from its file."""
    spec = importlib.util.spec_from_file_location(migration_file.stem, migration_file)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class MigrationRunner:
    """Apply and roll back migrations on one connection."""

    def __init__(self, db_url: str, migrations_dir: Path = DEFAULT_MIGRATIONS_DIR):
        self.db_url = db_url
        self.migrations_dir = Path(migrations_dir)
        self.db = None

    async def connect(self):
        self.db = await asyncpg.connect(self.db_url)
        await self.db.execute("""
            CREATE TABLE IF NOT EXISTS migrations (
                id SERIAL PRIMARY KEY,
                name VARCHAR(255) UNIQUE NOT NULL,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    async def disconnect(self):
        if self.db:
            await self.db.close()

    async def applied(self):
        rows = await self.db.fetch("SELECT name FROM migrations ORDER BY id")
        return [row['name'] for row in rows]

    def migration_files(self):
        if not self.migrations_dir.exists():
            return []
        return [f for f in sorted(self.migrations_dir.glob("*.py")) if not f.name.startswith('__')]

    async def upgrade(self, dry_run: bool = False) -> bool:
        """Apply every pending migration inside its own transaction."""
        applied = set(await self.applied())
        pending = [f for f in self.migration_files() if f.stem not in applied]

        print(f"📋 {len(applied)} applied, {len(pending)} pending")
        if not pending:
            print("✅ All migrations already applied")
            return True

        for migration_file in pending:
            name = migration_file.stem
            module = load_migration(migration_file)
            if not hasattr(module, 'upgrade'):
                print(f"❌ {name} has no upgrade() function")
                return False

            if dry_run:
                print(f"   [DRY RUN] Would apply {name}")
                continue

            print(f"🔄 Applying {name}")
            try:
                async with self.db.transaction():
                    await module.upgrade(self.db)
                    await self.db.execute("INSERT INTO migrations (name) VALUES ($1)", name)
            except asyncpg.PostgresError as e:
                print(f"❌ Failed to apply {name}: {e}")
                return False
            print(f"✅ Applied {name}")

        return True

    async def rollback(self, dry_run: bool = False) -> bool:
        """Roll back the most recently applied migration."""
        applied = await self.applied()
        if not applied:
            print("⚠️  Nothing to roll back")
            return True

        name = applied[-1]
        migration_file = self.migrations_dir / f"{name}.py"
        if not migration_file.exists():
            print(f"❌ Migration file for {name} not found")
            return False

        module = load_migration(migration_file)
        if dry_run:
            print(f"   [DRY RUN] Would roll back {name}")
            return True

        print(f"🔄 Rolling back {name}")
        try:
            async with self.db.transaction():
                await module.downgrade(self.db)
                await self.db.execute("DELETE FROM migrations WHERE name = $1", name)
        except asyncpg.PostgresError as e:
            print(f"❌ Failed to roll back {name}: {e}")
            return False
        print(f"✅ Rolled back {name}")
        return True


async def main():
    load_dotenv()

    parser = argparse.ArgumentParser(description="Run sweeper database migrations")
    parser.add_argument('--dry-run', action='store_true', help='Show what would be done')
    parser.add_argument('--rollback', action='store_true', help='Roll back the latest migration')
    parser.add_argument(
        '--db-url',
        default=os.getenv('DATABASE_URL'),
        help='Database URL (default: from DATABASE_URL env var)'
    )
    parser.add_argument(
        '--migrations-dir',
        default=str(DEFAULT_MIGRATIONS_DIR),
        help='Migrations directory'
    )
    args = parser.parse_args()

    if not args.db_url:
        print("❌ Error: DATABASE_URL not set")
        sys.exit(1)

    runner = MigrationRunner(args.db_url, Path(args.migrations_dir))
    await runner.connect()
    try:
        if args.rollback:
            success = await runner.rollback(dry_run=args.dry_run)
        else:
            success = await runner.upgrade(dry_run=args.dry_run)
    finally:
        await runner.disconnect()

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    asyncio.run(main())
