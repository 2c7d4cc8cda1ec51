"""
Account pools for the sweeper agent.

Two pools are provisioned at startup, one per role:
- Mint accounts (list new supply)
- Buy accounts (take listings at or below the floor)

Each pool is read from its bootstrap file when present, otherwise a fresh
set of keypairs is generated and written. Both pools are then persisted
through Storage, which never stores the same account twice.
"""

import json
import logging
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import base58
from solders.keypair import Keypair

from sweeper.core.errors import BootstrapIoError, ParseError

logger = logging.getLogger(__name__)

ACCOUNT_FILES = {
    "mint": "accounts-mint.txt",
    "buy": "accounts-buy.txt",
}


class AccountRole(IntEnum):
    """Account role; the value is the stored account_type."""
    MINT = 1
    BUY = 2

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> "AccountRole":
        try:
            return cls[label.upper()]
        except KeyError:
            raise ParseError(f"Unknown account role: {label!r}")


@dataclass(frozen=True)
class Account:
    """A trading account: base58 address and base58 secret key."""
    address: str
    private_key: str
    role: AccountRole

    def to_dict(self) -> Dict[str, str]:
        return {
            "address": self.address,
            "private_key": self.private_key,
            "role": self.role.label,
        }

    @classmethod
    def from_dict(cls, data: Any, role: AccountRole) -> "Account":
        """
        Parse a bootstrap record.

        The secret key must decode to a keypair whose public key is the
        stored address.

        Raises:
            ParseError: If the record is malformed or inconsistent
        """
        if not isinstance(data, dict):
            raise ParseError(f"Account record must be an object, got {type(data).__name__}")

        address = data.get("address")
        private_key = data.get("private_key")
        if not isinstance(address, str) or not isinstance(private_key, str):
            raise ParseError("Account record needs string 'address' and 'private_key'")

        stored_role = data.get("role")
        if stored_role is not None and AccountRole.from_label(str(stored_role)) != role:
            raise ParseError(f"Account {address} has role {stored_role!r}, expected {role.label!r}")

        try:
            secret = base58.b58decode(private_key)
        except ValueError as e:
            raise ParseError(f"Invalid key material for account {address}: {e}") from e
        if len(secret) != 64:
            raise ParseError(f"Invalid key material for account {address}: expected 64 bytes, got {len(secret)}")

        try:
            keypair = Keypair.from_bytes(secret)
        except ValueError as e:
            raise ParseError(f"Invalid key material for account {address}: {e}") from e

        if str(keypair.pubkey()) != address:
            raise ParseError(f"Key material does not match address {address}")

        return cls(address=address, private_key=private_key, role=role)


@dataclass(frozen=True)
class AccountPools:
    """Both provisioned pools."""
    mint: Tuple[Account, ...]
    buy: Tuple[Account, ...]

    def for_role(self, role: AccountRole) -> Tuple[Account, ...]:
        return self.mint if role == AccountRole.MINT else self.buy


def generate_accounts(count: int, role: AccountRole) -> List[Account]:
    """Generate fresh accounts with new keypairs."""
    accounts = []
    for _ in range(count):
        keypair = Keypair()
        accounts.append(Account(address=str(keypair.pubkey()), private_key=str(keypair), role=role))
    return accounts


def dedupe_accounts(accounts: List[Account]) -> List[Account]:
    """Drop repeated addresses, keeping first occurrence order."""
    seen = set()
    unique = []
    for account in accounts:
        if account.address in seen:
            logger.warning(f"Duplicate {account.role.label} account dropped: {account.address}")
            continue
        seen.add(account.address)
        unique.append(account)
    return unique


class AccountPoolManager:
    """
    Provision the mint and buy pools.

    Features:
    - Load pools from bootstrap files
    - Generate and write missing pools
    - Persist both pools idempotently
    """

    def __init__(self, storage, bootstrap_dir: str = ".", pool_size: int = 10):
        """
        Initialize pool manager.

        Args:
            storage: Storage with an async insert_accounts(role, accounts)
            bootstrap_dir: Directory holding the account bootstrap files
            pool_size: Accounts generated per role when no file exists
        """
        if pool_size < 1:
            raise ValueError(f"pool_size must be at least 1, got {pool_size}")

        self.storage = storage
        self.bootstrap_dir = Path(bootstrap_dir)
        self.pool_size = pool_size
        self._pools: Optional[AccountPools] = None

    def bootstrap_path(self, role: AccountRole) -> Path:
        return self.bootstrap_dir / ACCOUNT_FILES[role.label]

    @property
    def pools(self) -> Optional[AccountPools]:
        return self._pools

    def load_or_generate(self, role: AccountRole) -> List[Account]:
        """
        Load a role's pool from its bootstrap file, or generate and write it.

        Raises:
            BootstrapIoError: If the file exists but cannot be read, or cannot be written
            ParseError: If the file content is malformed
        """
        path = self.bootstrap_path(role)
        name = path.stem

        try:
            contents = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            accounts = generate_accounts(self.pool_size, role)
            self._write(path, accounts)
            logger.info(f"Generating {name}... ok ({len(accounts)} accounts)")
            return accounts
        except OSError as e:
            raise BootstrapIoError(f"Failed to read {path}: {e}") from e

        try:
            records = json.loads(contents)
        except json.JSONDecodeError as e:
            raise ParseError(f"Malformed account file {path}: {e}") from e
        if not isinstance(records, list):
            raise ParseError(f"Account file {path} must hold a JSON array")

        accounts = dedupe_accounts([Account.from_dict(record, role) for record in records])
        logger.info(f"Reading {name}... ok ({len(accounts)} accounts)")
        return accounts

    def _write(self, path: Path, accounts: List[Account]):
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps([account.to_dict() for account in accounts], indent=2),
                encoding="utf-8",
            )
        except OSError as e:
            raise BootstrapIoError(f"Failed to write {path}: {e}") from e

    async def provision(self) -> AccountPools:
        """
        Provision both pools and persist them.

        Returns:
            AccountPools

        Raises:
            BootstrapIoError, ParseError: Bootstrap file problems
            StorageError: If persistence fails
        """
        mint = self.load_or_generate(AccountRole.MINT)
        buy = self.load_or_generate(AccountRole.BUY)

        for role, accounts in ((AccountRole.MINT, mint), (AccountRole.BUY, buy)):
            inserted = await self.storage.insert_accounts(role, accounts)
            logger.info(f"Persisted {role.label} accounts: {inserted} new of {len(accounts)}")

        self._pools = AccountPools(mint=tuple(mint), buy=tuple(buy))
        return self._pools
