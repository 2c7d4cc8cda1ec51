"""
Core Infrastructure

Essential components for the sweeper agent:
- Error types
- Account pools
- Configuration management (sweeper.core.config)
- PostgreSQL storage (sweeper.core.storage)
"""

from .errors import (
    SweeperError,
    ConfigurationError,
    BootstrapIoError,
    ParseError,
    GatewayError,
    StorageError,
)
from .accounts import Account, AccountPools, AccountPoolManager, AccountRole

__all__ = [
    'SweeperError',
    'ConfigurationError',
    'BootstrapIoError',
    'ParseError',
    'GatewayError',
    'StorageError',
    'Account',
    'AccountPools',
    'AccountPoolManager',
    'AccountRole',
]
