"""
Configuration management and environment validation for the sweeper agent.

This module handles:
- Environment variable validation
- Configuration loading (.env via python-dotenv)
- Command-line arguments
- Startup error handling
"""

import os
import sys
import argparse
import logging
from typing import Dict, List, Optional
from pathlib import Path
from dotenv import load_dotenv

from sweeper.core.errors import ConfigurationError, ParseError
from sweeper.trading.listings import parse_u64

logger = logging.getLogger(__name__)

DEFAULT_POOL_SIZE = 10


class EnvironmentConfig:
    """Environment configuration with validation."""

    REQUIRED = [
        "DATABASE_URL",
        "TOKEN",
        "EX_RPC",
        "NODE_RPC",
        "NODE_API_PORT",
        "LIST_SUM_AMOUNT",
    ]

    OPTIONAL_WITH_DEFAULTS = {
        "LOG_LEVEL": "INFO",
        "CONSOLE_LOG_LEVEL": "INFO",
        "LOG_DIR": "logs",
        "PAGE_SIZE": "50",
        "SUPPLY_CHECK_INTERVAL": "5",  # seconds
        "BUY_CHECK_INTERVAL": "10",  # seconds
        "GATEWAY_TIMEOUT": "10",  # seconds per listing query
        "GATEWAY_MAX_RETRIES": "3",
        "BOOTSTRAP_DIR": ".",
    }

    ALL_VARIABLES = REQUIRED + list(OPTIONAL_WITH_DEFAULTS.keys())

    def __init__(self, env_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            env_file: Path to .env file (default: nearest .env from cwd upwards)
        """
        if env_file:
            load_dotenv(env_file)
        else:
            current = Path.cwd()
            for parent in [current] + list(current.parents):
                env_path = parent / ".env"
                if env_path.exists():
                    load_dotenv(env_path)
                    break

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get environment variable with optional default."""
        value = os.getenv(key)
        if value is None and key in self.OPTIONAL_WITH_DEFAULTS:
            return self.OPTIONAL_WITH_DEFAULTS[key]
        return value or default

    def get_required(self, key: str) -> str:
        """
        Get required environment variable.

        Raises:
            ConfigurationError: If variable is not set
        """
        value = self.get(key)
        if not value:
            raise ConfigurationError(
                f"Required environment variable '{key}' is not set. "
                f"Please add it to your .env file."
            )
        return value

    def validate(self) -> Dict[str, str]:
        """
        Validate environment configuration.

        Returns:
            Dictionary of validated configuration

        Raises:
            ConfigurationError: If required variables are missing or invalid
        """
        config = {}
        missing = [var for var in self.REQUIRED if not self.get(var)]

        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}\n"
                f"Please add them to your .env file."
            )

        for var in self.ALL_VARIABLES:
            config[var] = self.get(var)

        # Typed values fail here rather than in the middle of the loop
        self.get_list_sum_amount()
        self.get_node_rpc_url()

        return config

    def get_database_url(self) -> str:
        return self.get_required("DATABASE_URL")

    def get_token(self) -> str:
        """Get the tracked token identifier."""
        return self.get_required("TOKEN")

    def get_exchange_rpc_url(self) -> str:
        return self.get_required("EX_RPC").rstrip("/")

    def get_node_rpc_url(self) -> str:
        """Get chain-node RPC URL joined with its API port."""
        node_rpc = self.get_required("NODE_RPC").rstrip("/")
        port = self.get_required("NODE_API_PORT")
        if not port.isdigit() or not 0 < int(port) < 65536:
            raise ConfigurationError(f"Invalid NODE_API_PORT value: {port!r}")
        return f"{node_rpc}:{port}"

    def get_list_sum_amount(self) -> int:
        """Get minimum aggregate listed supply (unsigned 64-bit)."""
        raw = self.get_required("LIST_SUM_AMOUNT")
        try:
            return parse_u64(raw, "LIST_SUM_AMOUNT")
        except ParseError as e:
            raise ConfigurationError(str(e)) from e

    def _get_bounded_int(self, key: str, minimum: int, maximum: int) -> int:
        default = int(self.OPTIONAL_WITH_DEFAULTS[key])
        try:
            value = int(self.get(key, str(default)))
            if value < minimum:
                logger.warning(f"{key} {value} is too low, using minimum {minimum}")
                return minimum
            if value > maximum:
                logger.warning(f"{key} {value} is too high, using maximum {maximum}")
                return maximum
            return value
        except (ValueError, TypeError) as e:
            logger.error(f"Invalid {key} value: {e}, using default {default}")
            return default

    def get_page_size(self) -> int:
        """Get listing page size (default 50)."""
        return self._get_bounded_int("PAGE_SIZE", 1, 500)

    def get_supply_check_interval(self) -> int:
        """Get supply check timer interval in seconds (default 5)."""
        return self._get_bounded_int("SUPPLY_CHECK_INTERVAL", 1, 3600)

    def get_buy_check_interval(self) -> int:
        """Get buy check timer interval in seconds (default 10)."""
        return self._get_bounded_int("BUY_CHECK_INTERVAL", 1, 3600)

    def get_gateway_timeout(self) -> int:
        return self._get_bounded_int("GATEWAY_TIMEOUT", 1, 120)

    def get_gateway_max_retries(self) -> int:
        return self._get_bounded_int("GATEWAY_MAX_RETRIES", 1, 10)

    def get_bootstrap_dir(self) -> Path:
        return Path(self.get("BOOTSTRAP_DIR", "."))

    def get_log_dir(self) -> str:
        return self.get("LOG_DIR", "logs")


def load_config(env_file: Optional[str] = None) -> EnvironmentConfig:
    """
    Load and validate configuration.

    Args:
        env_file: Path to .env file

    Returns:
        Validated EnvironmentConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config = EnvironmentConfig(env_file)
    config.validate()
    return config


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Marketplace floor sweeper agent")
    parser.add_argument(
        '--accounts',
        type=int,
        default=DEFAULT_POOL_SIZE,
        help=f'Accounts to generate per pool when no bootstrap file exists (default: {DEFAULT_POOL_SIZE})'
    )
    parser.add_argument(
        '--env-file',
        default=None,
        help='Path to .env file (default: nearest .env)'
    )
    parser.add_argument(
        '--log-dir',
        default=None,
        help='Log directory (default: LOG_DIR or logs/)'
    )

    args = parser.parse_args(argv)
    if args.accounts < 1:
        parser.error("--accounts must be at least 1")
    return args


def check_startup_requirements(config: EnvironmentConfig) -> None:
    """
    Check startup requirements and fail fast if critical config is missing.

    Raises:
        ConfigurationError: If critical configuration is missing
    """
    logger.info("Checking startup requirements...")
    config.validate()

    if sys.version_info < (3, 9):
        raise ConfigurationError(
            f"Python 3.9+ required, found {sys.version_info.major}.{sys.version_info.minor}"
        )

    for dir_path in (Path(config.get_log_dir()), config.get_bootstrap_dir()):
        if not dir_path.exists():
            logger.info(f"Creating directory: {dir_path}")
            dir_path.mkdir(parents=True, exist_ok=True)

    logger.info("Startup requirements satisfied")
    logger.info("Configuration:")
    logger.info(f"  Token: {config.get_token()}")
    logger.info(f"  Exchange RPC: {config.get_exchange_rpc_url()}")
    logger.info(f"  Node RPC: {config.get_node_rpc_url()}")
    logger.info(f"  List sum amount: {config.get_list_sum_amount()}")
    logger.info(f"  Page size: {config.get_page_size()}")
    logger.info(f"  Supply check interval: {config.get_supply_check_interval()}s")
    logger.info(f"  Buy check interval: {config.get_buy_check_interval()}s")
