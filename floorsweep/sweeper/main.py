"""
Sweeper - marketplace floor sweeper agent

Polls the listing feed for the tracked token, keeps listed supply above
the configured minimum and takes listings priced at or below a rotating
floor price.
"""

import sys
import asyncio
import logging
from typing import List, Optional

from sweeper.core.accounts import AccountPoolManager
from sweeper.core.config import EnvironmentConfig, check_startup_requirements, parse_args
from sweeper.core.errors import SweeperError
from sweeper.core.storage import Storage, create_pool
from sweeper.integrations.listing_gateway import ListingGateway
from sweeper.logging_config import setup_logging, get_logger
from sweeper.trading.scheduler import Scheduler

logger = get_logger(__name__)


class SweeperAgent:
    """Wires configuration, storage, account pools, gateway and scheduler."""

    def __init__(self, config: EnvironmentConfig, pool_size: int):
        self.config = config
        self.pool_size = pool_size
        self.storage: Optional[Storage] = None
        self.gateway: Optional[ListingGateway] = None
        self.scheduler: Optional[Scheduler] = None

    async def start(self):
        """Connect, provision accounts and run the decision loop."""
        logger.info("Connecting DB...")
        db_pool = await create_pool(self.config.get_database_url())
        self.storage = Storage(db_pool)
        await self.storage.init_schema()
        logger.info("Connecting DB...ok")

        pool_manager = AccountPoolManager(
            storage=self.storage,
            bootstrap_dir=str(self.config.get_bootstrap_dir()),
            pool_size=self.pool_size,
        )
        pools = await pool_manager.provision()
        logger.info(f"Account pools ready: {len(pools.mint)} mint, {len(pools.buy)} buy")

        self.gateway = ListingGateway(
            exchange_url=self.config.get_exchange_rpc_url(),
            timeout=self.config.get_gateway_timeout(),
            max_retries=self.config.get_gateway_max_retries(),
        )

        self.scheduler = Scheduler(
            gateway=self.gateway,
            pools=pools,
            token=self.config.get_token(),
            list_sum_amount=self.config.get_list_sum_amount(),
            page_size=self.config.get_page_size(),
            supply_interval=self.config.get_supply_check_interval(),
            buy_interval=self.config.get_buy_check_interval(),
        )

        try:
            await self.scheduler.run()
        finally:
            await self.cleanup()

    def stop(self):
        if self.scheduler:
            self.scheduler.stop()

    async def cleanup(self):
        """Cleanup resources."""
        if self.gateway:
            await self.gateway.close()
        if self.storage:
            await self.storage.close()
        logger.info("Cleanup complete")


async def run(argv: Optional[List[str]] = None) -> int:
    """
    Start the agent.

    Returns:
        Process exit status: 0 on a clean stop, 1 on the first unrecoverable error
    """
    args = parse_args(argv)

    try:
        config = EnvironmentConfig(args.env_file)
        log_dir = args.log_dir or config.get_log_dir()
        setup_logging(
            log_dir=log_dir,
            log_level=config.get("LOG_LEVEL", "INFO"),
            console_level=config.get("CONSOLE_LOG_LEVEL", "INFO"),
        )
        check_startup_requirements(config)
    except SweeperError as e:
        logging.getLogger(__name__).error(f"Configuration Error: {e}")
        return 1

    agent = SweeperAgent(config, pool_size=args.accounts)
    try:
        await agent.start()
    except KeyboardInterrupt:
        logger.info("Stopping agent...")
        agent.stop()
        return 0
    except SweeperError as e:
        logger.critical(f"Unrecoverable error ({type(e).__name__}): {e}")
        return 1
    except Exception as e:
        logger.critical(f"Agent crashed: {e}", exc_info=True)
        return 1

    return 0


def main():
    """Console entry point."""
    try:
        sys.exit(asyncio.run(run()))
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
