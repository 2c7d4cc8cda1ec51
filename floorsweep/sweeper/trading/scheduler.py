"""Decision loop for the sweeper - two timers, one branch at a time."""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional

from sweeper.core.accounts import AccountPools, AccountRole
from sweeper.core.errors import GatewayError
from sweeper.trading.actions import BuyAction, ListAction, LoggingBuyAction, LoggingListAction
from sweeper.trading.aggregator import ListingSource, aggregate
from sweeper.trading.decision import evaluate_buys
from sweeper.trading.listings import DEFAULT_PRICE_INDEX, FloorPriceSchedule
from sweeper.logging_config import get_activity_logger

logger = logging.getLogger(__name__)
activity_logger = get_activity_logger()

SUPPLY_CHECK = "supply"
BUY_CHECK = "buy"


@dataclass(frozen=True)
class SchedulerState:
    """
    Rotation state owned by the scheduler.

    Attributes:
        price_index: Offset into the floor-price schedule
        account_index: Offset into the buy pool for the next dispatched buy
    """
    price_index: int = DEFAULT_PRICE_INDEX
    account_index: int = 0


class PeriodicTimer:
    """
    Fixed-rate timer on an abstract clock.

    Firings whose slot passed while the loop was busy are dropped: a late
    timer fires once and then realigns to its next future slot.
    """

    def __init__(self, name: str, interval: float, start: float):
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self.start = start
        self.next_due = start

    def fire(self, now: float) -> int:
        """
        Consume the current firing and schedule the next one after now.

        Returns:
            Number of firings dropped
        """
        # Never reschedule onto the slot being fired
        now = max(now, self.next_due)
        slots_passed = int((now - self.start) // self.interval)
        next_slot = self.start + (slots_passed + 1) * self.interval
        dropped = max(0, int(round((next_slot - self.next_due) / self.interval)) - 1)
        self.next_due = next_slot
        return dropped


class Scheduler:
    """
    Top-level cooperative loop.

    Two independent timers drive two branches:
    1. Supply check (short interval): aggregate listed supply and ask the
       list action for new listings when it is below the threshold
    2. Buy check (long interval): classify listings against the current
       floor price, hand each eligible one to the buy action, then rotate
       the floor price

    Only one branch runs at a time and each runs to completion before the
    next tick is serviced. A failing listing query is contained to its
    tick; any other error stops the loop and propagates.
    """

    DEFAULT_SUPPLY_INTERVAL = 5  # seconds
    DEFAULT_BUY_INTERVAL = 10  # seconds
    DEFAULT_PAGE_SIZE = 50

    def __init__(
        self,
        gateway: ListingSource,
        pools: AccountPools,
        token: str,
        list_sum_amount: int,
        schedule: Optional[FloorPriceSchedule] = None,
        buy_action: Optional[BuyAction] = None,
        list_action: Optional[ListAction] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        supply_interval: float = DEFAULT_SUPPLY_INTERVAL,
        buy_interval: float = DEFAULT_BUY_INTERVAL,
        state: Optional[SchedulerState] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            gateway: Listing source
            pools: Provisioned mint and buy pools
            token: Tracked token identifier
            list_sum_amount: Minimum listed supply before new listings are added
            schedule: Floor-price schedule (default rotation if None)
            buy_action: Buy capability (logging only if None)
            list_action: List-addition capability (logging only if None)
            page_size: Listing page size, fixed for the whole run
            supply_interval: Supply check interval in seconds
            buy_interval: Buy check interval in seconds
            state: Initial rotation state
            clock: Monotonic clock (default: the event loop's time())
            sleep: Async sleep (default: asyncio.sleep)
        """
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")

        self.gateway = gateway
        self.pools = pools
        self.token = token
        self.list_sum_amount = list_sum_amount
        self.schedule = schedule if schedule is not None else FloorPriceSchedule()
        self.buy_action = buy_action if buy_action is not None else LoggingBuyAction()
        self.list_action = list_action if list_action is not None else LoggingListAction()
        self.page_size = page_size
        self.supply_interval = supply_interval
        self.buy_interval = buy_interval
        self.state = state if state is not None else SchedulerState()
        self._clock = clock
        self._sleep = sleep if sleep is not None else asyncio.sleep

        self._running = False
        self.ticks_serviced = 0

        logger.info(
            f"Scheduler initialized for {token}: supply check every {supply_interval}s, "
            f"buy check every {buy_interval}s, page size {page_size}"
        )

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()

    @property
    def is_running(self) -> bool:
        return self._running

    def stop(self):
        """Stop the loop after the branch in flight completes."""
        logger.info("Stopping scheduler...")
        self._running = False

    async def run(self, max_ticks: Optional[int] = None):
        """
        Run the loop.

        Both timers fire immediately, then at their intervals. Runs until
        stop() is called, max_ticks ticks were serviced, or an unrecoverable
        error propagates.
        """
        self._running = True
        start = self._now()
        # Order breaks ties: supply check first
        timers = [
            PeriodicTimer(SUPPLY_CHECK, self.supply_interval, start),
            PeriodicTimer(BUY_CHECK, self.buy_interval, start),
        ]
        logger.info(f"Sweeper loop starting for {self.token}...")

        try:
            while self._running:
                timer = min(timers, key=lambda t: t.next_due)
                delay = timer.next_due - self._now()
                if delay > 0:
                    await self._sleep(delay)
                if not self._running:
                    break

                dropped = timer.fire(self._now())
                if dropped:
                    logger.debug(f"Dropped {dropped} missed {timer.name} tick(s)")

                self.state = await self.tick(timer.name, self.state)
                self.ticks_serviced += 1

                if max_ticks is not None and self.ticks_serviced >= max_ticks:
                    break
        finally:
            self._running = False
            logger.info("Sweeper loop stopped")

    async def tick(self, branch: str, state: SchedulerState) -> SchedulerState:
        """
        Run one branch to completion and return the next state.

        GatewayError is logged and the tick skipped; the floor-price
        rotation still advances on a skipped buy check.
        """
        started = self._now()
        try:
            if branch == SUPPLY_CHECK:
                new_state = await self.supply_check(state)
            elif branch == BUY_CHECK:
                new_state = await self.buy_check(state)
            else:
                raise ValueError(f"Unknown branch: {branch}")
        except GatewayError as e:
            logger.error(f"[{branch}] listing query failed, skipping tick: {e}")
            activity_logger.log_error(
                component="Scheduler",
                error_type=type(e).__name__,
                error_message=f"Tick skipped: {e}",
                branch=branch,
            )
            if branch == BUY_CHECK:
                return replace(state, price_index=self.schedule.advance(state.price_index))
            return state

        activity_logger.log_tick(branch, self._now() - started, price_index=new_state.price_index)
        return new_state

    async def supply_check(self, state: SchedulerState) -> SchedulerState:
        """Aggregate listed supply and request listings on a deficit."""
        result = await aggregate(self.gateway, self.token, self.page_size, self.list_sum_amount)
        activity_logger.log_aggregation(
            token=self.token,
            total_amount=result.total_amount,
            threshold=result.threshold,
            deficit=result.deficit,
            pages=result.pages_fetched,
        )

        if result.deficit:
            await self.list_action.add_listings(result, self.pools.for_role(AccountRole.MINT))
        return state

    async def buy_check(self, state: SchedulerState) -> SchedulerState:
        """Dispatch every buy-eligible listing, then rotate the floor price."""
        evaluation = await evaluate_buys(
            self.gateway, self.token, self.page_size, self.schedule, state.price_index
        )
        activity_logger.log_buy_evaluation(
            token=self.token,
            floor_price=evaluation.floor_price,
            price_index=state.price_index,
            listings=evaluation.total_count,
            candidates=len(evaluation.candidates),
        )

        account_index = state.account_index
        buy_pool = self.pools.for_role(AccountRole.BUY)
        if evaluation.candidates and not buy_pool:
            logger.warning(f"[buy] {len(evaluation.candidates)} candidates but the buy pool is empty")
        elif evaluation.candidates:
            for candidate in evaluation.candidates:
                account = buy_pool[account_index % len(buy_pool)]
                await self.buy_action.buy(candidate, account)
                account_index = (account_index + 1) % len(buy_pool)

        return SchedulerState(
            price_index=self.schedule.advance(state.price_index),
            account_index=account_index,
        )
