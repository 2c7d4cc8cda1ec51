"""Action strategies - what happens once the decision loop has decided."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Sequence

from sweeper.core.accounts import Account
from sweeper.trading.aggregator import AggregationResult
from sweeper.trading.decision import BuyCandidate
from sweeper.logging_config import get_activity_logger

logger = logging.getLogger(__name__)


@dataclass
class ActionRecord:
    """
    A dispatched action.

    Attributes:
        action: "buy" or "list"
        detail: Candidate or aggregation result the action was given
        accounts: Addresses handed to the action
        timestamp: When the action was dispatched
    """
    action: str
    detail: object
    accounts: List[str]
    timestamp: datetime


class BuyAction(ABC):
    """
    Capability to take a buy-eligible listing.

    Implementations submit the purchase; the decision loop only calls
    buy() once per candidate with the account selected for it.
    """

    @abstractmethod
    async def buy(self, candidate: BuyCandidate, account: Account) -> None:
        pass


class ListAction(ABC):
    """Capability to add new listings when listed supply is short."""

    @abstractmethod
    async def add_listings(self, result: AggregationResult, accounts: Sequence[Account]) -> None:
        pass


class LoggingBuyAction(BuyAction):
    """Record buy decisions without submitting anything."""

    def __init__(self):
        self.history: List[ActionRecord] = []

    async def buy(self, candidate: BuyCandidate, account: Account) -> None:
        self.history.append(
            ActionRecord(action="buy", detail=candidate, accounts=[account.address], timestamp=datetime.now())
        )
        get_activity_logger().log_buy_candidate(
            page_index=candidate.page_index,
            amount=candidate.item.amount,
            price=candidate.price,
            floor_price=candidate.floor_price,
            account=account.address,
        )


class LoggingListAction(ListAction):
    """Record list-addition decisions without submitting anything."""

    def __init__(self):
        self.history: List[ActionRecord] = []

    async def add_listings(self, result: AggregationResult, accounts: Sequence[Account]) -> None:
        self.history.append(
            ActionRecord(
                action="list",
                detail=result,
                accounts=[account.address for account in accounts],
                timestamp=datetime.now(),
            )
        )
        logger.info(
            f"[List] add lists: total {result.total_amount} below {result.threshold} "
            f"({len(accounts)} mint accounts available)"
        )
        get_activity_logger().log_list_decision(
            total_amount=result.total_amount,
            threshold=result.threshold,
            accounts=len(accounts),
        )
