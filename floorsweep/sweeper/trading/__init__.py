"""
Decision Loop

Listing feed aggregation, buy eligibility, action strategies and the
scheduler that drives them.
"""

from .listings import FloorPriceSchedule, ListingItem, ListingPage, page_count, parse_u64
from .aggregator import AggregationResult, aggregate
from .decision import BuyCandidate, BuyEvaluation, classify_page, evaluate_buys
from .actions import BuyAction, ListAction, LoggingBuyAction, LoggingListAction
from .scheduler import Scheduler, SchedulerState

__all__ = [
    'FloorPriceSchedule',
    'ListingItem',
    'ListingPage',
    'page_count',
    'parse_u64',
    'AggregationResult',
    'aggregate',
    'BuyCandidate',
    'BuyEvaluation',
    'classify_page',
    'evaluate_buys',
    'BuyAction',
    'ListAction',
    'LoggingBuyAction',
    'LoggingListAction',
    'Scheduler',
    'SchedulerState',
]
