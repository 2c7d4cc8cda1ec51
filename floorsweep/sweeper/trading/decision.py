"""
Decision engine - buy eligibility against a rotating floor price.

The engine is pure with respect to rotation: callers pass the current
price index in and advance it themselves with FloorPriceSchedule.advance().
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

from sweeper.trading.aggregator import ListingSource
from sweeper.trading.listings import FloorPriceSchedule, ListingItem, ListingPage, page_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuyCandidate:
    """A listing priced at or below the active floor price."""
    item: ListingItem
    page_index: int
    price: int
    floor_price: int


@dataclass(frozen=True)
class BuyEvaluation:
    """
    Outcome of one buy check.

    Attributes:
        floor_price: Threshold the listings were compared against
        price_index: Rotation index that selected floor_price
        total_count: Listings reported by page 1
        pages_fetched: Remote page queries made
        candidates: Buy-eligible listings in feed order
    """
    floor_price: int
    price_index: int
    total_count: int
    pages_fetched: int
    candidates: Tuple[BuyCandidate, ...]


def classify_page(page: ListingPage, floor_price: int) -> List[BuyCandidate]:
    """
    Classify every listing on a page against the floor price.

    Raises:
        ParseError: If a price is malformed
    """
    candidates = []
    for item in page.items:
        price = item.price_value()
        if price <= floor_price:
            candidates.append(
                BuyCandidate(item=item, page_index=page.page_index, price=price, floor_price=floor_price)
            )
    return candidates


async def evaluate_buys(
    gateway: ListingSource,
    token: str,
    page_size: int,
    schedule: FloorPriceSchedule,
    price_index: int,
) -> BuyEvaluation:
    """
    Find every listing eligible for an automated buy.

    Page 1 and every following page get the same per-item comparison.
    An empty feed (total_count 0 on page 1) ends the check without
    further queries.

    Raises:
        ParseError: If a price is malformed
        GatewayError: If a page query fails
    """
    floor_price = schedule.current(price_index)

    first = await gateway.fetch_listing_page(token, 1, page_size)
    if first.total_count == 0:
        logger.info(f"[buy] no lists for {token}")
        return BuyEvaluation(
            floor_price=floor_price,
            price_index=price_index,
            total_count=0,
            pages_fetched=1,
            candidates=(),
        )

    pages = page_count(first.total_count, page_size)
    candidates = classify_page(first, floor_price)

    for page_index in range(2, pages + 1):
        page = await gateway.fetch_listing_page(token, page_index, page_size)
        if page.is_empty:
            logger.debug(f"[buy] page {page_index}/{pages} empty")
            continue
        candidates.extend(classify_page(page, floor_price))

    logger.info(
        f"[buy] {token}: {first.total_count} listings, {len(candidates)} at or below "
        f"floor {floor_price} (index {price_index % len(schedule)})"
    )
    return BuyEvaluation(
        floor_price=floor_price,
        price_index=price_index,
        total_count=first.total_count,
        pages_fetched=pages,
        candidates=tuple(candidates),
    )
