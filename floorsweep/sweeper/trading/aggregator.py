"""Listing aggregator - reduce the whole listing feed to a listed total."""

import logging
from dataclasses import dataclass
from typing import Protocol

from sweeper.core.errors import ParseError
from sweeper.trading.listings import ListingPage, U64_MAX, page_count

logger = logging.getLogger(__name__)


class ListingSource(Protocol):
    """Anything that serves listing pages (the gateway, or a test fake)."""

    async def fetch_listing_page(self, token: str, page_index: int, page_size: int) -> ListingPage:
        ...


@dataclass(frozen=True)
class AggregationResult:
    """
    Listed supply for a token.

    Attributes:
        total_amount: Sum of every listing amount across all pages
        threshold: Configured minimum listed supply
        deficit: True when total_amount is below threshold
        pages_fetched: Remote page queries made
    """
    total_amount: int
    threshold: int
    deficit: bool
    pages_fetched: int


def sum_amounts(page: ListingPage) -> int:
    """
    Sum the amounts on one page. Raises ParseError on a malformed amount.

    Prices are not read here: a malformed price only fails the buy check,
    which is the one branch that compares prices.
    """
    return sum(item.amount_value() for item in page.items)


async def aggregate(
    gateway: ListingSource,
    token: str,
    page_size: int,
    threshold: int,
) -> AggregationResult:
    """
    Walk every page of the listing feed and total the listed amount.

    Page 1's total_count decides how many pages exist; pages are fetched
    one after another. A total_count of 0 on page 1 returns immediately
    without further queries.

    Args:
        gateway: Listing source
        token: Tracked token identifier
        page_size: Items per page, fixed for the whole pass
        threshold: Minimum listed supply; below it the result is a deficit

    Returns:
        AggregationResult

    Raises:
        ParseError: If any amount is malformed (no partial result is kept)
        GatewayError: If a page query fails
    """
    first = await gateway.fetch_listing_page(token, 1, page_size)
    if first.total_count == 0:
        logger.info(f"[List] no lists for {token}")
        return AggregationResult(total_amount=0, threshold=threshold, deficit=0 < threshold, pages_fetched=1)

    pages = page_count(first.total_count, page_size)
    total = sum_amounts(first)

    for page_index in range(2, pages + 1):
        page = await gateway.fetch_listing_page(token, page_index, page_size)
        if page.is_empty:
            logger.debug(f"[List] page {page_index}/{pages} empty")
            continue
        total += sum_amounts(page)

    if total > U64_MAX:
        raise ParseError(f"Listed total for {token} overflows u64: {total}")

    result = AggregationResult(
        total_amount=total,
        threshold=threshold,
        deficit=total < threshold,
        pages_fetched=pages,
    )
    logger.info(
        f"[List] {token}: {first.total_count} listings over {pages} pages, "
        f"total amount {total} (threshold {threshold})"
    )
    return result
