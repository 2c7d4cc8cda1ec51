"""Listing feed data model and strict unsigned integer parsing."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sweeper.core.errors import ParseError

U64_MAX = 2 ** 64 - 1

_DIGITS = re.compile(r"[0-9]+")


def parse_u64(value: Any, field_name: str = "value") -> int:
    """
    Parse a decimal string as an unsigned 64-bit integer.

    Only plain ASCII digits are accepted: no sign, whitespace, underscores
    or decimal point.

    Raises:
        ParseError: If the value is not a valid u64 decimal string
    """
    if not isinstance(value, str) or not _DIGITS.fullmatch(value):
        raise ParseError(f"Invalid {field_name}: {value!r} is not an unsigned integer")
    number = int(value)
    if number > U64_MAX:
        raise ParseError(f"Invalid {field_name}: {value!r} overflows u64")
    return number


def page_count(total_count: int, page_size: int) -> int:
    """
    Number of pages needed to cover total_count items.

    Exact ceiling division: 100 items at 50 per page is 2 pages, never a
    trailing empty third page.
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    if total_count <= 0:
        return 0
    return -(-total_count // page_size)


@dataclass(frozen=True)
class ListingItem:
    """An active sell offer: amount and price as decimal strings."""
    amount: str
    price: str

    def amount_value(self) -> int:
        return parse_u64(self.amount, "amount")

    def price_value(self) -> int:
        return parse_u64(self.price, "price")


@dataclass(frozen=True)
class ListingPage:
    """
    One page of the listing feed.

    Attributes:
        items: Listings on this page, in feed order
        total_count: Total listings across the whole feed
        page_index: 1-based page number
        page_size: Requested page size
    """
    items: Tuple[ListingItem, ...]
    total_count: int
    page_index: int
    page_size: int

    @property
    def is_empty(self) -> bool:
        return self.total_count == 0 or not self.items

    @classmethod
    def from_response(cls, payload: Dict[str, Any], page_index: int, page_size: int) -> "ListingPage":
        """
        Build a page from a listing response body.

        Accepts ``{"total": n, "data": [...]}`` either bare or wrapped in an
        envelope ``{"code": 0, "data": {...}}``. ``data`` may be absent or
        null when total is 0.

        Raises:
            ParseError: If the body does not have the expected shape
        """
        if not isinstance(payload, dict):
            raise ParseError(f"Listing response must be an object, got {type(payload).__name__}")

        inner = payload.get("data")
        if "total" not in payload and isinstance(inner, dict):
            payload = inner

        total = payload.get("total")
        if isinstance(total, bool) or not isinstance(total, int) or total < 0:
            raise ParseError(f"Invalid listing total: {total!r}")

        raw_items: Optional[List[Any]] = payload.get("data")
        if raw_items is None:
            raw_items = []
        if not isinstance(raw_items, list):
            raise ParseError(f"Listing data must be a list, got {type(raw_items).__name__}")

        items = []
        for raw in raw_items:
            if not isinstance(raw, dict) or "amount" not in raw or "price" not in raw:
                raise ParseError(f"Malformed listing item: {raw!r}")
            items.append(ListingItem(amount=raw["amount"], price=raw["price"]))

        return cls(
            items=tuple(items),
            total_count=total,
            page_index=page_index,
            page_size=page_size,
        )


@dataclass(frozen=True)
class FloorPriceSchedule:
    """Fixed rotating sequence of floor-price thresholds."""
    thresholds: Tuple[int, ...] = field(
        default=(123000000, 250000000, 450000000, 200000000, 220000000, 300000000)
    )

    def __post_init__(self):
        if not self.thresholds:
            raise ValueError("Floor price schedule must not be empty")
        for threshold in self.thresholds:
            if isinstance(threshold, bool) or not isinstance(threshold, int) or not 0 <= threshold <= U64_MAX:
                raise ValueError(f"Invalid floor price threshold: {threshold!r}")

    def __len__(self) -> int:
        return len(self.thresholds)

    def current(self, index: int) -> int:
        """Threshold active at rotation index (taken modulo the length)."""
        return self.thresholds[index % len(self.thresholds)]

    def advance(self, index: int) -> int:
        """Next rotation index, always a valid offset."""
        return (index + 1) % len(self.thresholds)


DEFAULT_PRICE_INDEX = 1
