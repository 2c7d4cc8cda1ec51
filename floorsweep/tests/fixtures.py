"""
Listing responses and fakes for testing.

Provides:
- LISTING_FIXTURES: raw listing response bodies as the exchange returns them
- FakeListingGateway: in-memory listing feed with call recording
- FakePool / FakeConnection: asyncpg stand-ins backed by a list of rows
- FakeClock: manual clock with an async sleep that advances it

Usage:
    from tests.fixtures import FakeListingGateway, make_items

    gateway = FakeListingGateway(items=make_items([100, 200]))
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Sequence

from sweeper.trading.listings import ListingPage


def make_items(amounts: Sequence[int], prices: Optional[Sequence[int]] = None) -> List[Dict[str, str]]:
    """Build raw listing items; prices default to 1."""
    if prices is None:
        prices = [1] * len(amounts)
    return [{"amount": str(a), "price": str(p)} for a, p in zip(amounts, prices)]


# ============================================================================
# Listing response fixtures
# ============================================================================

LISTING_FIXTURES: Dict[str, Dict[str, Any]] = {
    "empty_without_data": {
        "total": 0,
    },

    "empty_null_data": {
        "total": 0,
        "data": None,
    },

    "single_page": {
        "total": 2,
        "data": [
            {"amount": "1000", "price": "200000000"},
            {"amount": "2500", "price": "300000000"},
        ],
    },

    "enveloped": {
        "code": 0,
        "message": "ok",
        "data": {
            "total": 1,
            "data": [{"amount": "42", "price": "123000000"}],
        },
    },

    "negative_total": {
        "total": -1,
        "data": [],
    },

    "bad_amount": {
        "total": 1,
        "data": [{"amount": "12.5", "price": "1"}],
    },
}


# ============================================================================
# Fakes
# ============================================================================

class FakeClock:
    """Manual monotonic clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float):
        self.now += delay


class FakeListingGateway:
    """
    In-memory listing feed.

    Either serves ``items`` sliced into pages of the requested size, or
    serves explicit ``pages`` payloads keyed by page index. Every call is
    recorded in ``calls``.
    """

    def __init__(
        self,
        items: Optional[List[Dict[str, str]]] = None,
        pages: Optional[Dict[int, Dict[str, Any]]] = None,
        errors: Optional[Dict[int, Exception]] = None,
        clock: Optional[FakeClock] = None,
        latency: float = 0.0,
    ):
        self.items = list(items or [])
        self.pages = pages
        self.errors = dict(errors or {})
        self.clock = clock
        self.latency = latency
        self.calls: List[tuple] = []

    async def fetch_listing_page(self, token: str, page_index: int, page_size: int) -> ListingPage:
        self.calls.append((token, page_index, page_size))
        if self.clock is not None:
            self.clock.now += self.latency

        if page_index in self.errors:
            raise self.errors[page_index]

        if self.pages is not None:
            payload = self.pages.get(page_index, {"total": 0})
        else:
            start = (page_index - 1) * page_size
            payload = {"total": len(self.items)}
            if self.items:
                payload["data"] = self.items[start:start + page_size]

        return ListingPage.from_response(payload, page_index=page_index, page_size=page_size)

    @property
    def pages_requested(self) -> List[int]:
        return [call[1] for call in self.calls]


class FakeTransaction:
    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeConnection:
    """
    asyncpg connection stand-in for the accounts table.

    Emulates the UNIQUE (address, account_type) constraint with
    ON CONFLICT DO NOTHING semantics.
    """

    def __init__(self, rows: List[Dict[str, Any]], fail_with: Optional[Exception] = None):
        self.rows = rows
        self.fail_with = fail_with
        self.executed: List[str] = []

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    def transaction(self):
        return FakeTransaction()

    async def execute(self, query: str, *args):
        self._check()
        self.executed.append(query)
        return "OK"

    async def fetch(self, query: str, account_type: int):
        self._check()
        return [row for row in self.rows if row["account_type"] == account_type]

    async def fetchval(self, query: str, *args):
        self._check()
        if args:
            return len([row for row in self.rows if row["account_type"] == args[0]])
        return len(self.rows)

    async def executemany(self, query: str, args: List[tuple]):
        self._check()
        self.executed.append(query)
        for address, private_key, account_type in args:
            exists = any(
                row["address"] == address and row["account_type"] == account_type
                for row in self.rows
            )
            if not exists:
                self.rows.append({
                    "id": len(self.rows) + 1,
                    "address": address,
                    "private_key": private_key,
                    "account_type": account_type,
                })


class FakePool:
    """asyncpg pool stand-in sharing one in-memory table."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.rows: List[Dict[str, Any]] = []
        self.fail_with = fail_with
        self.closed = False
        self.connection = FakeConnection(self.rows, fail_with)

    @asynccontextmanager
    async def acquire(self):
        yield self.connection

    async def close(self):
        self.closed = True
