"""
Tests for the listing data model: u64 parsing, page counts, response
parsing and the floor-price schedule.
"""

import pytest
from hypothesis import given, settings, strategies as st

from sweeper.core.errors import ParseError
from sweeper.trading.listings import (
    FloorPriceSchedule,
    ListingItem,
    ListingPage,
    U64_MAX,
    page_count,
    parse_u64,
)
from tests.fixtures import LISTING_FIXTURES
from tests.generators import (
    invalid_u64_string_strategy,
    page_size_strategy,
    schedule_strategy,
    total_count_strategy,
    u64_strategy,
)


class TestParseU64:
    """Strict unsigned 64-bit parsing."""

    def test_parses_plain_digits(self):
        assert parse_u64("0") == 0
        assert parse_u64("250000000") == 250000000
        assert parse_u64(str(U64_MAX)) == U64_MAX

    def test_leading_zeros_accepted(self):
        assert parse_u64("007") == 7

    @pytest.mark.parametrize("value", ["", "-1", "+1", "1.5", " 1", "1 ", "1_000", "0x10", "abc", "1e9"])
    def test_rejects_malformed_strings(self, value):
        with pytest.raises(ParseError):
            parse_u64(value, "amount")

    def test_rejects_overflow(self):
        with pytest.raises(ParseError, match="overflows u64"):
            parse_u64(str(U64_MAX + 1), "price")

    @pytest.mark.parametrize("value", [None, 5, 5.0, b"5"])
    def test_rejects_non_strings(self, value):
        with pytest.raises(ParseError):
            parse_u64(value)

    def test_error_names_the_field(self):
        with pytest.raises(ParseError, match="amount"):
            parse_u64("x", "amount")

    @given(u64_strategy)
    def test_property_roundtrip(self, number):
        assert parse_u64(str(number)) == number

    @given(invalid_u64_string_strategy)
    def test_property_never_silently_coerced(self, value):
        with pytest.raises(ParseError):
            parse_u64(value)


class TestPageCount:
    """Exact ceiling division with no trailing empty page."""

    def test_exact_multiple_has_no_extra_page(self):
        assert page_count(100, 50) == 2

    def test_remainder_adds_one_page(self):
        assert page_count(120, 50) == 3
        assert page_count(1, 50) == 1
        assert page_count(51, 50) == 2

    def test_zero_total_has_no_pages(self):
        assert page_count(0, 50) == 0

    def test_rejects_non_positive_page_size(self):
        with pytest.raises(ValueError):
            page_count(10, 0)

    @given(total_count_strategy, page_size_strategy)
    def test_property_pages_cover_exactly(self, total, size):
        pages = page_count(total, size)
        # Every item falls on a page, and the last page is never empty
        assert pages * size >= total
        assert (pages - 1) * size < total or pages == 0


class TestListingPage:
    """Parsing listing response bodies."""

    def test_absent_data_with_zero_total(self):
        page = ListingPage.from_response(LISTING_FIXTURES["empty_without_data"], 1, 50)
        assert page.total_count == 0
        assert page.items == ()
        assert page.is_empty

    def test_null_data_with_zero_total(self):
        page = ListingPage.from_response(LISTING_FIXTURES["empty_null_data"], 1, 50)
        assert page.items == ()

    def test_items_keep_feed_order(self):
        page = ListingPage.from_response(LISTING_FIXTURES["single_page"], 1, 50)
        assert page.total_count == 2
        assert page.items == (
            ListingItem(amount="1000", price="200000000"),
            ListingItem(amount="2500", price="300000000"),
        )
        assert page.page_index == 1
        assert page.page_size == 50

    def test_enveloped_response(self):
        page = ListingPage.from_response(LISTING_FIXTURES["enveloped"], 2, 10)
        assert page.total_count == 1
        assert page.items[0].amount_value() == 42
        assert page.page_index == 2

    def test_negative_total_rejected(self):
        with pytest.raises(ParseError):
            ListingPage.from_response(LISTING_FIXTURES["negative_total"], 1, 50)

    @pytest.mark.parametrize("payload", [
        [],
        {"data": []},
        {"total": "3", "data": []},
        {"total": True, "data": []},
        {"total": 1, "data": {"amount": "1"}},
        {"total": 1, "data": [{"amount": "1"}]},
        {"total": 1, "data": ["1"]},
    ])
    def test_malformed_bodies_rejected(self, payload):
        with pytest.raises(ParseError):
            ListingPage.from_response(payload, 1, 50)

    def test_bad_amount_parsed_lazily(self):
        page = ListingPage.from_response(LISTING_FIXTURES["bad_amount"], 1, 50)
        assert page.items[0].price_value() == 1
        with pytest.raises(ParseError):
            page.items[0].amount_value()


class TestFloorPriceSchedule:
    """Rotating floor-price thresholds."""

    def test_default_schedule(self):
        schedule = FloorPriceSchedule()
        assert schedule.thresholds == (123000000, 250000000, 450000000, 200000000, 220000000, 300000000)
        assert schedule.current(1) == 250000000

    def test_rotation_from_index_one(self):
        schedule = FloorPriceSchedule()
        index = 1
        visited = []
        for _ in range(8):
            visited.append(index)
            index = schedule.advance(index)
        assert visited == [1, 2, 3, 4, 5, 0, 1, 2]

    def test_current_wraps_out_of_range_index(self):
        schedule = FloorPriceSchedule((10, 20, 30))
        assert schedule.current(4) == 20

    def test_empty_schedule_rejected(self):
        with pytest.raises(ValueError):
            FloorPriceSchedule(())

    @pytest.mark.parametrize("bad", [-1, U64_MAX + 1, 1.5, True])
    def test_invalid_threshold_rejected(self, bad):
        with pytest.raises(ValueError):
            FloorPriceSchedule((1, bad))

    @given(schedule_strategy(), st.integers(min_value=0, max_value=50))
    @settings(max_examples=50)
    def test_property_k_advances(self, schedule_and_start, k):
        thresholds, start = schedule_and_start
        schedule = FloorPriceSchedule(thresholds)
        index = start
        for _ in range(k):
            index = schedule.advance(index)
            assert 0 <= index < len(thresholds)
        assert index == (start + k) % len(thresholds)
