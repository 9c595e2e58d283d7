"""
Tests for the summary cache.

Expiry is driven by the fake clock from conftest; nothing sleeps.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import category_request, expense_request
from expense_tracker.models import AuditEventType, SummarySnapshot
from expense_tracker.services.cache import CacheError, CacheInterface
from expense_tracker.services.summary import SummaryCache, summary_cache_key


class BrokenCache(CacheInterface):
    """Cache backend that is always down."""

    async def get(self, key):
        raise CacheError("connection refused")

    async def set(self, key, value, ttl_seconds):
        raise CacheError("connection refused")


async def _seed_example(category_store, expense_store, owner):
    """Food 100 + 50, Travel 100."""
    food = await category_store.create(owner, category_request("Food"))
    travel = await category_store.create(owner, category_request("Travel", "#00F"))
    await expense_store.create(owner, expense_request(food.id, "100.00", date(2024, 1, 5)))
    await expense_store.create(owner, expense_request(food.id, "50.00", date(2024, 1, 20)))
    await expense_store.create(owner, expense_request(travel.id, "100.00", date(2024, 2, 3)))
    return food, travel


class TestCacheKey:

    def test_open_bounds_use_sentinel(self):
        user_id = uuid4()
        assert summary_cache_key(user_id) == f"summary:{user_id}:*:*"

    def test_dates_are_iso(self):
        user_id = uuid4()
        key = summary_cache_key(user_id, date(2024, 1, 1), date(2024, 1, 31))
        assert key == f"summary:{user_id}:2024-01-01:2024-01-31"


class TestComputeSummary:

    @pytest.mark.asyncio
    async def test_example_totals(self, category_store, expense_store, summary_cache):
        """Three expenses across two categories."""
        owner = uuid4()
        food, travel = await _seed_example(category_store, expense_store, owner)

        summary = await summary_cache.get_summary(owner)

        assert summary.total_spending == Decimal("250.00")
        assert summary.transaction_count == 3
        assert summary.average_transaction == Decimal("83.33")
        assert summary.category(food.id).total == Decimal("150.00")
        assert summary.category(food.id).count == 2
        assert summary.category(travel.id).total == Decimal("100.00")
        assert summary.category(travel.id).count == 1

    @pytest.mark.asyncio
    async def test_categories_ordered_by_total(
        self, category_store, expense_store, summary_cache
    ):
        owner = uuid4()
        await _seed_example(category_store, expense_store, owner)

        summary = await summary_cache.get_summary(owner)

        assert [c.category_name for c in summary.by_category] == ["Food", "Travel"]

    @pytest.mark.asyncio
    async def test_date_range(self, category_store, expense_store, summary_cache):
        owner = uuid4()
        food, travel = await _seed_example(category_store, expense_store, owner)

        summary = await summary_cache.get_summary(
            owner, date(2024, 1, 1), date(2024, 1, 31)
        )

        assert summary.total_spending == Decimal("150.00")
        assert summary.category(travel.id) is None
        assert summary.start_date == date(2024, 1, 1)

    @pytest.mark.asyncio
    async def test_open_ended_range(self, category_store, expense_store, summary_cache):
        owner = uuid4()
        await _seed_example(category_store, expense_store, owner)

        summary = await summary_cache.get_summary(owner, start=date(2024, 1, 20))

        assert summary.total_spending == Decimal("150.00")
        assert summary.transaction_count == 2

    @pytest.mark.asyncio
    async def test_no_expenses(self, summary_cache):
        summary = await summary_cache.get_summary(uuid4())

        assert summary.total_spending == Decimal("0.00")
        assert summary.average_transaction == Decimal("0.00")
        assert summary.transaction_count == 0
        assert summary.by_category == []

    @pytest.mark.asyncio
    async def test_average_rounds_half_up(
        self, category_store, expense_store, summary_cache
    ):
        owner = uuid4()
        category = await category_store.create(owner, category_request())
        await expense_store.create(owner, expense_request(category.id, "0.01"))
        await expense_store.create(owner, expense_request(category.id, "0.02"))

        summary = await summary_cache.get_summary(owner)

        # 0.03 / 2 = 0.015
        assert summary.average_transaction == Decimal("0.02")

    @pytest.mark.asyncio
    async def test_deleted_category_still_reported(
        self, category_store, expense_store, summary_cache
    ):
        """Expenses under a deleted category keep its name in the summary."""
        owner = uuid4()
        food, _ = await _seed_example(category_store, expense_store, owner)
        await category_store.delete(owner, food.id)

        summary = await summary_cache.get_summary(owner)

        assert summary.category(food.id).category_name == "Food"
        assert summary.total_spending == Decimal("250.00")


class TestCaching:

    @pytest.mark.asyncio
    async def test_stale_within_ttl(
        self, category_store, expense_store, summary_cache, clock
    ):
        """Writes inside the window are not reflected until expiry."""
        owner = uuid4()
        food, _ = await _seed_example(category_store, expense_store, owner)
        first = await summary_cache.get_summary(owner)

        await expense_store.create(owner, expense_request(food.id, "25.00"))
        clock.advance(599)
        second = await summary_cache.get_summary(owner)

        assert second.total_spending == first.total_spending == Decimal("250.00")
        assert second.computed_at == first.computed_at

    @pytest.mark.asyncio
    async def test_refreshed_after_ttl(
        self, category_store, expense_store, summary_cache, clock
    ):
        owner = uuid4()
        food, _ = await _seed_example(category_store, expense_store, owner)
        await summary_cache.get_summary(owner)

        await expense_store.create(owner, expense_request(food.id, "25.00"))
        clock.advance(600)
        refreshed = await summary_cache.get_summary(owner)

        assert refreshed.total_spending == Decimal("275.00")
        assert refreshed.transaction_count == 4

    @pytest.mark.asyncio
    async def test_ranges_cached_separately(
        self, category_store, expense_store, summary_cache, cache
    ):
        owner = uuid4()
        await _seed_example(category_store, expense_store, owner)

        await summary_cache.get_summary(owner)
        await summary_cache.get_summary(owner, date(2024, 1, 1), date(2024, 1, 31))

        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_hit_and_miss_are_audited(self, summary_cache, audit_storage):
        owner = uuid4()

        await summary_cache.get_summary(owner)
        await summary_cache.get_summary(owner)

        events = await audit_storage.get_events_by_user(owner)
        types = {e.event_type for e in events}
        assert types == {
            AuditEventType.SUMMARY_CACHE_MISS,
            AuditEventType.SUMMARY_CACHE_HIT,
        }

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_recomputed(
        self, category_store, expense_store, summary_cache, cache
    ):
        owner = uuid4()
        await _seed_example(category_store, expense_store, owner)
        key = summary_cache_key(owner)
        await cache.set(key, "{not json", ttl_seconds=600)

        summary = await summary_cache.get_summary(owner)

        assert summary.total_spending == Decimal("250.00")
        cached = SummarySnapshot.model_validate_json(await cache.get(key))
        assert cached.total_spending == Decimal("250.00")

    @pytest.mark.asyncio
    async def test_cache_outage_falls_back_to_store(
        self, category_store, expense_store, cache_settings
    ):
        owner = uuid4()
        await _seed_example(category_store, expense_store, owner)
        summaries = SummaryCache(expense_store, BrokenCache(), settings=cache_settings)

        summary = await summaries.get_summary(owner)

        assert summary.total_spending == Decimal("250.00")
