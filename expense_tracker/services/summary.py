"""
Summary Cache

Read-through cache of aggregate spending per user and date range.

DESIGN DECISION: Snapshots are cached for a fixed window (10 minutes by
default) and are NEVER invalidated when expenses change. Within that
window a summary may be stale; it is always internally consistent,
because it is computed in one pass and stored whole.

The cache is an optimization, not a source of truth:
- A blob that cannot be parsed is a miss and gets overwritten
- If the cache backend fails, the summary is computed from the
  Expense Store and returned anyway
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from expense_tracker.audit import AuditLogger, create_correlation_id, get_logger
from expense_tracker.config import CacheSettings, get_settings
from expense_tracker.models.common import CENT, to_money
from expense_tracker.models.ledger import ExpenseDetail
from expense_tracker.models.summary import CategorySummary, SummarySnapshot
from expense_tracker.services.cache import CacheError, CacheInterface
from expense_tracker.services.expenses import ExpenseStore


logger = get_logger("expense_tracker.summary")

OPEN_BOUND = "*"


def summary_cache_key(
    user_id: UUID,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> str:
    """summary:{user_id}:{start or *}:{end or *}"""
    start_part = start.isoformat() if start else OPEN_BOUND
    end_part = end.isoformat() if end else OPEN_BOUND
    return f"summary:{user_id}:{start_part}:{end_part}"


def build_snapshot(
    user_id: UUID,
    details: list[ExpenseDetail],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> SummarySnapshot:
    """
    Aggregate expenses into a snapshot.

    Only expenses dated within [start, end] are counted; a missing
    bound is open. Categories are ordered by total (largest first),
    then by name.
    """
    in_range = [
        d for d in details
        if (start is None or d.expense.expense_date >= start)
        and (end is None or d.expense.expense_date <= end)
    ]

    total = Decimal("0")
    groups: dict[UUID, CategorySummary] = {}

    for detail in in_range:
        amount = detail.expense.amount
        total += amount

        entry = groups.get(detail.category.id)
        if entry is None:
            entry = CategorySummary(
                category_id=detail.category.id,
                category_name=detail.category.name,
                color=detail.category.color,
                total=Decimal("0"),
                count=0,
            )
            groups[detail.category.id] = entry
        entry.total += amount
        entry.count += 1

    count = len(in_range)
    if count:
        average = (total / count).quantize(CENT, rounding=ROUND_HALF_UP)
    else:
        average = to_money(Decimal("0"))

    by_category = sorted(
        groups.values(),
        key=lambda c: (-c.total, c.category_name.lower(), str(c.category_id)),
    )
    for entry in by_category:
        entry.total = to_money(entry.total)

    return SummarySnapshot(
        user_id=user_id,
        start_date=start,
        end_date=end,
        total_spending=to_money(total),
        average_transaction=average,
        transaction_count=count,
        by_category=by_category,
    )


class SummaryCache:
    """
    Serves spending summaries, computing them on a cache miss.

    Depends on the Expense Store for raw data and a CacheInterface for
    storage of computed snapshots.
    """

    def __init__(
        self,
        expense_store: ExpenseStore,
        cache: CacheInterface,
        settings: Optional[CacheSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._expenses = expense_store
        self._cache = cache
        self._settings = settings or get_settings().cache
        self._audit_logger = audit_logger

    async def get_summary(
        self,
        user_id: UUID,
        start: Optional[date] = None,
        end: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SummarySnapshot:
        """
        Return the spending summary for a user and optional date range.

        A cached snapshot younger than the TTL is returned as-is.
        """
        correlation_id = correlation_id or create_correlation_id()
        key = summary_cache_key(user_id, start, end)

        cached = await self._read(key, correlation_id)
        if cached is not None:
            if self._audit_logger:
                await self._audit_logger.log_summary_served(
                    user_id=user_id,
                    cache_key=key,
                    hit=True,
                    correlation_id=correlation_id,
                )
            return cached

        details = await self._expenses.list_all(user_id)
        snapshot = build_snapshot(user_id, details, start, end)

        await self._write(key, snapshot, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_summary_served(
                user_id=user_id,
                cache_key=key,
                hit=False,
                correlation_id=correlation_id,
            )

        return snapshot

    async def _read(
        self,
        key: str,
        correlation_id: UUID,
    ) -> Optional[SummarySnapshot]:
        try:
            blob = await self._cache.get(key)
        except CacheError as e:
            await self._report_cache_failure("read", key, e, correlation_id)
            return None

        if blob is None:
            return None

        try:
            return SummarySnapshot.model_validate_json(blob)
        except PydanticValidationError:
            logger.warning("summary_cache_corrupt_entry", cache_key=key)
            return None

    async def _write(
        self,
        key: str,
        snapshot: SummarySnapshot,
        correlation_id: UUID,
    ) -> None:
        try:
            await self._cache.set(
                key,
                snapshot.model_dump_json(),
                ttl_seconds=self._settings.summary_ttl_seconds,
            )
        except CacheError as e:
            await self._report_cache_failure("write", key, e, correlation_id)

    async def _report_cache_failure(
        self,
        operation: str,
        key: str,
        error: CacheError,
        correlation_id: UUID,
    ) -> None:
        logger.warning(
            "summary_cache_unavailable",
            operation=operation,
            cache_key=key,
            error=str(error),
        )
        if self._audit_logger:
            await self._audit_logger.log_external_service_error(
                service="cache",
                error_message=f"{operation} failed: {error}",
                correlation_id=correlation_id,
            )
