"""
Spending summary models.

A SummarySnapshot is derived data: it is computed from raw expenses and
cached as a JSON blob, so it must round-trip through JSON exactly.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from expense_tracker.models.common import utc_now


class CategorySummary(BaseModel):
    """Spending within one category."""

    category_id: UUID
    category_name: str
    color: str
    total: Decimal = Field(ge=0)
    count: int = Field(ge=0)


class SummarySnapshot(BaseModel):
    """Aggregate spending for a user over an optional date range."""

    user_id: UUID
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    total_spending: Decimal = Field(ge=0)
    average_transaction: Decimal = Field(ge=0)
    transaction_count: int = Field(ge=0)
    by_category: list[CategorySummary] = Field(default_factory=list)

    computed_at: datetime = Field(
        default_factory=utc_now,
        description="When the snapshot was computed (not when it was read)"
    )

    def category(self, category_id: UUID) -> Optional[CategorySummary]:
        """Look up the entry for one category."""
        for entry in self.by_category:
            if entry.category_id == category_id:
                return entry
        return None
