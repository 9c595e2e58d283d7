"""
Core Data Models for Expense Tracker

These models define the strict schemas for categories and expenses.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and caching
4. Keep ownership explicit (every record carries its owner's user_id)

DESIGN DECISION: Records reference each other by ID only. There is no
object graph between users, categories and expenses; "include the
category" is an explicit, owner-scoped lookup (see ExpenseDetail).
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from expense_tracker.models.common import (
    HEX_COLOR_PATTERN,
    EntityState,
    to_money,
    utc_now,
)


class Category(BaseModel):
    """
    A user-defined expense category.

    Names are unique per owner (case-insensitively) among active
    categories. Deleting a category only flips its state.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique category ID"
    )
    user_id: UUID = Field(
        ...,
        description="Owner of this category"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    color: str = Field(
        ...,
        pattern=HEX_COLOR_PATTERN,
        description="Hex color code (e.g., #FF5733)"
    )
    created_at: datetime = Field(
        default_factory=utc_now
    )
    state: EntityState = Field(
        default=EntityState.ACTIVE
    )

    @property
    def is_deleted(self) -> bool:
        return self.state == EntityState.DELETED


class Expense(BaseModel):
    """
    A single spending transaction.

    CRITICAL: category_id must point at an active category owned by the
    same user at write time. Later deletion of that category does not
    invalidate the expense.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID"
    )
    user_id: UUID = Field(
        ...,
        description="Owner of this expense"
    )
    category_id: UUID = Field(
        ...,
        description="Category this expense is filed under"
    )
    amount: Annotated[
        Decimal,
        Field(gt=0, decimal_places=2, description="Amount spent (2 decimal places)")
    ]
    description: Optional[str] = Field(
        default=None,
        max_length=500
    )
    expense_date: date = Field(
        ...,
        description="Date of the transaction"
    )
    created_at: datetime = Field(
        default_factory=utc_now
    )
    state: EntityState = Field(
        default=EntityState.ACTIVE
    )

    @field_validator('amount')
    @classmethod
    def normalize_amount(cls, v: Decimal) -> Decimal:
        """Always carry exactly two decimal places."""
        return to_money(v)

    @property
    def is_deleted(self) -> bool:
        return self.state == EntityState.DELETED


class ExpenseDetail(BaseModel):
    """
    An expense joined with its category.

    The category may be in the DELETED state: historical expenses keep
    reporting the name and color the category had when it was removed.
    """

    expense: Expense
    category: Category

    @property
    def category_deleted(self) -> bool:
        return self.category.is_deleted
