"""
Request Models

Shapes of the inputs accepted from the boundary layer.

These models only check SHAPE: presence, lengths, formats and the
"no future dates" rule. Business rules (positive amounts, name
uniqueness, category ownership) are enforced by the stores so they
surface as domain errors.

For partial updates, a field that was not supplied is absent from
`model_fields_set`; a field explicitly set to None is present.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from expense_tracker.models.common import HEX_COLOR_PATTERN


EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def _not_in_future(v: Optional[date]) -> Optional[date]:
    if v is not None and v > date.today():
        raise ValueError("Date cannot be in the future.")
    return v


class RegisterRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1, repr=False)
    confirm_password: str = Field(..., min_length=1, repr=False)


class LoginRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1, repr=False)


class CreateCategoryRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category name"
    )
    color: str = Field(
        ...,
        pattern=HEX_COLOR_PATTERN,
        description="Hex color code (e.g., #FF5733)"
    )


class UpdateCategoryRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)


class CreateExpenseRequest(BaseModel):
    """
    Input for a new expense.

    NOTE: amount is deliberately not bounded here. The Expense Store
    rejects amounts <= 0 with a domain ValidationError.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    category_id: UUID
    amount: Decimal = Field(..., decimal_places=2)
    description: Optional[str] = Field(default=None, max_length=500)
    expense_date: date

    @field_validator('expense_date')
    @classmethod
    def validate_date(cls, v: date) -> date:
        return _not_in_future(v)


class UpdateExpenseRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    category_id: Optional[UUID] = None
    amount: Optional[Decimal] = Field(default=None, decimal_places=2)
    description: Optional[str] = Field(default=None, max_length=500)
    expense_date: Optional[date] = None

    @field_validator('expense_date')
    @classmethod
    def validate_date(cls, v: Optional[date]) -> Optional[date]:
        return _not_in_future(v)

    def supplied(self, name: str) -> bool:
        """Was this field given a non-null value by the caller?"""
        return name in self.model_fields_set and getattr(self, name) is not None
