"""
Shared building blocks for the domain models.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


CENT = Decimal("0.01")

HEX_COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{3}){1,2}$"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_money(value: Decimal) -> Decimal:
    """Quantize an amount to whole cents."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class EntityState(str, Enum):
    """
    Lifecycle state of a user-owned record.

    DESIGN DECISION: Records are never physically removed. A deleted
    category can still be referenced by historical expenses, so
    "deleted but still referenced" is a normal, queryable state.
    """
    ACTIVE = "active"
    DELETED = "deleted"


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'too_short', 'duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )
