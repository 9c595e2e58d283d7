"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.common import (
    EntityState,
    ValidationIssue,
    to_money,
    utc_now,
)
from expense_tracker.models.user import (
    AccessToken,
    TokenClaims,
    User,
)
from expense_tracker.models.ledger import (
    Category,
    Expense,
    ExpenseDetail,
)
from expense_tracker.models.requests import (
    CreateCategoryRequest,
    CreateExpenseRequest,
    LoginRequest,
    RegisterRequest,
    UpdateCategoryRequest,
    UpdateExpenseRequest,
)
from expense_tracker.models.summary import (
    CategorySummary,
    SummarySnapshot,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Shared
    "EntityState",
    "ValidationIssue",
    "to_money",
    "utc_now",
    # Users and sessions
    "AccessToken",
    "TokenClaims",
    "User",
    # Ledger
    "Category",
    "Expense",
    "ExpenseDetail",
    # Requests
    "CreateCategoryRequest",
    "CreateExpenseRequest",
    "LoginRequest",
    "RegisterRequest",
    "UpdateCategoryRequest",
    "UpdateExpenseRequest",
    # Summaries
    "CategorySummary",
    "SummarySnapshot",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
