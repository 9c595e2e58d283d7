"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

CRITICAL: Every category and expense query takes the owner's user_id
and filters on it TOGETHER with the primary key. There is no way to
fetch or modify a row by ID alone. This is what stops one user from
reading or changing another user's data, whatever IDs they send.

The interface is intentionally simple - we're not building a full ORM.
Just the operations the stores need.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.ledger import Category, Expense
from expense_tracker.models.user import User


class UserStorageInterface(ABC):
    """
    Abstract interface for the credential store.

    Users are never physically deleted.
    """

    @abstractmethod
    async def add_user(self, user: User) -> None:
        """
        Persist a new user.

        Raises:
            DuplicateError: If an active user already has this email
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_active_user_by_email(self, email: str) -> Optional[User]:
        """
        Find an active user by normalized email.

        Returns:
            The user if found and active, None otherwise
        """
        pass

    @abstractmethod
    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """Retrieve a user by ID, or None."""
        pass

    @abstractmethod
    async def update_user(self, user: User) -> None:
        """
        Overwrite a stored user.

        Raises:
            RecordNotFoundError: If the user doesn't exist
        """
        pass


class CategoryStorageInterface(ABC):
    """Abstract interface for category persistence."""

    @abstractmethod
    async def add_category(self, category: Category) -> None:
        """Persist a new category."""
        pass

    @abstractmethod
    async def get_category(
        self,
        user_id: UUID,
        category_id: UUID,
        include_deleted: bool = False,
    ) -> Optional[Category]:
        """
        Retrieve one category owned by user_id.

        Args:
            user_id: Owner the category must belong to
            category_id: The category's unique identifier
            include_deleted: Also return soft-deleted categories

        Returns:
            The category if found and owned, None otherwise
        """
        pass

    @abstractmethod
    async def list_categories(self, user_id: UUID) -> list[Category]:
        """
        List active categories owned by user_id.

        Returns:
            Categories ordered by name (case-insensitive), then ID
        """
        pass

    @abstractmethod
    async def find_active_by_name(
        self,
        user_id: UUID,
        name: str,
    ) -> Optional[Category]:
        """Case-insensitive lookup among the owner's active categories."""
        pass

    @abstractmethod
    async def update_category(self, category: Category) -> None:
        """
        Overwrite a stored category (matched on id AND user_id).

        Raises:
            RecordNotFoundError: If no such row exists for that owner
        """
        pass


class ExpenseStorageInterface(ABC):
    """Abstract interface for expense persistence."""

    @abstractmethod
    async def add_expense(self, expense: Expense) -> None:
        """Persist a new expense."""
        pass

    @abstractmethod
    async def get_expense(
        self,
        user_id: UUID,
        expense_id: UUID,
    ) -> Optional[Expense]:
        """
        Retrieve one active expense owned by user_id.

        Returns:
            The expense if found, owned and active, None otherwise
        """
        pass

    @abstractmethod
    async def list_expenses(
        self,
        user_id: UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        category_id: Optional[UUID] = None,
    ) -> list[Expense]:
        """
        List active expenses owned by user_id.

        Args:
            user_id: Owner
            date_from: Only expenses on or after this date
            date_to: Only expenses on or before this date
            category_id: Only expenses filed under this category

        Returns:
            Expenses ordered by date (newest first), then creation time
            (newest first), then ID
        """
        pass

    @abstractmethod
    async def update_expense(self, expense: Expense) -> None:
        """
        Overwrite a stored expense (matched on id AND user_id).

        Raises:
            RecordNotFoundError: If no such row exists for that owner
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one request).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_user(
        self,
        user_id: UUID,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent events triggered by one user.

        Returns:
            List of events (newest first)
        """
        pass


def expense_sort_key(expense: Expense) -> tuple:
    """Ordering shared by all backends: newest date first, stable after that."""
    return (expense.expense_date, expense.created_at, str(expense.id))


def category_sort_key(category: Category) -> tuple:
    return (category.name.lower(), str(category.id))


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class RecordNotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
