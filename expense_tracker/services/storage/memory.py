"""
In-Memory Storage Implementation

Process-local backend used by the test suite and for local runs.

Rows are copied on the way in and on the way out, so callers can never
mutate stored state by holding on to a returned model.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.ledger import Category, Expense
from expense_tracker.models.user import User
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    CategoryStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    RecordNotFoundError,
    UserStorageInterface,
    category_sort_key,
    expense_sort_key,
)


class InMemoryUserStorage(UserStorageInterface):

    def __init__(self):
        self._users: dict[UUID, User] = {}

    async def add_user(self, user: User) -> None:
        if user.is_active and await self.get_active_user_by_email(user.email):
            raise DuplicateError(f"Active user already exists: {user.email}")
        self._users[user.id] = user.model_copy(deep=True)

    async def get_active_user_by_email(self, email: str) -> Optional[User]:
        for user in self._users.values():
            if user.is_active and user.email.lower() == email.lower():
                return user.model_copy(deep=True)
        return None

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def update_user(self, user: User) -> None:
        if user.id not in self._users:
            raise RecordNotFoundError(f"User not found: {user.id}")
        self._users[user.id] = user.model_copy(deep=True)


class InMemoryCategoryStorage(CategoryStorageInterface):

    def __init__(self):
        self._categories: dict[UUID, Category] = {}

    def _owned(self, user_id: UUID, category_id: UUID) -> Optional[Category]:
        category = self._categories.get(category_id)
        if category is None or category.user_id != user_id:
            return None
        return category

    async def add_category(self, category: Category) -> None:
        if category.id in self._categories:
            raise DuplicateError(f"Category already exists: {category.id}")
        self._categories[category.id] = category.model_copy(deep=True)

    async def get_category(
        self,
        user_id: UUID,
        category_id: UUID,
        include_deleted: bool = False,
    ) -> Optional[Category]:
        category = self._owned(user_id, category_id)
        if category is None or (category.is_deleted and not include_deleted):
            return None
        return category.model_copy(deep=True)

    async def list_categories(self, user_id: UUID) -> list[Category]:
        categories = [
            c.model_copy(deep=True)
            for c in self._categories.values()
            if c.user_id == user_id and not c.is_deleted
        ]
        categories.sort(key=category_sort_key)
        return categories

    async def find_active_by_name(
        self,
        user_id: UUID,
        name: str,
    ) -> Optional[Category]:
        wanted = name.strip().lower()
        for category in self._categories.values():
            if (
                category.user_id == user_id
                and not category.is_deleted
                and category.name.lower() == wanted
            ):
                return category.model_copy(deep=True)
        return None

    async def update_category(self, category: Category) -> None:
        if self._owned(category.user_id, category.id) is None:
            raise RecordNotFoundError(f"Category not found: {category.id}")
        self._categories[category.id] = category.model_copy(deep=True)


class InMemoryExpenseStorage(ExpenseStorageInterface):

    def __init__(self):
        self._expenses: dict[UUID, Expense] = {}

    def _owned(self, user_id: UUID, expense_id: UUID) -> Optional[Expense]:
        expense = self._expenses.get(expense_id)
        if expense is None or expense.user_id != user_id:
            return None
        return expense

    async def add_expense(self, expense: Expense) -> None:
        if expense.id in self._expenses:
            raise DuplicateError(f"Expense already exists: {expense.id}")
        self._expenses[expense.id] = expense.model_copy(deep=True)

    async def get_expense(
        self,
        user_id: UUID,
        expense_id: UUID,
    ) -> Optional[Expense]:
        expense = self._owned(user_id, expense_id)
        if expense is None or expense.is_deleted:
            return None
        return expense.model_copy(deep=True)

    async def list_expenses(
        self,
        user_id: UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        category_id: Optional[UUID] = None,
    ) -> list[Expense]:
        expenses = []
        for expense in self._expenses.values():
            if expense.user_id != user_id or expense.is_deleted:
                continue
            if date_from and expense.expense_date < date_from:
                continue
            if date_to and expense.expense_date > date_to:
                continue
            if category_id and expense.category_id != category_id:
                continue
            expenses.append(expense.model_copy(deep=True))

        expenses.sort(key=expense_sort_key, reverse=True)
        return expenses

    async def update_expense(self, expense: Expense) -> None:
        if self._owned(expense.user_id, expense.id) is None:
            raise RecordNotFoundError(f"Expense not found: {expense.id}")
        self._expenses[expense.id] = expense.model_copy(deep=True)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event.model_copy(deep=True))
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_user(
        self,
        user_id: UUID,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.user_id == user_id]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
