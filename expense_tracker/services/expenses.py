"""
Expense Store

Owner-scoped CRUD and queries over a user's expenses.

CRITICAL: An expense can only be filed under an ACTIVE category owned
by the same user. That is checked on create and whenever an update
moves the expense to another category. Deleting a category later does
not touch its expenses; they keep reporting the deleted category.

Validation always runs before anything is written, so a rejected
update leaves the stored expense exactly as it was.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from expense_tracker.audit import AuditLogger, create_correlation_id, get_logger
from expense_tracker.errors import NotFoundError, ValidationError
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.common import EntityState, to_money
from expense_tracker.models.ledger import Category, Expense, ExpenseDetail
from expense_tracker.models.requests import (
    CreateExpenseRequest,
    UpdateExpenseRequest,
)
from expense_tracker.services.storage import (
    CategoryStorageInterface,
    ExpenseStorageInterface,
    StorageError,
)


AMOUNT_NOT_POSITIVE = "Amount must be greater than zero."
INVALID_CATEGORY = "Category does not exist or does not belong to the user."
NOT_FOUND = "Expense not found or does not belong to the user."

logger = get_logger("expense_tracker.expenses")


class ExpenseStore:
    """
    Records, changes and queries expenses.

    Reads return ExpenseDetail: the expense together with its category,
    looked up under the same owner.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        category_storage: CategoryStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._expenses = expense_storage
        self._categories = category_storage
        self._audit_logger = audit_logger

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_all(
        self,
        user_id: UUID,
        category_id: Optional[UUID] = None,
    ) -> list[ExpenseDetail]:
        """All active expenses, newest first."""
        expenses = await self._expenses.list_expenses(
            user_id,
            category_id=category_id,
        )
        return await self._with_categories(user_id, expenses)

    async def list_by_date_range(
        self,
        user_id: UUID,
        start: date,
        end: date,
        category_id: Optional[UUID] = None,
    ) -> list[ExpenseDetail]:
        """
        Active expenses dated within [start, end], newest first.

        An inverted range simply matches nothing.
        """
        expenses = await self._expenses.list_expenses(
            user_id,
            date_from=start,
            date_to=end,
            category_id=category_id,
        )
        return await self._with_categories(user_id, expenses)

    async def get(
        self,
        user_id: UUID,
        expense_id: UUID,
    ) -> Optional[ExpenseDetail]:
        expense = await self._expenses.get_expense(user_id, expense_id)
        if expense is None:
            return None
        details = await self._with_categories(user_id, [expense])
        return details[0]

    async def total_spending(
        self,
        user_id: UUID,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Decimal:
        """Sum of active expense amounts, optionally within a date range."""
        expenses = await self._expenses.list_expenses(
            user_id,
            date_from=start,
            date_to=end,
        )
        return to_money(sum((e.amount for e in expenses), Decimal("0")))

    # =========================================================================
    # Commands
    # =========================================================================

    async def create(
        self,
        user_id: UUID,
        request: CreateExpenseRequest,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseDetail:
        """
        Record a new expense.

        Raises:
            ValidationError: Amount <= 0, or the category is missing,
                deleted or owned by someone else
        """
        correlation_id = correlation_id or create_correlation_id()

        self._check_amount(request.amount)
        category = await self._require_active_category(user_id, request.category_id)

        expense = Expense(
            user_id=user_id,
            category_id=category.id,
            amount=request.amount,
            description=request.description,
            expense_date=request.expense_date,
        )
        await self._expenses.add_expense(expense)

        if self._audit_logger:
            await self._audit_logger.log_expense_event(
                event_type=AuditEventType.EXPENSE_CREATED,
                user_id=user_id,
                expense_id=expense.id,
                amount=str(expense.amount),
                correlation_id=correlation_id,
            )

        return ExpenseDetail(expense=expense, category=category)

    async def update(
        self,
        user_id: UUID,
        expense_id: UUID,
        request: UpdateExpenseRequest,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseDetail:
        """
        Apply the supplied fields to an active expense.

        Fields left as None are not changed.

        Raises:
            NotFoundError: No active expense with this ID for this user
            ValidationError: Amount <= 0 or invalid target category
        """
        correlation_id = correlation_id or create_correlation_id()

        expense = await self._expenses.get_expense(user_id, expense_id)
        if expense is None:
            raise NotFoundError(NOT_FOUND)

        # Validate everything first
        if request.supplied("amount"):
            self._check_amount(request.amount)

        category = None
        if request.supplied("category_id"):
            category = await self._require_active_category(
                user_id, request.category_id
            )

        changes = {
            name: getattr(request, name)
            for name in ("category_id", "amount", "description", "expense_date")
            if request.supplied(name)
            and getattr(request, name) != getattr(expense, name)
        }

        if changes:
            expense = Expense.model_validate({
                **expense.model_dump(),
                **changes,
            })
            await self._expenses.update_expense(expense)

            if self._audit_logger:
                await self._audit_logger.log_expense_event(
                    event_type=AuditEventType.EXPENSE_UPDATED,
                    user_id=user_id,
                    expense_id=expense.id,
                    amount=str(expense.amount),
                    correlation_id=correlation_id,
                    changes=sorted(changes),
                )

        if category is None:
            category = await self._category_for(user_id, expense)

        return ExpenseDetail(expense=expense, category=category)

    async def delete(
        self,
        user_id: UUID,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Soft-delete an expense.

        Raises:
            NotFoundError: Absent, not owned, or already deleted
        """
        correlation_id = correlation_id or create_correlation_id()

        expense = await self._expenses.get_expense(user_id, expense_id)
        if expense is None:
            raise NotFoundError(NOT_FOUND)

        expense.state = EntityState.DELETED
        await self._expenses.update_expense(expense)

        if self._audit_logger:
            await self._audit_logger.log_expense_event(
                event_type=AuditEventType.EXPENSE_DELETED,
                user_id=user_id,
                expense_id=expense.id,
                amount=str(expense.amount),
                correlation_id=correlation_id,
            )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _check_amount(amount: Optional[Decimal]) -> None:
        if amount is None or amount <= 0:
            raise ValidationError(AMOUNT_NOT_POSITIVE)

    async def _require_active_category(
        self,
        user_id: UUID,
        category_id: UUID,
    ) -> Category:
        category = await self._categories.get_category(user_id, category_id)
        if category is None:
            raise ValidationError(INVALID_CATEGORY)
        return category

    async def _category_for(self, user_id: UUID, expense: Expense) -> Category:
        """The expense's category, deleted or not."""
        category = await self._categories.get_category(
            user_id,
            expense.category_id,
            include_deleted=True,
        )
        if category is None:
            logger.error(
                "dangling_category_reference",
                expense_id=str(expense.id),
                category_id=str(expense.category_id),
            )
            raise StorageError(
                f"Expense {expense.id} references missing category "
                f"{expense.category_id}"
            )
        return category

    async def _with_categories(
        self,
        user_id: UUID,
        expenses: list[Expense],
    ) -> list[ExpenseDetail]:
        """Join each expense with its category (one lookup per category)."""
        seen: dict[UUID, Category] = {}
        details = []
        for expense in expenses:
            category = seen.get(expense.category_id)
            if category is None:
                category = await self._category_for(user_id, expense)
                seen[expense.category_id] = category
            details.append(ExpenseDetail(expense=expense, category=category))
        return details
