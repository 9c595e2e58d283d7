"""
Access Control Filter

Sits between the boundary and every store. A caller presents a session
token once; what comes back is a UserSession whose operations are all
scoped to the identity inside that token.

CRITICAL: The user ID is ALWAYS taken from the verified token. No
operation accepts a user ID from the caller, so one user can never
name another user's data into scope.

Failure handling at this layer:
- Domain errors (validation, not found, ...) pass through unchanged
- Anything else escaping a store is logged with its stack trace and
  replaced by an opaque InternalError
"""

from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable, Optional, TypeVar
from uuid import UUID

import pydantic

from expense_tracker.audit import AuditLogger, create_correlation_id, get_logger
from expense_tracker.errors import AuthError, ExpenseTrackerError, InternalError
from expense_tracker.models.ledger import Category, ExpenseDetail
from expense_tracker.models.requests import (
    CreateCategoryRequest,
    CreateExpenseRequest,
    LoginRequest,
    RegisterRequest,
    UpdateCategoryRequest,
    UpdateExpenseRequest,
)
from expense_tracker.models.summary import SummarySnapshot
from expense_tracker.models.user import AccessToken, TokenClaims
from expense_tracker.services.auth import AuthService
from expense_tracker.services.categories import CategoryStore
from expense_tracker.services.expenses import ExpenseStore
from expense_tracker.services.summary import SummaryCache


T = TypeVar("T")

NOT_AUTHENTICATED = "User not authenticated."

logger = get_logger("expense_tracker.access")


class AccessControlFilter:
    """Turns session tokens into scoped UserSessions."""

    def __init__(
        self,
        auth: AuthService,
        categories: CategoryStore,
        expenses: ExpenseStore,
        summaries: SummaryCache,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.auth = auth
        self.categories = categories
        self.expenses = expenses
        self.summaries = summaries
        self.audit_logger = audit_logger

    async def open_session(
        self,
        token: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> "UserSession":
        """
        Verify a token and return a session for its holder.

        Never raises for a bad token: the session is simply
        unauthenticated, and every operation on it fails with AuthError.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            claims = self.auth.verify(token)
        except AuthError as e:
            if self.audit_logger:
                await self.audit_logger.log_token_rejected(
                    reason=e.message,
                    correlation_id=correlation_id,
                )
            claims = None

        return UserSession(self, claims, correlation_id)

    async def register(
        self,
        request: RegisterRequest,
        correlation_id: Optional[UUID] = None,
    ) -> UUID:
        """Create an account from a shape-checked registration request."""
        return await self.auth.register(
            request.email,
            request.password,
            request.confirm_password,
            correlation_id=correlation_id,
        )

    async def login(
        self,
        request: LoginRequest,
        correlation_id: Optional[UUID] = None,
    ) -> AccessToken:
        return await self.auth.authenticate(
            request.email,
            request.password,
            correlation_id=correlation_id,
        )


class UserSession:
    """
    One caller's view of the stores.

    Every operation first requires an identity, then delegates to the
    underlying store with the token's user ID.
    """

    def __init__(
        self,
        access: AccessControlFilter,
        claims: Optional[TokenClaims],
        correlation_id: UUID,
    ):
        self._access = access
        self._claims = claims
        self.correlation_id = correlation_id

    @property
    def is_authenticated(self) -> bool:
        return self._claims is not None

    @property
    def user_id(self) -> Optional[UUID]:
        return self._claims.user_id if self._claims else None

    @property
    def email(self) -> Optional[str]:
        return self._claims.email if self._claims else None

    async def _run(
        self,
        operation: str,
        call: Callable[[UUID], Awaitable[T]],
    ) -> T:
        """Require an identity, run the call, and mask unexpected failures."""
        audit_logger = self._access.audit_logger

        if self._claims is None:
            if audit_logger:
                await audit_logger.log_access_denied(
                    operation=operation,
                    correlation_id=self.correlation_id,
                )
            raise AuthError(NOT_AUTHENTICATED)

        try:
            return await call(self._claims.user_id)
        except (ExpenseTrackerError, pydantic.ValidationError):
            raise
        except Exception as e:
            logger.exception(
                "operation_failed",
                operation=operation,
                user_id=str(self._claims.user_id),
                correlation_id=str(self.correlation_id),
            )
            if audit_logger:
                await audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"operation": operation},
                    correlation_id=self.correlation_id,
                )
            raise InternalError() from e

    # =========================================================================
    # Categories
    # =========================================================================

    async def list_categories(self) -> list[Category]:
        categories = self._access.categories
        return await self._run(
            "list_categories",
            lambda uid: categories.list(uid),
        )

    async def get_category(self, category_id: UUID) -> Optional[Category]:
        categories = self._access.categories
        return await self._run(
            "get_category",
            lambda uid: categories.get(uid, category_id),
        )

    async def create_category(self, request: CreateCategoryRequest) -> Category:
        categories = self._access.categories
        return await self._run(
            "create_category",
            lambda uid: categories.create(uid, request, self.correlation_id),
        )

    async def update_category(
        self,
        category_id: UUID,
        request: UpdateCategoryRequest,
    ) -> Category:
        categories = self._access.categories
        return await self._run(
            "update_category",
            lambda uid: categories.update(
                uid, category_id, request, self.correlation_id
            ),
        )

    async def delete_category(self, category_id: UUID) -> None:
        categories = self._access.categories
        await self._run(
            "delete_category",
            lambda uid: categories.delete(uid, category_id, self.correlation_id),
        )

    # =========================================================================
    # Expenses
    # =========================================================================

    async def list_expenses(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        category_id: Optional[UUID] = None,
    ) -> list[ExpenseDetail]:
        """
        List expenses, newest first.

        Either bound limits the list to an inclusive range; a missing
        bound is open.
        """
        expenses = self._access.expenses

        async def call(uid: UUID) -> list[ExpenseDetail]:
            if start is not None or end is not None:
                return await expenses.list_by_date_range(
                    uid,
                    start or date.min,
                    end or date.max,
                    category_id=category_id,
                )
            return await expenses.list_all(uid, category_id=category_id)

        return await self._run("list_expenses", call)

    async def get_expense(self, expense_id: UUID) -> Optional[ExpenseDetail]:
        expenses = self._access.expenses
        return await self._run(
            "get_expense",
            lambda uid: expenses.get(uid, expense_id),
        )

    async def create_expense(self, request: CreateExpenseRequest) -> ExpenseDetail:
        expenses = self._access.expenses
        return await self._run(
            "create_expense",
            lambda uid: expenses.create(uid, request, self.correlation_id),
        )

    async def update_expense(
        self,
        expense_id: UUID,
        request: UpdateExpenseRequest,
    ) -> ExpenseDetail:
        expenses = self._access.expenses
        return await self._run(
            "update_expense",
            lambda uid: expenses.update(
                uid, expense_id, request, self.correlation_id
            ),
        )

    async def delete_expense(self, expense_id: UUID) -> None:
        expenses = self._access.expenses
        await self._run(
            "delete_expense",
            lambda uid: expenses.delete(uid, expense_id, self.correlation_id),
        )

    async def total_spending(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Decimal:
        expenses = self._access.expenses
        return await self._run(
            "total_spending",
            lambda uid: expenses.total_spending(uid, start, end),
        )

    # =========================================================================
    # Summaries
    # =========================================================================

    async def get_summary(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> SummarySnapshot:
        summaries = self._access.summaries
        return await self._run(
            "get_summary",
            lambda uid: summaries.get_summary(
                uid, start, end, correlation_id=self.correlation_id
            ),
        )
