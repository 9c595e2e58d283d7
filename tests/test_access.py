"""
Tests for the access control filter.

These are end-to-end over the in-memory backends: register, log in,
then act through a UserSession.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import PASSWORD, category_request, expense_request
from expense_tracker.access import AccessControlFilter
from expense_tracker.errors import AuthError, InternalError, NotFoundError
from expense_tracker.models import (
    AuditEventType,
    LoginRequest,
    RegisterRequest,
    UpdateCategoryRequest,
    UpdateExpenseRequest,
)
from expense_tracker.services.categories import CategoryStore
from expense_tracker.services.storage import InMemoryCategoryStorage, StorageError


class FailingCategoryStorage(InMemoryCategoryStorage):
    """Backend whose reads blow up."""

    async def list_categories(self, user_id):
        raise StorageError("sheet quota exceeded for spreadsheet 1AbC")


class TestAccountEntryPoints:
    """Registration and login through request models."""

    @pytest.mark.asyncio
    async def test_register_then_login_opens_session(self, access):
        user_id = await access.register(RegisterRequest(
            email="  dana@example.com ",
            password=PASSWORD,
            confirm_password=PASSWORD,
        ))

        token = await access.login(
            LoginRequest(email="dana@example.com", password=PASSWORD)
        )
        session = await access.open_session(token.token)

        assert token.user_id == user_id
        assert session.user_id == user_id

    @pytest.mark.asyncio
    async def test_login_failure_is_auth_error(self, access):
        with pytest.raises(AuthError):
            await access.login(
                LoginRequest(email="nobody@example.com", password=PASSWORD)
            )


class TestOpenSession:

    @pytest.mark.asyncio
    async def test_valid_token_gives_identity(self, access, alice):
        user_id, token = alice

        session = await access.open_session(token)

        assert session.is_authenticated
        assert session.user_id == user_id
        assert session.email == "alice@example.com"

    @pytest.mark.parametrize("token", [None, "", "garbage"])
    @pytest.mark.asyncio
    async def test_bad_token_gives_anonymous_session(self, access, token):
        session = await access.open_session(token)

        assert not session.is_authenticated
        assert session.user_id is None

    @pytest.mark.asyncio
    async def test_rejected_token_is_audited(self, access, audit_storage):
        correlation_id = uuid4()

        await access.open_session("garbage", correlation_id=correlation_id)

        events = await audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [AuditEventType.TOKEN_REJECTED]


class TestUnauthenticated:

    @pytest.mark.parametrize("operation,args", [
        ("list_categories", ()),
        ("get_category", (uuid4(),)),
        ("create_category", (category_request(),)),
        ("update_category", (uuid4(), UpdateCategoryRequest(name="x"))),
        ("delete_category", (uuid4(),)),
        ("list_expenses", ()),
        ("get_expense", (uuid4(),)),
        ("create_expense", (expense_request(uuid4()),)),
        ("update_expense", (uuid4(), UpdateExpenseRequest(description="x"))),
        ("delete_expense", (uuid4(),)),
        ("total_spending", ()),
        ("get_summary", ()),
    ])
    @pytest.mark.asyncio
    async def test_every_operation_requires_identity(self, access, operation, args):
        session = await access.open_session(None)

        with pytest.raises(AuthError) as exc_info:
            await getattr(session, operation)(*args)

        assert exc_info.value.message == "User not authenticated."


class TestScoping:
    """One user can never see or change another user's data."""

    @pytest.mark.asyncio
    async def test_lists_are_per_user(self, access, alice, bob):
        alice_session = await access.open_session(alice[1])
        bob_session = await access.open_session(bob[1])
        await alice_session.create_category(category_request("Food"))

        assert len(await alice_session.list_categories()) == 1
        assert await bob_session.list_categories() == []

    @pytest.mark.asyncio
    async def test_foreign_ids_are_not_found(self, access, alice, bob):
        alice_session = await access.open_session(alice[1])
        bob_session = await access.open_session(bob[1])
        category = await alice_session.create_category(category_request("Food"))
        detail = await alice_session.create_expense(
            expense_request(category.id, "42.00")
        )

        assert await bob_session.get_category(category.id) is None
        assert await bob_session.get_expense(detail.expense.id) is None
        with pytest.raises(NotFoundError):
            await bob_session.update_expense(
                detail.expense.id, UpdateExpenseRequest(amount=Decimal("1.00"))
            )
        with pytest.raises(NotFoundError):
            await bob_session.delete_category(category.id)

        # Alice's data is untouched
        unchanged = await alice_session.get_expense(detail.expense.id)
        assert unchanged.expense.amount == Decimal("42.00")
        assert await alice_session.get_category(category.id) is not None

    @pytest.mark.asyncio
    async def test_summary_and_totals_are_per_user(self, access, alice, bob):
        alice_session = await access.open_session(alice[1])
        bob_session = await access.open_session(bob[1])
        category = await alice_session.create_category(category_request())
        await alice_session.create_expense(expense_request(category.id, "30.00"))

        assert await alice_session.total_spending() == Decimal("30.00")
        assert await bob_session.total_spending() == Decimal("0.00")
        assert (await bob_session.get_summary()).transaction_count == 0


class TestListExpenses:

    @pytest.mark.asyncio
    async def test_single_bound_filters(self, access, alice):
        session = await access.open_session(alice[1])
        category = await session.create_category(category_request())
        for day in (1, 10, 20):
            await session.create_expense(
                expense_request(category.id, expense_date=date(2024, 5, day))
            )

        after = await session.list_expenses(start=date(2024, 5, 10))
        before = await session.list_expenses(end=date(2024, 5, 10))

        assert [d.expense.expense_date.day for d in after] == [20, 10]
        assert [d.expense.expense_date.day for d in before] == [10, 1]

    @pytest.mark.asyncio
    async def test_category_filter(self, access, alice):
        session = await access.open_session(alice[1])
        food = await session.create_category(category_request("Food"))
        travel = await session.create_category(category_request("Travel"))
        await session.create_expense(expense_request(food.id))
        await session.create_expense(expense_request(travel.id))

        listed = await session.list_expenses(category_id=food.id)

        assert [d.category.id for d in listed] == [food.id]


class TestFailureMasking:

    @pytest.mark.asyncio
    async def test_storage_failure_becomes_opaque_internal_error(
        self, auth_service, expense_store, summary_cache, audit_logger, alice
    ):
        access = AccessControlFilter(
            auth_service,
            CategoryStore(FailingCategoryStorage()),
            expense_store,
            summary_cache,
            audit_logger=audit_logger,
        )
        session = await access.open_session(alice[1])

        with pytest.raises(InternalError) as exc_info:
            await session.list_categories()

        assert "quota" not in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, StorageError)

    @pytest.mark.asyncio
    async def test_failure_is_audited(
        self, auth_service, expense_store, summary_cache, audit_logger,
        audit_storage, alice,
    ):
        access = AccessControlFilter(
            auth_service,
            CategoryStore(FailingCategoryStorage()),
            expense_store,
            summary_cache,
            audit_logger=audit_logger,
        )
        correlation_id = uuid4()
        session = await access.open_session(alice[1], correlation_id=correlation_id)

        with pytest.raises(InternalError):
            await session.list_categories()

        events = await audit_storage.get_events_by_correlation_id(correlation_id)
        assert events[-1].event_type == AuditEventType.SYSTEM_ERROR
