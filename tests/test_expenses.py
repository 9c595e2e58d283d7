"""
Tests for the expense store.

Test strategy:
1. Ownership: every read and write is scoped to one user
2. Validation: rejected writes leave storage untouched
3. Ordering and date filtering of listings
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import category_request, expense_request
from expense_tracker.errors import NotFoundError, ValidationError
from expense_tracker.models import (
    CreateExpenseRequest,
    Expense,
    UpdateExpenseRequest,
)


@pytest.fixture
def owner():
    return uuid4()


async def _category(category_store, owner, name="Food"):
    return await category_store.create(owner, category_request(name))


class TestCreateExpense:
    """Tests for ExpenseStore.create."""

    @pytest.mark.asyncio
    async def test_create_returns_detail_with_category(
        self, category_store, expense_store, owner
    ):
        category = await _category(category_store, owner)

        detail = await expense_store.create(
            owner, expense_request(category.id, "12.5", description="Lunch")
        )

        assert detail.expense.amount == Decimal("12.50")
        assert detail.expense.description == "Lunch"
        assert detail.category.id == category.id

    @pytest.mark.parametrize("amount", ["0", "-5.00"])
    @pytest.mark.asyncio
    async def test_non_positive_amount_rejected(
        self, category_store, expense_store, owner, amount
    ):
        category = await _category(category_store, owner)

        with pytest.raises(ValidationError) as exc_info:
            await expense_store.create(owner, expense_request(category.id, amount))

        assert exc_info.value.message == "Amount must be greater than zero."
        assert await expense_store.list_all(owner) == []

    @pytest.mark.asyncio
    async def test_unknown_category_rejected(self, expense_store, owner):
        with pytest.raises(ValidationError) as exc_info:
            await expense_store.create(owner, expense_request(uuid4()))

        assert exc_info.value.message == (
            "Category does not exist or does not belong to the user."
        )

    @pytest.mark.asyncio
    async def test_other_users_category_rejected(
        self, category_store, expense_store, owner
    ):
        """Filing under someone else's category is refused."""
        foreign = await _category(category_store, uuid4())

        with pytest.raises(ValidationError):
            await expense_store.create(owner, expense_request(foreign.id))

    @pytest.mark.asyncio
    async def test_deleted_category_rejected(
        self, category_store, expense_store, owner
    ):
        category = await _category(category_store, owner)
        await category_store.delete(owner, category.id)

        with pytest.raises(ValidationError):
            await expense_store.create(owner, expense_request(category.id))

    def test_future_date_rejected_by_request_model(self):
        """Shape validation refuses dates after today."""
        with pytest.raises(ValueError):
            CreateExpenseRequest(
                category_id=uuid4(),
                amount=Decimal("1.00"),
                expense_date=date.today() + timedelta(days=1),
            )


class TestListExpenses:
    """Tests for list_all and list_by_date_range."""

    @pytest.mark.asyncio
    async def test_newest_first(self, category_store, expense_store, owner):
        category = await _category(category_store, owner)
        for day in (1, 15, 7):
            await expense_store.create(
                owner, expense_request(category.id, expense_date=date(2024, 3, day))
            )

        dates = [d.expense.expense_date.day for d in await expense_store.list_all(owner)]

        assert dates == [15, 7, 1]

    @pytest.mark.asyncio
    async def test_same_day_ordered_by_creation(
        self, category_store, expense_store, expense_storage, owner
    ):
        """Within one day, the most recently recorded expense comes first."""
        category = await _category(category_store, owner)
        recorded = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        first = Expense(
            user_id=owner,
            category_id=category.id,
            amount=Decimal("1.00"),
            expense_date=date(2024, 3, 1),
            created_at=recorded,
        )
        second = first.model_copy(update={
            "id": uuid4(),
            "created_at": recorded + timedelta(minutes=5),
        })
        await expense_storage.add_expense(first)
        await expense_storage.add_expense(second)

        listed = await expense_store.list_all(owner)

        assert [d.expense.id for d in listed] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_date_range_is_inclusive(self, category_store, expense_store, owner):
        category = await _category(category_store, owner)
        for day in (1, 10, 20, 31):
            await expense_store.create(
                owner, expense_request(category.id, expense_date=date(2024, 3, day))
            )

        listed = await expense_store.list_by_date_range(
            owner, date(2024, 3, 10), date(2024, 3, 20)
        )

        assert [d.expense.expense_date.day for d in listed] == [20, 10]

    @pytest.mark.asyncio
    async def test_inverted_range_is_empty(self, category_store, expense_store, owner):
        category = await _category(category_store, owner)
        await expense_store.create(owner, expense_request(category.id))

        listed = await expense_store.list_by_date_range(
            owner, date(2024, 12, 31), date(2024, 1, 1)
        )

        assert listed == []

    @pytest.mark.asyncio
    async def test_category_filter(self, category_store, expense_store, owner):
        food = await _category(category_store, owner, "Food")
        travel = await _category(category_store, owner, "Travel")
        await expense_store.create(owner, expense_request(food.id))
        await expense_store.create(owner, expense_request(travel.id))

        listed = await expense_store.list_all(owner, category_id=travel.id)

        assert [d.category.name for d in listed] == ["Travel"]

    @pytest.mark.asyncio
    async def test_other_users_expenses_invisible(
        self, category_store, expense_store, owner
    ):
        other = uuid4()
        category = await _category(category_store, other)
        await expense_store.create(other, expense_request(category.id))

        assert await expense_store.list_all(owner) == []

    @pytest.mark.asyncio
    async def test_expense_keeps_deleted_category(
        self, category_store, expense_store, owner
    ):
        """Deleting a category leaves its expenses pointing at it."""
        category = await _category(category_store, owner)
        created = await expense_store.create(owner, expense_request(category.id))
        await category_store.delete(owner, category.id)

        detail = await expense_store.get(owner, created.expense.id)

        assert detail.category.name == "Food"
        assert detail.category_deleted


class TestUpdateExpense:
    """Tests for ExpenseStore.update."""

    @pytest.mark.asyncio
    async def test_partial_update(self, category_store, expense_store, owner):
        category = await _category(category_store, owner)
        created = await expense_store.create(
            owner, expense_request(category.id, "10.00", description="Lunch")
        )

        updated = await expense_store.update(
            owner, created.expense.id, UpdateExpenseRequest(amount=Decimal("25.99"))
        )

        assert updated.expense.amount == Decimal("25.99")
        assert updated.expense.description == "Lunch"
        assert updated.expense.expense_date == created.expense.expense_date

    @pytest.mark.asyncio
    async def test_move_to_another_category(
        self, category_store, expense_store, owner
    ):
        food = await _category(category_store, owner, "Food")
        travel = await _category(category_store, owner, "Travel")
        created = await expense_store.create(owner, expense_request(food.id))

        updated = await expense_store.update(
            owner, created.expense.id, UpdateExpenseRequest(category_id=travel.id)
        )

        assert updated.category.id == travel.id
        assert updated.expense.category_id == travel.id

    @pytest.mark.asyncio
    async def test_failed_update_leaves_row_unchanged(
        self, category_store, expense_store, owner
    ):
        """A valid field next to an invalid one is not applied either."""
        category = await _category(category_store, owner)
        created = await expense_store.create(owner, expense_request(category.id, "10.00"))

        with pytest.raises(ValidationError):
            await expense_store.update(
                owner,
                created.expense.id,
                UpdateExpenseRequest(description="Changed", category_id=uuid4()),
            )

        stored = await expense_store.get(owner, created.expense.id)
        assert stored.expense == created.expense

    @pytest.mark.asyncio
    async def test_zero_amount_rejected(self, category_store, expense_store, owner):
        category = await _category(category_store, owner)
        created = await expense_store.create(owner, expense_request(category.id))

        with pytest.raises(ValidationError):
            await expense_store.update(
                owner, created.expense.id, UpdateExpenseRequest(amount=Decimal("0"))
            )

    @pytest.mark.asyncio
    async def test_update_other_users_expense_not_found(
        self, category_store, expense_store, owner
    ):
        category = await _category(category_store, owner)
        created = await expense_store.create(owner, expense_request(category.id))

        with pytest.raises(NotFoundError) as exc_info:
            await expense_store.update(
                uuid4(), created.expense.id, UpdateExpenseRequest(description="x")
            )

        assert exc_info.value.message == (
            "Expense not found or does not belong to the user."
        )


class TestDeleteAndTotals:

    @pytest.mark.asyncio
    async def test_delete_hides_expense(self, category_store, expense_store, owner):
        category = await _category(category_store, owner)
        created = await expense_store.create(owner, expense_request(category.id))

        await expense_store.delete(owner, created.expense.id)

        assert await expense_store.get(owner, created.expense.id) is None
        with pytest.raises(NotFoundError):
            await expense_store.delete(owner, created.expense.id)

    @pytest.mark.asyncio
    async def test_total_spending(self, category_store, expense_store, owner):
        category = await _category(category_store, owner)
        for amount, day in (("10.10", 1), ("20.20", 5), ("5.00", 9)):
            await expense_store.create(
                owner, expense_request(category.id, amount, date(2024, 3, day))
            )

        assert await expense_store.total_spending(owner) == Decimal("35.30")
        assert await expense_store.total_spending(
            owner, date(2024, 3, 2), date(2024, 3, 9)
        ) == Decimal("25.20")

    @pytest.mark.asyncio
    async def test_total_spending_empty(self, expense_store, owner):
        assert await expense_store.total_spending(owner) == Decimal("0.00")
