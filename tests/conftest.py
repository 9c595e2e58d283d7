"""
Shared fixtures.

Everything runs against the in-memory backends. bcrypt uses its minimum
cost factor so the suite stays fast, and the cache takes a fake clock
so expiry can be tested without sleeping.
"""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from expense_tracker.access import AccessControlFilter
from expense_tracker.audit import AuditLogger
from expense_tracker.config import AuthSettings, CacheSettings
from expense_tracker.models import CreateCategoryRequest, CreateExpenseRequest
from expense_tracker.services.auth import AuthService
from expense_tracker.services.cache import InMemoryCache
from expense_tracker.services.categories import CategoryStore
from expense_tracker.services.expenses import ExpenseStore
from expense_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryExpenseStorage,
    InMemoryUserStorage,
)
from expense_tracker.services.summary import SummaryCache


PASSWORD = "Passw0rdOK"


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def auth_settings():
    return AuthSettings(
        jwt_secret="unit-test-signing-secret-0123456789abcdef",
        bcrypt_rounds=4,
    )


@pytest.fixture
def cache_settings():
    return CacheSettings(backend="memory", summary_ttl_seconds=600)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def user_storage():
    return InMemoryUserStorage()


@pytest.fixture
def category_storage():
    return InMemoryCategoryStorage()


@pytest.fixture
def expense_storage():
    return InMemoryExpenseStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def cache(clock):
    return InMemoryCache(clock=clock)


@pytest.fixture
def auth_service(user_storage, auth_settings, audit_logger):
    return AuthService(user_storage, settings=auth_settings, audit_logger=audit_logger)


@pytest.fixture
def category_store(category_storage, audit_logger):
    return CategoryStore(category_storage, audit_logger=audit_logger)


@pytest.fixture
def expense_store(expense_storage, category_storage, audit_logger):
    return ExpenseStore(expense_storage, category_storage, audit_logger=audit_logger)


@pytest.fixture
def summary_cache(expense_store, cache, cache_settings, audit_logger):
    return SummaryCache(
        expense_store,
        cache,
        settings=cache_settings,
        audit_logger=audit_logger,
    )


@pytest.fixture
def access(auth_service, category_store, expense_store, summary_cache, audit_logger):
    return AccessControlFilter(
        auth_service,
        category_store,
        expense_store,
        summary_cache,
        audit_logger=audit_logger,
    )


@pytest_asyncio.fixture
async def alice(auth_service):
    """Registered user; returns (user_id, token)."""
    user_id = await auth_service.register("alice@example.com", PASSWORD, PASSWORD)
    token = await auth_service.authenticate("alice@example.com", PASSWORD)
    return user_id, token.token


@pytest_asyncio.fixture
async def bob(auth_service):
    """Second registered user; returns (user_id, token)."""
    user_id = await auth_service.register("bob@example.com", PASSWORD, PASSWORD)
    token = await auth_service.authenticate("bob@example.com", PASSWORD)
    return user_id, token.token


def category_request(name: str = "Food", color: str = "#FF5733") -> CreateCategoryRequest:
    return CreateCategoryRequest(name=name, color=color)


def expense_request(
    category_id,
    amount: str = "10.00",
    expense_date: date = date(2024, 3, 1),
    description: str = None,
) -> CreateExpenseRequest:
    return CreateExpenseRequest(
        category_id=category_id,
        amount=Decimal(amount),
        expense_date=expense_date,
        description=description,
    )
