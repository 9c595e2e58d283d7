"""
Application Wiring for Expense Tracker

This module builds the object graph the boundary layer talks to:

    AuthService ─┐
    CategoryStore ├─> AccessControlFilter
    ExpenseStore ─┤
    SummaryCache ─┘ (reads through the cache, falls back to ExpenseStore)

DESIGN DECISION: Backends are picked from configuration in ONE place.
Everything above the storage and cache interfaces is identical whether
it runs on in-memory dicts, Google Sheets or Redis.
"""

from dataclasses import dataclass
from typing import Optional

from expense_tracker.access import AccessControlFilter
from expense_tracker.audit import AuditLogger, configure_logging, get_logger
from expense_tracker.config import Settings, get_settings
from expense_tracker.services.auth import AuthService
from expense_tracker.services.cache import (
    CacheError,
    CacheInterface,
    InMemoryCache,
    RedisCache,
)
from expense_tracker.services.categories import CategoryStore
from expense_tracker.services.expenses import ExpenseStore
from expense_tracker.services.storage import (
    AuditStorageInterface,
    CategoryStorageInterface,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsUserStorage,
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryExpenseStorage,
    InMemoryUserStorage,
    UserStorageInterface,
)
from expense_tracker.services.summary import SummaryCache


logger = get_logger("expense_tracker.orchestrator")


@dataclass
class AppComponents:
    """Everything a boundary layer needs, already wired together."""

    auth: AuthService
    categories: CategoryStore
    expenses: ExpenseStore
    summaries: SummaryCache
    access: AccessControlFilter
    audit_logger: AuditLogger
    cache: CacheInterface
    sheets_client: Optional[GoogleSheetsClient] = None

    async def start(self) -> None:
        """
        Open the cache connection before serving requests.

        The Redis connect is retried here with backoff. If it still
        fails, summaries are computed from the store until Redis returns.
        """
        if isinstance(self.cache, RedisCache):
            try:
                await self.cache.connect()
            except CacheError as e:
                logger.warning("cache_unavailable_at_startup", error=str(e))

    async def close(self) -> None:
        """Release connections held by the cache backend."""
        if isinstance(self.cache, RedisCache):
            await self.cache.close()


def _build_storage(
    settings: Settings,
    backend: str,
) -> tuple[
    UserStorageInterface,
    CategoryStorageInterface,
    ExpenseStorageInterface,
    AuditStorageInterface,
    Optional[GoogleSheetsClient],
]:
    if backend == "google_sheets":
        client = GoogleSheetsClient(settings.google_sheets)
        return (
            GoogleSheetsUserStorage(client),
            GoogleSheetsCategoryStorage(client),
            GoogleSheetsExpenseStorage(client),
            GoogleSheetsAuditStorage(client),
            client,
        )

    return (
        InMemoryUserStorage(),
        InMemoryCategoryStorage(),
        InMemoryExpenseStorage(),
        InMemoryAuditStorage(),
        None,
    )


def _build_cache(settings: Settings, backend: str) -> CacheInterface:
    if backend == "redis":
        return RedisCache(settings.cache)
    return InMemoryCache()


def create_app_components(
    settings: Optional[Settings] = None,
    storage_backend: Optional[str] = None,
    cache_backend: Optional[str] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use (defaults to the process-wide settings)
        storage_backend: "memory" or "google_sheets"; overrides STORAGE_BACKEND
        cache_backend: "memory" or "redis"; overrides CACHE_BACKEND

    Returns:
        The wired components
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)

    storage_backend = storage_backend or settings.app.storage_backend
    cache_backend = cache_backend or settings.cache.backend

    users, categories, expenses, audit_storage, sheets_client = _build_storage(
        settings, storage_backend
    )
    audit_logger = AuditLogger(audit_storage)
    cache = _build_cache(settings, cache_backend)

    auth = AuthService(users, settings=settings.auth, audit_logger=audit_logger)
    category_store = CategoryStore(categories, audit_logger=audit_logger)
    expense_store = ExpenseStore(expenses, categories, audit_logger=audit_logger)
    summaries = SummaryCache(
        expense_store,
        cache,
        settings=settings.cache,
        audit_logger=audit_logger,
    )
    access = AccessControlFilter(
        auth,
        category_store,
        expense_store,
        summaries,
        audit_logger=audit_logger,
    )

    logger.info(
        "app_components_created",
        storage_backend=storage_backend,
        cache_backend=cache_backend,
        environment=settings.app.app_environment,
    )

    return AppComponents(
        auth=auth,
        categories=category_store,
        expenses=expense_store,
        summaries=summaries,
        access=access,
        audit_logger=audit_logger,
        cache=cache,
        sheets_client=sheets_client,
    )
