"""Services package.

Only the backend layers are re-exported here. Import the domain
services from their own modules (expense_tracker.services.auth, ...).
"""

from expense_tracker.services.cache import (
    CacheError,
    CacheInterface,
    InMemoryCache,
    RedisCache,
)
from expense_tracker.services.storage import (
    AuditStorageInterface,
    CategoryStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsUserStorage,
    RecordNotFoundError,
    StorageError,
    UserStorageInterface,
)

__all__ = [
    # Cache backends
    "CacheError",
    "CacheInterface",
    "InMemoryCache",
    "RedisCache",
    # Storage services
    "AuditStorageInterface",
    "CategoryStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "ExpenseStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsCategoryStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "GoogleSheetsUserStorage",
    "RecordNotFoundError",
    "StorageError",
    "UserStorageInterface",
]
