"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is available as a storage backend because:
1. Users can view their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (the stores check-then-write, see DESIGN.md)
- Limited query capabilities (we filter in Python, always by owner first)

Only establishing the connection is retried. Individual reads and
writes are attempted once and reported upward as StorageError.

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing business logic.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_tracker.config import GoogleSheetsSettings, get_settings
from expense_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from expense_tracker.models.common import EntityState
from expense_tracker.models.ledger import Category, Expense
from expense_tracker.models.user import User
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    CategoryStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    RecordNotFoundError,
    StorageError,
    UserStorageInterface,
    category_sort_key,
    expense_sort_key,
)


# Column mappings for each sheet
USER_COLUMNS = [
    "id",
    "email",
    "password_hash",
    "is_active",
    "created_at",
    "last_login_at",
]

CATEGORY_COLUMNS = [
    "id",
    "user_id",
    "name",
    "color",
    "created_at",
    "state",
]

EXPENSE_COLUMNS = [
    "id",
    "user_id",
    "category_id",
    "amount",
    "description",
    "expense_date",
    "created_at",
    "state",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _safe_getter(row: list) -> Callable[..., str]:
    """Handle missing columns gracefully."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_sheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


class _SheetTable:
    """
    Shared row plumbing for one worksheet keyed by an ID in column A.
    """

    def __init__(
        self,
        client: GoogleSheetsClient,
        title: str,
        columns: list[str],
    ):
        self._client = client
        self._title = title
        self._columns = columns

    def sheet(self) -> gspread.Worksheet:
        return self._client.get_sheet(self._title, self._columns)

    def rows(self) -> list[list]:
        """All data rows (excluding header), skipping empty ones."""
        return [row for row in self.sheet().get_all_values()[1:] if row and row[0]]

    def append(self, row: list) -> None:
        self.sheet().append_row(row, value_input_option="RAW")

    def replace(self, row_id: str, new_row: list, owner_column: Optional[int] = None) -> bool:
        """
        Overwrite the row whose first cell is row_id.

        When owner_column is given, the stored owner must equal the new
        row's owner, otherwise the row is treated as absent.
        """
        sheet = self.sheet()
        all_rows = sheet.get_all_values()

        # Start from 2 (row 1 is header)
        for idx, row in enumerate(all_rows[1:], start=2):
            if not row or row[0] != row_id:
                continue
            if owner_column is not None:
                stored_owner = row[owner_column] if len(row) > owner_column else ""
                if stored_owner != new_row[owner_column]:
                    return False
            sheet.update(
                range_name=f"A{idx}",
                values=[new_row],
                value_input_option="RAW",
            )
            return True

        return False


class GoogleSheetsUserStorage(UserStorageInterface):
    """Google Sheets implementation of the credential store."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        client = client or GoogleSheetsClient()
        self._table = _SheetTable(client, client.settings.users_sheet_name, USER_COLUMNS)

    def _user_to_row(self, user: User) -> list:
        return [
            str(user.id),
            user.email,
            user.password_hash,
            str(user.is_active),
            user.created_at.isoformat(),
            user.last_login_at.isoformat() if user.last_login_at else "",
        ]

    def _row_to_user(self, row: list) -> User:
        safe_get = _safe_getter(row)
        return User(
            id=UUID(safe_get(0)),
            email=safe_get(1),
            password_hash=safe_get(2),
            is_active=safe_get(3).lower() == "true",
            created_at=datetime.fromisoformat(safe_get(4)),
            last_login_at=datetime.fromisoformat(safe_get(5)) if safe_get(5) else None,
        )

    async def add_user(self, user: User) -> None:
        if user.is_active and await self.get_active_user_by_email(user.email):
            raise DuplicateError(f"Active user already exists: {user.email}")
        try:
            self._table.append(self._user_to_row(user))
        except Exception as e:
            raise StorageError(f"Failed to save user: {e}")

    async def get_active_user_by_email(self, email: str) -> Optional[User]:
        try:
            for row in self._table.rows():
                user = self._row_to_user(row)
                if user.is_active and user.email.lower() == email.lower():
                    return user
            return None
        except Exception as e:
            raise StorageError(f"Failed to look up user: {e}")

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        try:
            for row in self._table.rows():
                if row[0] == str(user_id):
                    return self._row_to_user(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get user: {e}")

    async def update_user(self, user: User) -> None:
        try:
            updated = self._table.replace(str(user.id), self._user_to_row(user))
        except Exception as e:
            raise StorageError(f"Failed to update user: {e}")
        if not updated:
            raise RecordNotFoundError(f"User not found: {user.id}")


class GoogleSheetsCategoryStorage(CategoryStorageInterface):
    """Google Sheets implementation of category storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        client = client or GoogleSheetsClient()
        self._table = _SheetTable(
            client, client.settings.categories_sheet_name, CATEGORY_COLUMNS
        )

    def _category_to_row(self, category: Category) -> list:
        return [
            str(category.id),
            str(category.user_id),
            category.name,
            category.color,
            category.created_at.isoformat(),
            category.state.value,
        ]

    def _row_to_category(self, row: list) -> Category:
        safe_get = _safe_getter(row)
        return Category(
            id=UUID(safe_get(0)),
            user_id=UUID(safe_get(1)),
            name=safe_get(2),
            color=safe_get(3),
            created_at=datetime.fromisoformat(safe_get(4)),
            state=EntityState(safe_get(5, EntityState.ACTIVE.value)),
        )

    def _owned_rows(self, user_id: UUID) -> list[Category]:
        owner = str(user_id)
        return [
            self._row_to_category(row)
            for row in self._table.rows()
            if len(row) > 1 and row[1] == owner
        ]

    async def add_category(self, category: Category) -> None:
        try:
            self._table.append(self._category_to_row(category))
        except Exception as e:
            raise StorageError(f"Failed to save category: {e}")

    async def get_category(
        self,
        user_id: UUID,
        category_id: UUID,
        include_deleted: bool = False,
    ) -> Optional[Category]:
        try:
            for category in self._owned_rows(user_id):
                if category.id == category_id:
                    if category.is_deleted and not include_deleted:
                        return None
                    return category
            return None
        except Exception as e:
            raise StorageError(f"Failed to get category: {e}")

    async def list_categories(self, user_id: UUID) -> list[Category]:
        try:
            categories = [c for c in self._owned_rows(user_id) if not c.is_deleted]
        except Exception as e:
            raise StorageError(f"Failed to list categories: {e}")
        categories.sort(key=category_sort_key)
        return categories

    async def find_active_by_name(
        self,
        user_id: UUID,
        name: str,
    ) -> Optional[Category]:
        wanted = name.strip().lower()
        for category in await self.list_categories(user_id):
            if category.name.lower() == wanted:
                return category
        return None

    async def update_category(self, category: Category) -> None:
        try:
            updated = self._table.replace(
                str(category.id),
                self._category_to_row(category),
                owner_column=1,
            )
        except Exception as e:
            raise StorageError(f"Failed to update category: {e}")
        if not updated:
            raise RecordNotFoundError(f"Category not found: {category.id}")


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """Google Sheets implementation of expense storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        client = client or GoogleSheetsClient()
        self._table = _SheetTable(
            client, client.settings.expenses_sheet_name, EXPENSE_COLUMNS
        )

    def _expense_to_row(self, expense: Expense) -> list:
        return [
            str(expense.id),
            str(expense.user_id),
            str(expense.category_id),
            str(expense.amount),
            expense.description or "",
            expense.expense_date.isoformat(),
            expense.created_at.isoformat(),
            expense.state.value,
        ]

    def _row_to_expense(self, row: list) -> Expense:
        safe_get = _safe_getter(row)
        return Expense(
            id=UUID(safe_get(0)),
            user_id=UUID(safe_get(1)),
            category_id=UUID(safe_get(2)),
            amount=Decimal(safe_get(3)),
            description=safe_get(4) or None,
            expense_date=date.fromisoformat(safe_get(5)),
            created_at=datetime.fromisoformat(safe_get(6)),
            state=EntityState(safe_get(7, EntityState.ACTIVE.value)),
        )

    def _active_owned_rows(self, user_id: UUID) -> list[Expense]:
        owner = str(user_id)
        expenses = []
        for row in self._table.rows():
            if len(row) < 2 or row[1] != owner:
                continue
            expense = self._row_to_expense(row)
            if not expense.is_deleted:
                expenses.append(expense)
        return expenses

    async def add_expense(self, expense: Expense) -> None:
        try:
            self._table.append(self._expense_to_row(expense))
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    async def get_expense(
        self,
        user_id: UUID,
        expense_id: UUID,
    ) -> Optional[Expense]:
        try:
            for expense in self._active_owned_rows(user_id):
                if expense.id == expense_id:
                    return expense
            return None
        except Exception as e:
            raise StorageError(f"Failed to get expense: {e}")

    async def list_expenses(
        self,
        user_id: UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        category_id: Optional[UUID] = None,
    ) -> list[Expense]:
        try:
            rows = self._active_owned_rows(user_id)
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")

        expenses = []
        for expense in rows:
            # Apply filters
            if date_from and expense.expense_date < date_from:
                continue
            if date_to and expense.expense_date > date_to:
                continue
            if category_id and expense.category_id != category_id:
                continue
            expenses.append(expense)

        expenses.sort(key=expense_sort_key, reverse=True)
        return expenses

    async def update_expense(self, expense: Expense) -> None:
        try:
            updated = self._table.replace(
                str(expense.id),
                self._expense_to_row(expense),
                owner_column=1,
            )
        except Exception as e:
            raise StorageError(f"Failed to update expense: {e}")
        if not updated:
            raise RecordNotFoundError(f"Expense not found: {expense.id}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        client = client or GoogleSheetsClient()
        self._table = _SheetTable(client, client.settings.audit_sheet_name, AUDIT_COLUMNS)

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        safe_get = _safe_getter(row)
        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            user_id=UUID(safe_get(4)) if safe_get(4) else None,
            entity_type=safe_get(5) or None,
            entity_id=UUID(safe_get(6)) if safe_get(6) else None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _matching_events(self, predicate: Callable[[list], bool]) -> list[AuditEvent]:
        events = []
        for row in self._table.rows():
            if not predicate(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, KeyError):
                # Malformed rows are skipped; the log is append-only and
                # cannot be repaired in place
                continue
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._table.append(event.to_sheets_row())
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        wanted = str(correlation_id)
        try:
            events = self._matching_events(
                lambda row: len(row) > 7 and row[7] == wanted
            )
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Sort chronologically
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_user(
        self,
        user_id: UUID,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events for one user."""
        wanted = str(user_id)
        try:
            events = self._matching_events(
                lambda row: len(row) > 4 and row[4] == wanted
            )
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
