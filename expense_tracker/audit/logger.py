"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. A per-user history of changes

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events

Correlation IDs are passed explicitly into every service call. There
is no ambient, process-wide logging context.
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from expense_tracker.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(format="%(message)s", level=level.upper())
    logging.getLogger("expense_tracker").setLevel(level.upper())


def get_logger(name: str = "expense_tracker"):
    """Structured logger for modules that log outside the audit trail."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = get_logger("expense_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        # Always log locally
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        # Persist to storage if available
        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_user_registered(
        self,
        user_id: UUID,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.user_registered(
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_registration_rejected(
        self,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.registration_rejected(
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_login_succeeded(
        self,
        user_id: UUID,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.login_succeeded(
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_login_failed(
        self,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.login_failed(
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_token_rejected(
        self,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.token_rejected(
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_access_denied(
        self,
        operation: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.access_denied(
            operation=operation,
            correlation_id=correlation_id,
        ))

    async def log_category_event(
        self,
        event_type: AuditEventType,
        user_id: UUID,
        category_id: UUID,
        name: str,
        correlation_id: UUID,
        changes: Optional[list[str]] = None,
    ) -> None:
        """Log a category create/update/delete."""
        await self.log(AuditEventBuilder.category_changed(
            event_type=event_type,
            user_id=user_id,
            category_id=category_id,
            name=name,
            correlation_id=correlation_id,
            changes=changes,
        ))

    async def log_expense_event(
        self,
        event_type: AuditEventType,
        user_id: UUID,
        expense_id: UUID,
        amount: str,
        correlation_id: UUID,
        changes: Optional[list[str]] = None,
    ) -> None:
        """Log an expense create/update/delete."""
        await self.log(AuditEventBuilder.expense_changed(
            event_type=event_type,
            user_id=user_id,
            expense_id=expense_id,
            amount=amount,
            correlation_id=correlation_id,
            changes=changes,
        ))

    async def log_summary_served(
        self,
        user_id: UUID,
        cache_key: str,
        hit: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.summary_served(
            user_id=user_id,
            cache_key=cache_key,
            hit=hit,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new request.
    Pass it through all subsequent operations.
    """
    return uuid4()
