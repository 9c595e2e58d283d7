"""
Domain Error Taxonomy

Every failure a caller can observe is one of five kinds:

    ValidationError  - malformed or policy-violating input (400)
    AuthError        - missing/invalid credential or token (401)
    NotFoundError    - entity absent OR owned by someone else (404)
    ConflictError    - uniqueness violation (409)
    InternalError    - unexpected persistence/cache failure (500)

DESIGN DECISION: "not found" and "not yours" are the same signal.
Reporting them differently would leak the existence of another user's
data. Neither is ever reported as an authentication failure.

The helpers at the bottom are the contract the HTTP boundary needs:
an error kind to status code mapping and an opaque, caller-safe body.
"""

from typing import Optional

import pydantic

from expense_tracker.models.common import ValidationIssue


class ExpenseTrackerError(Exception):
    """Base exception for all domain errors."""

    status_code: int = 500
    title: str = "An unexpected error occurred"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ExpenseTrackerError):
    """Input violates a business rule."""

    status_code = 400
    title = "Validation Error"

    def __init__(
        self,
        message: str,
        issues: Optional[list[ValidationIssue]] = None,
    ):
        super().__init__(message)
        self.issues = issues or []


class AuthError(ExpenseTrackerError):
    """Credential or token is missing or invalid."""

    status_code = 401
    title = "Unauthorized"


class NotFoundError(ExpenseTrackerError):
    """Entity is absent, deleted, or not owned by the caller."""

    status_code = 404
    title = "Resource Not Found"


class ConflictError(ExpenseTrackerError):
    """Entity would violate a uniqueness constraint."""

    status_code = 409
    title = "Conflict"


class InternalError(ExpenseTrackerError):
    """
    Unexpected failure in a backing service.

    The message is always generic; the original exception is chained
    as __cause__ for logging only.
    """

    status_code = 500
    title = "An unexpected error occurred"

    def __init__(self, message: str = "An internal error occurred."):
        super().__init__(message)


def status_code_for(exc: BaseException) -> int:
    """Map any exception to the HTTP status the boundary should report."""
    if isinstance(exc, ExpenseTrackerError):
        return exc.status_code
    if isinstance(exc, pydantic.ValidationError):
        return ValidationError.status_code
    return InternalError.status_code


def to_problem_details(
    exc: BaseException,
    instance: Optional[str] = None,
) -> dict:
    """
    Build a caller-safe error body (RFC 7807 style).

    CRITICAL: Unclassified failures never expose their message, type or
    stack trace.
    """
    status = status_code_for(exc)

    if isinstance(exc, ExpenseTrackerError) and status != 500:
        title = exc.title
        detail = exc.message
    elif isinstance(exc, pydantic.ValidationError):
        title = ValidationError.title
        detail = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
    else:
        title = InternalError.title
        detail = "An internal error occurred."

    body: dict = {
        "title": title,
        "status": status,
        "detail": detail,
        "instance": instance,
    }

    if isinstance(exc, ValidationError) and exc.issues:
        body["issues"] = [issue.model_dump() for issue in exc.issues]

    return body
