"""
Credential Validation

DESIGN DECISION: Registration input is checked in two stages:

STAGE 1 - CONFIRMATION:
- Password and confirmation must match
- Nothing else is checked if they don't (the user mistyped)

STAGE 2 - POLICY:
- Minimum length
- At least one uppercase letter
- At least one digit
- At most 72 bytes (bcrypt ignores anything longer)

All policy violations are reported together so the user can fix them
in one go.

IMPORTANT: Validation NEVER silently fixes passwords. Emails are the
one exception: they are normalized (trimmed, lowercased) because two
spellings of the same mailbox must be the same account.
"""

from typing import Optional

from expense_tracker.config import AuthSettings, get_settings
from expense_tracker.errors import ValidationError
from expense_tracker.models.common import ValidationIssue


BCRYPT_MAX_BYTES = 72


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookups."""
    return email.strip().lower()


class CredentialValidator:
    """Checks registration input against the password policy."""

    def __init__(self, settings: Optional[AuthSettings] = None):
        self._settings = settings or get_settings().auth

    def _check_confirmation(
        self,
        password: str,
        confirm_password: str,
    ) -> list[ValidationIssue]:
        if password != confirm_password:
            return [ValidationIssue(
                field="confirm_password",
                issue_type="mismatch",
                message="Passwords do not match.",
                suggested_fix="Type the same password in both fields",
            )]
        return []

    def _check_policy(self, password: str) -> list[ValidationIssue]:
        issues = []
        min_length = self._settings.password_min_length

        if not password or not password.strip() or len(password) < min_length:
            issues.append(ValidationIssue(
                field="password",
                issue_type="too_short",
                message=f"Password must be at least {min_length} characters.",
            ))

        if not any(ch.isupper() for ch in password):
            issues.append(ValidationIssue(
                field="password",
                issue_type="missing_uppercase",
                message="Password must include an uppercase letter.",
            ))

        if not any(ch.isdigit() for ch in password):
            issues.append(ValidationIssue(
                field="password",
                issue_type="missing_digit",
                message="Password must include a number.",
            ))

        if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
            issues.append(ValidationIssue(
                field="password",
                issue_type="too_long",
                message=f"Password must be at most {BCRYPT_MAX_BYTES} bytes.",
            ))

        return issues

    def validate_registration(
        self,
        password: str,
        confirm_password: str,
    ) -> None:
        """
        Raise ValidationError if the password cannot be accepted.

        The error carries every issue found in the failing stage.
        """
        issues = self._check_confirmation(password, confirm_password)
        if issues:
            raise ValidationError(issues[0].message, issues=issues)

        issues = self._check_policy(password)
        if issues:
            raise ValidationError(
                self.get_user_friendly_summary(issues),
                issues=issues,
            )

    @staticmethod
    def get_user_friendly_summary(issues: list[ValidationIssue]) -> str:
        """Collapse a list of issues into one readable sentence."""
        if not issues:
            return "Password accepted."
        return " ".join(issue.message for issue in issues)
