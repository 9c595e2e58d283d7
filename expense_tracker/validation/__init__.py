"""Validation package."""

from expense_tracker.validation.validator import CredentialValidator, normalize_email

__all__ = ["CredentialValidator", "normalize_email"]
