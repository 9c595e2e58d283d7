"""Access control: identity from tokens, scoping for every store call."""

from expense_tracker.access.filter import AccessControlFilter, UserSession

__all__ = ["AccessControlFilter", "UserSession"]
