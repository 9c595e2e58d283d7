"""
Expense Tracker - Core Package

The domain service layer of a personal expense tracker: user
authentication, category and expense bookkeeping, and cached
spending summaries.

DESIGN PRINCIPLES:
1. Every read and write is scoped to the caller's identity
2. Fail early, fail visibly
3. Nothing is physically deleted (soft delete only)
4. Every step must be auditable
5. Storage and cache layers are swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
