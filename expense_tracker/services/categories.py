"""
Category Store

Owner-scoped CRUD over a user's categories.

CRITICAL: Every method takes the owner's user_id and never touches a
category that belongs to someone else. A category owned by another
user is indistinguishable from one that does not exist.

Deletion is soft: the row stays, its state flips to DELETED, and the
expenses filed under it are left alone.
"""

from typing import Optional
from uuid import UUID

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.errors import NotFoundError, ValidationError
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.common import EntityState
from expense_tracker.models.ledger import Category
from expense_tracker.models.requests import (
    CreateCategoryRequest,
    UpdateCategoryRequest,
)
from expense_tracker.services.storage import CategoryStorageInterface


DUPLICATE_NAME = "Category with this name already exists."
NOT_FOUND = "Category not found or does not belong to the user."


class CategoryStore:
    """Creates, renames, recolors and deletes categories."""

    def __init__(
        self,
        category_storage: CategoryStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = category_storage
        self._audit_logger = audit_logger

    async def list(self, user_id: UUID) -> list[Category]:
        """Active categories, ordered by name (case-insensitive)."""
        return await self._storage.list_categories(user_id)

    async def get(self, user_id: UUID, category_id: UUID) -> Optional[Category]:
        return await self._storage.get_category(user_id, category_id)

    async def create(
        self,
        user_id: UUID,
        request: CreateCategoryRequest,
        correlation_id: Optional[UUID] = None,
    ) -> Category:
        """
        Create a category.

        Raises:
            ValidationError: An active category with the same name
                (case-insensitive) already exists for this user
        """
        correlation_id = correlation_id or create_correlation_id()

        if await self._storage.find_active_by_name(user_id, request.name):
            raise ValidationError(DUPLICATE_NAME)

        category = Category(
            user_id=user_id,
            name=request.name,
            color=request.color,
        )
        await self._storage.add_category(category)

        if self._audit_logger:
            await self._audit_logger.log_category_event(
                event_type=AuditEventType.CATEGORY_CREATED,
                user_id=user_id,
                category_id=category.id,
                name=category.name,
                correlation_id=correlation_id,
            )

        return category

    async def update(
        self,
        user_id: UUID,
        category_id: UUID,
        request: UpdateCategoryRequest,
        correlation_id: Optional[UUID] = None,
    ) -> Category:
        """
        Apply the supplied fields to an active category.

        Raises:
            NotFoundError: No active category with this ID for this user
            ValidationError: The new name collides with another category
        """
        correlation_id = correlation_id or create_correlation_id()

        category = await self._storage.get_category(user_id, category_id)
        if category is None:
            raise NotFoundError(NOT_FOUND)

        changes = []

        if request.name is not None and request.name != category.name:
            # A change of case alone is a rename of the same category
            if request.name.lower() != category.name.lower():
                if await self._storage.find_active_by_name(user_id, request.name):
                    raise ValidationError(DUPLICATE_NAME)
            category.name = request.name
            changes.append("name")

        if request.color is not None and request.color != category.color:
            category.color = request.color
            changes.append("color")

        if not changes:
            return category

        await self._storage.update_category(category)

        if self._audit_logger:
            await self._audit_logger.log_category_event(
                event_type=AuditEventType.CATEGORY_UPDATED,
                user_id=user_id,
                category_id=category.id,
                name=category.name,
                correlation_id=correlation_id,
                changes=changes,
            )

        return category

    async def delete(
        self,
        user_id: UUID,
        category_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Soft-delete a category.

        Raises:
            NotFoundError: Absent, not owned, or already deleted
        """
        correlation_id = correlation_id or create_correlation_id()

        category = await self._storage.get_category(user_id, category_id)
        if category is None:
            raise NotFoundError(NOT_FOUND)

        category.state = EntityState.DELETED
        await self._storage.update_category(category)

        if self._audit_logger:
            await self._audit_logger.log_category_event(
                event_type=AuditEventType.CATEGORY_DELETED,
                user_id=user_id,
                category_id=category.id,
                name=category.name,
                correlation_id=correlation_id,
            )
