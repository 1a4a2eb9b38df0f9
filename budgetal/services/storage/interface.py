"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep provisioning and statistics independent of the database
2. Use in-memory storage for testing
3. Swap SQLite for another SQL database through configuration alone

The interface is intentionally narrow - we're not building a full ORM.
Just the operations provisioning, item management and statistics need.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import date
from typing import Optional, Sequence
from uuid import UUID

from budgetal.models.audit import AuditEvent
from budgetal.models.budget import (
    AnnualBudget,
    AnnualBudgetItem,
    AnnualBudgetItemDraft,
    Transaction,
)


class BudgetStorageInterface(ABC):
    """
    Abstract interface for annual budget storage.

    Any storage implementation (SQL, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    def atomic(self) -> AbstractAsyncContextManager[None]:
        """
        Group storage calls into one all-or-nothing unit.

        Usage:
            async with storage.atomic():
                budget = await storage.create(user_id, year)
                await storage.create_default_items(budget, drafts)

        If the block raises, none of its writes are kept.
        Nested blocks join the outermost one.
        """

    @abstractmethod
    async def find_by_user_and_year(
        self,
        user_id: int,
        year: int,
    ) -> Optional[AnnualBudget]:
        """
        Find a user's budget for a year.

        Returns:
            The budget if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_budget(self, budget_id: int) -> Optional[AnnualBudget]:
        """Retrieve a budget by its ID, or None."""
        pass

    @abstractmethod
    async def create(self, user_id: int, year: int) -> AnnualBudget:
        """
        Create a budget for a user and year.

        Only call after confirming absence.

        Raises:
            DuplicateError: If a budget already exists for (user_id, year)
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_items(self, annual_budget_id: int) -> list[AnnualBudgetItem]:
        """
        List a budget's items, oldest first.

        Returns an empty list for unknown budgets.
        """
        pass

    @abstractmethod
    async def create_default_items(
        self,
        budget: AnnualBudget,
        drafts: Sequence[AnnualBudgetItemDraft],
    ) -> list[AnnualBudgetItem]:
        """
        Materialize the default item set for a newly created budget.

        Args:
            budget: The budget the items belong to
            drafts: The template items, in the order they should be stored

        Returns:
            The stored items
        """
        pass

    @abstractmethod
    async def get_item(self, item_id: int) -> Optional[AnnualBudgetItem]:
        """Retrieve an item by its ID, or None."""
        pass

    @abstractmethod
    async def add_item(
        self,
        annual_budget_id: int,
        draft: AnnualBudgetItemDraft,
    ) -> AnnualBudgetItem:
        """
        Add one item to an existing budget.

        Raises:
            NotFoundError: If the budget doesn't exist
        """
        pass

    @abstractmethod
    async def update_item(self, item: AnnualBudgetItem) -> AnnualBudgetItem:
        """
        Overwrite a stored item with `item`.

        Raises:
            NotFoundError: If the item doesn't exist
        """
        pass

    @abstractmethod
    async def delete_item(self, item_id: int) -> bool:
        """
        Delete an item by ID.

        Returns:
            True if an item was deleted
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        user_id: int,
        date_from: date,
        date_to: date,
    ) -> list[Transaction]:
        """
        List a user's transactions dated within [date_from, date_to].

        Returns:
            Transactions ordered by date, then ID
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one request).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
