"""
In-Memory Storage Implementation

Keeps everything in dicts. Used by the test suite and for running the
service without a database.

It behaves like the SQL store where it matters:
- (user_id, year) is unique; a second create raises DuplicateError
- atomic() rolls every write in the block back if the block raises;
  blocks are tracked per task, so concurrent tasks never undo each other
"""

from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import date, datetime
from itertools import count
from typing import AsyncIterator, Callable, Optional, Sequence
from uuid import UUID

from budgetal.models.audit import AuditEvent
from budgetal.models.budget import (
    AnnualBudget,
    AnnualBudgetItem,
    AnnualBudgetItemDraft,
    Transaction,
)
from budgetal.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    DuplicateError,
    NotFoundError,
)


class InMemoryBudgetStorage(BudgetStorageInterface):
    """Dict-backed budget storage."""

    def __init__(self):
        self._budgets: dict[int, AnnualBudget] = {}
        self._items: dict[int, AnnualBudgetItem] = {}
        self._transactions: dict[int, Transaction] = {}
        self._budget_ids = count(1)
        self._item_ids = count(1)
        self._transaction_ids = count(1)
        self._undo: ContextVar[Optional[list[Callable[[], None]]]] = ContextVar(
            f"budgetal_memory_undo_{id(self)}",
            default=None,
        )

    def _on_rollback(self, action: Callable[[], None]) -> None:
        """Register how to revert a write if the current atomic() block fails."""
        undo = self._undo.get()
        if undo is not None:
            undo.append(action)

    # IDs handed out inside a rolled-back block are not reused
    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        if self._undo.get() is not None:
            yield
            return

        undo: list[Callable[[], None]] = []
        token = self._undo.set(undo)
        try:
            yield
        except BaseException:
            for action in reversed(undo):
                action()
            raise
        finally:
            self._undo.reset(token)

    async def find_by_user_and_year(
        self,
        user_id: int,
        year: int,
    ) -> Optional[AnnualBudget]:
        for budget in self._budgets.values():
            if budget.user_id == user_id and budget.year == year:
                return budget
        return None

    async def get_budget(self, budget_id: int) -> Optional[AnnualBudget]:
        return self._budgets.get(budget_id)

    async def create(self, user_id: int, year: int) -> AnnualBudget:
        if await self.find_by_user_and_year(user_id, year) is not None:
            raise DuplicateError(f"Annual budget already exists: user {user_id}, year {year}")

        budget = AnnualBudget(
            id=next(self._budget_ids),
            user_id=user_id,
            year=year,
            created_at=datetime.utcnow(),
        )
        self._budgets[budget.id] = budget
        self._on_rollback(lambda: self._budgets.pop(budget.id, None))
        return budget

    async def list_items(self, annual_budget_id: int) -> list[AnnualBudgetItem]:
        return sorted(
            (item for item in self._items.values() if item.annual_budget_id == annual_budget_id),
            key=lambda item: item.id,
        )

    async def create_default_items(
        self,
        budget: AnnualBudget,
        drafts: Sequence[AnnualBudgetItemDraft],
    ) -> list[AnnualBudgetItem]:
        return [await self.add_item(budget.id, draft) for draft in drafts]

    async def get_item(self, item_id: int) -> Optional[AnnualBudgetItem]:
        return self._items.get(item_id)

    async def add_item(
        self,
        annual_budget_id: int,
        draft: AnnualBudgetItemDraft,
    ) -> AnnualBudgetItem:
        if annual_budget_id not in self._budgets:
            raise NotFoundError(f"Annual budget not found: {annual_budget_id}")

        item = AnnualBudgetItem(
            id=next(self._item_ids),
            annual_budget_id=annual_budget_id,
            **draft.model_dump(include=set(AnnualBudgetItemDraft.model_fields)),
        )
        self._items[item.id] = item
        self._on_rollback(lambda: self._items.pop(item.id, None))
        return item

    async def update_item(self, item: AnnualBudgetItem) -> AnnualBudgetItem:
        if item.id not in self._items:
            raise NotFoundError(f"Annual budget item not found: {item.id}")
        previous = self._items[item.id]
        self._items[item.id] = item
        self._on_rollback(lambda: self._items.__setitem__(previous.id, previous))
        return item

    async def delete_item(self, item_id: int) -> bool:
        removed = self._items.pop(item_id, None)
        if removed is None:
            return False
        self._on_rollback(lambda: self._items.__setitem__(removed.id, removed))
        return True

    async def list_transactions(
        self,
        user_id: int,
        date_from: date,
        date_to: date,
    ) -> list[Transaction]:
        matching = [
            t for t in self._transactions.values()
            if t.user_id == user_id and date_from <= t.date <= date_to
        ]
        return sorted(matching, key=lambda t: (t.date, t.id))

    def add_transaction(self, **fields) -> Transaction:
        """
        Record a transaction.

        Transactions are written by another service in production;
        this exists so the in-memory store can be seeded.
        """
        transaction = Transaction(id=next(self._transaction_ids), **fields)
        self._transactions[transaction.id] = transaction
        return transaction

    def count_budgets(self) -> int:
        return len(self._budgets)

    def count_items(self) -> int:
        return len(self._items)


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed audit log."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)
