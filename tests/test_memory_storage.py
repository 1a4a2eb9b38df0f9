"""Tests for the in-memory storage backend."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from budgetal.models.budget import AnnualBudgetItemDraft
from budgetal.services import InMemoryBudgetStorage, StorageError


def draft(name):
    return AnnualBudgetItemDraft(name=name, due_date=date(2017, 12, 31))


class InterleavingStorage(InMemoryBudgetStorage):
    """Yields to the event loop while writing items; fails for user 1."""

    async def create_default_items(self, budget, drafts):
        await asyncio.sleep(0)
        if budget.user_id == 1:
            raise StorageError("connection lost while writing items")
        return await super().create_default_items(budget, drafts)


class TestAtomic:
    """Tests for InMemoryBudgetStorage.atomic."""

    def test_nested_blocks_roll_back_together(self, storage):
        async def scenario():
            async with storage.atomic():
                budget = await storage.create(1, 2017)
                async with storage.atomic():
                    await storage.add_item(budget.id, draft("Vacation"))
                raise StorageError("interrupted")

        with pytest.raises(StorageError):
            asyncio.run(scenario())

        assert storage.count_budgets() == 0
        assert storage.count_items() == 0

    def test_updates_and_deletes_are_reverted(self, storage):
        budget = asyncio.run(storage.create(1, 2017))
        kept = asyncio.run(storage.add_item(budget.id, draft("Vacation")))
        doomed = asyncio.run(storage.add_item(budget.id, draft("Gifts")))

        async def scenario():
            async with storage.atomic():
                await storage.update_item(kept.model_copy(update={"amount": Decimal("50.00")}))
                await storage.delete_item(doomed.id)
                raise StorageError("interrupted")

        with pytest.raises(StorageError):
            asyncio.run(scenario())

        assert asyncio.run(storage.get_item(kept.id)).amount == Decimal("0")
        assert asyncio.run(storage.get_item(doomed.id)) == doomed

    def test_writes_outside_a_block_are_kept(self, storage):
        budget = asyncio.run(storage.create(1, 2017))
        asyncio.run(storage.add_item(budget.id, draft("Vacation")))

        assert storage.count_budgets() == 1
        assert storage.count_items() == 1

    def test_concurrent_blocks_do_not_undo_each_other(self):
        """Test a failing block only reverts its own writes."""
        storage = InterleavingStorage()

        async def provision(user_id):
            async with storage.atomic():
                budget = await storage.create(user_id, 2017)
                await storage.create_default_items(budget, [draft("Vacation")])

        async def scenario():
            return await asyncio.gather(provision(1), provision(2), return_exceptions=True)

        failed, succeeded = asyncio.run(scenario())

        assert isinstance(failed, StorageError)
        assert succeeded is None
        assert asyncio.run(storage.find_by_user_and_year(1, 2017)) is None
        survivor = asyncio.run(storage.find_by_user_and_year(2, 2017))
        assert survivor is not None
        assert [i.name for i in asyncio.run(storage.list_items(survivor.id))] == ["Vacation"]
