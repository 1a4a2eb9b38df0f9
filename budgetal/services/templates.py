"""
Default Item Templates

Decides which items a brand new annual budget starts with.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from budgetal.config import get_settings
from budgetal.models.budget import AnnualBudgetItemDraft, User


class ItemTemplate(ABC):
    """Source of the default item set for a new annual budget."""

    @abstractmethod
    def drafts_for(self, user: User, year: int) -> list[AnnualBudgetItemDraft]:
        """Items to create for `user`'s new budget for `year`, in order."""
        pass


class StaticItemTemplate(ItemTemplate):
    """
    The same category names for every user.

    Each item starts unfunded: amount 0, due at the end of the year,
    saved over 12 months, unpaid.
    """

    def __init__(self, names: Optional[Sequence[str]] = None):
        if names is None:
            names = get_settings().budget.default_item_names
        self._names = list(names)

    def drafts_for(self, user: User, year: int) -> list[AnnualBudgetItemDraft]:
        return [
            AnnualBudgetItemDraft(
                name=name,
                amount=Decimal("0"),
                due_date=date(year, 12, 31),
                interval=12,
                paid=False,
            )
            for name in self._names
        ]
