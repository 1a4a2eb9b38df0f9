"""
Core Data Models for Budgetal

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Serialize to the camelCase JSON the clients expect

DESIGN DECISION: Amounts are always Decimal. Spending totals must be
exact to the cent, so floats never enter a calculation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


CENTS = Decimal("0.01")


class CamelModel(BaseModel):
    """Base model that reads snake_case or camelCase and writes camelCase."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# =============================================================================
# IDENTITY
# =============================================================================

class User(CamelModel):
    """
    An authenticated caller.

    Resolved by the authentication boundary. The core only reads it.
    """
    id: int = Field(..., ge=1)
    email: Optional[str] = None


# =============================================================================
# ANNUAL BUDGETS
# =============================================================================

class AnnualBudget(CamelModel):
    """
    One user's budget container for one calendar year.

    At most one exists per (user_id, year).
    """
    id: int
    user_id: int
    year: int = Field(..., ge=1, le=9999)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class AnnualBudgetItemDraft(CamelModel):
    """
    An annual budget item that has not been stored yet.

    Used by the default item template and by item creation requests.
    """
    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Category this allocation is for"
    )
    amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        max_digits=12,
        decimal_places=2,
        description="Amount to reach by the due date"
    )
    due_date: date = Field(
        ...,
        description="Date the full amount is needed"
    )
    interval: int = Field(
        default=12,
        ge=1,
        le=12,
        description="Number of months to save over"
    )
    paid: bool = False


class AnnualBudgetItemCreate(AnnualBudgetItemDraft):
    """Request body for adding an item to an existing annual budget."""
    annual_budget_id: int = Field(..., ge=1)


class AnnualBudgetItemUpdate(CamelModel):
    """Partial update of an annual budget item. Unset fields are left alone."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        max_digits=12,
        decimal_places=2,
    )
    due_date: Optional[date] = None
    interval: Optional[int] = Field(default=None, ge=1, le=12)
    paid: Optional[bool] = None


class AnnualBudgetItem(AnnualBudgetItemDraft):
    """A stored category line item belonging to exactly one AnnualBudget."""
    id: int
    annual_budget_id: int

    def apply(self, changes: AnnualBudgetItemUpdate) -> "AnnualBudgetItem":
        """Return a copy with the fields set on `changes` applied."""
        return self.model_copy(update=changes.model_dump(exclude_unset=True))


class ProvisionedBudget(CamelModel):
    """Result of provisioning: the budget identity and its current items."""
    annual_budget_id: int
    annual_budget_items: list[AnnualBudgetItem] = Field(default_factory=list)


# =============================================================================
# SPENDING
# =============================================================================

class Transaction(CamelModel):
    """
    A recorded expense.

    Owned elsewhere; read-only here.
    """
    id: int
    user_id: int
    category: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    date: date
    description: Optional[str] = Field(default=None, max_length=500)


class CategoryStatistic(CamelModel):
    """
    Amount spent in one category over one month.

    Derived on every request; never persisted.
    """
    name: str
    amount_spent: Decimal

    @field_validator('amount_spent')
    @classmethod
    def quantize_to_cents(cls, v: Decimal) -> Decimal:
        """Totals are always reported with exactly two decimal places."""
        return v.quantize(CENTS)


class MonthlyStatistics(CamelModel):
    """Response body of the monthly statistics endpoint."""
    budget_categories: list[CategoryStatistic] = Field(default_factory=list)
