"""
Data Models Package

This package contains all Pydantic models used in Budgetal.
All data flowing through the system must conform to these schemas.
"""

from budgetal.models.budget import (
    AnnualBudget,
    AnnualBudgetItem,
    AnnualBudgetItemCreate,
    AnnualBudgetItemDraft,
    AnnualBudgetItemUpdate,
    CategoryStatistic,
    MonthlyStatistics,
    ProvisionedBudget,
    Transaction,
    User,
)
from budgetal.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Budget models
    "AnnualBudget",
    "AnnualBudgetItem",
    "AnnualBudgetItemCreate",
    "AnnualBudgetItemDraft",
    "AnnualBudgetItemUpdate",
    "CategoryStatistic",
    "MonthlyStatistics",
    "ProvisionedBudget",
    "Transaction",
    "User",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
