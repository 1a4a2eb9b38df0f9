"""Services package."""

from budgetal.services.locks import KeyedLock
from budgetal.services.storage import (
    AuditStorageInterface,
    BudgetStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    NotFoundError,
    SQLAuditStorage,
    SQLBudgetStorage,
    SQLClient,
    StorageConnectionError,
    StorageError,
)
from budgetal.services.templates import ItemTemplate, StaticItemTemplate

__all__ = [
    # Concurrency
    "KeyedLock",
    # Templates
    "ItemTemplate",
    "StaticItemTemplate",
    # Storage services
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryBudgetStorage",
    "NotFoundError",
    "SQLAuditStorage",
    "SQLBudgetStorage",
    "SQLClient",
    "StorageConnectionError",
    "StorageError",
]
