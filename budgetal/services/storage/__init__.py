"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
SQL (via SQLAlchemy) is the persistent backend; the in-memory backend
serves tests and database-less runs.
"""

from budgetal.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    DuplicateError,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from budgetal.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
)
from budgetal.services.storage.sql import (
    SQLAuditStorage,
    SQLBudgetStorage,
    SQLClient,
    create_storage_engine,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BudgetStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryBudgetStorage",
    # SQL implementation
    "SQLAuditStorage",
    "SQLBudgetStorage",
    "SQLClient",
    "create_storage_engine",
]
