"""
SQL Storage Implementation

DESIGN DECISION: SQLAlchemy Core (tables + statements, no ORM session)
is used because:
1. The store only needs a handful of straightforward statements
2. The unique constraint on (user_id, year) is declared right next to the table
3. Any SQLAlchemy URL works; SQLite is the default

GUARANTEES:
- At most one annual budget per (user_id, year), enforced by the database
- atomic() runs everything inside one database transaction
- Driver errors never leak: they become StorageError subclasses
"""

from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
from datetime import date, datetime
from typing import AsyncIterator, Iterator, Optional, Sequence
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    event,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.pool import StaticPool
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budgetal.config import DatabaseSettings, get_settings
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
    StorageConnectionError,
    StorageError,
)


metadata = MetaData()

annual_budgets = Table(
    "annual_budgets",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("year", Integer, nullable=False),
    Column("created_at", DateTime, nullable=False),
    UniqueConstraint("user_id", "year", name="uq_annual_budgets_user_year"),
)

annual_budget_items = Table(
    "annual_budget_items",
    metadata,
    Column("id", Integer, primary_key=True),
    Column(
        "annual_budget_id",
        Integer,
        ForeignKey("annual_budgets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("name", String(255), nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("due_date", Date, nullable=False),
    Column("interval", Integer, nullable=False),
    Column("paid", Boolean, nullable=False, default=False),
)

transactions = Table(
    "transactions",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("category", String(255), nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("date", Date, nullable=False, index=True),
    Column("description", String(500)),
)

audit_events = Table(
    "audit_events",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("event_id", String(36), nullable=False, unique=True),
    Column("timestamp", DateTime, nullable=False, index=True),
    Column("event_type", String(64), nullable=False),
    Column("severity", String(16), nullable=False),
    Column("user_id", Integer),
    Column("entity_type", String(64)),
    Column("entity_id", Integer),
    Column("correlation_id", String(36), index=True),
    Column("description", String(500), nullable=False),
    Column("details_json", Text),
    Column("error_code", String(64)),
    Column("error_message", Text),
)

ITEM_FIELDS = set(AnnualBudgetItemDraft.model_fields)

_IN_MEMORY_SQLITE_URLS = {"sqlite://", "sqlite:///:memory:"}


def create_storage_engine(settings: Optional[DatabaseSettings] = None) -> Engine:
    """
    Build an engine from database settings.

    In-memory SQLite shares one connection so every caller sees the same
    database, and SQLite gets foreign keys switched on.
    """
    settings = settings or get_settings().database
    kwargs = {"echo": settings.echo}
    if settings.is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if settings.url in _IN_MEMORY_SQLITE_URLS:
            kwargs["poolclass"] = StaticPool

    engine = create_engine(settings.url, **kwargs)

    if settings.is_sqlite:
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    """Re-raise SQLAlchemy errors as storage errors."""
    try:
        yield
    except IntegrityError as e:
        raise DuplicateError(f"Failed to {operation}: {e.orig}") from e
    except OperationalError as e:
        raise StorageConnectionError(f"Failed to {operation}: {e.orig}") from e
    except SQLAlchemyError as e:
        raise StorageError(f"Failed to {operation}: {e}") from e


class SQLClient:
    """
    Low-level database wrapper.

    Handles engine creation and schema setup with retry logic, and
    tracks the connection of the atomic() block currently running.
    """

    def __init__(
        self,
        engine: Optional[Engine] = None,
        settings: Optional[DatabaseSettings] = None,
    ):
        self._settings = settings
        self._engine = engine
        self._schema_ready = False
        self._current: ContextVar[Optional[Connection]] = ContextVar(
            f"budgetal_sql_connection_{id(self)}",
            default=None,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(StorageConnectionError),
        reraise=True,
    )
    def connect(self) -> Engine:
        """
        Return the engine, creating it and the schema on first use.
        """
        if self._engine is None:
            self._engine = create_storage_engine(self._settings)

        if not self._schema_ready:
            with _translate_errors("create schema"):
                metadata.create_all(self._engine)
            self._schema_ready = True

        return self._engine

    @contextmanager
    def connection(self, operation: str) -> Iterator[Connection]:
        """
        Yield a connection inside a transaction.

        Inside atomic() this is the block's connection; otherwise a
        fresh transaction that commits when the with-block ends.
        """
        current = self._current.get()
        if current is not None:
            with _translate_errors(operation):
                yield current
            return

        engine = self.connect()
        with _translate_errors(operation):
            with engine.begin() as conn:
                yield conn

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        if self._current.get() is not None:
            yield
            return

        engine = self.connect()
        with _translate_errors("commit transaction"):
            with engine.begin() as conn:
                token = self._current.set(conn)
                try:
                    yield
                finally:
                    self._current.reset(token)


class SQLBudgetStorage(BudgetStorageInterface):
    """
    SQL implementation of budget storage.

    One row per budget, item and transaction.
    """

    def __init__(self, client: Optional[SQLClient] = None):
        self._client = client or SQLClient()

    def atomic(self):
        return self._client.atomic()

    async def find_by_user_and_year(
        self,
        user_id: int,
        year: int,
    ) -> Optional[AnnualBudget]:
        stmt = select(annual_budgets).where(
            annual_budgets.c.user_id == user_id,
            annual_budgets.c.year == year,
        )
        with self._client.connection("find annual budget") as conn:
            row = conn.execute(stmt).mappings().first()
        return AnnualBudget.model_validate(dict(row)) if row else None

    async def get_budget(self, budget_id: int) -> Optional[AnnualBudget]:
        stmt = select(annual_budgets).where(annual_budgets.c.id == budget_id)
        with self._client.connection("get annual budget") as conn:
            row = conn.execute(stmt).mappings().first()
        return AnnualBudget.model_validate(dict(row)) if row else None

    async def create(self, user_id: int, year: int) -> AnnualBudget:
        values = {
            "user_id": user_id,
            "year": year,
            "created_at": datetime.utcnow(),
        }
        with self._client.connection("create annual budget") as conn:
            result = conn.execute(insert(annual_budgets).values(**values))
            budget_id = result.inserted_primary_key[0]
        return AnnualBudget(id=budget_id, **values)

    async def list_items(self, annual_budget_id: int) -> list[AnnualBudgetItem]:
        stmt = (
            select(annual_budget_items)
            .where(annual_budget_items.c.annual_budget_id == annual_budget_id)
            .order_by(annual_budget_items.c.id)
        )
        with self._client.connection("list annual budget items") as conn:
            rows = conn.execute(stmt).mappings().all()
        return [AnnualBudgetItem.model_validate(dict(row)) for row in rows]

    async def create_default_items(
        self,
        budget: AnnualBudget,
        drafts: Sequence[AnnualBudgetItemDraft],
    ) -> list[AnnualBudgetItem]:
        items = []
        with self._client.connection("create default items") as conn:
            for draft in drafts:
                items.append(self._insert_item(conn, budget.id, draft))
        return items

    def _insert_item(
        self,
        conn: Connection,
        annual_budget_id: int,
        draft: AnnualBudgetItemDraft,
    ) -> AnnualBudgetItem:
        values = draft.model_dump(include=ITEM_FIELDS)
        result = conn.execute(
            insert(annual_budget_items).values(annual_budget_id=annual_budget_id, **values)
        )
        return AnnualBudgetItem(
            id=result.inserted_primary_key[0],
            annual_budget_id=annual_budget_id,
            **values,
        )

    async def get_item(self, item_id: int) -> Optional[AnnualBudgetItem]:
        stmt = select(annual_budget_items).where(annual_budget_items.c.id == item_id)
        with self._client.connection("get annual budget item") as conn:
            row = conn.execute(stmt).mappings().first()
        return AnnualBudgetItem.model_validate(dict(row)) if row else None

    async def add_item(
        self,
        annual_budget_id: int,
        draft: AnnualBudgetItemDraft,
    ) -> AnnualBudgetItem:
        if await self.get_budget(annual_budget_id) is None:
            raise NotFoundError(f"Annual budget not found: {annual_budget_id}")
        with self._client.connection("add annual budget item") as conn:
            return self._insert_item(conn, annual_budget_id, draft)

    async def update_item(self, item: AnnualBudgetItem) -> AnnualBudgetItem:
        stmt = (
            update(annual_budget_items)
            .where(annual_budget_items.c.id == item.id)
            .values(**item.model_dump(include=ITEM_FIELDS))
        )
        with self._client.connection("update annual budget item") as conn:
            result = conn.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError(f"Annual budget item not found: {item.id}")
        return item

    async def delete_item(self, item_id: int) -> bool:
        stmt = delete(annual_budget_items).where(annual_budget_items.c.id == item_id)
        with self._client.connection("delete annual budget item") as conn:
            result = conn.execute(stmt)
        return result.rowcount > 0

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(StorageConnectionError),
        reraise=True,
    )
    async def list_transactions(
        self,
        user_id: int,
        date_from: date,
        date_to: date,
    ) -> list[Transaction]:
        stmt = (
            select(transactions)
            .where(
                transactions.c.user_id == user_id,
                transactions.c.date >= date_from,
                transactions.c.date <= date_to,
            )
            .order_by(transactions.c.date, transactions.c.id)
        )
        with self._client.connection("list transactions") as conn:
            rows = conn.execute(stmt).mappings().all()
        return [Transaction.model_validate(dict(row)) for row in rows]


class SQLAuditStorage(AuditStorageInterface):
    """
    SQL implementation of audit storage.

    Append-only: this class never updates or deletes rows.
    """

    def __init__(self, client: Optional[SQLClient] = None):
        self._client = client or SQLClient()

    async def append_event(self, event: AuditEvent) -> bool:
        with self._client.connection("append audit event") as conn:
            conn.execute(insert(audit_events).values(**event.to_row()))
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        stmt = (
            select(audit_events)
            .where(audit_events.c.correlation_id == str(correlation_id))
            .order_by(audit_events.c.timestamp, audit_events.c.id)
        )
        with self._client.connection("read audit events") as conn:
            rows = conn.execute(stmt).mappings().all()
        return [AuditEvent.from_row(dict(row)) for row in rows]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        stmt = (
            select(audit_events)
            .order_by(audit_events.c.timestamp.desc(), audit_events.c.id.desc())
            .limit(limit)
        )
        with self._client.connection("read audit events") as conn:
            rows = conn.execute(stmt).mappings().all()
        return [AuditEvent.from_row(dict(row)) for row in rows]
