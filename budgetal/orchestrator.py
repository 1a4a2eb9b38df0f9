"""
Main Orchestrator for Budgetal

This module ties together all the components and defines the
end-to-end flows for:
1. Annual budget provisioning (validate year → find → create if missing)
2. Annual budget item management (create / update / delete)

DESIGN DECISION: The orchestrator enforces the boundaries:
- One annual budget per (user, year), however many requests race for it
- A budget and its default items are created together or not at all
- Users only ever touch their own budgets
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import date
from typing import Callable, Optional
from uuid import UUID

from budgetal.audit import AuditLogger, create_correlation_id
from budgetal.config import BudgetSettings, get_settings
from budgetal.models.audit import AuditEventType
from budgetal.models.budget import (
    AnnualBudget,
    AnnualBudgetItem,
    AnnualBudgetItemCreate,
    AnnualBudgetItemDraft,
    AnnualBudgetItemUpdate,
    ProvisionedBudget,
    User,
)
from budgetal.queries import MonthlyStatisticsQuery
from budgetal.services import (
    BudgetStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    ItemTemplate,
    KeyedLock,
    NotFoundError,
    SQLAuditStorage,
    SQLBudgetStorage,
    SQLClient,
    StaticItemTemplate,
    StorageError,
)
from budgetal.validation import YearRejectedError, validate_year


class BudgetProvisioningFlow:
    """
    Orchestrates annual budget provisioning.

    Flow:
    1. Validate → Requested year must be inside the allowed window
    2. Lock → Serialize concurrent requests for the same (user, year)
    3. Find → Return the existing budget untouched if there is one
    4. Create → Budget + default items in one atomic unit
    5. Return → Budget ID and its items

    If the database reports the budget already exists at step 4
    (another process won the race), we fall back to step 3.
    """

    def __init__(
        self,
        storage: BudgetStorageInterface,
        template: Optional[ItemTemplate] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[BudgetSettings] = None,
        clock: Callable[[], date] = date.today,
        locks: Optional[KeyedLock] = None,
    ):
        self._storage = storage
        self._template = template or StaticItemTemplate()
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().budget
        self._clock = clock
        self._locks = locks or KeyedLock()

    async def ensure_budget(
        self,
        user: User,
        requested_year: object,
        now_year: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ProvisionedBudget:
        """
        Get or create the user's annual budget for a year.

        Args:
            user: The authenticated caller
            requested_year: Year from the request (int or digit string)
            now_year: The current year; defaults to the clock's year

        Returns:
            The budget ID and its current items

        Raises:
            YearRejectedError: If the year is malformed or out of range
            StorageError: If storage fails (nothing partial is left behind)
        """
        correlation_id = correlation_id or create_correlation_id()
        now_year = now_year if now_year is not None else self._clock().year

        try:
            year = validate_year(
                requested_year,
                now_year,
                years_back=self._settings.years_back,
                years_ahead=self._settings.years_ahead,
                earliest_year=self._settings.earliest_year,
            )
        except YearRejectedError as e:
            if self._audit_logger:
                await self._audit_logger.log_year_rejected(
                    user_id=user.id,
                    requested_year=requested_year,
                    kind=e.kind,
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise

        try:
            async with self._locks.hold((user.id, year)):
                budget = await self._storage.find_by_user_and_year(user.id, year)
                if budget is not None:
                    if self._audit_logger:
                        await self._audit_logger.log_budget_found(
                            budget_id=budget.id,
                            user_id=user.id,
                            year=year,
                            correlation_id=correlation_id,
                        )
                else:
                    budget = await self._create_budget(user, year, correlation_id)

                items = await self._storage.list_items(budget.id)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_failure(
                    operation="provision annual budget",
                    error=e,
                    user_id=user.id,
                    correlation_id=correlation_id,
                )
            raise

        return ProvisionedBudget(annual_budget_id=budget.id, annual_budget_items=items)

    async def _create_budget(
        self,
        user: User,
        year: int,
        correlation_id: UUID,
    ) -> AnnualBudget:
        """Create the budget and its default items, or adopt a concurrent winner's."""
        drafts = self._template.drafts_for(user, year)

        try:
            async with self._storage.atomic():
                budget = await self._storage.create(user.id, year)
                items = await self._storage.create_default_items(budget, drafts)
        except DuplicateError:
            budget = await self._storage.find_by_user_and_year(user.id, year)
            if budget is None:
                raise StorageError(
                    f"Annual budget for user {user.id}, year {year} "
                    "reported as duplicate but not found"
                )
            if self._audit_logger:
                await self._audit_logger.log_provisioning_race_resolved(
                    budget_id=budget.id,
                    user_id=user.id,
                    year=year,
                    correlation_id=correlation_id,
                )
            return budget

        if self._audit_logger:
            await self._audit_logger.log_budget_provisioned(
                budget_id=budget.id,
                user_id=user.id,
                year=year,
                item_count=len(items),
                correlation_id=correlation_id,
            )
        return budget


class AnnualBudgetItemFlow:
    """
    Orchestrates changes to the items of an annual budget.

    Every operation first checks that the budget belongs to the caller.
    Budgets and items of other users look exactly like missing ones.
    """

    def __init__(
        self,
        storage: BudgetStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def _owned_budget(
        self,
        user: User,
        budget_id: int,
        correlation_id: UUID,
    ) -> AnnualBudget:
        budget = await self._storage.get_budget(budget_id)
        if budget is None or budget.user_id != user.id:
            await self._deny(user, "annual_budget", budget_id, correlation_id)
        return budget

    async def _owned_item(
        self,
        user: User,
        item_id: int,
        correlation_id: UUID,
    ) -> AnnualBudgetItem:
        item = await self._storage.get_item(item_id)
        if item is None:
            await self._deny(user, "annual_budget_item", item_id, correlation_id)
        budget = await self._storage.get_budget(item.annual_budget_id)
        if budget is None or budget.user_id != user.id:
            await self._deny(user, "annual_budget_item", item_id, correlation_id)
        return item

    async def _deny(
        self,
        user: User,
        entity_type: str,
        entity_id: int,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_item_access_denied(
                user_id=user.id,
                entity_type=entity_type,
                entity_id=entity_id,
                correlation_id=correlation_id,
            )
        raise NotFoundError(f"{entity_type} not found: {entity_id}")

    async def _audit_change(
        self,
        event_type: AuditEventType,
        item: AnnualBudgetItem,
        user: User,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_item_changed(
                event_type=event_type,
                item_id=item.id,
                budget_id=item.annual_budget_id,
                user_id=user.id,
                correlation_id=correlation_id,
            )

    async def create_item(
        self,
        user: User,
        request: AnnualBudgetItemCreate,
        correlation_id: Optional[UUID] = None,
    ) -> AnnualBudgetItem:
        """
        Add an item to one of the user's budgets.

        Raises:
            NotFoundError: If the budget is missing or belongs to someone else
        """
        correlation_id = correlation_id or create_correlation_id()
        budget = await self._owned_budget(user, request.annual_budget_id, correlation_id)

        draft = AnnualBudgetItemDraft(
            **request.model_dump(include=set(AnnualBudgetItemDraft.model_fields))
        )
        item = await self._storage.add_item(budget.id, draft)

        await self._audit_change(AuditEventType.ITEM_CREATED, item, user, correlation_id)
        return item

    async def update_item(
        self,
        user: User,
        item_id: int,
        changes: AnnualBudgetItemUpdate,
        correlation_id: Optional[UUID] = None,
    ) -> AnnualBudgetItem:
        """
        Apply a partial update to one of the user's items.

        Raises:
            NotFoundError: If the item is missing or belongs to someone else
        """
        correlation_id = correlation_id or create_correlation_id()
        item = await self._owned_item(user, item_id, correlation_id)

        updated = await self._storage.update_item(item.apply(changes))

        await self._audit_change(AuditEventType.ITEM_UPDATED, updated, user, correlation_id)
        return updated

    async def delete_item(
        self,
        user: User,
        item_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete one of the user's items.

        Raises:
            NotFoundError: If the item is missing or belongs to someone else
        """
        correlation_id = correlation_id or create_correlation_id()
        item = await self._owned_item(user, item_id, correlation_id)

        if not await self._storage.delete_item(item.id):
            # Deleted by a concurrent request between the lookup and now
            raise NotFoundError(f"annual_budget_item not found: {item_id}")

        await self._audit_change(AuditEventType.ITEM_DELETED, item, user, correlation_id)


def create_app_components(
    use_storage: bool = True,
    client: Optional[SQLClient] = None,
) -> tuple[BudgetProvisioningFlow, AnnualBudgetItemFlow, MonthlyStatisticsQuery, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the configured SQL database.
                    Set to False for in-memory storage (testing, demos).
        client: SQL client to use instead of one built from settings.

    Returns:
        (provisioning_flow, item_flow, statistics_query, audit_logger)
    """
    if use_storage:
        client = client or SQLClient()
        budget_storage = SQLBudgetStorage(client)
        audit_logger = AuditLogger(SQLAuditStorage(client))
    else:
        budget_storage = InMemoryBudgetStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    provisioning_flow = BudgetProvisioningFlow(
        storage=budget_storage,
        audit_logger=audit_logger,
    )
    item_flow = AnnualBudgetItemFlow(
        storage=budget_storage,
        audit_logger=audit_logger,
    )
    statistics_query = MonthlyStatisticsQuery(
        storage=budget_storage,
        audit_logger=audit_logger,
    )

    return provisioning_flow, item_flow, statistics_query, audit_logger
