"""
HTTP Routes

Each handler does three things only: take the authenticated user,
pass the raw path/body values to a flow, and return its result.
Validation, ownership checks and error logging live in the flows.
"""

from fastapi import APIRouter, Depends, Request

from budgetal.api.auth import current_user
from budgetal.models.budget import (
    AnnualBudgetItem,
    AnnualBudgetItemCreate,
    AnnualBudgetItemUpdate,
    CamelModel,
    MonthlyStatistics,
    ProvisionedBudget,
    User,
)


router = APIRouter()


class AnnualBudgetItemResponse(CamelModel):
    annual_budget_item: AnnualBudgetItem


class OkResponse(CamelModel):
    ok: bool = True


@router.get("/health", include_in_schema=False)
async def health() -> dict:
    return {"status": "ok"}


@router.get("/annual-budgets/{year}", response_model=ProvisionedBudget)
async def annual_budgets_index(
    year: str,
    request: Request,
    user: User = Depends(current_user),
) -> ProvisionedBudget:
    return await request.app.state.provisioning_flow.ensure_budget(
        user,
        year,
        correlation_id=request.state.correlation_id,
    )


@router.get("/monthly-statistics/{year}/{month}", response_model=MonthlyStatistics)
async def monthly_statistics_show(
    year: str,
    month: str,
    request: Request,
    user: User = Depends(current_user),
) -> MonthlyStatistics:
    categories = await request.app.state.statistics_query.monthly_statistics(
        user,
        year,
        month,
        correlation_id=request.state.correlation_id,
    )
    return MonthlyStatistics(budget_categories=categories)


@router.post("/annual-budget-items", response_model=AnnualBudgetItemResponse)
async def annual_budget_items_create(
    payload: AnnualBudgetItemCreate,
    request: Request,
    user: User = Depends(current_user),
) -> AnnualBudgetItemResponse:
    item = await request.app.state.item_flow.create_item(
        user,
        payload,
        correlation_id=request.state.correlation_id,
    )
    return AnnualBudgetItemResponse(annual_budget_item=item)


@router.put("/annual-budget-items/{item_id}", response_model=AnnualBudgetItemResponse)
async def annual_budget_items_update(
    item_id: int,
    payload: AnnualBudgetItemUpdate,
    request: Request,
    user: User = Depends(current_user),
) -> AnnualBudgetItemResponse:
    item = await request.app.state.item_flow.update_item(
        user,
        item_id,
        payload,
        correlation_id=request.state.correlation_id,
    )
    return AnnualBudgetItemResponse(annual_budget_item=item)


@router.delete("/annual-budget-items/{item_id}", response_model=OkResponse)
async def annual_budget_items_delete(
    item_id: int,
    request: Request,
    user: User = Depends(current_user),
) -> OkResponse:
    await request.app.state.item_flow.delete_item(
        user,
        item_id,
        correlation_id=request.state.correlation_id,
    )
    return OkResponse()
