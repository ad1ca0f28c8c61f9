"""Pydantic schemas for the fund movement endpoint."""

from datetime import date

from pydantic import Field

from treasury.models import PlannedExpenseStatus, ReimbursementStatus
from treasury.schemas import ApiModel


class MoveItemsRequest(ApiModel):
    """Request payload for POST /funds/move-items."""

    source_fund_id: int = Field(..., description="Fund records are moved out of")
    target_fund_id: int = Field(..., description="Fund records are moved into")
    move_reimbursements: bool = False
    move_planned_expenses: bool = False
    move_direct_expenses: bool = False
    from_date: date | None = Field(None, description="Only records dated on or after")
    reimbursement_statuses: list[ReimbursementStatus] | None = None
    planned_statuses: list[PlannedExpenseStatus] | None = None
    dry_run: bool = True


class FundSummary(ApiModel):
    id: int
    name: str
    budget_id: int
    budget_name: str


class MovedCounts(ApiModel):
    reimbursements: int
    planned_expenses: int
    direct_expenses: int


class MoveItemsResponse(ApiModel):
    dry_run: bool
    source_fund: FundSummary
    target_fund: FundSummary
    moved: MovedCounts
