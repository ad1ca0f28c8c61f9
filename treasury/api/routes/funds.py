"""Fund API routes: batch reassignment of records between funds."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from treasury.api.deps import get_current_actor
from treasury.models import Fund
from treasury.schemas.funds import FundSummary, MovedCounts, MoveItemsRequest, MoveItemsResponse
from treasury.services import get_db
from treasury.services.access_service import Actor
from treasury.services.fund_movement_service import FundMovementService, MoveFilters, MoveKind

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/funds", tags=["funds"])


def _summary(fund: Fund) -> FundSummary:
    return FundSummary(
        id=fund.id,
        name=fund.name,
        budget_id=fund.budget_id,
        budget_name=fund.budget.name,
    )


@router.post("/move-items", response_model=MoveItemsResponse)
def move_items(
    request: MoveItemsRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> MoveItemsResponse:
    """
    Move reimbursements, planned and direct expenses from one fund to another.

    With dryRun (the default) nothing is written and the response carries the
    counts a commit would move.

    Returns:
        200: Per-kind counts and both fund summaries
        400: No kind selected, missing fromDate, same fund or unknown fund
        403: A fund is outside the actor's scopes
        409: Records changed concurrently during the move
    """
    kinds = set()
    if request.move_reimbursements:
        kinds.add(MoveKind.REIMBURSEMENTS)
    if request.move_planned_expenses:
        kinds.add(MoveKind.PLANNED_EXPENSES)
    if request.move_direct_expenses:
        kinds.add(MoveKind.DIRECT_EXPENSES)

    filters = MoveFilters(
        from_date=request.from_date,
        reimbursement_statuses=frozenset(request.reimbursement_statuses or ()),
        planned_statuses=frozenset(request.planned_statuses or ()),
    )

    result = FundMovementService(db).move_items(
        source_fund_id=request.source_fund_id,
        target_fund_id=request.target_fund_id,
        kinds=kinds,
        filters=filters,
        dry_run=request.dry_run,
        actor=actor,
    )

    return MoveItemsResponse(
        dry_run=result.dry_run,
        source_fund=_summary(result.source_fund),
        target_fund=_summary(result.target_fund),
        moved=MovedCounts(
            reimbursements=result.moved.reimbursements,
            planned_expenses=result.moved.planned_expenses,
            direct_expenses=result.moved.direct_expenses,
        ),
    )
