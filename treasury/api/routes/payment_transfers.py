"""Payment transfer API routes: netting refresh, execution, recurring generation."""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from treasury.api.deps import get_current_actor
from treasury.config import settings
from treasury.errors import TreasuryError
from treasury.models import BudgetType, TransferStatus
from treasury.schemas.payment_transfers import (
    ExecuteTransferResponse,
    GenerateRecurringResponse,
    PaymentTransferDetailsResponse,
    PaymentTransferResponse,
    PaymentTransferStatsResponse,
    RefreshResponse,
    TransferItemResponse,
)
from treasury.services import get_db
from treasury.services.access_service import Actor, BudgetScope
from treasury.services.netting_service import NettingService
from treasury.services.recurring_service import RecurringTransferService
from treasury.services.transfer_query_service import PaymentTransferQueryService
from treasury.services.transfer_service import TransferExecutionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment-transfers", tags=["payment-transfers"])


def _requested_scopes(
    actor: Actor, budget_type: BudgetType | None, group_id: int | None
) -> list[BudgetScope]:
    """Scope named by query parameters, or every scope of the actor."""
    if budget_type is None:
        if group_id is not None:
            return [BudgetScope.group(group_id)]
        return actor.scopes()
    return [BudgetScope(budget_type, group_id)]


@router.get("", response_model=list[PaymentTransferResponse])
def list_payment_transfers(
    status_filter: TransferStatus | None = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[PaymentTransferResponse]:
    """List transfers in the actor's scopes, newest first."""
    transfers = PaymentTransferQueryService(db).list_transfers(actor, status_filter)
    return [PaymentTransferResponse.model_validate(t) for t in transfers]


@router.get("/stats", response_model=PaymentTransferStatsResponse)
def payment_transfer_stats(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> PaymentTransferStatsResponse:
    """Pending/executed counts and totals plus the most recent executions."""
    stats = PaymentTransferQueryService(db).get_stats(actor, settings.recent_executions_limit)
    return PaymentTransferStatsResponse(
        pending_count=stats.pending_count,
        pending_total_amount=float(stats.pending_total_amount),
        executed_count=stats.executed_count,
        executed_total_amount=float(stats.executed_total_amount),
        recent_executions=[
            PaymentTransferResponse.model_validate(t) for t in stats.recent_executions
        ],
    )


@router.post("/refresh", response_model=list[RefreshResponse])
def refresh_payment_transfers(
    budget_type: BudgetType | None = Query(None, alias="budgetType"),
    group_id: int | None = Query(None, alias="groupId"),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[RefreshResponse]:
    """
    Recompute pending transfers for one scope or every scope of the actor.

    Returns:
        200: One summary per refreshed scope
        400: Inconsistent budgetType/groupId
        403: Scope outside the actor's access
        409: Concurrent refresh of the same scope
    """
    scopes = _requested_scopes(actor, budget_type, group_id)
    for scope in scopes:
        actor.require_access(scope)

    service = NettingService(db)
    responses = []
    for scope in scopes:
        result = service.refresh(scope)
        responses.append(
            RefreshResponse(
                budget_type=scope.budget_type,
                group_id=scope.group_id,
                created=result.created,
                updated=result.updated,
                deleted=result.deleted,
                unchanged=result.unchanged,
                transfer_ids=result.transfer_ids,
            )
        )
    return responses


@router.post("/generate-recurring", response_model=GenerateRecurringResponse)
def generate_recurring(
    as_of: date | None = Query(None, alias="asOf"),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> GenerateRecurringResponse:
    """Generate the current period's recurring reimbursements in the actor's scopes."""
    run_date = as_of or date.today()
    service = RecurringTransferService(db)
    count = sum(service.generate(run_date, scope) for scope in actor.scopes())
    return GenerateRecurringResponse(count=count)


@router.get("/{transfer_id}", response_model=PaymentTransferDetailsResponse)
def get_payment_transfer(
    transfer_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> PaymentTransferDetailsResponse:
    """Transfer with its reimbursements and charges (charges as negative amounts)."""
    details = PaymentTransferQueryService(db).get_transfer(transfer_id, actor)

    items = [
        TransferItemResponse(
            id=r.id,
            item_type="reimbursement",
            fund_id=r.fund_id,
            user_id=r.user_id,
            recipient_user_id=r.payee_id,
            amount=float(r.amount),
            description=r.description,
            expense_date=r.expense_date,
            status=r.status.value,
        )
        for r in details.reimbursements
    ]
    items.extend(
        TransferItemResponse(
            id=c.id,
            item_type="charge",
            fund_id=c.fund_id,
            user_id=c.user_id,
            recipient_user_id=c.user_id,
            amount=-float(c.amount),
            description=c.description,
            expense_date=c.charge_date,
            status=c.status.value,
        )
        for c in details.charges
    )
    items.sort(key=lambda item: item.expense_date, reverse=True)

    response = PaymentTransferDetailsResponse.model_validate(details.transfer)
    response.reimbursements = items
    return response


@router.post("/{transfer_id}/execute", response_model=ExecuteTransferResponse)
def execute_payment_transfer(
    transfer_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> ExecuteTransferResponse:
    """
    Execute a pending transfer.

    Returns:
        200: Executed transfer, or carryForwardDebt when the member owes the circle
        400: Transfer already executed or empty
        403: Transfer outside the actor's scopes
        404: Transfer not found
        409: Linked records changed since the last refresh
    """
    try:
        result = TransferExecutionService(db).execute(transfer_id, actor)
    except TreasuryError:
        raise
    except Exception as e:
        logger.error(f"Error executing payment transfer {transfer_id}: {e}", exc_info=True)
        raise TreasuryError(
            "Failed to execute payment transfer",
            "internal_error",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        ) from e

    if result.carried_forward:
        return ExecuteTransferResponse(
            message="Debt carried forward to the next transfer",
            transfer_id=transfer_id,
            carry_forward_debt=float(result.carry_forward_debt),
        )
    return ExecuteTransferResponse(
        message="Payment transfer executed",
        transfer_id=transfer_id,
        transfer=PaymentTransferResponse.model_validate(result.transfer),
    )
