"""Pydantic schemas for payment transfer endpoints."""

from datetime import date, datetime

from pydantic import Field

from treasury.models import BudgetType, TransferStatus
from treasury.schemas import ApiModel


class PaymentTransferResponse(ApiModel):
    """Payment transfer as listed to treasurers."""

    id: int
    recipient_user_id: int
    budget_type: BudgetType
    group_id: int | None = None
    status: TransferStatus
    total_amount: float = Field(..., description="Positive: circle owes member")
    reimbursement_count: int
    created_at: datetime
    executed_at: datetime | None = None
    executed_by: int | None = None


class TransferItemResponse(ApiModel):
    """Reimbursement or charge aggregated by a transfer; charges carry negative amounts."""

    id: int
    item_type: str
    fund_id: int
    user_id: int
    recipient_user_id: int
    amount: float
    description: str
    expense_date: date
    status: str


class PaymentTransferDetailsResponse(PaymentTransferResponse):
    reimbursements: list[TransferItemResponse] = Field(default_factory=list)


class PaymentTransferStatsResponse(ApiModel):
    pending_count: int
    pending_total_amount: float
    executed_count: int
    executed_total_amount: float
    recent_executions: list[PaymentTransferResponse]


class RefreshResponse(ApiModel):
    """Outcome of refreshing one budget scope."""

    budget_type: BudgetType
    group_id: int | None = None
    created: int
    updated: int
    deleted: int
    unchanged: int
    transfer_ids: list[int]


class GenerateRecurringResponse(ApiModel):
    count: int


class ExecuteTransferResponse(ApiModel):
    """Execution outcome: the executed transfer, or the debt carried forward."""

    message: str
    transfer_id: int
    carry_forward_debt: float | None = None
    transfer: PaymentTransferResponse | None = None
