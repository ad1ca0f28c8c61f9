"""Pydantic schemas for recurring transfer endpoints."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field

from treasury.models import RecurrenceFrequency, RecurringTransferStatus
from treasury.schemas import ApiModel


class CreateRecurringTransferRequest(ApiModel):
    """Request payload for POST /recurring-transfers."""

    recipient_user_id: int
    fund_id: int
    amount: Decimal = Field(..., gt=0)
    description: str = Field(..., min_length=1)
    frequency: RecurrenceFrequency
    start_date: date
    end_date: date | None = None


class UpdateRecurringTransferRequest(ApiModel):
    """Request payload for PATCH /recurring-transfers/{id}; omitted fields are kept."""

    amount: Decimal | None = Field(None, gt=0)
    description: str | None = Field(None, min_length=1)
    end_date: date | None = None
    frequency: RecurrenceFrequency | None = None
    status: RecurringTransferStatus | None = None


class RecurringTransferResponse(ApiModel):
    id: int
    recipient_user_id: int
    fund_id: int
    amount: float
    description: str
    frequency: RecurrenceFrequency
    start_date: date
    end_date: date | None = None
    status: RecurringTransferStatus
    created_by: int
    created_at: datetime
    updated_at: datetime
