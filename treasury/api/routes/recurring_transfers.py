"""Recurring transfer template API routes."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from treasury.api.deps import get_current_actor, get_current_member
from treasury.schemas.recurring_transfers import (
    CreateRecurringTransferRequest,
    RecurringTransferResponse,
    UpdateRecurringTransferRequest,
)
from treasury.services import get_db
from treasury.services.access_service import Actor
from treasury.services.recurring_service import RecurringTransferService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recurring-transfers", tags=["recurring-transfers"])


@router.get("", response_model=list[RecurringTransferResponse])
def list_recurring_transfers(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[RecurringTransferResponse]:
    templates = RecurringTransferService(db).list_templates(actor)
    return [RecurringTransferResponse.model_validate(t) for t in templates]


@router.post("", response_model=RecurringTransferResponse, status_code=status.HTTP_201_CREATED)
def create_recurring_transfer(
    request: CreateRecurringTransferRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> RecurringTransferResponse:
    """
    Create an active recurring transfer template.

    Returns:
        201: Created template
        400: Invalid amount or date window
        403: Fund outside the actor's scopes
        404: Fund or recipient not found
    """
    template = RecurringTransferService(db).create_template(
        actor,
        recipient_user_id=request.recipient_user_id,
        fund_id=request.fund_id,
        amount=request.amount,
        description=request.description,
        frequency=request.frequency,
        start_date=request.start_date,
        end_date=request.end_date,
    )
    return RecurringTransferResponse.model_validate(template)


@router.get("/my", response_model=list[RecurringTransferResponse])
def list_my_recurring_transfers(
    member: Actor = Depends(get_current_member),
    db: Session = Depends(get_db),
) -> list[RecurringTransferResponse]:
    """Templates paying the calling member; no treasurer role required."""
    templates = RecurringTransferService(db).list_for_recipient(member.user_id)
    return [RecurringTransferResponse.model_validate(t) for t in templates]


@router.get("/{template_id}", response_model=RecurringTransferResponse)
def get_recurring_transfer(
    template_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> RecurringTransferResponse:
    template = RecurringTransferService(db).get_template(template_id, actor)
    return RecurringTransferResponse.model_validate(template)


@router.patch("/{template_id}", response_model=RecurringTransferResponse)
def update_recurring_transfer(
    template_id: int,
    request: UpdateRecurringTransferRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> RecurringTransferResponse:
    """Update the fields present in the request body."""
    changes = request.model_dump(exclude_unset=True)
    template = RecurringTransferService(db).update_template(template_id, actor, **changes)
    return RecurringTransferResponse.model_validate(template)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_recurring_transfer(
    template_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> None:
    """
    Delete a template. Reimbursements it generated are kept.

    Returns:
        204: Deleted
        403: Fund outside the actor's scopes
        404: Template not found
    """
    RecurringTransferService(db).delete_template(template_id, actor)


@router.post("/{template_id}/pause", response_model=RecurringTransferResponse)
def pause_recurring_transfer(
    template_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> RecurringTransferResponse:
    template = RecurringTransferService(db).pause(template_id, actor)
    return RecurringTransferResponse.model_validate(template)


@router.post("/{template_id}/resume", response_model=RecurringTransferResponse)
def resume_recurring_transfer(
    template_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> RecurringTransferResponse:
    template = RecurringTransferService(db).resume(template_id, actor)
    return RecurringTransferResponse.model_validate(template)
