"""Read-only projections of payment transfers."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from treasury.errors import NotFoundError
from treasury.models import Charge, PaymentTransfer, Reimbursement, TransferStatus
from treasury.services.access_service import Actor, BudgetScope

logger = logging.getLogger(__name__)


@dataclass
class TransferDetails:
    """A transfer with the records it aggregates."""

    transfer: PaymentTransfer
    reimbursements: list[Reimbursement] = field(default_factory=list)
    charges: list[Charge] = field(default_factory=list)


@dataclass
class TransferStats:
    pending_count: int
    pending_total_amount: Decimal
    executed_count: int
    executed_total_amount: Decimal
    recent_executions: list[PaymentTransfer]


class PaymentTransferQueryService:
    """Scope-filtered payment transfer listings."""

    def __init__(self, db: Session):
        self.db = db

    def list_transfers(
        self, actor: Actor, status: TransferStatus | None = None
    ) -> list[PaymentTransfer]:
        """List transfers visible to the actor, newest first.

        Args:
            actor: Treasurer whose scopes filter the listing
            status: Optional status filter

        Returns:
            List of PaymentTransfer objects
        """
        query = self.db.query(PaymentTransfer).filter(actor.transfer_clause())
        if status is not None:
            query = query.filter(PaymentTransfer.status == status)
        return query.order_by(PaymentTransfer.created_at.desc(), PaymentTransfer.id.desc()).all()

    def get_transfer(self, transfer_id: int, actor: Actor) -> TransferDetails:
        """Get a transfer with its reimbursements and charges.

        Raises:
            NotFoundError: If the transfer does not exist
            AccessDeniedError: If it is outside the actor's scopes
        """
        transfer = self.db.query(PaymentTransfer).filter(PaymentTransfer.id == transfer_id).first()
        if not transfer:
            raise NotFoundError(f"Payment transfer {transfer_id} not found")
        actor.require_access(BudgetScope.of_transfer(transfer))

        details = TransferDetails(transfer=transfer)
        if transfer.reimbursement_ids:
            details.reimbursements = (
                self.db.query(Reimbursement)
                .filter(Reimbursement.id.in_(sorted(transfer.reimbursement_ids)))
                .order_by(Reimbursement.expense_date.desc(), Reimbursement.id)
                .all()
            )
        if transfer.charge_ids:
            details.charges = (
                self.db.query(Charge)
                .filter(Charge.id.in_(sorted(transfer.charge_ids)))
                .order_by(Charge.charge_date.desc(), Charge.id)
                .all()
            )
        return details

    def get_stats(self, actor: Actor, recent_limit: int = 5) -> TransferStats:
        """Counts and totals of pending and executed transfers in the actor's scopes."""

        def _aggregate(status: TransferStatus) -> tuple[int, Decimal]:
            count, total = (
                self.db.query(
                    func.count(PaymentTransfer.id),
                    func.coalesce(func.sum(PaymentTransfer.total_amount), 0),
                )
                .filter(actor.transfer_clause(), PaymentTransfer.status == status)
                .one()
            )
            return int(count), Decimal(str(total))

        pending_count, pending_total = _aggregate(TransferStatus.PENDING)
        executed_count, executed_total = _aggregate(TransferStatus.EXECUTED)

        recent = (
            self.db.query(PaymentTransfer)
            .filter(actor.transfer_clause(), PaymentTransfer.status == TransferStatus.EXECUTED)
            .order_by(PaymentTransfer.executed_at.desc(), PaymentTransfer.id.desc())
            .limit(recent_limit)
            .all()
        )
        return TransferStats(
            pending_count=pending_count,
            pending_total_amount=pending_total,
            executed_count=executed_count,
            executed_total_amount=executed_total,
            recent_executions=recent,
        )


__all__ = ["PaymentTransferQueryService", "TransferDetails", "TransferStats"]
