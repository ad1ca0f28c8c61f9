"""Payment transfer execution.

Executing a pending transfer settles every record it aggregates in one
transaction. Two paths:

- total >= 0: reimbursements and charges become PAID and the transfer is
  marked EXECUTED with the executing treasurer and timestamp.
- total < 0: the member owes the circle, so nothing is paid out. The linked
  charges are settled by carry-forward, the reimbursements stay APPROVED and
  the transfer row is removed. Because the reimbursements keep their credit
  for the next refresh, the consumed charges are consolidated into a single
  carried-forward charge of their gross amount; the next refresh therefore
  reproduces the negative balance together with any new activity.

Any sign that the linked records changed since the last refresh aborts the
whole execution with ConflictError.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from treasury.errors import ConflictError, InvalidStateError, NotFoundError, TreasuryError
from treasury.models import (
    Charge,
    ChargeStatus,
    Fund,
    PaymentTransfer,
    Reimbursement,
    ReimbursementStatus,
    TransferStatus,
)
from treasury.services.access_service import Actor, BudgetScope

logger = logging.getLogger(__name__)

CARRY_FORWARD_NOTE = "Settled by carry-forward of payment transfer #{transfer_id}"


@dataclass
class ExecutionResult:
    """Outcome of executing a payment transfer."""

    transfer_id: int
    transfer: PaymentTransfer | None = None
    """The executed transfer; None when the debt was carried forward."""

    carry_forward_debt: Decimal | None = None
    """Absolute negative balance deferred to the next netting cycle."""

    carry_forward_charge_id: int | None = None

    @property
    def carried_forward(self) -> bool:
        return self.carry_forward_debt is not None


class TransferExecutionService:
    """State transitions of payment transfers."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def execute(self, transfer_id: int, actor: Actor) -> ExecutionResult:
        """Execute a pending payment transfer.

        Args:
            transfer_id: Payment transfer to execute
            actor: Treasurer performing the execution

        Returns:
            ExecutionResult with either the executed transfer or the carried
            forward debt

        Raises:
            NotFoundError: If the transfer does not exist
            AccessDeniedError: If the transfer is outside the actor's scopes
            InvalidStateError: If the transfer is not pending or has no records
            ConflictError: If linked records changed since the last refresh
        """
        try:
            result = self._execute(transfer_id, actor)
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            logger.error(f"Concurrent update while executing transfer {transfer_id}: {e}")
            raise ConflictError(
                f"Records of payment transfer {transfer_id} were modified concurrently"
            ) from e
        except TreasuryError as e:
            self.db.rollback()
            logger.warning(f"Execution of transfer {transfer_id} rejected: {e.message}")
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to execute transfer {transfer_id}: {e}", exc_info=True)
            raise

        if result.carried_forward:
            logger.info(
                f"Transfer {transfer_id} carried forward debt={result.carry_forward_debt} "
                f"as charge {result.carry_forward_charge_id} by user_id={actor.user_id}"
            )
        else:
            logger.info(
                f"Executed transfer {transfer_id}: total={result.transfer.total_amount} "
                f"by user_id={actor.user_id}"
            )
        return result

    def _execute(self, transfer_id: int, actor: Actor) -> ExecutionResult:
        transfer = (
            self.db.query(PaymentTransfer)
            .filter(PaymentTransfer.id == transfer_id)
            .with_for_update()
            .first()
        )
        if not transfer:
            raise NotFoundError(f"Payment transfer {transfer_id} not found")

        scope = BudgetScope.of_transfer(transfer)
        actor.require_access(scope)

        if transfer.status != TransferStatus.PENDING:
            raise InvalidStateError(f"Payment transfer {transfer_id} was already executed")
        if not transfer.items:
            raise InvalidStateError(
                f"Payment transfer {transfer_id} has no reimbursements or charges"
            )

        reimbursements, charges = self._lock_records(transfer)
        self._verify_records(transfer, scope, reimbursements, charges)

        total = Decimal(transfer.total_amount)
        if total >= 0:
            return self._settle(transfer, actor, reimbursements, charges)
        return self._carry_forward(transfer, charges, total)

    def _lock_records(
        self, transfer: PaymentTransfer
    ) -> tuple[list[Reimbursement], list[Charge]]:
        reimbursement_ids = transfer.reimbursement_ids
        charge_ids = transfer.charge_ids

        reimbursements: list[Reimbursement] = []
        if reimbursement_ids:
            reimbursements = (
                self.db.query(Reimbursement)
                .options(selectinload(Reimbursement.fund).selectinload(Fund.budget))
                .filter(Reimbursement.id.in_(sorted(reimbursement_ids)))
                .order_by(Reimbursement.id)
                .with_for_update()
                .all()
            )
        charges: list[Charge] = []
        if charge_ids:
            charges = (
                self.db.query(Charge)
                .options(selectinload(Charge.fund).selectinload(Fund.budget))
                .filter(Charge.id.in_(sorted(charge_ids)))
                .order_by(Charge.id)
                .with_for_update()
                .all()
            )

        if len(reimbursements) != len(reimbursement_ids) or len(charges) != len(charge_ids):
            raise ConflictError(
                f"Records of payment transfer {transfer.id} were deleted, refresh and try again"
            )
        return reimbursements, charges

    def _verify_records(
        self,
        transfer: PaymentTransfer,
        scope: BudgetScope,
        reimbursements: list[Reimbursement],
        charges: list[Charge],
    ) -> None:
        """Check that every linked record still matches what refresh saw."""
        for reimbursement in reimbursements:
            if reimbursement.status != ReimbursementStatus.APPROVED:
                raise ConflictError(
                    f"Reimbursement {reimbursement.id} is {reimbursement.status.value}, "
                    f"refresh payment transfers and try again"
                )
            if reimbursement.payee_id != transfer.recipient_user_id:
                raise ConflictError(f"Reimbursement {reimbursement.id} changed recipient")
            if BudgetScope.of_budget(reimbursement.fund.budget) != scope:
                raise ConflictError(f"Reimbursement {reimbursement.id} moved to another budget")
        for charge in charges:
            if not charge.is_open:
                raise ConflictError(
                    f"Charge {charge.id} is {charge.status.value}, "
                    f"refresh payment transfers and try again"
                )
            if charge.user_id != transfer.recipient_user_id:
                raise ConflictError(f"Charge {charge.id} changed member")
            if BudgetScope.of_budget(charge.fund.budget) != scope:
                raise ConflictError(f"Charge {charge.id} moved to another budget")

        recomputed = sum((r.amount for r in reimbursements), Decimal("0")) - sum(
            (c.amount for c in charges), Decimal("0")
        )
        if recomputed != Decimal(transfer.total_amount) or transfer.reimbursement_count != len(
            reimbursements
        ):
            raise ConflictError(
                f"Payment transfer {transfer.id} is out of date, refresh and try again"
            )

    def _settle(
        self,
        transfer: PaymentTransfer,
        actor: Actor,
        reimbursements: list[Reimbursement],
        charges: list[Charge],
    ) -> ExecutionResult:
        for reimbursement in reimbursements:
            reimbursement.status = ReimbursementStatus.PAID
        for charge in charges:
            charge.status = ChargeStatus.PAID

        transfer.status = TransferStatus.EXECUTED
        transfer.executed_at = datetime.now(timezone.utc)
        transfer.executed_by = actor.user_id
        self.db.flush()
        return ExecutionResult(transfer_id=transfer.id, transfer=transfer)

    def _carry_forward(
        self,
        transfer: PaymentTransfer,
        charges: list[Charge],
        total: Decimal,
    ) -> ExecutionResult:
        transfer_id = transfer.id
        note = CARRY_FORWARD_NOTE.format(transfer_id=transfer_id)

        for charge in charges:
            charge.status = ChargeStatus.PAID
            charge.notes = f"{charge.notes}\n{note}" if charge.notes else note

        carried = Charge(
            fund_id=charges[0].fund_id,
            user_id=transfer.recipient_user_id,
            amount=sum((c.amount for c in charges), Decimal("0")),
            description=f"Carried-forward debt from payment transfer #{transfer_id}",
            charge_date=datetime.now(timezone.utc).date(),
            status=ChargeStatus.APPROVED,
            notes="Consolidates charges: " + ", ".join(f"#{c.id}" for c in charges),
        )
        self.db.add(carried)
        self.db.delete(transfer)
        self.db.flush()

        return ExecutionResult(
            transfer_id=transfer_id,
            carry_forward_debt=-total,
            carry_forward_charge_id=carried.id,
        )


__all__ = ["TransferExecutionService", "ExecutionResult"]
