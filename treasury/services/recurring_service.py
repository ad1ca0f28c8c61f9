"""Recurring transfer service.

Provides methods for:
- Managing recurring transfer templates (create, update, pause/resume, delete)
- Generating the current period's reimbursement for every active template

Generation is keyed by (recurring_transfer_id, period_start): running it any
number of times for the same period creates one record per template.
"""

import calendar
import logging
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from treasury.errors import ConflictError, InvalidArgumentError, NotFoundError
from treasury.models import (
    Budget,
    Fund,
    RecurrenceFrequency,
    RecurringTransfer,
    RecurringTransferStatus,
    Reimbursement,
    ReimbursementStatus,
    User,
)
from treasury.services.access_service import Actor, BudgetScope, get_fund

logger = logging.getLogger(__name__)

# Months covered by one anchored period
PERIOD_MONTHS = {
    RecurrenceFrequency.QUARTERLY: 3,
    RecurrenceFrequency.ANNUAL: 12,
}

UPDATABLE_FIELDS = {"amount", "description", "end_date", "frequency", "status"}


def add_months(value: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def period_start(frequency: RecurrenceFrequency, start_date: date, as_of: date) -> date:
    """First day of the period containing as_of.

    Monthly periods are calendar months. Quarterly and annual periods are
    blocks of 3 or 12 months anchored at start_date.
    """
    if frequency == RecurrenceFrequency.MONTHLY:
        return as_of.replace(day=1)

    step = PERIOD_MONTHS[frequency]
    elapsed = (as_of.year - start_date.year) * 12 + (as_of.month - start_date.month)
    index = max(elapsed, 0) // step
    candidate = add_months(start_date, index * step)
    if candidate > as_of and index > 0:
        candidate = add_months(start_date, (index - 1) * step)
    return candidate


def period_label(frequency: RecurrenceFrequency, start: date) -> str:
    if frequency == RecurrenceFrequency.MONTHLY:
        return start.strftime("%Y-%m")
    end = add_months(start, PERIOD_MONTHS[frequency])
    return f"{start.isoformat()}..{end.isoformat()}"


class RecurringTransferService:
    """Recurring transfer templates and the periodic generator."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    # Generation

    def generate(self, as_of: date, scope: BudgetScope | None = None) -> int:
        """Create the current period's reimbursement for every active template.

        Args:
            as_of: Date whose period is generated
            scope: Restrict generation to templates whose fund is in this scope

        Returns:
            Number of reimbursements created (0 when nothing was due)

        Raises:
            ConflictError: If a concurrent run generated the same period first
        """
        try:
            created = self._generate(as_of, scope)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Recurring generation for {as_of} collided with a concurrent run: {e}")
            raise ConflictError(
                "Recurring transfers were generated concurrently, try again"
            ) from e
        except Exception:
            self.db.rollback()
            raise

        if created:
            logger.info(f"Generated {created} recurring reimbursements for {as_of}")
        else:
            logger.info(f"No recurring reimbursements due for {as_of}")
        return created

    def _generate(self, as_of: date, scope: BudgetScope | None) -> int:
        query = self.db.query(RecurringTransfer).filter(
            RecurringTransfer.status == RecurringTransferStatus.ACTIVE,
            RecurringTransfer.start_date <= as_of,
        )
        if scope is not None:
            query = (
                query.join(Fund, RecurringTransfer.fund_id == Fund.id)
                .join(Budget, Fund.budget_id == Budget.id)
                .filter(scope.budget_clause())
            )
        templates = query.order_by(RecurringTransfer.id).all()

        reviewed_at = datetime.now(timezone.utc)
        created = 0
        for template in templates:
            start = period_start(template.frequency, template.start_date, as_of)
            period_date = max(start, template.start_date)
            if template.end_date is not None and period_date > template.end_date:
                continue

            exists = (
                self.db.query(Reimbursement.id)
                .filter(
                    Reimbursement.recurring_transfer_id == template.id,
                    Reimbursement.recurring_period_start == start,
                )
                .first()
            )
            if exists:
                continue

            self.db.add(
                Reimbursement(
                    fund_id=template.fund_id,
                    user_id=template.created_by,
                    recipient_user_id=template.recipient_user_id,
                    amount=template.amount,
                    description=(
                        f"{template.description} ({period_label(template.frequency, start)})"
                    ),
                    expense_date=period_date,
                    status=ReimbursementStatus.APPROVED,
                    reviewed_by=template.created_by,
                    reviewed_at=reviewed_at,
                    recurring_transfer_id=template.id,
                    recurring_period_start=start,
                )
            )
            created += 1
            logger.debug(f"Queued recurring reimbursement: template={template.id} period={start}")

        self.db.flush()
        return created

    # Template management

    def list_templates(self, actor: Actor) -> list[RecurringTransfer]:
        return (
            self.db.query(RecurringTransfer)
            .join(Fund, RecurringTransfer.fund_id == Fund.id)
            .join(Budget, Fund.budget_id == Budget.id)
            .filter(actor.budget_clause())
            .order_by(RecurringTransfer.created_at.desc(), RecurringTransfer.id.desc())
            .all()
        )

    def list_for_recipient(self, user_id: int) -> list[RecurringTransfer]:
        """Templates paying the given member, in every scope."""
        return (
            self.db.query(RecurringTransfer)
            .filter(RecurringTransfer.recipient_user_id == user_id)
            .order_by(RecurringTransfer.created_at.desc(), RecurringTransfer.id.desc())
            .all()
        )

    def get_template(self, template_id: int, actor: Actor) -> RecurringTransfer:
        """Get a template the actor may manage.

        Raises:
            NotFoundError: If the template does not exist
            AccessDeniedError: If its fund is outside the actor's scopes
        """
        template = (
            self.db.query(RecurringTransfer).filter(RecurringTransfer.id == template_id).first()
        )
        if not template:
            raise NotFoundError(f"Recurring transfer {template_id} not found")
        actor.require_access(BudgetScope.of_budget(template.fund.budget))
        return template

    def create_template(
        self,
        actor: Actor,
        recipient_user_id: int,
        fund_id: int,
        amount: Decimal,
        description: str,
        frequency: RecurrenceFrequency,
        start_date: date,
        end_date: date | None = None,
    ) -> RecurringTransfer:
        """Create an active recurring transfer.

        Raises:
            InvalidArgumentError: If amount or dates are invalid
            NotFoundError: If the fund or recipient does not exist
            AccessDeniedError: If the fund is outside the actor's scopes
        """
        self._validate_amount(amount)
        self._validate_window(start_date, end_date)

        fund = get_fund(self.db, fund_id)
        if not fund:
            raise NotFoundError(f"Fund {fund_id} not found")
        actor.require_access(BudgetScope.of_budget(fund.budget))

        if not self.db.query(User.id).filter(User.id == recipient_user_id).first():
            raise NotFoundError(f"Recipient user {recipient_user_id} not found")

        template = RecurringTransfer(
            recipient_user_id=recipient_user_id,
            fund_id=fund_id,
            amount=amount,
            description=description,
            frequency=RecurrenceFrequency(frequency),
            start_date=start_date,
            end_date=end_date,
            status=RecurringTransferStatus.ACTIVE,
            created_by=actor.user_id,
        )
        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)
        logger.info(
            f"Created recurring transfer id={template.id}: recipient={recipient_user_id}, "
            f"fund={fund_id}, amount={amount}, frequency={template.frequency.value}"
        )
        return template

    def update_template(self, template_id: int, actor: Actor, **changes) -> RecurringTransfer:
        """Update amount, description, end_date, frequency or status.

        The frequency is fixed once a period has been generated.

        Raises:
            InvalidArgumentError: If no field or an unknown field is given,
                a value is invalid, or the frequency of a template with
                generated periods would change
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidArgumentError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if not changes:
            raise InvalidArgumentError("No fields to update")

        template = self.get_template(template_id, actor)

        if "amount" in changes:
            self._validate_amount(changes["amount"])
        if "description" in changes and not changes["description"]:
            raise InvalidArgumentError("Description is required")
        if "end_date" in changes:
            self._validate_window(template.start_date, changes["end_date"])
        if "frequency" in changes:
            frequency = RecurrenceFrequency(changes["frequency"])
            if frequency != template.frequency and self._has_generated(template.id):
                logger.warning(
                    f"Refused frequency change of recurring transfer id={template_id}: "
                    f"periods already generated"
                )
                raise InvalidArgumentError(
                    "Frequency cannot change after periods were generated; "
                    "create a new recurring transfer instead"
                )

        for name, value in changes.items():
            if name == "frequency":
                value = RecurrenceFrequency(value)
            elif name == "status":
                value = RecurringTransferStatus(value)
            setattr(template, name, value)

        self.db.commit()
        self.db.refresh(template)
        logger.info(f"Updated recurring transfer id={template_id}: {sorted(changes)}")
        return template

    def pause(self, template_id: int, actor: Actor) -> RecurringTransfer:
        return self.update_template(template_id, actor, status=RecurringTransferStatus.PAUSED)

    def resume(self, template_id: int, actor: Actor) -> RecurringTransfer:
        return self.update_template(template_id, actor, status=RecurringTransferStatus.ACTIVE)

    def delete_template(self, template_id: int, actor: Actor) -> None:
        """Delete a template; reimbursements it generated stay and lose the link.

        Raises:
            NotFoundError: If the template does not exist
            AccessDeniedError: If its fund is outside the actor's scopes
        """
        template = self.get_template(template_id, actor)

        generated = (
            self.db.query(Reimbursement)
            .filter(Reimbursement.recurring_transfer_id == template.id)
            .all()
        )
        for reimbursement in generated:
            reimbursement.recurring_transfer_id = None
        self.db.flush()

        self.db.delete(template)
        self.db.commit()
        logger.info(
            f"Deleted recurring transfer id={template_id}; "
            f"{len(generated)} generated reimbursements kept"
        )

    def _has_generated(self, template_id: int) -> bool:
        return (
            self.db.query(Reimbursement.id)
            .filter(Reimbursement.recurring_transfer_id == template_id)
            .first()
            is not None
        )

    @staticmethod
    def _validate_amount(amount: Decimal) -> None:
        if amount is None or Decimal(amount) <= 0:
            raise InvalidArgumentError("Amount must be positive")

    @staticmethod
    def _validate_window(start_date: date, end_date: date | None) -> None:
        if end_date is not None and end_date < start_date:
            raise InvalidArgumentError("end_date must not be before start_date")


__all__ = ["RecurringTransferService", "period_start", "add_months"]
