"""Recurring transfer ORM model - templates for periodic payments to members."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, ForeignKey, Index, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from treasury.models import Base, BaseModel, enum_type


class RecurrenceFrequency(str, Enum):
    """Cadence of a recurring transfer."""

    MONTHLY = "monthly"
    """Calendar month."""

    QUARTERLY = "quarterly"
    """Three-month block anchored at start_date."""

    ANNUAL = "annual"
    """Twelve-month block anchored at start_date."""


class RecurringTransferStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"


class RecurringTransfer(Base, BaseModel):
    """Template the recurring generator turns into one reimbursement per period.

    Generated periods always fall inside [start_date, end_date]; an open
    end_date means the template runs until paused.
    """

    __tablename__ = "recurring_transfers"

    recipient_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    fund_id: Mapped[int] = mapped_column(ForeignKey("funds.id"), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text(), nullable=False)
    frequency: Mapped[RecurrenceFrequency] = mapped_column(
        enum_type(RecurrenceFrequency),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[RecurringTransferStatus] = mapped_column(
        enum_type(RecurringTransferStatus),
        nullable=False,
        default=RecurringTransferStatus.ACTIVE,
    )
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)

    fund: Mapped["Fund"] = relationship("Fund")  # noqa: F821

    __table_args__ = (Index("idx_recurring_transfer_status", "status"),)

    def __repr__(self) -> str:
        return (
            f"<RecurringTransfer(id={self.id}, recipient_user_id={self.recipient_user_id}, "
            f"amount={self.amount}, frequency={self.frequency}, status={self.status})>"
        )


__all__ = ["RecurringTransfer", "RecurringTransferStatus", "RecurrenceFrequency"]
