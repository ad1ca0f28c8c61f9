"""Reimbursement ORM model - credits owed by the circle to a member."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from treasury.models import Base, BaseModel, enum_type


class ReimbursementStatus(str, Enum):
    """Review lifecycle shared by reimbursements and charges."""

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"
    """Terminal; set only when a payment transfer is executed."""


class Reimbursement(Base, BaseModel):
    """Expense a member paid on behalf of the circle and is owed back.

    Only APPROVED reimbursements take part in netting. Records generated from a
    recurring transfer carry the template id and the period they cover; the
    pair is unique so a period is generated at most once.
    """

    __tablename__ = "reimbursements"

    fund_id: Mapped[int] = mapped_column(
        ForeignKey("funds.id"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
        comment="Submitter",
    )
    recipient_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
        index=True,
        comment="Payee; NULL means the submitter",
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text(), nullable=False)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[ReimbursementStatus] = mapped_column(
        enum_type(ReimbursementStatus),
        nullable=False,
        default=ReimbursementStatus.PENDING,
    )
    receipt_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    reviewed_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text(), nullable=True)

    # Recurring generation key
    recurring_transfer_id: Mapped[int | None] = mapped_column(
        ForeignKey("recurring_transfers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    recurring_period_start: Mapped[date | None] = mapped_column(Date, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    fund: Mapped["Fund"] = relationship("Fund")  # noqa: F821

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint(
            "recurring_transfer_id",
            "recurring_period_start",
            name="uq_reimbursement_recurring_period",
        ),
        Index("idx_reimbursement_fund_status", "fund_id", "status"),
    )

    @property
    def payee_id(self) -> int:
        """User the reimbursement is paid to."""
        return self.recipient_user_id or self.user_id

    def __repr__(self) -> str:
        return (
            f"<Reimbursement(id={self.id}, fund_id={self.fund_id}, "
            f"amount={self.amount}, status={self.status})>"
        )


__all__ = ["Reimbursement", "ReimbursementStatus"]
