"""Charge ORM model - debits a member owes to the circle."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from treasury.models import Base, BaseModel, enum_type


class ChargeStatus(str, Enum):
    """Charge lifecycle, mirroring reimbursements."""

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


# A charge is owed regardless of where it is in review
OPEN_CHARGE_STATUSES = (
    ChargeStatus.PENDING,
    ChargeStatus.UNDER_REVIEW,
    ChargeStatus.APPROVED,
)


class Charge(Base, BaseModel):
    """Amount a member owes the circle; subtracted from the member's transfer."""

    __tablename__ = "charges"

    fund_id: Mapped[int] = mapped_column(
        ForeignKey("funds.id"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
        comment="Member the charge is owed by",
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text(), nullable=False)
    charge_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[ChargeStatus] = mapped_column(
        enum_type(ChargeStatus),
        nullable=False,
        default=ChargeStatus.PENDING,
    )
    reviewed_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text(), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    fund: Mapped["Fund"] = relationship("Fund")  # noqa: F821

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (Index("idx_charge_fund_status", "fund_id", "status"),)

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_CHARGE_STATUSES

    def __repr__(self) -> str:
        return (
            f"<Charge(id={self.id}, user_id={self.user_id}, "
            f"amount={self.amount}, status={self.status})>"
        )


__all__ = ["Charge", "ChargeStatus", "OPEN_CHARGE_STATUSES"]
