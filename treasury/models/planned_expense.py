"""Planned expense model - forecast lines against a fund."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, ForeignKey, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from treasury.models import Base, BaseModel, enum_type


class PlannedExpenseStatus(str, Enum):
    PLANNED = "planned"
    EXECUTED = "executed"
    CANCELLED = "cancelled"


class PlannedExpense(Base, BaseModel):
    """Forecast spending; excluded from netting."""

    __tablename__ = "planned_expenses"

    fund_id: Mapped[int] = mapped_column(ForeignKey("funds.id"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text(), nullable=False)
    planned_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[PlannedExpenseStatus] = mapped_column(
        enum_type(PlannedExpenseStatus),
        nullable=False,
        default=PlannedExpenseStatus.PLANNED,
    )

    fund: Mapped["Fund"] = relationship("Fund")  # noqa: F821

    def __repr__(self) -> str:
        return f"<PlannedExpense(id={self.id}, amount={self.amount}, status={self.status})>"


__all__ = ["PlannedExpense", "PlannedExpenseStatus"]
