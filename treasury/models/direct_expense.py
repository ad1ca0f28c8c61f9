"""Direct expense model - treasurer-entered expenses outside the approval flow."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from treasury.models import Base, BaseModel


class DirectExpense(Base, BaseModel):
    """Expense paid straight from a fund.

    Attributes:
        fund_id: Fund the expense is booked against
        amount: Expense amount
        description: What was paid for
        expense_date: Date of the expense
        payee: Vendor or person that received the money
        receipt_url: Optional link to the receipt
        apartment_id: Optional apartment the expense relates to
        created_by: Treasurer who entered the expense
    """

    __tablename__ = "direct_expenses"

    fund_id: Mapped[int] = mapped_column(ForeignKey("funds.id"), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text(), nullable=False)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    payee: Mapped[str] = mapped_column(String(255), nullable=False)
    receipt_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    apartment_id: Mapped[int | None] = mapped_column(
        ForeignKey("apartments.id"), nullable=True, index=True
    )
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)

    fund: Mapped["Fund"] = relationship("Fund")  # noqa: F821
    apartment: Mapped["Apartment | None"] = relationship("Apartment")  # noqa: F821

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<DirectExpense(id={self.id}, amount={self.amount}, payee={self.payee!r})>"


__all__ = ["DirectExpense"]
