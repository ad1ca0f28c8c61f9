"""Payment transfer ORM models - netting output and its backing records."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from treasury.models import Base, BaseModel, enum_type


class BudgetType(str, Enum):
    """Visibility boundary of a budget."""

    CIRCLE = "circle"
    GROUP = "group"


class TransferStatus(str, Enum):
    PENDING = "pending"
    EXECUTED = "executed"


class PaymentTransfer(Base, BaseModel):
    """Net amount to pay a member for one budget scope.

    total_amount is signed: positive means the circle owes the member,
    negative means the member owes the circle. A recipient has at most one
    PENDING transfer per scope; the netting service updates it in place.
    """

    __tablename__ = "payment_transfers"

    recipient_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    budget_type: Mapped[BudgetType] = mapped_column(enum_type(BudgetType), nullable=False)
    group_id: Mapped[int | None] = mapped_column(
        ForeignKey("groups.id"),
        nullable=True,
        comment="Set only for group budgets",
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
    )
    reimbursement_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[TransferStatus] = mapped_column(
        enum_type(TransferStatus),
        nullable=False,
        default=TransferStatus.PENDING,
    )
    executed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    executed_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    items: Mapped[list["PaymentTransferItem"]] = relationship(
        "PaymentTransferItem",
        back_populates="payment_transfer",
        cascade="all, delete-orphan",
        order_by="PaymentTransferItem.id",
    )

    @property
    def reimbursement_ids(self) -> set[int]:
        return {i.reimbursement_id for i in self.items if i.reimbursement_id is not None}

    @property
    def charge_ids(self) -> set[int]:
        return {i.charge_id for i in self.items if i.charge_id is not None}

    def __repr__(self) -> str:
        return (
            f"<PaymentTransfer(id={self.id}, recipient_user_id={self.recipient_user_id}, "
            f"scope={self.budget_type}:{self.group_id}, total={self.total_amount}, "
            f"status={self.status})>"
        )


class PaymentTransferItem(Base, BaseModel):
    """Weak reference from a transfer to one reimbursement or charge it aggregates."""

    __tablename__ = "payment_transfer_items"

    payment_transfer_id: Mapped[int] = mapped_column(
        ForeignKey("payment_transfers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reimbursement_id: Mapped[int | None] = mapped_column(
        ForeignKey("reimbursements.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    charge_id: Mapped[int | None] = mapped_column(
        ForeignKey("charges.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    payment_transfer: Mapped["PaymentTransfer"] = relationship(
        "PaymentTransfer", back_populates="items"
    )

    __table_args__ = (
        CheckConstraint(
            "(reimbursement_id IS NULL) <> (charge_id IS NULL)",
            name="ck_transfer_item_single_record",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<PaymentTransferItem(transfer={self.payment_transfer_id}, "
            f"reimbursement={self.reimbursement_id}, charge={self.charge_id})>"
        )


# One pending transfer per recipient and scope; circle scope stores group_id NULL
Index(
    "uq_pending_transfer_per_scope",
    PaymentTransfer.recipient_user_id,
    PaymentTransfer.budget_type,
    func.coalesce(PaymentTransfer.group_id, 0),
    unique=True,
    sqlite_where=text("status = 'pending'"),
    postgresql_where=text("status = 'pending'"),
)


__all__ = ["PaymentTransfer", "PaymentTransferItem", "TransferStatus", "BudgetType"]
