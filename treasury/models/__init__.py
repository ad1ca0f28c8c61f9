"""SQLAlchemy base model with common fields and model exports."""

from datetime import datetime, timezone

from enum import Enum

from sqlalchemy import DateTime
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Base class for all models
Base = declarative_base()


def enum_type(enum_cls: type[Enum]) -> SQLEnum:
    """Column type storing a str enum by its lowercase value."""
    return SQLEnum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


class BaseModel:
    """Base model with common timestamp fields."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


# Import models to register them with Base (after Base is defined)
# This must be after Base declaration to avoid circular imports
from treasury.models.user import User  # noqa: E402
from treasury.models.budget import Apartment, Budget, Fund, Group  # noqa: E402
from treasury.models.reimbursement import Reimbursement, ReimbursementStatus  # noqa: E402
from treasury.models.charge import Charge, ChargeStatus  # noqa: E402
from treasury.models.direct_expense import DirectExpense  # noqa: E402
from treasury.models.planned_expense import PlannedExpense, PlannedExpenseStatus  # noqa: E402
from treasury.models.recurring_transfer import (  # noqa: E402
    RecurrenceFrequency,
    RecurringTransfer,
    RecurringTransferStatus,
)
from treasury.models.payment_transfer import (  # noqa: E402
    BudgetType,
    PaymentTransfer,
    PaymentTransferItem,
    TransferStatus,
)

__all__ = [
    "Base",
    "BaseModel",
    "User",
    "Group",
    "Budget",
    "Fund",
    "Apartment",
    "Reimbursement",
    "ReimbursementStatus",
    "Charge",
    "ChargeStatus",
    "DirectExpense",
    "PlannedExpense",
    "PlannedExpenseStatus",
    "RecurringTransfer",
    "RecurringTransferStatus",
    "RecurrenceFrequency",
    "PaymentTransfer",
    "PaymentTransferItem",
    "TransferStatus",
    "BudgetType",
]
