"""Allocation containers: groups, budgets, funds and apartments."""

from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from treasury.models import Base, BaseModel


class Group(Base, BaseModel):
    """A sub-community of the circle with its own budgets and treasurers."""

    __tablename__ = "groups"

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    budgets: Mapped[list["Budget"]] = relationship("Budget", back_populates="group")

    def __repr__(self) -> str:
        return f"<Group(id={self.id}, name={self.name!r})>"


class Budget(Base, BaseModel):
    """Model representing a budget.

    A budget without a group is circle-wide; a budget with a group belongs to
    that group's scope. Every fund inherits its scope from its budget.
    """

    __tablename__ = "budgets"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    group_id: Mapped[int | None] = mapped_column(
        ForeignKey("groups.id"),
        nullable=True,
        index=True,
        comment="Owning group; NULL for the circle-wide budget",
    )

    group: Mapped["Group | None"] = relationship("Group", back_populates="budgets")
    funds: Mapped[list["Fund"]] = relationship(
        "Fund",
        back_populates="budget",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Budget(id={self.id}, name={self.name!r}, group_id={self.group_id})>"


class Fund(Base, BaseModel):
    """Budget line that financial records are booked against."""

    __tablename__ = "funds"

    budget_id: Mapped[int] = mapped_column(
        ForeignKey("budgets.id"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    allocated_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
    )
    description: Mapped[str | None] = mapped_column(Text(), nullable=True)

    budget: Mapped["Budget"] = relationship("Budget", back_populates="funds")

    __table_args__ = (Index("idx_fund_budget_name", "budget_id", "name"),)

    def __repr__(self) -> str:
        return f"<Fund(id={self.id}, name={self.name!r}, budget_id={self.budget_id})>"


class Apartment(Base, BaseModel):
    """Residential unit that direct expenses may be tagged to."""

    __tablename__ = "apartments"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Apartment(id={self.id}, name={self.name!r})>"


__all__ = ["Group", "Budget", "Fund", "Apartment"]
