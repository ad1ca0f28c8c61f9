"""Budget scope resolution and treasurer access checks.

Provides unified helpers for:
- Deriving the budget scope (circle or one group) of a fund
- Filtering ledger queries to a scope
- Checking whether the acting treasurer may operate on a scope
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy import and_, false, or_
from sqlalchemy.orm import Session, joinedload

from treasury.errors import AccessDeniedError, InvalidArgumentError
from treasury.models import Budget, BudgetType, Fund, PaymentTransfer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BudgetScope:
    """Visibility boundary of a budget: circle-wide or a single group."""

    budget_type: BudgetType
    group_id: int | None = None

    def __post_init__(self) -> None:
        if self.budget_type == BudgetType.CIRCLE and self.group_id is not None:
            raise InvalidArgumentError("Circle scope cannot carry a group id")
        if self.budget_type == BudgetType.GROUP and self.group_id is None:
            raise InvalidArgumentError("Group scope requires a group id")

    @classmethod
    def circle(cls) -> "BudgetScope":
        return cls(BudgetType.CIRCLE)

    @classmethod
    def group(cls, group_id: int) -> "BudgetScope":
        return cls(BudgetType.GROUP, group_id)

    @classmethod
    def of_budget(cls, budget: Budget) -> "BudgetScope":
        if budget.group_id is None:
            return cls.circle()
        return cls.group(budget.group_id)

    @classmethod
    def of_transfer(cls, transfer: PaymentTransfer) -> "BudgetScope":
        return cls(BudgetType(transfer.budget_type), transfer.group_id)

    def budget_clause(self):
        """WHERE clause restricting a query joined to Budget to this scope."""
        if self.budget_type == BudgetType.CIRCLE:
            return Budget.group_id.is_(None)
        return Budget.group_id == self.group_id

    def transfer_clause(self):
        """WHERE clause restricting PaymentTransfer rows to this scope."""
        if self.budget_type == BudgetType.CIRCLE:
            return and_(
                PaymentTransfer.budget_type == BudgetType.CIRCLE,
                PaymentTransfer.group_id.is_(None),
            )
        return and_(
            PaymentTransfer.budget_type == BudgetType.GROUP,
            PaymentTransfer.group_id == self.group_id,
        )

    def __str__(self) -> str:
        if self.budget_type == BudgetType.CIRCLE:
            return "circle"
        return f"group:{self.group_id}"


@dataclass(frozen=True)
class Actor:
    """Acting treasurer as supplied by the identity gateway."""

    user_id: int
    """User performing the request."""

    is_circle_treasurer: bool = False
    """May operate on the circle-wide budget."""

    group_ids: frozenset[int] = field(default_factory=frozenset)
    """Groups whose budgets this user is treasurer of."""

    @property
    def is_treasurer(self) -> bool:
        return self.is_circle_treasurer or bool(self.group_ids)

    def can_access(self, scope: BudgetScope) -> bool:
        if scope.budget_type == BudgetType.CIRCLE:
            return self.is_circle_treasurer
        return scope.group_id in self.group_ids

    def require_access(self, scope: BudgetScope) -> None:
        """Raise AccessDeniedError unless the actor may operate on scope."""
        if not self.can_access(scope):
            logger.warning(f"Access denied: user_id={self.user_id} scope={scope}")
            raise AccessDeniedError(f"No treasurer access to {scope} budget")

    def scopes(self) -> list[BudgetScope]:
        """All scopes this actor may operate on."""
        result = [BudgetScope.circle()] if self.is_circle_treasurer else []
        result.extend(BudgetScope.group(g) for g in sorted(self.group_ids))
        return result

    def transfer_clause(self):
        """WHERE clause restricting PaymentTransfer rows to the actor's scopes."""
        clauses = [scope.transfer_clause() for scope in self.scopes()]
        return or_(*clauses) if clauses else false()

    def budget_clause(self):
        """WHERE clause restricting a query joined to Budget to the actor's scopes."""
        clauses = [scope.budget_clause() for scope in self.scopes()]
        return or_(*clauses) if clauses else false()


def get_fund(db: Session, fund_id: int) -> Fund | None:
    """Load a fund with its budget, or None if it does not exist."""
    return (
        db.query(Fund)
        .options(joinedload(Fund.budget))
        .filter(Fund.id == fund_id)
        .first()
    )


__all__ = ["BudgetScope", "Actor", "get_fund"]
