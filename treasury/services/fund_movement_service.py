"""Fund movement service - reassigns batches of records between funds.

A dry run counts the records that a commit with the same arguments would
move. Both modes build their selection from the same filter, so with no
intervening writes the counts agree.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from sqlalchemy.orm import Query, Session
from sqlalchemy.orm.exc import StaleDataError

from treasury.errors import ConflictError, InvalidArgumentError
from treasury.models import (
    DirectExpense,
    Fund,
    PlannedExpense,
    PlannedExpenseStatus,
    Reimbursement,
    ReimbursementStatus,
)
from treasury.services.access_service import Actor, BudgetScope, get_fund

logger = logging.getLogger(__name__)


class MoveKind(str, Enum):
    """Record families the movement tool can reassign."""

    REIMBURSEMENTS = "reimbursements"
    PLANNED_EXPENSES = "planned_expenses"
    DIRECT_EXPENSES = "direct_expenses"


@dataclass(frozen=True)
class MoveFilters:
    """Selection criteria; empty status sets mean every status."""

    from_date: date | None
    reimbursement_statuses: frozenset[ReimbursementStatus] = field(default_factory=frozenset)
    planned_statuses: frozenset[PlannedExpenseStatus] = field(default_factory=frozenset)


@dataclass
class MoveCounts:
    reimbursements: int = 0
    planned_expenses: int = 0
    direct_expenses: int = 0


@dataclass
class MoveResult:
    """Outcome of a dry run or commit."""

    dry_run: bool
    source_fund: Fund
    target_fund: Fund
    moved: MoveCounts


class FundMovementService:
    """Move reimbursements, planned and direct expenses between funds."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def move_items(
        self,
        source_fund_id: int,
        target_fund_id: int,
        kinds: set[MoveKind],
        filters: MoveFilters,
        dry_run: bool,
        actor: Actor | None = None,
    ) -> MoveResult:
        """Count (dry run) or reassign records from source to target fund.

        Args:
            source_fund_id: Fund records are moved out of
            target_fund_id: Fund records are moved into
            kinds: Record families to move
            filters: from_date (required) and optional status subsets
            dry_run: Only count matching records
            actor: Treasurer making the request; both funds must be in its scopes

        Returns:
            MoveResult with per-kind counts

        Raises:
            InvalidArgumentError: If arguments are inconsistent or a fund is unknown
            AccessDeniedError: If a fund is outside the actor's scopes
        """
        try:
            result = self._move_items(source_fund_id, target_fund_id, kinds, filters, dry_run, actor)
            if dry_run:
                self.db.rollback()
            else:
                self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            logger.error(f"Concurrent update while moving fund {source_fund_id} items: {e}")
            raise ConflictError("Records were modified during the move, try again") from e
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"{'Dry run' if dry_run else 'Moved'} fund {source_fund_id} -> {target_fund_id} "
            f"from {filters.from_date}: reimbursements={result.moved.reimbursements}, "
            f"planned_expenses={result.moved.planned_expenses}, "
            f"direct_expenses={result.moved.direct_expenses}"
        )
        return result

    def _move_items(
        self,
        source_fund_id: int,
        target_fund_id: int,
        kinds: set[MoveKind],
        filters: MoveFilters,
        dry_run: bool,
        actor: Actor | None,
    ) -> MoveResult:
        if not kinds:
            raise InvalidArgumentError("Select at least one kind of record to move")
        if filters.from_date is None:
            raise InvalidArgumentError("from_date is required")
        if source_fund_id == target_fund_id:
            raise InvalidArgumentError("Source and target fund must differ")

        source = get_fund(self.db, source_fund_id)
        if not source:
            raise InvalidArgumentError(f"Source fund {source_fund_id} not found")
        target = get_fund(self.db, target_fund_id)
        if not target:
            raise InvalidArgumentError(f"Target fund {target_fund_id} not found")

        if actor is not None:
            actor.require_access(BudgetScope.of_budget(source.budget))
            actor.require_access(BudgetScope.of_budget(target.budget))

        moved = MoveCounts()
        for kind in sorted(kinds, key=lambda k: k.value):
            query = self._matching(kind, source_fund_id, filters)
            count = query.count() if dry_run else self._reassign(kind, query, target_fund_id)
            setattr(moved, kind.value, count)

        return MoveResult(dry_run=dry_run, source_fund=source, target_fund=target, moved=moved)

    def _matching(self, kind: MoveKind, fund_id: int, filters: MoveFilters) -> Query:
        """Query of records of one kind matching the filters in the source fund."""
        if kind == MoveKind.REIMBURSEMENTS:
            query = self.db.query(Reimbursement).filter(
                Reimbursement.fund_id == fund_id,
                Reimbursement.expense_date >= filters.from_date,
            )
            if filters.reimbursement_statuses:
                query = query.filter(Reimbursement.status.in_(list(filters.reimbursement_statuses)))
            return query
        if kind == MoveKind.PLANNED_EXPENSES:
            query = self.db.query(PlannedExpense).filter(
                PlannedExpense.fund_id == fund_id,
                PlannedExpense.planned_date >= filters.from_date,
            )
            if filters.planned_statuses:
                query = query.filter(PlannedExpense.status.in_(list(filters.planned_statuses)))
            return query
        return self.db.query(DirectExpense).filter(
            DirectExpense.fund_id == fund_id,
            DirectExpense.expense_date >= filters.from_date,
        )

    def _reassign(self, kind: MoveKind, query: Query, target_fund_id: int) -> int:
        """Lock matching rows and point them at the target fund."""
        records = query.with_for_update().all()
        for record in records:
            record.fund_id = target_fund_id
        self.db.flush()
        logger.debug(f"Reassigned {len(records)} {kind.value} to fund {target_fund_id}")
        return len(records)


__all__ = ["FundMovementService", "MoveKind", "MoveFilters", "MoveCounts", "MoveResult"]
