"""Netting service - materializes pending payment transfers for a budget scope.

For each recipient in the scope the pending transfer total is:

    total = sum(approved reimbursements) - sum(open charges)

where open charges are pending, under review or approved. Pending transfers
are refreshed in place, so repeated refreshes over unchanged records leave
ids, totals and item sets untouched. Reimbursement and charge rows are only
read here; their status changes when a transfer is executed.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from treasury.errors import ConflictError
from treasury.models import (
    Budget,
    Charge,
    Fund,
    PaymentTransfer,
    PaymentTransferItem,
    Reimbursement,
    ReimbursementStatus,
    TransferStatus,
)
from treasury.models.charge import OPEN_CHARGE_STATUSES
from treasury.services.access_service import BudgetScope

logger = logging.getLogger(__name__)


@dataclass
class RecipientBalance:
    """Credits and debits of one recipient within a scope."""

    recipient_user_id: int
    reimbursement_ids: list[int] = field(default_factory=list)
    charge_ids: list[int] = field(default_factory=list)
    credits: Decimal = Decimal("0")
    debits: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return self.credits - self.debits

    @property
    def reimbursement_count(self) -> int:
        return len(self.reimbursement_ids)

    def item_keys(self) -> set[tuple[int | None, int | None]]:
        keys: set[tuple[int | None, int | None]] = {(r, None) for r in self.reimbursement_ids}
        keys.update((None, c) for c in self.charge_ids)
        return keys


@dataclass
class RefreshResult:
    """Outcome of refreshing one scope."""

    scope: BudgetScope
    created: int = 0
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0
    transfer_ids: list[int] = field(default_factory=list)


class NettingService:
    """Compute and persist pending payment transfers."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def compute_balances(self, scope: BudgetScope) -> dict[int, RecipientBalance]:
        """Net approved reimbursements against open charges per recipient.

        Args:
            scope: Budget scope to read records from

        Returns:
            Mapping of recipient user id to its balance
        """
        reimbursements = (
            self.db.query(Reimbursement)
            .join(Fund, Reimbursement.fund_id == Fund.id)
            .join(Budget, Fund.budget_id == Budget.id)
            .filter(
                scope.budget_clause(),
                Reimbursement.status == ReimbursementStatus.APPROVED,
            )
            .order_by(Reimbursement.id)
            .all()
        )
        charges = (
            self.db.query(Charge)
            .join(Fund, Charge.fund_id == Fund.id)
            .join(Budget, Fund.budget_id == Budget.id)
            .filter(scope.budget_clause(), Charge.status.in_(OPEN_CHARGE_STATUSES))
            .order_by(Charge.id)
            .all()
        )

        balances: dict[int, RecipientBalance] = {}
        for reimbursement in reimbursements:
            recipient_id = reimbursement.payee_id
            balance = balances.setdefault(recipient_id, RecipientBalance(recipient_id))
            balance.reimbursement_ids.append(reimbursement.id)
            balance.credits += reimbursement.amount
        for charge in charges:
            balance = balances.setdefault(charge.user_id, RecipientBalance(charge.user_id))
            balance.charge_ids.append(charge.id)
            balance.debits += charge.amount
        return balances

    def refresh(self, scope: BudgetScope) -> RefreshResult:
        """Recompute all pending transfers of a scope.

        Args:
            scope: Circle-wide or single-group scope

        Returns:
            RefreshResult with per-outcome counts

        Raises:
            ConflictError: If a concurrent refresh created a pending transfer
                for the same recipient first
        """
        try:
            result = self._refresh(scope)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Refresh of {scope} collided with a concurrent write: {e}")
            raise ConflictError(
                f"Payment transfers of {scope} budget were refreshed concurrently, try again"
            ) from e
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Refreshed payment transfers for {scope}: created={result.created}, "
            f"updated={result.updated}, deleted={result.deleted}, unchanged={result.unchanged}"
        )
        return result

    def _refresh(self, scope: BudgetScope) -> RefreshResult:
        result = RefreshResult(scope=scope)

        # Lock pending rows of the scope against concurrent execution
        pending = (
            self.db.query(PaymentTransfer)
            .options(selectinload(PaymentTransfer.items))
            .filter(scope.transfer_clause(), PaymentTransfer.status == TransferStatus.PENDING)
            .order_by(PaymentTransfer.id)
            .with_for_update()
            .all()
        )
        pending_by_recipient = {t.recipient_user_id: t for t in pending}

        balances = self.compute_balances(scope)

        touched: list[PaymentTransfer] = []
        for recipient_id in sorted(balances):
            balance = balances[recipient_id]
            transfer = pending_by_recipient.pop(recipient_id, None)
            if transfer is None:
                transfer = PaymentTransfer(
                    recipient_user_id=recipient_id,
                    budget_type=scope.budget_type,
                    group_id=scope.group_id,
                    status=TransferStatus.PENDING,
                )
                self._apply_balance(transfer, balance)
                self.db.add(transfer)
                result.created += 1
            elif self._matches(transfer, balance):
                result.unchanged += 1
            else:
                self._apply_balance(transfer, balance)
                result.updated += 1
            touched.append(transfer)

        # Recipients left without contributing records
        for stale in pending_by_recipient.values():
            logger.debug(f"Deleting stale pending transfer id={stale.id}")
            self.db.delete(stale)
            result.deleted += 1

        self.db.flush()
        result.transfer_ids = [t.id for t in touched]
        return result

    @staticmethod
    def _item_keys(transfer: PaymentTransfer) -> set[tuple[int | None, int | None]]:
        return {(i.reimbursement_id, i.charge_id) for i in transfer.items}

    def _matches(self, transfer: PaymentTransfer, balance: RecipientBalance) -> bool:
        return (
            Decimal(transfer.total_amount) == balance.total
            and transfer.reimbursement_count == balance.reimbursement_count
            and self._item_keys(transfer) == balance.item_keys()
        )

    def _apply_balance(self, transfer: PaymentTransfer, balance: RecipientBalance) -> None:
        """Write totals and reconcile the item set, keeping unchanged items."""
        transfer.total_amount = balance.total
        transfer.reimbursement_count = balance.reimbursement_count

        wanted = balance.item_keys()
        for item in list(transfer.items):
            key = (item.reimbursement_id, item.charge_id)
            if key in wanted:
                wanted.discard(key)
            else:
                transfer.items.remove(item)
        for reimbursement_id, charge_id in sorted(wanted, key=lambda k: (k[0] or 0, k[1] or 0)):
            transfer.items.append(
                PaymentTransferItem(reimbursement_id=reimbursement_id, charge_id=charge_id)
            )


__all__ = ["NettingService", "RefreshResult", "RecipientBalance"]
