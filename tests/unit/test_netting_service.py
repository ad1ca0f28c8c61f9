"""Tests for the netting service (pending payment transfer refresh)."""

from decimal import Decimal

import pytest

from treasury.errors import InvalidArgumentError
from treasury.models import (
    BudgetType,
    ChargeStatus,
    PaymentTransfer,
    PaymentTransferItem,
    Reimbursement,
    ReimbursementStatus,
    TransferStatus,
)
from treasury.services.access_service import BudgetScope
from treasury.services.netting_service import NettingService

pytestmark = pytest.mark.unit


def _pending(db_session, user_id):
    return (
        db_session.query(PaymentTransfer)
        .filter(
            PaymentTransfer.recipient_user_id == user_id,
            PaymentTransfer.status == TransferStatus.PENDING,
        )
        .all()
    )


class TestComputeBalances:
    """Test per-recipient netting arithmetic."""

    def test_total_is_reimbursements_minus_open_charges(
        self, db_session, ledger, make_reimbursement, make_charge
    ):
        make_reimbursement(ledger.alice, "100.00")
        make_reimbursement(ledger.alice, "20.50")
        make_charge(ledger.alice, "30.00")
        make_charge(ledger.alice, "5.00", status=ChargeStatus.PENDING)
        make_charge(ledger.alice, "7.00", status=ChargeStatus.UNDER_REVIEW)

        balances = NettingService(db_session).compute_balances(BudgetScope.circle())

        balance = balances[ledger.alice.id]
        assert balance.credits == Decimal("120.50")
        assert balance.debits == Decimal("42.00")
        assert balance.total == Decimal("78.50")
        assert balance.reimbursement_count == 2

    def test_only_approved_reimbursements_count(self, db_session, ledger, make_reimbursement):
        make_reimbursement(ledger.alice, "10")
        for status in (
            ReimbursementStatus.PENDING,
            ReimbursementStatus.UNDER_REVIEW,
            ReimbursementStatus.REJECTED,
            ReimbursementStatus.PAID,
        ):
            make_reimbursement(ledger.alice, "99", status=status)

        balances = NettingService(db_session).compute_balances(BudgetScope.circle())

        assert balances[ledger.alice.id].total == Decimal("10")
        assert balances[ledger.alice.id].reimbursement_count == 1

    def test_rejected_and_paid_charges_are_ignored(
        self, db_session, ledger, make_reimbursement, make_charge
    ):
        make_reimbursement(ledger.alice, "50")
        make_charge(ledger.alice, "20", status=ChargeStatus.REJECTED)
        make_charge(ledger.alice, "30", status=ChargeStatus.PAID)

        balances = NettingService(db_session).compute_balances(BudgetScope.circle())

        assert balances[ledger.alice.id].total == Decimal("50")
        assert balances[ledger.alice.id].charge_ids == []

    def test_reimbursement_credits_recipient_not_submitter(
        self, db_session, ledger, make_reimbursement
    ):
        make_reimbursement(ledger.alice, "40", recipient=ledger.bob)

        balances = NettingService(db_session).compute_balances(BudgetScope.circle())

        assert ledger.alice.id not in balances
        assert balances[ledger.bob.id].total == Decimal("40")

    def test_scopes_do_not_mix(self, db_session, ledger, make_reimbursement, make_charge):
        make_reimbursement(ledger.alice, "40")
        make_charge(ledger.alice, "15", fund=ledger.seeds)

        circle = NettingService(db_session).compute_balances(BudgetScope.circle())
        garden = NettingService(db_session).compute_balances(
            BudgetScope.group(ledger.garden_group.id)
        )

        assert circle[ledger.alice.id].total == Decimal("40")
        assert garden[ledger.alice.id].total == Decimal("-15")


class TestRefresh:
    """Test materialization of pending transfers."""

    def test_creates_one_pending_transfer_per_recipient(
        self, db_session, ledger, make_reimbursement, make_charge
    ):
        make_reimbursement(ledger.alice, "120")
        make_charge(ledger.alice, "50")
        make_reimbursement(ledger.bob, "15")

        result = NettingService(db_session).refresh(BudgetScope.circle())

        assert result.created == 2
        assert result.updated == result.deleted == result.unchanged == 0
        alice_transfers = _pending(db_session, ledger.alice.id)
        assert len(alice_transfers) == 1
        transfer = alice_transfers[0]
        assert transfer.total_amount == Decimal("70")
        assert transfer.reimbursement_count == 1
        assert transfer.budget_type == BudgetType.CIRCLE
        assert transfer.group_id is None
        assert len(transfer.items) == 2

    def test_second_refresh_changes_nothing(
        self, db_session, ledger, make_reimbursement, make_charge
    ):
        make_reimbursement(ledger.alice, "120")
        make_charge(ledger.alice, "50")
        service = NettingService(db_session)

        first = service.refresh(BudgetScope.circle())
        transfer = _pending(db_session, ledger.alice.id)[0]
        item_ids = [i.id for i in transfer.items]

        second = service.refresh(BudgetScope.circle())

        assert second.created == second.updated == second.deleted == 0
        assert second.unchanged == 1
        assert second.transfer_ids == first.transfer_ids
        db_session.expire_all()
        transfer = _pending(db_session, ledger.alice.id)[0]
        assert transfer.total_amount == Decimal("70")
        assert [i.id for i in transfer.items] == item_ids

    def test_updates_existing_transfer_in_place(
        self, db_session, ledger, make_reimbursement, make_charge
    ):
        make_reimbursement(ledger.alice, "120")
        service = NettingService(db_session)
        service.refresh(BudgetScope.circle())
        original = _pending(db_session, ledger.alice.id)[0]
        original_id = original.id

        make_charge(ledger.alice, "50")
        result = service.refresh(BudgetScope.circle())

        assert result.updated == 1
        transfers = _pending(db_session, ledger.alice.id)
        assert [t.id for t in transfers] == [original_id]
        assert transfers[0].total_amount == Decimal("70")
        assert len(transfers[0].charge_ids) == 1

    def test_stale_transfer_is_deleted(self, db_session, ledger, make_reimbursement):
        reimbursement = make_reimbursement(ledger.alice, "120")
        service = NettingService(db_session)
        service.refresh(BudgetScope.circle())

        reimbursement.status = ReimbursementStatus.REJECTED
        db_session.commit()
        result = service.refresh(BudgetScope.circle())

        assert result.deleted == 1
        assert _pending(db_session, ledger.alice.id) == []
        assert db_session.query(PaymentTransferItem).count() == 0

    def test_refresh_does_not_touch_records(self, db_session, ledger, make_reimbursement, make_charge):
        reimbursement = make_reimbursement(ledger.alice, "120")
        charge = make_charge(ledger.alice, "50")
        versions = (reimbursement.version, charge.version)

        NettingService(db_session).refresh(BudgetScope.circle())
        db_session.expire_all()

        assert reimbursement.status == ReimbursementStatus.APPROVED
        assert charge.status == ChargeStatus.APPROVED
        assert (reimbursement.version, charge.version) == versions

    def test_group_refresh_leaves_circle_transfers_alone(
        self, db_session, ledger, make_reimbursement
    ):
        make_reimbursement(ledger.alice, "120")
        make_reimbursement(ledger.alice, "12", fund=ledger.seeds)
        service = NettingService(db_session)
        service.refresh(BudgetScope.circle())

        result = service.refresh(BudgetScope.group(ledger.garden_group.id))

        assert result.created == 1
        assert result.deleted == 0
        transfers = sorted(_pending(db_session, ledger.alice.id), key=lambda t: t.budget_type.value)
        assert [(t.budget_type, t.total_amount) for t in transfers] == [
            (BudgetType.CIRCLE, Decimal("120")),
            (BudgetType.GROUP, Decimal("12")),
        ]

    def test_recipient_with_nothing_gets_no_transfer(self, db_session, ledger, make_reimbursement):
        make_reimbursement(ledger.alice, "10", status=ReimbursementStatus.PENDING)

        result = NettingService(db_session).refresh(BudgetScope.circle())

        assert result.created == 0
        assert db_session.query(PaymentTransfer).count() == 0

    def test_reimbursement_moved_to_another_fund_in_scope_stays_linked(
        self, db_session, ledger, make_reimbursement
    ):
        reimbursement = make_reimbursement(ledger.alice, "120")
        service = NettingService(db_session)
        service.refresh(BudgetScope.circle())

        reimbursement.fund_id = ledger.events.id
        db_session.commit()
        result = service.refresh(BudgetScope.circle())

        assert result.unchanged == 1
        assert db_session.query(Reimbursement).count() == 1


class TestBudgetScope:
    """Test scope validation."""

    def test_circle_scope_rejects_group_id(self):
        with pytest.raises(InvalidArgumentError):
            BudgetScope(BudgetType.CIRCLE, 3)

    def test_group_scope_requires_group_id(self):
        with pytest.raises(InvalidArgumentError):
            BudgetScope(BudgetType.GROUP)

    def test_str(self):
        assert str(BudgetScope.circle()) == "circle"
        assert str(BudgetScope.group(7)) == "group:7"
