"""Shared pytest fixtures: in-memory database, seeded ledger and API client."""

import os

# Point settings at a throwaway database BEFORE any imports from treasury
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("LOG_FILE", "logs/test.log")

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from treasury.main import app  # noqa: E402
from treasury.models import (  # noqa: E402
    Base,
    Budget,
    Charge,
    ChargeStatus,
    DirectExpense,
    Fund,
    Group,
    PlannedExpense,
    PlannedExpenseStatus,
    Reimbursement,
    ReimbursementStatus,
    User,
)
from treasury.services import get_db  # noqa: E402
from treasury.services.access_service import Actor  # noqa: E402


@pytest.fixture
def db_session():
    """Create test database session."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False)
    session = SessionLocal()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def ledger(db_session):
    """Seed users, one group and circle/group budgets with funds."""
    alice = User(full_name="Alice Member", email="alice@example.org")
    bob = User(full_name="Bob Member", email="bob@example.org")
    carol = User(full_name="Carol Member", email="carol@example.org")
    treasurer = User(full_name="Tess Treasurer", email="tess@example.org")
    db_session.add_all([alice, bob, carol, treasurer])

    garden_group = Group(name="Garden")
    db_session.add(garden_group)
    db_session.flush()

    operations = Budget(name="Operations 2025")
    garden_budget = Budget(name="Garden 2025", group_id=garden_group.id)
    db_session.add_all([operations, garden_budget])
    db_session.flush()

    maintenance = Fund(budget_id=operations.id, name="Maintenance", allocated_amount=Decimal("5000"))
    events = Fund(budget_id=operations.id, name="Events", allocated_amount=Decimal("1500"))
    seeds = Fund(budget_id=garden_budget.id, name="Seeds", allocated_amount=Decimal("800"))
    db_session.add_all([maintenance, events, seeds])
    db_session.commit()

    return SimpleNamespace(
        alice=alice,
        bob=bob,
        carol=carol,
        treasurer=treasurer,
        garden_group=garden_group,
        operations=operations,
        garden_budget=garden_budget,
        maintenance=maintenance,
        events=events,
        seeds=seeds,
    )


@pytest.fixture
def make_reimbursement(db_session, ledger):
    """Factory for reimbursements; defaults to an approved expense in Maintenance."""

    def _make(
        user,
        amount,
        fund=None,
        status=ReimbursementStatus.APPROVED,
        recipient=None,
        expense_date=date(2025, 3, 10),
        description="Hardware store",
    ):
        reimbursement = Reimbursement(
            fund_id=(fund or ledger.maintenance).id,
            user_id=user.id,
            recipient_user_id=recipient.id if recipient else None,
            amount=Decimal(str(amount)),
            description=description,
            expense_date=expense_date,
            status=status,
        )
        db_session.add(reimbursement)
        db_session.commit()
        return reimbursement

    return _make


@pytest.fixture
def make_charge(db_session, ledger):
    """Factory for charges; defaults to an approved charge in Maintenance."""

    def _make(
        user,
        amount,
        fund=None,
        status=ChargeStatus.APPROVED,
        charge_date=date(2025, 3, 12),
        description="Parking fee",
    ):
        charge = Charge(
            fund_id=(fund or ledger.maintenance).id,
            user_id=user.id,
            amount=Decimal(str(amount)),
            description=description,
            charge_date=charge_date,
            status=status,
        )
        db_session.add(charge)
        db_session.commit()
        return charge

    return _make


@pytest.fixture
def make_planned_expense(db_session, ledger):
    def _make(amount, planned_date, fund=None, status=PlannedExpenseStatus.PLANNED):
        expense = PlannedExpense(
            fund_id=(fund or ledger.maintenance).id,
            user_id=ledger.treasurer.id,
            amount=Decimal(str(amount)),
            description="Roof inspection",
            planned_date=planned_date,
            status=status,
        )
        db_session.add(expense)
        db_session.commit()
        return expense

    return _make


@pytest.fixture
def make_direct_expense(db_session, ledger):
    def _make(amount, expense_date, fund=None):
        expense = DirectExpense(
            fund_id=(fund or ledger.maintenance).id,
            amount=Decimal(str(amount)),
            description="Electricity bill",
            expense_date=expense_date,
            payee="City Power",
            created_by=ledger.treasurer.id,
        )
        db_session.add(expense)
        db_session.commit()
        return expense

    return _make


@pytest.fixture
def circle_treasurer(ledger):
    return Actor(user_id=ledger.treasurer.id, is_circle_treasurer=True)


@pytest.fixture
def garden_treasurer(ledger):
    return Actor(user_id=ledger.treasurer.id, group_ids=frozenset({ledger.garden_group.id}))


@pytest.fixture
def client(db_session):
    """Create test client with database dependency override."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def treasurer_headers(ledger):
    """Headers of a user who treasures the circle budget and the Garden group."""
    return {
        "X-User-Id": str(ledger.treasurer.id),
        "X-Circle-Treasurer": "true",
        "X-Group-Ids": str(ledger.garden_group.id),
    }
