"""Tests for budget scopes and treasurer access."""

import pytest

from treasury.errors import AccessDeniedError, InvalidArgumentError
from treasury.models import Budget, BudgetType, PaymentTransfer
from treasury.services.access_service import Actor, BudgetScope

pytestmark = pytest.mark.unit


class TestActor:
    """Test the union of circle and group access."""

    def test_circle_treasurer_reaches_circle_only(self):
        actor = Actor(user_id=1, is_circle_treasurer=True)

        assert actor.can_access(BudgetScope.circle())
        assert not actor.can_access(BudgetScope.group(5))

    def test_group_treasurer_reaches_listed_groups(self):
        actor = Actor(user_id=1, group_ids=frozenset({5, 6}))

        assert actor.can_access(BudgetScope.group(5))
        assert actor.can_access(BudgetScope.group(6))
        assert not actor.can_access(BudgetScope.group(7))
        assert not actor.can_access(BudgetScope.circle())

    def test_scopes_are_ordered(self):
        actor = Actor(user_id=1, is_circle_treasurer=True, group_ids=frozenset({9, 2}))

        assert actor.scopes() == [BudgetScope.circle(), BudgetScope.group(2), BudgetScope.group(9)]

    def test_require_access_raises(self):
        with pytest.raises(AccessDeniedError) as exc_info:
            Actor(user_id=1).require_access(BudgetScope.circle())

        assert exc_info.value.http_status == 403
        assert exc_info.value.code == "access_denied"

    def test_is_treasurer(self):
        assert not Actor(user_id=1).is_treasurer
        assert Actor(user_id=1, group_ids=frozenset({3})).is_treasurer


class TestScopeResolution:
    """Test scope construction and derivation from budgets and transfers."""

    def test_of_budget(self):
        assert BudgetScope.of_budget(Budget(name="Ops")) == BudgetScope.circle()
        assert BudgetScope.of_budget(Budget(name="Garden", group_id=4)) == BudgetScope.group(4)

    def test_of_transfer(self):
        transfer = PaymentTransfer(recipient_user_id=1, budget_type=BudgetType.GROUP, group_id=4)

        assert BudgetScope.of_transfer(transfer) == BudgetScope.group(4)

    def test_inconsistent_scopes_are_rejected(self):
        with pytest.raises(InvalidArgumentError):
            BudgetScope(BudgetType.GROUP)
        with pytest.raises(InvalidArgumentError):
            BudgetScope(BudgetType.CIRCLE, 4)
