"""Unit tests for retry budgets."""

import pytest
from streamget.session.retry import (
    UNLIMITED,
    Phase,
    PhaseBudget,
    RetryPolicy,
    initial_countdown,
)


def drain(budget: PhaseBudget, limit: int = 1000) -> int:
    """Count how many failures the budget retries before giving up."""
    retries = 0
    while budget.consume():
        retries += 1
        if retries >= limit:
            break
    return retries


@pytest.mark.unit
class TestInitialCountdown:
    """Test cases for initial_countdown()."""

    @pytest.mark.parametrize("period,interval,expected", [
        (20, 5, 4),
        (10, 2, 5),
        (5, 5, 1),
        (3, 5, 0),
        (21, 5, 4),
        (7.5, 2.5, 3),
        (0.3, 0.1, 3),
        (0.03, 0.01, 3),
    ])
    def test_finite_budget(self, period, interval, expected):
        assert initial_countdown(period, interval) == expected

    @pytest.mark.parametrize("period", [0, -1, -100])
    def test_non_positive_period_is_unlimited(self, period):
        assert initial_countdown(period, 5) is UNLIMITED


@pytest.mark.unit
class TestPhaseBudget:
    """Test cases for PhaseBudget countdown handling."""

    def test_retries_equal_countdown(self):
        budget = PhaseBudget.start(Phase.CONNECT, RetryPolicy(interval=5, period=20))

        assert budget.countdown == 4
        assert drain(budget) == 4
        assert budget.countdown == 0

    def test_period_equal_to_interval_gives_one_retry(self):
        budget = PhaseBudget.start(Phase.CONNECT, RetryPolicy(interval=5, period=5))
        assert drain(budget) == 1

    def test_period_below_interval_gives_no_retry(self):
        budget = PhaseBudget.start(Phase.CONNECT, RetryPolicy(interval=5, period=3))
        assert budget.countdown == 0
        assert budget.consume() is False

    def test_unlimited_budget_never_exhausts(self):
        budget = PhaseBudget.start(Phase.RECONNECT, RetryPolicy(interval=1, period=-1))

        assert budget.unlimited
        assert drain(budget, limit=500) == 500
        assert budget.countdown is UNLIMITED
        assert budget.failures == 500

    def test_exhausted_budget_stays_exhausted(self):
        budget = PhaseBudget.start(Phase.RECONNECT, RetryPolicy(interval=2, period=2))
        assert budget.consume() is True
        assert budget.consume() is False
        assert budget.consume() is False
        assert budget.countdown == 0

    def test_same_convention_in_both_phases(self):
        policy = RetryPolicy(interval=2, period=10)
        connect = PhaseBudget.start(Phase.CONNECT, policy)
        reconnect = PhaseBudget.start(Phase.RECONNECT, policy)
        assert drain(connect) == drain(reconnect) == 5

    def test_describe(self):
        assert PhaseBudget.start(Phase.CONNECT, RetryPolicy(1, 3)).describe() == "connect retries left: 3"
        assert "unlimited" in PhaseBudget.start(Phase.RECONNECT, RetryPolicy(1, -1)).describe()


@pytest.mark.unit
class TestRetryDelay:
    """Test cases for delay and backoff."""

    def test_delay_is_interval_without_backoff(self):
        policy = RetryPolicy(interval=5, period=20)
        assert [policy.delay(n) for n in (1, 2, 3)] == [5, 5, 5]

    def test_backoff_grows_after_each_failure(self):
        policy = RetryPolicy(interval=1, period=-1, backoff=2)
        assert [policy.delay(n) for n in (1, 2, 3, 4)] == [1, 3, 5, 7]

    def test_budget_next_delay_tracks_failures(self):
        budget = PhaseBudget.start(Phase.RECONNECT, RetryPolicy(interval=1, period=-1, backoff=0.5))
        budget.consume()
        assert budget.next_delay() == 1
        budget.consume()
        assert budget.next_delay() == 1.5

    def test_fresh_budget_resets_backoff(self):
        policy = RetryPolicy(interval=1, period=-1, backoff=1)
        budget = PhaseBudget.start(Phase.RECONNECT, policy)
        for _ in range(3):
            budget.consume()
        assert budget.next_delay() == 3

        budget = PhaseBudget.start(Phase.RECONNECT, policy)
        budget.consume()
        assert budget.next_delay() == 1
