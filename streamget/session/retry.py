"""Retry budgets for the connect and reconnect phases."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

# countdown value meaning "retry forever"
UNLIMITED = None


class Phase(Enum):
    """Which retry policy is active.

    CONNECT applies until the first byte is written; RECONNECT applies for
    the rest of the session.
    """
    CONNECT = "connect"
    RECONNECT = "reconnect"


def initial_countdown(period: float, interval: float) -> Optional[int]:
    """Number of retries a phase may buy: period // interval, or UNLIMITED if period <= 0.

    Decimal inputs such as 0.3 / 0.1 are floored as the user wrote them, not
    as their binary approximations.
    """
    if period <= 0:
        return UNLIMITED
    return int(period / interval + 1e-9)


@dataclass(frozen=True)
class RetryPolicy:
    """Interval and total budget of one phase."""
    interval: float
    period: float
    backoff: float = 0.0

    def initial_countdown(self) -> Optional[int]:
        return initial_countdown(self.period, self.interval)

    def delay(self, failures: int) -> float:
        """Seconds to wait before the next attempt after `failures` consecutive failures."""
        return self.interval + self.backoff * max(failures - 1, 0)


@dataclass
class PhaseBudget:
    """The active phase with its own countdown.

    The countdown is tested before it is decremented: a failure may be
    retried while the countdown is unlimited or still positive, and each
    retry consumes one unit. A countdown of N therefore yields N retries
    (N + 1 attempts), one retry when period == interval, none when
    period < interval.
    """
    phase: Phase
    policy: RetryPolicy
    countdown: Optional[int]
    failures: int = 0

    @classmethod
    def start(cls, phase: Phase, policy: RetryPolicy) -> "PhaseBudget":
        return cls(phase=phase, policy=policy, countdown=policy.initial_countdown())

    @property
    def unlimited(self) -> bool:
        return self.countdown is UNLIMITED

    def consume(self) -> bool:
        """Record a failed attempt. Returns False when the budget is exhausted."""
        self.failures += 1
        if self.countdown is UNLIMITED:
            return True
        if self.countdown > 0:
            self.countdown -= 1
            return True
        return False

    def next_delay(self) -> float:
        return self.policy.delay(self.failures)

    def describe(self) -> str:
        remaining = "unlimited" if self.unlimited else str(self.countdown)
        return f"{self.phase.value} retries left: {remaining}"
