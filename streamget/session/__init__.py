"""Capture session: state machine, retry budgets and recording deadline."""

from .controller import SessionController
from .deadline import DeadlineAlreadyArmedError, DeadlineTimer
from .retry import Phase, PhaseBudget, RetryPolicy, UNLIMITED, initial_countdown

__all__ = [
    "SessionController",
    "DeadlineAlreadyArmedError",
    "DeadlineTimer",
    "Phase",
    "PhaseBudget",
    "RetryPolicy",
    "UNLIMITED",
    "initial_countdown",
]
