"""Execution engine exports."""

from .registration_primitives import RegistrationError, SuiteRegistrar
from .runnables import (
    Hook,
    Runnable,
    RunnableState,
    Suite,
    Test,
    TestOutcome,
    get_suite_state,
    get_test_state,
)
from .runner import Runner, RunnerEvent, RunStats, TestTimeoutError

__all__ = [
    "Hook",
    "Runnable",
    "RunnableState",
    "Suite",
    "Test",
    "TestOutcome",
    "get_suite_state",
    "get_test_state",
    "RegistrationError",
    "SuiteRegistrar",
    "Runner",
    "RunnerEvent",
    "RunStats",
    "TestTimeoutError",
]
