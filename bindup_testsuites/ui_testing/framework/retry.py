# ================================================================================
# Retry Executor
# ================================================================================
#
# Wraps an arbitrary operation (sync or async) with a fixed attempt budget.
#
# Key Features:
#   - Sequential attempts, success short-circuits
#   - Every attempt recorded as a RetryAttempt (step events + history)
#   - Optional exponential backoff between attempts
#   - Exhaustion raises RetryExhaustedError chained to the last error
#   - Failure screenshot when a page is attached
#
# State machine:
#   ATTEMPTING(n) -> SUCCESS | ATTEMPTING(n + 1) | EXHAUSTED
#
# ================================================================================

from __future__ import annotations

import asyncio
import inspect
import time
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, TypeVar, Union

import allure
from playwright.async_api import Page

from .diagnostics import capture_failure_screenshot
from .settings import EngineSettings
from .step_logger import StepLogger


T = TypeVar("T")

Operation = Callable[[], Union[T, Awaitable[T]]]


class RetryState(str, Enum):
    ATTEMPTING = "attempting"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class RetryAttempt:
    """Outcome of one attempt."""
    attempt_number: int
    label: str
    outcome: AttemptOutcome
    error_message: Optional[str] = None
    duration_ms: int = 0


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        delay_seconds: float = 0.0,
        backoff_multiplier: float = 2.0,
        max_delay_seconds: float = 10.0,
    ):
        """
        Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts
            delay_seconds: Initial delay between attempts (0 re-invokes immediately)
            backoff_multiplier: Multiplier for exponential backoff
            max_delay_seconds: Maximum delay between attempts
        """
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds
        self.backoff_multiplier = backoff_multiplier
        self.max_delay_seconds = max_delay_seconds

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "RetryConfig":
        return cls(
            max_attempts=settings.retry_max_attempts,
            delay_seconds=settings.retry_delay_seconds,
            backoff_multiplier=settings.retry_backoff_multiplier,
            max_delay_seconds=settings.retry_max_delay_seconds,
        )

    def next_delay(self, current: float) -> float:
        return min(current * self.backoff_multiplier, self.max_delay_seconds)


class RetryExhaustedError(Exception):
    """
    Raised after the attempt budget is spent.

    The message is the last attempt's error message; the original exception
    is available as `last_error` and as `__cause__`.
    """

    def __init__(self, label: str, attempts: List[RetryAttempt], last_error: BaseException):
        super().__init__(str(last_error))
        self.label = label
        self.attempts = attempts
        self.last_error = last_error

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)


class RetryExecutor:
    """
    Re-invokes flaky operations.

    Usage:
        >>> executor = RetryExecutor()
        >>> element = await executor.execute_with_retry(
        ...     lambda: smart.resolve(query), "Find Page Edit Button", max_attempts=3
        ... )

    `history` accumulates the attempts of every call made through this
    executor; `RetryExhaustedError.attempts` holds only the failing call's.
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        step_logger: Optional[StepLogger] = None,
        page: Optional[Page] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.settings = settings or EngineSettings()
        self.config = config or RetryConfig.from_settings(self.settings)
        self.steps = step_logger or StepLogger("retry")
        self.page = page
        self.history: List[RetryAttempt] = []

    async def execute_with_retry(
        self,
        operation: Operation,
        label: str,
        max_attempts: Optional[int] = None,
    ) -> T:
        """
        Run `operation` until it succeeds or the budget is spent.

        Args:
            operation: Zero-argument callable; may return a value or an awaitable
            label: Human-readable name for logs and reports
            max_attempts: Attempt budget (defaults to the executor config)

        Returns:
            The first successful result

        Raises:
            RetryExhaustedError: When every attempt failed
        """
        budget = max_attempts if max_attempts is not None else self.config.max_attempts
        if budget < 1:
            raise ValueError(f"max_attempts must be >= 1, got {budget}")

        attempts: List[RetryAttempt] = []
        delay = self.config.delay_seconds
        attempt_number = 1
        state = RetryState.ATTEMPTING

        with allure.step(f"Retry operation: {label}"):
            while state == RetryState.ATTEMPTING:
                self.steps.start(f"{label} (attempt {attempt_number}/{budget})")
                started = time.monotonic()
                try:
                    result = operation()
                    if inspect.isawaitable(result):
                        result = await result
                except Exception as e:
                    record = RetryAttempt(
                        attempt_number=attempt_number,
                        label=label,
                        outcome=AttemptOutcome.FAILURE,
                        error_message=str(e),
                        duration_ms=int((time.monotonic() - started) * 1000),
                    )
                    attempts.append(record)
                    self.history.append(record)
                    self.steps.warning(f"{label} failed on attempt {attempt_number}", str(e))

                    if attempt_number >= budget:
                        state = RetryState.EXHAUSTED
                        self.steps.error(f"{label} failed after {budget} attempts", str(e))
                        await self._capture(label)
                        raise RetryExhaustedError(label, attempts, e) from e

                    if delay > 0:
                        self.steps.start(f"Waiting {delay:.1f}s before retry")
                        await asyncio.sleep(delay)
                        delay = self.config.next_delay(delay)
                    attempt_number += 1
                    continue

                record = RetryAttempt(
                    attempt_number=attempt_number,
                    label=label,
                    outcome=AttemptOutcome.SUCCESS,
                    duration_ms=int((time.monotonic() - started) * 1000),
                )
                attempts.append(record)
                self.history.append(record)
                state = RetryState.SUCCESS
                self.steps.success(f"{label} succeeded on attempt {attempt_number}")
                return result

        # Unreachable: the loop either returns or raises
        raise RuntimeError(f"Unexpected retry state for {label}: {state}")

    async def _capture(self, label: str) -> None:
        if self.page is not None and self.settings.screenshots_enabled:
            await capture_failure_screenshot(
                self.page, f"retry_{label}", Path(self.settings.screenshot_dir)
            )


async def execute_with_retry(
    operation: Operation,
    label: str,
    max_attempts: int = 3,
    step_logger: Optional[StepLogger] = None,
) -> Any:
    """One-off retry without keeping an executor around."""
    executor = RetryExecutor(step_logger=step_logger)
    return await executor.execute_with_retry(operation, label, max_attempts)


def with_retry(
    label: Optional[str] = None,
    max_attempts: Optional[int] = None,
    config: Optional[RetryConfig] = None,
):
    """
    Decorator for adding retry logic to async page actions.

    Args:
        label: Name used in logs (defaults to the function name)
        max_attempts: Attempt budget override
        config: RetryConfig controlling budget and backoff
    """

    def decorator(func: Callable[..., Awaitable[T]]):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            executor = RetryExecutor(config=config)
            return await executor.execute_with_retry(
                lambda: func(*args, **kwargs),
                label or func.__name__,
                max_attempts,
            )

        return wrapper

    return decorator


__all__ = [
    "AttemptOutcome",
    "RetryAttempt",
    "RetryConfig",
    "RetryExecutor",
    "RetryExhaustedError",
    "RetryState",
    "execute_with_retry",
    "with_retry",
]
