"""Retry policies for calls against Lake Formation.

Lake Formation is eventually consistent. Writes from a concurrent caller
surface as ConcurrentModificationException, and freshly granted IAM
permissions take a while to propagate, showing up as AccessDeniedException.
This module is the only place that inspects raw service error codes and
messages. Everything else asks ``classify`` or a policy's ``decide``.

Backoff is exponential with jitter, capped at ``max_delay`` and bounded by
a wall-clock window. The clock is injectable so tests can run the loop
without sleeping.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol, TypeVar

from lftagops.core.errors import (
    OperationCancelledError,
    RemoteServiceError,
    RetryBudgetExhaustedError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ERR_CONCURRENT_MODIFICATION = "ConcurrentModificationException"
ERR_ACCESS_DENIED = "AccessDeniedException"
ERR_ENTITY_NOT_FOUND = "EntityNotFoundException"

_PROPAGATION_LAG_MESSAGE = "is not authorized to access requested permissions"
_RESOURCE_MISSING_MESSAGE = "Resource does not exist"

# IAM propagation timeout and Lake Formation permissions delete timeout.
PROPAGATION_TIMEOUT = 120.0
DELETE_TIMEOUT = 30.0


class ErrorClass(str, Enum):
    """How a remote error should be treated."""

    TRANSIENT = "TRANSIENT"
    ABSENT = "ABSENT"
    FATAL = "FATAL"


class Decision(str, Enum):
    RETRY = "RETRY"
    FAIL = "FAIL"


class OperationState(str, Enum):
    """
    Lifecycle of a single remote operation.

    Values:
        PENDING: Not yet attempted.
        ATTEMPTING: A call is in flight (or about to be retried).
        SUCCEEDED: The call returned.
        FAILED: A fatal error, or the retry budget ran out.
        CANCELLED: The cancel signal was set.
    """

    PENDING = "PENDING"
    ATTEMPTING = "ATTEMPTING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


def classify(error: BaseException) -> ErrorClass:
    """Classify a remote error as transient, absence or fatal."""
    if not isinstance(error, RemoteServiceError):
        return ErrorClass.FATAL
    if error.code == ERR_CONCURRENT_MODIFICATION:
        return ErrorClass.TRANSIENT
    if error.code == ERR_ACCESS_DENIED and _PROPAGATION_LAG_MESSAGE in error.message:
        return ErrorClass.TRANSIENT
    if error.code == ERR_ENTITY_NOT_FOUND:
        return ErrorClass.ABSENT
    if error.code == ERR_ACCESS_DENIED and _RESOURCE_MISSING_MESSAGE in error.message:
        return ErrorClass.ABSENT
    return ErrorClass.FATAL


def is_absence(error: BaseException) -> bool:
    """
    Return True if ``error`` means the resource (or its tags) does not exist.

    A deleted resource is reported as "Resource does not exist or requester
    is not authorized to access requested permissions", which ``classify``
    treats as transient. Once retries stop, the absence text wins.
    """
    if not isinstance(error, RemoteServiceError):
        return False
    if error.code == ERR_ENTITY_NOT_FOUND:
        return True
    return error.code == ERR_ACCESS_DENIED and _RESOURCE_MISSING_MESSAGE in error.message


class Clock(Protocol):
    """Time source used by the retry loop."""

    def now(self) -> float:
        """Return a monotonic timestamp in seconds."""
        ...

    def sleep(self, seconds: float, cancel: threading.Event | None = None) -> bool:
        """Sleep up to ``seconds``; return True if woken by ``cancel``."""
        ...


class SystemClock:
    """Real clock; sleeping waits on the cancel event so it wakes promptly."""

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float, cancel: threading.Event | None = None) -> bool:
        if cancel is None:
            time.sleep(seconds)
            return False
        return cancel.wait(seconds)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry window and backoff shape for one class of operation.

    Attributes:
        name: Label used in logs.
        timeout: Wall-clock retry window in seconds.
        initial_delay: First backoff interval in seconds.
        max_delay: Cap on a single backoff interval.
        multiplier: Exponential growth factor between attempts.
        jitter: Fraction (0..1) of each interval that is randomised away.
        max_attempts: Optional ceiling on total calls, regardless of time.
    """

    name: str
    timeout: float
    initial_delay: float = 0.5
    max_delay: float = 10.0
    multiplier: float = 2.0
    jitter: float = 0.1
    max_attempts: int | None = None

    def decide(self, error: BaseException) -> Decision:
        """Return RETRY for transient errors, FAIL for everything else."""
        if classify(error) is ErrorClass.TRANSIENT:
            return Decision.RETRY
        return Decision.FAIL

    def backoff(self, attempt: int, rng: random.Random | None = None) -> float:
        """Return the delay to wait after failed attempt number ``attempt`` (1-based)."""
        delay = min(self.initial_delay * self.multiplier ** (attempt - 1), self.max_delay)
        if self.jitter:
            delay *= 1 - self.jitter * (rng or random).random()
        return delay


def propagation_policy(timeout: float = PROPAGATION_TIMEOUT, **kwargs) -> RetryPolicy:
    """Policy for associate and query calls."""
    return RetryPolicy(name="propagation", timeout=timeout, **kwargs)


def deletion_policy(timeout: float = DELETE_TIMEOUT, **kwargs) -> RetryPolicy:
    """Policy for disassociate calls."""
    return RetryPolicy(name="deletion", timeout=timeout, **kwargs)


StateObserver = Callable[[OperationState, int, "BaseException | None"], None]


def run_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    *,
    operation: str,
    clock: Clock | None = None,
    cancel: threading.Event | None = None,
    rng: random.Random | None = None,
    on_state: StateObserver | None = None,
) -> T:
    """
    Call ``fn`` until it succeeds, the policy gives up, or ``cancel`` is set.

    Args:
        fn: Zero-argument callable issuing the remote request.
        policy: Retry policy deciding which errors are retried and for how long.
        operation: Name used in logs and errors.
        clock: Time source (defaults to SystemClock).
        cancel: Optional event; setting it aborts the backoff sleep.
        rng: Random source for jitter.
        on_state: Optional observer notified on every state transition.

    Returns:
        Whatever ``fn`` returns.

    Raises:
        RemoteServiceError: A non-retryable error, raised unchanged.
        RetryBudgetExhaustedError: Transient errors outlasted the window or
            the attempt ceiling.
        OperationCancelledError: ``cancel`` was set.
    """
    clock = clock or SystemClock()

    def _transition(state: OperationState, attempt: int, error=None) -> None:
        logger.debug("%s: %s (attempt %d)", operation, state.value, attempt)
        if on_state:
            on_state(state, attempt, error)

    deadline = clock.now() + policy.timeout
    attempt = 0
    _transition(OperationState.PENDING, attempt)

    while True:
        if cancel is not None and cancel.is_set():
            _transition(OperationState.CANCELLED, attempt)
            raise OperationCancelledError(operation, attempt)

        attempt += 1
        _transition(OperationState.ATTEMPTING, attempt)
        try:
            result = fn()
        except RemoteServiceError as exc:
            if policy.decide(exc) is Decision.FAIL:
                _transition(OperationState.FAILED, attempt, exc)
                raise

            if policy.max_attempts is not None and attempt >= policy.max_attempts:
                _transition(OperationState.FAILED, attempt, exc)
                raise RetryBudgetExhaustedError(operation, attempt, exc) from exc

            remaining = deadline - clock.now()
            if remaining <= 0:
                _transition(OperationState.FAILED, attempt, exc)
                raise RetryBudgetExhaustedError(operation, attempt, exc) from exc

            delay = min(policy.backoff(attempt, rng), remaining)
            logger.info(
                "%s: retryable error (%s), retrying in %.1fs [%s policy, attempt %d]",
                operation,
                exc.code,
                delay,
                policy.name,
                attempt,
            )
            if clock.sleep(delay, cancel):
                _transition(OperationState.CANCELLED, attempt, exc)
                raise OperationCancelledError(operation, attempt) from exc
            continue

        _transition(OperationState.SUCCEEDED, attempt)
        return result
