import random
import threading

import pytest

from fakes import FakeClock, concurrent_modification
from lftagops.core.errors import (
    OperationCancelledError,
    RemoteServiceError,
    RetryBudgetExhaustedError,
)
from lftagops.core.retry import (
    DELETE_TIMEOUT,
    PROPAGATION_TIMEOUT,
    Decision,
    ErrorClass,
    OperationState,
    RetryPolicy,
    SystemClock,
    classify,
    deletion_policy,
    is_absence,
    propagation_policy,
    run_with_retry,
)

PROPAGATION_LAG = RemoteServiceError(
    "AccessDeniedException",
    "User: arn:aws:iam::123456789012:role/x is not authorized to access requested permissions.",
)
RESOURCE_GONE = RemoteServiceError(
    "AccessDeniedException",
    "Resource does not exist or requester is not authorized to access requested permissions.",
)


def _flaky(k: int, error: Exception | None = None):
    """Return a callable failing k times before returning 'ok', and its call log."""
    calls: list[int] = []

    def fn():
        calls.append(1)
        if len(calls) <= k:
            raise error or concurrent_modification()
        return "ok"

    return fn, calls


@pytest.mark.parametrize(
    "error, expected",
    [
        (concurrent_modification(), ErrorClass.TRANSIENT),
        (PROPAGATION_LAG, ErrorClass.TRANSIENT),
        (RemoteServiceError("EntityNotFoundException", "nope"), ErrorClass.ABSENT),
        (
            RemoteServiceError("AccessDeniedException", "Resource does not exist"),
            ErrorClass.ABSENT,
        ),
        (RemoteServiceError("AccessDeniedException", "Insufficient permissions"), ErrorClass.FATAL),
        (RemoteServiceError("InvalidInputException", "bad"), ErrorClass.FATAL),
        (RuntimeError("boom"), ErrorClass.FATAL),
    ],
)
def test_classify(error, expected):
    assert classify(error) is expected


@pytest.mark.parametrize(
    "error, expected",
    [
        (RemoteServiceError("EntityNotFoundException", "nope"), True),
        (RESOURCE_GONE, True),
        (PROPAGATION_LAG, False),
        (concurrent_modification(), False),
        (RuntimeError("Resource does not exist"), False),
    ],
)
def test_is_absence(error, expected):
    assert is_absence(error) is expected


def test_deleted_resource_message_is_retried_but_means_absence():
    assert classify(RESOURCE_GONE) is ErrorClass.TRANSIENT
    assert is_absence(RESOURCE_GONE)


def test_policies_only_retry_transient_errors():
    for policy in (propagation_policy(), deletion_policy()):
        assert policy.decide(concurrent_modification()) is Decision.RETRY
        assert policy.decide(PROPAGATION_LAG) is Decision.RETRY
        assert policy.decide(RemoteServiceError("EntityNotFoundException", "x")) is Decision.FAIL


def test_named_policies_have_separate_windows():
    assert propagation_policy().timeout == PROPAGATION_TIMEOUT
    assert deletion_policy().timeout == DELETE_TIMEOUT
    assert DELETE_TIMEOUT < PROPAGATION_TIMEOUT


@pytest.mark.parametrize("k, succeeds", [(0, True), (2, True), (3, False), (5, False)])
def test_attempt_ceiling(k: int, succeeds: bool):
    policy = RetryPolicy(name="test", timeout=600, jitter=0, max_attempts=3)
    fn, calls = _flaky(k)

    if succeeds:
        assert run_with_retry(fn, policy, operation="op", clock=FakeClock()) == "ok"
        assert len(calls) == k + 1
    else:
        with pytest.raises(RetryBudgetExhaustedError) as exc_info:
            run_with_retry(fn, policy, operation="op", clock=FakeClock())
        assert len(calls) == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, RemoteServiceError)


def test_wall_clock_window_bounds_retries():
    policy = RetryPolicy(name="test", timeout=5, initial_delay=1, multiplier=2, jitter=0)
    clock = FakeClock()
    fn, calls = _flaky(100, PROPAGATION_LAG)

    with pytest.raises(RetryBudgetExhaustedError):
        run_with_retry(fn, policy, operation="op", clock=clock)

    # sleeps 1, 2 and then whatever is left of the window
    assert clock.sleeps == [1, 2, 2]
    assert clock.now() == 5
    assert len(calls) == 4


def test_backoff_is_exponential_and_capped():
    policy = RetryPolicy(name="test", timeout=60, initial_delay=0.5, max_delay=4, jitter=0)

    assert [policy.backoff(n) for n in range(1, 6)] == [0.5, 1, 2, 4, 4]


def test_backoff_jitter_stays_within_bounds():
    policy = RetryPolicy(name="test", timeout=60, initial_delay=8, max_delay=8, jitter=0.25)
    rng = random.Random(7)

    for _ in range(50):
        assert 6 <= policy.backoff(1, rng) <= 8


def test_fatal_error_is_raised_without_retry():
    clock = FakeClock()
    fn, calls = _flaky(1, RemoteServiceError("InvalidInputException", "bad"))

    with pytest.raises(RemoteServiceError, match="InvalidInputException"):
        run_with_retry(fn, propagation_policy(), operation="op", clock=clock)

    assert len(calls) == 1
    assert clock.sleeps == []


def test_non_remote_errors_propagate_unchanged():
    def fn():
        raise KeyError("bug")

    with pytest.raises(KeyError):
        run_with_retry(fn, propagation_policy(), operation="op", clock=FakeClock())


def test_cancel_before_first_attempt():
    cancel = threading.Event()
    cancel.set()
    fn, calls = _flaky(0)

    with pytest.raises(OperationCancelledError) as exc_info:
        run_with_retry(fn, propagation_policy(), operation="op", clock=FakeClock(), cancel=cancel)

    assert calls == []
    assert exc_info.value.attempts == 0


def test_cancel_interrupts_backoff():
    cancel = threading.Event()
    calls: list[int] = []

    def fn():
        calls.append(1)
        cancel.set()
        raise concurrent_modification()

    with pytest.raises(OperationCancelledError):
        run_with_retry(fn, propagation_policy(), operation="op", clock=FakeClock(), cancel=cancel)

    assert len(calls) == 1


def test_cancelled_is_distinct_from_failed():
    assert not issubclass(OperationCancelledError, RetryBudgetExhaustedError)


def test_system_clock_wakes_on_cancel():
    cancel = threading.Event()
    cancel.set()

    assert SystemClock().sleep(30, cancel) is True


def test_state_transitions_are_reported():
    states: list[tuple[OperationState, int]] = []
    fn, _ = _flaky(1)

    run_with_retry(
        fn,
        RetryPolicy(name="test", timeout=60, jitter=0),
        operation="op",
        clock=FakeClock(),
        on_state=lambda state, attempt, error: states.append((state, attempt)),
    )

    assert states == [
        (OperationState.PENDING, 0),
        (OperationState.ATTEMPTING, 1),
        (OperationState.ATTEMPTING, 2),
        (OperationState.SUCCEEDED, 2),
    ]
