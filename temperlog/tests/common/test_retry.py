from __future__ import annotations

import pytest

from temperlog.common.retry import RetryExhausted, RetryPolicy, call_with_retry


class Flaky:
    def __init__(self, failures: int, exc=OSError):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc(f"fail {self.calls}")
        return "ok"


def test_first_success_returns_without_sleep():
    sleeps = []
    fn = Flaky(0)

    assert call_with_retry(fn, retry_on=(OSError,), sleep=sleeps.append) == "ok"
    assert fn.calls == 1
    assert sleeps == []


def test_nine_failures_then_success_on_tenth():
    sleeps = []
    failures = []
    fn = Flaky(9)

    out = call_with_retry(
        fn,
        policy=RetryPolicy(attempts=10, delay_s=1.0),
        retry_on=(OSError,),
        on_failure=lambda a, n, e: failures.append((a, n, str(e))),
        sleep=sleeps.append,
    )

    assert out == "ok"
    assert fn.calls == 10
    assert sleeps == [1.0] * 9
    assert [a for a, _, _ in failures] == list(range(1, 10))
    assert failures[0] == (1, 10, "fail 1")


def test_all_attempts_fail_raises_exhausted():
    sleeps = []
    fn = Flaky(100)

    with pytest.raises(RetryExhausted) as ei:
        call_with_retry(fn, policy=RetryPolicy(attempts=10, delay_s=1.0), retry_on=(OSError,), sleep=sleeps.append)

    assert fn.calls == 10
    assert ei.value.attempts == 10
    assert str(ei.value.last_error) == "fail 10"
    # no pause after the final attempt
    assert len(sleeps) == 9


def test_unlisted_exception_propagates_immediately():
    fn = Flaky(1, exc=KeyError)

    with pytest.raises(KeyError):
        call_with_retry(fn, retry_on=(OSError,), sleep=lambda s: None)
    assert fn.calls == 1


def test_accept_predicate_rejects_results():
    results = iter([1, 2, 3])

    out = call_with_retry(
        lambda: next(results),
        policy=RetryPolicy(attempts=3, delay_s=0.0),
        accept=lambda v: v >= 3,
        sleep=lambda s: None,
    )
    assert out == 3


def test_accept_predicate_exhausted_has_no_error():
    with pytest.raises(RetryExhausted) as ei:
        call_with_retry(
            lambda: False,
            policy=RetryPolicy(attempts=2, delay_s=0.0),
            accept=bool,
            sleep=lambda s: None,
        )
    assert ei.value.last_error is None


@pytest.mark.parametrize("kwargs", [{"attempts": 0}, {"delay_s": -1.0}])
def test_invalid_policy(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)
