# temperlog/common/retry.py
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 10
    delay_s: float = 1.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.delay_s < 0:
            raise ValueError("delay_s must be >= 0")


class RetryExhausted(Exception):
    def __init__(self, attempts: int, last_error: Optional[BaseException]):
        super().__init__(f"gave up after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def call_with_retry(
    fn: Callable[[], T],
    *,
    policy: RetryPolicy = RetryPolicy(),
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    accept: Optional[Callable[[T], bool]] = None,
    on_failure: Optional[Callable[[int, int, Optional[BaseException]], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call `fn` until it returns an accepted result, at most `policy.attempts` times.

    - Exceptions listed in `retry_on` count as a failed attempt; others propagate.
    - A result rejected by `accept` also counts as a failed attempt (error=None).
    - `on_failure(attempt, attempts, error)` is called after every failed attempt.
    - Sleeps `policy.delay_s` between attempts, never after the last one.

    Raises RetryExhausted when every attempt failed.
    """
    last_error: Optional[BaseException] = None

    for attempt in range(1, policy.attempts + 1):
        try:
            result = fn()
        except retry_on as e:
            last_error = e
        else:
            if accept is None or accept(result):
                return result
            last_error = None

        if on_failure is not None:
            on_failure(attempt, policy.attempts, last_error)

        if attempt < policy.attempts and policy.delay_s > 0:
            sleep(policy.delay_s)

    raise RetryExhausted(policy.attempts, last_error)
