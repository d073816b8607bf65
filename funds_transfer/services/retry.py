"""Transaction retry loop for stores that abort on serialization conflicts.

A unit of work is a callable taking a ``Session``. ``RetryExecutor.run``
executes it inside a fresh transaction per attempt and commits on success.
When the store reports a conflict the whole unit is re-run from scratch,
because the rollback discards every read and write of the failed attempt.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Optional, TypeVar

from sqlalchemy.exc import DBAPIError
from sqlmodel import Session

from ..core.config import Settings
from ..core.errors import (
    DeadlineExceededError,
    RetryableConflictError,
    RetryExhaustedError,
    StoreUnavailableError,
    TransactionCancelledError,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"
QUERY_CANCELED = "57014"

RETRYABLE_SQLSTATES = frozenset({SERIALIZATION_FAILURE, DEADLOCK_DETECTED})

_TIMEOUT_DIALECTS = frozenset({"postgresql", "cockroachdb"})


def get_sqlstate(exc: BaseException) -> Optional[str]:
    if not isinstance(exc, DBAPIError):
        return None
    orig = getattr(exc, "orig", None)
    # psycopg/asyncpg expose ``sqlstate``, psycopg2 uses ``pgcode``.
    return (
        getattr(orig, "sqlstate", None)
        or getattr(orig, "pgcode", None)
        or getattr(orig, "code", None)
    )


def is_retryable_conflict(exc: BaseException) -> bool:
    """Return True when ``exc`` means the transaction must be retried.

    CockroachDB reports every restart as SQLSTATE 40001; PostgreSQL uses
    40001 for serialization failures and 40P01 for deadlocks. Anything
    else, including connection errors, is treated as terminal.
    """
    if isinstance(exc, RetryableConflictError):
        return True
    return get_sqlstate(exc) in RETRYABLE_SQLSTATES


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    base_delay: float = 0.02
    max_delay: float = 1.0
    jitter: float = 0.25

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay <= 0 or self.max_delay < self.base_delay:
            raise ValueError("delays must satisfy 0 < base_delay <= max_delay")
        if self.jitter < 0:
            raise ValueError("jitter must not be negative")

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay_ms / 1000.0,
            max_delay=settings.retry_max_delay_ms / 1000.0,
            jitter=settings.retry_jitter,
        )

    def delays(self, rng: Optional[random.Random] = None) -> Iterator[float]:
        """Yield the wait before each retry, ``max_attempts - 1`` values.

        Exponential growth with upward jitter, capped at ``max_delay``.
        A delay is never shorter than the one before it.
        """
        rng = rng or random.Random()
        previous = 0.0
        for retry in range(self.max_attempts - 1):
            delay = min(self.max_delay, self.base_delay * (2 ** retry))
            delay = min(self.max_delay, delay * (1.0 + self.jitter * rng.random()))
            previous = max(previous, delay)
            yield previous


class RetryExecutor:
    """Runs units of work in serializable transactions with bounded retry.

    The executor keeps no state between ``run`` calls and can be shared by
    concurrent callers; each attempt takes its own session from
    ``session_factory``.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        policy: Optional[RetryPolicy] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.session_factory = session_factory
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._clock = clock
        self._rng = rng

    def run(
        self,
        unit: Callable[[Session], T],
        *,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> T:
        deadline = None if timeout is None else self._clock() + timeout
        delays = self.policy.delays(self._rng)
        attempt = 0

        while True:
            self._check_budget(cancel, deadline)
            attempt += 1
            try:
                return self._attempt(unit, cancel, deadline)
            except Exception as exc:
                sqlstate = get_sqlstate(exc)
                if deadline is not None and sqlstate == QUERY_CANCELED:
                    raise DeadlineExceededError("Statement aborted by deadline") from exc
                if not is_retryable_conflict(exc):
                    if isinstance(exc, DBAPIError):
                        raise StoreUnavailableError(str(exc.orig or exc)) from exc
                    raise

                delay = next(delays, None)
                if delay is None:
                    logger.error(
                        "transaction.retry_exhausted",
                        extra={"attempts": attempt, "sqlstate": sqlstate},
                    )
                    raise RetryExhaustedError(attempt) from exc

                logger.warning(
                    "transaction.retry attempt=%s/%s delay_s=%.3f sqlstate=%s",
                    attempt,
                    self.policy.max_attempts,
                    delay,
                    sqlstate,
                )
                self._wait(delay, cancel, deadline)

    def _attempt(
        self,
        unit: Callable[[Session], T],
        cancel: Optional[threading.Event],
        deadline: Optional[float],
    ) -> T:
        with self.session_factory() as session:
            # Leaving ``begin()`` commits, or rolls back if anything raised.
            with session.begin():
                if deadline is not None:
                    self._apply_statement_timeout(session, deadline)
                result = unit(session)
                # Raising here rolls the attempt back instead of committing it.
                self._check_budget(cancel, deadline)
                return result

    def _apply_statement_timeout(self, session: Session, deadline: float) -> None:
        if session.get_bind().dialect.name not in _TIMEOUT_DIALECTS:
            return
        remaining_ms = max(1, int((deadline - self._clock()) * 1000))
        session.connection().exec_driver_sql(
            f"SET LOCAL statement_timeout = {remaining_ms}"
        )

    def _check_budget(
        self, cancel: Optional[threading.Event], deadline: Optional[float]
    ) -> None:
        if cancel is not None and cancel.is_set():
            raise TransactionCancelledError("Unit of work cancelled")
        if deadline is not None and self._clock() >= deadline:
            raise DeadlineExceededError("Deadline expired before the unit of work committed")

    def _wait(
        self,
        delay: float,
        cancel: Optional[threading.Event],
        deadline: Optional[float],
    ) -> None:
        if deadline is not None and self._clock() + delay >= deadline:
            raise DeadlineExceededError("Deadline expires before the next attempt")
        if cancel is None:
            self._sleep(delay)
        elif cancel.wait(delay):
            raise TransactionCancelledError("Unit of work cancelled during backoff")
