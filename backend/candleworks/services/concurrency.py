# Overview: Unit-of-work execution with retry, and row locking for stock mutation.

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from ..repositories.base import Repositories

T = TypeVar("T")

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func: Callable[[], T], *, rollback: Callable[[], None],
                   retry_on: tuple[type[BaseException], ...] = (),
                   attempts: int = 3, backoff_base: float = 0.1) -> T:
    """
    Execute an operation, retrying on concurrency-related failures.

    `retry_on` lists the backend's transient errors (deadlocks, locked
    database, optimistic version conflicts). Any other exception rolls back
    and propagates immediately.
    """
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning("Retrying after concurrency conflict (attempt %d): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            rollback()
            raise
    raise RuntimeError("run_with_retry called with attempts < 1")


def run_in_transaction(repos: Repositories, func: Callable[[], T], *, attempts: int = 3) -> T:
    """Run `func` as one unit of work: commit on success, rollback on any error."""
    def _op():
        repos.begin()
        result = func()
        repos.commit()
        return result

    return run_with_retry(
        _op,
        rollback=repos.rollback,
        retry_on=repos.retryable_errors,
        attempts=attempts,
    )
