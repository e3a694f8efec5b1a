"""
db/executor.py
--------------
Runs SQL against the pool with bounded retry on transient connectivity errors.

Every repository goes through a RetryExecutor. A unit of work is a callable
receiving a dict cursor; it runs inside a single transaction, committed on
success and rolled back on any error.
"""

import time
from typing import Any, Callable, Optional, Sequence, TypeVar

import psycopg2
from psycopg2 import extras

from db.connection import ConnectionManager
from db.errors import TransientConnectivityError, classify_transient, translate
from utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3
CONNECTIVITY_ATTEMPTS = 5
RETRY_DELAY_SECONDS = 2.0


class RetryExecutor:
    """
    Transaction runner with a fixed-delay retry policy.

    Only connection-refused, connect-timeout and host-not-found failures are
    retried. Before each retry the pool is recreated, in case the failure
    means the pool itself is dead. Every other error surfaces on the first
    attempt, translated by db.errors.translate().
    """

    def __init__(
        self,
        manager: ConnectionManager,
        attempts: int = DEFAULT_ATTEMPTS,
        delay: float = RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.manager = manager
        self.attempts = attempts
        self.delay = delay
        self._sleep = sleep

    def run(self, work: Callable[[Any], T], attempts: Optional[int] = None) -> T:
        """
        Execute ``work(cursor)`` in one transaction, retrying transient failures.

        Args:
            work: Callable receiving a RealDictCursor. May run several statements.
            attempts: Retry budget for this call (defaults to ``self.attempts``).

        Returns:
            Whatever ``work`` returns.

        Raises:
            TransientConnectivityError: The budget was exhausted.
            ConstraintViolationError / ForeignKeyViolationError: Integrity errors.
            ConfigurationMissingError: No database configured.
        """
        budget = attempts or self.attempts
        for attempt in range(1, budget + 1):
            try:
                return self._run_once(work)
            except (psycopg2.Error, OSError) as e:
                kind = classify_transient(e)
                if kind is None:
                    translated = translate(e)
                    if translated is e:
                        raise
                    logger.error(f"Database error [{e.pgcode}]: {translated}")
                    raise translated from e
                if attempt >= budget:
                    logger.error(f"Database unreachable after {budget} attempts ({kind}).")
                    raise TransientConnectivityError(
                        f"Database unreachable after {budget} attempts: {str(e).strip()}",
                        kind,
                        budget,
                    ) from e
                logger.warning(
                    f"Connection error ({kind}). Retrying in {self.delay:g}s ({attempt}/{budget})"
                )
                self._sleep(self.delay)
                self.manager.recreate_pool()
        raise AssertionError("unreachable")

    def _run_once(self, work: Callable[[Any], T]) -> T:
        with self.manager.acquire() as conn:
            try:
                with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                    result = work(cur)
                conn.commit()
                return result
            except Exception:
                if not conn.closed:
                    conn.rollback()
                raise

    def execute(
        self,
        sql: str,
        params: Optional[Sequence] = None,
        fetch: Optional[str] = "all",
        attempts: Optional[int] = None,
    ):
        """
        Run a single statement.

        Args:
            sql: Parameterized SQL (``%s`` placeholders).
            params: Statement parameters.
            fetch: 'all' for a list of dict rows, 'one' for a single row or
                None, or None to return the affected row count.
        """
        def work(cur):
            cur.execute(sql, params)
            if fetch == "all":
                return cur.fetchall()
            if fetch == "one":
                return cur.fetchone()
            return cur.rowcount

        return self.run(work, attempts)

    def check_connectivity(self, attempts: int = CONNECTIVITY_ATTEMPTS) -> dict:
        """
        Startup connectivity check, with the larger retry budget.

        Returns:
            The row {'server_time', 'version'}.
        """
        row = self.execute(
            "SELECT NOW() AS server_time, version() AS version;",
            fetch="one",
            attempts=attempts,
        )
        version = " ".join(row["version"].split()[:2])
        logger.info(f"Connected to PostgreSQL ({version}). Server time: {row['server_time']}")
        return row
