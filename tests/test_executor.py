"""
Tests for RetryExecutor against the in-memory pool.

Run with:  python -m pytest tests/ -v
"""

import psycopg2
import pytest

from db.errors import (
    CONNECTION_REFUSED,
    ConstraintViolationError,
    TransientConnectivityError,
)
from db.executor import RetryExecutor
from tests.fakes import refused_error


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


class DuplicateKey(psycopg2.IntegrityError):
    pgcode = "23505"


def failing(times, error_factory, result="ok"):
    """A unit of work that raises ``times`` times, then returns ``result``."""
    state = {"calls": 0}

    def work(cur):
        state["calls"] += 1
        if state["calls"] <= times:
            raise error_factory()
        return result

    work.state = state
    return work


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def executor(manager, sleep):
    return RetryExecutor(manager, sleep=sleep)


# ── Retry policy ──────────────────────────────────────────

class TestRetry:

    def test_recovers_after_transient_failures(self, executor, sleep, pool_factory):
        work = failing(2, refused_error)
        assert executor.run(work) == "ok"
        assert work.state["calls"] == 3
        assert sleep.calls == [2.0, 2.0]
        # The pool is rebuilt before every retry.
        assert len(pool_factory.pools) == 3

    def test_budget_exhausted(self, executor, sleep):
        work = failing(10, refused_error)
        with pytest.raises(TransientConnectivityError) as info:
            executor.run(work)
        assert work.state["calls"] == 3
        assert info.value.kind == CONNECTION_REFUSED
        assert info.value.attempts == 3
        assert isinstance(info.value.__cause__, psycopg2.OperationalError)
        assert sleep.calls == [2.0, 2.0]

    def test_per_call_budget(self, executor, sleep):
        work = failing(10, refused_error)
        with pytest.raises(TransientConnectivityError):
            executor.run(work, attempts=5)
        assert work.state["calls"] == 5

    def test_socket_level_refusal_is_retried(self, executor):
        work = failing(1, ConnectionRefusedError)
        assert executor.run(work) == "ok"

    def test_non_transient_error_not_retried(self, executor, sleep):
        work = failing(10, lambda: psycopg2.ProgrammingError('relation "cards" does not exist'))
        with pytest.raises(psycopg2.ProgrammingError):
            executor.run(work)
        assert work.state["calls"] == 1
        assert sleep.calls == []

    def test_server_side_operational_error_not_retried(self, executor, sleep):
        work = failing(10, lambda: psycopg2.OperationalError("canceling statement due to statement timeout"))
        with pytest.raises(psycopg2.OperationalError):
            executor.run(work)
        assert sleep.calls == []

    def test_integrity_error_translated(self, executor, sleep):
        work = failing(10, DuplicateKey)
        with pytest.raises(ConstraintViolationError) as info:
            executor.run(work)
        assert info.value.pgcode == "23505"
        assert sleep.calls == []


# ── Transactions ──────────────────────────────────────────

class TestTransactions:

    def test_commit_on_success(self, executor, pool_factory):
        executor.run(lambda cur: cur.execute("SELECT 1;"))
        conn = pool_factory.pools[0]._pool[0]
        assert conn.commits == 1
        assert conn.rollbacks == 0

    def test_rollback_on_error(self, executor, pool_factory):
        def work(cur):
            cur.execute("INSERT INTO tags (name) VALUES ('a');")
            raise psycopg2.ProgrammingError("boom")

        with pytest.raises(psycopg2.ProgrammingError):
            executor.run(work)
        conn = pool_factory.pools[0]._pool[0]
        assert conn.commits == 0
        assert conn.rollbacks == 1

    def test_all_statements_share_one_connection(self, executor, pool_factory):
        def work(cur):
            cur.execute("SELECT 1;")
            cur.execute("SELECT 2;")

        executor.run(work)
        conn = pool_factory.pools[0]._pool[0]
        assert [sql for sql, _ in conn.executed] == ["SELECT 1;", "SELECT 2;"]


# ── execute() ─────────────────────────────────────────────

class TestExecute:

    def test_fetch_all(self, executor):
        assert executor.execute("SELECT * FROM tags;") == []

    def test_fetch_one(self, executor):
        assert executor.execute("SELECT 1 AS health;", fetch="one") == {"health": 1}

    def test_rowcount(self, executor):
        assert executor.execute("DELETE FROM tags WHERE id = %s;", (1,), fetch=None) == 1

    def test_params_passed_through(self, executor, pool_factory):
        executor.execute("SELECT * FROM cards WHERE id = %s;", (7,))
        conn = pool_factory.pools[0]._pool[0]
        assert conn.executed == [("SELECT * FROM cards WHERE id = %s;", (7,))]
