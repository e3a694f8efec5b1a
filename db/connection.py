"""
db/connection.py
----------------
Manages the PostgreSQL connection pool.
Uses psycopg2's ThreadedConnectionPool for efficient connection reuse.

The pool is owned by an explicitly constructed ConnectionManager. Nothing
connects at import or construction time: configuration is checked and the
pool created on first use.
"""

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional
from urllib.parse import urlparse

import psycopg2
from psycopg2 import pool

import config
from db.errors import ConfigurationMissingError
from db.ssl_policy import normalize_database_url, should_use_ssl
from utils.logger import get_logger

logger = get_logger(__name__)

# ── Pool constants (not user-tunable) ─────────────────────
POOL_MAX_CONNECTIONS = 20
IDLE_TIMEOUT_SECONDS = 30
CONNECT_TIMEOUT_SECONDS = 10
STATEMENT_TIMEOUT_MS = 30_000

# ── Background reconnection ───────────────────────────────
RECONNECT_DELAY_SECONDS = 2.0
MAX_RECONNECT_ATTEMPTS = 5


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Resolved connection settings.

    A full URI wins over the discrete host/port/database/user/password fields.
    """
    url: str = ""
    host: str = ""
    port: int = 5432
    database: str = ""
    user: str = ""
    password: str = ""
    environment: str = "development"

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Build the settings from the values loaded by config.py."""
        return cls(
            url=config.DATABASE_URL,
            host=config.DB_HOST,
            port=config.DB_PORT,
            database=config.DB_NAME,
            user=config.DB_USER,
            password=config.DB_PASSWORD,
            environment=config.APP_ENV,
        )

    def uses_url(self) -> bool:
        return bool(self.url)

    def is_configured(self) -> bool:
        if self.url:
            return True
        return all((self.host, self.database, self.user, self.password))

    @property
    def ssl_enabled(self) -> bool:
        return should_use_ssl(self.url or None, self.host or None, self.environment)

    def connect_kwargs(self) -> dict:
        """Keyword arguments handed to psycopg2.connect() for every pooled connection."""
        kwargs: dict = {
            "connect_timeout": CONNECT_TIMEOUT_SECONDS,
            "options": f"-c statement_timeout={STATEMENT_TIMEOUT_MS}",
        }
        if self.url:
            dsn = normalize_database_url(self.url)
            kwargs["dsn"] = dsn
            # An explicit sslmode in the URI is left alone.
            if "sslmode=" not in dsn:
                kwargs["sslmode"] = "require" if self.ssl_enabled else "disable"
        else:
            kwargs.update(
                host=self.host,
                port=self.port,
                dbname=self.database,
                user=self.user,
                password=self.password,
                sslmode="require" if self.ssl_enabled else "disable",
            )
        return kwargs

    def describe(self) -> str:
        """Human-readable target, without credentials."""
        if self.url:
            parsed = urlparse(self.url)
            return f"{parsed.hostname}:{parsed.port or 5432}{parsed.path}"
        return f"{self.host}:{self.port}/{self.database}"


class ConnectionManager:
    """
    Owns the process-wide connection pool.

    Responsibilities:
        - Create the pool lazily, after checking the configuration.
        - Queue callers once all POOL_MAX_CONNECTIONS are checked out.
        - Discard connections that sat idle longer than IDLE_TIMEOUT_SECONDS.
        - Recreate the pool on demand (used by the retry executor).
        - Schedule a bounded background reconnect when the pool fails
          before the schema has been initialized.
        - Report health without raising.
    """

    timer_factory: Callable[..., threading.Timer] = threading.Timer

    def __init__(
        self,
        db_config: DatabaseConfig,
        pool_factory: Callable[..., pool.AbstractConnectionPool] = pool.ThreadedConnectionPool,
        max_connections: int = POOL_MAX_CONNECTIONS,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        max_reconnects: int = MAX_RECONNECT_ATTEMPTS,
    ):
        self.config = db_config
        self.max_connections = max_connections
        self.reconnect_delay = reconnect_delay
        self.max_reconnects = max_reconnects
        self._pool_factory = pool_factory
        self._pool: Optional[pool.AbstractConnectionPool] = None
        self._lock = threading.RLock()
        self._slots = threading.BoundedSemaphore(max_connections)
        self._waiting = 0
        self._idle_since: dict[int, float] = {}
        self._initialized = False
        self._initializer: Optional[Callable[[], None]] = None
        self._reconnect_attempts = 0
        self._reconnect_timer: Optional[threading.Timer] = None

    # ── State ─────────────────────────────────────────────

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    def mark_initialized(self, value: bool = True) -> None:
        with self._lock:
            self._initialized = value
            if value:
                self._cancel_reconnect()

    def set_initializer(self, initializer: Callable[[], None]) -> None:
        """Register the callable re-run after a background reconnect (schema init)."""
        self._initializer = initializer

    # ── Pool lifecycle ────────────────────────────────────

    def get_pool(self) -> pool.AbstractConnectionPool:
        """
        Return the live pool, creating it on first use.

        Raises:
            ConfigurationMissingError: If neither a URI nor the discrete
                connection fields are configured.
        """
        with self._lock:
            if self._pool is None:
                if not self.config.is_configured():
                    raise ConfigurationMissingError()
                self._pool = self._create_pool()
            return self._pool

    def _create_pool(self) -> pool.AbstractConnectionPool:
        if self.config.uses_url():
            logger.info("Using DATABASE_URL for the PostgreSQL connection.")
        else:
            logger.info(f"Connecting to PostgreSQL at {self.config.describe()}")
        logger.info(f"SSL {'enabled' if self.config.ssl_enabled else 'disabled'}.")
        # minconn=0: no connection is opened until the first checkout.
        return self._pool_factory(0, self.max_connections, **self.config.connect_kwargs())

    def recreate_pool(self) -> None:
        """
        Throw the current pool away and build a fresh one.

        Only the idle connections of the old pool are closed here. Connections
        still checked out keep working and are closed when they come back.
        """
        with self._lock:
            old, self._pool = self._pool, None
            self._idle_since.clear()
            if old is not None:
                self._retire(old)
            self.get_pool()

    @staticmethod
    def _retire(old: pool.AbstractConnectionPool) -> None:
        idle, old._pool = list(old._pool), []
        for conn in idle:
            try:
                conn.close()
            except psycopg2.Error as e:
                logger.debug(f"Ignoring error while closing a retired connection: {e}")

    def close(self) -> None:
        """Close all connections in the pool."""
        with self._lock:
            self._cancel_reconnect()
            if self._pool is None:
                return
            logger.info("Closing database connections...")
            try:
                self._pool.closeall()
                logger.info("Database connection pool closed.")
            except psycopg2.Error as e:
                logger.warning(f"Error while closing database connections: {e}")
            finally:
                self._pool = None
                self._idle_since.clear()

    # ── Checkout ──────────────────────────────────────────

    @contextmanager
    def acquire(self) -> Iterator:
        """
        Check a connection out of the pool for the duration of a ``with`` block.

        Blocks while POOL_MAX_CONNECTIONS connections are in use, for at
        most CONNECT_TIMEOUT_SECONDS.
        """
        # Fails fast on a missing configuration, before queueing.
        self.get_pool()
        with self._lock:
            self._waiting += 1
        try:
            got_slot = self._slots.acquire(timeout=CONNECT_TIMEOUT_SECONDS)
        finally:
            with self._lock:
                self._waiting -= 1
        if not got_slot:
            raise pool.PoolError("Timed out waiting for a free database connection")

        try:
            # Re-read: the pool may have been recreated while this caller waited.
            current = self.get_pool()
            conn = self._checkout(current)
        except BaseException:
            self._slots.release()
            raise
        try:
            yield conn
        finally:
            self._checkin(current, conn)
            self._slots.release()

    def _checkout(self, current: pool.AbstractConnectionPool):
        try:
            while True:
                conn = current.getconn()
                with self._lock:
                    idle_since = self._idle_since.pop(id(conn), None)
                if conn.closed:
                    current.putconn(conn, close=True)
                    continue
                if idle_since is not None and time.monotonic() - idle_since > IDLE_TIMEOUT_SECONDS:
                    logger.debug("Discarding connection idle past the timeout.")
                    current.putconn(conn, close=True)
                    continue
                break
        except (psycopg2.OperationalError, pool.PoolError) as e:
            self._on_pool_error(e)
            raise
        if idle_since is None:
            logger.info("New PostgreSQL connection established.")
            with self._lock:
                self._reconnect_attempts = 0
                # The server answers again; a pending background reconnect would
                # only tear down a working pool.
                self._cancel_reconnect()
        return conn

    def _checkin(self, current: pool.AbstractConnectionPool, conn) -> None:
        if current.closed or current is not self._pool:
            # The pool was recreated while this connection was out.
            if not conn.closed:
                conn.close()
            return
        if conn.closed:
            current.putconn(conn, close=True)
            return
        current.putconn(conn)
        with self._lock:
            self._idle_since[id(conn)] = time.monotonic()

    # ── Background reconnection ───────────────────────────

    def _on_pool_error(self, error: Exception) -> None:
        logger.error(f"Unexpected PostgreSQL pool error: {error}")
        with self._lock:
            if self._initialized or self._reconnect_timer is not None:
                return
            if self._reconnect_attempts >= self.max_reconnects:
                return
            self._reconnect_attempts += 1
            attempt = self._reconnect_attempts
            timer = self.timer_factory(self.reconnect_delay, self._reconnect)
            timer.daemon = True
            self._reconnect_timer = timer
        logger.info(f"Reconnecting in {self.reconnect_delay:g}s ({attempt}/{self.max_reconnects})")
        timer.start()

    def _cancel_reconnect(self) -> None:
        # Caller holds self._lock.
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _reconnect(self) -> None:
        with self._lock:
            self._reconnect_timer = None
            if self._initialized:
                return
        try:
            self.recreate_pool()
            if self._initializer is not None:
                self._initializer()
        except Exception as e:
            # The next explicit call will surface the error.
            logger.warning(f"Background reconnect failed: {e}")

    # ── Health ────────────────────────────────────────────

    def pool_stats(self) -> dict:
        current = self._pool
        if current is None:
            return {"pool_size": 0, "idle_connections": 0, "waiting_clients": self._waiting}
        idle = len(current._pool)
        return {
            "pool_size": idle + len(current._used),
            "idle_connections": idle,
            "waiting_clients": self._waiting,
        }

    def health_check(self) -> dict:
        """
        Run ``SELECT 1`` against the pool.

        Returns:
            {'status': 'healthy', 'connected': True, 'pool_size', 'idle_connections',
             'waiting_clients'} or {'status': 'unhealthy', 'connected': False,
             'error', 'code'}. Never raises.
        """
        try:
            with self.acquire() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1 AS health;")
                    cur.fetchone()
                conn.rollback()
        except Exception as e:
            return {
                "status": "unhealthy",
                "connected": False,
                "error": str(e).strip(),
                "code": getattr(e, "pgcode", None),
            }
        return {"status": "healthy", "connected": True, **self.pool_stats()}
