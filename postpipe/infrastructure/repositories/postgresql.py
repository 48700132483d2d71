# ==============================================================================
# PostgreSQL Repository Implementation
# ==============================================================================
"""
PostgreSQL implementation of the post repository.

Provides:
- PostgreSQLPostRepository: Bulk insert posts (no upsert, no deduplication)
"""

import logging

import psycopg2
from psycopg2.extras import execute_batch

from postpipe.base.repositories import PostRepository
from postpipe.core.models import Post
from postpipe.utils.config import Settings, get_settings
from postpipe.utils.retry import retry_light, retry_standard

logger = logging.getLogger(__name__)

# Batch size for execute_batch
PAGE_SIZE = 1000

# Connection timeout
CONNECT_TIMEOUT = 10

# Errors after which the connection is discarded and reopened on next save
CONNECTION_ERRORS = (psycopg2.OperationalError, psycopg2.InterfaceError)


def _add_connect_timeout(conn_string: str) -> str:
    """Add connect_timeout to connection string if not present."""
    if "connect_timeout" not in conn_string:
        separator = "&" if "?" in conn_string else "?"
        return f"{conn_string}{separator}connect_timeout={CONNECT_TIMEOUT}"
    return conn_string


class PostgreSQLPostRepository(PostRepository):
    """
    PostgreSQL implementation of PostRepository.

    Uses psycopg2.extras.execute_batch() for bulk inserts. There is no
    idempotency key: delivering the same post twice stores it twice.

    One connection per repository, opened once at startup and reused for
    every batch. A connection-level failure during save() closes the
    connection; the next save() reopens it.
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize the post repository.

        Args:
            settings: Application settings. If None, uses get_settings().
        """
        self._settings = settings or get_settings()
        self._conn: psycopg2.extensions.connection | None = None
        self._schema = self._settings.postgres.schema_name

    @property
    def schema(self) -> str:
        """Get the database schema name."""
        return self._schema

    @property
    def connected(self) -> bool:
        """True while an open connection is held."""
        return self._conn is not None and not self._conn.closed

    @retry_standard(CONNECTION_ERRORS, logger)
    def connect(self) -> None:
        """
        Establish connection to PostgreSQL.

        Retries on connection errors with exponential backoff (10 attempts, ~60 seconds).
        """
        conn_string = _add_connect_timeout(self._settings.postgres.connection_string)
        self._conn = psycopg2.connect(conn_string)
        logger.info("PostgreSQLPostRepository connected (schema=%s)", self._schema)

    def save(self, posts: list[Post]) -> int:
        """
        Insert posts in a single transaction.

        Args:
            posts: Ordered list of posts

        Returns:
            Count of posts inserted

        Raises:
            psycopg2.Error: On any database failure, after rolling back
        """
        if not posts:
            return 0

        if not self.connected:
            self._reconnect()

        rows = [post.to_db_record() for post in posts]
        try:
            with self._conn.cursor() as cur:
                execute_batch(
                    cur,
                    f"""
                    INSERT INTO {self._schema}.posts (title, content)
                    VALUES (%(title)s, %(content)s)
                    """,
                    rows,
                    page_size=PAGE_SIZE,
                )
            self._conn.commit()
        except CONNECTION_ERRORS:
            self._discard_connection()
            raise
        except psycopg2.Error:
            self.rollback()
            raise

        logger.debug("Inserted %d posts", len(rows))
        return len(rows)

    def rollback(self) -> None:
        """Rollback current transaction."""
        if self._conn:
            try:
                self._conn.rollback()
            except psycopg2.Error as e:
                logger.debug("Rollback failed: %s", e)

    def _reconnect(self) -> None:
        """Open a fresh connection without retrying; the batch buffer retries."""
        conn_string = _add_connect_timeout(self._settings.postgres.connection_string)
        self._conn = psycopg2.connect(conn_string)
        logger.info("PostgreSQLPostRepository reconnected")

    def _discard_connection(self) -> None:
        """Drop a broken connection so the next save reconnects."""
        if self._conn:
            try:
                self._conn.close()
            except psycopg2.Error:
                pass
        self._conn = None
        logger.warning("PostgreSQLPostRepository connection lost, will reconnect on next save")

    def close(self) -> None:
        """Close connection and release resources."""
        if self._conn:
            try:
                self._conn.close()
                logger.info("PostgreSQLPostRepository connection closed")
            except Exception as e:
                logger.warning("Error closing connection: %s", e)
            finally:
                self._conn = None


@retry_light(CONNECTION_ERRORS, logger)
def _open_and_close(conn_string: str) -> None:
    conn = psycopg2.connect(conn_string)
    conn.close()


def check_postgresql_connection(settings: Settings | None = None) -> bool:
    """
    Check if PostgreSQL is reachable.

    Light retry (3 attempts, ~7 seconds) on connection errors.

    Args:
        settings: Application settings. If None, uses get_settings().

    Returns:
        True if connection successful, False otherwise
    """
    settings = settings or get_settings()
    try:
        _open_and_close(_add_connect_timeout(settings.postgres.connection_string))
        return True
    except Exception:
        return False
