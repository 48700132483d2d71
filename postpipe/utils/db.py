# ==============================================================================
# Database Utilities
# ==============================================================================
"""
Database utility functions for the post pipeline.

Provides schema initialization and other database helpers.
Includes retry logic with exponential backoff for network resilience.
"""

import logging
from pathlib import Path

import psycopg2
from jinja2 import Template

from postpipe.utils.config import get_settings
from postpipe.utils.paths import get_init_sql_path
from postpipe.utils.retry import retry_standard

logger = logging.getLogger(__name__)

PG_RETRY_EXCEPTIONS = (psycopg2.OperationalError, psycopg2.InterfaceError)


def get_schema_file() -> Path | None:
    """Get the schema init.sql path, or None if not found."""
    path = get_init_sql_path()
    if path.exists():
        return path
    # Fallback to current directory
    cwd_path = Path.cwd() / "schema" / "init.sql"
    if cwd_path.exists():
        return cwd_path
    return None


def render_schema_sql(schema_name: str) -> str:
    """Render the schema SQL template with the given schema name."""
    schema_file = get_schema_file()
    if not schema_file:
        raise RuntimeError(
            "Schema file (schema/init.sql) not found. "
            "Make sure you're running from the project root."
        )

    template = Template(schema_file.read_text())
    return template.render(schema_name=schema_name)


@retry_standard(PG_RETRY_EXCEPTIONS, logger)
def ensure_database_exists() -> None:
    """
    Ensure the target database exists, creating it if needed.

    Skipped when PG_DSN is set: a full connection string names a database
    that is expected to exist already.

    Retries on connection errors with exponential backoff (10 attempts, ~60 seconds).
    """
    settings = get_settings()
    if settings.postgres.dsn:
        return

    target_db = settings.postgres.database
    admin_conn_string = (
        f"postgresql://{settings.postgres.user}:{settings.postgres.password}@"
        f"{settings.postgres.host}:{settings.postgres.port}/postgres"
        f"?sslmode={settings.postgres.sslmode}"
    )

    # CREATE DATABASE cannot run inside a transaction
    conn = psycopg2.connect(admin_conn_string, connect_timeout=5)
    conn.autocommit = True
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1 FROM pg_database WHERE datname = %s", (target_db,))
            if cur.fetchone() is None:
                logger.info("Creating database '%s'...", target_db)
                cur.execute(f'CREATE DATABASE "{target_db}"')
                logger.info("Database '%s' created.", target_db)
    finally:
        conn.close()


def check_schema_exists() -> bool:
    """
    Check if the posts table exists.

    Returns:
        True if the table exists, False otherwise (including connection errors)
    """
    try:
        settings = get_settings()
        schema_name = settings.postgres.schema_name
        with psycopg2.connect(settings.postgres.connection_string, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT EXISTS (
                        SELECT FROM information_schema.tables
                        WHERE table_schema = %s
                        AND table_name = 'posts'
                    )
                    """,
                    (schema_name,),
                )
                result = cur.fetchone()
                return result[0] if result else False
    except Exception:
        return False


@retry_standard(PG_RETRY_EXCEPTIONS, logger)
def ensure_schema() -> None:
    """
    Ensure database schema exists, initializing if needed.

    This function is idempotent and safe to call multiple times.

    Raises:
        RuntimeError: If schema file not found
    """
    ensure_database_exists()

    if check_schema_exists():
        return

    settings = get_settings()
    schema_name = settings.postgres.schema_name

    logger.info("Initializing database schema '%s'...", schema_name)

    schema_sql = render_schema_sql(schema_name)
    with psycopg2.connect(settings.postgres.connection_string) as conn:
        with conn.cursor() as cur:
            cur.execute(schema_sql)
        conn.commit()
    conn.close()
    logger.info("Database schema '%s' initialized.", schema_name)
