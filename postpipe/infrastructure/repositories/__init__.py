"""
Repository implementations.
"""

from postpipe.infrastructure.repositories.postgresql import (
    PostgreSQLPostRepository,
    check_postgresql_connection,
)

__all__ = [
    "PostgreSQLPostRepository",
    "check_postgresql_connection",
]
