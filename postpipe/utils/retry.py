# ==============================================================================
# Connection Retry Policies
# ==============================================================================
"""
tenacity decorators for the two places postpipe retries a connection.

retry_standard
    Process startup. The producer needs Kafka before it can accept a single
    request, and the consumer needs both PostgreSQL and Kafka before it can
    poll. Each connect() gets 10 attempts (~63s of backoff); after that the
    original error propagates, the runner turns it into a StartupError and
    the process exits with status 1.

retry_light
    `postpipe status` health checks. Three quick attempts so a briefly
    restarting broker or database does not show up as down.

Nothing else retries here. A failed flush is not retried in place: the
batch buffer puts the batch back and the next size or timer trigger
tries again. A failed publish is reported to the HTTP client as a 500.
"""

import logging
from typing import Tuple, Type

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

# Startup: 1, 2, 4, 8, 16, then 32s between attempts
RETRY_ATTEMPTS = 10
RETRY_WAIT_MIN = 1  # seconds
RETRY_WAIT_MAX = 32  # seconds

# Health checks: 1, 2s between attempts
RETRY_ATTEMPTS_LIGHT = 3


def log_retry_attempt(logger: logging.Logger, max_attempts: int = RETRY_ATTEMPTS):
    """
    Build a tenacity before_sleep callback that warns on each failed attempt.

    The warning names the attempt and the error, so a process stuck waiting
    for a dependency at startup says what it is waiting for.

    Args:
        logger: Logger of the module whose connect() is retried
        max_attempts: Attempt ceiling shown in the log line

    Returns:
        Callback for tenacity's before_sleep parameter
    """

    def _log_retry(retry_state: RetryCallState) -> None:
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Retry attempt %d/%d after error: %s",
            retry_state.attempt_number,
            max_attempts,
            exception,
        )

    return _log_retry


def retry_standard(exception_types: Tuple[Type[Exception], ...], logger: logging.Logger):
    """
    Retry decorator for startup connections.

    Only the listed exception types are retried. Anything else (bad
    credentials surfacing as a different error, a missing schema file)
    fails on the first attempt. The last error is re-raised unchanged.

    Args:
        exception_types: Transient connection errors
            (e.g. psycopg2.OperationalError, kafka.errors.KafkaError)
        logger: Logger for the per-attempt warning

    Returns:
        tenacity retry decorator

    Example:
        @retry_standard(CONNECTION_ERRORS, logger)
        def connect(self):
            ...
    """
    return retry(
        stop=stop_after_attempt(RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=RETRY_WAIT_MIN, max=RETRY_WAIT_MAX),
        retry=retry_if_exception_type(exception_types),
        before_sleep=log_retry_attempt(logger),
        reraise=True,
    )


def retry_light(exception_types: Tuple[Type[Exception], ...], logger: logging.Logger):
    """
    Retry decorator for health checks (3 attempts).

    Args:
        exception_types: Transient connection errors
        logger: Logger for the per-attempt warning

    Returns:
        tenacity retry decorator
    """
    return retry(
        stop=stop_after_attempt(RETRY_ATTEMPTS_LIGHT),
        wait=wait_exponential(multiplier=1, min=RETRY_WAIT_MIN, max=RETRY_WAIT_MAX),
        retry=retry_if_exception_type(exception_types),
        before_sleep=log_retry_attempt(logger, RETRY_ATTEMPTS_LIGHT),
        reraise=True,
    )
