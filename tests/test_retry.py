# ==============================================================================
# Tests for connection retry policies — retry.py
# ==============================================================================
"""
Tests for retry_standard and retry_light. Backoff waits are removed with
tenacity's retry_with(wait=wait_none()).
"""

import logging

import pytest
from tenacity import wait_none

from postpipe.utils.retry import (
    RETRY_ATTEMPTS,
    RETRY_ATTEMPTS_LIGHT,
    retry_light,
    retry_standard,
)

logger = logging.getLogger(__name__)


def _failing(decorator, error: Exception):
    """Build a decorated function that always raises error, counting calls."""
    calls = []

    @decorator((ConnectionError,), logger)
    def connect():
        calls.append(1)
        raise error

    return connect.retry_with(wait=wait_none()), calls


class TestRetryStandard:
    """Tests for the startup retry policy."""

    def test_listed_error_retried_then_reraised(self):
        connect, calls = _failing(retry_standard, ConnectionError("refused"))

        with pytest.raises(ConnectionError):
            connect()

        assert len(calls) == RETRY_ATTEMPTS

    def test_other_error_fails_immediately(self):
        connect, calls = _failing(retry_standard, ValueError("bad dsn"))

        with pytest.raises(ValueError):
            connect()

        assert len(calls) == 1

    def test_recovers_after_transient_failure(self):
        attempts = []

        @retry_standard((ConnectionError,), logger)
        def connect():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("not yet")
            return "connected"

        assert connect.retry_with(wait=wait_none())() == "connected"
        assert len(attempts) == 3

    def test_each_retry_logged(self, caplog):
        connect, _ = _failing(retry_standard, ConnectionError("refused"))

        with caplog.at_level(logging.WARNING), pytest.raises(ConnectionError):
            connect()

        warnings = [r.message for r in caplog.records if "Retry attempt" in r.message]
        assert len(warnings) == RETRY_ATTEMPTS - 1
        assert warnings[0] == f"Retry attempt 1/{RETRY_ATTEMPTS} after error: refused"


class TestRetryLight:
    def test_three_attempts(self):
        connect, calls = _failing(retry_light, ConnectionError("refused"))

        with pytest.raises(ConnectionError):
            connect()

        assert len(calls) == RETRY_ATTEMPTS_LIGHT
