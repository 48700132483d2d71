# ==============================================================================
# Base Runner Abstract Class
# ==============================================================================
"""
Base runner with common lifecycle management.

Provides signal handling, logging setup, and shutdown coordination.
The ingress and consumer runners extend this and implement _run().
"""

import logging
import signal
import sys
from abc import ABC, abstractmethod
from typing import final

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class GracefulShutdown(Exception):
    """Exception raised to trigger graceful shutdown."""

    pass


class StartupError(Exception):
    """A dependency could not be reached while the process was starting."""

    pass


class BaseRunner(ABC):
    """Base runner with common lifecycle management."""

    def __init__(self, log_level: str = "INFO"):
        self._shutdown_requested = False
        self._log_level = log_level

    @final
    def run(self) -> None:
        """
        Main entry point with signal handling.

        Exits the process with status 1 on a startup failure or an
        unexpected error, after cleanup has run.
        """
        self._setup_signal_handlers()
        self._setup_logging()

        exit_code = 0
        try:
            self._run()
        except GracefulShutdown:
            logger.info("Runner interrupted by shutdown signal")
        except KeyboardInterrupt:
            logger.info("Runner interrupted by keyboard")
        except StartupError as e:
            logger.critical("Startup failed: %s", e)
            exit_code = 1
        except Exception as e:
            logger.exception("Runner error: %s", e)
            exit_code = 1
        finally:
            self._cleanup()

        if exit_code:
            sys.exit(exit_code)

    @abstractmethod
    def _run(self) -> None:
        """Process-specific run implementation."""
        ...

    def _setup_signal_handlers(self) -> None:
        """Common signal handling - can be overridden."""
        signal.signal(signal.SIGTERM, self._handle_signal)
        signal.signal(signal.SIGINT, self._handle_signal)

    def _handle_signal(self, signum, frame) -> None:
        """Handle shutdown signals."""
        logger.info("Received signal %d, requesting shutdown...", signum)
        self._shutdown_requested = True
        self._on_shutdown_requested()

    def _setup_logging(self) -> None:
        """Common logging setup - can be overridden."""
        logging.basicConfig(level=self._log_level.upper(), format=LOG_FORMAT)
        # Suppress noisy third-party loggers
        logging.getLogger("kafka").setLevel(logging.WARNING)

    def _on_shutdown_requested(self) -> None:
        """Hook for runners to handle shutdown. Optional override."""
        pass

    def _cleanup(self) -> None:
        """Cleanup resources. Optional override."""
        pass

    @property
    def shutdown_requested(self) -> bool:
        """Check if shutdown has been requested."""
        return self._shutdown_requested
