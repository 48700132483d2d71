# ==============================================================================
# Base Abstract Classes
# ==============================================================================
"""
Abstract base classes for the ports-and-adapters layout.
"""

from postpipe.base.repositories import PostRepository
from postpipe.base.runner import BaseRunner, GracefulShutdown, StartupError

__all__ = [
    "BaseRunner",
    "GracefulShutdown",
    "PostRepository",
    "StartupError",
]
