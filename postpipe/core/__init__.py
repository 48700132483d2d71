# ==============================================================================
# Core Domain Logic
# ==============================================================================
"""
Pure domain logic with no external dependencies beyond Pydantic.

This module contains the Post model and the Kafka message parser.
"""

from postpipe.core.models import Post, parse_post

__all__ = [
    "Post",
    "parse_post",
]
