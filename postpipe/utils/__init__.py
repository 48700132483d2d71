# ==============================================================================
# Post Pipeline Utilities
# ==============================================================================
"""
Shared utilities for the post pipeline.

This module exports configuration for use throughout the pipeline.
"""

from postpipe.utils.config import (
    ConsumerSettings,
    IngressSettings,
    KafkaSettings,
    PostgresSettings,
    Settings,
    get_settings,
)

__all__ = [
    "ConsumerSettings",
    "IngressSettings",
    "KafkaSettings",
    "PostgresSettings",
    "Settings",
    "get_settings",
]
