# ==============================================================================
# Shared Utilities for CLI Commands
# ==============================================================================
"""
Shared constants and helpers used across CLI command modules.
"""


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"


class Icons:
    """Status icons for terminal output."""

    CHECK = "✓"
    CROSS = "✗"


# Short aliases
C = Colors
I = Icons  # noqa: E741


def mask_secret(value: str | None) -> str:
    """Mask a secret for human-readable output."""
    if not value:
        return "(not set)"
    return "*" * 8
