# ==============================================================================
# Path Utilities
# ==============================================================================
"""
Project root detection and schema/certificate paths.
"""

from pathlib import Path


def get_project_root() -> Path:
    """
    Get the project root directory.

    Searches upward from the current file for a directory containing
    pyproject.toml. Falls back to current working directory if not found.

    Returns:
        Path to the project root directory
    """
    current = Path(__file__).parent.parent.parent  # utils/paths.py -> postpipe -> project
    if (current / "pyproject.toml").exists():
        return current

    return Path.cwd()


def get_init_sql_path() -> Path:
    """
    Get the path to the database initialization SQL template.

    Returns:
        Path to schema/init.sql
    """
    return get_project_root() / "schema" / "init.sql"
