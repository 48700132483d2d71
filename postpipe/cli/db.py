# ==============================================================================
# Database Commands
# ==============================================================================
"""
Database commands for the postpipe CLI.
"""

import logging

import typer

from postpipe.cli.shared import C, I


def db_init() -> None:
    """Create the database, schema and posts table if missing."""
    from postpipe.utils.db import ensure_schema

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    try:
        ensure_schema()
    except Exception as e:
        print(f"{C.RED}{I.CROSS}{C.RESET} Schema initialization failed: {e}")
        raise typer.Exit(1)

    print(f"{C.GREEN}{I.CHECK}{C.RESET} Schema ready")
