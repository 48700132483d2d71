# ==============================================================================
# Post Pipeline CLI
# ==============================================================================
"""
Command-line interface for the post ingestion pipeline.

Usage:
    postpipe --help
    postpipe producer start --port 3000
    postpipe consumer start
    postpipe db init
    postpipe config show --json
    postpipe status
"""

import warnings

# Suppress noisy warnings before any imports
warnings.filterwarnings("ignore", category=DeprecationWarning)

import typer

app = typer.Typer(
    name="postpipe",
    help="Post ingestion pipeline CLI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

producer_app = typer.Typer(
    help="HTTP ingress (producer) operations",
    no_args_is_help=True,
)
app.add_typer(producer_app, name="producer")

from postpipe.cli.producer import producer_start

producer_app.command("start")(producer_start)

consumer_app = typer.Typer(
    help="Batching consumer operations",
    no_args_is_help=True,
)
app.add_typer(consumer_app, name="consumer")

from postpipe.cli.consumer import consumer_start

consumer_app.command("start")(consumer_start)

db_app = typer.Typer(
    help="Database management operations",
    no_args_is_help=True,
)
app.add_typer(db_app, name="db")

from postpipe.cli.db import db_init

db_app.command("init")(db_init)

config_app = typer.Typer(
    help="Configuration management",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

from postpipe.cli.config import config_show

config_app.command("show")(config_show)

from postpipe.cli.status import status

app.command("status")(status)


# ==============================================================================
# Entry Point
# ==============================================================================


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
