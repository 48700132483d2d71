# ==============================================================================
# Producer Commands
# ==============================================================================
"""
Producer commands for the postpipe CLI.

The producer is the HTTP ingress: it accepts POST /create-post and
publishes each valid request to Kafka.
"""

from typing import Annotated, Optional

import typer


def producer_start(
    host: Annotated[
        Optional[str], typer.Option("--host", help="Bind address (default: INGRESS_HOST)")
    ] = None,
    port: Annotated[
        Optional[int], typer.Option("--port", "-p", help="Bind port (default: INGRESS_PORT)")
    ] = None,
) -> None:
    """Run the HTTP ingress in the foreground."""
    from postpipe.producer_runner import main

    main(host=host, port=port)
