# ==============================================================================
# Consumer Commands
# ==============================================================================
"""
Consumer commands for the postpipe CLI.
"""


def consumer_start() -> None:
    """Run the batching consumer in the foreground."""
    from postpipe.consumer_runner import main

    main()
