# ==============================================================================
# Status Command
# ==============================================================================
"""
Status command for the postpipe CLI.

Reports whether Kafka and PostgreSQL are reachable and whether the posts
table exists, as formatted lines or as JSON.

Each check has light retry logic (3 attempts, ~7 seconds), so the checks
run concurrently.
"""

import json
from concurrent.futures import ThreadPoolExecutor
from typing import Annotated, Any

import typer

from postpipe.cli.shared import C, I
from postpipe.utils.config import get_settings


def _collect_status() -> dict[str, Any]:
    """Run all health checks concurrently."""
    from postpipe.infrastructure.kafka import check_kafka_connection
    from postpipe.infrastructure.repositories.postgresql import check_postgresql_connection
    from postpipe.utils.db import check_schema_exists

    settings = get_settings()
    with ThreadPoolExecutor(max_workers=3) as executor:
        kafka = executor.submit(check_kafka_connection, settings)
        postgres = executor.submit(check_postgresql_connection, settings)
        schema = executor.submit(check_schema_exists)

        return {
            "kafka": {
                "bootstrap_servers": settings.kafka.bootstrap_servers,
                "reachable": kafka.result(),
                "topic": settings.kafka.posts_topic,
            },
            "postgresql": {
                "reachable": postgres.result(),
                "schema": settings.postgres.schema_name,
                "posts_table": schema.result(),
            },
        }


def _status_line(label: str, ok: bool, detail: str) -> str:
    icon = f"{C.GREEN}{I.CHECK}{C.RESET}" if ok else f"{C.RED}{I.CROSS}{C.RESET}"
    return f"  {icon} {label:<12}{C.DIM}{detail}{C.RESET}"


def status(
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output status as JSON")
    ] = False,
) -> None:
    """Show Kafka and PostgreSQL health."""
    data = _collect_status()
    healthy = data["kafka"]["reachable"] and data["postgresql"]["reachable"]

    if json_output:
        print(json.dumps(data, indent=2))
    else:
        kafka = data["kafka"]
        postgres = data["postgresql"]
        print()
        print(f"{C.BOLD}Status{C.RESET}")
        print()
        print(_status_line("Kafka", kafka["reachable"], kafka["bootstrap_servers"]))
        print(_status_line("PostgreSQL", postgres["reachable"], postgres["schema"]))
        print(
            _status_line(
                "Posts table",
                postgres["posts_table"],
                "ready" if postgres["posts_table"] else "missing (run: postpipe db init)",
            )
        )
        print()

    if not healthy:
        raise typer.Exit(1)
