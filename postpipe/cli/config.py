# ==============================================================================
# Config Commands
# ==============================================================================
"""
Configuration commands for the postpipe CLI.
"""

import json
from typing import Annotated

import typer

from postpipe.cli.shared import C, mask_secret
from postpipe.utils.config import get_settings


def config_show(
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output configuration as JSON")
    ] = False,
) -> None:
    """Display current configuration (includes secrets in JSON mode)."""
    settings = get_settings()

    if json_output:
        config = {
            "kafka": {
                "bootstrap_servers": [
                    s.strip() for s in settings.kafka.bootstrap_servers.split(",")
                ],
                "security_protocol": settings.kafka.security_protocol,
                "ssl_enabled": settings.kafka.security_protocol == "SSL",
                "posts_topic": settings.kafka.posts_topic,
                "partitions": settings.kafka.posts_topic_partitions,
            },
            "postgresql": {
                "connection_string": settings.postgres.connection_string,
                "schema": settings.postgres.schema_name,
            },
            "consumer": {
                "group_id": settings.consumer.group_id,
                "auto_offset_reset": settings.consumer.auto_offset_reset,
                "max_batch_size": settings.consumer.max_batch_size,
                "flush_interval_seconds": settings.consumer.flush_interval_seconds,
                "poll_timeout_ms": settings.consumer.poll_timeout_ms,
            },
            "ingress": {
                "host": settings.ingress.host,
                "port": settings.ingress.port,
                "publish_timeout_seconds": settings.ingress.publish_timeout_seconds,
            },
            "log_level": settings.log_level,
        }
        print(json.dumps(config, indent=2))
        return

    print()
    print(f"{C.BOLD}Configuration{C.RESET}")
    print()

    print(f"{C.CYAN}Kafka{C.RESET}")
    servers = settings.kafka.bootstrap_servers.split(",")
    for i, server in enumerate(servers):
        label = "  Bootstrap:  " if i == 0 else "              "
        print(f"{label}{C.WHITE}{server.strip()}{C.RESET}")
    kafka_ssl = (
        "mTLS (client certificates)" if settings.kafka.security_protocol == "SSL" else "disabled"
    )
    print(f"  SSL:        {C.WHITE}{kafka_ssl}{C.RESET}")
    topic_info = (
        f"{settings.kafka.posts_topic} ({settings.kafka.posts_topic_partitions} partitions)"
    )
    print(f"  Topic:      {C.WHITE}{topic_info}{C.RESET}")
    print()

    print(f"{C.CYAN}PostgreSQL{C.RESET}")
    if settings.postgres.dsn:
        print(f"  DSN:        {C.WHITE}{mask_secret(settings.postgres.dsn)}{C.RESET}")
    else:
        print(f"  Host:       {C.WHITE}{settings.postgres.host}{C.RESET}")
        print(f"  Port:       {C.WHITE}{settings.postgres.port}{C.RESET}")
        print(f"  Database:   {C.WHITE}{settings.postgres.database}{C.RESET}")
        print(f"  User:       {C.WHITE}{settings.postgres.user}{C.RESET}")
        print(f"  SSL:        {C.WHITE}{settings.postgres.sslmode}{C.RESET}")
    print(f"  Schema:     {C.WHITE}{settings.postgres.schema_name}{C.RESET}")
    print()

    print(f"{C.CYAN}Consumer{C.RESET}")
    print(f"  Group:      {C.WHITE}{settings.consumer.group_id}{C.RESET}")
    print(f"  Batch size: {C.WHITE}> {settings.consumer.max_batch_size} records{C.RESET}")
    print(f"  Interval:   {C.WHITE}{settings.consumer.flush_interval_seconds}s{C.RESET}")
    print()

    print(f"{C.CYAN}Ingress{C.RESET}")
    print(f"  Listen:     {C.WHITE}{settings.ingress.host}:{settings.ingress.port}{C.RESET}")
    print()
