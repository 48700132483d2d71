# ==============================================================================
# Infrastructure Adapters
# ==============================================================================
"""
Adapters for external services (ports-and-adapters architecture).

- kafka: the post channel (publisher, subscriber, topic admin)
- repositories: the PostgreSQL sink
"""
