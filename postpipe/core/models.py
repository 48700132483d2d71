# ==============================================================================
# Post Domain Models
# ==============================================================================
"""
Pydantic models for posts flowing through the pipeline.

These models are used for:
- Validating inbound write requests at the HTTP ingress
- Serializing/deserializing Kafka messages
- Type safety between the consumer and the PostgreSQL repository

This module is part of the core domain layer and has no external dependencies
beyond Pydantic.
"""

import json

from pydantic import BaseModel, ConfigDict, Field

# Field length limits enforced at ingress
TITLE_MIN_LENGTH = 2
TITLE_MAX_LENGTH = 100
CONTENT_MIN_LENGTH = 10
CONTENT_MAX_LENGTH = 1000


class Post(BaseModel):
    """
    A single post write request.

    Records are immutable once built. Identity is assigned by the store
    on insert, so there is no id field here.

    Attributes:
        title: Post title (2-100 characters)
        content: Post body (10-1000 characters)
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str = Field(
        ...,
        min_length=TITLE_MIN_LENGTH,
        max_length=TITLE_MAX_LENGTH,
        description="Post title",
    )
    content: str = Field(
        ...,
        min_length=CONTENT_MIN_LENGTH,
        max_length=CONTENT_MAX_LENGTH,
        description="Post body",
    )

    def to_kafka_message(self) -> dict:
        """Serialize post for Kafka message value."""
        return {"title": self.title, "content": self.content}

    def to_db_record(self) -> dict:
        """Convert to the parameter dict used by the repository insert."""
        return {"title": self.title, "content": self.content}


def parse_post(raw: bytes | str | None) -> Post:
    """
    Parse a raw Kafka message value into a Post.

    Args:
        raw: JSON-encoded message value (None for a tombstone)

    Returns:
        Validated Post

    Raises:
        ValueError: If the value is empty, is not valid JSON or fails validation
            (pydantic.ValidationError is a ValueError subclass)
    """
    if raw is None:
        raise ValueError("empty message value")
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return Post.model_validate(json.loads(raw))
