# ==============================================================================
# Application Configuration
# ==============================================================================
"""
Configuration management using pydantic-settings.

All configuration is loaded from environment variables, with support for
.env files via python-dotenv.
"""

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file before any settings are instantiated
load_dotenv()


class KafkaSettings(BaseSettings):
    """Kafka connection settings."""

    model_config = SettingsConfigDict(env_prefix="KAFKA_")

    bootstrap_servers: str = Field(..., description="Kafka bootstrap servers")
    security_protocol: str = Field(
        default="PLAINTEXT", description="Security protocol (PLAINTEXT or SSL)"
    )

    # SSL settings for mTLS authentication
    ssl_ca_file: Optional[str] = Field(default=None, description="Path to CA certificate file")
    ssl_cert_file: Optional[str] = Field(
        default=None, description="Path to client certificate file"
    )
    ssl_key_file: Optional[str] = Field(default=None, description="Path to client private key file")

    # Topic configuration
    posts_topic: str = Field(default="post", description="Posts topic name")
    posts_topic_partitions: int = Field(
        default=1, description="Number of partitions for the posts topic"
    )


class PostgresSettings(BaseSettings):
    """PostgreSQL connection settings."""

    model_config = SettingsConfigDict(env_prefix="PG_")

    dsn: Optional[str] = Field(
        default=None, description="Full connection string (overrides host/port/user/...)"
    )
    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="postgres", description="PostgreSQL username")
    password: str = Field(default="postgres", description="PostgreSQL password")
    database: str = Field(default="postpipe", description="Database name")
    schema_name: str = Field(default="postpipe", description="Schema name")
    sslmode: str = Field(default="prefer", description="SSL mode")

    @property
    def connection_string(self) -> str:
        """Build PostgreSQL connection string."""
        if self.dsn:
            return self.dsn
        return (
            f"postgresql://{self.user}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?sslmode={self.sslmode}"
        )


class ConsumerSettings(BaseSettings):
    """Kafka consumer and batch buffer settings.

    max_batch_size and flush_interval_seconds are the two flush triggers
    of the batch buffer: a flush is requested as soon as the pending batch
    holds more than max_batch_size records, and on a fixed interval
    regardless of size.
    """

    model_config = SettingsConfigDict(env_prefix="CONSUMER_")

    group_id: str = Field(
        default="post-consumer",
        description="Kafka consumer group ID",
    )
    auto_offset_reset: str = Field(
        default="earliest",
        description="Auto offset reset policy (earliest, latest, none)",
    )
    max_batch_size: int = Field(
        default=100,
        description="Pending batch size above which a flush is triggered",
    )
    flush_interval_seconds: float = Field(
        default=5.0,
        description="Interval of the recurring flush timer in seconds",
    )
    poll_timeout_ms: int = Field(
        default=250,
        description="Kafka poll timeout in milliseconds",
    )
    poll_max_records: int = Field(
        default=500,
        description="Maximum messages returned by one Kafka poll",
    )
    summary_interval_seconds: float = Field(
        default=30.0,
        description="How often to log flush throughput summaries",
    )
    shutdown_timeout_seconds: float = Field(
        default=30.0,
        description="How long to wait for the flush timer to stop on shutdown",
    )


class IngressSettings(BaseSettings):
    """HTTP ingress settings."""

    model_config = SettingsConfigDict(env_prefix="INGRESS_")

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, description="Bind port")
    publish_timeout_seconds: float = Field(
        default=10.0,
        description="How long a request waits for the broker to acknowledge a publish",
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    # Nested settings
    kafka: KafkaSettings = Field(default_factory=KafkaSettings)
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    consumer: ConsumerSettings = Field(default_factory=ConsumerSettings)
    ingress: IngressSettings = Field(default_factory=IngressSettings)

    # General settings
    log_level: str = Field(default="INFO", description="Logging level")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for subsequent calls.
    """
    return Settings()
