"""
CDC control plane settings.

Pydantic-based settings with environment variable support.
"""

from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CDCSettings(BaseSettings):
    """CDC control plane configuration."""

    # Coordination store (Redis)
    governance_redis_url: str = Field(
        default="redis://localhost:6379/3",
        description="Redis URL of the coordination store",
    )
    governance_namespace: str = Field(
        default="cdc", min_length=1, description="Key prefix for every governance path"
    )
    governance_socket_timeout: int = Field(
        default=5, ge=1, le=60, description="Coordination store socket timeout (seconds)"
    )

    # Celery
    celery_broker_url: str = Field(
        default="redis://localhost:6379/1",
        description="Celery broker URL (Redis db 1)",
    )
    celery_result_backend: str = Field(
        default="redis://localhost:6379/2",
        description="Celery result backend (Redis db 2)",
    )
    task_soft_time_limit: int = Field(
        default=120, ge=10, le=600, description="Soft time limit for tasks (seconds)"
    )
    task_hard_time_limit: int = Field(
        default=180, ge=30, le=900, description="Hard time limit for tasks (seconds)"
    )
    prepare_max_retries: int = Field(
        default=3, ge=0, le=20, description="Retries for incremental position preparation"
    )
    prepare_retry_delay: int = Field(
        default=10, ge=1, le=600, description="Delay between preparation retries (seconds)"
    )

    # Source connection pools
    datasource_pool_size: int = Field(default=2, ge=1, le=20, description="Pool size per source")
    datasource_max_overflow: int = Field(
        default=2, ge=0, le=20, description="Pool overflow per source"
    )
    datasource_pool_timeout: int = Field(
        default=30, ge=5, le=120, description="Pool checkout timeout"
    )
    datasource_pool_recycle: int = Field(
        default=1800, ge=300, description="Pool recycle time"
    )
    datasource_connect_timeout: int = Field(
        default=5, ge=1, le=60, description="Source connect timeout (seconds)"
    )

    # Process configuration defaults
    read_worker_thread: int = Field(default=20, ge=1, le=200)
    read_batch_size: int = Field(default=1000, ge=1, le=100000)
    write_worker_thread: int = Field(default=20, ge=1, le=200)
    write_batch_size: int = Field(
        default=1000, ge=1, le=100000, description="Rows per sink write batch"
    )
    write_rate_limiter_type: Optional[str] = Field(
        default=None, description="Write rate limit algorithm: TPS, QPS or unset"
    )
    write_rate_limiter_props: Dict[str, Any] = Field(default_factory=dict)
    stream_channel_type: str = Field(default="MEMORY")
    stream_channel_block_queue_size: int = Field(default=2000, ge=1)

    # PostgreSQL logical decoding
    postgresql_slot_plugin: str = Field(
        default="test_decoding", description="Output plugin for replication slots"
    )

    # Security (must match the key that encrypted data source passwords)
    credential_encryption_key: Optional[str] = Field(
        default=None,
        min_length=32,
        description="Master key for credential decryption (AES-256-GCM)",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache()
def get_settings() -> CDCSettings:
    """Get cached settings instance."""
    return CDCSettings()
