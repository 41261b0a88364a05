"""Configuration settings for the hospital capacity service."""

import os
import socket
from datetime import timedelta


def get_postgres_uri():
    """Get PostgreSQL connection URI from environment variables."""
    url = os.environ.get("DATABASE_URL")
    if url:
        return url
    host = os.environ.get("DB_HOST", "localhost")
    port = int(os.environ.get("DB_PORT", 5432))
    password = os.environ.get("DB_PASSWORD", "postgres")
    user = os.environ.get("DB_USER", "postgres")
    db_name = os.environ.get("DB_NAME", "hospital_capacity")
    return f"postgresql://{user}:{password}@{host}:{port}/{db_name}"


def get_db_pool_size():
    return int(os.environ.get("DB_POOL_SIZE", 5))


def get_redis_host_and_port():
    """Get Redis connection details from environment variables."""
    host = os.environ.get("REDIS_HOST", "localhost")
    port = int(os.environ.get("REDIS_PORT", 6379))
    return dict(host=host, port=port)


def get_stream_config():
    """Get Redis stream names and consumer group settings."""
    reported = os.environ.get("STREAM_REPORTED", "hospital.capacity.reported")
    return dict(
        reported=reported,
        updated=os.environ.get("STREAM_UPDATED", "hospital.capacity.updated"),
        dead_letter=os.environ.get("STREAM_DEAD_LETTER", f"{reported}.dead"),
        group=os.environ.get("STREAM_GROUP", "hospital-capacity"),
        consumer=os.environ.get("STREAM_CONSUMER", socket.gethostname()),
        max_deliveries=int(os.environ.get("STREAM_MAX_DELIVERIES", 5)),
        block_ms=int(os.environ.get("STREAM_BLOCK_MS", 5000)),
        reclaim_idle_ms=int(os.environ.get("STREAM_RECLAIM_IDLE_MS", 30000)),
    )


def get_capacity_stale_after():
    """Maximum age of a capacity report before a hospital is left out of recommendations."""
    return timedelta(milliseconds=int(os.environ.get("CAPACITY_STALE_MS", 600000)))


def get_capacity_api_key():
    return os.environ.get("CAPACITY_API_KEY") or None


def get_node_env():
    return os.environ.get("NODE_ENV", "development")


def is_redis_required():
    return os.environ.get("REDIS_REQUIRED", "false").lower() == "true"


def is_consumer_enabled():
    return os.environ.get("ENABLE_CONSUMER", "true").lower() != "false"


def get_log_level():
    return os.environ.get("LOG_LEVEL", "INFO").upper()


def get_service_port():
    return int(os.environ.get("SERVICE_PORT", 8093))


def get_api_url():
    """Get API URL from environment variables."""
    host = os.environ.get("API_HOST", "localhost")
    return f"http://{host}:{get_service_port()}"
