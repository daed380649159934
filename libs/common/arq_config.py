"""Redis connection settings for the ARQ workers."""

from arq.connections import RedisSettings
from libs.common.config import get_settings

# Workers often start before Redis is reachable during deploys.
_CONN_RETRIES = 10
_CONN_RETRY_DELAY = 2


def get_redis_settings() -> RedisSettings:
    """Build ARQ RedisSettings from REDIS_URL (redis:// or rediss://)."""
    redis_settings = RedisSettings.from_dsn(get_settings().REDIS_URL)
    redis_settings.conn_retries = _CONN_RETRIES
    redis_settings.conn_retry_delay = _CONN_RETRY_DELAY
    return redis_settings
