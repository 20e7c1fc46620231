"""Redis infrastructure for aperonix (optional)."""

from aperonix.infra.redis.client import RedisClient
from aperonix.infra.redis.storage import RedisSnapshotStorage

__all__ = ["RedisClient", "RedisSnapshotStorage"]
