import uuid
from datetime import datetime, timezone

import redis

from ...application.ports.usage_repo import UsageStore


def _score(value: datetime) -> float:
    # Stored timestamps are naive UTC
    return value.replace(tzinfo=timezone.utc).timestamp()


class RedisUsageStore(UsageStore):
    """Usage log as one sorted set per (user, service), scored by UTC epoch seconds."""

    def __init__(self, url: str, prefix: str = "usage:", client=None) -> None:
        self.client = client if client is not None else redis.Redis.from_url(url)
        self.prefix = prefix

    def _key(self, user_id: str, service_kind: str) -> str:
        return f"{self.prefix}{user_id}:{service_kind}"

    def add(self, user_id: str, service_kind: str, occurred_at: datetime) -> None:
        member = f"{occurred_at.isoformat()}:{uuid.uuid4().hex}"
        self.client.zadd(self._key(user_id, service_kind), {member: _score(occurred_at)})

    def count(self, user_id: str, service_kind: str, start: datetime, end: datetime) -> int:
        # "(" makes the upper bound exclusive
        return int(self.client.zcount(self._key(user_id, service_kind), _score(start), f"({_score(end)}"))
