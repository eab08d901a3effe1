"""
Кэш результатов поиска в Redis
"""
import json
import logging
from typing import Optional

from ..core.interfaces import ICache
from ..core.models import SearchResponse

logger = logging.getLogger(__name__)


class RedisSearchCache(ICache):
    """
    Результаты поиска в Redis

    Ключи: search:{хэш запроса}. После изменения индекса кэш очищается целиком.
    """

    PREFIX = "search:"

    def __init__(self, redis_client):
        self.redis = redis_client

    async def get_search_result(self, query_hash: str) -> Optional[SearchResponse]:
        data = await self.redis.get(f"{self.PREFIX}{query_hash}")
        if not data:
            return None
        return SearchResponse.from_dict(json.loads(data))

    async def set_search_result(
        self,
        query_hash: str,
        result: SearchResponse,
        ttl: int = 60
    ) -> None:
        await self.redis.set(
            f"{self.PREFIX}{query_hash}",
            json.dumps(result.to_dict(), ensure_ascii=False),
            ex=ttl
        )

    async def invalidate(self) -> int:
        keys = [key async for key in self.redis.scan_iter(match=f"{self.PREFIX}*", count=500)]
        if not keys:
            return 0
        return await self.redis.delete(*keys)
