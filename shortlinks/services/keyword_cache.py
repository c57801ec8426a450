import logging
from typing import Optional

import redis.exceptions

logger = logging.getLogger(__name__)
CACHE_TTL = 86400


class KeywordCache:
    """Redis read-through cache of keyword -> long URL. Every Redis failure is a miss."""

    def __init__(self, client, ttl: int = CACHE_TTL):
        self.client = client
        self.ttl = ttl

    @staticmethod
    def _key(keyword: str) -> str:
        return f"url:{keyword}"

    def get(self, keyword: str) -> Optional[str]:
        try:
            cached_url = self.client.get(self._key(keyword))
        except redis.exceptions.RedisError:
            logger.warning(f"Redis unavailable, cache lookup skipped for {keyword}")
            return None

        if cached_url:
            if isinstance(cached_url, (bytes, bytearray)):
                cached_url = cached_url.decode()
            logger.info(f"Redirect cache HIT for {keyword} -> {cached_url[:50]}")
            return cached_url
        return None

    def put(self, keyword: str, url: str):
        try:
            self.client.setex(self._key(keyword), self.ttl, url)
            logger.debug(f"Cached {keyword} -> {url[:50]}")
        except redis.exceptions.RedisError:
            logger.warning(f"Failed to cache {keyword}, Redis unavailable")

    def invalidate(self, keyword: str):
        try:
            self.client.delete(self._key(keyword))
        except redis.exceptions.RedisError:
            logger.warning(f"Failed to invalidate cache for {keyword}, Redis unavailable")
