"""
Redis Cache Service - Hot layer in front of the translation bundle cache

The database table `translation_cache` is the source of cached bundles;
Redis only saves the round trip for the busiest locales. Every method
degrades to a miss when Redis is disabled or unreachable.
"""

import json
from typing import Optional
import redis.asyncio as redis

from sopmanager.core.config import settings
from sopmanager.core.logging_config import logger


class CacheService:
    """
    Redis-based caching for compiled translation bundles

    Keys: i18n:{locale}:{namespace or '*'}
    TTL: TRANSLATION_CACHE_TTL_SECONDS
    """

    PREFIX_I18N = "i18n:"
    ALL_NAMESPACES = "*"

    def __init__(self):
        self._pool = None
        self._redis = None

    @property
    def enabled(self) -> bool:
        return settings.CACHE_ENABLED

    @property
    def TTL_TRANSLATIONS(self) -> int:
        return settings.TRANSLATION_CACHE_TTL_SECONDS

    async def _get_redis(self) -> redis.Redis:
        """Lazy initialization of Redis connection pool"""
        if self._redis is None:
            self._pool = redis.ConnectionPool.from_url(
                settings.REDIS_URL,
                db=settings.REDIS_CACHE_DB,
                max_connections=50,
                decode_responses=True,
            )
            self._redis = redis.Redis(connection_pool=self._pool)
            logger.info("Redis cache connection established")
        return self._redis

    async def close(self):
        """Close Redis connection"""
        if self._redis:
            await self._redis.close()
            self._redis = None
        if self._pool:
            await self._pool.disconnect()
            self._pool = None

    def bundle_key(self, locale: str, namespace: Optional[str] = None) -> str:
        return f"{self.PREFIX_I18N}{locale}:{namespace or self.ALL_NAMESPACES}"

    # ========== Translation Bundles ==========

    async def get_bundle(self, locale: str, namespace: Optional[str] = None) -> Optional[dict]:
        """Get a cached bundle payload"""
        if not self.enabled:
            return None
        try:
            r = await self._get_redis()
            data = await r.get(self.bundle_key(locale, namespace))
            if data:
                logger.debug(f"Cache HIT: bundle {locale}/{namespace or '*'}")
                return json.loads(data)
            logger.debug(f"Cache MISS: bundle {locale}/{namespace or '*'}")
            return None
        except Exception as e:
            logger.warning(f"Cache error (get_bundle): {e}")
            return None

    async def set_bundle(self, locale: str, namespace: Optional[str], payload: dict) -> bool:
        if not self.enabled:
            return False
        try:
            r = await self._get_redis()
            await r.setex(
                self.bundle_key(locale, namespace),
                self.TTL_TRANSLATIONS,
                json.dumps(payload, ensure_ascii=False),
            )
            return True
        except Exception as e:
            logger.warning(f"Cache error (set_bundle): {e}")
            return False

    async def invalidate_bundles(self, locale: str, namespace: Optional[str] = None) -> bool:
        """
        Drop the bundle for one namespace plus the all-namespaces bundle of
        the locale. Without a namespace every bundle of the locale goes.
        """
        if not self.enabled:
            return False
        try:
            r = await self._get_redis()
            if namespace:
                keys = [self.bundle_key(locale, namespace), self.bundle_key(locale)]
            else:
                keys = []
                cursor = 0
                while True:
                    cursor, batch = await r.scan(cursor, match=f"{self.PREFIX_I18N}{locale}:*", count=100)
                    keys.extend(batch)
                    if cursor == 0:
                        break
            if keys:
                await r.delete(*keys)
                logger.debug(f"Invalidated {len(keys)} bundle keys for {locale}")
            return True
        except Exception as e:
            logger.warning(f"Cache error (invalidate_bundles): {e}")
            return False

    # ========== Stats ==========

    async def get_cache_stats(self) -> dict:
        """Get cache statistics"""
        if not self.enabled:
            return {"enabled": False}
        try:
            r = await self._get_redis()
            info = await r.info('memory')
            return {
                'enabled': True,
                'used_memory': info.get('used_memory_human', 'N/A'),
                'total_keys': await r.dbsize()
            }
        except Exception as e:
            logger.warning(f"Cache error (get_cache_stats): {e}")
            return {"enabled": True, "error": str(e)}


# Singleton instance
cache_service = CacheService()
