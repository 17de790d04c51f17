"""
Cache utilities for Puzzle Craft.

Provides Redis-backed caching with fallback to simple in-memory caching.
Uses Flask-Caching for integration with Flask app. The storefront config
endpoint caches each shop's validated discount code list here so widget
polling does not hit Shopify on every page view.

Usage:
    from puzzlecraft.utils.cache import cache, cache_key

    key = cache_key('storefront_codes', shop=shop)
    cache.set(key, codes, timeout=60)

Environment Variables:
    REDIS_URL: Redis connection URL (e.g., redis://localhost:6379/0)
              Falls back to simple cache if not set or unavailable.
"""
import os
import logging
import redis
from flask_caching import Cache

logger = logging.getLogger(__name__)

# Global cache instance - initialized in init_cache()
cache = Cache()


def init_cache(app):
    """
    Initialize Flask-Caching with Redis or fallback to simple cache.

    An explicit CACHE_TYPE in the app config (e.g. NullCache for tests)
    is left untouched.

    Returns:
        bool: True if Redis connected, False otherwise
    """
    if app.config.get('CACHE_TYPE'):
        cache.init_app(app)
        return False

    redis_url = os.getenv('REDIS_URL')

    if redis_url:
        try:
            r = redis.from_url(redis_url, socket_connect_timeout=2)
            r.ping()

            app.config['CACHE_TYPE'] = 'RedisCache'
            app.config['CACHE_REDIS_URL'] = redis_url
            app.config['CACHE_DEFAULT_TIMEOUT'] = 300
            app.config['CACHE_KEY_PREFIX'] = 'puzzlecraft:'

            cache.init_app(app)
            logger.info('[PuzzleCraft] Redis cache connected: %s', redis_url.split('@')[-1])
            return True

        except redis.RedisError as e:
            logger.warning('[PuzzleCraft] Redis unavailable (%s), using simple cache', str(e))

    app.config['CACHE_TYPE'] = 'SimpleCache'
    app.config['CACHE_DEFAULT_TIMEOUT'] = 300

    cache.init_app(app)
    logger.info('[PuzzleCraft] Using simple in-memory cache (no Redis)')
    return False


def cache_key(*args, **kwargs):
    """
    Generate a cache key from function arguments.

        key = cache_key('storefront_codes', shop='x.myshopify.com')
    """
    parts = list(args)
    for k, v in sorted(kwargs.items()):
        parts.append(f'{k}={v}')
    return ':'.join(str(p) for p in parts)


def storefront_codes_key(shop: str) -> str:
    return cache_key('storefront_codes', shop=shop)


def invalidate_storefront_codes(shop: str) -> None:
    """Drop the cached storefront code list after the registry changes."""
    cache.delete(storefront_codes_key(shop))
