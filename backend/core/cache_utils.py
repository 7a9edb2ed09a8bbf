"""
Caching utilities for read-heavy storefront queries
Uses Redis when configured, local memory otherwise
"""
from django.conf import settings
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
CATALOG_CACHE_TTL = 120  # 2 minutes
MARKETPLACE_CACHE_TTL = 60
PROMOTION_TIERS_CACHE_TTL = 3600


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def _generation_key(prefix):
    return f"{prefix}:generation"


def get_cache_generation(prefix):
    """Current generation for a key prefix; cached_query keys embed it"""
    return cache.get(_generation_key(prefix)) or 1


def bump_cache_generation(prefix):
    """Orphan every cached_query entry under `prefix` without touching other keys"""
    key = _generation_key(prefix)
    try:
        cache.incr(key)
    except ValueError:
        cache.set(key, 2, None)


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=120, key_prefix="featured_shops")
        def get_featured_shops(limit):
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                cache_key = make_cache_key(f"{key_prefix}:g{get_cache_generation(key_prefix)}", *args, **kwargs)
                cached_data = cache.get(cache_key)
            except Exception as e:
                logger.warning(f"Cache unavailable for {key_prefix}: {e}")
                return func(*args, **kwargs)

            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            try:
                cache.set(cache_key, result, cache_ttl)
            except Exception as e:
                logger.warning(f"Unable to cache {key_prefix}: {e}")
            return result
        return wrapper
    return decorator


def _uses_redis():
    return 'django_redis' in settings.CACHES.get('default', {}).get('BACKEND', '')


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern
    Redis: SCAN + DELETE. Other backends can't list keys, so the pattern is
    treated as a cached_query key_prefix and its generation is bumped.
    """
    try:
        if not _uses_redis():
            bump_cache_generation(pattern)
            logger.debug(f"Bumped cache generation for prefix: {pattern}")
            return

        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")

        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching pattern: {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def catalog_cache_key(shop_slug):
    return f"catalog:{shop_slug}"


def get_cached_catalog(shop_slug):
    """Return cached public catalog payload for a shop, or None"""
    try:
        return cache.get(catalog_cache_key(shop_slug))
    except Exception as e:
        logger.warning(f"Catalog cache lookup failed for '{shop_slug}': {e}")
        return None


def cache_catalog(shop_slug, data, ttl=CATALOG_CACHE_TTL):
    try:
        cache.set(catalog_cache_key(shop_slug), data, ttl)
        logger.debug(f"Cached catalog: {shop_slug}")
    except Exception as e:
        logger.warning(f"Unable to cache catalog '{shop_slug}': {e}")


def invalidate_catalog_cache(shop_slug):
    try:
        cache.delete(catalog_cache_key(shop_slug))
        logger.debug(f"Invalidated catalog cache: {shop_slug}")
    except Exception as e:
        logger.warning(f"Could not invalidate catalog cache '{shop_slug}': {e}")


def invalidate_marketplace_cache():
    invalidate_cache_pattern("featured_shops")
