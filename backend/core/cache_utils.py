"""
Caching helpers for expensive report queries.
Keys are shared between Redis (django-redis) and the local memory fallback.
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
DASHBOARD_KPI_CACHE_TTL = 300  # 5 minutes
REPORTS_CACHE_TTL = 600  # 10 minutes


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=120, key_prefix="reports_productivity")
        def get_expensive_data(start, end):
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern.
    django-redis scans the keyspace; the local memory cache cannot list keys,
    so it is cleared entirely.
    """
    try:
        if hasattr(cache, 'delete_pattern'):
            deleted = cache.delete_pattern(f"*{pattern}*")
            logger.info(f"Invalidated {deleted} cache keys matching pattern: {pattern}")
        else:
            cache.clear()
            logger.info(f"Cleared local cache for pattern: {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def get_cached_dashboard_kpis(*args):
    """Get cached dashboard KPIs"""
    cache_key = make_cache_key("dashboard_kpis", *args)
    return cache.get(cache_key), cache_key


def cache_dashboard_kpis(cache_key, data, ttl=DASHBOARD_KPI_CACHE_TTL):
    """Cache dashboard KPIs data"""
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached dashboard KPIs: {cache_key}")


def invalidate_dashboard_cache():
    """Invalidate dashboard KPIs and cached reports"""
    invalidate_cache_pattern("dashboard_kpis")
    invalidate_cache_pattern("reports_")
