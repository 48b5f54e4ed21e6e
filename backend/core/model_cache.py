"""
Cache keys and TTLs for per-tenant report payloads.

Dashboard and compliance figures aggregate every QMS table of a tenant, so
they are cached per tenant and dropped whenever one of those tables changes
(see cache_signals).
"""
from django.core.cache import cache
import logging

logger = logging.getLogger(__name__)

# Cache key prefixes
DASHBOARD_KEY_PREFIX = 'dashboard:'
COMPLIANCE_KEY_PREFIX = 'compliance:'

# Cache TTL (Time To Live) in seconds
DASHBOARD_CACHE_TTL = 300  # 5 minutes
COMPLIANCE_CACHE_TTL = 600  # 10 minutes


def get_dashboard_cache_key(tenant_id) -> str:
    """Get cache key for a tenant's dashboard stats"""
    return f"{DASHBOARD_KEY_PREFIX}{tenant_id}"


def get_compliance_cache_key(tenant_id) -> str:
    """Get cache key for a tenant's compliance summary"""
    return f"{COMPLIANCE_KEY_PREFIX}{tenant_id}"


def get_cached_report(key):
    try:
        return cache.get(key)
    except Exception as e:
        logger.warning(f"Error reading cache key {key}: {e}")
        return None


def cache_report(key, data, ttl):
    try:
        cache.set(key, data, ttl)
    except Exception as e:
        logger.warning(f"Error caching key {key}: {e}")


def invalidate_tenant_reports(tenant_id):
    """Drop all cached report payloads of a tenant"""
    if tenant_id is None:
        return
    try:
        cache.delete_many([
            get_dashboard_cache_key(tenant_id),
            get_compliance_cache_key(tenant_id),
        ])
        logger.debug(f"Invalidated report cache for tenant {tenant_id}")
    except Exception as e:
        logger.warning(f"Error invalidating report cache for tenant {tenant_id}: {e}")
