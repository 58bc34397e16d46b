"""
Cache wrapper for the ledger engine
Provides namespaced, versioned keys on top of the Django cache framework
"""

import hashlib
import logging
import time
from typing import Optional

from django.core.cache import caches

logger = logging.getLogger(__name__)


class LedgerCache:
    """Thin stats-tracking wrapper around one Django cache alias"""

    def __init__(self, alias='default', default_timeout=600):
        self.alias = alias
        self.default_timeout = default_timeout

        # Performance statistics
        self.stats = {
            'hits': 0,
            'misses': 0,
            'sets': 0,
            'deletes': 0,
            'errors': 0
        }

    @property
    def cache(self):
        # Resolved lazily so override_settings(CACHES=...) in tests is honoured
        return caches[self.alias]

    def _generate_cache_key(self, prefix: str, **kwargs) -> str:
        """Generate unique cache key from parameters"""
        key_data = f"{prefix}:" + ":".join([f"{k}={v}" for k, v in sorted(kwargs.items())])
        # Hash long keys to keep them under memcached/redis limits
        if len(key_data) > 200:
            hash_obj = hashlib.md5(key_data.encode())
            return f"{prefix}:{hash_obj.hexdigest()}"
        return key_data

    def set_cache(self, key: str, data, expiry_seconds: int = None):
        """Set cache value with expiration"""
        timeout = self.default_timeout if expiry_seconds is None else expiry_seconds
        try:
            self.cache.set(key, data, timeout)
            self.stats['sets'] += 1
            logger.debug(f"Cached {key[:60]} for {timeout}s")
            return True
        except Exception as e:
            self.stats['errors'] += 1
            logger.error(f"Cache set failed for {key}: {e}")
            return False

    def get_cache(self, key: str):
        """Get cache value, None on miss or backend failure"""
        try:
            data = self.cache.get(key)
        except Exception as e:
            self.stats['errors'] += 1
            logger.error(f"Cache get failed for {key}: {e}")
            return None

        if data is None:
            self.stats['misses'] += 1
            return None
        self.stats['hits'] += 1
        return data

    def add_cache(self, key: str, data, expiry_seconds: int = None):
        """Set only if the key is absent. Returns True when this call stored it"""
        timeout = self.default_timeout if expiry_seconds is None else expiry_seconds
        try:
            added = self.cache.add(key, data, timeout)
        except Exception as e:
            self.stats['errors'] += 1
            logger.error(f"Cache add failed for {key}: {e}")
            return True  # behave as if nothing was cached so work is not skipped
        if added:
            self.stats['sets'] += 1
        return added

    def delete_cache(self, key: str):
        try:
            self.cache.delete(key)
            self.stats['deletes'] += 1
            return True
        except Exception as e:
            self.stats['errors'] += 1
            logger.error(f"Cache delete failed for {key}: {e}")
            return False

    def get_namespace_version(self, namespace: str) -> Optional[int]:
        """Current version number for a key namespace, None when the backend is unreachable"""
        version_key = f"nsver:{namespace}"
        try:
            version = self.cache.get(version_key)
            if version is None:
                # Seed from the clock so an evicted counter never reuses an old version
                version = int(time.time() * 1000)
                self.cache.set(version_key, version, None)
            return version
        except Exception as e:
            self.stats['errors'] += 1
            logger.error(f"Cache version lookup failed for {namespace}: {e}")
            return None

    def bump_namespace_version(self, namespace: str):
        """Invalidate every key built under a namespace"""
        version_key = f"nsver:{namespace}"
        try:
            try:
                self.cache.incr(version_key)
            except ValueError:
                self.cache.set(version_key, int(time.time() * 1000), None)
            self.stats['deletes'] += 1
            logger.debug(f"Invalidated cache namespace {namespace}")
            return True
        except Exception as e:
            self.stats['errors'] += 1
            logger.error(f"Cache invalidation failed for {namespace}: {e}")
            return False

    def clear_all(self):
        try:
            self.cache.clear()
            logger.info(f"Cleared cache alias '{self.alias}'")
            return True
        except Exception as e:
            self.stats['errors'] += 1
            logger.error(f"Cache clear failed for '{self.alias}': {e}")
            return False

    def get_cache_stats(self):
        """Get cache performance statistics"""
        total_requests = self.stats['hits'] + self.stats['misses']
        hit_rate = (self.stats['hits'] / total_requests * 100) if total_requests > 0 else 0

        return {
            'alias': self.alias,
            'hit_rate': round(hit_rate, 2),
            'total_requests': total_requests,
            **self.stats
        }
