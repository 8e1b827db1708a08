"""Result cache: typed get/set over a persistent store, retried under the cache policy.

No TTL and no eviction; see CacheService.
"""

from .cache import CacheEntry, CacheService

__all__ = ["CacheService", "CacheEntry"]
