"""Services module for feed orchestration and caching.

Services own state that outlives a single request: the feed aggregator's
loaded posts and load state, and the persisted image cache.
"""

from dealfeed.services.cache_service import CacheEntry, ImageCacheService, get_image_cache_service
from dealfeed.services.feed_service import FeedAggregator, get_feed_aggregator

__all__ = [
    "CacheEntry",
    "ImageCacheService",
    "get_image_cache_service",
    "FeedAggregator",
    "get_feed_aggregator",
]
