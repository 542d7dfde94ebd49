"""Domain models for the deal feed."""

from dealfeed.models.post import Post
from dealfeed.models.feed_state import FilterCriteria, LoadState, LoadStatus

__all__ = [
    "Post",
    "FilterCriteria",
    "LoadState",
    "LoadStatus",
]
