"""Feed aggregation service.

Runs fetch cycles through FeedClient, keeps the last successfully fetched
posts, and exposes the filtered view and store facet the UI renders.
"""

from typing import List, Optional

import structlog

from dealfeed.config import settings
from dealfeed.core.exceptions import DealFeedException
from dealfeed.models.feed_state import FilterCriteria, LoadState
from dealfeed.models.post import Post
from dealfeed.scrapers.feed_client import FeedClient

logger = structlog.get_logger(__name__)


class FeedAggregator:
    """Owner of the loaded post list, its load state and the filters.

    State machine:
        Idle -> Loading -> Loaded | Failed(message)
        Loaded | Failed -> Loading on refresh()

    A failed refresh keeps the previously loaded posts and only changes
    the state. When refreshes overlap, the most recently started one wins;
    results of older ones are discarded.
    """

    def __init__(self, client: FeedClient, sort_by_date: bool = True):
        """Initialize aggregator.

        Args:
            client: Feed client used for every fetch cycle
            sort_by_date: Re-sort fetched posts newest first
        """
        self.client = client
        self.sort_by_date = sort_by_date
        self.state: LoadState = LoadState.idle()
        self.posts: List[Post] = []
        self.criteria = FilterCriteria()
        self._generation = 0
        self.logger = logger.bind(service="feed_aggregator")

    async def load(self) -> None:
        """First load. Does nothing once a fetch cycle has started."""
        if not self.state.is_idle:
            self.logger.debug("load_skipped", state=self.state.status.value)
            return
        await self.refresh()

    async def refresh(self, search: Optional[str] = None) -> None:
        """Run one fetch cycle.

        Args:
            search: Optional server-side search term
        """
        self._generation += 1
        generation = self._generation
        self.state = LoadState.loading()
        self.logger.info("feed_refresh_started", generation=generation, search=search)

        try:
            fetched = await self.client.fetch_all(search=search, sort_by_date=self.sort_by_date)
        except DealFeedException as e:
            if generation != self._generation:
                self.logger.info("stale_refresh_discarded", generation=generation)
                return
            self.state = LoadState.failed(e.message)
            self.logger.error("feed_refresh_failed", generation=generation, error=e.message)
            return

        if generation != self._generation:
            self.logger.info("stale_refresh_discarded", generation=generation)
            return

        self.posts = fetched
        self.state = LoadState.loaded()
        self.logger.info("feed_refresh_complete", generation=generation, posts=len(fetched))

    def set_query(self, query: str) -> None:
        self.criteria = FilterCriteria(query=query, selected_store=self.criteria.selected_store)

    def select_store(self, store: Optional[str]) -> None:
        self.criteria = FilterCriteria(query=self.criteria.query, selected_store=store)

    def clear_filters(self) -> None:
        self.criteria = FilterCriteria()

    @property
    def visible_posts(self) -> List[Post]:
        """Loaded posts matching the current filters.

        Query and store are each case-insensitive substring matches against
        the raw title markup, ANDed together. An empty query or no selected
        store passes everything.
        """
        query = self.criteria.query.lower()
        store = self.criteria.selected_store
        store = store.lower() if store is not None else None

        return [
            post
            for post in self.posts
            if (not query or query in post.title_html.lower())
            and (store is None or store in post.title_html.lower())
        ]

    @property
    def stores_last_week(self) -> List[str]:
        """Distinct store names inferred from the loaded posts, sorted.

        Reflects whatever the last fetch cycle returned; the window is the
        fetch's, not a literal seven days.
        """
        return sorted({name for name in (post.store_name for post in self.posts) if name})


def get_feed_aggregator(client: FeedClient) -> FeedAggregator:
    """Create an aggregator configured from settings."""
    return FeedAggregator(client, sort_by_date=settings.FEED_SORT_BY_DATE)
