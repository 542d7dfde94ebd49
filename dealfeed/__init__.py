"""DealFeed: deal-listing feed acquisition and normalization."""

__version__ = "1.0.0"
