"""Fetching layer for the deal feed.

This package provides:
- FeedClient (feed_client) for paging through the content API
- ImageURLResolver (image_resolver) for finding images on post pages
- Utility modules for text normalization, srcset parsing and retries
"""
