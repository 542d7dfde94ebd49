"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import httpx
import pytest


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


class FakeClock:
    """Settable clock for TTL tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 9, 10, 16, 0, tzinfo=timezone.utc))


@pytest.fixture
def make_record() -> Callable[..., Dict[str, Any]]:
    """Factory for WordPress post records as the API returns them."""

    def _make(
        post_id: int,
        title: str = "Deal",
        content: str = "<p>Body</p>",
        date: str = "2025-09-10T12:00:00",
        link: Optional[str] = None,
        media_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "id": post_id,
            "date": date,
            "link": link or f"https://deals.example.com/post-{post_id}/",
            "title": {"rendered": title},
            "content": {"rendered": content},
        }
        if media_url is not None:
            record["_embedded"] = {"wp:featuredmedia": [{"source_url": media_url}]}
        return record

    return _make


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an AsyncClient whose requests are answered by `handler`."""

    def _build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _build
