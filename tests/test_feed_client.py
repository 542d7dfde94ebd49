"""Tests for the paginated WordPress feed client."""

import json

import httpx
import pytest

from dealfeed.core.exceptions import (
    DecodeError,
    InvalidResponseError,
    InvalidURLError,
    TransportError,
)
from dealfeed.scrapers.feed_client import FeedClient


BASE_URL = "https://deals.example.com/wp-json/wp/v2/posts"


class PagedFeed:
    """MockTransport handler serving pages of generated post records.

    `sizes[n]` is the number of records on page n + 1; pages past the end
    are empty.
    """

    def __init__(self, make_record, sizes, headers=None):
        self.make_record = make_record
        self.sizes = list(sizes)
        self.headers = headers or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        page = int(request.url.params["page"])
        count = self.sizes[page - 1] if page <= len(self.sizes) else 0
        first_id = sum(self.sizes[: page - 1]) + 1
        records = [self.make_record(first_id + i) for i in range(count)]
        return httpx.Response(200, json=records, headers=self.headers)

    @property
    def pages_requested(self):
        return [int(r.url.params["page"]) for r in self.requests]


def _client(http_client, **kwargs) -> FeedClient:
    return FeedClient(BASE_URL, retry_attempts=1, http_client=http_client, **kwargs)


class TestRequestParameters:
    """Tests for the request the client builds."""

    def test_default_params(self):
        params = FeedClient(BASE_URL).build_params(page=1)
        assert params == {
            "per_page": 100,
            "_embed": 1,
            "_fields": "id,date,link,title,content,_embedded",
            "orderby": "date",
            "order": "desc",
            "page": 1,
        }

    def test_search_is_trimmed_and_blank_dropped(self):
        client = FeedClient(BASE_URL)
        assert client.build_params(2, search="  tv  ")["search"] == "tv"
        assert "search" not in client.build_params(2, search="   ")

    def test_after_bound(self):
        params = FeedClient(BASE_URL, after="2025-09-03T00:00:00").build_params(1)
        assert params["after"] == "2025-09-03T00:00:00"

    def test_build_url_merges_existing_query(self):
        url = FeedClient(BASE_URL + "?status=publish").build_url(3, search="lego")
        assert url.host == "deals.example.com"
        assert url.params["status"] == "publish"
        assert url.params["page"] == "3"
        assert url.params["search"] == "lego"

    @pytest.mark.parametrize("base_url", ["not a url", "ftp://deals.example.com/posts", ""])
    def test_malformed_base_url(self, base_url):
        with pytest.raises(InvalidURLError):
            FeedClient(base_url).build_url(1)

    async def test_sent_on_the_wire(self, make_record, mock_http):
        feed = PagedFeed(make_record, [3])
        async with mock_http(feed) as http:
            await _client(http).fetch_all(search="air fryer")

        request = feed.requests[0]
        assert request.url.path == "/wp-json/wp/v2/posts"
        assert request.url.params["per_page"] == "100"
        assert request.url.params["_embed"] == "1"
        assert request.url.params["orderby"] == "date"
        assert request.url.params["order"] == "desc"
        assert request.url.params["search"] == "air fryer"
        assert request.headers["Accept"] == "application/json"


class TestPagination:
    """Tests for the paging loop and its stop conditions."""

    async def test_stops_at_short_page(self, make_record, mock_http):
        feed = PagedFeed(make_record, [100, 100, 42])
        async with mock_http(feed) as http:
            posts = await _client(http).fetch_all()

        assert len(posts) == 242
        assert feed.pages_requested == [1, 2, 3]
        assert [p.id for p in posts[:3]] == [1, 2, 3]

    async def test_exact_multiple_needs_one_empty_page(self, make_record, mock_http):
        feed = PagedFeed(make_record, [100, 100])
        async with mock_http(feed) as http:
            posts = await _client(http).fetch_all()

        assert len(posts) == 200
        assert feed.pages_requested == [1, 2, 3]

    async def test_empty_feed(self, make_record, mock_http):
        feed = PagedFeed(make_record, [])
        async with mock_http(feed) as http:
            assert await _client(http).fetch_all() == []
        assert feed.pages_requested == [1]

    async def test_cap_stops_requests(self, make_record, mock_http):
        feed = PagedFeed(make_record, [100] * 100)
        async with mock_http(feed) as http:
            posts = await _client(http).fetch_all()

        assert len(posts) == 7500
        assert len(feed.requests) == 75

    async def test_cap_truncates_partial_page(self, make_record, mock_http):
        feed = PagedFeed(make_record, [10, 10, 10])
        async with mock_http(feed) as http:
            posts = await _client(http, page_size=10, max_posts=25).fetch_all()

        assert [p.id for p in posts] == list(range(1, 26))
        assert feed.pages_requested == [1, 2, 3]

    async def test_total_pages_header_stops_early(self, make_record, mock_http):
        feed = PagedFeed(make_record, [100] * 5, headers={"X-WP-TotalPages": "2"})
        async with mock_http(feed) as http:
            posts = await _client(http).fetch_all()

        assert len(posts) == 200
        assert feed.pages_requested == [1, 2]

    async def test_garbage_total_pages_header_ignored(self, make_record, mock_http):
        feed = PagedFeed(make_record, [100, 7], headers={"X-WP-TotalPages": "lots"})
        async with mock_http(feed) as http:
            posts = await _client(http).fetch_all()

        assert len(posts) == 107

    async def test_duplicates_across_pages_dropped(self, make_record, mock_http):
        def handler(request):
            page = int(request.url.params["page"])
            # a new post shifted everything down by one between requests
            ids = {1: range(1, 101), 2: range(100, 200), 3: range(200, 230)}[page]
            return httpx.Response(200, json=[make_record(i) for i in ids])

        async with mock_http(handler) as http:
            posts = await _client(http).fetch_all()

        ids = [p.id for p in posts]
        assert len(ids) == len(set(ids)) == 229

    async def test_server_order_kept_by_default(self, make_record, mock_http):
        records = [
            make_record(1, date="2025-09-08T10:00:00"),
            make_record(2, date="2025-09-10T10:00:00"),
        ]

        async with mock_http(lambda request: httpx.Response(200, json=records)) as http:
            posts = await _client(http).fetch_all()
        assert [p.id for p in posts] == [1, 2]

    async def test_sort_by_date(self, make_record, mock_http):
        records = [
            make_record(1, date="2025-09-08T10:00:00"),
            make_record(2, date="2025-09-10T10:00:00"),
            make_record(3, date="2025-09-09T10:00:00"),
            make_record(4, date="2025-09-10T10:00:00"),
        ]

        async with mock_http(lambda request: httpx.Response(200, json=records)) as http:
            posts = await _client(http).fetch_all(sort_by_date=True)
        # stable: 2 and 4 share a timestamp and keep server order
        assert [p.id for p in posts] == [2, 4, 3, 1]


class TestDecoding:
    """Tests for record decoding."""

    async def test_media_and_fields_decoded(self, make_record, mock_http):
        record = make_record(9, title="[Target] Lamp", media_url="https://cdn.example.com/lamp.jpg")

        async with mock_http(lambda request: httpx.Response(200, json=[record])) as http:
            (post,) = await _client(http).fetch_all()

        assert post.id == 9
        assert post.store_name == "Target"
        assert post.structured_media_url == "https://cdn.example.com/lamp.jpg"

    async def test_malformed_record_fails_cycle(self, make_record, mock_http):
        bad = make_record(5)
        del bad["title"]
        records = [make_record(4), bad]

        async with mock_http(lambda request: httpx.Response(200, json=records)) as http:
            with pytest.raises(DecodeError) as exc_info:
                await _client(http).fetch_all()

        assert exc_info.value.post_id == 5
        assert exc_info.value.message.startswith("Post 5: title")

    async def test_non_object_record_fails_cycle(self, mock_http):
        async with mock_http(lambda request: httpx.Response(200, json=["oops"])) as http:
            with pytest.raises(DecodeError):
                await _client(http).fetch_all()


class TestFailures:
    """Tests for error mapping. No failure yields partial results."""

    async def test_error_status_on_later_page(self, make_record, mock_http):
        def handler(request):
            if request.url.params["page"] == "2":
                return httpx.Response(500, text="Internal Server Error")
            return httpx.Response(200, json=[make_record(i) for i in range(1, 101)])

        async with mock_http(handler) as http:
            with pytest.raises(InvalidResponseError) as exc_info:
                await _client(http).fetch_all()

        assert exc_info.value.status_code == 500

    async def test_error_status_not_retried(self, mock_http):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        async with mock_http(handler) as http:
            with pytest.raises(InvalidResponseError):
                await FeedClient(BASE_URL, retry_attempts=3, http_client=http).fetch_all()
        assert len(calls) == 1

    async def test_invalid_json(self, mock_http):
        handler = lambda request: httpx.Response(200, content=b"<html>maintenance</html>")
        async with mock_http(handler) as http:
            with pytest.raises(InvalidResponseError, match="JSON"):
                await _client(http).fetch_all()

    async def test_object_instead_of_array(self, mock_http):
        body = json.dumps({"code": "rest_invalid_param"}).encode()
        handler = lambda request: httpx.Response(200, content=body)
        async with mock_http(handler) as http:
            with pytest.raises(InvalidResponseError, match="array"):
                await _client(http).fetch_all()

    async def test_connection_error(self, mock_http):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        async with mock_http(handler) as http:
            with pytest.raises(TransportError, match="connection refused"):
                await _client(http).fetch_all()

    async def test_timeout(self, mock_http):
        def handler(request):
            raise httpx.ReadTimeout("read timed out")

        async with mock_http(handler) as http:
            with pytest.raises(TransportError, match="timed out"):
                await _client(http).fetch_all()

    async def test_transport_error_retried(self, make_record, mock_http):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("flaky")
            return httpx.Response(200, json=[make_record(1)])

        async with mock_http(handler) as http:
            client = FeedClient(BASE_URL, retry_attempts=2, http_client=http)
            posts = await client.fetch_all()

        assert [p.id for p in posts] == [1]
        assert len(calls) == 2

    async def test_malformed_base_url_fails_before_request(self, mock_http):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=[])

        async with mock_http(handler) as http:
            with pytest.raises(InvalidURLError):
                await FeedClient("not a url", http_client=http).fetch_all()
        assert calls == []
