"""Tests for the manual feed runner script."""

import importlib.util
from pathlib import Path

import pytest

from dealfeed.core.exceptions import TransportError
from dealfeed.models.post import Post


SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "run_feed.py"


@pytest.fixture
def run_feed_module():
    spec = importlib.util.spec_from_file_location("run_feed", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class FixedClient:
    """Feed client stand-in returning one fixed outcome."""

    def __init__(self, outcome):
        self.outcome = outcome

    async def fetch_all(self, search=None, sort_by_date=False):
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return list(self.outcome)


def _use_client(monkeypatch, module, outcome) -> None:
    monkeypatch.setattr(module, "get_feed_client", lambda http_client: FixedClient(outcome))


POSTS = [
    Post(
        id=1,
        published_at="2025-09-10T12:00:00",
        permalink="https://deals.example.com/post-1/",
        title_html="[Nike] Running shoes $59.99",
        body_html="",
        structured_media_url="https://cdn.example.com/1.jpg",
    ),
]


class TestRunFeed:
    """Tests for run_feed exit codes and output."""

    async def test_failed_cycle_exits_non_zero(self, run_feed_module, monkeypatch, capsys):
        _use_client(monkeypatch, run_feed_module, TransportError("https://deals.example.com", "down"))

        assert await run_feed_module.run_feed() == 1
        assert "Couldn't load deals" in capsys.readouterr().out

    async def test_prints_visible_posts(self, run_feed_module, monkeypatch, capsys):
        _use_client(monkeypatch, run_feed_module, POSTS)

        assert await run_feed_module.run_feed(store="Nike") == 0
        out = capsys.readouterr().out
        assert "Running shoes $59.99" in out
        assert "Price: $59.99" in out
        assert "https://cdn.example.com/1.jpg" in out

    async def test_no_match_with_filters(self, run_feed_module, monkeypatch, capsys):
        _use_client(monkeypatch, run_feed_module, POSTS)

        assert await run_feed_module.run_feed(query="kindle") == 0
        assert "Change filters" in capsys.readouterr().out

    async def test_empty_feed_without_filters(self, run_feed_module, monkeypatch, capsys):
        _use_client(monkeypatch, run_feed_module, [])

        assert await run_feed_module.run_feed() == 0
        assert "returned no posts" in capsys.readouterr().out

    async def test_list_stores(self, run_feed_module, monkeypatch, capsys):
        _use_client(monkeypatch, run_feed_module, POSTS)

        assert await run_feed_module.run_feed(list_stores=True) == 0
        assert "- Nike" in capsys.readouterr().out
