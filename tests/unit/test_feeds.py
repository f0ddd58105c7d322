"""Tests for feed parsing and per-feed failure isolation."""

import httpx
import pytest

from trendpipe.integrations.feeds import FeedFetcher


def _rss(count: int, *, broken: bool = False) -> str:
    items = []
    if broken:
        items.append("<item><title>No link here</title></item>")
        items.append("<item><link>https://example.com/no-title</link></item>")
    items.extend(
        f"<item><title>Headline {i}</title><link>https://example.com/{i}</link></item>"
        for i in range(count)
    )
    return (
        '<?xml version="1.0"?><rss version="2.0"><channel><title>Example</title>'
        + "".join(items)
        + "</channel></rss>"
    )


def test_parse_keeps_first_twenty_well_formed_items() -> None:
    fetcher = FeedFetcher(timeout=1, user_agent="test")

    items = fetcher.parse("https://example.com/rss", _rss(25, broken=True))

    assert len(items) == 20
    assert items[0].title == "Headline 0"
    assert items[0].link == "https://example.com/0"
    assert items[-1].title == "Headline 19"
    assert {i.feed_url for i in items} == {"https://example.com/rss"}


def test_parse_garbage_yields_no_items() -> None:
    assert FeedFetcher(timeout=1, user_agent="test").parse("u", "not a feed at all") == []


@pytest.mark.asyncio
async def test_fetch_all_isolates_failures_and_keeps_order() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host == "slow.example":
            raise httpx.ReadTimeout("timed out", request=request)
        if host == "missing.example":
            return httpx.Response(404, request=request)
        return httpx.Response(200, text=_rss(3), request=request)

    fetcher = FeedFetcher(timeout=2, user_agent="test", transport=httpx.MockTransport(handler))
    urls = ["https://slow.example/rss", "https://ok.example/rss", "https://missing.example/rss"]

    results = await fetcher.fetch_all(urls)

    assert [r.feed_url for r in results] == urls
    assert results[0].success is False
    assert results[0].error == "Timeout after 2s"
    assert results[1].success is True
    assert [i.title for i in results[1].items] == ["Headline 0", "Headline 1", "Headline 2"]
    assert results[2].error.startswith("HTTP error:")


@pytest.mark.asyncio
async def test_fetch_all_sends_user_agent() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["User-Agent"])
        return httpx.Response(200, text=_rss(1), request=request)

    fetcher = FeedFetcher(timeout=2, user_agent="TrendPipeTest/1.0", transport=httpx.MockTransport(handler))

    await fetcher.fetch_all(["https://ok.example/rss"])

    assert seen == ["TrendPipeTest/1.0"]


@pytest.mark.asyncio
async def test_fetch_all_empty() -> None:
    assert await FeedFetcher(timeout=1, user_agent="test").fetch_all([]) == []
