"""Tests for linkfix.scanner module."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from conftest import FakeRenderer, make_result
from linkfix.fixer import compute_fixes
from linkfix.models import ScanResult
from linkfix.scanner import (
    CrawlSession,
    ScanError,
    ScanOptions,
    collect_known_good,
    scan_site_async,
)

ROOT = "https://example.com/"


def _session(pages, **options) -> CrawlSession:
    return CrawlSession(ROOT, FakeRenderer(pages), ScanOptions(**options))


class TestCrawl:
    @pytest.mark.asyncio
    async def test_breadth_first_order(self):
        pages = {
            ROOT: ["https://example.com/a", "https://example.com/b"],
            "https://example.com/a": ["https://example.com/a/deep"],
            "https://example.com/b": [],
        }
        session = _session(pages)
        await session.crawl()

        assert session.visited == [
            ROOT,
            "https://example.com/a",
            "https://example.com/b",
            "https://example.com/a/deep",
        ]

    @pytest.mark.asyncio
    async def test_max_pages_one_visits_root_only(self):
        pages = {ROOT: ["https://example.com/a", "https://example.com/b"]}
        session = _session(pages, max_pages=1)
        edges = await session.crawl()

        assert session.visited == [ROOT]
        assert session.renderer.calls == [ROOT]
        # Links on the root are still recorded for verification.
        assert set(edges) == {"https://example.com/a", "https://example.com/b"}

    @pytest.mark.asyncio
    async def test_page_visited_once(self):
        pages = {
            ROOT: ["https://example.com/a", "https://example.com/a/#top"],
            "https://example.com/a": [ROOT, "https://example.com/a"],
        }
        session = _session(pages)
        await session.crawl()

        assert session.renderer.calls == [ROOT, "https://example.com/a"]

    @pytest.mark.asyncio
    async def test_edges_collect_every_source(self):
        pages = {
            ROOT: ["https://example.com/shared", "https://example.com/x"],
            "https://example.com/x": ["https://example.com/shared/"],
        }
        session = _session(pages)
        edges = await session.crawl()

        assert edges["https://example.com/shared"].source_pages == [
            ROOT,
            "https://example.com/x",
        ]

    @pytest.mark.asyncio
    async def test_external_links_ignored(self):
        pages = {
            ROOT: [
                "https://other.com/page",
                "http://example.com/insecure",
                "https://docs.example.com/sub",
                "https://example.com/ok",
            ]
        }
        session = _session(pages)
        edges = await session.crawl()

        assert set(edges) == {"https://example.com/ok"}
        assert "https://other.com/page" not in session.renderer.calls

    @pytest.mark.asyncio
    async def test_excluded_pages_never_rendered(self):
        pages = {
            ROOT: ["https://example.com/blog/post", "https://example.com/docs"],
            "https://example.com/docs": ["https://example.com/blog/post"],
        }
        session = _session(pages, exclude_patterns=[r"/blog/"])
        edges = await session.crawl()

        assert session.visited == [ROOT, "https://example.com/docs"]
        # Excluded pages are not crawled but links to them are still checked.
        assert "https://example.com/blog/post" in edges

    @pytest.mark.asyncio
    async def test_excluded_pages_do_not_use_budget(self):
        pages = {ROOT: ["https://example.com/skip", "https://example.com/keep"]}
        session = _session(pages, max_pages=2, exclude_patterns=["skip"])
        await session.crawl()

        assert session.visited == [ROOT, "https://example.com/keep"]

    @pytest.mark.asyncio
    async def test_render_failure_is_recorded_and_crawl_continues(self):
        pages = {
            ROOT: ["https://example.com/broken", "https://example.com/fine"],
            "https://example.com/broken": RuntimeError("navigation failed"),
            "https://example.com/fine": [],
        }
        session = _session(pages)
        await session.crawl()

        assert session.visited == [
            ROOT,
            "https://example.com/broken",
            "https://example.com/fine",
        ]
        assert session.errors == [
            {
                "url": "https://example.com/broken",
                "error": "navigation failed",
                "stage": "render",
            }
        ]

    @pytest.mark.asyncio
    async def test_stop_halts_before_next_page(self):
        class StoppingRenderer(FakeRenderer):
            async def render(self, url, timeout):
                hrefs = await super().render(url, timeout)
                session.stop()
                return hrefs

        renderer = StoppingRenderer({ROOT: ["https://example.com/a"]})
        session = CrawlSession(ROOT, renderer)
        await session.crawl()

        assert session.visited == [ROOT]

    def test_sessions_do_not_share_state(self):
        first = _session({})
        second = _session({})
        first.visited.append("x")
        assert second.visited == []


class TestScanErrors:
    @pytest.mark.parametrize(
        "url", ["not a url", "/relative/path", "ftp://example.com/", "http://[::1"]
    )
    def test_invalid_root(self, url):
        with pytest.raises(ScanError):
            CrawlSession(url, FakeRenderer({}))

    def test_invalid_pattern(self):
        with pytest.raises(ScanError, match="Invalid exclude pattern"):
            _session({}, exclude_patterns=["("])

    @pytest.mark.parametrize(
        "options",
        [{"max_pages": 0}, {"concurrency": 0}, {"timeout": 0}, {"timeout": -1.0}],
    )
    def test_invalid_limits(self, options):
        with pytest.raises(ScanError):
            _session({}, **options)

    def test_scan_error_is_value_error(self):
        assert issubclass(ScanError, ValueError)


class TestScanOptions:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LINKFIX_MAX_PAGES", "7")
        monkeypatch.setenv("LINKFIX_CONCURRENCY", "3")
        monkeypatch.delenv("LINKFIX_TIMEOUT", raising=False)

        options = ScanOptions.from_env()
        assert options.max_pages == 7
        assert options.concurrency == 3
        assert options.timeout == 15.0

    def test_overrides_win_and_none_is_ignored(self, monkeypatch):
        monkeypatch.setenv("LINKFIX_MAX_PAGES", "7")
        monkeypatch.delenv("LINKFIX_TIMEOUT", raising=False)
        options = ScanOptions.from_env(max_pages=2, timeout=None)
        assert options.max_pages == 2
        assert options.timeout == 15.0


class TestScanSiteAsync:
    @pytest.mark.asyncio
    async def test_end_to_end_with_fake_collaborators(self, make_client, monkeypatch):
        for name in ("LINKFIX_MAX_PAGES", "LINKFIX_TIMEOUT", "LINKFIX_CONCURRENCY"):
            monkeypatch.delenv(name, raising=False)

        pages = {
            ROOT: [
                "https://example.com/docs",
                "https://example.com/old",
                "https://example.com/missing",
            ],
            "https://example.com/docs": ["https://example.com/"],
            "https://example.com/old": [],
            "https://example.com/missing": RuntimeError("404 page"),
        }
        routes = {
            ROOT: 200,
            "https://example.com/docs": 200,
            "https://example.com/old": (301, {"Location": "/docs"}),
        }
        renderer = FakeRenderer(pages)
        async with make_client(routes) as client:
            scan = await scan_site_async(
                ROOT, max_pages=10, renderer=renderer, client=client
            )

        assert isinstance(scan, ScanResult)
        assert scan.base_url == ROOT
        assert scan.pages_crawled == [
            ROOT,
            "https://example.com/docs",
            "https://example.com/old",
            "https://example.com/missing",
        ]
        assert scan.total_links == 4
        assert [r.href for r in scan.broken_links] == ["https://example.com/missing"]
        assert [r.href for r in scan.redirect_links] == ["https://example.com/old"]
        assert scan.stats["render_errors"] == 1

    @pytest.mark.asyncio
    async def test_invalid_root_fails_before_browser_launch(self):
        with patch("linkfix.scanner.BrowserRenderer") as browser_cls:
            with pytest.raises(ScanError):
                await scan_site_async("not a url", max_pages=5)
        browser_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_uses_browser_renderer_by_default(self, make_client):
        class FakeBrowser(FakeRenderer):
            async def __aenter__(self):
                return self

            async def __aexit__(self, *exc):
                return None

        browser = FakeBrowser({ROOT: []})
        with patch("linkfix.scanner.BrowserRenderer", return_value=browser) as cls:
            async with make_client({}) as client:
                scan = await scan_site_async(ROOT, max_pages=1, client=client)

        cls.assert_called_once()
        assert scan.pages_crawled == [ROOT]
        assert browser.calls == [ROOT]

    @pytest.mark.asyncio
    async def test_run_passes_options_to_verifier(self):
        session = _session({ROOT: ["https://example.com/a"]}, concurrency=2, timeout=3.0)
        with patch("linkfix.scanner.verify_edges", new=AsyncMock(return_value=[])) as mock:
            scan = await session.run()

        kwargs = mock.call_args.kwargs
        assert kwargs["concurrency"] == 2
        assert kwargs["timeout"] == 3.0
        assert kwargs["follow_redirects"] is True
        assert scan.results == []


class TestDerivedSets:
    def _scan(self) -> ScanResult:
        return ScanResult(
            base_url=ROOT,
            pages_crawled=[ROOT, "https://example.com/docs", "https://example.com/bad"],
            results=[
                make_result("https://example.com/docs", 200),
                make_result("https://example.com/about", 200),
                make_result("https://example.com/missing", 404),
                make_result("https://example.com/bad", 500),
                make_result(
                    "https://example.com/old",
                    200,
                    final_url="https://example.com/new",
                    chain=("https://example.com/old",),
                ),
                make_result(
                    "https://example.com/moved-gone",
                    404,
                    final_url="https://example.com/gone",
                    chain=("https://example.com/moved-gone",),
                ),
                make_result("https://example.com/down", None, error="refused"),
            ],
            errors=[],
        )

    def test_collect_known_good(self):
        assert collect_known_good(self._scan()) == [
            ROOT,
            "https://example.com/docs",
            "https://example.com/about",
        ]

    def test_collect_known_good_skips_render_failures(self):
        scan = self._scan()
        scan.errors.append({"url": ROOT, "error": "boom", "stage": "render"})
        assert ROOT not in collect_known_good(scan)

    @pytest.mark.asyncio
    async def test_broken_redirect_yields_redirect_target_fix(self, make_client):
        pages = {ROOT: ["https://example.com/old-page", "https://example.com/docs"]}
        routes = {
            "https://example.com/docs": 200,
            "https://example.com/old-page": (301, {"Location": "/new-page"}),
        }
        async with make_client(routes) as client:
            scan = await scan_site_async(
                ROOT, max_pages=5, renderer=FakeRenderer(pages), client=client
            )

        fixes = compute_fixes(
            scan.broken_links,
            collect_known_good(scan),
            scan.redirect_links,
            min_confidence=0.5,
        )

        assert [f.original_href for f in fixes] == ["https://example.com/old-page"]
        assert fixes[0].suggested_href == "https://example.com/new-page"
        assert fixes[0].method == "redirect-target"
        assert fixes[0].confidence == 0.95
