"""Breadth-first site crawl followed by a separate link verification pass."""

from __future__ import annotations

import asyncio
import logging
import re
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Pattern, Set

import httpx

from . import settings
from .config import RenderOverrides
from .models import LinkEdge, ScanResult
from .render import BrowserRenderer, PageRenderer
from .urls import is_same_origin, normalize_url, origin_of
from .verify import verify_edges

LOGGER = logging.getLogger(__name__)


class ScanError(ValueError):
    """Raised when a scan cannot start because its inputs are invalid."""


@dataclass
class ScanOptions:
    """Options for a site scan."""

    max_pages: int = settings.DEFAULT_MAX_PAGES
    timeout: float = settings.DEFAULT_TIMEOUT
    follow_redirects: bool = True
    concurrency: int = settings.DEFAULT_CONCURRENCY
    exclude_patterns: List[str] = field(default_factory=list)
    user_agent: str = settings.DEFAULT_USER_AGENT

    @classmethod
    def from_env(cls, **overrides) -> "ScanOptions":
        """Build options from ``LINKFIX_*`` variables; keyword overrides win."""
        values = {
            "max_pages": settings.max_pages(),
            "timeout": settings.timeout(),
            "concurrency": settings.concurrency(),
            "user_agent": settings.user_agent(),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def validate(self) -> None:
        if self.max_pages < 1:
            raise ScanError(f"max_pages must be >= 1, got {self.max_pages}")
        if self.concurrency < 1:
            raise ScanError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.timeout <= 0:
            raise ScanError(f"timeout must be positive, got {self.timeout}")


def _root_origin(url: str) -> str:
    origin = origin_of(url)
    if origin is None or not origin.startswith(("http://", "https://")):
        raise ScanError(f"Root URL must be an absolute http(s) URL: {url!r}")
    return origin


def _compile_excludes(patterns: List[str]) -> List[Pattern[str]]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise ScanError(f"Invalid exclude pattern {pattern!r}: {exc}") from exc
    return compiled


class CrawlSession:
    """State for one crawl: visited pages, the frontier and discovered edges.

    Nothing here is shared between sessions, so several crawls may run in
    the same event loop concurrently.
    """

    def __init__(
        self,
        root_url: str,
        renderer: PageRenderer,
        options: Optional[ScanOptions] = None,
    ) -> None:
        self.options = options or ScanOptions()
        self.options.validate()
        self.origin = _root_origin(root_url)
        self._excludes = _compile_excludes(self.options.exclude_patterns)

        self.root_url = normalize_url(root_url)
        self.renderer = renderer

        self.visited: List[str] = []
        self._visited_set: Set[str] = set()
        # The deque keeps discovery order; the set gives O(1) membership.
        self._frontier: Deque[str] = deque([self.root_url])
        self._queued: Set[str] = {self.root_url}
        self._excluded: Set[str] = set()
        self.edges: Dict[str, LinkEdge] = {}
        self.errors: List[Dict[str, str]] = []
        self._stop_requested = False

    def stop(self) -> None:
        """Ask the crawl loop to finish after the current page."""
        self._stop_requested = True

    def _is_excluded(self, url: str) -> bool:
        return any(regex.search(url) for regex in self._excludes)

    def _record(self, href: str, page: str) -> None:
        link = normalize_url(href)
        if not is_same_origin(link, self.origin):
            return

        edge = self.edges.get(link)
        if edge is None:
            edge = self.edges[link] = LinkEdge(href=link)
        edge.add_source(page)

        if (
            link not in self._visited_set
            and link not in self._queued
            and link not in self._excluded
        ):
            self._frontier.append(link)
            self._queued.add(link)

    async def crawl(self) -> Dict[str, LinkEdge]:
        """Expand the frontier until it is empty or ``max_pages`` is reached."""
        max_pages = self.options.max_pages
        while self._frontier and len(self.visited) < max_pages:
            if self._stop_requested:
                LOGGER.info("Crawl stopped after %d page(s)", len(self.visited))
                break

            url = self._frontier.popleft()
            self._queued.discard(url)
            if url in self._visited_set:
                continue
            if self._is_excluded(url):
                LOGGER.debug("Excluded %s", url)
                self._excluded.add(url)
                continue

            self._visited_set.add(url)
            self.visited.append(url)
            LOGGER.debug("Crawling %s (%d/%d)", url, len(self.visited), max_pages)

            try:
                hrefs = await self.renderer.render(url, self.options.timeout)
            except Exception as exc:
                LOGGER.warning("Error crawling %s: %s", url, exc)
                self.errors.append(
                    {"url": url, "error": str(exc) or type(exc).__name__, "stage": "render"}
                )
                continue

            for href in hrefs:
                self._record(href, url)

        return self.edges

    async def run(self, *, client: Optional[httpx.AsyncClient] = None) -> ScanResult:
        """Crawl, then verify every discovered edge."""
        await self.crawl()
        results = await verify_edges(
            self.edges.values(),
            timeout=self.options.timeout,
            concurrency=self.options.concurrency,
            follow_redirects=self.options.follow_redirects,
            client=client,
            user_agent=self.options.user_agent,
        )
        return ScanResult(
            base_url=self.root_url,
            pages_crawled=list(self.visited),
            results=results,
            errors=list(self.errors),
        )


async def scan_site_async(
    url: str,
    *,
    max_pages: Optional[int] = None,
    timeout: Optional[float] = None,
    follow_redirects: bool = True,
    concurrency: Optional[int] = None,
    exclude_patterns: Optional[List[str]] = None,
    renderer: Optional[PageRenderer] = None,
    render_overrides: Optional[RenderOverrides] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> ScanResult:
    """
    Crawl a website from ``url`` and check every internal link found.

    Args:
        url: Root URL; its origin bounds the crawl.
        max_pages: Maximum number of pages to render (default: LINKFIX_MAX_PAGES).
        timeout: Per-request timeout in seconds (default: LINKFIX_TIMEOUT).
        follow_redirects: Whether to follow and record redirect chains.
        concurrency: Concurrent link checks (default: LINKFIX_CONCURRENCY).
        exclude_patterns: Regular expressions; matching pages are never visited.
        renderer: Custom page renderer. A headless browser is used otherwise.
        render_overrides: Tweaks for the default browser renderer.
        client: Optional shared httpx client for the verification pass.

    Returns:
        ScanResult with per-link results and crawl statistics.

    Raises:
        ScanError: If the root URL, patterns or limits are invalid.
    """
    options = ScanOptions.from_env(
        max_pages=max_pages,
        timeout=timeout,
        concurrency=concurrency,
        follow_redirects=follow_redirects,
        exclude_patterns=list(exclude_patterns or []),
    )

    LOGGER.info(
        "Starting scan: %s (max_pages=%d, concurrency=%d)",
        url,
        options.max_pages,
        options.concurrency,
    )

    if renderer is not None:
        result = await CrawlSession(url, renderer, options).run(client=client)
    else:
        # Fail fast before a browser is launched.
        options.validate()
        _root_origin(url)
        _compile_excludes(options.exclude_patterns)
        async with BrowserRenderer(
            user_agent=options.user_agent, overrides=render_overrides
        ) as browser:
            result = await CrawlSession(url, browser, options).run(client=client)

    LOGGER.info(
        "Scan complete: %d pages, %d links (%d broken, %d server errors)",
        len(result.pages_crawled),
        result.total_links,
        len(result.broken_links),
        len(result.server_errors),
    )
    return result


def scan_site(url: str, **kwargs) -> ScanResult:
    """Synchronous wrapper for scan_site_async."""
    return asyncio.run(scan_site_async(url, **kwargs))


def collect_known_good(scan: ScanResult) -> List[str]:
    """Candidate URLs believed to serve valid content after ``scan``.

    Crawled pages that rendered without error come first, followed by
    verified links that answered 2xx without redirecting.
    """
    bad = {
        r.href
        for r in scan.results
        if r.is_not_found or r.is_server_error or r.is_connection_error
    }
    bad.update(error["url"] for error in scan.errors)

    known: Dict[str, None] = {}
    for page in scan.pages_crawled:
        if page not in bad:
            known.setdefault(page, None)
    for result in scan.results:
        status = result.status_code
        if status is not None and 200 <= status < 300 and not result.redirect_chain:
            if result.href not in bad:
                known.setdefault(result.href, None)
    return list(known)
