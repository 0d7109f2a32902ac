"""Page rendering collaborator used by the crawl frontier.

A renderer materializes one page and reports the absolute hrefs found on
it. The default implementation drives a headless browser through
Crawl4AI so that links injected by JavaScript are discovered as well.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import urljoin, urlsplit

from crawl4ai import AsyncWebCrawler

from .config import RenderOverrides, build_link_run_config, build_renderer_browser_config

LOGGER = logging.getLogger(__name__)

_LINK_BUCKETS = ("internal", "external")


class RenderError(RuntimeError):
    """Raised when a page cannot be navigated or rendered."""

    def __init__(self, message: str, url: str = ""):
        self.url = url
        super().__init__(message)


class PageRenderer(Protocol):
    async def render(self, url: str, timeout: float) -> List[str]:
        """Return absolute hrefs found on ``url``; raise on navigation failure."""
        ...


def _derive_failure_reason(result: Any) -> str:
    error_message = getattr(result, "error_message", None)
    if error_message:
        return str(error_message)
    status_code = getattr(result, "status_code", None)
    if status_code:
        return f"HTTP {status_code}"
    return "Renderer returned no content"


def extract_hrefs(links: Optional[Dict[str, List[Dict[str, Any]]]], base_url: str) -> List[str]:
    """Resolve Crawl4AI link metadata into absolute http(s) hrefs, in page order."""
    hrefs: List[str] = []
    for bucket in _LINK_BUCKETS:
        for entry in (links or {}).get(bucket, []) or []:
            href = (entry or {}).get("href")
            if not href:
                continue
            resolved = urljoin(base_url, href.strip())
            if urlsplit(resolved).scheme in ("http", "https"):
                hrefs.append(resolved)
    return hrefs


class BrowserRenderer:
    """Renderer backed by a single Crawl4AI ``AsyncWebCrawler``.

    Use as an async context manager; the browser is started on enter and
    closed on exit::

        async with BrowserRenderer() as renderer:
            hrefs = await renderer.render("https://example.com", timeout=15)
    """

    def __init__(
        self,
        *,
        user_agent: Optional[str] = None,
        overrides: Optional[RenderOverrides] = None,
    ) -> None:
        self._browser_config = build_renderer_browser_config(user_agent)
        self._overrides = overrides
        self._crawler: Optional[AsyncWebCrawler] = None

    async def __aenter__(self) -> "BrowserRenderer":
        self._crawler = AsyncWebCrawler(config=self._browser_config)
        await self._crawler.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        crawler, self._crawler = self._crawler, None
        if crawler is not None:
            await crawler.__aexit__(exc_type, exc, tb)

    async def render(self, url: str, timeout: float) -> List[str]:
        if self._crawler is None:
            raise RenderError("BrowserRenderer used outside of its context", url=url)

        run_config = build_link_run_config(timeout, self._overrides)
        container = await self._crawler.arun(url=url, config=run_config)

        try:
            result = container[0]
        except (IndexError, TypeError, KeyError):
            result = container

        if result is None or not getattr(result, "success", False):
            raise RenderError(_derive_failure_reason(result), url=url)

        base_url = str(
            getattr(result, "redirected_url", None) or getattr(result, "url", None) or url
        )
        return extract_hrefs(getattr(result, "links", None), base_url)
