"""Broken-link scanner with ranked fix suggestions.

This package crawls a website, verifies every internal link it finds and
proposes replacements for the ones that are broken. It supports:

- Site scanning (breadth-first crawl through a headless browser)
- Link verification with redirect-chain tracking and bounded concurrency
- Fix suggestions from redirect targets and path similarity
- Redirect configs for Next.js, Netlify and nginx

Example usage:

    from linkfix import scan_site_async, compute_fixes, fixes_to_redirects
    from linkfix import check_urls_async, collect_known_good

    result = await scan_site_async("https://example.com", max_pages=50)
    for link in result.broken_links:
        print(link.href, link.source_pages)

    fixes = compute_fixes(
        result.broken_links,
        collect_known_good(result),
        result.redirect_links,
        min_confidence=0.5,
    )
    rules = fixes_to_redirects(fixes, 0.6)

    # Check a fixed list of URLs without crawling
    results = await check_urls_async(["https://example.com/a"], timeout=10, concurrency=5)
"""

from __future__ import annotations

__version__ = "0.1.0"

import asyncio
from typing import Iterable, List

from .fixer import apply_fixes_to_content, compute_fixes, fixes_to_redirects
from .models import FixSuggestion, LinkCheckResult, LinkEdge, RedirectRule, ScanResult
from .redirects import render_redirects, write_all_redirect_configs, write_redirect_config
from .render import BrowserRenderer, PageRenderer, RenderError
from .scanner import (
    CrawlSession,
    ScanError,
    ScanOptions,
    collect_known_good,
    scan_site,
    scan_site_async,
)
from .similarity import levenshtein, path_similarity
from .urls import is_same_origin, normalize_url, path_of
from .verify import check_url, check_urls_async

__all__ = [
    # Data types
    "LinkEdge",
    "LinkCheckResult",
    "FixSuggestion",
    "RedirectRule",
    "ScanResult",
    # Scanning
    "ScanOptions",
    "ScanError",
    "CrawlSession",
    "scan_site",
    "scan_site_async",
    "collect_known_good",
    # Verification
    "check_url",
    "check_urls",
    "check_urls_async",
    # Rendering
    "PageRenderer",
    "BrowserRenderer",
    "RenderError",
    # Fixes
    "compute_fixes",
    "fixes_to_redirects",
    "apply_fixes_to_content",
    "levenshtein",
    "path_similarity",
    # Redirect configs
    "render_redirects",
    "write_redirect_config",
    "write_all_redirect_configs",
    # URLs
    "normalize_url",
    "is_same_origin",
    "path_of",
    # MCP Server
    "mcp",
]


def get_mcp_server():
    """Get the MCP server instance (lazy import to avoid dependency if not needed)."""
    from .mcp_server import mcp

    return mcp


# Lazy import for mcp to avoid requiring fastmcp if not used
def __getattr__(name):
    if name == "mcp":
        from .mcp_server import mcp

        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def check_urls(
    urls: Iterable[str],
    *,
    timeout: float = 15.0,
    concurrency: int = 5,
    follow_redirects: bool = True,
) -> List[LinkCheckResult]:
    """Synchronous wrapper for check_urls_async."""
    return asyncio.run(
        check_urls_async(
            urls,
            timeout=timeout,
            concurrency=concurrency,
            follow_redirects=follow_redirects,
        )
    )
