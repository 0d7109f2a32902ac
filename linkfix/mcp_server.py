"""MCP server exposing the link scanner and fix engine.

Provides tools for:
- Scanning a site for broken links, redirects and server errors
- Suggesting replacements for broken links and rendering redirect configs

Supports both STDIO and HTTP transports.

Usage:
    # STDIO
    python -m linkfix.mcp_server

    # HTTP (for remote access)
    python -m linkfix.mcp_server --transport http --port 8000

Environment Variables:
    LINKFIX_MAX_PAGES, LINKFIX_TIMEOUT, LINKFIX_CONCURRENCY,
    LINKFIX_MIN_CONFIDENCE, LINKFIX_USER_AGENT (see linkfix.settings)
"""

from __future__ import annotations

import argparse
import json
import logging
from enum import Enum
from typing import List, Optional

from fastmcp import FastMCP

from . import settings
from .fixer import compute_fixes, fixes_to_redirects
from .redirects import render_redirects
from .report import build_report, format_fixes_markdown, format_scan_markdown
from .scanner import ScanError, collect_known_good

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
LOGGER = logging.getLogger(__name__)

settings.load_config()

mcp = FastMCP(
    name="Link Checker & Fixer",
    instructions="""
    A broken-link checker that provides:

    1. scan_links: Crawl a site and report broken links, redirects,
       server errors and connection errors.
    2. suggest_fixes: Scan a site and propose a replacement for each broken
       link, optionally rendered as a redirect config.

    Output formats:
    - markdown: Human-readable report (default)
    - json: Full details including source pages and statistics
    """,
)


class OutputFormat(str, Enum):
    """Output format for tool results."""

    markdown = "markdown"
    json = "json"


def _parse_format(output_format: str) -> OutputFormat:
    try:
        return OutputFormat(output_format.lower())
    except ValueError:
        return OutputFormat.markdown


def _error_payload(message: str, url: str) -> str:
    LOGGER.error(message)
    return json.dumps({"error": message, "url": url}, ensure_ascii=False)


@mcp.tool
async def scan_links(
    url: str,
    max_pages: Optional[int] = None,
    concurrency: Optional[int] = None,
    exclude_patterns: Optional[List[str]] = None,
    follow_redirects: bool = True,
    output_format: str = "markdown",
):
    """
    Crawl a website and check every internal link it contains.

    Args:
        url: Root URL to scan; only links on the same origin are followed
        max_pages: Maximum pages to crawl (default: LINKFIX_MAX_PAGES or 100)
        concurrency: Concurrent link checks (default: LINKFIX_CONCURRENCY or 5)
        exclude_patterns: Regex patterns for pages that must not be crawled
        follow_redirects: Follow and record redirect chains (default: true)
        output_format: "markdown" (default) or "json"

    Returns:
        Scan report in the requested format.

    Examples:
        scan_links(url="https://docs.example.com")
        scan_links(url="https://example.com", max_pages=20, exclude_patterns=["/blog/"])
    """
    from . import scan_site_async

    fmt = _parse_format(output_format)
    try:
        scan = await scan_site_async(
            url,
            max_pages=max_pages,
            concurrency=concurrency,
            exclude_patterns=exclude_patterns,
            follow_redirects=follow_redirects,
        )
    except ScanError as exc:
        return _error_payload(f"Invalid input: {exc}", url)
    except Exception as exc:
        return _error_payload(f"Scan failed: {exc}", url)

    if fmt == OutputFormat.json:
        return json.dumps(build_report(scan), indent=2, ensure_ascii=False)
    return format_scan_markdown(scan)


@mcp.tool
async def suggest_fixes(
    url: str,
    min_confidence: Optional[float] = None,
    max_pages: Optional[int] = None,
    concurrency: Optional[int] = None,
    exclude_patterns: Optional[List[str]] = None,
    follow_redirects: bool = True,
    redirect_format: Optional[str] = None,
    output_format: str = "markdown",
):
    """
    Scan a website and suggest a replacement for each broken link.

    Args:
        url: Root URL to scan
        min_confidence: Threshold 0-1 for suggestions (default: LINKFIX_MIN_CONFIDENCE or 0.5)
        max_pages: Maximum pages to crawl
        concurrency: Concurrent link checks
        exclude_patterns: Regex patterns for pages that must not be crawled
        follow_redirects: Follow redirects so moved links can point at their new home
        redirect_format: Also render redirects as "nextjs", "netlify" or "nginx"
        output_format: "markdown" (default) or "json"

    Returns:
        Suggested fixes (and the rendered redirect config when requested).
    """
    from . import scan_site_async

    fmt = _parse_format(output_format)
    threshold = min_confidence if min_confidence is not None else settings.min_confidence()

    try:
        scan = await scan_site_async(
            url,
            max_pages=max_pages,
            concurrency=concurrency,
            exclude_patterns=exclude_patterns,
            follow_redirects=follow_redirects,
        )
    except ScanError as exc:
        return _error_payload(f"Invalid input: {exc}", url)
    except Exception as exc:
        return _error_payload(f"Scan failed: {exc}", url)

    fixes = compute_fixes(
        scan.broken_links,
        collect_known_good(scan),
        scan.redirect_links,
        min_confidence=threshold,
    )
    rules = fixes_to_redirects(fixes, threshold)
    LOGGER.info("Suggested %d fix(es) for %s", len(fixes), url)

    config_text = None
    if redirect_format:
        try:
            config_text = render_redirects(rules, redirect_format)
        except ValueError as exc:
            return _error_payload(str(exc), url)

    if fmt == OutputFormat.json:
        payload = build_report(scan, fixes, rules)
        if config_text is not None:
            payload["redirect_config"] = {"format": redirect_format, "content": config_text}
        return json.dumps(payload, indent=2, ensure_ascii=False)

    output = format_fixes_markdown(fixes, rules)
    if config_text is not None:
        output += f"\n## {redirect_format} config\n\n```\n{config_text}```\n"
    return output


def main():
    """CLI entry point for running the MCP server."""
    parser = argparse.ArgumentParser(
        description="Run the link checker MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # STDIO transport (default)
    python -m linkfix.mcp_server

    # HTTP transport
    python -m linkfix.mcp_server --transport http --host 0.0.0.0 --port 9000
""",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to for HTTP transport (default: 8000)",
    )

    args = parser.parse_args()

    if args.transport == "http":
        LOGGER.info("Starting MCP server on http://%s:%d/mcp", args.host, args.port)
        mcp.run(transport="http", host=args.host, port=args.port)
    else:
        LOGGER.info("Starting MCP server with STDIO transport")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
