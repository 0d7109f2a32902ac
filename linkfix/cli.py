"""Command-line interface for scanning sites and generating link fixes."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from . import settings

settings.load_config()

from .config import RenderOverrides
from .fixer import compute_fixes, fixes_to_redirects
from .redirects import REDIRECT_FORMATS, write_all_redirect_configs, write_redirect_config
from .report import (
    build_report,
    format_fixes_markdown,
    format_scan_markdown,
    write_report_json,
)
from .scanner import ScanError, collect_known_good


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _add_scan_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "url",
        help="Root URL to scan (e.g. https://example.com)",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help=f"Maximum number of pages to crawl (default: {settings.DEFAULT_MAX_PAGES})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help=f"Per-request timeout in seconds (default: {settings.DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help=f"Concurrent link checks (default: {settings.DEFAULT_CONCURRENCY})",
    )
    parser.add_argument(
        "--exclude",
        nargs="+",
        default=[],
        metavar="PATTERN",
        help="Regex patterns; matching pages are never crawled",
    )
    parser.add_argument(
        "--no-follow-redirects",
        action="store_false",
        dest="follow_redirects",
        help="Report 3xx responses as-is instead of following them",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print the report as JSON",
    )
    parser.add_argument(
        "-o",
        "--output-file",
        type=str,
        default=None,
        help="Also write the JSON report to this file",
    )

    spa_group = parser.add_argument_group("SPA / JavaScript rendering")
    spa_group.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Seconds to wait after page load before collecting links",
    )
    spa_group.add_argument(
        "--wait-until",
        type=str,
        default=None,
        choices=["load", "domcontentloaded", "networkidle", "commit"],
        help="Page load event to wait for (default: domcontentloaded)",
    )
    spa_group.add_argument(
        "--scan-full-page",
        action="store_true",
        default=None,
        help="Scroll through the whole page so lazy-loaded links appear",
    )
    spa_group.add_argument(
        "--js-code",
        type=str,
        default=None,
        help="JavaScript to run on the page before links are collected",
    )
    spa_group.add_argument(
        "--wait-for",
        type=str,
        default=None,
        help="CSS selector or JS condition to wait for (e.g. 'css:#app')",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _parse_scan_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="linkfix-scan",
        description="Crawl a site, find every internal link and check it.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Scan up to 100 pages
  linkfix-scan https://example.com

  # Smaller crawl, skip the blog
  linkfix-scan https://example.com --max-pages 20 --exclude '/blog/'

  # JSON report to a file
  linkfix-scan https://example.com --json -o report.json
""",
    )
    _add_scan_args(parser)
    return parser.parse_args(argv)


def _parse_fix_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="linkfix-fix",
        description=(
            "Scan a site, suggest replacements for broken links and "
            "write redirect configurations."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Write all redirect formats into ./redirects
  linkfix-fix https://example.com --target redirects/

  # Only Netlify, stricter threshold
  linkfix-fix https://example.com --format netlify --min-confidence 0.7
""",
    )
    _add_scan_args(parser)
    parser.add_argument(
        "--target",
        type=str,
        default=".",
        help="Directory to write redirect configs into (default: .)",
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=[*REDIRECT_FORMATS, "all"],
        default="all",
        help="Redirect config format (default: all)",
    )
    parser.add_argument(
        "--min-confidence",
        type=float,
        default=None,
        help=(
            "Minimum confidence (0-1) for a fix "
            f"(default: {settings.DEFAULT_MIN_CONFIDENCE})"
        ),
    )
    return parser.parse_args(argv)


def _render_overrides(args: argparse.Namespace) -> Optional[RenderOverrides]:
    overrides = RenderOverrides(
        wait_until=getattr(args, "wait_until", None),
        delay_before_return_html=getattr(args, "delay", None),
        scan_full_page=getattr(args, "scan_full_page", None),
        js_code=getattr(args, "js_code", None),
        wait_for=getattr(args, "wait_for", None),
    )
    return None if overrides.is_empty else overrides


async def _scan(args: argparse.Namespace):
    from . import scan_site_async

    return await scan_site_async(
        args.url,
        max_pages=args.max_pages,
        timeout=args.timeout,
        follow_redirects=args.follow_redirects,
        concurrency=args.concurrency,
        exclude_patterns=args.exclude,
        render_overrides=_render_overrides(args),
    )


def _emit(text: str) -> None:
    print(text, end="", flush=True)


async def _run_scan_async(args: argparse.Namespace) -> int:
    """Main async entry point for scan."""
    scan = await _scan(args)
    report = build_report(scan)

    if args.json_output:
        _emit(json.dumps(report, indent=2, ensure_ascii=False) + "\n")
    else:
        _emit(format_scan_markdown(scan))

    if args.output_file:
        write_report_json(report, args.output_file)

    return 1 if scan.broken_links or scan.server_errors else 0


async def _run_fix_async(args: argparse.Namespace) -> int:
    """Main async entry point for fix."""
    min_confidence = (
        args.min_confidence if args.min_confidence is not None else settings.min_confidence()
    )
    scan = await _scan(args)

    fixes = compute_fixes(
        scan.broken_links,
        collect_known_good(scan),
        scan.redirect_links,
        min_confidence=min_confidence,
    )
    rules = fixes_to_redirects(fixes, min_confidence)

    if args.format == "all":
        written = write_all_redirect_configs(rules, args.target)
    else:
        written = [write_redirect_config(rules, args.format, args.target)]

    report = build_report(scan, fixes, rules)
    if args.json_output:
        report["written"] = [str(path) for path in written]
        _emit(json.dumps(report, indent=2, ensure_ascii=False) + "\n")
    else:
        _emit(format_scan_markdown(scan))
        _emit("\n")
        _emit(format_fixes_markdown(fixes, rules))
        if written:
            _emit("\nRedirect configs written:\n")
            _emit("".join(f"  {path}\n" for path in written))

    if args.output_file:
        write_report_json(report, args.output_file)

    return 0


def _run(coro_factory, args: argparse.Namespace) -> int:
    try:
        return asyncio.run(coro_factory(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except ScanError as exc:
        logging.error("Invalid input: %s", exc)
        return 2
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 2


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the scan command."""
    args = _parse_scan_args(argv)
    _setup_logging(args.verbose)
    return _run(_run_scan_async, args)


def fix_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the fix command."""
    args = _parse_fix_args(argv)
    _setup_logging(args.verbose)
    return _run(_run_fix_async, args)


if __name__ == "__main__":
    sys.exit(main())
