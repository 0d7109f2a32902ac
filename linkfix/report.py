"""Markdown and JSON formatting for scan and fix results."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from .models import FixSuggestion, LinkCheckResult, RedirectRule, ScanResult

LOGGER = logging.getLogger(__name__)


def _describe_status(result: LinkCheckResult) -> str:
    if result.status_code is None:
        return result.error or "no response"
    return str(result.status_code)


def _link_section(title: str, results: List[LinkCheckResult]) -> List[str]:
    if not results:
        return []
    lines = [f"## {title} ({len(results)})", ""]
    for result in results:
        lines.append(f"- {result.href} ({_describe_status(result)})")
        if result.final_url:
            lines.append(f"  - redirects to: {result.final_url}")
        if result.source_pages:
            lines.append(f"  - found on: {', '.join(result.source_pages)}")
    lines.append("")
    return lines


def format_scan_markdown(scan: ScanResult) -> str:
    """Human-readable summary of a scan.

    Example output:
    # Link scan: https://example.com
    _Scanned: 2026-01-01T00:00:00+00:00_

    - Pages crawled: 12
    - Links checked: 80
    ...
    """
    stats = scan.stats
    lines = [
        f"# Link scan: {scan.base_url}",
        f"_Scanned: {scan.timestamp}_",
        "",
        f"- Pages crawled: {stats['pages_crawled']}",
        f"- Links checked: {stats['total_links']}",
        f"- Broken (404): {stats['broken_links']}",
        f"- Redirects: {stats['redirect_links']}",
        f"- Server errors: {stats['server_errors']}",
        f"- Connection errors: {stats['connection_errors']}",
        "",
    ]
    lines += _link_section("Broken links", scan.broken_links)
    lines += _link_section("Server errors", scan.server_errors)
    lines += _link_section("Connection errors", scan.connection_errors)
    lines += _link_section("Redirects", scan.redirect_links)

    if scan.errors:
        lines.append(f"## Pages that failed to render ({len(scan.errors)})")
        lines.append("")
        lines.extend(f"- {error['url']}: {error['error']}" for error in scan.errors)
        lines.append("")

    if not (scan.broken_links or scan.server_errors or scan.connection_errors):
        lines.append("No broken links found.")

    return "\n".join(lines).rstrip() + "\n"


def format_fixes_markdown(
    fixes: Sequence[FixSuggestion],
    rules: Sequence[RedirectRule] = (),
) -> str:
    """Human-readable list of fix suggestions and derived redirects."""
    if not fixes:
        return "# Suggested fixes\n\nNo fixes could be suggested.\n"

    lines = [f"# Suggested fixes ({len(fixes)})", ""]
    for fix in fixes:
        lines.append(
            f"- {fix.original_href} -> {fix.suggested_href} "
            f"({fix.confidence:.0%}, {fix.method})"
        )
        if fix.source_pages:
            lines.append(f"  - found on: {', '.join(fix.source_pages)}")
    lines.append("")

    if rules:
        lines.append(f"## Redirects ({len(rules)})")
        lines.append("")
        lines.extend(
            f"- {rule.from_path} -> {rule.to_path} ({rule.status_code})" for rule in rules
        )
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def build_report(
    scan: ScanResult,
    fixes: Optional[Sequence[FixSuggestion]] = None,
    rules: Optional[Sequence[RedirectRule]] = None,
) -> Dict[str, Any]:
    """JSON-serializable report combining a scan with optional fixes."""
    report: Dict[str, Any] = {"scan": scan.to_dict()}
    if fixes is not None:
        report["fixes"] = [fix.to_dict() for fix in fixes]
    if rules is not None:
        report["redirects"] = [rule.to_dict() for rule in rules]
    return report


def write_report_json(payload: Dict[str, Any], path: Union[str, Path]) -> Path:
    """Write a report payload as pretty-printed JSON."""
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    LOGGER.info("Wrote report to %s", out_path)
    return out_path
