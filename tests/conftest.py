"""Shared fixtures and strict test-accounting guardrails."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from linkfix.models import LinkCheckResult


@dataclass
class _TestAccounting:
    deselected: int = 0
    skipped: int = 0
    xfailed: int = 0
    xpassed: int = 0


_ACCOUNTING = _TestAccounting()


def pytest_deselected(items):  # pragma: no cover - pytest hook
    _ACCOUNTING.deselected += len(items)


def pytest_runtest_logreport(report):  # pragma: no cover - pytest hook
    if report.when not in {"setup", "call"}:
        return

    if getattr(report, "wasxfail", False):
        if report.outcome == "skipped":
            _ACCOUNTING.xfailed += 1
        elif report.outcome == "passed":
            _ACCOUNTING.xpassed += 1
        return

    if report.outcome == "skipped":
        _ACCOUNTING.skipped += 1


def pytest_sessionfinish(session, exitstatus):  # pragma: no cover - pytest hook
    counts = {
        "deselected": _ACCOUNTING.deselected,
        "skipped": _ACCOUNTING.skipped,
        "xfailed": _ACCOUNTING.xfailed,
        "xpassed": _ACCOUNTING.xpassed,
    }
    violations = [f"{name}={count}" for name, count in counts.items() if count]
    if not violations:
        return

    reporter = session.config.pluginmanager.get_plugin("terminalreporter")
    if reporter:
        reporter.write_sep(
            "=",
            f"Strict guard failed: test accounting violations ({', '.join(violations)})",
        )
    session.exitstatus = 1


class FakeRenderer:
    """Dict-backed renderer: page URL -> hrefs, or an exception to raise."""

    def __init__(self, pages: Dict[str, object]):
        self.pages = pages
        self.calls: List[str] = []

    async def render(self, url: str, timeout: float) -> List[str]:
        self.calls.append(url)
        page = self.pages.get(url, [])
        if isinstance(page, Exception):
            raise page
        return list(page)


def routed_client(routes: Dict[str, object]) -> httpx.AsyncClient:
    """AsyncClient whose responses come from ``routes``.

    Each value is a status code, a ``(status, headers)`` tuple, or an
    exception instance to raise. Unknown URLs answer 404.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url), 404)
        if isinstance(route, Exception):
            raise route
        if isinstance(route, tuple):
            status, headers = route
            return httpx.Response(status, headers=headers or {})
        return httpx.Response(route)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=False)


@pytest.fixture
def make_client() -> Callable[[Dict[str, object]], httpx.AsyncClient]:
    return routed_client


def make_result(
    href: str,
    status_code: Optional[int] = 404,
    *,
    final_url: Optional[str] = None,
    chain: Tuple[str, ...] = (),
    error: Optional[str] = None,
    sources: Tuple[str, ...] = ("https://example.com/page",),
) -> LinkCheckResult:
    return LinkCheckResult(
        href=href,
        status_code=status_code,
        is_redirect=bool(chain),
        final_url=final_url,
        redirect_chain=chain,
        error=error,
        source_pages=sources,
    )
