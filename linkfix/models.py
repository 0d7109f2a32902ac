"""Data structures shared by the crawler, the verifier and the fix engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple

FixMethod = Literal["redirect-target", "path-similarity", "fuzzy-match"]


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True)
class LinkEdge:
    """An internal link discovered during a crawl and the pages referencing it."""

    href: str
    source_pages: List[str] = field(default_factory=list)

    def add_source(self, page: str) -> None:
        if page not in self.source_pages:
            self.source_pages.append(page)


@dataclass(frozen=True, slots=True)
class LinkCheckResult:
    """Outcome of verifying a single href.

    ``status_code`` is None together with a non-empty ``error`` when the
    request never produced an HTTP response. ``final_url`` is only set once
    at least one redirect was followed.
    """

    href: str
    status_code: Optional[int]
    is_redirect: bool = False
    final_url: Optional[str] = None
    redirect_chain: Tuple[str, ...] = ()
    error: Optional[str] = None
    source_pages: Tuple[str, ...] = ()

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_server_error(self) -> bool:
        return self.status_code is not None and self.status_code >= 500

    @property
    def is_connection_error(self) -> bool:
        return self.status_code is None and self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "href": self.href,
            "status_code": self.status_code,
            "is_redirect": self.is_redirect,
            "final_url": self.final_url,
            "redirect_chain": list(self.redirect_chain),
            "error": self.error,
            "source_pages": list(self.source_pages),
        }


@dataclass(frozen=True, slots=True)
class FixSuggestion:
    """Proposed replacement for a broken href."""

    original_href: str
    suggested_href: str
    confidence: float
    method: FixMethod
    source_pages: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original_href": self.original_href,
            "suggested_href": self.suggested_href,
            "confidence": round(self.confidence, 4),
            "method": self.method,
            "source_pages": list(self.source_pages),
        }


@dataclass(frozen=True, slots=True)
class RedirectRule:
    """Path-only redirect derived from a fix suggestion."""

    from_path: str
    to_path: str
    status_code: Literal[301, 302] = 301

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_path,
            "to": self.to_path,
            "status_code": self.status_code,
        }


@dataclass
class ScanResult:
    """Result of a crawl followed by link verification."""

    base_url: str
    pages_crawled: List[str] = field(default_factory=list)
    results: List[LinkCheckResult] = field(default_factory=list)
    errors: List[Dict[str, str]] = field(default_factory=list)
    timestamp: str = field(default_factory=_utc_timestamp)

    @property
    def total_links(self) -> int:
        return len(self.results)

    @property
    def broken_links(self) -> List[LinkCheckResult]:
        return [r for r in self.results if r.is_not_found]

    @property
    def redirect_links(self) -> List[LinkCheckResult]:
        return [r for r in self.results if r.redirect_chain]

    @property
    def server_errors(self) -> List[LinkCheckResult]:
        return [r for r in self.results if r.is_server_error]

    @property
    def connection_errors(self) -> List[LinkCheckResult]:
        return [r for r in self.results if r.is_connection_error]

    @property
    def stats(self) -> Dict[str, int]:
        return {
            "pages_crawled": len(self.pages_crawled),
            "total_links": self.total_links,
            "broken_links": len(self.broken_links),
            "redirect_links": len(self.redirect_links),
            "server_errors": len(self.server_errors),
            "connection_errors": len(self.connection_errors),
            "render_errors": len(self.errors),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_url": self.base_url,
            "timestamp": self.timestamp,
            "stats": self.stats,
            "pages_crawled": list(self.pages_crawled),
            "broken_links": [r.to_dict() for r in self.broken_links],
            "redirect_links": [r.to_dict() for r in self.redirect_links],
            "server_errors": [r.to_dict() for r in self.server_errors],
            "connection_errors": [r.to_dict() for r in self.connection_errors],
            "errors": list(self.errors),
        }
