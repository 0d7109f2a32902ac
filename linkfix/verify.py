"""HTTP verification of discovered links with manual redirect tracking.

Redirects are disabled at the transport level so that every hop can be
recorded. Each hop gets its own timeout; a failed hop aborts the check and
is reported as data on the returned :class:`LinkCheckResult`, never raised.
Responses are streamed and closed after the headers arrive, so large or
slow bodies are never downloaded.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Optional
from urllib.parse import urljoin

import httpx

from .models import LinkCheckResult, LinkEdge
from .pool import TaskFailure, run_bounded
from .settings import DEFAULT_USER_AGENT

LOGGER = logging.getLogger(__name__)

MAX_REDIRECTS = 10
TOO_MANY_REDIRECTS = "Too many redirects"


def build_client(
    timeout: float,
    user_agent: str = DEFAULT_USER_AGENT,
) -> httpx.AsyncClient:
    """Create the async client used for link checks."""
    return httpx.AsyncClient(
        follow_redirects=False,
        timeout=timeout,
        headers={"User-Agent": user_agent},
    )


@asynccontextmanager
async def _client_scope(
    client: Optional[httpx.AsyncClient],
    timeout: float,
    user_agent: str,
) -> AsyncIterator[httpx.AsyncClient]:
    if client is not None:
        yield client
        return
    async with build_client(timeout, user_agent) as owned:
        yield owned


def _describe(exc: Exception) -> str:
    message = str(exc)
    return message if message else type(exc).__name__


async def check_url(
    url: str,
    *,
    timeout: float,
    follow_redirects: bool = True,
    client: Optional[httpx.AsyncClient] = None,
    source_pages: Iterable[str] = (),
    user_agent: str = DEFAULT_USER_AGENT,
) -> LinkCheckResult:
    """Check a single URL, following up to ``MAX_REDIRECTS`` hops.

    Args:
        url: Absolute URL to check.
        timeout: Seconds allowed for each individual request.
        follow_redirects: When False, a 3xx response is terminal.
        client: Optional shared client. A private one is created otherwise.
        source_pages: Pages that referenced ``url``; copied onto the result.

    Returns:
        LinkCheckResult. ``final_url`` is only set when a redirect occurred.
    """
    sources = tuple(source_pages)
    chain: List[str] = []
    current = url
    max_hops = MAX_REDIRECTS if follow_redirects else 0

    async with _client_scope(client, timeout, user_agent) as http:
        for _ in range(max_hops + 1):
            try:
                # Only status and headers are needed; the body is never read.
                async with http.stream("GET", current, timeout=timeout) as response:
                    status = response.status_code
                    location = response.headers.get("location")
            except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
                LOGGER.debug("Check failed for %s: %s", current, exc)
                return LinkCheckResult(
                    href=url,
                    status_code=None,
                    is_redirect=bool(chain),
                    final_url=None,
                    redirect_chain=tuple(chain),
                    error=_describe(exc),
                    source_pages=sources,
                )

            if follow_redirects and 300 <= status < 400 and location:
                chain.append(current)
                current = urljoin(current, location)
                continue

            return LinkCheckResult(
                href=url,
                status_code=status,
                is_redirect=bool(chain),
                final_url=current if chain else None,
                redirect_chain=tuple(chain),
                error=None,
                source_pages=sources,
            )

    return LinkCheckResult(
        href=url,
        status_code=None,
        is_redirect=True,
        final_url=current,
        redirect_chain=tuple(chain),
        error=TOO_MANY_REDIRECTS,
        source_pages=sources,
    )


def _failure_to_result(failure: TaskFailure) -> LinkCheckResult:
    item = failure.item
    if isinstance(item, LinkEdge):
        return LinkCheckResult(
            href=item.href,
            status_code=None,
            error=failure.error,
            source_pages=tuple(item.source_pages),
        )
    return LinkCheckResult(href=str(item), status_code=None, error=failure.error)


async def verify_edges(
    edges: Iterable[LinkEdge],
    *,
    timeout: float,
    concurrency: int,
    follow_redirects: bool = True,
    client: Optional[httpx.AsyncClient] = None,
    user_agent: str = DEFAULT_USER_AGENT,
) -> List[LinkCheckResult]:
    """Verify every edge once, returning results in completion order."""
    edges = list(edges)
    LOGGER.info("Checking %d unique links (concurrency=%d)", len(edges), concurrency)

    async with _client_scope(client, timeout, user_agent) as http:

        async def _check(edge: LinkEdge) -> LinkCheckResult:
            return await check_url(
                edge.href,
                timeout=timeout,
                follow_redirects=follow_redirects,
                client=http,
                source_pages=edge.source_pages,
            )

        outcomes = await run_bounded(edges, concurrency, _check)

    return [
        _failure_to_result(o) if isinstance(o, TaskFailure) else o for o in outcomes
    ]


async def check_urls_async(
    urls: Iterable[str],
    *,
    timeout: float,
    concurrency: int,
    follow_redirects: bool = True,
    client: Optional[httpx.AsyncClient] = None,
    user_agent: str = DEFAULT_USER_AGENT,
) -> List[LinkCheckResult]:
    """Check a list of known URLs without crawling."""
    edges = [LinkEdge(href=url) for url in urls]
    return await verify_edges(
        edges,
        timeout=timeout,
        concurrency=concurrency,
        follow_redirects=follow_redirects,
        client=client,
        user_agent=user_agent,
    )
