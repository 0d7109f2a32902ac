"""Fix suggestions for broken links and the redirect rules derived from them.

Two strategies are tried per broken href. A known redirect target wins
outright at a fixed confidence; otherwise the closest known-good URL by
path similarity is proposed if it clears the threshold.
"""

from __future__ import annotations

import logging
import re
from functools import reduce
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import FixSuggestion, LinkCheckResult, RedirectRule
from .similarity import path_similarity, shares_segment
from .urls import path_of

LOGGER = logging.getLogger(__name__)

REDIRECT_TARGET_CONFIDENCE = 0.95
DEFAULT_MIN_CONFIDENCE = 0.4
DEFAULT_REDIRECT_CONFIDENCE = 0.6
DEFAULT_APPLY_CONFIDENCE = 0.7

Candidate = Tuple[str, float]


def _group_sources(broken: Iterable[LinkCheckResult]) -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = {}
    for result in broken:
        pages = grouped.setdefault(result.href, [])
        for page in result.source_pages:
            if page not in pages:
                pages.append(page)
    return grouped


def _redirect_targets(redirected: Iterable[LinkCheckResult]) -> Dict[str, str]:
    return {r.href: r.final_url for r in redirected if r.final_url}


def _pick(best: Optional[Candidate], candidate: Candidate) -> Optional[Candidate]:
    # Strictly greater, so the first of equal scores is kept.
    if best is None or candidate[1] > best[1]:
        return candidate
    return best


def best_candidate(href: str, known_good: Sequence[str]) -> Optional[Candidate]:
    """Highest scoring known-good URL for ``href``; zero scores never match."""
    scored = ((url, path_similarity(href, url)) for url in known_good)
    return reduce(_pick, (c for c in scored if c[1] > 0), None)


def compute_fixes(
    broken: Iterable[LinkCheckResult],
    known_good: Sequence[str],
    redirected: Iterable[LinkCheckResult] = (),
    *,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> List[FixSuggestion]:
    """
    Suggest at most one replacement per distinct broken href.

    Args:
        broken: Results for links that failed (typically 404s).
        known_good: Candidate URLs believed to serve valid content.
        redirected: Results that followed at least one redirect.
        min_confidence: Suggestions scoring below this are dropped.

    Returns:
        Suggestions sorted by confidence, highest first. Ties keep the
        order in which the broken hrefs were first seen.
    """
    targets = _redirect_targets(redirected)
    grouped = _group_sources(broken)
    fixes: List[FixSuggestion] = []

    for href, pages in grouped.items():
        target = targets.get(href)
        # A target that is itself broken falls through to similarity.
        if target in grouped:
            target = None
        if target and REDIRECT_TARGET_CONFIDENCE >= min_confidence:
            fixes.append(
                FixSuggestion(
                    original_href=href,
                    suggested_href=target,
                    confidence=REDIRECT_TARGET_CONFIDENCE,
                    method="redirect-target",
                    source_pages=tuple(pages),
                )
            )
            continue

        match = best_candidate(href, known_good)
        if match is None or match[1] < min_confidence:
            LOGGER.debug("No fix for %s", href)
            continue

        url, score = match
        fixes.append(
            FixSuggestion(
                original_href=href,
                suggested_href=url,
                confidence=score,
                method="path-similarity" if shares_segment(href, url) else "fuzzy-match",
                source_pages=tuple(pages),
            )
        )

    return sorted(fixes, key=lambda fix: fix.confidence, reverse=True)


def fixes_to_redirects(
    fixes: Iterable[FixSuggestion],
    min_confidence: float = DEFAULT_REDIRECT_CONFIDENCE,
) -> List[RedirectRule]:
    """Path-only 301 rules for every fix at or above ``min_confidence``."""
    return [
        RedirectRule(
            from_path=path_of(fix.original_href),
            to_path=path_of(fix.suggested_href),
            status_code=301,
        )
        for fix in fixes
        if fix.confidence >= min_confidence
    ]


def apply_fixes_to_content(
    content: str,
    fixes: Iterable[FixSuggestion],
    min_confidence: float = DEFAULT_APPLY_CONFIDENCE,
) -> Tuple[str, int]:
    """Rewrite ``href`` attributes in ``content`` that point at broken links.

    Both the full URL and the path-only form of each original href are
    replaced inside single- or double-quoted ``href`` attributes.

    Returns:
        The rewritten content and the number of attribute values replaced.
    """
    applied = 0
    for fix in fixes:
        if fix.confidence < min_confidence:
            continue
        replacements = (
            (fix.original_href, fix.suggested_href),
            (path_of(fix.original_href), path_of(fix.suggested_href)),
        )
        for old, new in replacements:
            pattern = re.compile(r"""(href=(["']))""" + re.escape(old) + r"""(\2)""")
            content, count = pattern.subn(
                lambda m, new=new: f"{m.group(1)}{new}{m.group(3)}", content
            )
            applied += count
    return content, applied
