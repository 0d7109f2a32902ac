"""Path similarity scoring used to rank fix candidates."""

from __future__ import annotations

from typing import List
from urllib.parse import urlsplit

SEGMENT_WEIGHT = 0.6
EDIT_WEIGHT = 0.4


def levenshtein(a: str, b: str) -> int:
    """Character-level edit distance (unit cost insert, delete, substitute)."""
    if a == b:
        return 0
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(
                    min(
                        previous[j - 1] + 1,  # substitution
                        current[j - 1] + 1,  # insertion
                        previous[j] + 1,  # deletion
                    )
                )
        previous = current
    return previous[-1]


def path_segments(url: str) -> List[str]:
    """Lower-cased, non-empty path segments of ``url``.

    Strings that are not absolute URLs are split as raw paths.
    """
    path = url
    try:
        parts = urlsplit(url)
        if parts.scheme and parts.netloc:
            path = parts.path
    except ValueError:
        pass
    return [segment.lower() for segment in path.split("/") if segment]


def shares_segment(url_a: str, url_b: str) -> bool:
    """True when the two paths have at least one segment in common."""
    return not set(path_segments(url_a)).isdisjoint(path_segments(url_b))


def path_similarity(url_a: str, url_b: str) -> float:
    """Similarity in [0, 1] between the paths of two URLs.

    Combines segment overlap (weight 0.6) with the edit similarity of the
    slash-joined segments (weight 0.4). Overlap counts each segment of
    ``url_a`` found anywhere in ``url_b``, so a repeated segment counts once
    per occurrence in ``url_a``. Existing confidence thresholds depend on
    this, keep it.
    """
    segments_a = path_segments(url_a)
    segments_b = path_segments(url_b)

    if not segments_a and not segments_b:
        return 1.0
    if not segments_a or not segments_b:
        return 0.0

    members_b = set(segments_b)
    matches = sum(1 for segment in segments_a if segment in members_b)
    segment_similarity = matches / max(len(segments_a), len(segments_b))

    joined_a = "/".join(segments_a)
    joined_b = "/".join(segments_b)
    longest = max(len(joined_a), len(joined_b))
    edit_similarity = 1 - levenshtein(joined_a, joined_b) / longest if longest else 1.0

    return SEGMENT_WEIGHT * segment_similarity + EDIT_WEIGHT * edit_similarity
