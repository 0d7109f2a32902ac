"""Render redirect rules as hosting-platform configuration files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Sequence, Union

from .models import RedirectRule

LOGGER = logging.getLogger(__name__)

REDIRECT_FILENAMES: Dict[str, str] = {
    "nextjs": "redirects.js",
    "netlify": "_redirects",
    "nginx": "redirects.conf",
}
REDIRECT_FORMATS = tuple(REDIRECT_FILENAMES)


def _render_nextjs(rules: Sequence[RedirectRule]) -> str:
    entries = [
        {
            "source": rule.from_path,
            "destination": rule.to_path,
            "permanent": rule.status_code == 301,
        }
        for rule in rules
    ]
    body = json.dumps(entries, indent=2, ensure_ascii=False)
    return (
        "// Generated by linkfix. Use from next.config.js:\n"
        "//   async redirects() { return require('./redirects.js'); }\n"
        f"module.exports = {body};\n"
    )


def _render_netlify(rules: Sequence[RedirectRule]) -> str:
    lines = ["# Generated by linkfix"]
    lines.extend(f"{rule.from_path}  {rule.to_path}  {rule.status_code}" for rule in rules)
    return "\n".join(lines) + "\n"


def _render_nginx(rules: Sequence[RedirectRule]) -> str:
    lines = ["# Generated by linkfix. Include inside a server block."]
    lines.extend(
        f"location = {rule.from_path} {{ return {rule.status_code} {rule.to_path}; }}"
        for rule in rules
    )
    return "\n".join(lines) + "\n"


_RENDERERS = {
    "nextjs": _render_nextjs,
    "netlify": _render_netlify,
    "nginx": _render_nginx,
}


def render_redirects(rules: Sequence[RedirectRule], fmt: str) -> str:
    """Render ``rules`` in the given format (nextjs, netlify or nginx)."""
    try:
        renderer = _RENDERERS[fmt]
    except KeyError:
        raise ValueError(
            f"Unknown redirect format: {fmt}. Use one of: {', '.join(REDIRECT_FORMATS)}"
        ) from None
    return renderer(rules)


def write_redirect_config(
    rules: Sequence[RedirectRule],
    fmt: str,
    target_dir: Union[str, Path],
) -> Path:
    """Write one redirect config into ``target_dir`` and return its path."""
    content = render_redirects(rules, fmt)
    out_dir = Path(target_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / REDIRECT_FILENAMES[fmt]
    path.write_text(content, encoding="utf-8")
    LOGGER.info("Wrote %d redirect(s) to %s", len(rules), path)
    return path


def write_all_redirect_configs(
    rules: Sequence[RedirectRule],
    target_dir: Union[str, Path],
) -> List[Path]:
    """Write every supported redirect config into ``target_dir``."""
    return [write_redirect_config(rules, fmt, target_dir) for fmt in REDIRECT_FORMATS]
