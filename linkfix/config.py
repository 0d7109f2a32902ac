"""Factory functions for Crawl4AI browser and run configurations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from crawl4ai import BrowserConfig, CrawlerRunConfig
from crawl4ai.async_configs import CacheMode

LOGGER = logging.getLogger(__name__)

DEFAULT_WAIT_UNTIL = "domcontentloaded"


@dataclass
class RenderOverrides:
    """Optional page-rendering overrides, mostly useful for SPA sites."""

    wait_until: Optional[str] = None
    delay_before_return_html: Optional[float] = None
    scan_full_page: Optional[bool] = None
    js_code: Optional[str] = None
    wait_for: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.wait_until is None
            and self.delay_before_return_html is None
            and self.scan_full_page is None
            and not self.js_code
            and not self.wait_for
        )


def _apply_overrides(config: CrawlerRunConfig, overrides: RenderOverrides) -> None:
    """Apply optional overrides to a CrawlerRunConfig."""
    if overrides.wait_until is not None:
        config.wait_until = overrides.wait_until
    if overrides.delay_before_return_html is not None:
        config.delay_before_return_html = overrides.delay_before_return_html
    if overrides.scan_full_page is not None:
        config.scan_full_page = overrides.scan_full_page
    if overrides.js_code:
        config.js_code = overrides.js_code
    if overrides.wait_for:
        config.wait_for = overrides.wait_for


def build_link_run_config(
    timeout: float,
    overrides: Optional[RenderOverrides] = None,
) -> CrawlerRunConfig:
    """RunConfig for link discovery: no caching, no markdown tuning.

    ``timeout`` is in seconds; Crawl4AI expects ``page_timeout`` in ms.
    """
    config = CrawlerRunConfig(
        verbose=False,
        cache_mode=CacheMode.BYPASS,
        page_timeout=int(timeout * 1000),
        wait_until=DEFAULT_WAIT_UNTIL,
        exclude_external_links=False,
    )
    if overrides and not overrides.is_empty:
        _apply_overrides(config, overrides)
        LOGGER.debug("Applied render overrides: %s", overrides)
    return config


def build_renderer_browser_config(user_agent: Optional[str] = None) -> BrowserConfig:
    """Headless, non-persistent browser used for page rendering."""
    if user_agent:
        return BrowserConfig(
            headless=True,
            use_persistent_context=False,
            user_agent=user_agent,
        )
    return BrowserConfig(headless=True, use_persistent_context=False)
