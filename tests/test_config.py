"""Tests for linkfix.config module."""

from crawl4ai import BrowserConfig, CrawlerRunConfig
from crawl4ai.async_configs import CacheMode

from linkfix.config import (
    DEFAULT_WAIT_UNTIL,
    RenderOverrides,
    _apply_overrides,
    build_link_run_config,
    build_renderer_browser_config,
)


class TestRenderOverrides:
    def test_defaults_are_empty(self):
        assert RenderOverrides().is_empty

    def test_any_value_makes_non_empty(self):
        assert not RenderOverrides(wait_until="networkidle").is_empty
        assert not RenderOverrides(delay_before_return_html=0.0).is_empty
        assert not RenderOverrides(js_code="window.scrollTo(0, 0)").is_empty

    def test_blank_strings_count_as_empty(self):
        assert RenderOverrides(js_code="", wait_for="").is_empty


class TestApplyOverrides:
    def test_no_overrides(self):
        config = CrawlerRunConfig(wait_until="load")
        _apply_overrides(config, RenderOverrides())
        assert config.wait_until == "load"

    def test_all_overrides(self):
        config = CrawlerRunConfig()
        overrides = RenderOverrides(
            wait_until="networkidle",
            delay_before_return_html=1.5,
            scan_full_page=True,
            js_code="console.log(1)",
            wait_for="css:main",
        )
        _apply_overrides(config, overrides)
        assert config.wait_until == "networkidle"
        assert config.delay_before_return_html == 1.5
        assert config.scan_full_page is True
        assert config.js_code == "console.log(1)"
        assert config.wait_for == "css:main"


class TestBuildLinkRunConfig:
    def test_defaults(self):
        config = build_link_run_config(15)
        assert isinstance(config, CrawlerRunConfig)
        assert config.cache_mode == CacheMode.BYPASS
        assert config.page_timeout == 15000
        assert config.wait_until == DEFAULT_WAIT_UNTIL
        assert config.exclude_external_links is False

    def test_fractional_timeout(self):
        assert build_link_run_config(0.5).page_timeout == 500

    def test_with_overrides(self):
        config = build_link_run_config(10, RenderOverrides(wait_until="load"))
        assert config.wait_until == "load"


class TestBuildRendererBrowserConfig:
    def test_headless(self):
        config = build_renderer_browser_config()
        assert isinstance(config, BrowserConfig)
        assert config.headless is True
        assert config.use_persistent_context is False

    def test_user_agent(self):
        config = build_renderer_browser_config("linkfix-test/1.0")
        assert config.user_agent == "linkfix-test/1.0"
