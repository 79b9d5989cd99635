"""Tests for configuration models and YAML loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from toad.config import (
    DEFAULT_USER_AGENT,
    CrawlOptions,
    DisplaySettings,
    ToadConfig,
    load_config,
)
from toad.exceptions import ConfigError


class TestCrawlOptions:
    def test_defaults(self) -> None:
        options = CrawlOptions()

        assert options.max_concurrency == 5
        assert options.request_delay_ms == 200
        assert options.max_pages == 10000
        assert options.max_depth == 10
        assert options.respect_robots_txt is True
        assert options.render_js is False
        assert options.user_agent == DEFAULT_USER_AGENT

    def test_frozen(self) -> None:
        options = CrawlOptions()

        with pytest.raises(ValidationError):
            options.max_pages = 5  # type: ignore[misc]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_concurrency": 0},
            {"request_delay_ms": -1},
            {"max_pages": 0},
            {"max_depth": -1},
            {"user_agent": ""},
            {"max_retries": 11},
        ],
    )
    def test_invalid_values(self, overrides: dict[str, int | str]) -> None:
        with pytest.raises(ValidationError):
            CrawlOptions(**overrides)  # type: ignore[arg-type]

    def test_render_js_rejected(self) -> None:
        with pytest.raises(ValidationError, match="render_js is not supported"):
            CrawlOptions(render_js=True)

    def test_requests_per_second(self) -> None:
        assert CrawlOptions(request_delay_ms=200).requests_per_second == 5.0
        assert CrawlOptions(request_delay_ms=0).requests_per_second is None


class TestDisplaySettings:
    def test_defaults(self) -> None:
        display = DisplaySettings()

        assert display.flush_interval_ms == 200
        assert display.stats_interval_ms == 500
        assert display.min_width == 100
        assert display.error_message_ms == 5000
        assert display.export_message_ms == 3000

    def test_min_width_lower_bound(self) -> None:
        with pytest.raises(ValidationError):
            DisplaySettings(min_width=10)


# ============================================================================
# load_config
# ============================================================================


class TestLoadConfig:
    def test_full_file(self, tmp_path: Path) -> None:
        path = tmp_path / "toad.yaml"
        path.write_text(
            """
crawl:
  max_concurrency: 8
  request_delay_ms: 0
  respect_robots_txt: false
display:
  mouse: false
export:
  directory: out
  auto_export: false
"""
        )

        config = load_config(path)

        assert config.crawl.max_concurrency == 8
        assert config.crawl.request_delay_ms == 0
        assert config.crawl.respect_robots_txt is False
        assert config.display.mouse is False
        assert config.export.directory == Path("out")
        assert config.export.auto_export is False

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_config(path) == ToadConfig()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_directory_is_not_a_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not a file"):
            load_config(tmp_path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("crawl: [unclosed")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n")

        with pytest.raises(ConfigError, match="YAML object"):
            load_config(path)

    def test_validation_error(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("crawl:\n  render_js: true\n")

        with pytest.raises(ConfigError, match="validation failed"):
            load_config(path)
