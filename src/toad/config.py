"""Configuration system.

Crawl options, display timings and export settings as Pydantic models, optionally
loaded from a YAML file. Entry point: load_config().
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from toad.exceptions import ConfigError

DEFAULT_USER_AGENT = "MumblingToad SEO Crawler/1.0"
DEFAULT_DEBUG_LOG_PATH = Path("mumbling-toad-debug.log")


class CrawlOptions(BaseModel):
    """Per-session crawl options.

    Immutable once a session starts; edits made in the options screen produce
    a new instance that applies to the next session.
    """

    model_config = ConfigDict(frozen=True)

    max_concurrency: int = Field(
        default=5,
        ge=1,
        description="Maximum number of requests in flight at once",
    )
    request_delay_ms: int = Field(
        default=200,
        ge=0,
        description="Minimum delay between request dispatches in milliseconds (0 = no limit)",
    )
    max_pages: int = Field(
        default=10000,
        ge=1,
        description="Maximum number of pages requested in one session",
    )
    max_depth: int = Field(
        default=10,
        ge=0,
        description="Maximum link depth from the start URL (start URL = 0)",
    )
    respect_robots_txt: bool = Field(
        default=True,
        description="Honor robots.txt rules for the configured user agent",
    )
    render_js: bool = Field(
        default=False,
        description="JavaScript rendering (not supported yet, must stay false)",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        min_length=1,
        description="User-Agent header sent with every request",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries for 429 and 5xx responses with exponential backoff",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout in seconds",
    )

    @field_validator("render_js")
    @classmethod
    def validate_render_js(cls, v: bool) -> bool:
        if v:
            raise ValueError("render_js is not supported yet. Set 'render_js: false'.")
        return v

    @property
    def requests_per_second(self) -> float | None:
        """Dispatch rate derived from request_delay_ms (None = unlimited)."""
        if self.request_delay_ms <= 0:
            return None
        return 1000.0 / self.request_delay_ms


class DisplaySettings(BaseModel):
    """Dashboard timing and layout settings."""

    flush_interval_ms: int = Field(
        default=200,
        ge=10,
        description="How often buffered results are moved into the table",
    )
    stats_interval_ms: int = Field(
        default=500,
        ge=10,
        description="How often queue-derived statistics are refreshed",
    )
    refresh_per_second: float = Field(
        default=10.0,
        gt=0,
        le=60,
        description="Screen redraw rate",
    )
    min_width: int = Field(
        default=100,
        ge=40,
        description="Minimum terminal width for the dashboard",
    )
    error_message_ms: int = Field(
        default=5000,
        ge=0,
        description="How long an error stays in the status bar",
    )
    export_message_ms: int = Field(
        default=3000,
        ge=0,
        description="How long an export confirmation stays in the status bar",
    )
    console_history: int = Field(
        default=100,
        ge=1,
        description="Number of log messages kept for the console panel",
    )
    mouse: bool = Field(
        default=True,
        description="Enable mouse reporting (wheel scrolling)",
    )


class ExportSettings(BaseModel):
    """Where and when crawl results are exported."""

    directory: Path = Field(
        default=Path("."),
        description="Directory export files are written to",
    )
    auto_export: bool = Field(
        default=True,
        description="Export results automatically when a crawl finishes",
    )


class ToadConfig(BaseModel):
    """Complete Mumbling Toad configuration."""

    crawl: CrawlOptions = Field(default_factory=CrawlOptions)
    display: DisplaySettings = Field(default_factory=DisplaySettings)
    export: ExportSettings = Field(default_factory=ExportSettings)


def load_config(path: Path) -> ToadConfig:
    """Load and validate YAML configuration file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated ToadConfig instance

    Raises:
        ConfigError: If config file is not found, invalid YAML, or validation fails
    """
    try:
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        if not path.is_file():
            raise ConfigError(f"Configuration path is not a file: {path}")

        with path.open("r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)

        if config_dict is None:
            return ToadConfig()

        if not isinstance(config_dict, dict):
            raise ConfigError(
                f"Configuration file must contain a YAML object/dict, "
                f"got {type(config_dict).__name__}"
            )

        return ToadConfig(**config_dict)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed for {path}:\n{e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e}") from e
