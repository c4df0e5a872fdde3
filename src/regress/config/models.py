"""Configuration models using Pydantic."""

import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from regress.config.paths import (
    get_logs_path,
    get_reports_path,
    get_screenshots_path,
)

logger = logging.getLogger(__name__)

# Arguments applied to every Chrome session
CHROME_BASE_ARGS: tuple[str, ...] = (
    "--disable-web-security",
    "--disable-features=VizDisplayCompositor",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-gpu",
    "--disable-extensions",
    "--disable-background-timer-throttling",
    "--disable-renderer-backgrounding",
    "--disable-backgrounding-occluded-windows",
    "--disable-ipc-flooding-protection",
)

# Extra Chrome arguments when running under CI
CHROME_CI_ARGS: tuple[str, ...] = (
    "--disable-background-networking",
    "--disable-default-apps",
    "--disable-sync",
    "--metrics-recording-only",
    "--no-first-run",
    "--safebrowsing-disable-auto-update",
    "--disable-logging",
    "--disable-notifications",
)


class ConfigError(Exception):
    """Configuration error."""

    pass


class BrowserOptions(BaseModel):
    """Options shared by every browser kind.

    A bare BrowserOptions is only produced for a kind with no dedicated
    variant; the session manager rejects it at acquisition time.
    """

    kind: str = "chrome"
    headless: bool = False
    page_timeout_ms: int = 30000
    implicit_wait_ms: int = 10000
    window_width: int = 1920
    window_height: int = 1080
    extra_args: list[str] = []

    @property
    def engine(self) -> str | None:
        """Playwright browser type name, None when unsupported."""
        return None

    def launch_args(self, *, ci: bool = False) -> list[str]:
        return list(self.extra_args)


class ChromeConfig(BrowserOptions):
    """Chrome session options."""

    kind: Literal["chrome"] = "chrome"

    @property
    def engine(self) -> str:
        return "chromium"

    def launch_args(self, *, ci: bool = False) -> list[str]:
        args = list(CHROME_BASE_ARGS)
        args.append(f"--window-size={self.window_width},{self.window_height}")
        if ci:
            args.extend(CHROME_CI_ARGS)
        args.extend(self.extra_args)
        return args


class FirefoxConfig(BrowserOptions):
    """Firefox session options."""

    kind: Literal["firefox"] = "firefox"

    @property
    def engine(self) -> str:
        return "firefox"

    def launch_args(self, *, ci: bool = False) -> list[str]:
        args = [f"--width={self.window_width}", f"--height={self.window_height}"]
        args.extend(self.extra_args)
        return args


BROWSER_VARIANTS: dict[str, type[BrowserOptions]] = {
    "chrome": ChromeConfig,
    "firefox": FirefoxConfig,
}


def build_browser_config(data: dict[str, Any]) -> BrowserOptions:
    """Build the browser variant matching ``data["kind"]``."""
    kind = str(data.get("kind") or "chrome").strip().lower()
    variant = BROWSER_VARIANTS.get(kind, BrowserOptions)
    return variant.model_validate({**data, "kind": kind})


class AcquisitionConfig(BaseModel):
    """Retry and timeout policy for session creation."""

    max_attempts: int = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=2.0, ge=0)
    backoff_factor: float = Field(default=1.0, ge=1.0)
    max_delay_seconds: float = 30.0
    timeout_seconds: float = Field(default=30.0, gt=0)
    probe_timeout_seconds: float = Field(default=10.0, gt=0)
    close_timeout_seconds: float = Field(default=10.0, gt=0)


class HooksConfig(BaseModel):
    """Time bounds for scenario hooks and captures."""

    before_timeout_seconds: float = Field(default=120.0, gt=0)
    after_timeout_seconds: float = Field(default=120.0, gt=0)
    screenshot_timeout_seconds: float = Field(default=10.0, gt=0)
    full_page_settle_seconds: float = 0.5
    comparison_settle_seconds: float = 1.0


class PathsConfig(BaseModel):
    """Output directories."""

    artifacts_dir: Path = Field(default_factory=get_screenshots_path)
    reports_dir: Path = Field(default_factory=get_reports_path)
    logs_dir: Path = Field(default_factory=get_logs_path)


class RunConfig(BaseModel):
    """Labels describing the current test run."""

    environment: str = "development"
    build_number: str = "1"
    git_branch: str = "main"
    ci: bool = False


class MetricsConfig(BaseModel):
    """Configuration for the metrics exposition server."""

    server_enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 9090
    report_filename: str = "metrics-report.json"


class RegressConfig(BaseModel):
    """Root configuration model."""

    browser: BrowserOptions = Field(default_factory=ChromeConfig)
    acquisition: AcquisitionConfig = Field(default_factory=AcquisitionConfig)
    hooks: HooksConfig = Field(default_factory=HooksConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    run: RunConfig = Field(default_factory=RunConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @field_validator("browser", mode="before")
    @classmethod
    def _select_browser_variant(cls, value: Any) -> Any:
        if isinstance(value, BrowserOptions):
            return value
        if isinstance(value, dict):
            return build_browser_config(value)
        return value

    @property
    def report_path(self) -> Path:
        return self.paths.reports_dir / self.metrics.report_filename
