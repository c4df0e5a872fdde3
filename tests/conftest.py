"""Shared test fixtures and fakes."""

import asyncio
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from regress.browser.manager import SessionManager
from regress.browser.retry import RetryPolicy
from regress.config.models import (
    AcquisitionConfig,
    BrowserOptions,
    ChromeConfig,
    HooksConfig,
    PathsConfig,
    RegressConfig,
)
from regress.diagnostics.capture import DiagnosticCapture
from regress.lifecycle.controller import create_controller
from regress.metrics.aggregator import MetricsAggregator

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16

FIXED_NOW = datetime(2024, 1, 15, 10, 30, 45, 123000, tzinfo=UTC)


# =============================================================================
# Fake Browser
# =============================================================================


class FakeDriver:
    """In-memory browser driver."""

    def __init__(self, name: str = "chromium") -> None:
        self.name = name
        self.alive = True
        self.page_title = "Fake Page"
        self.screenshot_bytes = PNG_BYTES
        self.screenshot_delay = 0.0
        self.screenshot_error: Exception | None = None
        self.dimensions = {"width": 1280, "height": 4000}
        self.viewport: tuple[int, int] | None = None
        self.timeouts: tuple[int, int] | None = None
        self.maximized = False
        self.maximize_error: Exception | None = None
        self.close_error: Exception | None = None
        self.close_calls = 0
        self.console: list[dict[str, Any]] = []

    async def title(self) -> str:
        if not self.alive:
            raise RuntimeError("browser process is gone")
        return self.page_title

    async def screenshot(self) -> bytes:
        if self.screenshot_delay:
            await asyncio.sleep(self.screenshot_delay)
        if self.screenshot_error is not None:
            raise self.screenshot_error
        return self.screenshot_bytes

    async def evaluate(self, script: str) -> Any:
        return self.dimensions

    async def set_viewport_size(self, width: int, height: int) -> None:
        self.viewport = (width, height)

    async def maximize(self) -> None:
        if self.maximize_error is not None:
            raise self.maximize_error
        self.maximized = True

    async def set_timeouts(self, *, implicit_ms: int, page_load_ms: int) -> None:
        self.timeouts = (implicit_ms, page_load_ms)

    async def console_logs(self) -> list[dict[str, Any]]:
        entries, self.console = self.console, []
        return entries

    async def close(self) -> None:
        self.close_calls += 1
        self.alive = False
        if self.close_error is not None:
            raise self.close_error


class FakeDriverFactory:
    """Driver factory with scripted failures.

    ``failures`` leading create() calls raise; the next ``unresponsive``
    drivers fail their first probe.
    """

    def __init__(
        self, *, failures: int = 0, unresponsive: int = 0, delay: float = 0.0
    ) -> None:
        self.failures = failures
        self.unresponsive = unresponsive
        self.delay = delay
        self.calls = 0
        self.drivers: list[FakeDriver] = []

    async def create(self, options: BrowserOptions, *, ci: bool = False) -> FakeDriver:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("driver failed to start")
        driver = FakeDriver(options.engine or options.kind)
        if self.unresponsive > 0:
            self.unresponsive -= 1
            driver.alive = False
        self.drivers.append(driver)
        return driver

    @property
    def total_closes(self) -> int:
        return sum(driver.close_calls for driver in self.drivers)


# =============================================================================
# Configuration Fixtures
# =============================================================================

OVERRIDE_ENV_VARS = (
    "BROWSER_NAME",
    "HEADLESS",
    "BROWSER_TIMEOUT",
    "IMPLICIT_WAIT",
    "TEST_ENV",
    "BUILD_NUMBER",
    "GIT_BRANCH",
    "CI",
    "METRICS_PORT",
    "REGRESS_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep CI variables and real config files out of every test."""
    for name in OVERRIDE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    home = tmp_path / "regress-home"
    monkeypatch.setenv("REGRESS_HOME", str(home))
    monkeypatch.chdir(tmp_path)
    return home


@pytest.fixture
def fixed_clock():
    """Clock frozen at 2024-01-15 10:30:45.123 UTC."""
    return lambda: FIXED_NOW


@pytest.fixture
def browser_options() -> ChromeConfig:
    return ChromeConfig(headless=True)


@pytest.fixture
def regress_config(tmp_path: Path) -> RegressConfig:
    """Configuration with zero delays and tmp_path directories."""
    return RegressConfig(
        browser=ChromeConfig(headless=True),
        acquisition=AcquisitionConfig(
            max_attempts=3,
            retry_delay_seconds=0,
            timeout_seconds=5,
            probe_timeout_seconds=1,
            close_timeout_seconds=1,
        ),
        hooks=HooksConfig(
            before_timeout_seconds=10,
            after_timeout_seconds=10,
            screenshot_timeout_seconds=1,
            full_page_settle_seconds=0,
            comparison_settle_seconds=0,
        ),
        paths=PathsConfig(
            artifacts_dir=tmp_path / "screenshots",
            reports_dir=tmp_path / "reports",
            logs_dir=tmp_path / "logs",
        ),
    )


@pytest.fixture
def config_toml_content() -> str:
    """Valid TOML config content."""
    return """
[browser]
kind = "firefox"
headless = true
page_timeout_ms = 20000

[acquisition]
max_attempts = 5
retry_delay_seconds = 1.5

[run]
environment = "staging"
build_number = "42"
"""


@pytest.fixture
def config_file(tmp_path: Path, config_toml_content: str) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "regress.toml"
    config_path.write_text(config_toml_content)
    return config_path


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def factory() -> FakeDriverFactory:
    return FakeDriverFactory()


@pytest.fixture
def manager(factory: FakeDriverFactory) -> SessionManager:
    return SessionManager(
        factory=factory,
        policy=RetryPolicy(max_attempts=3, delay_seconds=0),
        timeout_seconds=5,
        probe_timeout_seconds=1,
        close_timeout_seconds=1,
    )


@pytest.fixture
def metrics() -> MetricsAggregator:
    return MetricsAggregator(environment="test", browser="chrome")


@pytest.fixture
def capture(tmp_path: Path, fixed_clock) -> DiagnosticCapture:
    return DiagnosticCapture(
        tmp_path / "screenshots",
        capture_timeout_seconds=1,
        full_page_settle_seconds=0,
        comparison_settle_seconds=0,
        clock=fixed_clock,
    )


@pytest.fixture
def controller(regress_config: RegressConfig, factory: FakeDriverFactory):
    return create_controller(regress_config, factory=factory)


@pytest.fixture
def restore_root_logger():
    """Undo configure_logging() changes to the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})
