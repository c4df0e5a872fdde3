"""Suite-wide metrics backed by a private Prometheus registry.

One aggregator is built at suite start and passed to every lifecycle call
site. Recording methods never raise: a broken metric must not change a
scenario outcome.
"""

from __future__ import annotations

import json
import logging
import math
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiofiles
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    ProcessCollector,
    generate_latest,
)

from regress.errors import MetricsError

if TYPE_CHECKING:
    from regress.config.models import RegressConfig

logger = logging.getLogger(__name__)

TEST_DURATION_BUCKETS = (0.5, 1, 2, 5, 10, 30, 60, 120, 300)
PAGE_LOAD_BUCKETS = (0.1, 0.5, 1, 2, 5, 10, 30)

STATUS_SUCCESS = "success"
STATUS_FAILURE = "failure"


def coerce_duration(value: Any) -> float:
    """Return ``value`` as non-negative finite seconds, else 0."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0.0
    value = float(value)
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


@dataclass(slots=True)
class TestSummary:
    """Reduction of the raw samples into suite totals."""

    __test__ = False  # not a pytest test class

    timestamp: str
    environment: str
    build_number: str
    git_branch: str
    total_tests: int = 0
    passed_tests: int = 0
    failed_tests: int = 0
    total_errors: int = 0
    screenshots: int = 0
    browser_actions: int = 0

    @property
    def success_rate(self) -> float:
        if self.total_tests == 0:
            return 0.0
        return round(self.passed_tests / self.total_tests * 100, 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "environment": self.environment,
            "buildNumber": self.build_number,
            "gitBranch": self.git_branch,
            "totalTests": self.total_tests,
            "passedTests": self.passed_tests,
            "failedTests": self.failed_tests,
            "totalErrors": self.total_errors,
            "screenshots": self.screenshots,
            "browserActions": self.browser_actions,
            "successRate": self.success_rate,
        }


class MetricsAggregator:
    """Counters, histograms and gauges for one test suite."""

    def __init__(
        self,
        *,
        environment: str = "development",
        browser: str = "chrome",
        build_number: str = "1",
        git_branch: str = "main",
        time_fn: Callable[[], float] = time.time,
        collect_process_metrics: bool = False,
    ) -> None:
        self.environment = environment
        self.browser = browser
        self.build_number = build_number
        self.git_branch = git_branch
        self._time = time_fn
        self.registry = CollectorRegistry()
        if collect_process_metrics:
            ProcessCollector(namespace="regression_test", registry=self.registry)
        self._register_metrics()

    def _register_metrics(self) -> None:
        registry = self.registry
        test_labels = ["scenario", "status", "environment", "browser"]

        self.test_counter = Counter(
            "regression_test_total",
            "Total number of regression tests executed",
            test_labels,
            registry=registry,
        )
        self.test_duration = Histogram(
            "regression_test_duration_seconds",
            "Duration of regression test execution in seconds",
            test_labels,
            buckets=TEST_DURATION_BUCKETS,
            registry=registry,
        )
        self.active_tests = Gauge(
            "regression_test_active",
            "Number of currently active regression tests",
            ["environment", "browser"],
            registry=registry,
        )
        self.error_counter = Counter(
            "regression_test_errors_total",
            "Total number of regression test errors",
            ["scenario", "error_type", "environment", "browser"],
            registry=registry,
        )
        self.browser_action_counter = Counter(
            "regression_browser_actions_total",
            "Total number of browser actions performed",
            ["action", "scenario", "environment"],
            registry=registry,
        )
        self.page_load_duration = Histogram(
            "regression_page_load_duration_seconds",
            "Duration of page loads in seconds",
            ["page", "scenario", "environment"],
            buckets=PAGE_LOAD_BUCKETS,
            registry=registry,
        )
        self.screenshot_counter = Counter(
            "regression_screenshots_total",
            "Total number of screenshots taken",
            ["type", "scenario", "environment"],
            registry=registry,
        )
        self.suite_start = Gauge(
            "regression_suite_start_timestamp",
            "Timestamp when the test suite started",
            registry=registry,
        )
        self.suite_duration = Gauge(
            "regression_suite_duration_seconds",
            "Total duration of the test suite execution",
            registry=registry,
        )
        self.scenario_result = Gauge(
            "regression_scenario_result",
            "Result of last scenario execution (1 = success, 0 = failure)",
            ["scenario", "environment", "browser"],
            registry=registry,
        )

    @contextmanager
    def _recording(self, event: str, scenario: str | None = None) -> Iterator[None]:
        try:
            yield
        except Exception as e:
            logger.error(
                "metrics_record_failed",
                extra={
                    "metrics.event": event,
                    "scenario.name": scenario,
                    "error.type": type(e).__name__,
                    "error.message": str(e),
                },
            )

    def _labels(
        self, browser: str | None, environment: str | None
    ) -> tuple[str, str]:
        return browser or self.browser, environment or self.environment

    def initialize(self) -> None:
        """Mark the suite start."""
        self.suite_start.set(self._time())
        logger.info("metrics_initialized")

    def record_test_start(
        self,
        scenario: str,
        browser: str | None = None,
        environment: str | None = None,
    ) -> None:
        with self._recording("test_start", scenario):
            browser, environment = self._labels(browser, environment)
            self.active_tests.labels(environment=environment, browser=browser).inc()
            logger.info(
                "test_started",
                extra={
                    "metrics.event": "test_start",
                    "scenario.name": scenario,
                    "browser.kind": browser,
                    "run.environment": environment,
                },
            )

    def record_test_success(
        self,
        scenario: str,
        duration: Any = 0,
        browser: str | None = None,
        environment: str | None = None,
    ) -> None:
        with self._recording("test_success", scenario):
            browser, environment = self._labels(browser, environment)
            seconds = coerce_duration(duration)
            labels = {
                "scenario": scenario,
                "status": STATUS_SUCCESS,
                "environment": environment,
                "browser": browser,
            }
            self.test_counter.labels(**labels).inc()
            self.test_duration.labels(**labels).observe(seconds)
            self.scenario_result.labels(
                scenario=scenario, environment=environment, browser=browser
            ).set(1)
            self.active_tests.labels(environment=environment, browser=browser).dec()
            logger.info(
                "test_passed",
                extra={
                    "metrics.event": "test_success",
                    "scenario.name": scenario,
                    "scenario.duration_s": seconds,
                },
            )

    def record_test_failure(
        self,
        scenario: str,
        error: BaseException | None = None,
        duration: Any = 0,
        browser: str | None = None,
        environment: str | None = None,
    ) -> None:
        with self._recording("test_failure", scenario):
            browser, environment = self._labels(browser, environment)
            seconds = coerce_duration(duration)
            error_type = type(error).__name__ if error is not None else "TestFailure"
            labels = {
                "scenario": scenario,
                "status": STATUS_FAILURE,
                "environment": environment,
                "browser": browser,
            }
            self.test_counter.labels(**labels).inc()
            self.test_duration.labels(**labels).observe(seconds)
            self.error_counter.labels(
                scenario=scenario,
                error_type=error_type,
                environment=environment,
                browser=browser,
            ).inc()
            self.scenario_result.labels(
                scenario=scenario, environment=environment, browser=browser
            ).set(0)
            self.active_tests.labels(environment=environment, browser=browser).dec()
            logger.warning(
                "test_failed",
                extra={
                    "metrics.event": "test_failure",
                    "scenario.name": scenario,
                    "scenario.duration_s": seconds,
                    "error.type": error_type,
                },
            )

    def record_test_completion(
        self,
        scenario: str,
        duration: Any,
        is_failure: bool,
        error: BaseException | None = None,
        browser: str | None = None,
        environment: str | None = None,
    ) -> None:
        if is_failure:
            self.record_test_failure(scenario, error, duration, browser, environment)
        else:
            self.record_test_success(scenario, duration, browser, environment)

    def record_setup_failure(
        self,
        scenario: str,
        error: BaseException,
        browser: str | None = None,
        environment: str | None = None,
    ) -> None:
        """Count a scenario that never started because no session was bound."""
        with self._recording("setup_failure", scenario):
            browser, environment = self._labels(browser, environment)
            self.test_counter.labels(
                scenario=scenario,
                status=STATUS_FAILURE,
                environment=environment,
                browser=browser,
            ).inc()
            self.error_counter.labels(
                scenario=scenario,
                error_type=type(error).__name__,
                environment=environment,
                browser=browser,
            ).inc()
            self.scenario_result.labels(
                scenario=scenario, environment=environment, browser=browser
            ).set(0)

    def record_browser_action(
        self, action: str, scenario: str, environment: str | None = None
    ) -> None:
        with self._recording("browser_action", scenario):
            self.browser_action_counter.labels(
                action=action,
                scenario=scenario,
                environment=environment or self.environment,
            ).inc()
            logger.debug(
                "browser_action",
                extra={"browser.action": action, "scenario.name": scenario},
            )

    def record_page_load(
        self,
        page: str,
        duration: Any,
        scenario: str,
        environment: str | None = None,
    ) -> None:
        with self._recording("page_load", scenario):
            seconds = coerce_duration(duration)
            self.page_load_duration.labels(
                page=page,
                scenario=scenario,
                environment=environment or self.environment,
            ).observe(seconds)
            logger.info(
                "page_loaded",
                extra={
                    "page.name": page,
                    "page.duration_s": seconds,
                    "scenario.name": scenario,
                },
            )

    def record_screenshot(
        self, kind: str, scenario: str, environment: str | None = None
    ) -> None:
        with self._recording("screenshot", scenario):
            self.screenshot_counter.labels(
                type=kind,
                scenario=scenario,
                environment=environment or self.environment,
            ).inc()

    def _sum_samples(self, sample_name: str) -> tuple[float, float, float]:
        """Return (total, success, failure) over every sample named ``sample_name``."""
        total = success = failure = 0.0
        for family in self.registry.collect():
            for sample in family.samples:
                if sample.name != sample_name:
                    continue
                total += sample.value
                status = sample.labels.get("status")
                if status == STATUS_SUCCESS:
                    success += sample.value
                elif status == STATUS_FAILURE:
                    failure += sample.value
        return total, success, failure

    def get_test_summary(self) -> TestSummary:
        """Reduce the registry's samples into suite totals."""
        total, passed, failed = self._sum_samples("regression_test_total")
        errors, _, _ = self._sum_samples("regression_test_errors_total")
        screenshots, _, _ = self._sum_samples("regression_screenshots_total")
        actions, _, _ = self._sum_samples("regression_browser_actions_total")
        return TestSummary(
            timestamp=datetime.now(UTC).isoformat(),
            environment=self.environment,
            build_number=self.build_number,
            git_branch=self.git_branch,
            total_tests=int(total),
            passed_tests=int(passed),
            failed_tests=int(failed),
            total_errors=int(errors),
            screenshots=int(screenshots),
            browser_actions=int(actions),
        )

    def suite_elapsed_seconds(self) -> float:
        started = self.registry.get_sample_value("regression_suite_start_timestamp")
        if not started:
            return 0.0
        return max(0.0, self._time() - started)

    async def generate_report(self, path: Path) -> dict[str, Any]:
        """Write the summary to ``path`` and record the suite duration.

        Raises:
            MetricsError: The summary could not be built or written.
        """
        try:
            suite_duration = self.suite_elapsed_seconds()
            self.suite_duration.set(suite_duration)
            report = self.get_test_summary().to_dict()
            report["suiteDuration"] = round(suite_duration, 3)

            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(report, indent=2))
        except Exception as e:
            logger.error(
                "metrics_report_failed",
                extra={"file.path": str(path), "error.message": str(e)},
            )
            raise MetricsError(f"Failed to generate metrics report: {e}") from e

        logger.info(
            "metrics_report_generated",
            extra={
                "file.path": str(path),
                "report.total_tests": report["totalTests"],
                "report.success_rate": report["successRate"],
                "suite.duration_s": report["suiteDuration"],
            },
        )
        return report

    def exposition(self) -> bytes:
        """Prometheus text exposition of every registered sample."""
        return generate_latest(self.registry)

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST


def create_metrics_aggregator(config: RegressConfig) -> MetricsAggregator:
    """Create an aggregator labelled from configuration."""
    return MetricsAggregator(
        environment=config.run.environment,
        browser=config.browser.kind,
        build_number=config.run.build_number,
        git_branch=config.run.git_branch,
        collect_process_metrics=config.metrics.server_enabled,
    )
