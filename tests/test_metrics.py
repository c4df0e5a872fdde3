"""Tests for MetricsAggregator."""

import json
import math

import pytest

from regress.errors import MetricsError
from regress.metrics.aggregator import (
    MetricsAggregator,
    coerce_duration,
    create_metrics_aggregator,
)


def _sample(metrics: MetricsAggregator, name: str, **labels) -> float | None:
    return metrics.registry.get_sample_value(name, labels)


def _active(metrics: MetricsAggregator) -> float | None:
    return _sample(
        metrics, "regression_test_active", environment="test", browser="chrome"
    )


class TestCoerceDuration:
    """Tests for coerce_duration."""

    @pytest.mark.parametrize(
        "value", [math.nan, math.inf, -math.inf, -1.5, "12", None, True, object()]
    )
    def test_invalid_values_become_zero(self, value):
        assert coerce_duration(value) == 0.0

    def test_valid_values_pass_through(self):
        assert coerce_duration(3) == 3.0
        assert coerce_duration(0.25) == 0.25


class TestRecording:
    """Tests for recording methods."""

    def test_start_and_success_balance_active_gauge(self, metrics):
        metrics.record_test_start("Login")
        assert _active(metrics) == 1

        metrics.record_test_success("Login", 1.5)

        labels = {
            "scenario": "Login",
            "status": "success",
            "environment": "test",
            "browser": "chrome",
        }
        assert _sample(metrics, "regression_test_total", **labels) == 1
        assert _sample(metrics, "regression_test_duration_seconds_sum", **labels) == 1.5
        assert _active(metrics) == 0
        assert (
            _sample(
                metrics,
                "regression_scenario_result",
                scenario="Login",
                environment="test",
                browser="chrome",
            )
            == 1
        )

    def test_failure_counts_error_type(self, metrics):
        metrics.record_test_start("Checkout")
        metrics.record_test_failure("Checkout", AssertionError("boom"), 2)

        assert (
            _sample(
                metrics,
                "regression_test_errors_total",
                scenario="Checkout",
                error_type="AssertionError",
                environment="test",
                browser="chrome",
            )
            == 1
        )
        assert (
            _sample(
                metrics,
                "regression_scenario_result",
                scenario="Checkout",
                environment="test",
                browser="chrome",
            )
            == 0
        )

    def test_completion_dispatches_on_flag(self, metrics):
        metrics.record_test_completion("A", 1, is_failure=False)
        metrics.record_test_completion("B", 1, is_failure=True)

        summary = metrics.get_test_summary()
        assert summary.passed_tests == 1
        assert summary.failed_tests == 1

    def test_nan_duration_is_recorded_as_zero(self, metrics):
        metrics.record_test_start("Flaky")
        metrics.record_test_success("Flaky", math.nan)

        labels = {
            "scenario": "Flaky",
            "status": "success",
            "environment": "test",
            "browser": "chrome",
        }
        assert _sample(metrics, "regression_test_duration_seconds_count", **labels) == 1
        assert _sample(metrics, "regression_test_duration_seconds_sum", **labels) == 0

    def test_setup_failure_leaves_active_gauge_alone(self, metrics):
        metrics.record_setup_failure("Broken", RuntimeError("no browser"))

        summary = metrics.get_test_summary()
        assert summary.failed_tests == 1
        assert summary.total_errors == 1
        assert _active(metrics) is None

    def test_actions_page_loads_and_screenshots(self, metrics):
        metrics.record_browser_action("click", "Login")
        metrics.record_browser_action("type", "Login")
        metrics.record_page_load("home", 0.8, "Login")
        metrics.record_screenshot("failure", "Login")

        summary = metrics.get_test_summary()
        assert summary.browser_actions == 2
        assert summary.screenshots == 1
        assert (
            _sample(
                metrics,
                "regression_page_load_duration_seconds_count",
                page="home",
                scenario="Login",
                environment="test",
            )
            == 1
        )

    def test_recording_never_raises(self, metrics, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("registry broken")

        monkeypatch.setattr(metrics.test_counter, "labels", explode)

        metrics.record_test_success("Login", 1)
        metrics.record_test_failure("Login", None, 1)


class TestSummary:
    """Tests for get_test_summary."""

    def test_success_rate(self, metrics):
        for name in ("A", "B", "C"):
            metrics.record_test_completion(name, 1, is_failure=False)
        metrics.record_test_completion("D", 1, is_failure=True)

        summary = metrics.get_test_summary()

        assert summary.total_tests == 4
        assert summary.success_rate == 75.0

    def test_success_rate_is_zero_without_tests(self, metrics):
        assert metrics.get_test_summary().success_rate == 0

    def test_success_rate_rounds_to_two_places(self, metrics):
        metrics.record_test_completion("A", 1, is_failure=False)
        metrics.record_test_completion("B", 1, is_failure=True)
        metrics.record_test_completion("C", 1, is_failure=True)

        assert metrics.get_test_summary().success_rate == 33.33

    def test_to_dict_keys(self, metrics):
        data = metrics.get_test_summary().to_dict()
        assert list(data) == [
            "timestamp",
            "environment",
            "buildNumber",
            "gitBranch",
            "totalTests",
            "passedTests",
            "failedTests",
            "totalErrors",
            "screenshots",
            "browserActions",
            "successRate",
        ]

    def test_aggregators_are_isolated(self):
        first = MetricsAggregator()
        second = MetricsAggregator()
        first.record_test_completion("A", 1, is_failure=False)
        assert second.get_test_summary().total_tests == 0


class TestReport:
    """Tests for generate_report and exposition."""

    async def test_writes_report_with_suite_duration(self, tmp_path):
        now = [1000.0]
        metrics = MetricsAggregator(environment="ci", time_fn=lambda: now[0])
        metrics.initialize()
        metrics.record_test_completion("A", 1, is_failure=False)
        now[0] = 1012.5

        path = tmp_path / "reports" / "metrics-report.json"
        report = await metrics.generate_report(path)

        on_disk = json.loads(path.read_text())
        assert on_disk == report
        assert report["suiteDuration"] == 12.5
        assert report["environment"] == "ci"
        assert metrics.registry.get_sample_value(
            "regression_suite_duration_seconds"
        ) == pytest.approx(12.5)

    async def test_report_write_failure_raises_metrics_error(self, metrics, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")

        with pytest.raises(MetricsError):
            await metrics.generate_report(blocker / "report.json")

    def test_exposition_contains_metric_names(self, metrics):
        metrics.record_test_completion("A", 1, is_failure=False)
        body = metrics.exposition().decode()
        assert "regression_test_total" in body
        assert "regression_test_duration_seconds_bucket" in body
        assert metrics.content_type.startswith("text/plain")


def test_create_from_config(regress_config):
    metrics = create_metrics_aggregator(regress_config)
    assert metrics.environment == "development"
    assert metrics.browser == "chrome"
