"""Tests for the behave environment hooks."""

import json
from types import SimpleNamespace

import httpx
import pytest

from regress.config.models import MetricsConfig
from regress.errors import ScenarioSetupError
from regress.lifecycle.behave_hooks import (
    after_all,
    after_scenario,
    before_all,
    before_scenario,
    run_async,
)
from regress.lifecycle.controller import ScenarioLifecycleController, create_controller
from regress.lifecycle.types import LifecycleState, ScenarioResult
from tests.conftest import FakeDriverFactory


def _scenario(name: str, status: str = "passed", error: Exception | None = None):
    return SimpleNamespace(
        name=name,
        tags=["smoke"],
        status=SimpleNamespace(name=status),
        duration=1.25,
        steps=[SimpleNamespace(exception=error)],
    )


def _context(controller) -> SimpleNamespace:
    return SimpleNamespace(
        regress_controller=controller, config=SimpleNamespace(userdata={})
    )


class TestBehaveHooks:
    """Tests for behave hook functions."""

    def test_passing_scenario(self, controller, factory, regress_config):
        context = _context(controller)
        before_all(context)

        scenario = _scenario("Login works")
        before_scenario(context, scenario)
        state = context.regress_scenario
        assert state.scenario.tags == ("smoke",)
        assert context.session is state.session
        assert run_async(context, context.session.driver.title()) == "Fake Page"

        after_scenario(context, scenario)
        assert context.session is None
        assert context.page is None
        assert state.scenario.result is ScenarioResult.PASSED
        assert state.scenario.duration_seconds == 1.25

        after_all(context)
        report = json.loads(regress_config.report_path.read_text())
        assert report["passedTests"] == 1
        assert factory.total_closes == 1

    def test_failed_scenario_gets_screenshot(self, controller):
        context = _context(controller)
        before_all(context)

        scenario = _scenario("Checkout", "failed", AssertionError("total mismatch"))
        before_scenario(context, scenario)
        after_scenario(context, scenario)

        state = context.regress_scenario
        assert state.scenario.result is ScenarioResult.FAILED
        assert isinstance(state.scenario.error, AssertionError)
        assert len(state.artifacts) == 1
        assert state.state is LifecycleState.RELEASED
        after_all(context)

    def test_setup_failure_blocks_scenario(self, regress_config):
        controller = create_controller(
            regress_config, factory=FakeDriverFactory(failures=10)
        )
        context = _context(controller)
        before_all(context)

        scenario = _scenario("No browser")
        with pytest.raises(ScenarioSetupError):
            before_scenario(context, scenario)
        after_scenario(context, scenario)

        assert context.regress_scenario.scenario.result is ScenarioResult.ERRORED
        assert context.session is None
        after_all(context)
        summary = json.loads(regress_config.report_path.read_text())
        assert summary["failedTests"] == 1

    def test_after_all_without_before_all(self):
        after_all(SimpleNamespace())

    def test_builds_controller_from_userdata(self, config_file, restore_root_logger):
        context = SimpleNamespace(
            config=SimpleNamespace(userdata={"regress_config": str(config_file)})
        )

        before_all(context)
        try:
            assert isinstance(context.regress_controller, ScenarioLifecycleController)
            assert context.regress_controller.metrics.environment == "staging"
        finally:
            after_all(context)

    def test_metrics_endpoint_answers_between_hooks(self, regress_config, factory):
        config = regress_config.model_copy(
            update={"metrics": MetricsConfig(server_enabled=True, port=0)}
        )
        context = _context(create_controller(config, factory=factory))
        before_all(context)
        try:
            scenario = _scenario("Scraped")
            before_scenario(context, scenario)
            after_scenario(context, scenario)

            port = context.regress_controller.server.bound_port
            assert port is not None
            response = httpx.get(f"http://127.0.0.1:{port}/metrics", timeout=2)
            assert response.status_code == 200
            assert "regression_test_total" in response.text
        finally:
            after_all(context)

        assert not context.regress_controller.server.running
