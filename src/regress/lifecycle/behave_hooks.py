"""Behave environment hooks driving the async lifecycle controller.

A project's ``features/environment.py`` re-exports these::

    from regress.lifecycle.behave_hooks import (
        after_all,
        after_scenario,
        before_all,
        before_scenario,
    )

Behave runs hooks and steps synchronously, so one ``asyncio.Runner`` is
kept on the context for the whole run. Step definitions drive Playwright
through it with :func:`run_async` so every awaitable shares one event loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from pathlib import Path
from typing import Any, TypeVar

from regress.config.loader import load_config
from regress.lifecycle.controller import create_controller
from regress.lifecycle.types import Scenario, ScenarioContext
from regress.logging import configure_logging
from regress.metrics.aggregator import coerce_duration

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONFIG_USERDATA_KEY = "regress_config"

FAILED_STATUSES = frozenset({"failed", "error", "hook_error", "undefined"})


def _status_name(status: Any) -> str:
    return str(getattr(status, "name", status)).lower()


def _first_step_error(scenario: Any) -> BaseException | None:
    for step in getattr(scenario, "all_steps", None) or getattr(scenario, "steps", []):
        error = getattr(step, "exception", None)
        if error is not None:
            return error
    return None


def _userdata(context: Any) -> dict[str, Any]:
    config = getattr(context, "config", None)
    return dict(getattr(config, "userdata", None) or {})


def run_async(context: Any, awaitable: Awaitable[T]) -> T:
    """Run ``awaitable`` on the suite's event loop from a sync step."""
    return context.regress_runner.run(awaitable)


def before_all(context: Any) -> None:
    """Build the controller (unless one is preset) and start the suite."""
    if getattr(context, "regress_controller", None) is None:
        config_path = _userdata(context).get(CONFIG_USERDATA_KEY)
        config = load_config(Path(config_path) if config_path else None)
        configure_logging(log_to_file=True, logs_dir=config.paths.logs_dir)
        context.regress_controller = create_controller(config)

    context.regress_runner = asyncio.Runner()
    run_async(context, context.regress_controller.start_suite())


def before_scenario(context: Any, scenario: Any) -> None:
    """Bind a session; raising here keeps the scenario body from running."""
    tags = getattr(scenario, "effective_tags", None) or getattr(scenario, "tags", ())
    state = ScenarioContext(scenario=Scenario(name=scenario.name, tags=tuple(tags)))
    context.regress_scenario = state
    context.session = None
    context.page = None

    session = run_async(context, context.regress_controller.before_scenario(state))
    context.session = session
    context.page = getattr(session.driver, "page", None)


def after_scenario(context: Any, scenario: Any) -> None:
    """Transfer behave's verdict, then finish and release."""
    state: ScenarioContext | None = getattr(context, "regress_scenario", None)
    if state is None:
        return

    if _status_name(getattr(scenario, "status", "")) in FAILED_STATUSES:
        state.scenario.mark_failed(_first_step_error(scenario))
    duration = getattr(scenario, "duration", None)
    if duration is not None:
        state.scenario.duration_seconds = coerce_duration(duration)

    try:
        run_async(context, context.regress_controller.after_scenario(state))
    finally:
        context.session = None
        context.page = None


def after_all(context: Any) -> None:
    """Finish the suite and close the event loop."""
    runner: asyncio.Runner | None = getattr(context, "regress_runner", None)
    if runner is None:
        return
    try:
        runner.run(context.regress_controller.finish_suite())
    finally:
        runner.close()
