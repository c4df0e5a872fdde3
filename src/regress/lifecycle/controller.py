"""Scenario lifecycle: Before/After hooks with guaranteed session release.

Each scenario owns exactly one session between its Before and After hooks.
After always ends by releasing that session, whatever happened before it,
and nothing it does on the way (probe, screenshot, console logs, metrics)
can change the scenario outcome it is reporting.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, Any

from regress.browser.manager import SessionManager, create_session_manager
from regress.browser.retry import with_timeout
from regress.browser.types import Session, utc_now
from regress.diagnostics.capture import DiagnosticCapture, create_diagnostic_capture
from regress.diagnostics.types import ArtifactKind
from regress.errors import (
    CleanupError,
    DriverUnresponsiveError,
    MetricsError,
    ScenarioSetupError,
    SessionTimeoutError,
)
from regress.lifecycle.types import (
    LifecycleState,
    Scenario,
    ScenarioContext,
)
from regress.metrics.aggregator import MetricsAggregator, create_metrics_aggregator

if TYPE_CHECKING:
    from regress.browser.drivers.base import DriverFactory
    from regress.config.models import RegressConfig
    from regress.server.runner import MetricsServer

logger = logging.getLogger(__name__)

ScenarioBody = Callable[[ScenarioContext], Awaitable[Any]]


class ScenarioLifecycleController:
    """Orchestrates suite and scenario hooks around one shared aggregator."""

    def __init__(
        self,
        config: RegressConfig,
        *,
        sessions: SessionManager,
        metrics: MetricsAggregator,
        diagnostics: DiagnosticCapture,
        server: MetricsServer | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._sessions = sessions
        self._metrics = metrics
        self._diagnostics = diagnostics
        self._server = server
        self._monotonic = monotonic

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    @property
    def metrics(self) -> MetricsAggregator:
        return self._metrics

    @property
    def diagnostics(self) -> DiagnosticCapture:
        return self._diagnostics

    @property
    def server(self) -> MetricsServer | None:
        return self._server

    async def start_suite(self) -> None:
        """Run once before any scenario."""
        logger.info(
            "suite_starting",
            extra={
                "run.environment": self._config.run.environment,
                "browser.kind": self._config.browser.kind,
            },
        )
        self._metrics.initialize()
        self._config.paths.artifacts_dir.mkdir(parents=True, exist_ok=True)
        self._config.paths.reports_dir.mkdir(parents=True, exist_ok=True)
        if self._server is not None:
            await self._server.start()
        logger.info("suite_started")

    async def finish_suite(self) -> None:
        """Run once after all scenarios. Never raises on report failure."""
        try:
            await self._metrics.generate_report(self._config.report_path)
        except MetricsError:
            logger.warning("suite_report_skipped")

        await self._sessions.shutdown()
        if self._server is not None:
            await self._server.stop()

        stats = self._sessions.stats
        logger.info(
            "suite_finished",
            extra={
                "session.acquired": stats.acquired,
                "session.released": stats.released,
                "session.failed_attempts": stats.failed_attempts,
            },
        )

    async def before_scenario(self, ctx: ScenarioContext) -> Session:
        """Acquire and bind a session for ``ctx.scenario``.

        Raises:
            ScenarioSetupError: No session could be bound. The scenario is
                marked ERRORED and its body must not run.
        """
        scenario = ctx.scenario
        scenario.started_at = utc_now()
        ctx.started_monotonic = self._monotonic()
        ctx.state = LifecycleState.ACQUIRING
        logger.info(
            "scenario_starting",
            extra={"scenario.name": scenario.name, "scenario.tags": scenario.tags},
        )

        timeout = self._config.hooks.before_timeout_seconds
        try:
            session = await with_timeout(
                self._sessions.acquire(self._config.browser),
                timeout,
                on_timeout=lambda: SessionTimeoutError(timeout),
            )
        except Exception as e:
            ctx.state = LifecycleState.RELEASED
            scenario.mark_errored(e)
            self._metrics.record_setup_failure(scenario.name, e)
            logger.error(
                "scenario_setup_failed",
                extra={
                    "scenario.name": scenario.name,
                    "error.type": type(e).__name__,
                    "error.message": str(e),
                },
            )
            raise ScenarioSetupError(scenario.name, e) from e

        ctx.bind(session)
        self._metrics.record_test_start(scenario.name)
        logger.info(
            "scenario_session_bound",
            extra={"scenario.name": scenario.name, "session.id": session.id},
        )
        return session

    async def after_scenario(self, ctx: ScenarioContext) -> None:
        """Finish ``ctx.scenario`` and release its session.

        Calling this again after release is a no-op.
        """
        if ctx.state in (LifecycleState.RELEASED, LifecycleState.UNBOUND):
            return
        ctx.state = LifecycleState.COMPLETING
        scenario = ctx.scenario
        timeout = self._config.hooks.after_timeout_seconds

        try:
            try:
                await with_timeout(
                    self._inspect(ctx),
                    timeout,
                    on_timeout=lambda: CleanupError(
                        f"After hook timed out after {timeout:g}s"
                    ),
                )
            except Exception as e:
                logger.error(
                    "scenario_after_hook_failed",
                    extra={
                        "scenario.name": scenario.name,
                        "error.type": type(e).__name__,
                        "error.message": str(e),
                    },
                )
            self._record_outcome(ctx)
        finally:
            await self._sessions.release(ctx.lease)
            ctx.usable = False
            ctx.state = LifecycleState.RELEASED

    async def _inspect(self, ctx: ScenarioContext) -> None:
        await self._check_liveness(ctx)
        if ctx.scenario.is_failure:
            await self._capture_failure(ctx)
        await self._collect_console_logs(ctx)

    async def _check_liveness(self, ctx: ScenarioContext) -> None:
        session = ctx.session
        if session is None:
            return
        probe = await self._sessions.probe(session)
        if probe.ok:
            return

        note = f"Driver is no longer responsive: {probe.error}"
        ctx.invalidate(note)
        ctx.scenario.mark_failed(DriverUnresponsiveError(note))
        logger.warning(
            "scenario_driver_unresponsive",
            extra={"scenario.name": ctx.scenario.name, "error.message": probe.error},
        )

    async def _capture_failure(self, ctx: ScenarioContext) -> None:
        scenario = ctx.scenario
        session = ctx.session
        if session is None:
            logger.warning(
                "failure_screenshot_skipped",
                extra={"scenario.name": scenario.name},
            )
            return
        try:
            artifact = await self._diagnostics.take_screenshot(
                session,
                f"failure_{scenario.name}",
                kind=ArtifactKind.FAILURE,
                scenario_name=scenario.name,
            )
        except Exception as e:
            logger.warning(
                "failure_screenshot_failed",
                extra={"scenario.name": scenario.name, "error.message": str(e)},
            )
            return
        ctx.artifacts.append(artifact)
        self._metrics.record_screenshot(ArtifactKind.FAILURE.value, scenario.name)

    async def _collect_console_logs(self, ctx: ScenarioContext) -> None:
        session = ctx.session
        if session is None:
            return
        collect = getattr(session.driver, "console_logs", None)
        if collect is None:
            return
        try:
            entries = await collect()
        except Exception as e:
            # Not every browser exposes console logs
            logger.debug("console_logs_unavailable", extra={"error.message": str(e)})
            return
        if entries:
            ctx.console_logs.extend(entries)
            logger.info(
                "browser_console_logs",
                extra={
                    "scenario.name": ctx.scenario.name,
                    "console.count": len(entries),
                },
            )

    def _record_outcome(self, ctx: ScenarioContext) -> None:
        scenario = ctx.scenario
        scenario.mark_passed()
        if scenario.duration_seconds is None:
            scenario.duration_seconds = self._monotonic() - ctx.started_monotonic

        self._metrics.record_test_completion(
            scenario.name,
            scenario.duration_seconds,
            scenario.is_failure,
            scenario.error,
        )
        level = logging.WARNING if scenario.is_failure else logging.INFO
        logger.log(
            level,
            "scenario_finished",
            extra={
                "scenario.name": scenario.name,
                "scenario.result": scenario.result.value,
                "scenario.duration_s": scenario.duration_seconds,
                "scenario.notes": ctx.notes,
            },
        )

    async def run_scenario(
        self, scenario: Scenario, body: ScenarioBody
    ) -> ScenarioContext:
        """Run Before, ``body`` and After; After always runs once bound."""
        ctx = ScenarioContext(scenario=scenario)
        try:
            await self.before_scenario(ctx)
        except ScenarioSetupError:
            return ctx

        try:
            await body(ctx)
        except DriverUnresponsiveError as e:
            ctx.notes.append(str(e))
            scenario.mark_failed(e)
            logger.warning(
                "scenario_driver_lost",
                extra={"scenario.name": scenario.name, "error.message": str(e)},
            )
        except Exception as e:
            scenario.mark_failed(e)
            logger.info(
                "scenario_body_failed",
                extra={
                    "scenario.name": scenario.name,
                    "error.type": type(e).__name__,
                    "error.message": str(e),
                },
            )
        except BaseException as e:
            # Interrupted or cancelled; still recorded as a failure, then re-raised
            scenario.mark_failed(e)
            raise
        finally:
            await self.after_scenario(ctx)
        return ctx

    async def run_scenarios(
        self,
        items: Iterable[tuple[Scenario, ScenarioBody]],
        *,
        concurrency: int | None = None,
    ) -> list[ScenarioContext]:
        """Run scenarios as independent tasks.

        ``concurrency`` caps how many hold a session at once; None means
        no cap.
        """
        semaphore = asyncio.Semaphore(concurrency) if concurrency else None

        async def run_one(scenario: Scenario, body: ScenarioBody) -> ScenarioContext:
            if semaphore is None:
                return await self.run_scenario(scenario, body)
            async with semaphore:
                return await self.run_scenario(scenario, body)

        tasks = [run_one(scenario, body) for scenario, body in items]
        return list(await asyncio.gather(*tasks))


def create_controller(
    config: RegressConfig,
    *,
    factory: DriverFactory | None = None,
) -> ScenarioLifecycleController:
    """Wire a controller and its collaborators from configuration."""
    sessions = create_session_manager(config, factory=factory)
    metrics = create_metrics_aggregator(config)
    diagnostics = create_diagnostic_capture(config, prober=sessions.probe)

    server = None
    if config.metrics.server_enabled:
        from regress.server.app import create_app
        from regress.server.runner import MetricsServer

        server = MetricsServer(
            create_app(metrics),
            host=config.metrics.host,
            port=config.metrics.port,
        )

    return ScenarioLifecycleController(
        config,
        sessions=sessions,
        metrics=metrics,
        diagnostics=diagnostics,
        server=server,
    )
