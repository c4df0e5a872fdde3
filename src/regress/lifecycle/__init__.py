"""Scenario lifecycle orchestration.

Public API:
- ScenarioLifecycleController: Before/After and suite hooks
- create_controller: Factory wiring sessions, metrics and diagnostics

Types:
- Scenario, ScenarioContext, ScenarioResult, LifecycleState
"""

from regress.lifecycle.controller import (
    ScenarioBody,
    ScenarioLifecycleController,
    create_controller,
)
from regress.lifecycle.types import (
    LifecycleState,
    Scenario,
    ScenarioContext,
    ScenarioResult,
)

__all__ = [
    "ScenarioLifecycleController",
    "ScenarioBody",
    "create_controller",
    "LifecycleState",
    "Scenario",
    "ScenarioContext",
    "ScenarioResult",
]
