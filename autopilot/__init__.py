"""Autopilot - autonomous guidance for a single vessel.

Plans and flies orbital maneuvers (circularization, transfer to another
body, powered descent) from onboard telemetry alone. The environment that
advances time and responds to commands is reached only through the
Protocols in ``autopilot.interfaces``; ``vesselsim`` provides a
simulated one.

Architecture:
    The environment (vesselsim/, or a live vessel) provides telemetry,
    position prediction, a flight plan and actuators. The autopilot
    (autopilot/) chooses maneuvers and commands the vessel.

    Control loop:
        plan = planner.plan_circularization()   # Search over candidate burns
        executor.execute(plan)                  # Timed throttle and steering
        DescentController(...).run()            # Closed-loop landing

Subpackages:
    search: Ternary search and pattern search
    planning: Maneuver scoring and planning
    execution: Burn timing, staging and the execution state machine
    descent: Powered landing

Example:
    >>> from autopilot import Autopilot
    >>> from vesselsim import Simulator
    >>>
    >>> sim = Simulator.from_orbit(altitude=80e3)
    >>> pilot = Autopilot(vessel=sim, flight_plan=sim.flight_plan,
    ...                   propagator=sim, actuators=sim, clock=sim)
    >>> pilot.circularize()
"""

__version__ = "0.1.0"

from autopilot.ascent import AscentGuidance
from autopilot.descent import DescentController, DescentState
from autopilot.errors import (
    ActuatorUnavailableError,
    GuidanceError,
    NumericDegeneracyError,
)
from autopilot.execution import AutoStageState, ExecutorState, ManeuverExecutor
from autopilot.maneuver import BurnSchedule, ManeuverPlan
from autopilot.mission import Autopilot
from autopilot.planning import ManeuverPlanner, StalenessGuard
from autopilot.search import PatternOptimizer, ternary_minimize

__all__ = [
    "__version__",
    # Mission phases
    "Autopilot",
    "AscentGuidance",
    # Planning
    "ManeuverPlan",
    "ManeuverPlanner",
    "PatternOptimizer",
    "StalenessGuard",
    "ternary_minimize",
    # Execution
    "AutoStageState",
    "BurnSchedule",
    "ExecutorState",
    "ManeuverExecutor",
    # Descent
    "DescentController",
    "DescentState",
    # Errors
    "ActuatorUnavailableError",
    "GuidanceError",
    "NumericDegeneracyError",
]
