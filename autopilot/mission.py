"""Composable mission phases.

``Autopilot`` wires one set of collaborators into the planner, executor,
descent controller and ascent guidance, and exposes each flight phase as
a single blocking call. Sequencing the phases into a mission is left to
the caller.

Example:
    >>> pilot = Autopilot(vessel=sim, flight_plan=sim.flight_plan,
    ...                   propagator=sim, actuators=sim, clock=sim)
    >>> pilot.launch()
    >>> pilot.circularize()
    >>> pilot.transfer("Mun")
    >>> # ... wait for the encounter and deorbit ...
    >>> pilot.hoverslam()
"""

from dataclasses import dataclass, field

from autopilot.ascent import AscentGuidance
from autopilot.config import (
    AscentConfig,
    DescentConfig,
    ExecutorConfig,
    SearchConfig,
    StagingConfig,
)
from autopilot.descent import DescentController
from autopilot.execution import AutoStageState, ManeuverExecutor
from autopilot.interfaces import Actuators, Clock, FlightPlan, Propagator, Vessel
from autopilot.maneuver import BurnSchedule
from autopilot.planning import ManeuverPlanner


@dataclass
class Autopilot:
    """Entry point for flying individual mission phases.

    The auto-staging state is shared by every powered phase, so a stage
    that burns out during ascent is still remembered during the first
    maneuver.
    """
    vessel: Vessel
    flight_plan: FlightPlan
    propagator: Propagator
    actuators: Actuators
    clock: Clock
    search: SearchConfig = field(default_factory=SearchConfig)
    execution: ExecutorConfig = field(default_factory=ExecutorConfig)
    staging: StagingConfig = field(default_factory=StagingConfig)
    descent: DescentConfig = field(default_factory=DescentConfig)
    ascent: AscentConfig = field(default_factory=AscentConfig)
    stage_state: AutoStageState = field(default_factory=AutoStageState)

    @property
    def planner(self) -> ManeuverPlanner:
        return ManeuverPlanner(
            self.vessel, self.flight_plan, self.propagator, self.clock, self.search
        )

    @property
    def executor(self) -> ManeuverExecutor:
        return ManeuverExecutor(
            self.vessel, self.flight_plan, self.actuators, self.clock,
            self.execution, self.staging,
        )

    @property
    def descent_controller(self) -> DescentController:
        return DescentController(
            self.vessel, self.actuators, self.clock, self.propagator, self.descent
        )

    def launch(self) -> None:
        """Lift off and fly the gravity turn to the target apoapsis."""
        guidance = AscentGuidance(
            self.vessel, self.actuators, self.clock, self.ascent, self.staging
        )
        guidance.launch()
        guidance.ascend(self.stage_state)

    def circularize(self) -> BurnSchedule:
        """Plan and fly a circularization burn at the next apoapsis."""
        plan = self.planner.plan_circularization()
        return self.executor.execute(plan, self.stage_state)

    def transfer(self, target: str) -> BurnSchedule:
        """Plan and fly a transfer burn toward ``target``."""
        plan = self.planner.plan_transfer(target)
        return self.executor.execute(plan, self.stage_state)

    def hoverslam(self) -> None:
        """Fly the powered descent to touchdown."""
        self.descent_controller.run()
