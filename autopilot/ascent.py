"""Gravity turn ascent to a parking orbit.

Flies a fixed pitch program that tips the vessel over as it climbs,
letting gravity bend the trajectory toward the horizon:

    pitch(h) = pitch_offset - turn_coefficient * h ** turn_exponent

clamped to [0, 90] degrees. The engine burns, auto-staging as tanks run
dry, until the apoapsis reaches the target altitude. Circularization at
that apoapsis is left to ManeuverPlanner.plan_circularization.

Example:
    >>> ascent = AscentGuidance(vessel, actuators, clock)
    >>> stage_state = AutoStageState()
    >>> ascent.launch()
    >>> ascent.ascend(stage_state)
"""

import logging
from dataclasses import dataclass, field

from autopilot.config import AscentConfig, StagingConfig
from autopilot.execution.staging import AutoStageState, auto_stage
from autopilot.interfaces import Actuators, Clock, Heading, Vessel

logger = logging.getLogger(__name__)


@dataclass
class AscentGuidance:
    """Gravity turn ascent guidance.

    Attributes:
        vessel: Telemetry source
        actuators: Throttle, steering and staging
        clock: Time source and suspension
        config: Pitch program and target
        staging: Auto-staging settings
    """
    vessel: Vessel
    actuators: Actuators
    clock: Clock
    config: AscentConfig = field(default_factory=AscentConfig)
    staging: StagingConfig = field(default_factory=StagingConfig)

    def pitch_for(self, altitude: float) -> float:
        """Target pitch above the horizon at ``altitude`` [deg]."""
        altitude = max(altitude, 0.0)
        pitch = self.config.pitch_offset - self.config.turn_coefficient * altitude ** self.config.turn_exponent
        return min(max(pitch, 0.0), 90.0)

    def target_heading(self) -> Heading:
        return Heading(pitch=self.pitch_for(self.vessel.altitude), heading=self.config.heading)

    def launch(self) -> None:
        """Open the throttle and ignite the first stage."""
        logger.info("Launch")
        self.actuators.set_throttle(1.0)
        self.actuators.stage()
        self.clock.wait(self.staging.settle_time)

    def ascend(self, stage_state: AutoStageState | None = None) -> None:
        """Follow the pitch program until the apoapsis reaches the target."""
        if stage_state is None:
            stage_state = AutoStageState()
        try:
            while self.vessel.orbit.apoapsis < self.config.target_apoapsis:
                self.actuators.lock_steering(self.target_heading())
                auto_stage(self.vessel, self.actuators, self.clock, stage_state, self.staging)
                self.clock.tick()
            logger.info("Apoapsis %.0f m reached, engine cutoff", self.vessel.orbit.apoapsis)
        finally:
            self.actuators.set_throttle(0.0)
            self.actuators.unlock_steering()
