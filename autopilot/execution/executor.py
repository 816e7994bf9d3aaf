"""Maneuver execution state machine.

Turns a ManeuverPlan into timed actuator commands:

    IDLE -> REGISTERED         node added to the flight plan, burn scheduled
    REGISTERED -> AWAITING_IGNITION
                               wait until shortly before ignition
    AWAITING_IGNITION -> STEERING
                               steer along the live burn vector, wait for ignition
    STEERING -> BURNING        full throttle, auto-staging every control step
    BURNING -> COMPLETE        throttle cut, steering released, node removed

The burn ends when the live burn vector has rotated more than
``completion_angle`` (90 deg by default) away from its direction at
ignition: once the remaining delta-v passes through zero it points
backwards. This is a proxy for exhausted delta-v, not a measurement.

Throttle, steering and the flight plan node are released on every exit
path, including errors.

Example:
    >>> executor = ManeuverExecutor(vessel, flight_plan, actuators, clock)
    >>> executor.execute(ManeuverPlan(epoch=clock.now + 120.0, prograde=250.0))
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np
from numpy.typing import NDArray

from autopilot.config import ExecutorConfig, StagingConfig
from autopilot.errors import ActuatorUnavailableError
from autopilot.execution.burn import schedule_burn
from autopilot.execution.staging import AutoStageState, auto_stage
from autopilot.interfaces import Actuators, Clock, FlightPlan, ManeuverNode, Vessel
from autopilot.maneuver import BurnSchedule, ManeuverPlan
from autopilot.vectors import vector_angle

logger = logging.getLogger(__name__)


class ExecutorState(IntEnum):
    """Maneuver execution phases."""
    IDLE = 0
    REGISTERED = 1
    AWAITING_IGNITION = 2
    STEERING = 3
    BURNING = 4
    COMPLETE = 5


@dataclass
class BurnCompletion:
    """Detects the end of a burn from the rotation of the burn vector.

    The first vector passed to ``update`` is the reference. Later calls
    report completion once the angle to the reference exceeds ``angle``,
    or the remaining burn vector is exactly zero.
    """
    angle: float = np.radians(90.0)
    _start: NDArray[np.float64] | None = field(default=None, init=False, repr=False)

    def update(self, burn_vector: NDArray[np.float64]) -> bool:
        current = np.asarray(burn_vector, dtype=np.float64)
        if self._start is None:
            self._start = current
            return False
        if not np.any(current):
            return True
        return bool(vector_angle(self._start, current) > self.angle)


@dataclass
class ManeuverExecutor:
    """Flies a ManeuverPlan.

    Attributes:
        vessel: Telemetry source
        flight_plan: Where the maneuver node is registered
        actuators: Throttle, steering and staging
        clock: Time source and suspension
        config: Execution settings
        staging: Auto-staging settings
    """
    vessel: Vessel
    flight_plan: FlightPlan
    actuators: Actuators
    clock: Clock
    config: ExecutorConfig = field(default_factory=ExecutorConfig)
    staging: StagingConfig = field(default_factory=StagingConfig)

    _state: ExecutorState = field(default=ExecutorState.IDLE, init=False)
    _schedule: BurnSchedule | None = field(default=None, init=False, repr=False)

    @property
    def state(self) -> ExecutorState:
        return self._state

    @property
    def schedule(self) -> BurnSchedule | None:
        """Schedule of the current or most recent maneuver."""
        return self._schedule

    def execute(
        self,
        plan: ManeuverPlan,
        stage_state: AutoStageState | None = None,
    ) -> BurnSchedule:
        """Fly ``plan`` and block until the burn is complete.

        Args:
            plan: Maneuver to execute
            stage_state: Auto-staging state shared with the caller's other
                flight phases (a fresh one is used if omitted)

        Returns:
            The burn schedule that was flown

        Raises:
            NumericDegeneracyError: If the burn duration cannot be computed
            ActuatorUnavailableError: If no thrust is available at ignition
        """
        if stage_state is None:
            stage_state = AutoStageState()

        self._state = ExecutorState.IDLE
        self._schedule = None

        node = self.flight_plan.add(plan.epoch, plan.radial, plan.normal, plan.prograde)
        self._state = ExecutorState.REGISTERED
        try:
            schedule = schedule_burn(plan, node, self.vessel, g0=self.config.g0)
            self._schedule = schedule
            logger.info(
                "Maneuver of %.1f m/s: %.1f s burn, ignition at T+%.1f s",
                node.delta_v, schedule.burn_duration, schedule.ignition_epoch - self.clock.now,
            )

            self._state = ExecutorState.AWAITING_IGNITION
            steering_time = schedule.ignition_epoch - self.config.steering_lead
            self.clock.wait_until(lambda: self.clock.now > steering_time)

            self.actuators.lock_steering(lambda: node.burn_vector)
            self._state = ExecutorState.STEERING
            self.clock.wait_until(lambda: self.clock.now > schedule.ignition_epoch)

            self._burn(node, stage_state)
        finally:
            self.actuators.set_throttle(0.0)
            self.actuators.unlock_steering()
            self.flight_plan.remove(node)

        self._state = ExecutorState.COMPLETE
        logger.info("Maneuver complete")
        return schedule

    def _burn(self, node: ManeuverNode, stage_state: AutoStageState) -> None:
        self.actuators.set_throttle(self.config.throttle)
        self._state = ExecutorState.BURNING

        if self.vessel.available_thrust <= 0.0:
            logger.warning("No thrust at ignition, staging")
            self.actuators.stage()
            self.clock.wait(self.staging.settle_time)
            if self.vessel.available_thrust <= 0.0:
                raise ActuatorUnavailableError("No thrust available at ignition after staging")

        completion = BurnCompletion(angle=self.config.completion_angle)
        while not completion.update(node.burn_vector):
            auto_stage(self.vessel, self.actuators, self.clock, stage_state, self.staging)
            self.clock.tick()
