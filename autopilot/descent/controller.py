"""Closed-loop powered descent ("hoverslam").

The vessel falls retrograde until the distance it needs to stop at full
thrust catches up with the distance to the ground, then throttles in
proportion to their ratio every control step:

    g         = G * M / R^2                   surface gravity
    a_max     = F / m - g                     best deceleration
    d_stop    = v_z^2 / (2 * a_max)           stopping distance
    d_ground  = h - h_terrain - clearance     distance to ground
    throttle  = d_stop / d_ground             once the ratio exceeds 1

A ratio above 1 brakes harder than needed and one below 1 brakes less, so
the loop drives the ratio back toward 1 and the vessel arrives at the
ground as its vertical speed reaches zero. The ratio is not clamped unless
``DescentConfig.clamp_throttle`` is set; most throttle interfaces saturate
at 1 on their own.

Phases (driven only by telemetry):
    APPROACHING: retrograde coast, waiting for the braking point
    BRAKING: proportional braking burn
    GEAR_DEPLOYED: braking with landing gear down
    ALIGNING: throttle cut, holding the terrain normal
    RELEASED: steering and throttle released

Example:
    >>> controller = DescentController(vessel, actuators, clock, propagator)
    >>> controller.run()
"""

import logging
import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import NamedTuple

import numpy as np
from numpy.typing import NDArray

from autopilot.config import DescentConfig
from autopilot.descent.terrain import ground_normal
from autopilot.errors import NumericDegeneracyError
from autopilot.interfaces import Actuators, Clock, Propagator, SteeringReference, Vessel

logger = logging.getLogger(__name__)


class DescentState(IntEnum):
    """Powered descent phases."""
    APPROACHING = 0
    BRAKING = 1
    GEAR_DEPLOYED = 2
    ALIGNING = 3
    RELEASED = 4


class DescentCommand(NamedTuple):
    """Output of one braking control step."""
    throttle: float
    stopping_distance: float
    distance_to_ground: float
    deploy_gear: bool = False


def surface_gravity(mass: float, radius: float, gravitational_constant: float) -> float:
    """Gravitational acceleration at a body's reference radius [m/s^2]."""
    return gravitational_constant * mass / radius ** 2


def stopping_distance(
    vertical_speed: float,
    available_thrust: float,
    mass: float,
    gravity: float,
) -> float:
    """Distance needed to cancel ``vertical_speed`` at full thrust [m].

    Raises:
        NumericDegeneracyError: If thrust cannot overcome gravity
    """
    max_deceleration = available_thrust / mass - gravity
    if max_deceleration <= 0.0:
        raise NumericDegeneracyError(
            f"No deceleration margin: thrust/mass {available_thrust / mass:.3f} m/s^2 "
            f"vs gravity {gravity:.3f} m/s^2"
        )
    return vertical_speed ** 2 / (2.0 * max_deceleration)


def braking_throttle(stopping: float, distance_to_ground: float, clamp: bool = False) -> float:
    """Throttle fraction for the braking burn.

    At or below the ground reference the ratio is undefined and full
    throttle is commanded.
    """
    if distance_to_ground <= 0.0:
        return 1.0
    ratio = stopping / distance_to_ground
    if clamp:
        return float(np.clip(ratio, 0.0, 1.0))
    return ratio


@dataclass
class DescentController:
    """Powered landing controller.

    Attributes:
        vessel: Telemetry source
        actuators: Throttle, steering and landing gear
        clock: Time source and suspension
        propagator: Terrain queries and body positions
        config: Descent settings
    """
    vessel: Vessel
    actuators: Actuators
    clock: Clock
    propagator: Propagator
    config: DescentConfig = field(default_factory=DescentConfig)

    _state: DescentState = field(default=DescentState.APPROACHING, init=False)
    _gear_deployed: bool = field(default=False, init=False)

    @property
    def state(self) -> DescentState:
        return self._state

    @property
    def gear_deployed(self) -> bool:
        return self._gear_deployed

    def gravity(self) -> float:
        body = self.vessel.body
        return surface_gravity(body.mass, body.radius, self.config.gravitational_constant)

    def stopping_distance(self) -> float:
        return stopping_distance(
            self.vessel.vertical_speed,
            self.vessel.available_thrust,
            self.vessel.mass,
            self.gravity(),
        )

    def distance_to_ground(self) -> float:
        geo = self.vessel.geoposition
        terrain = self.propagator.terrain_height(geo.latitude, geo.longitude)
        return self.vessel.altitude - terrain - self.config.ground_clearance

    def braking_ratio(self) -> float:
        """Unclamped stopping-to-ground ratio that triggers braking.

        Infinite at or below the ground reference, where any remaining
        descent is already past the braking point.
        """
        stopping = self.stopping_distance()
        ground = self.distance_to_ground()
        if ground <= 0.0:
            return math.inf
        return stopping / ground

    def ground_normal(self) -> NDArray[np.float64]:
        body_center = self.propagator.position_at(self.vessel.body.name, self.clock.now)
        return ground_normal(
            self.propagator,
            self.vessel.position,
            body_center,
            forward=self.config.slope_forward,
            back=self.config.slope_back,
            side=self.config.slope_side,
        )

    def step(self) -> DescentCommand:
        """Compute and apply one braking control step."""
        stopping = self.stopping_distance()
        ground = self.distance_to_ground()
        throttle = braking_throttle(stopping, ground, clamp=self.config.clamp_throttle)

        deploy = not self._gear_deployed and ground < self.config.gear_distance
        if deploy:
            self.actuators.deploy_gear()
            self._gear_deployed = True
            self._state = DescentState.GEAR_DEPLOYED
            logger.info("Gear deployed at %.1f m", ground)

        self.actuators.set_throttle(throttle)
        return DescentCommand(
            throttle=throttle,
            stopping_distance=stopping,
            distance_to_ground=ground,
            deploy_gear=deploy,
        )

    def run(self) -> None:
        """Fly the descent to touchdown and release control.

        Blocks until the vessel has stopped descending and the settle
        period has elapsed.
        """
        self._state = DescentState.APPROACHING
        self._gear_deployed = False
        self.actuators.lock_steering(SteeringReference.SURFACE_RETROGRADE)
        try:
            self.clock.wait_until(lambda: self.braking_ratio() > 1.0)
            self._state = DescentState.BRAKING
            logger.info(
                "Braking at %.1f m, vertical speed %.1f m/s",
                self.distance_to_ground(), self.vessel.vertical_speed,
            )

            while self.vessel.vertical_speed < 0.0:
                self.step()
                self.clock.tick()

            self.actuators.set_throttle(0.0)
            self._state = DescentState.ALIGNING
            logger.info("Descent stopped at %.1f m, aligning to terrain", self.distance_to_ground())

            self.actuators.lock_steering(self.ground_normal)
            self.clock.wait(self.config.settle_time)
        finally:
            self.actuators.set_throttle(0.0)
            self.actuators.unlock_steering()
            self._state = DescentState.RELEASED
