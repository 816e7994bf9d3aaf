"""Boundary interfaces between the guidance engine and its environment.

The engine never talks to a game, a hardware bus or a simulator directly.
Everything it needs is expressed as a Protocol here, and any object with
the right shape can be plugged in: the step-driven simulator in
``vesselsim``, a live telemetry link, or a hand-written fake in a test.

Collaborators:
    Clock: simulation time and blocking suspension
    Vessel: onboard telemetry
    Propagator: future positions and terrain queries
    FlightPlan: maneuver node registration
    Actuators: throttle, steering, staging and landing gear

Units are SI throughout (m, m/s, kg, N, s). Geographic angles are in
degrees; every other angle is in radians.
"""

from collections.abc import Callable
from enum import Enum
from typing import NamedTuple, Protocol, Union

import numpy as np
from numpy.typing import NDArray

# Name used with Propagator.position_at to refer to the controlled vessel
VESSEL = "vessel"


# =============================================================================
# Telemetry records
# =============================================================================


class EngineStatus(NamedTuple):
    """Snapshot of a single engine.

    Attributes:
        ignited: Engine has been activated
        flameout: Engine is starved of propellant
        isp: Specific impulse at current conditions [s]
        available_thrust: Thrust at full throttle [N]
    """
    ignited: bool
    flameout: bool
    isp: float
    available_thrust: float


class OrbitSnapshot(NamedTuple):
    """Orbit shape and timing relative to the current reference body.

    Attributes:
        apoapsis: Apoapsis altitude above the surface [m]
        periapsis: Periapsis altitude above the surface [m]
        eccentricity: Orbital eccentricity [-]
        period: Orbital period [s] (inf when not bound)
        time_to_apoapsis: Time until next apoapsis [s]
    """
    apoapsis: float
    periapsis: float
    eccentricity: float
    period: float
    time_to_apoapsis: float


class OrbitPatch(NamedTuple):
    """Trajectory segment inside another body's sphere of influence."""
    body: str
    periapsis: float
    period: float


class BodyInfo(NamedTuple):
    """Physical properties of a celestial body."""
    name: str
    mass: float
    radius: float


class GeoPosition(NamedTuple):
    """Latitude and longitude [deg]."""
    latitude: float
    longitude: float


# =============================================================================
# Steering targets
# =============================================================================


class SteeringReference(Enum):
    """Named orientation references resolved by the environment."""
    PROGRADE = "prograde"
    RETROGRADE = "retrograde"
    SURFACE_PROGRADE = "surface_prograde"
    SURFACE_RETROGRADE = "surface_retrograde"
    UP = "up"


class Heading(NamedTuple):
    """Compass heading and pitch above the horizon [deg]."""
    pitch: float
    heading: float


# A callable target is re-evaluated by the environment on every physics tick
SteeringTarget = Union[
    NDArray[np.float64],
    SteeringReference,
    Heading,
    Callable[[], NDArray[np.float64]],
]


# =============================================================================
# Collaborator protocols
# =============================================================================


class Clock(Protocol):
    """Simulation time and cooperative suspension.

    Every wait blocks the single control flow while the environment keeps
    advancing. There is no timeout: a predicate that never becomes true
    stalls the caller.
    """

    @property
    def now(self) -> float:
        """Current simulation time [s]."""
        ...

    def wait(self, seconds: float) -> None:
        """Suspend for a fixed duration."""
        ...

    def wait_until(self, predicate: Callable[[], bool]) -> None:
        """Suspend until ``predicate()`` is true."""
        ...

    def tick(self) -> None:
        """Suspend until the next physics update."""
        ...


class Vessel(Protocol):
    """Onboard telemetry for the controlled vessel."""

    @property
    def mass(self) -> float: ...

    @property
    def available_thrust(self) -> float: ...

    @property
    def engines(self) -> list[EngineStatus]: ...

    @property
    def stages_remaining(self) -> int: ...

    @property
    def position(self) -> NDArray[np.float64]:
        """Position in the propagator's frame [m]."""
        ...

    @property
    def vertical_speed(self) -> float: ...

    @property
    def altitude(self) -> float:
        """Altitude above the reference radius (sea level) [m]."""
        ...

    @property
    def geoposition(self) -> GeoPosition: ...

    @property
    def orbit(self) -> OrbitSnapshot: ...

    @property
    def body(self) -> BodyInfo: ...


class Propagator(Protocol):
    """Position prediction and terrain queries.

    ``position_at`` accounts for maneuver nodes registered in the flight
    plan when asked about the vessel.
    """

    def position_at(self, target: str, time: float) -> NDArray[np.float64]:
        """Position of the vessel (``VESSEL``) or a named body at ``time``."""
        ...

    def terrain_height(self, latitude: float, longitude: float) -> float:
        """Terrain height above the reference radius [m]."""
        ...

    def surface_position(
        self,
        latitude: float,
        longitude: float,
        height: float,
    ) -> NDArray[np.float64]:
        """Position of a point ``height`` above the reference radius."""
        ...

    def geoposition_of(self, position: NDArray[np.float64]) -> GeoPosition:
        """Latitude and longitude under a position."""
        ...


class ManeuverNode(Protocol):
    """Handle to a maneuver registered in the flight plan."""

    @property
    def burn_vector(self) -> NDArray[np.float64]:
        """Remaining delta-v vector [m/s], updated live during a burn."""
        ...

    @property
    def delta_v(self) -> float:
        """Remaining delta-v magnitude [m/s]."""
        ...

    @property
    def time_to(self) -> float:
        """Time until the node epoch [s]."""
        ...

    @property
    def orbit(self) -> OrbitSnapshot:
        """Orbit that results from the maneuver."""
        ...

    @property
    def next_patch(self) -> OrbitPatch | None:
        """Encounter predicted after the maneuver, if any."""
        ...


class FlightPlan(Protocol):
    """Registry of planned maneuvers."""

    def add(
        self,
        epoch: float,
        radial: float,
        normal: float,
        prograde: float,
    ) -> ManeuverNode: ...

    def remove(self, node: ManeuverNode) -> None: ...


class Actuators(Protocol):
    """Commands to the vessel.

    Throttle and steering are shared resources: last writer wins, and the
    holder releases them (throttle 0, steering unlocked) on every exit path.
    """

    def set_throttle(self, fraction: float) -> None: ...

    def lock_steering(self, target: SteeringTarget) -> None: ...

    def unlock_steering(self) -> None: ...

    def stage(self) -> None: ...

    def deploy_gear(self) -> None: ...
