"""Step-driven flight simulation for a single vessel.

The simulator is the whole environment the autopilot talks to. One object
provides every collaborator interface: it is the Clock, the Vessel, the
Propagator and the Actuators, and it owns the FlightPlan.

Physics:
    - Point mass under the central body's point-mass gravity (no
      atmosphere, no body rotation, satellites do not pull the vessel)
    - Thrust along the commanded steering direction, which the vessel
      follows instantly
    - Propellant consumption and flameout per stage
    - Ground contact against an optional terrain height map

Every wait in the autopilot advances the simulation, so a control loop
written against the Clock protocol drives physics directly.

Example:
    >>> from vesselsim import Simulator
    >>> from autopilot import Autopilot
    >>>
    >>> sim = Simulator.from_orbit(altitude=80e3, speed_factor=1.05)
    >>> pilot = Autopilot(vessel=sim, flight_plan=sim.flight_plan,
    ...                   propagator=sim, actuators=sim, clock=sim)
    >>> pilot.circularize()
    >>> sim.orbit.eccentricity
    0.00...
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np
from beartype import beartype
from numba import njit
from numpy.typing import NDArray

from autopilot.interfaces import (
    VESSEL,
    BodyInfo,
    EngineStatus,
    GeoPosition,
    Heading,
    OrbitPatch,
    OrbitSnapshot,
    SteeringReference,
    SteeringTarget,
)
from autopilot.vectors import local_frame
from vesselsim.bodies import KERBIN, MUN, CelestialBody, _spherical_gravity
from vesselsim.flight_plan import SimFlightPlan, SimManeuverNode
from vesselsim.orbit import (
    compute_orbital_elements,
    propagate,
    sample_positions,
    time_to_apoapsis,
)
from vesselsim.vehicle import Vehicle

# =============================================================================
# Configuration
# =============================================================================


@beartype
@dataclass
class SimConfig:
    """Simulation configuration.

    Attributes:
        dt: Physics time step [s]
        max_time: Simulation time at which any further step raises [s]
        contact_height: Height of the vessel's reference point above its
            landing legs [m]
        encounter_samples: Trajectory samples used for encounter detection
        encounter_window: Search window for encounters on unbound
            trajectories [s]
        record_history: Whether to record a sample history
        history_interval: Minimum time between history samples [s]
    """
    dt: float = 0.05
    max_time: float = 1.0e7
    contact_height: float = 0.0
    encounter_samples: int = 2000
    encounter_window: float = 864000.0
    record_history: bool = True
    history_interval: float = 1.0


class SimulationTimeout(RuntimeError):
    """Raised when the simulation runs past ``SimConfig.max_time``."""


class SimSample(NamedTuple):
    """Recorded vessel state."""
    time: float
    position: NDArray[np.float64]
    velocity: NDArray[np.float64]
    mass: float
    throttle: float
    altitude: float


# =============================================================================
# Numba-Optimized Integration
# =============================================================================


@njit(cache=True, fastmath=True)
def _rk4_step_core(
    px: float, py: float, pz: float,
    vx: float, vy: float, vz: float,
    ax: float, ay: float, az: float,
    mu: float,
    dt: float,
) -> tuple[float, float, float, float, float, float]:
    """Numba-optimized RK4 step under gravity plus a constant thrust acceleration."""
    h = dt / 2.0

    # k1
    g1 = _spherical_gravity(px, py, pz, mu)
    k1v = (g1[0] + ax, g1[1] + ay, g1[2] + az)
    k1p = (vx, vy, vz)

    # k2
    g2 = _spherical_gravity(px + k1p[0]*h, py + k1p[1]*h, pz + k1p[2]*h, mu)
    k2v = (g2[0] + ax, g2[1] + ay, g2[2] + az)
    k2p = (vx + k1v[0]*h, vy + k1v[1]*h, vz + k1v[2]*h)

    # k3
    g3 = _spherical_gravity(px + k2p[0]*h, py + k2p[1]*h, pz + k2p[2]*h, mu)
    k3v = (g3[0] + ax, g3[1] + ay, g3[2] + az)
    k3p = (vx + k2v[0]*h, vy + k2v[1]*h, vz + k2v[2]*h)

    # k4
    g4 = _spherical_gravity(px + k3p[0]*dt, py + k3p[1]*dt, pz + k3p[2]*dt, mu)
    k4v = (g4[0] + ax, g4[1] + ay, g4[2] + az)
    k4p = (vx + k3v[0]*dt, vy + k3v[1]*dt, vz + k3v[2]*dt)

    s = dt / 6.0
    return (
        px + s * (k1p[0] + 2.0*k2p[0] + 2.0*k3p[0] + k4p[0]),
        py + s * (k1p[1] + 2.0*k2p[1] + 2.0*k3p[1] + k4p[1]),
        pz + s * (k1p[2] + 2.0*k2p[2] + 2.0*k3p[2] + k4p[2]),
        vx + s * (k1v[0] + 2.0*k2v[0] + 2.0*k3v[0] + k4v[0]),
        vy + s * (k1v[1] + 2.0*k2v[1] + 2.0*k3v[1] + k4v[1]),
        vz + s * (k1v[2] + 2.0*k2v[2] + 2.0*k3v[2] + k4v[2]),
    )


# =============================================================================
# Simulator
# =============================================================================


def _default_vehicle() -> Vehicle:
    return Vehicle.single_stage(
        dry_mass=1500.0, propellant_mass=2000.0, thrust=60000.0, isp=345.0
    )


@beartype
@dataclass
class Simulator:
    """Step-driven vessel simulator.

    Attributes:
        central_body: Body the vessel orbits, fixed at the origin
        vehicle: Engines, tanks and staging
        position: Position relative to the central body [m]
        velocity: Velocity relative to the central body [m/s]
        time: Simulation time [s]
        satellites: Bodies orbiting the central body
        terrain: Terrain height [m] as a function of (latitude, longitude) [deg]
        config: Simulation configuration
    """
    central_body: CelestialBody
    vehicle: Vehicle
    position: NDArray[np.float64]
    velocity: NDArray[np.float64]
    time: float = 0.0
    satellites: list[CelestialBody] = field(default_factory=list)
    terrain: Callable[[float, float], float] | None = None
    config: SimConfig = field(default_factory=SimConfig)

    # Internal
    _throttle: float = field(default=0.0, init=False)
    _steering: SteeringTarget | None = field(default=None, init=False, repr=False)
    _facing: NDArray[np.float64] = field(init=False, repr=False)
    _gear_deployed: bool = field(default=False, init=False)
    _landed: bool = field(default=False, init=False)
    _touchdown_speed: float | None = field(default=None, init=False)
    _delivered_dv: NDArray[np.float64] = field(init=False, repr=False)
    _flight_plan: SimFlightPlan = field(init=False, repr=False)
    _history: list[SimSample] = field(default_factory=list, init=False, repr=False)
    _last_record: float = field(default=-np.inf, init=False, repr=False)

    def __post_init__(self) -> None:
        self.position = np.asarray(self.position, dtype=np.float64).copy()
        self.velocity = np.asarray(self.velocity, dtype=np.float64).copy()
        self._facing = self.position / np.linalg.norm(self.position)
        self._delivered_dv = np.zeros(3)
        self._flight_plan = SimFlightPlan(self)
        self._record()

    @classmethod
    def from_orbit(
        cls,
        altitude: float,
        speed_factor: float = 1.0,
        true_anomaly: float = 0.0,
        body: CelestialBody = KERBIN,
        satellites: list[CelestialBody] | None = None,
        vehicle: Vehicle | None = None,
        config: SimConfig | None = None,
    ) -> "Simulator":
        """Create simulator in an equatorial orbit.

        The vessel starts at ``altitude`` moving horizontally at
        ``speed_factor`` times circular speed, so values above one start
        it at the periapsis of an ellipse.

        Args:
            altitude: Starting altitude [m]
            speed_factor: Starting speed as a multiple of circular speed
            true_anomaly: Starting longitude [degrees]
            body: Central body
            satellites: Orbiting bodies (the Mun when orbiting Kerbin)
            vehicle: Vehicle (a single running stage if omitted)
            config: Simulation configuration
        """
        r = body.radius + altitude
        v = speed_factor * np.sqrt(body.mu / r)
        nu = np.radians(true_anomaly)

        if satellites is None:
            satellites = [MUN] if body == KERBIN else []

        return cls(
            central_body=body,
            vehicle=vehicle or _default_vehicle(),
            position=r * np.array([np.cos(nu), np.sin(nu), 0.0]),
            velocity=v * np.array([-np.sin(nu), np.cos(nu), 0.0]),
            satellites=satellites,
            config=config or SimConfig(),
        )

    @classmethod
    def from_surface(
        cls,
        altitude: float,
        vertical_speed: float = 0.0,
        latitude: float = 0.0,
        longitude: float = 0.0,
        body: CelestialBody = MUN,
        vehicle: Vehicle | None = None,
        terrain: Callable[[float, float], float] | None = None,
        config: SimConfig | None = None,
    ) -> "Simulator":
        """Create simulator above a point on the surface, moving vertically.

        Args:
            altitude: Height above the reference radius [m]
            vertical_speed: Initial vertical speed, negative when falling [m/s]
            latitude: Latitude [degrees]
            longitude: Longitude [degrees]
            body: Central body
            vehicle: Vehicle (a single running stage if omitted)
            terrain: Terrain height map
            config: Simulation configuration
        """
        up = _surface_direction(latitude, longitude)
        return cls(
            central_body=body,
            vehicle=vehicle or _default_vehicle(),
            position=(body.radius + altitude) * up,
            velocity=vertical_speed * up,
            terrain=terrain,
            config=config or SimConfig(),
        )

    @classmethod
    def from_launch_pad(
        cls,
        vehicle: Vehicle,
        latitude: float = 0.0,
        longitude: float = 0.0,
        body: CelestialBody = KERBIN,
        satellites: list[CelestialBody] | None = None,
        config: SimConfig | None = None,
    ) -> "Simulator":
        """Create simulator at rest on the surface, engines off.

        Args:
            vehicle: Vehicle, normally with no stage ignited yet
            latitude: Launch site latitude [degrees]
            longitude: Launch site longitude [degrees]
            body: Central body
            satellites: Orbiting bodies (the Mun when launching from Kerbin)
            config: Simulation configuration
        """
        config = config or SimConfig()
        if satellites is None:
            satellites = [MUN] if body == KERBIN else []
        up = _surface_direction(latitude, longitude)
        sim = cls(
            central_body=body,
            vehicle=vehicle,
            position=(body.radius + config.contact_height) * up,
            velocity=np.zeros(3),
            satellites=satellites,
            config=config,
        )
        sim._landed = True
        return sim

    # -------------------------------------------------------------------------
    # Clock
    # -------------------------------------------------------------------------

    @property
    def now(self) -> float:
        """Current simulation time [s]."""
        return self.time

    def step(self, dt: float | None = None) -> None:
        """Propagate physics by one time step.

        Args:
            dt: Time step [s], ``config.dt`` if omitted

        Raises:
            SimulationTimeout: If the simulation has passed ``config.max_time``
        """
        if self.time > self.config.max_time:
            raise SimulationTimeout(
                f"Simulation passed max_time={self.config.max_time:.1f} s"
            )
        if dt is None:
            dt = self.config.dt

        self._update_facing()

        thrust = self._throttle * self.vehicle.available_thrust
        accel = (thrust / self.vehicle.mass) * self._facing

        result = _rk4_step_core(
            self.position[0], self.position[1], self.position[2],
            self.velocity[0], self.velocity[1], self.velocity[2],
            accel[0], accel[1], accel[2],
            self.central_body.mu,
            dt,
        )
        self.vehicle.burn(self._throttle, dt)

        self.position = np.array(result[:3])
        self.velocity = np.array(result[3:])
        self._delivered_dv = self._delivered_dv + accel * dt
        self.time += dt

        self._resolve_contact()
        self._record()

    def wait(self, seconds: float) -> None:
        end = self.time + seconds
        while end - self.time > 1e-9:
            self.step(min(self.config.dt, end - self.time))

    def wait_until(self, predicate: Callable[[], bool]) -> None:
        while not predicate():
            self.step()

    def tick(self) -> None:
        self.step()

    # -------------------------------------------------------------------------
    # Vessel telemetry
    # -------------------------------------------------------------------------

    @property
    def mass(self) -> float:
        return self.vehicle.mass

    @property
    def available_thrust(self) -> float:
        return self.vehicle.available_thrust

    @property
    def engines(self) -> list[EngineStatus]:
        return self.vehicle.engines

    @property
    def stages_remaining(self) -> int:
        return self.vehicle.stages_remaining

    @property
    def up(self) -> NDArray[np.float64]:
        return self.position / np.linalg.norm(self.position)

    @property
    def vertical_speed(self) -> float:
        return float(np.dot(self.velocity, self.up))

    @property
    def speed(self) -> float:
        return float(np.linalg.norm(self.velocity))

    @property
    def altitude(self) -> float:
        return float(np.linalg.norm(self.position) - self.central_body.radius)

    @property
    def geoposition(self) -> GeoPosition:
        return self.geoposition_of(self.position)

    @property
    def orbit(self) -> OrbitSnapshot:
        return self.orbit_of(self.position, self.velocity)

    @property
    def body(self) -> BodyInfo:
        return BodyInfo(
            name=self.central_body.name,
            mass=self.central_body.mass,
            radius=self.central_body.radius,
        )

    @property
    def throttle(self) -> float:
        return self._throttle

    @property
    def facing(self) -> NDArray[np.float64]:
        """Unit vector the vessel (and its thrust) points along."""
        return self._facing.copy()

    @property
    def gear_deployed(self) -> bool:
        return self._gear_deployed

    @property
    def landed(self) -> bool:
        return self._landed

    @property
    def touchdown_speed(self) -> float | None:
        """Speed at the first ground contact [m/s], None before touchdown."""
        return self._touchdown_speed

    @property
    def delivered_delta_v(self) -> NDArray[np.float64]:
        """Accumulated thrust delta-v vector since the start [m/s]."""
        return self._delivered_dv

    @property
    def flight_plan(self) -> SimFlightPlan:
        return self._flight_plan

    # -------------------------------------------------------------------------
    # Actuators
    # -------------------------------------------------------------------------

    def set_throttle(self, fraction: float) -> None:
        """Command throttle, limited to [0, 1]."""
        self._throttle = float(np.clip(fraction, 0.0, 1.0))

    def lock_steering(self, target: SteeringTarget) -> None:
        self._steering = target

    def unlock_steering(self) -> None:
        self._steering = None

    def stage(self) -> None:
        self.vehicle.stage()

    def deploy_gear(self) -> None:
        self._gear_deployed = True

    # -------------------------------------------------------------------------
    # Propagator
    # -------------------------------------------------------------------------

    def predict_state(
        self,
        time: float,
        exclude: SimManeuverNode | None = None,
    ) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Coasting state at ``time`` with every upcoming node applied.

        Args:
            time: Prediction time [s]
            exclude: Node to leave out of the prediction
        """
        position, velocity = self.position, self.velocity
        t = self.time
        mu = self.central_body.mu

        for node in sorted(self._flight_plan.nodes, key=lambda n: n.epoch):
            if node is exclude or not t <= node.epoch < time:
                continue
            position, velocity = propagate(position, velocity, node.epoch - t, mu)
            velocity = velocity + node.apply(position, velocity)
            t = node.epoch

        return propagate(position, velocity, time - t, mu)

    def position_at(self, target: str, time: float) -> NDArray[np.float64]:
        if target == VESSEL:
            return self.predict_state(time)[0]
        if target == self.central_body.name:
            return np.zeros(3)
        return self._satellite(target).position_at(time, self.central_body.mu)

    def terrain_height(self, latitude: float, longitude: float) -> float:
        if self.terrain is None:
            return 0.0
        return float(self.terrain(latitude, longitude))

    def surface_position(
        self,
        latitude: float,
        longitude: float,
        height: float,
    ) -> NDArray[np.float64]:
        return (self.central_body.radius + height) * _surface_direction(latitude, longitude)

    def geoposition_of(self, position: NDArray[np.float64]) -> GeoPosition:
        r = np.linalg.norm(position)
        return GeoPosition(
            latitude=float(np.degrees(np.arcsin(np.clip(position[2] / r, -1.0, 1.0)))),
            longitude=float(np.degrees(np.arctan2(position[1], position[0]))),
        )

    def orbit_of(
        self,
        position: NDArray[np.float64],
        velocity: NDArray[np.float64],
    ) -> OrbitSnapshot:
        """Orbit snapshot for a state relative to the central body."""
        mu = self.central_body.mu
        elements = compute_orbital_elements(position, velocity, mu, self.central_body.radius)
        return OrbitSnapshot(
            apoapsis=elements.apoapsis_alt,
            periapsis=elements.periapsis_alt,
            eccentricity=elements.eccentricity,
            period=elements.period,
            time_to_apoapsis=time_to_apoapsis(position, velocity, mu, elements),
        )

    def find_encounter(
        self,
        position: NDArray[np.float64],
        velocity: NDArray[np.float64],
        epoch: float,
    ) -> OrbitPatch | None:
        """First sphere-of-influence entry along a coasting trajectory.

        The trajectory is sampled over one period (or ``encounter_window``
        when unbound), the entry is refined by bisection, and the patch is
        the conic relative to the entered body at the entry point.

        Args:
            position: State at ``epoch`` relative to the central body [m]
            velocity: State at ``epoch`` relative to the central body [m/s]
            epoch: Time of the state [s]
        """
        mu = self.central_body.mu
        elements = compute_orbital_elements(position, velocity, mu, self.central_body.radius)
        window = elements.period if np.isfinite(elements.period) else self.config.encounter_window
        offsets = np.linspace(0.0, window, self.config.encounter_samples)
        track = sample_positions(position, velocity, offsets, mu)

        entry: tuple[float, CelestialBody] | None = None
        for satellite in self.satellites:
            separation = np.linalg.norm(track - satellite.positions_at(epoch + offsets, mu), axis=1)
            inside = separation < satellite.soi_radius
            if not inside.any():
                continue
            index = int(np.argmax(inside))
            if index == 0:
                offset = 0.0
            else:
                offset = self._refine_entry(
                    position, velocity, epoch, satellite, offsets[index - 1], offsets[index]
                )
            if entry is None or offset < entry[0]:
                entry = (offset, satellite)

        if entry is None:
            return None

        offset, satellite = entry
        r, v = propagate(position, velocity, offset, mu)
        relative = compute_orbital_elements(
            r - satellite.position_at(epoch + offset, mu),
            v - satellite.velocity_at(epoch + offset, mu),
            satellite.mu,
            satellite.radius,
        )
        return OrbitPatch(
            body=satellite.name,
            periapsis=relative.periapsis_alt,
            period=relative.period,
        )

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def get_history(self) -> list[SimSample]:
        """Get recorded sample history."""
        return self._history.copy()

    def clear_history(self) -> None:
        self._history = []
        self._last_record = -np.inf
        self._record()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _satellite(self, name: str) -> CelestialBody:
        for satellite in self.satellites:
            if satellite.name == name:
                return satellite
        raise ValueError(f"Unknown body: {name!r}")

    def _refine_entry(
        self,
        position: NDArray[np.float64],
        velocity: NDArray[np.float64],
        epoch: float,
        satellite: CelestialBody,
        outside: float,
        inside: float,
    ) -> float:
        mu = self.central_body.mu
        for _ in range(30):
            middle = 0.5 * (outside + inside)
            r, _v = propagate(position, velocity, middle, mu)
            if np.linalg.norm(r - satellite.position_at(epoch + middle, mu)) < satellite.soi_radius:
                inside = middle
            else:
                outside = middle
        return inside

    def _update_facing(self) -> None:
        target = self._steering
        if target is None:
            return

        if isinstance(target, SteeringReference):
            if target is SteeringReference.UP:
                direction = self.up
            elif self.speed < 1e-9:
                return
            elif target in (SteeringReference.PROGRADE, SteeringReference.SURFACE_PROGRADE):
                direction = self.velocity
            else:
                direction = -self.velocity
        elif isinstance(target, Heading):
            direction = self._heading_direction(target)
        elif callable(target):
            direction = np.asarray(target(), dtype=np.float64)
        else:
            direction = np.asarray(target, dtype=np.float64)

        norm = np.linalg.norm(direction)
        if norm > 1e-12:
            self._facing = direction / norm

    def _heading_direction(self, heading: Heading) -> NDArray[np.float64]:
        up = self.up
        north, east = local_frame(up)
        pitch = np.radians(heading.pitch)
        compass = np.radians(heading.heading)
        horizontal = np.cos(compass) * north + np.sin(compass) * east
        return np.cos(pitch) * horizontal + np.sin(pitch) * up

    def _resolve_contact(self) -> None:
        geo = self.geoposition
        ground = (
            self.central_body.radius
            + self.terrain_height(geo.latitude, geo.longitude)
            + self.config.contact_height
        )
        r = np.linalg.norm(self.position)
        if r > ground:
            self._landed = False
            return

        if not self._landed and self._touchdown_speed is None:
            self._touchdown_speed = self.speed
        self._landed = True
        self.position = ground * self.position / r
        self.velocity = np.zeros(3)

    def _record(self) -> None:
        if not self.config.record_history:
            return
        if self.time - self._last_record < self.config.history_interval:
            return
        self._last_record = self.time
        self._history.append(SimSample(
            time=self.time,
            position=self.position.copy(),
            velocity=self.velocity.copy(),
            mass=self.vehicle.mass,
            throttle=self._throttle,
            altitude=self.altitude,
        ))


def _surface_direction(latitude: float, longitude: float) -> NDArray[np.float64]:
    lat = np.radians(latitude)
    lon = np.radians(longitude)
    return np.array([np.cos(lat) * np.cos(lon), np.cos(lat) * np.sin(lon), np.sin(lat)])


# =============================================================================
# Results and Analysis
# =============================================================================


@beartype
@dataclass
class SimulationResult:
    """Recorded flight history.

    Provides convenient access to trajectory data and analysis.
    """
    samples: list[SimSample]

    @property
    def time(self) -> NDArray[np.float64]:
        """Time array [s]."""
        return np.array([s.time for s in self.samples])

    @property
    def position(self) -> NDArray[np.float64]:
        """Position history [m], shape (N, 3)."""
        return np.array([s.position for s in self.samples])

    @property
    def velocity(self) -> NDArray[np.float64]:
        """Velocity history [m/s], shape (N, 3)."""
        return np.array([s.velocity for s in self.samples])

    @property
    def altitude(self) -> NDArray[np.float64]:
        """Altitude history [m]."""
        return np.array([s.altitude for s in self.samples])

    @property
    def speed(self) -> NDArray[np.float64]:
        """Speed history [m/s]."""
        return np.linalg.norm(self.velocity, axis=1)

    @property
    def mass(self) -> NDArray[np.float64]:
        """Mass history [kg]."""
        return np.array([s.mass for s in self.samples])

    @property
    def throttle(self) -> NDArray[np.float64]:
        return np.array([s.throttle for s in self.samples])

    @classmethod
    def from_simulator(cls, sim: Simulator) -> "SimulationResult":
        """Create result from simulator history."""
        return cls(samples=sim.get_history())

    def to_dataframe(self):
        """Convert to Polars DataFrame."""
        import polars as pl

        return pl.DataFrame({
            "time": self.time,
            "altitude": self.altitude,
            "speed": self.speed,
            "mass": self.mass,
            "throttle": self.throttle,
            "x": self.position[:, 0],
            "y": self.position[:, 1],
            "z": self.position[:, 2],
            "vx": self.velocity[:, 0],
            "vy": self.velocity[:, 1],
            "vz": self.velocity[:, 2],
        })
