"""Celestial bodies and point-mass gravity.

The simulated system is one central body, fixed at the origin and not
rotating, with any number of satellites on circular equatorial orbits.

Example:
    >>> from vesselsim.bodies import KERBIN, MUN
    >>> KERBIN.surface_gravity
    9.81...
    >>> MUN.position_at(0.0, KERBIN.mu)
    array([...])
"""

from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numba import njit
from numpy.typing import NDArray

from autopilot.config import GRAVITATIONAL_CONSTANT

# =============================================================================
# Numba-Optimized Core Functions
# =============================================================================


@njit(cache=True, fastmath=True)
def _spherical_gravity(
    x: float, y: float, z: float,
    mu: float,
) -> tuple[float, float, float]:
    """Numba-optimized spherical gravity.

    g = -mu/r^2 * r_hat
    """
    r_sq = x*x + y*y + z*z
    r = np.sqrt(r_sq)

    if r < 1.0:  # Avoid singularity at the center
        r = 1.0
        r_sq = 1.0

    g_over_r = mu / (r_sq * r)

    return (-g_over_r * x, -g_over_r * y, -g_over_r * z)


def gravity_acceleration(position: NDArray[np.float64], mu: float) -> NDArray[np.float64]:
    """Gravitational acceleration at ``position`` [m/s^2]."""
    gx, gy, gz = _spherical_gravity(position[0], position[1], position[2], mu)
    return np.array([gx, gy, gz])


# =============================================================================
# Bodies
# =============================================================================


@beartype
@dataclass(frozen=True)
class CelestialBody:
    """A spherical body.

    Attributes:
        name: Body name, used to look it up in position queries
        mass: Mass [kg]
        radius: Reference (sea level) radius [m]
        soi_radius: Sphere of influence radius [m]
        orbit_radius: Radius of its circular orbit around the central body [m]
        orbit_phase: Orbital longitude at t=0 [rad]
    """
    name: str
    mass: float
    radius: float
    soi_radius: float = float("inf")
    orbit_radius: float = 0.0
    orbit_phase: float = 0.0

    @property
    def mu(self) -> float:
        """Gravitational parameter [m^3/s^2]."""
        return GRAVITATIONAL_CONSTANT * self.mass

    @property
    def surface_gravity(self) -> float:
        """Gravity at the reference radius [m/s^2]."""
        return self.mu / self.radius ** 2

    def mean_motion(self, parent_mu: float) -> float:
        """Angular rate of its orbit around a parent [rad/s]."""
        if self.orbit_radius <= 0.0:
            return 0.0
        return float(np.sqrt(parent_mu / self.orbit_radius ** 3))

    def position_at(self, time: float, parent_mu: float) -> NDArray[np.float64]:
        """Position relative to the central body [m]."""
        theta = self.orbit_phase + self.mean_motion(parent_mu) * time
        return self.orbit_radius * np.array([np.cos(theta), np.sin(theta), 0.0])

    def velocity_at(self, time: float, parent_mu: float) -> NDArray[np.float64]:
        """Velocity relative to the central body [m/s]."""
        n = self.mean_motion(parent_mu)
        theta = self.orbit_phase + n * time
        return self.orbit_radius * n * np.array([-np.sin(theta), np.cos(theta), 0.0])

    def positions_at(self, times: NDArray[np.float64], parent_mu: float) -> NDArray[np.float64]:
        """Positions at many times, shape (N, 3) [m]."""
        theta = self.orbit_phase + self.mean_motion(parent_mu) * times
        return self.orbit_radius * np.column_stack(
            [np.cos(theta), np.sin(theta), np.zeros_like(theta)]
        )


KERBIN = CelestialBody(name="Kerbin", mass=5.2915158e22, radius=600000.0)

MUN = CelestialBody(
    name="Mun",
    mass=9.7599066e20,
    radius=200000.0,
    soi_radius=2429559.1,
    orbit_radius=12000000.0,
    orbit_phase=1.7,
)
