"""Two-body orbital mechanics with numba optimization.

Provides the orbit prediction the simulator needs for telemetry, maneuver
nodes and encounter detection.

Key functions:
- compute_orbital_elements: Orbit shape from state vectors
- time_to_apoapsis: Time until the next apoapsis
- propagate: Kepler propagation by universal variables (any conic)
- sample_positions: Positions along a coasting trajectory
- orbital_frame: Radial / normal / prograde unit vectors

Example:
    >>> from vesselsim.orbit import compute_orbital_elements, propagate
    >>>
    >>> elements = compute_orbital_elements(position, velocity, mu, radius)
    >>> print(f"Apoapsis: {elements.apoapsis_alt/1000:.1f} km")
    >>> r, v = propagate(position, velocity, 600.0, mu)
"""

from typing import NamedTuple

import numpy as np
from numba import njit
from numpy.typing import NDArray

# =============================================================================
# Data Classes
# =============================================================================


class OrbitalElements(NamedTuple):
    """Orbit shape about a body.

    Attributes:
        semi_major_axis: Semi-major axis [m] (negative for hyperbolic, inf for parabolic)
        eccentricity: Orbital eccentricity [-]
        inclination: Inclination [rad]
        apoapsis_alt: Apoapsis altitude above the reference radius [m] (inf if unbound)
        periapsis_alt: Periapsis altitude above the reference radius [m]
        period: Orbital period [s] (inf if unbound)
        specific_energy: Specific orbital energy [J/kg]
    """
    semi_major_axis: float
    eccentricity: float
    inclination: float
    apoapsis_alt: float
    periapsis_alt: float
    period: float
    specific_energy: float


# =============================================================================
# Core Numba Functions
# =============================================================================


@njit(cache=True)
def _clamp(x: float, lo: float, hi: float) -> float:
    """Clamp scalar to range [lo, hi]."""
    if x < lo:
        return lo
    if x > hi:
        return hi
    return x


@njit(cache=True)
def _compute_orbital_elements_core(
    rx: float, ry: float, rz: float,
    vx: float, vy: float, vz: float,
    mu: float,
    r_body: float,
) -> tuple[float, float, float, float, float, float, float]:
    """Numba-optimized orbit shape computation.

    Returns tuple of:
        (sma, ecc, inc, apoapsis_alt, periapsis_alt, period, energy)
    """
    r = np.sqrt(rx*rx + ry*ry + rz*rz)
    v = np.sqrt(vx*vx + vy*vy + vz*vz)

    # Specific orbital energy
    energy = v*v / 2.0 - mu / r

    # Angular momentum vector h = r x v
    hx = ry * vz - rz * vy
    hy = rz * vx - rx * vz
    hz = rx * vy - ry * vx
    h = np.sqrt(hx*hx + hy*hy + hz*hz)

    if h > 1e-10:
        inc = np.arccos(_clamp(hz / h, -1.0, 1.0))
    else:
        inc = 0.0

    # Eccentricity vector e = (v x h) / mu - r / |r|
    vxh_x = vy * hz - vz * hy
    vxh_y = vz * hx - vx * hz
    vxh_z = vx * hy - vy * hx

    ex = vxh_x / mu - rx / r
    ey = vxh_y / mu - ry / r
    ez = vxh_z / mu - rz / r
    ecc = np.sqrt(ex*ex + ey*ey + ez*ez)

    # Periapsis radius from angular momentum (valid for every conic)
    rp = h * h / (mu * (1.0 + ecc))

    if abs(energy) < 1e-10:
        sma = np.inf
    else:
        sma = -mu / (2.0 * energy)

    # Bound (a vessel at rest is a degenerate bound orbit with ecc = 1)
    if energy < 0.0:
        apoapsis_alt = sma * (1.0 + ecc) - r_body
        period = 2.0 * np.pi * np.sqrt(sma**3 / mu)
    else:
        apoapsis_alt = np.inf
        period = np.inf

    return (sma, ecc, inc, apoapsis_alt, rp - r_body, period, energy)


@njit(cache=True)
def _time_to_apoapsis(
    rx: float, ry: float, rz: float,
    vx: float, vy: float, vz: float,
    sma: float, ecc: float,
    mu: float,
) -> float:
    """Compute time to next apoapsis passage."""
    if ecc < 1e-6 or ecc >= 1.0:
        return 0.0

    r = np.sqrt(rx*rx + ry*ry + rz*rz)

    # Mean motion
    n = np.sqrt(mu / sma**3)

    # Eccentric anomaly from r
    cos_E = (1.0 - r / sma) / ecc
    cos_E = _clamp(cos_E, -1.0, 1.0)
    E = np.arccos(cos_E)

    # Past apoapsis when falling inward
    rdotv = rx * vx + ry * vy + rz * vz
    if rdotv < 0:
        E = 2.0 * np.pi - E

    # Mean anomaly
    M = E - ecc * np.sin(E)

    # Time to apoapsis (M = pi at apoapsis)
    if np.pi >= M:
        return (np.pi - M) / n
    else:
        return (3.0 * np.pi - M) / n


@njit(cache=True)
def _stumpff_c(z: float) -> float:
    """Stumpff function C(z)."""
    if z > 1e-6:
        s = np.sqrt(z)
        return (1.0 - np.cos(s)) / z
    if z < -1e-6:
        s = np.sqrt(-z)
        return (np.cosh(s) - 1.0) / (-z)
    return 0.5 - z / 24.0 + z * z / 720.0


@njit(cache=True)
def _stumpff_s(z: float) -> float:
    """Stumpff function S(z)."""
    if z > 1e-6:
        s = np.sqrt(z)
        return (s - np.sin(s)) / (s * s * s)
    if z < -1e-6:
        s = np.sqrt(-z)
        return (np.sinh(s) - s) / (s * s * s)
    return 1.0 / 6.0 - z / 120.0 + z * z / 5040.0


@njit(cache=True)
def _propagate_core(
    rx: float, ry: float, rz: float,
    vx: float, vy: float, vz: float,
    dt: float,
    mu: float,
) -> tuple[float, float, float, float, float, float]:
    """Universal-variable Kepler propagation over ``dt`` seconds.

    Returns:
        (rx, ry, rz, vx, vy, vz) after ``dt``
    """
    r0 = np.sqrt(rx*rx + ry*ry + rz*rz)
    v0_sq = vx*vx + vy*vy + vz*vz
    rdotv = rx*vx + ry*vy + rz*vz
    vr0 = rdotv / r0
    sqrt_mu = np.sqrt(mu)

    # Reciprocal of the semi-major axis
    alpha = 2.0 / r0 - v0_sq / mu

    if alpha > 1e-12:
        # Bound orbit: fold whole revolutions away
        period = 2.0 * np.pi / (sqrt_mu * alpha**1.5)
        dt = dt - period * np.floor(dt / period)

    if dt == 0.0:
        return (rx, ry, rz, vx, vy, vz)

    # Initial guess for the universal anomaly
    if alpha > 1e-12:
        chi = sqrt_mu * alpha * dt
    elif alpha < -1e-12:
        a = 1.0 / alpha
        sign = 1.0 if dt > 0.0 else -1.0
        chi = sign * np.sqrt(-a) * np.log(
            (-2.0 * mu * alpha * dt)
            / (rdotv + sign * np.sqrt(-mu * a) * (1.0 - r0 * alpha))
        )
        if not chi * dt > 0.0:
            chi = sqrt_mu * dt / r0
    else:
        chi = sqrt_mu * dt / r0

    # Newton iteration on the universal Kepler equation
    for _ in range(200):
        chi_sq = chi * chi
        z = alpha * chi_sq
        c = _stumpff_c(z)
        s = _stumpff_s(z)
        f_val = (
            r0 * vr0 / sqrt_mu * chi_sq * c
            + (1.0 - alpha * r0) * chi_sq * chi * s
            + r0 * chi
            - sqrt_mu * dt
        )
        df_val = (
            r0 * vr0 / sqrt_mu * chi * (1.0 - z * s)
            + (1.0 - alpha * r0) * chi_sq * c
            + r0
        )
        delta = f_val / df_val
        chi -= delta
        if abs(delta) < 1e-10 * max(1.0, abs(chi)):
            break

    chi_sq = chi * chi
    z = alpha * chi_sq
    c = _stumpff_c(z)
    s = _stumpff_s(z)

    # Lagrange coefficients
    f = 1.0 - chi_sq / r0 * c
    g = dt - chi_sq * chi / sqrt_mu * s

    nx = f * rx + g * vx
    ny = f * ry + g * vy
    nz = f * rz + g * vz
    r = np.sqrt(nx*nx + ny*ny + nz*nz)

    fdot = sqrt_mu / (r * r0) * (alpha * chi_sq * chi * s - chi)
    gdot = 1.0 - chi_sq / r * c

    return (
        nx, ny, nz,
        fdot * rx + gdot * vx,
        fdot * ry + gdot * vy,
        fdot * rz + gdot * vz,
    )


@njit(cache=True)
def _sample_positions_core(
    rx: float, ry: float, rz: float,
    vx: float, vy: float, vz: float,
    offsets: NDArray[np.float64],
    mu: float,
) -> NDArray[np.float64]:
    """Positions at each time offset from the initial state."""
    n = offsets.shape[0]
    result = np.empty((n, 3), dtype=np.float64)
    for i in range(n):
        state = _propagate_core(rx, ry, rz, vx, vy, vz, offsets[i], mu)
        result[i, 0] = state[0]
        result[i, 1] = state[1]
        result[i, 2] = state[2]
    return result


# =============================================================================
# Public API
# =============================================================================


def compute_orbital_elements(
    position: NDArray[np.float64],
    velocity: NDArray[np.float64],
    mu: float,
    radius: float,
) -> OrbitalElements:
    """Compute orbit shape from position and velocity.

    Args:
        position: Position relative to the body [m]
        velocity: Velocity relative to the body [m/s]
        mu: Body gravitational parameter [m^3/s^2]
        radius: Body reference radius [m]

    Returns:
        OrbitalElements
    """
    result = _compute_orbital_elements_core(
        position[0], position[1], position[2],
        velocity[0], velocity[1], velocity[2],
        mu, radius,
    )
    return OrbitalElements(*(float(x) for x in result))


def time_to_apoapsis(
    position: NDArray[np.float64],
    velocity: NDArray[np.float64],
    mu: float,
    elements: OrbitalElements | None = None,
) -> float:
    """Time until next apoapsis passage [s]. Zero for circular or unbound orbits."""
    if elements is None:
        elements = compute_orbital_elements(position, velocity, mu, 0.0)

    return float(_time_to_apoapsis(
        position[0], position[1], position[2],
        velocity[0], velocity[1], velocity[2],
        elements.semi_major_axis, elements.eccentricity,
        mu,
    ))


def propagate(
    position: NDArray[np.float64],
    velocity: NDArray[np.float64],
    dt: float,
    mu: float,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Coast a state along its conic for ``dt`` seconds.

    Returns:
        (position, velocity) after ``dt``
    """
    result = _propagate_core(
        position[0], position[1], position[2],
        velocity[0], velocity[1], velocity[2],
        dt, mu,
    )
    return np.array(result[:3]), np.array(result[3:])


def sample_positions(
    position: NDArray[np.float64],
    velocity: NDArray[np.float64],
    offsets: NDArray[np.float64],
    mu: float,
) -> NDArray[np.float64]:
    """Positions along a coasting trajectory, shape (N, 3) [m]."""
    return _sample_positions_core(
        position[0], position[1], position[2],
        velocity[0], velocity[1], velocity[2],
        np.ascontiguousarray(offsets, dtype=np.float64), mu,
    )


def orbital_frame(
    position: NDArray[np.float64],
    velocity: NDArray[np.float64],
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Radial-out, orbit-normal and prograde unit vectors."""
    prograde = velocity / np.linalg.norm(velocity)
    normal = np.cross(position, velocity)
    normal = normal / np.linalg.norm(normal)
    radial = np.cross(prograde, normal)
    return radial, normal, prograde
