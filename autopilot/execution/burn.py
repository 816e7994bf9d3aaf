"""Finite burn timing from the rocket equation.

The burn is assumed symmetric about the maneuver epoch: half of it
happens before the epoch and half after.

    isp_eff = sum(isp_i * F_i / F)            over running engines
    m_f     = m0 / exp(dv / (isp_eff * g0))   final mass
    mdot    = F / (isp_eff * g0)              propellant flow
    t       = (m0 - m_f) / mdot               burn duration
"""

import math
from collections.abc import Iterable

import numpy as np

from autopilot.config import G0
from autopilot.errors import NumericDegeneracyError
from autopilot.interfaces import EngineStatus, ManeuverNode, Vessel
from autopilot.maneuver import BurnSchedule, ManeuverPlan


def effective_isp(engines: Iterable[EngineStatus]) -> float:
    """Thrust-weighted specific impulse of ignited, running engines [s].

    Raises:
        NumericDegeneracyError: If no ignited engine produces thrust
    """
    running = [e for e in engines if e.ignited and not e.flameout]
    total_thrust = sum(e.available_thrust for e in running)
    if total_thrust <= 0.0:
        raise NumericDegeneracyError(
            "No ignited engine is producing thrust; specific impulse is undefined"
        )
    return sum(e.isp * (e.available_thrust / total_thrust) for e in running)


def burn_duration(
    delta_v: float,
    mass: float,
    available_thrust: float,
    isp: float,
    g0: float = G0,
) -> float:
    """Time to deliver ``delta_v`` at full available thrust [s].

    Args:
        delta_v: Required velocity change [m/s]
        mass: Vehicle mass at ignition [kg]
        available_thrust: Thrust at full throttle [N]
        isp: Effective specific impulse [s]
        g0: Standard gravity [m/s^2]

    Raises:
        NumericDegeneracyError: For zero specific impulse or thrust
        ValueError: For a non-positive mass or negative delta-v
    """
    if isp <= 0.0:
        raise NumericDegeneracyError(f"Specific impulse must be positive, got {isp}")
    if available_thrust <= 0.0:
        raise NumericDegeneracyError(
            f"Available thrust must be positive, got {available_thrust}"
        )
    if mass <= 0.0:
        raise ValueError(f"Mass must be positive, got {mass}")
    if delta_v < 0.0:
        raise ValueError(f"Delta-v must be non-negative, got {delta_v}")

    exhaust_velocity = isp * g0
    final_mass = mass / math.exp(delta_v / exhaust_velocity)
    fuel_flow = available_thrust / exhaust_velocity
    return (mass - final_mass) / fuel_flow


def schedule_burn(
    plan: ManeuverPlan,
    node: ManeuverNode,
    vessel: Vessel,
    g0: float = G0,
) -> BurnSchedule:
    """Ignition time and duration for a registered maneuver."""
    duration = burn_duration(
        delta_v=node.delta_v,
        mass=vessel.mass,
        available_thrust=vessel.available_thrust,
        isp=effective_isp(vessel.engines),
        g0=g0,
    )
    return BurnSchedule(
        ignition_epoch=plan.epoch - duration / 2.0,
        burn_duration=duration,
        burn_vector=np.array(node.burn_vector, dtype=np.float64),
    )
