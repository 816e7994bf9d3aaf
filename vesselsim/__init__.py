"""Vesselsim - step-driven simulated environment for the autopilot.

A single Simulator object implements every collaborator protocol the
autopilot uses (Clock, Vessel, Propagator, Actuators) and owns a flight
plan of maneuver nodes, so guidance code can be flown end to end without
a game or hardware link.

Modules:
    bodies: Celestial bodies and point-mass gravity
    orbit: Orbital elements and Kepler propagation
    vehicle: Engines, stages and propellant
    flight_plan: Maneuver nodes and encounter prediction
    simulator: Physics loop, telemetry and actuators

Example:
    >>> from vesselsim import Simulator, SimConfig, MUN
    >>> sim = Simulator.from_surface(altitude=5000.0, vertical_speed=-100.0, body=MUN)
    >>> sim.step()
"""

from vesselsim.bodies import KERBIN, MUN, CelestialBody
from vesselsim.flight_plan import SimFlightPlan, SimManeuverNode
from vesselsim.orbit import OrbitalElements, compute_orbital_elements, propagate
from vesselsim.simulator import (
    SimConfig,
    SimSample,
    SimulationResult,
    SimulationTimeout,
    Simulator,
)
from vesselsim.vehicle import Engine, Stage, Vehicle

__all__ = [
    # Bodies
    "CelestialBody",
    "KERBIN",
    "MUN",
    # Orbits
    "OrbitalElements",
    "compute_orbital_elements",
    "propagate",
    # Vehicle
    "Engine",
    "Stage",
    "Vehicle",
    # Simulation
    "SimConfig",
    "SimFlightPlan",
    "SimManeuverNode",
    "SimSample",
    "SimulationResult",
    "SimulationTimeout",
    "Simulator",
]
