"""Tuning parameters for the guidance engine.

Each component takes one of these dataclasses. Defaults reproduce the
behavior the engine was tuned with; override individual fields to adapt
to a different vehicle or environment.

Example:
    >>> from autopilot.config import DescentConfig
    >>> config = DescentConfig(ground_clearance=2.5, clamp_throttle=True)
"""

from dataclasses import dataclass

import numpy as np

# Standard gravity [m/s^2]
G0: float = 9.80665

# Newtonian constant of gravitation [m^3/(kg*s^2)]
GRAVITATIONAL_CONSTANT: float = 6.67430e-11


@dataclass
class SearchConfig:
    """Maneuver search settings.

    Attributes:
        step_sizes: Decreasing pattern-search steps [s or m/s]
        max_iterations_per_step: Cap on improvements per step size (None = unbounded)
        window_lead: Earliest transfer window start, from now [s]
        window_tolerance: Transfer window search precision [s]
        apoapsis_tolerance: Apoapsis time search precision [s]
        escape_window: Apoapsis search span for unbound trajectories [s]
        staleness_margin: Candidates closer than this to now are rejected [s]
        stale_score: Score assigned to rejected candidates
    """
    step_sizes: tuple[float, ...] = (100.0, 10.0, 1.0)
    max_iterations_per_step: int | None = None
    window_lead: float = 30.0
    window_tolerance: float = 1.0
    apoapsis_tolerance: float = 1.0
    escape_window: float = 86400.0
    staleness_margin: float = 15.0
    stale_score: float = 2.0 ** 64


@dataclass
class StagingConfig:
    """Auto-staging settings.

    Attributes:
        thrust_drop: Loss of available thrust that triggers staging [N]
        settle_time: Pause after staging before thrust is re-read [s]
    """
    thrust_drop: float = 10.0
    settle_time: float = 1.0


@dataclass
class ExecutorConfig:
    """Maneuver execution settings.

    Attributes:
        steering_lead: Time before ignition to start steering [s]
        completion_angle: Burn vector rotation that ends the burn [rad]
        throttle: Throttle during the burn (0-1)
        g0: Standard gravity used in the rocket equation [m/s^2]
    """
    steering_lead: float = 10.0
    completion_angle: float = np.radians(90.0)
    throttle: float = 1.0
    g0: float = G0


@dataclass
class DescentConfig:
    """Powered descent settings.

    Attributes:
        ground_clearance: Height of the vessel reference point above its landing legs [m]
        gear_distance: Distance to ground that deploys the landing gear [m]
        settle_time: Time to hold terrain alignment after touchdown [s]
        clamp_throttle: Saturate the braking throttle to [0, 1]
        slope_forward: North offset of the first terrain sample [m]
        slope_back: South offset of the two trailing terrain samples [m]
        slope_side: East/west offset of the two trailing terrain samples [m]
        gravitational_constant: G used for surface gravity [m^3/(kg*s^2)]
    """
    ground_clearance: float = 4.7
    gear_distance: float = 500.0
    settle_time: float = 30.0
    clamp_throttle: bool = False
    slope_forward: float = 5.0
    slope_back: float = 3.0
    slope_side: float = 4.0
    gravitational_constant: float = GRAVITATIONAL_CONSTANT


@dataclass
class AscentConfig:
    """Gravity-turn ascent settings.

    Pitch follows ``pitch_offset - turn_coefficient * altitude**turn_exponent``.

    Attributes:
        heading: Launch heading [deg]
        pitch_offset: Pitch at liftoff [deg]
        turn_coefficient: Pitch program coefficient
        turn_exponent: Pitch program exponent
        target_apoapsis: Apoapsis altitude that ends the ascent [m]
    """
    heading: float = 90.0
    pitch_offset: float = 88.963
    turn_coefficient: float = 1.03287
    turn_exponent: float = 0.409511
    target_apoapsis: float = 80000.0
