"""Powered descent and landing.

Available components:
    DescentController: Closed-loop braking burn to touchdown
    ground_normal: Terrain normal from three sampled points
"""

from autopilot.descent.controller import (
    DescentCommand,
    DescentController,
    DescentState,
    braking_throttle,
    stopping_distance,
    surface_gravity,
)
from autopilot.descent.terrain import ground_normal, terrain_point

__all__ = [
    "DescentCommand",
    "DescentController",
    "DescentState",
    "braking_throttle",
    "ground_normal",
    "stopping_distance",
    "surface_gravity",
    "terrain_point",
]
