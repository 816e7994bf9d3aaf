"""Terrain slope estimation for touchdown alignment."""

import numpy as np
from numpy.typing import NDArray

from autopilot.interfaces import Propagator
from autopilot.vectors import local_frame, unit


def terrain_point(propagator: Propagator, position: NDArray[np.float64]) -> NDArray[np.float64]:
    """Terrain surface point directly below ``position``."""
    geo = propagator.geoposition_of(position)
    height = propagator.terrain_height(geo.latitude, geo.longitude)
    return propagator.surface_position(geo.latitude, geo.longitude, height)


def ground_normal(
    propagator: Propagator,
    position: NDArray[np.float64],
    body_center: NDArray[np.float64],
    forward: float = 5.0,
    back: float = 3.0,
    side: float = 4.0,
) -> NDArray[np.float64]:
    """Unit normal of the terrain under ``position``.

    Samples the terrain ``forward`` m to the north and ``back`` m to the
    south at ``side`` m east and west, and returns the normal of the plane
    through the three points, oriented away from the body.
    """
    up = unit(position - body_center)
    north, east = local_frame(up)

    a = terrain_point(propagator, position + forward * north)
    b = terrain_point(propagator, position - back * north + side * east)
    c = terrain_point(propagator, position - back * north - side * east)

    normal = unit(np.cross(c - a, b - a))
    if np.dot(normal, up) < 0.0:
        normal = -normal
    return normal
