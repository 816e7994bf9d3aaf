"""Small vector helpers shared by the guidance modules."""

import numpy as np
from numpy.typing import NDArray


def unit(vector: NDArray[np.float64]) -> NDArray[np.float64]:
    """Return ``vector`` scaled to unit length."""
    vector = np.asarray(vector, dtype=np.float64)
    norm = np.linalg.norm(vector)
    if norm == 0.0:
        raise ValueError("Cannot normalize a zero-length vector")
    return vector / norm


def vector_angle(a: NDArray[np.float64], b: NDArray[np.float64]) -> float:
    """Angle between two vectors [rad]."""
    cos_angle = np.dot(unit(a), unit(b))
    return float(np.arccos(np.clip(cos_angle, -1.0, 1.0)))


def local_frame(
    up: NDArray[np.float64],
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Local (north, east) unit vectors for a radial ``up`` direction.

    The body's rotation axis is taken as +Z. At the poles east is
    undefined, so +X is used.
    """
    r_hat = unit(up)
    z_axis = np.array([0.0, 0.0, 1.0])

    east = np.cross(z_axis, r_hat)
    east_mag = np.linalg.norm(east)
    if east_mag < 1e-9:
        east = np.array([1.0, 0.0, 0.0])
    else:
        east = east / east_mag

    north = np.cross(r_hat, east)
    return north, east
