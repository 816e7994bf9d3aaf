"""Maneuver records passed from planning to execution."""

from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class ManeuverPlan:
    """An impulsive maneuver in the vessel's orbital frame.

    Attributes:
        epoch: Time of the maneuver [s]
        radial: Radial-out delta-v [m/s]
        normal: Orbit-normal delta-v [m/s]
        prograde: Prograde delta-v [m/s]
    """
    epoch: float
    radial: float = 0.0
    normal: float = 0.0
    prograde: float = 0.0

    @classmethod
    def from_vector(cls, vector: Sequence[float]) -> "ManeuverPlan":
        """Build a plan from ``[epoch, radial, normal, prograde]``."""
        if len(vector) != 4:
            raise ValueError(f"Expected 4 maneuver parameters, got {len(vector)}")
        epoch, radial, normal, prograde = (float(x) for x in vector)
        return cls(epoch=epoch, radial=radial, normal=normal, prograde=prograde)

    def as_vector(self) -> tuple[float, float, float, float]:
        """Return ``(epoch, radial, normal, prograde)``."""
        return (self.epoch, self.radial, self.normal, self.prograde)

    @property
    def delta_v(self) -> float:
        """Delta-v magnitude [m/s]."""
        return float(np.linalg.norm([self.radial, self.normal, self.prograde]))


@dataclass(frozen=True)
class BurnSchedule:
    """Timing of a finite burn centered on a maneuver epoch.

    Attributes:
        ignition_epoch: Time to open the throttle [s]
        burn_duration: Estimated burn length [s]
        burn_vector: Delta-v vector at the time the schedule was computed [m/s]
    """
    ignition_epoch: float
    burn_duration: float
    burn_vector: NDArray[np.float64] = field(repr=False)

    @property
    def cutoff_epoch(self) -> float:
        """Estimated engine cutoff time [s]."""
        return self.ignition_epoch + self.burn_duration
