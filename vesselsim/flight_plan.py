"""Maneuver nodes for the simulated vessel.

A node is an impulsive delta-v at an epoch, given in the orbital frame
(radial, normal, prograde) of the state predicted at that epoch. Orbit
predictions apply every registered node in epoch order.

While the vessel burns, the node's burn vector is the inertial delta-v
fixed at registration minus the delta-v the engines have delivered since,
so it shrinks, passes through zero and turns around once the burn has
gone past the target.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from autopilot.interfaces import OrbitPatch, OrbitSnapshot
from vesselsim.orbit import orbital_frame

if TYPE_CHECKING:
    from vesselsim.simulator import Simulator


def frame_delta_v(
    position: NDArray[np.float64],
    velocity: NDArray[np.float64],
    radial: float,
    normal: float,
    prograde: float,
) -> NDArray[np.float64]:
    """Inertial delta-v for components in the local orbital frame [m/s]."""
    radial_hat, normal_hat, prograde_hat = orbital_frame(position, velocity)
    return radial * radial_hat + normal * normal_hat + prograde * prograde_hat


class SimManeuverNode:
    """A maneuver registered with the simulator."""

    def __init__(
        self,
        sim: Simulator,
        epoch: float,
        radial: float,
        normal: float,
        prograde: float,
    ) -> None:
        self.sim = sim
        self.epoch = float(epoch)
        self.radial = float(radial)
        self.normal = float(normal)
        self.prograde = float(prograde)

        position, velocity = sim.predict_state(self.epoch, exclude=self)
        self._target_dv = self.apply(position, velocity)
        self._delivered_at_registration = sim.delivered_delta_v.copy()

    def apply(self, position: NDArray[np.float64], velocity: NDArray[np.float64]) -> NDArray[np.float64]:
        """Inertial delta-v of this node for the given pre-node state."""
        return frame_delta_v(position, velocity, self.radial, self.normal, self.prograde)

    def post_node_state(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        position, velocity = self.sim.predict_state(self.epoch, exclude=self)
        return position, velocity + self.apply(position, velocity)

    @property
    def burn_vector(self) -> NDArray[np.float64]:
        delivered = self.sim.delivered_delta_v - self._delivered_at_registration
        return self._target_dv - delivered

    @property
    def delta_v(self) -> float:
        return float(np.linalg.norm(self.burn_vector))

    @property
    def time_to(self) -> float:
        return self.epoch - self.sim.now

    @property
    def orbit(self) -> OrbitSnapshot:
        position, velocity = self.post_node_state()
        return self.sim.orbit_of(position, velocity)

    @property
    def next_patch(self) -> OrbitPatch | None:
        position, velocity = self.post_node_state()
        return self.sim.find_encounter(position, velocity, self.epoch)

    def __repr__(self) -> str:
        return (
            f"SimManeuverNode(epoch={self.epoch:.1f}, radial={self.radial:.2f}, "
            f"normal={self.normal:.2f}, prograde={self.prograde:.2f})"
        )


class SimFlightPlan:
    """Registry of the simulator's maneuver nodes."""

    def __init__(self, sim: Simulator) -> None:
        self.sim = sim
        self.nodes: list[SimManeuverNode] = []

    def add(
        self,
        epoch: float,
        radial: float,
        normal: float,
        prograde: float,
    ) -> SimManeuverNode:
        node = SimManeuverNode(self.sim, epoch, radial, normal, prograde)
        self.nodes.append(node)
        return node

    def remove(self, node: SimManeuverNode) -> None:
        if node not in self.nodes:
            raise ValueError(f"{node!r} is not in the flight plan")
        self.nodes.remove(node)

    def __len__(self) -> int:
        return len(self.nodes)
