"""Building blocks shared by maneuver scoring functions."""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from autopilot.interfaces import Clock, FlightPlan, ManeuverNode
from autopilot.maneuver import ManeuverPlan
from autopilot.search import ParameterVector, ScoreFunction


@contextmanager
def registered(flight_plan: FlightPlan, plan: ManeuverPlan) -> Iterator[ManeuverNode]:
    """Register ``plan`` for the duration of a ``with`` block.

    The node is removed when the block exits, including when it raises.
    """
    node = flight_plan.add(plan.epoch, plan.radial, plan.normal, plan.prograde)
    try:
        yield node
    finally:
        flight_plan.remove(node)


@dataclass
class StalenessGuard:
    """Score wrapper that rejects maneuvers too close to the present.

    Candidates whose epoch (first vector element) is less than ``margin``
    seconds after the current time score ``sentinel`` without calling the
    wrapped function. By the time such a candidate could be executed its
    epoch would already have passed.

    Attributes:
        score: Wrapped score function
        clock: Source of the current time
        margin: Minimum lead time [s]
        sentinel: Score returned for stale candidates
    """
    score: ScoreFunction
    clock: Clock
    margin: float = 15.0
    sentinel: float = 2.0 ** 64

    def __call__(self, vector: ParameterVector) -> float:
        if vector[0] < self.clock.now + self.margin:
            return self.sentinel
        return self.score(vector)
