"""Maneuver planning by numerical search.

Each maneuver type is reduced to a score over a parameter vector, and the
score is minimized with the search algorithms in ``autopilot.search``.
Scores are evaluated by registering a candidate node in the flight plan,
reading the predicted result, and removing the node again, so at most one
candidate is ever live and none outlives its evaluation.

Scores:
    eccentricity_score: Eccentricity after a prograde burn at apoapsis
    alignment_angle: Angle between the vessel and a target body, seen
        from the reference body, at a future time
    transfer_score: Closest approach to a target body after a burn

Example:
    >>> planner = ManeuverPlanner(vessel, flight_plan, propagator, clock)
    >>> plan = planner.plan_transfer("Mun")
    >>> executor.execute(plan)
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field

import numpy as np

from autopilot.config import SearchConfig
from autopilot.interfaces import (
    VESSEL,
    Clock,
    FlightPlan,
    ManeuverNode,
    Propagator,
    Vessel,
)
from autopilot.maneuver import ManeuverPlan
from autopilot.planning.scoring import StalenessGuard, registered
from autopilot.search import (
    ParameterVector,
    PatternOptimizer,
    ScoreFunction,
    ternary_maximize,
    ternary_minimize,
)
from autopilot.vectors import vector_angle

logger = logging.getLogger(__name__)


@dataclass
class ManeuverPlanner:
    """Chooses maneuver parameters that minimize a scored objective.

    Attributes:
        vessel: Telemetry source
        flight_plan: Where candidate nodes are registered while scoring
        propagator: Future position oracle
        clock: Source of the current time
        config: Search settings
    """
    vessel: Vessel
    flight_plan: FlightPlan
    propagator: Propagator
    clock: Clock
    config: SearchConfig = field(default_factory=SearchConfig)

    @property
    def optimizer(self) -> PatternOptimizer:
        return PatternOptimizer(
            step_sizes=self.config.step_sizes,
            max_iterations_per_step=self.config.max_iterations_per_step,
        )

    # -------------------------------------------------------------------------
    # Circularization
    # -------------------------------------------------------------------------

    def next_apoapsis_epoch(self) -> float:
        return self.clock.now + self.vessel.orbit.time_to_apoapsis

    def eccentricity_score(self) -> ScoreFunction:
        """Eccentricity after a prograde burn of ``vector[0]`` at apoapsis."""

        def score(vector: ParameterVector) -> float:
            plan = ManeuverPlan(epoch=self.next_apoapsis_epoch(), prograde=vector[0])
            with registered(self.flight_plan, plan) as node:
                return node.orbit.eccentricity

        return score

    def plan_circularization(self) -> ManeuverPlan:
        """Prograde burn at the next apoapsis that best circularizes the orbit."""
        result = self.optimizer.search((0.0,), self.eccentricity_score())
        plan = ManeuverPlan(epoch=self.next_apoapsis_epoch(), prograde=result.vector[0])
        logger.info(
            "Circularization: %.1f m/s prograde at T+%.1f s (eccentricity %.4f, %d evaluations)",
            plan.prograde, plan.epoch - self.clock.now, result.score, result.evaluations,
        )
        return plan

    # -------------------------------------------------------------------------
    # Transfer to another body
    # -------------------------------------------------------------------------

    def alignment_angle(self, target: str, time: float) -> float:
        """Angle between vessel and target, seen from the reference body [rad]."""
        reference = self.propagator.position_at(self.vessel.body.name, time)
        to_vessel = reference - self.propagator.position_at(VESSEL, time)
        to_target = reference - self.propagator.position_at(target, time)
        return vector_angle(to_vessel, to_target)

    def alignment_score(self, target: str) -> Callable[[float], float]:
        return lambda time: self.alignment_angle(target, time)

    def transfer_window(self, target: str) -> float:
        """Coarse transfer epoch: when the vessel best lines up with ``target``.

        Searches one orbital period starting ``window_lead`` seconds from now.
        """
        start = self.clock.now + self.config.window_lead
        end = start + self.vessel.orbit.period
        return ternary_minimize(
            self.alignment_score(target), start, end, self.config.window_tolerance
        )

    def distance_at_apoapsis(self, node: ManeuverNode, epoch: float, target: str) -> float:
        """Vessel-to-target distance at the first apoapsis after ``node``.

        The apoapsis time is found by maximizing altitude over the half
        orbit that follows the node. A node on the descending half first
        waits out periapsis, found by minimizing altitude the same way.
        """
        reference = self.vessel.body.name
        tolerance = self.config.apoapsis_tolerance

        def altitude_at(time: float) -> float:
            offset = self.propagator.position_at(VESSEL, time) - self.propagator.position_at(reference, time)
            return float(np.linalg.norm(offset))

        period = node.orbit.period
        if math.isfinite(period) and period > 0.0:
            span = period / 2.0
        else:
            span = self.config.escape_window

        start = epoch
        if altitude_at(epoch + tolerance) < altitude_at(epoch):
            start = ternary_minimize(altitude_at, epoch, epoch + span, tolerance)

        apoapsis_time = ternary_maximize(altitude_at, start, start + span, tolerance)
        separation = (
            self.propagator.position_at(VESSEL, apoapsis_time)
            - self.propagator.position_at(target, apoapsis_time)
        )
        return float(np.linalg.norm(separation))

    def transfer_score(self, target: str) -> ScoreFunction:
        """Score a ``[epoch, radial, normal, prograde]`` transfer candidate.

        With a predicted encounter the score is the encounter periapsis;
        without one it is the miss distance at apoapsis. The two branches
        are on different scales, so the search can behave unevenly when a
        step crosses between them.
        """

        def score(vector: ParameterVector) -> float:
            plan = ManeuverPlan.from_vector(vector)
            with registered(self.flight_plan, plan) as node:
                patch = node.next_patch
                if patch is not None:
                    return patch.periapsis
                return self.distance_at_apoapsis(node, plan.epoch, target)

        return score

    def guarded(self, score: ScoreFunction) -> StalenessGuard:
        return StalenessGuard(
            score=score,
            clock=self.clock,
            margin=self.config.staleness_margin,
            sentinel=self.config.stale_score,
        )

    def plan_transfer(self, target: str) -> ManeuverPlan:
        """Transfer burn toward ``target``, refined from the coarse window."""
        window = self.transfer_window(target)
        logger.info("Transfer window to %s at T+%.1f s", target, window - self.clock.now)

        result = self.optimizer.search(
            (window, 0.0, 0.0, 0.0), self.guarded(self.transfer_score(target))
        )
        plan = ManeuverPlan.from_vector(result.vector)
        logger.info(
            "Transfer to %s: epoch T+%.1f s, dv (%.1f, %.1f, %.1f) m/s, score %.6g after %d evaluations",
            target, plan.epoch - self.clock.now, plan.radial, plan.normal,
            plan.prograde, result.score, result.evaluations,
        )
        return plan
