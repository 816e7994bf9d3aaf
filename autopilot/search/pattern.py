"""Coordinate pattern search (compass search) with shrinking steps.

Derivative-free local optimizer for maneuver parameters. For each step
size in a decreasing sequence, every coordinate of the current best
vector is nudged up and down by the step; the single best neighbor is
adopted if it strictly beats the current score, and the step size is
kept until no neighbor improves.

The search is greedy. It returns a local minimum whose quality depends on
the starting point and the step sequence, and it can stall on landscapes
that need two coordinates to move together.

Example:
    >>> from autopilot.search import PatternOptimizer
    >>> optimizer = PatternOptimizer(step_sizes=(10.0, 1.0))
    >>> optimizer.optimize((0.0, 0.0), lambda v: (v[0] - 3) ** 2 + (v[1] + 4) ** 2)
    (3.0, -4.0)
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import NamedTuple

logger = logging.getLogger(__name__)

ParameterVector = tuple[float, ...]
ScoreFunction = Callable[[ParameterVector], float]


@dataclass
class SearchState:
    """Progress of one optimization call."""
    vector: ParameterVector
    score: float
    step_size: float


class OptimizationResult(NamedTuple):
    """Outcome of a pattern search.

    Attributes:
        vector: Best parameter vector found
        score: Score of that vector
        evaluations: Number of score function calls
        iterations: Number of improving moves adopted
    """
    vector: ParameterVector
    score: float
    evaluations: int
    iterations: int


def neighbors(vector: ParameterVector, step_size: float) -> list[ParameterVector]:
    """Candidates one step away along each coordinate, +step then -step."""
    candidates = []
    for index in range(len(vector)):
        increased = list(vector)
        decreased = list(vector)
        increased[index] += step_size
        decreased[index] -= step_size
        candidates.append(tuple(increased))
        candidates.append(tuple(decreased))
    return candidates


@dataclass
class PatternOptimizer:
    """Compass search over a numeric parameter vector.

    Attributes:
        step_sizes: Decreasing sequence of step sizes
        max_iterations_per_step: Cap on adopted moves per step size (None = unbounded)
    """
    step_sizes: tuple[float, ...] = (100.0, 10.0, 1.0)
    max_iterations_per_step: int | None = None

    def optimize(
        self,
        initial: Sequence[float],
        score: ScoreFunction,
    ) -> ParameterVector:
        """Minimize ``score`` starting from ``initial``.

        The returned vector never scores worse than ``initial``.
        """
        return self.search(initial, score).vector

    def search(
        self,
        initial: Sequence[float],
        score: ScoreFunction,
    ) -> OptimizationResult:
        """Minimize ``score`` and report evaluation statistics."""
        vector = tuple(float(x) for x in initial)
        if not vector:
            raise ValueError("Cannot optimize an empty parameter vector")
        if not self.step_sizes:
            raise ValueError("At least one step size is required")

        evaluations = 0

        def evaluate(candidate: ParameterVector) -> float:
            nonlocal evaluations
            evaluations += 1
            return score(candidate)

        state = SearchState(vector=vector, score=evaluate(vector), step_size=self.step_sizes[0])
        iterations = 0

        for step_size in self.step_sizes:
            state.step_size = step_size
            moves = 0
            while self._improve(state, evaluate):
                iterations += 1
                moves += 1
                logger.debug(
                    "step %g: score %.6g at %s", step_size, state.score, state.vector
                )
                if self.max_iterations_per_step is not None and moves >= self.max_iterations_per_step:
                    break

        return OptimizationResult(
            vector=state.vector,
            score=state.score,
            evaluations=evaluations,
            iterations=iterations,
        )

    def _improve(
        self,
        state: SearchState,
        evaluate: Callable[[ParameterVector], float],
    ) -> bool:
        """Move ``state`` to its best neighbor if that strictly improves it."""
        best_vector = None
        best_score = state.score

        for candidate in neighbors(state.vector, state.step_size):
            candidate_score = evaluate(candidate)
            if candidate_score < best_score:
                best_score = candidate_score
                best_vector = candidate

        if best_vector is None:
            return False

        state.vector = best_vector
        state.score = best_score
        return True
