"""Numerical search used to choose maneuver parameters.

Available algorithms:
    ternary_minimize: Bracketed minimum of a unimodal scalar function
    ternary_maximize: Bracketed maximum of a unimodal scalar function
    PatternOptimizer: Coordinate pattern search over a parameter vector
"""

from autopilot.search.pattern import (
    OptimizationResult,
    ParameterVector,
    PatternOptimizer,
    ScoreFunction,
    SearchState,
)
from autopilot.search.scalar import ternary_maximize, ternary_minimize

__all__ = [
    "OptimizationResult",
    "ParameterVector",
    "PatternOptimizer",
    "ScoreFunction",
    "SearchState",
    "ternary_maximize",
    "ternary_minimize",
]
