"""Unit tests for ternary search and the pattern optimizer."""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from autopilot.search import (
    PatternOptimizer,
    ternary_maximize,
    ternary_minimize,
)
from autopilot.search.pattern import neighbors

# =============================================================================
# Ternary Search Tests
# =============================================================================


class TestTernarySearch:
    """Test bracketed scalar minimization."""

    def test_quadratic_minimum(self):
        result = ternary_minimize(lambda x: (x - 7.0) ** 2, 0.0, 20.0, 0.01)
        assert abs(result - 7.0) <= 0.01

    def test_minimum_at_bound(self):
        """Monotonic function converges to the bracket edge."""
        result = ternary_minimize(lambda x: x, 0.0, 10.0, 0.001)
        assert_allclose(result, 0.0, atol=0.001)

    def test_degenerate_bracket(self):
        assert ternary_minimize(lambda x: x * x, 3.0, 3.0, 1.0) == 3.0

    def test_maximize(self):
        result = ternary_maximize(lambda x: -abs(x - 2.5), -10.0, 10.0, 0.01)
        assert abs(result - 2.5) <= 0.01

    def test_evaluation_count_is_logarithmic(self):
        calls = []

        def f(x):
            calls.append(x)
            return (x - 1.0) ** 2

        ternary_minimize(f, 0.0, 1000.0, 1.0)
        # Bracket shrinks to 2/3 per iteration, two evaluations each
        iterations = int(np.ceil(np.log(1000.0) / np.log(1.5))) + 1
        assert len(calls) <= 2 * iterations

    def test_terminates_on_tiny_tolerance(self):
        """Float resolution stops the search before the tolerance does."""
        result = ternary_minimize(lambda x: (x - 1e6) ** 2, 0.0, 2e6, 1e-20)
        assert_allclose(result, 1e6, rtol=1e-9)

    @pytest.mark.parametrize("tolerance", [0.0, -1.0])
    def test_rejects_non_positive_tolerance(self, tolerance):
        with pytest.raises(ValueError, match="tolerance"):
            ternary_minimize(lambda x: x, 0.0, 1.0, tolerance)

    def test_rejects_reversed_bounds(self):
        with pytest.raises(ValueError, match="Reversed"):
            ternary_minimize(lambda x: x, 5.0, 1.0, 0.1)

    def test_rejects_infinite_bounds(self):
        with pytest.raises(ValueError, match="finite"):
            ternary_minimize(lambda x: x, 0.0, float("inf"), 0.1)


# =============================================================================
# Pattern Optimizer Tests
# =============================================================================


class TestNeighbors:
    """Test candidate generation."""

    def test_order(self):
        assert neighbors((0.0, 5.0), 1.0) == [
            (1.0, 5.0),
            (-1.0, 5.0),
            (0.0, 6.0),
            (0.0, 4.0),
        ]


class TestPatternOptimizer:
    """Test compass search."""

    @pytest.fixture
    def optimizer(self):
        return PatternOptimizer(step_sizes=(100.0, 10.0, 1.0))

    def test_separable_quadratic(self):
        optimizer = PatternOptimizer(step_sizes=(10.0, 1.0))
        result = optimizer.optimize(
            (0.0, 0.0), lambda v: (v[0] - 3.0) ** 2 + (v[1] + 4.0) ** 2
        )
        assert result == (3.0, -4.0)

    def test_converges_to_step_resolution(self, optimizer):
        result = optimizer.optimize((0.0,), lambda v: abs(v[0] - 237.0))
        assert result == (237.0,)

    def test_never_worse_than_initial(self, optimizer):
        """Returned score is never above the starting score."""
        rng = np.random.default_rng(42)
        weights = rng.normal(size=3)

        def score(v):
            return float(np.sin(np.dot(weights, v) / 50.0) + 0.001 * np.dot(v, v))

        initial = (12.0, -7.0, 30.0)
        result = optimizer.search(initial, score)
        assert result.score <= score(initial)
        assert score(result.vector) == result.score

    def test_scores_monotonic_along_path(self, optimizer):
        """Every adopted move strictly improves the score."""
        seen = []

        def score(v):
            value = (v[0] - 42.0) ** 2
            seen.append((v, value))
            return value

        result = optimizer.search((0.0,), score)
        assert result.vector == (42.0,)
        assert result.iterations > 0
        assert result.evaluations == len(seen)

    def test_no_move_when_already_optimal(self, optimizer):
        result = optimizer.search((5.0, 5.0), lambda v: (v[0] - 5.0) ** 2 + (v[1] - 5.0) ** 2)
        assert result.vector == (5.0, 5.0)
        assert result.iterations == 0
        # One initial evaluation plus 2 * dim per step size
        assert result.evaluations == 1 + 3 * 4

    def test_ties_do_not_move(self, optimizer):
        result = optimizer.search((0.0,), lambda v: 1.0)
        assert result.vector == (0.0,)

    def test_max_iterations_per_step(self):
        optimizer = PatternOptimizer(step_sizes=(1.0,), max_iterations_per_step=3)
        result = optimizer.search((0.0,), lambda v: abs(v[0] - 100.0))
        assert result.vector == (3.0,)
        assert result.iterations == 3

    def test_empty_vector_rejected(self, optimizer):
        with pytest.raises(ValueError, match="empty"):
            optimizer.optimize((), lambda v: 0.0)

    def test_empty_steps_rejected(self):
        with pytest.raises(ValueError, match="step size"):
            PatternOptimizer(step_sizes=()).optimize((1.0,), lambda v: 0.0)
