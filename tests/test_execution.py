"""Unit tests for burn timing, auto-staging and the maneuver executor."""

import math

import numpy as np
import pytest
from fakes import FakeActuators, FakeClock, FakeFlightPlan, FakeVessel
from numpy.testing import assert_allclose

from autopilot.config import G0, ExecutorConfig, StagingConfig
from autopilot.errors import (
    ActuatorUnavailableError,
    GuidanceError,
    NumericDegeneracyError,
)
from autopilot.execution import (
    AutoStageState,
    BurnCompletion,
    ExecutorState,
    ManeuverExecutor,
    auto_stage,
    burn_duration,
    effective_isp,
)
from autopilot.interfaces import EngineStatus
from autopilot.maneuver import ManeuverPlan

# =============================================================================
# Burn Timing Tests
# =============================================================================


class TestBurnDuration:
    """Test the rocket-equation burn time."""

    def test_closed_form(self):
        t = burn_duration(delta_v=500.0, mass=10000.0, available_thrust=200000.0, isp=300.0)
        ve = 300.0 * G0
        expected = (10000.0 - 10000.0 / math.exp(500.0 / ve)) / (200000.0 / ve)
        assert_allclose(t, expected, rtol=1e-12)
        assert_allclose(t, 22.99, atol=0.01)

    def test_zero_delta_v(self):
        assert burn_duration(0.0, 1000.0, 1000.0, 300.0) == 0.0

    def test_shorter_than_constant_mass_estimate(self):
        """Mass loss makes the burn shorter than m*dv/F."""
        t = burn_duration(1000.0, 5000.0, 60000.0, 345.0)
        assert t < 5000.0 * 1000.0 / 60000.0

    def test_zero_isp(self):
        with pytest.raises(NumericDegeneracyError):
            burn_duration(100.0, 1000.0, 1000.0, 0.0)

    def test_zero_thrust(self):
        with pytest.raises(NumericDegeneracyError):
            burn_duration(100.0, 1000.0, 0.0, 300.0)

    def test_invalid_mass(self):
        with pytest.raises(ValueError, match="Mass"):
            burn_duration(100.0, 0.0, 1000.0, 300.0)

    def test_negative_delta_v(self):
        with pytest.raises(ValueError, match="Delta-v"):
            burn_duration(-1.0, 1000.0, 1000.0, 300.0)

    def test_degeneracy_is_arithmetic_error(self):
        with pytest.raises(ArithmeticError):
            burn_duration(100.0, 1000.0, 1000.0, 0.0)


class TestEffectiveIsp:
    """Test thrust-weighted specific impulse."""

    def test_single_engine(self):
        assert effective_isp([EngineStatus(True, False, 320.0, 1000.0)]) == 320.0

    def test_thrust_weighted(self):
        engines = [
            EngineStatus(True, False, 300.0, 3000.0),
            EngineStatus(True, False, 400.0, 1000.0),
        ]
        assert_allclose(effective_isp(engines), 325.0)

    def test_ignores_idle_and_flamed_out(self):
        engines = [
            EngineStatus(True, False, 300.0, 1000.0),
            EngineStatus(False, False, 800.0, 0.0),
            EngineStatus(True, True, 900.0, 0.0),
        ]
        assert effective_isp(engines) == 300.0

    def test_no_running_engines(self):
        with pytest.raises(NumericDegeneracyError):
            effective_isp([EngineStatus(False, False, 300.0, 0.0)])


# =============================================================================
# Auto-Staging Tests
# =============================================================================


class TestAutoStage:
    """Test staging on thrust loss."""

    @pytest.fixture
    def world(self):
        return FakeVessel(available_thrust=1000.0, stages_remaining=2), FakeActuators(), FakeClock()

    def test_first_call_records(self, world):
        vessel, actuators, clock = world
        state = AutoStageState()
        assert auto_stage(vessel, actuators, clock, state) is False
        assert state.last_thrust == 1000.0
        assert actuators.stages == 0

    def test_small_drop_ignored(self, world):
        vessel, actuators, clock = world
        state = AutoStageState(last_thrust=1000.0)
        vessel.available_thrust = 995.0
        assert auto_stage(vessel, actuators, clock, state) is False
        assert actuators.stages == 0

    def test_drop_stages_and_settles(self, world):
        vessel, actuators, clock = world
        state = AutoStageState(last_thrust=1000.0)
        vessel.available_thrust = 0.0

        def ignite_next():
            vessel.available_thrust = 400.0

        actuators.on_stage = ignite_next
        assert auto_stage(vessel, actuators, clock, state, StagingConfig(settle_time=2.0)) is True
        assert actuators.stages == 1
        assert clock.waits == [2.0]
        assert state.last_thrust == 400.0

    def test_thrust_increase_updates_reference(self, world):
        vessel, actuators, clock = world
        state = AutoStageState(last_thrust=500.0)
        auto_stage(vessel, actuators, clock, state)
        assert state.last_thrust == 1000.0

    def test_no_stages_left(self, world, caplog):
        vessel, actuators, clock = world
        vessel.stages_remaining = 0
        vessel.available_thrust = 0.0
        state = AutoStageState(last_thrust=1000.0)
        with caplog.at_level("WARNING", logger="autopilot.execution.staging"):
            assert auto_stage(vessel, actuators, clock, state) is False
        assert actuators.stages == 0
        assert "no stages left" in caplog.text


# =============================================================================
# Completion Tests
# =============================================================================


def _direction(degrees: float) -> np.ndarray:
    angle = np.radians(degrees)
    return np.array([np.cos(angle), np.sin(angle), 0.0])


class TestBurnCompletion:
    """Test burn-vector rotation detection."""

    def test_first_update_is_reference(self):
        completion = BurnCompletion()
        assert completion.update(_direction(0.0)) is False

    def test_below_threshold(self):
        completion = BurnCompletion()
        completion.update(_direction(0.0))
        assert completion.update(0.01 * _direction(89.9)) is False

    def test_above_threshold(self):
        completion = BurnCompletion()
        completion.update(_direction(0.0))
        assert completion.update(0.01 * _direction(90.1)) is True

    def test_reversed(self):
        completion = BurnCompletion()
        completion.update(np.array([0.0, 50.0, 0.0]))
        assert completion.update(np.array([0.0, -0.2, 0.0])) is True

    def test_zero_remaining(self):
        completion = BurnCompletion()
        completion.update(np.array([0.0, 50.0, 0.0]))
        assert completion.update(np.zeros(3)) is True


# =============================================================================
# Executor Tests
# =============================================================================


class BurnWorld:
    """Fake environment in which thrust eats away the node's burn vector."""

    def __init__(self, delivered_per_second: float = 10.0):
        self.clock = FakeClock(now=0.0, dt=0.5)
        self.vessel = FakeVessel()
        self.actuators = FakeActuators()
        self.flight_plan = FakeFlightPlan()
        self.rate = delivered_per_second
        self.ignitions: list[float] = []
        self.clock.on_advance(self._advance)

    def _advance(self, dt: float) -> None:
        if self.actuators.throttle <= 0.0 or self.vessel.available_thrust <= 0.0:
            return
        if not self.ignitions:
            self.ignitions.append(self.clock.now - dt)
        for node in self.flight_plan.nodes:
            node.burn_vector = node.burn_vector - np.array([0.0, self.rate * dt, 0.0])

    def executor(self, **config) -> ManeuverExecutor:
        return ManeuverExecutor(
            self.vessel, self.flight_plan, self.actuators, self.clock,
            config=ExecutorConfig(**config),
        )


class TestManeuverExecutor:
    """Test the execution state machine against fakes."""

    def test_successful_burn(self):
        world = BurnWorld()
        executor = world.executor()
        plan = ManeuverPlan(epoch=100.0, prograde=100.0)

        schedule = executor.execute(plan)

        expected = burn_duration(100.0, 10000.0, 200000.0, 300.0)
        assert_allclose(schedule.burn_duration, expected)
        assert_allclose(schedule.ignition_epoch, 100.0 - expected / 2.0)
        assert_allclose(schedule.burn_vector, [0.0, 100.0, 0.0])

        assert executor.state == ExecutorState.COMPLETE
        assert world.ignitions[0] >= schedule.ignition_epoch
        assert world.actuators.throttle == 0.0
        assert world.actuators.steering is None
        assert world.flight_plan.added == world.flight_plan.removed == 1

    def test_steering_follows_live_burn_vector(self):
        world = BurnWorld()
        executor = world.executor()
        executor.execute(ManeuverPlan(epoch=100.0, prograde=50.0))

        steering = world.actuators.steering_history[0]
        assert callable(steering)

    def test_stops_once_vector_reverses(self):
        world = BurnWorld(delivered_per_second=30.0)
        executor = world.executor()
        executor.execute(ManeuverPlan(epoch=100.0, prograde=100.0))
        # 15 m/s per tick: 100 -> 85 -> ... -> -5 is the first reversed vector
        burning_ticks = 7
        assert world.clock.now - world.ignitions[0] == pytest.approx(burning_ticks * 0.5)

    def test_cleanup_on_degenerate_isp(self):
        world = BurnWorld()
        world.vessel.engines = [EngineStatus(False, False, 300.0, 0.0)]
        executor = world.executor()

        with pytest.raises(NumericDegeneracyError):
            executor.execute(ManeuverPlan(epoch=100.0, prograde=100.0))

        assert world.flight_plan.added == world.flight_plan.removed == 1
        assert world.actuators.throttle == 0.0
        assert world.actuators.unlocks == 1
        assert executor.state == ExecutorState.REGISTERED

    def test_no_thrust_at_ignition(self):
        world = BurnWorld()
        executor = world.executor()

        def flameout(dt):
            if world.clock.now > 50.0:
                world.vessel.available_thrust = 0.0

        world.clock.on_advance(flameout)

        with pytest.raises(ActuatorUnavailableError):
            executor.execute(ManeuverPlan(epoch=100.0, prograde=100.0))

        assert world.actuators.stages == 1
        assert world.actuators.throttle == 0.0
        assert world.actuators.steering is None
        assert world.flight_plan.nodes == []

    def test_stages_when_no_thrust_at_ignition(self):
        world = BurnWorld()
        executor = world.executor()
        world.vessel.available_thrust = 200000.0

        def flameout(dt):
            if 50.0 < world.clock.now < 60.0:
                world.vessel.available_thrust = 0.0

        def restore():
            world.vessel.available_thrust = 200000.0

        world.clock.on_advance(flameout)
        world.actuators.on_stage = restore

        executor.execute(ManeuverPlan(epoch=100.0, prograde=100.0))
        assert world.actuators.stages == 1
        assert executor.state == ExecutorState.COMPLETE

    def test_errors_share_base_class(self):
        assert issubclass(ActuatorUnavailableError, GuidanceError)
        assert issubclass(NumericDegeneracyError, GuidanceError)
