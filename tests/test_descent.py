"""Unit tests for the powered descent controller and terrain slope."""

import numpy as np
import pytest
from fakes import MUN_INFO, FakeActuators, FakeClock, SpherePropagator
from numpy.testing import assert_allclose

from autopilot.config import GRAVITATIONAL_CONSTANT, DescentConfig
from autopilot.descent import (
    DescentController,
    DescentState,
    braking_throttle,
    ground_normal,
    stopping_distance,
    surface_gravity,
)
from autopilot.errors import NumericDegeneracyError
from autopilot.interfaces import GeoPosition, SteeringReference

# =============================================================================
# Control Law Tests
# =============================================================================


class TestControlLaw:
    """Test the braking equations."""

    def test_stopping_distance(self):
        d = stopping_distance(-50.0, 20000.0, 1000.0, 9.81)
        assert_allclose(d, 2500.0 / (2.0 * 10.19), rtol=1e-12)
        assert_allclose(d, 122.67, atol=0.01)

    def test_braking_throttle_unclamped(self):
        d = stopping_distance(-50.0, 20000.0, 1000.0, 9.81)
        assert_allclose(braking_throttle(d, 100.0), 1.2267, atol=1e-4)

    def test_braking_throttle_clamped(self):
        assert braking_throttle(122.67, 100.0, clamp=True) == 1.0
        assert braking_throttle(50.0, 100.0, clamp=True) == 0.5

    def test_at_or_below_ground_is_full_throttle(self):
        assert braking_throttle(10.0, 0.0) == 1.0
        assert braking_throttle(10.0, -3.0) == 1.0

    def test_no_deceleration_margin(self):
        with pytest.raises(NumericDegeneracyError, match="deceleration"):
            stopping_distance(-10.0, 9000.0, 1000.0, 9.81)

    def test_surface_gravity(self):
        g = surface_gravity(5.2915158e22, 600000.0, GRAVITATIONAL_CONSTANT)
        assert_allclose(g, 9.81, rtol=1e-3)
        g_mun = surface_gravity(MUN_INFO.mass, MUN_INFO.radius, GRAVITATIONAL_CONSTANT)
        assert_allclose(g_mun, 1.63, rtol=1e-2)


# =============================================================================
# Terrain Tests
# =============================================================================


def _up(latitude: float, longitude: float) -> np.ndarray:
    lat, lon = np.radians(latitude), np.radians(longitude)
    return np.array([np.cos(lat) * np.cos(lon), np.cos(lat) * np.sin(lon), np.sin(lat)])


class TestGroundNormal:
    """Test terrain normal estimation."""

    @pytest.mark.parametrize("latitude, longitude", [(0.0, 0.0), (30.0, 45.0), (-60.0, 170.0)])
    def test_flat_sphere_normal_is_up(self, latitude, longitude):
        propagator = SpherePropagator(radius=200000.0)
        up = _up(latitude, longitude)
        normal = ground_normal(propagator, 200010.0 * up, np.zeros(3))
        assert_allclose(normal, up, atol=1e-6)

    def test_normal_is_unit_and_upward(self):
        propagator = SpherePropagator(radius=200000.0, terrain=lambda lat, lon: 2000.0 * lon)
        up = _up(0.0, 0.0)
        normal = ground_normal(propagator, 200010.0 * up, np.zeros(3))
        assert_allclose(np.linalg.norm(normal), 1.0)
        assert np.dot(normal, up) > 0.0

    def test_slope_tilts_normal_downhill(self):
        """Terrain rising to the north tilts the normal to the south."""
        propagator = SpherePropagator(radius=200000.0, terrain=lambda lat, lon: 5000.0 * lat)
        up = _up(0.0, 0.0)
        north = np.array([0.0, 0.0, 1.0])
        normal = ground_normal(propagator, 200010.0 * up, np.zeros(3))
        assert np.dot(normal, north) < -0.05

    def test_uses_body_center(self):
        """The local frame is built relative to the body center, not the origin."""
        center = np.array([1e6, 0.0, 0.0])

        class OffsetPropagator(SpherePropagator):
            def surface_position(self, latitude, longitude, height):
                return center + super().surface_position(latitude, longitude, height)

            def geoposition_of(self, position):
                return super().geoposition_of(position - center)

        propagator = OffsetPropagator(radius=200000.0)
        up = _up(10.0, 20.0)
        normal = ground_normal(propagator, center + 200010.0 * up, center)
        assert_allclose(normal, up, atol=1e-6)


# =============================================================================
# Controller Tests
# =============================================================================


class FakeLander:
    """Vertical-only vessel falling onto a flat body.

    Integrates its own motion whenever the clock advances, using the
    throttle last commanded through the actuators.
    """

    def __init__(self, clock, actuators, altitude, vertical_speed, mass=1000.0, thrust=20000.0):
        self.altitude = altitude
        self.vertical_speed = vertical_speed
        self.mass = mass
        self.available_thrust = thrust
        self.body = MUN_INFO
        self.geoposition = GeoPosition(0.0, 0.0)
        self.touchdown_speed = None
        self._actuators = actuators
        self._g = surface_gravity(MUN_INFO.mass, MUN_INFO.radius, GRAVITATIONAL_CONSTANT)
        clock.on_advance(self._advance)

    @property
    def position(self):
        return np.array([MUN_INFO.radius + self.altitude, 0.0, 0.0])

    def _advance(self, dt):
        throttle = min(max(self._actuators.throttle, 0.0), 1.0)
        accel = throttle * self.available_thrust / self.mass - self._g
        self.vertical_speed += accel * dt
        self.altitude += self.vertical_speed * dt
        if self.altitude <= 4.7:
            if self.touchdown_speed is None:
                self.touchdown_speed = abs(self.vertical_speed)
            self.altitude = 4.7
            self.vertical_speed = 0.0


class TestDescentController:
    """Test the descent state machine."""

    @pytest.fixture
    def world(self):
        clock = FakeClock(dt=0.02)
        actuators = FakeActuators()
        lander = FakeLander(clock, actuators, altitude=2000.0, vertical_speed=-80.0)
        controller = DescentController(
            vessel=lander,
            actuators=actuators,
            clock=clock,
            propagator=SpherePropagator(radius=MUN_INFO.radius),
        )
        return controller, lander, actuators, clock

    def test_distance_to_ground(self, world):
        controller, lander, _, _ = world
        assert_allclose(controller.distance_to_ground(), 2000.0 - 4.7)

    def test_step_latches_gear_once(self, world):
        controller, lander, actuators, _ = world
        lander.altitude = 400.0
        first = controller.step()
        second = controller.step()
        assert first.deploy_gear is True
        assert second.deploy_gear is False
        assert actuators.gear_deploys == 1
        assert controller.state == DescentState.GEAR_DEPLOYED

    def test_step_commands_ratio(self, world):
        controller, lander, actuators, _ = world
        command = controller.step()
        expected = command.stopping_distance / command.distance_to_ground
        assert actuators.throttle == pytest.approx(expected)

    def test_unclamped_by_default(self, world):
        controller, lander, actuators, _ = world
        lander.altitude = 150.0
        command = controller.step()
        assert command.throttle > 1.0

    def test_clamp_option(self, world):
        controller, lander, actuators, _ = world
        controller.config = DescentConfig(clamp_throttle=True)
        lander.altitude = 150.0
        assert controller.step().throttle == 1.0

    def test_full_descent(self, world):
        controller, lander, actuators, clock = world
        controller.run()

        assert lander.touchdown_speed is not None
        assert lander.touchdown_speed < 3.0
        assert controller.gear_deployed
        assert controller.state == DescentState.RELEASED
        assert actuators.throttle == 0.0
        assert actuators.steering is None
        assert actuators.steering_history[0] is SteeringReference.SURFACE_RETROGRADE
        # Terrain alignment is a live target, held for the settle time
        assert callable(actuators.steering_history[-1])
        assert clock.waits[-1] == 30.0

    def test_waits_for_braking_point(self, world):
        controller, lander, actuators, clock = world
        controller.run()
        # No throttle before the ratio first exceeds one
        first_burn = next(i for i, t in enumerate(actuators.throttle_history) if t > 0.0)
        assert actuators.throttle_history[first_burn] > 1.0

    def test_ratio_ignores_clamp(self, world):
        controller, lander, _, _ = world
        controller.config = DescentConfig(clamp_throttle=True)
        lander.altitude = 150.0
        assert controller.braking_ratio() > 1.0

    def test_ratio_infinite_inside_clearance(self, world):
        controller, lander, _, _ = world
        lander.altitude = 3.0
        assert controller.braking_ratio() == float("inf")

    def test_start_inside_clearance_brakes_and_finishes(self, world):
        controller, lander, actuators, clock = world
        lander.altitude = 3.0
        lander.vertical_speed = -2.0

        controller.run()

        assert actuators.throttle_history[0] == 1.0
        assert lander.touchdown_speed < 2.0
        assert controller.state == DescentState.RELEASED
        assert clock.waits[-1] == 30.0

    def test_release_on_error(self, world):
        controller, lander, actuators, _ = world
        lander.available_thrust = 1000.0  # TWR below one on the Mun

        with pytest.raises(NumericDegeneracyError):
            controller.run()

        assert actuators.throttle == 0.0
        assert actuators.steering is None
        assert controller.state == DescentState.RELEASED
