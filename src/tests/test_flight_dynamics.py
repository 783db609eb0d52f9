"""
===============================================================================
FLIGHT CORE - Flight Dynamics Test Suite
===============================================================================
Tests for thrust integration, engine classes, consumable drain, position
integration, live gravity and orientation control, plus the spacecraft
state record itself.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose

from flightcore.core.constants import (
    BODY_FORWARD, BODY_RIGHT, GRAVITATIONAL_CONSTANT, METERS_PER_AU,
)
from flightcore.core.quaternion import Quaternion
from flightcore.core.units import meters_to_au
from flightcore.dynamics.bodies import PhysicsBody
from flightcore.dynamics.flight_dynamics import FlightDynamics, FlightDynamicsConfig
from flightcore.dynamics.spacecraft import EngineClass, SpacecraftState, ThrustCommand


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def dynamics():
    """Return FlightDynamics with stock tuning."""
    return FlightDynamics()


@pytest.fixture
def state():
    """Stock spacecraft at rest: 1500 kg, 1000 kg fuel, 5000 N rated."""
    return SpacecraftState()


# =============================================================================
# Test: Thrust
# =============================================================================

class TestApplyThrust:
    """Forward Euler velocity update and fuel burn."""

    def test_full_thrust_one_second(self, dynamics, state):
        new = dynamics.apply_thrust(state, [1.0, 0.0, 0.0], 1.0, 1.0)
        assert_allclose(new.velocity, [5000.0 / 1500.0, 0.0, 0.0], rtol=1e-12)
        assert new.fuel == pytest.approx(1000.0 - 5000.0 * 1.0e-4)
        assert new.thrust_level == 1.0
        assert_allclose(new.thrust_vector, [1.0, 0.0, 0.0])

    def test_direction_is_normalized(self, dynamics, state):
        a = dynamics.apply_thrust(state, [0.0, 3.0, 4.0], 0.5, 2.0)
        b = dynamics.apply_thrust(state, [0.0, 0.6, 0.8], 0.5, 2.0)
        assert_allclose(a.velocity, b.velocity)
        assert a.fuel == pytest.approx(b.fuel)

    def test_input_state_not_mutated(self, dynamics, state):
        dynamics.apply_thrust(state, [1.0, 0.0, 0.0], 1.0, 1.0)
        assert_allclose(state.velocity, np.zeros(3))
        assert state.fuel == 1000.0

    @pytest.mark.parametrize("level, expected", [(1.7, 1.0), (-0.4, 0.0), (np.nan, 0.0)])
    def test_level_clamped(self, dynamics, state, level, expected):
        new = dynamics.apply_thrust(state, [1.0, 0.0, 0.0], level, 1.0)
        assert new.thrust_level == expected
        assert new.velocity[0] == pytest.approx(expected * 5000.0 / 1500.0)

    def test_empty_tank_is_identity(self, dynamics, state):
        empty = state.evolve(fuel=0.0, velocity=[1.0, 2.0, 3.0])
        result = dynamics.apply_thrust(empty, [1.0, 0.0, 0.0], 1.0, 10.0)
        assert result is empty
        assert result == empty

    @pytest.mark.parametrize("direction", [[0.0, 0.0, 0.0], [np.nan, 1.0, 0.0], None])
    def test_degenerate_direction_is_noop(self, dynamics, state, direction):
        assert dynamics.apply_thrust(state, direction, 1.0, 1.0) is state

    def test_negative_dt_is_noop(self, dynamics, state):
        assert dynamics.apply_thrust(state, [1.0, 0.0, 0.0], 1.0, -0.1) is state

    def test_fuel_floored_at_zero(self, dynamics, state):
        low = state.evolve(fuel=0.1)
        new = dynamics.apply_thrust(low, [1.0, 0.0, 0.0], 1.0, 1.0)
        assert new.fuel == 0.0

    def test_mass_stays_constant(self, dynamics, state):
        new = dynamics.apply_thrust(state, [1.0, 0.0, 0.0], 1.0, 100.0)
        assert new.mass == state.mass


# =============================================================================
# Test: Engine classes
# =============================================================================

class TestEngineClasses:
    """MAIN is forward-only, RCS is weak but omnidirectional."""

    def test_main_fires_along_nose(self, dynamics, state):
        cmd = ThrustCommand(direction=BODY_FORWARD, level=1.0, engine=EngineClass.MAIN)
        new = dynamics.apply_command(state, cmd, 1.0)
        assert_allclose(new.velocity, [0.0, 0.0, -5000.0 / 1500.0], atol=1e-12)

    def test_main_cannot_fire_backwards(self, dynamics, state):
        cmd = ThrustCommand(direction=[0.0, 0.0, 1.0], level=1.0, engine="main")
        assert dynamics.apply_command(state, cmd, 1.0) is state

    def test_main_off_axis_loses_cosine(self, dynamics, state):
        cmd = ThrustCommand(direction=[1.0, 0.0, -1.0], level=1.0)
        new = dynamics.apply_command(state, cmd, 1.0)
        cos45 = 1.0 / np.sqrt(2.0)
        assert new.thrust_level == pytest.approx(cos45)
        assert_allclose(new.velocity, [0.0, 0.0, -cos45 * 5000.0 / 1500.0], atol=1e-12)

    def test_main_follows_orientation(self, dynamics, state):
        nose_right = state.evolve(
            orientation=Quaternion.from_two_vectors(BODY_FORWARD, [1.0, 0.0, 0.0]))
        cmd = ThrustCommand(direction=[1.0, 0.0, 0.0], level=1.0)
        new = dynamics.apply_command(nose_right, cmd, 1.0)
        assert_allclose(new.velocity, [5000.0 / 1500.0, 0.0, 0.0], atol=1e-9)

    def test_rcs_any_direction_reduced_force(self, dynamics, state):
        cmd = ThrustCommand(direction=[0.0, 0.0, 1.0], level=1.0, engine=EngineClass.RCS)
        new = dynamics.apply_command(state, cmd, 1.0)
        rcs_force = 5000.0 * 0.05
        assert_allclose(new.velocity, [0.0, 0.0, rcs_force / 1500.0], atol=1e-12)
        assert new.fuel == pytest.approx(1000.0 - rcs_force * 1.0e-4)

    def test_engine_parse(self):
        assert EngineClass.parse("RCS") is EngineClass.RCS
        with pytest.raises(ValueError, match="Unknown engine class"):
            EngineClass.parse("warp")

    def test_command_sanitizes_input(self):
        cmd = ThrustCommand(direction=[np.inf, 0.0, 0.0], level=np.nan)
        assert cmd.level == 0.0
        assert cmd.is_idle


# =============================================================================
# Test: Consumables
# =============================================================================

class TestConsumables:
    """Oxygen and power drain."""

    def test_idle_drain(self, dynamics, state):
        new = dynamics.update_consumables(state, 10.0)
        assert new.oxygen == pytest.approx(500.0 - 0.05 * 10.0)
        assert new.power == pytest.approx(1000.0 - 0.2 * 10.0)

    def test_full_throttle_drain(self, dynamics, state):
        burning = state.evolve(thrust_level=1.0)
        new = dynamics.update_consumables(burning, 10.0)
        assert new.oxygen == pytest.approx(500.0 - (0.05 + 0.1) * 10.0)
        assert new.power == pytest.approx(1000.0 - (0.2 + 0.3) * 10.0)

    def test_crew_scales_oxygen(self, dynamics, state):
        crew = state.evolve(crew_count=3)
        new = dynamics.update_consumables(crew, 1.0)
        assert new.oxygen == pytest.approx(500.0 - 0.15)

    @pytest.mark.parametrize("dt", [0.0, 0.016, 1.0, 3600.0, 1.0e7])
    def test_idle_never_increases_or_goes_negative(self, dynamics, state, dt):
        new = dynamics.update_consumables(state, dt)
        assert 0.0 <= new.oxygen <= state.oxygen
        assert 0.0 <= new.power <= state.power

    def test_exhaustion_floors_at_zero(self, dynamics, state):
        nearly_out = state.evolve(oxygen=0.01, power=0.01)
        new = dynamics.update_consumables(nearly_out, 100.0)
        assert new.oxygen == 0.0
        assert new.power == 0.0

    def test_custom_rates_from_config(self):
        cfg = FlightDynamicsConfig.from_config({
            "engines": {"burn_rate": 2.0e-4},
            "consumables": {"base_power_rate": 1.0},
        })
        assert cfg.burn_rate == 2.0e-4
        assert cfg.base_power_rate == 1.0
        assert cfg.rcs_thrust_fraction == 0.05
        new = FlightDynamics(cfg).update_consumables(SpacecraftState(), 2.0)
        assert new.power == pytest.approx(998.0)


# =============================================================================
# Test: Kinematics
# =============================================================================

class TestKinematics:
    """Position integration, live gravity and emergency stop."""

    def test_integrate_position_converts_units(self, dynamics, state):
        moving = state.evolve(velocity=[METERS_PER_AU, 0.0, 0.0])
        new = dynamics.integrate_position(moving, 1.0)
        assert_allclose(new.position, [2.0, 0.0, 0.0], rtol=1e-12)

    def test_zero_velocity_holds_position(self, dynamics, state):
        new = dynamics.integrate_position(state, 1000.0)
        assert_allclose(new.position, state.position)

    def test_apply_gravity(self, dynamics, state):
        mass = 5.972e24
        bodies = [PhysicsBody("earth", "Earth", mass, 4.26e-5, [0.0, 0.0, 0.0])]
        near = state.evolve(position=[meters_to_au(1.0e7), 0.0, 0.0])
        new = dynamics.apply_gravity(near, bodies, 1.0)
        expected = -GRAVITATIONAL_CONSTANT * mass / 1.0e14
        assert_allclose(new.velocity, [expected, 0.0, 0.0], rtol=1e-9)

    def test_emergency_stop(self, dynamics, state):
        moving = state.evolve(velocity=[10.0, -20.0, 30.0], thrust_level=0.8)
        stopped = dynamics.emergency_stop(moving)
        assert_allclose(stopped.velocity, np.zeros(3))
        assert stopped.thrust_level == 0.0
        assert stopped.fuel == moving.fuel

    def test_step_pipeline(self, dynamics, state):
        cmd = ThrustCommand(direction=BODY_FORWARD, level=1.0)
        new = dynamics.step(state, cmd, 1.0)
        assert new.velocity[2] == pytest.approx(-5000.0 / 1500.0)
        assert new.position[2] == pytest.approx(-5000.0 / 1500.0 / METERS_PER_AU)
        assert new.oxygen == pytest.approx(500.0 - 0.15)

    def test_step_without_command_cuts_throttle(self, dynamics, state):
        new = dynamics.step(state.evolve(thrust_level=0.6), None, 1.0)
        assert new.thrust_level == 0.0


# =============================================================================
# Test: Orientation
# =============================================================================

class TestOrientation:
    """Rotation from body rates and pointing."""

    def test_rotate_with_rates(self, dynamics, state):
        new = dynamics.rotate(state, [0.0, 0.1, 0.0], 0.1)
        assert np.linalg.norm(new.orientation.components) == pytest.approx(1.0)
        assert new.orientation != state.orientation

    def test_zero_rates_is_noop(self, dynamics, state):
        assert dynamics.rotate(state, [0.0, 0.0, 0.0], 1.0) is state

    def test_point_towards(self, dynamics, state):
        new = dynamics.point_towards(state, [0.0, 5.0, 0.0])
        nose = new.orientation.rotate_vector(BODY_FORWARD)
        assert_allclose(nose, [0.0, 1.0, 0.0], atol=1e-12)

    def test_point_towards_zero_is_noop(self, dynamics, state):
        assert dynamics.point_towards(state, [0.0, 0.0, 0.0]) is state


# =============================================================================
# Test: State record
# =============================================================================

class TestSpacecraftState:
    """Serialization and construction from configuration."""

    def test_dict_roundtrip(self, state):
        moved = state.evolve(velocity=[1.0, 2.0, 3.0], fuel=500.0, target_body="moon",
                             orientation=Quaternion.from_euler(0.1, 0.2, 0.3))
        assert SpacecraftState.from_dict(moved.to_dict()) == moved

    def test_to_dict_is_plain(self, state):
        record = state.to_dict()
        assert record["position"] == [1.0, 0.0, 0.0]
        assert record["orientation"] == [1.0, 0.0, 0.0, 0.0]

    def test_from_config_clamps_fuel(self):
        sc = SpacecraftState.from_config({"spacecraft": {"fuel": 2.0e4, "max_fuel": 1.0e4}})
        assert sc.fuel == 1.0e4

    def test_from_config_fills_tank(self):
        sc = SpacecraftState.from_config({"max_fuel": 800.0})
        assert sc.fuel == 800.0

    def test_invalid_vectors_sanitized(self):
        sc = SpacecraftState(velocity=[np.nan, 1.0, 1.0])
        assert_allclose(sc.velocity, np.zeros(3))

    def test_from_dict_enforces_invariants(self):
        sc = SpacecraftState.from_dict({
            "fuel": 5000.0, "max_fuel": 1000.0, "oxygen": -3.0,
            "power": np.nan, "thrust_level": -5.0,
        })
        assert sc.fuel == 1000.0
        assert sc.oxygen == 0.0
        assert sc.power == 0.0
        assert sc.thrust_level == 0.0

    def test_loaded_record_cannot_regain_consumables(self, dynamics):
        sc = SpacecraftState.from_dict({"thrust_level": -5.0, "oxygen": 10.0, "power": 10.0})
        new = dynamics.update_consumables(sc, 1.0)
        assert new.oxygen == pytest.approx(10.0 - 0.05)
        assert new.power == pytest.approx(10.0 - 0.2)

    @pytest.mark.parametrize("level, expected", [(3.0, 1.0), (-0.2, 0.0), (0.4, 0.4)])
    def test_evolve_clamps_throttle(self, state, level, expected):
        assert state.evolve(thrust_level=level).thrust_level == expected

    def test_euler_orientation_record(self):
        level = SpacecraftState.from_dict({"orientation": {"pitch": 0.0, "yaw": 0.0, "roll": 0.0}})
        assert level.orientation == Quaternion.identity()
        turned = SpacecraftState.from_dict({"orientation": {"yaw": np.pi / 2}})
        assert_allclose(turned.orientation.rotate_vector(BODY_RIGHT), [0.0, 1.0, 0.0],
                        atol=1e-12)
