"""
===============================================================================
FLIGHT CORE - Core Utilities Test Suite
===============================================================================
Tests for unit conversion, vector sanitizing, the orientation quaternion and
YAML configuration loading.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
import yaml
from numpy.testing import assert_allclose

from flightcore.core.config import DEFAULT_CONFIG, load_config, merge_config
from flightcore.core.constants import BODY_FORWARD, BODY_RIGHT, BODY_UP, METERS_PER_AU
from flightcore.core.quaternion import Quaternion
from flightcore.core.units import (
    SpaceScaler, as_vector, au_to_meters, m_s_to_au_s, meters_to_au, unit_vector,
    velocity_to_au_per_s,
)


# =============================================================================
# Test: Units
# =============================================================================

class TestUnits:
    """AU / meter conversion and vector sanitizing."""

    @pytest.mark.parametrize("position", [
        [1.0, 0.0, 0.0],
        [1.52, -0.3, 0.0001],
        [268000.0, 1.0e-9, -5.2],
    ])
    def test_au_meter_roundtrip(self, position):
        assert_allclose(meters_to_au(au_to_meters(position)), position, rtol=1e-15)

    def test_one_au(self):
        assert au_to_meters(1.0) == METERS_PER_AU
        assert m_s_to_au_s([METERS_PER_AU, 0.0, 0.0])[0] == 1.0

    def test_as_vector_rejects_garbage(self):
        for bad in (None, [1.0, 2.0], [np.nan, 0.0, 0.0], "abc", [[1, 2, 3], [4, 5, 6]]):
            assert_allclose(as_vector(bad), np.zeros(3))

    def test_as_vector_returns_float_copy(self):
        vec = as_vector((1, 2, 3))
        assert vec.dtype == np.float64
        assert_allclose(vec, [1.0, 2.0, 3.0])

    def test_unit_vector(self):
        assert_allclose(unit_vector([0.0, 3.0, 4.0]), [0.0, 0.6, 0.8])
        assert_allclose(unit_vector([0.0, 0.0, 0.0]), np.zeros(3))

    def test_scaler(self):
        scaler = SpaceScaler(100.0)
        assert_allclose(scaler.to_scene([1.5, 0.0, 0.0]), [150.0, 0.0, 0.0])
        assert_allclose(scaler.to_au(scaler.to_scene([0.3, 0.2, 0.1])), [0.3, 0.2, 0.1])
        assert_allclose(scaler.scene_velocity_to_m_s([100.0, 0.0, 0.0]),
                        [METERS_PER_AU, 0.0, 0.0])

    def test_scaler_rejects_non_positive(self):
        with pytest.raises(ValueError):
            SpaceScaler(0.0)

    def test_velocity_units(self):
        assert_allclose(velocity_to_au_per_s([METERS_PER_AU, 0.0, 0.0]), [1.0, 0.0, 0.0])
        assert_allclose(velocity_to_au_per_s([2.0, 0.0, 0.0], unit="AU/s"), [2.0, 0.0, 0.0])
        with pytest.raises(ValueError, match="SpaceScaler"):
            velocity_to_au_per_s([1.0, 0.0, 0.0], unit="scene/s")
        with pytest.raises(ValueError, match="Unknown velocity unit"):
            velocity_to_au_per_s([1.0, 0.0, 0.0], unit="km/h")


# =============================================================================
# Test: Quaternion
# =============================================================================

class TestQuaternion:
    """Orientation quaternion behaviour used by flight dynamics."""

    def test_identity_keeps_axes(self):
        q = Quaternion.identity()
        for axis in (BODY_FORWARD, BODY_RIGHT, BODY_UP):
            assert_allclose(q.rotate_vector(axis), axis)

    def test_axis_angle_rotation(self):
        q = Quaternion.from_axis_angle([0.0, 0.0, 1.0], np.pi / 2)
        assert_allclose(q.rotate_vector([1.0, 0.0, 0.0]), [0.0, 1.0, 0.0], atol=1e-12)

    @pytest.mark.parametrize("target", [
        [0.0, 1.0, 0.0],
        [1.0, 1.0, 1.0],
        [0.0, 0.0, 1.0],
        [0.0, 0.0, -2.0],
    ])
    def test_from_two_vectors(self, target):
        q = Quaternion.from_two_vectors(BODY_FORWARD, target)
        expected = np.asarray(target) / np.linalg.norm(target)
        assert_allclose(q.rotate_vector(BODY_FORWARD), expected, atol=1e-12)
        assert np.linalg.norm(q.components) == pytest.approx(1.0)

    def test_from_two_vectors_degenerate(self):
        assert Quaternion.from_two_vectors([0.0, 0.0, 0.0], [1.0, 0.0, 0.0]) == \
            Quaternion.identity()

    def test_scalar_part_non_negative(self):
        q = Quaternion(-0.5, 0.5, 0.5, 0.5)
        assert q.w >= 0.0
        assert q == Quaternion(0.5, -0.5, -0.5, -0.5)

    def test_degenerate_raises(self):
        with pytest.raises(ValueError):
            Quaternion(0.0, 0.0, 0.0, 0.0)

    def test_euler_roundtrip(self):
        q = Quaternion.from_euler(0.1, -0.2, 0.3)
        assert_allclose(q.to_euler(), (0.1, -0.2, 0.3), atol=1e-12)

    def test_propagate_constant_rate(self):
        """Small steps about +Y approach the exact axis-angle rotation."""
        q = Quaternion.identity()
        omega = np.array([0.0, 0.5, 0.0])
        for _ in range(1000):
            q = q.propagate(omega, 0.001)
        exact = Quaternion.from_axis_angle([0.0, 1.0, 0.0], 0.5)
        assert_allclose(q.components, exact.components, atol=1e-4)

    def test_list_roundtrip(self):
        q = Quaternion.from_euler(0.4, 0.1, -1.0)
        assert Quaternion.from_list(q.to_list()) == q


# =============================================================================
# Test: Configuration
# =============================================================================

class TestConfig:
    """YAML loading merged over defaults."""

    def test_defaults_without_file(self):
        config = load_config()
        for key in ("simulation", "spacecraft", "engines", "consumables", "gravity"):
            assert key in config
        assert config["engines"]["burn_rate"] == pytest.approx(1.0e-4)

    def test_partial_override(self, tmp_path):
        path = tmp_path / "flight.yaml"
        path.write_text(yaml.safe_dump({
            "simulation": {"time_scale": 5.0, "trajectory": {"steps": 50}},
            "spacecraft": {"name": "Test-7"},
        }))
        config = load_config(path)
        assert config["simulation"]["time_scale"] == 5.0
        assert config["simulation"]["trajectory"]["steps"] == 50
        assert config["simulation"]["trajectory"]["dt"] == 10.0
        assert config["spacecraft"]["name"] == "Test-7"
        assert config["spacecraft"]["rated_thrust"] == 5000.0

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == merge_config(DEFAULT_CONFIG, {})

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_non_mapping_raises(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_merge_does_not_mutate(self):
        base = {"a": {"b": 1, "c": 2}}
        merged = merge_config(base, {"a": {"b": 10}, "d": [1]})
        assert merged == {"a": {"b": 10, "c": 2}, "d": [1]}
        assert base == {"a": {"b": 1, "c": 2}}
