"""
===============================================================================
FLIGHT CORE - Unit Conversions
===============================================================================
Conversions between the three length scales that meet in the flight core:

    AU      -- positions of bodies and of the spacecraft
    meters  -- gravity, altitude and everything SI
    scaled  -- scene units used by the renderer (AU * scale factor)

Velocities follow the same rules: the spacecraft state stores m/s, the
trajectory predictor integrates in AU/s, and a renderer-side physics engine
may report scaled units per second.  Mixing these silently is the classic
source of wildly wrong predicted paths, so every crossing goes through a
function in this module.
===============================================================================
"""

import logging

import numpy as np
from numpy.typing import NDArray

from flightcore.core.constants import METERS_PER_AU

logger = logging.getLogger(__name__)


def as_vector(value) -> NDArray:
    """
    Coerce *value* into a finite float 3-vector.

    Anything that is not a 3-element sequence of finite numbers (None, NaN
    components, wrong shape) comes back as the zero vector.
    """
    if value is None:
        return np.zeros(3)
    try:
        vec = np.asarray(value, dtype=np.float64).reshape(-1)
    except (TypeError, ValueError):
        logger.warning("Unreadable vector %r replaced with zero", value)
        return np.zeros(3)
    if vec.shape != (3,) or not np.all(np.isfinite(vec)):
        logger.warning("Invalid vector %r replaced with zero", value)
        return np.zeros(3)
    return vec


def unit_vector(value, tolerance: float = 1e-12) -> NDArray:
    """Normalized copy of *value*, or the zero vector if it is degenerate."""
    vec = as_vector(value)
    norm = np.linalg.norm(vec)
    if norm < tolerance:
        return np.zeros(3)
    return vec / norm


def au_to_meters(value):
    """AU -> meters.  Works on scalars and arrays."""
    return np.asarray(value, dtype=np.float64) * METERS_PER_AU


def meters_to_au(value):
    """meters -> AU.  Works on scalars and arrays."""
    return np.asarray(value, dtype=np.float64) / METERS_PER_AU


def m_s_to_au_s(velocity) -> NDArray:
    """Velocity in m/s -> AU/s."""
    return meters_to_au(velocity)


def au_s_to_m_s(velocity) -> NDArray:
    """Velocity in AU/s -> m/s."""
    return au_to_meters(velocity)


class SpaceScaler:
    """
    Converts between AU and renderer scene units.

    The scene draws 1 AU as ``scale_factor`` units, so a physics body living in
    scene space reports velocities in scene units per second.

    Parameters
    ----------
    scale_factor : float
        Scene units per AU (default 100).
    """

    def __init__(self, scale_factor: float = 100.0) -> None:
        if scale_factor <= 0.0:
            raise ValueError(f"scale_factor must be positive, got {scale_factor}")
        self.scale_factor = float(scale_factor)

    def to_scene(self, value_au):
        return np.asarray(value_au, dtype=np.float64) * self.scale_factor

    def to_au(self, value_scene):
        return np.asarray(value_scene, dtype=np.float64) / self.scale_factor

    def scene_velocity_to_m_s(self, velocity_scene) -> NDArray:
        """Scene units/s -> AU/s -> m/s."""
        return au_s_to_m_s(self.to_au(velocity_scene))

    def m_s_to_scene_velocity(self, velocity_m_s) -> NDArray:
        return self.to_scene(m_s_to_au_s(velocity_m_s))

    def __repr__(self) -> str:
        return f"SpaceScaler(scale_factor={self.scale_factor})"


def velocity_to_au_per_s(velocity, unit: str = "m/s",
                         scaler: SpaceScaler = None) -> NDArray:
    """
    Express *velocity* in AU/s.

    Parameters
    ----------
    velocity : array_like, shape (3,)
        Velocity vector in the given unit.
    unit : str
        One of ``'m/s'``, ``'au/s'`` or ``'scene/s'``.
    scaler : SpaceScaler, optional
        Required for ``'scene/s'``.

    Raises
    ------
    ValueError
        If the unit is unknown or a scene velocity is given without a scaler.
    """
    vec = as_vector(velocity)
    unit = unit.lower()
    if unit == "m/s":
        return m_s_to_au_s(vec)
    if unit == "au/s":
        return vec
    if unit == "scene/s":
        if scaler is None:
            raise ValueError("A SpaceScaler is required for scene velocities")
        return scaler.to_au(vec)
    raise ValueError(f"Unknown velocity unit: {unit}. Valid: m/s, au/s, scene/s")
