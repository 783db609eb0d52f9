"""
===============================================================================
FLIGHT CORE - Trajectory Predictor
===============================================================================
Forward-simulates the ballistic path of the spacecraft through the body
catalog so the renderer can draw where the craft is heading.  Display only:
nothing here feeds back into live flight.

Algorithm (explicit Euler, ``step_count`` iterations):

    v0 = velocity_m_s / METERS_PER_AU                  (AU/s, converted once)
    a  = gravity(x * METERS_PER_AU) / METERS_PER_AU    (AU/s^2)
    v += a * dt
    x += v * dt
    append x

Every quantity inside the loop is in AU and seconds.  The only unit
conversions happen at the boundary with the gravity model, which works in
meters.

The predicted path may pass straight through a body unless
``stop_on_impact`` is set, in which case each step is swept as a capsule
against every body sphere and the path ends at the first hit.
===============================================================================
"""

import logging
from typing import Iterable, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from flightcore.core.constants import (
    DEFAULT_TRAJECTORY_DT, DEFAULT_TRAJECTORY_STEPS, SHIP_COLLISION_RADIUS_AU,
)
from flightcore.core.units import as_vector, au_to_meters, m_s_to_au_s, meters_to_au
from flightcore.dynamics.bodies import PhysicsBody
from flightcore.dynamics.gravity import GravityModel

logger = logging.getLogger(__name__)


def _segment_hits_sphere(p0: NDArray, p1: NDArray, center: NDArray, radius: float) -> bool:
    """True if the segment p0->p1 passes within *radius* of *center*."""
    seg = p1 - p0
    seg_len_sq = float(np.dot(seg, seg))
    if seg_len_sq == 0.0:
        closest = p0
    else:
        t = float(np.dot(center - p0, seg)) / seg_len_sq
        closest = p0 + min(max(t, 0.0), 1.0) * seg
    return float(np.linalg.norm(closest - center)) <= radius


class TrajectoryPredictor:
    """
    Stateless forward integrator for path visualization.

    Parameters
    ----------
    gravity : GravityModel, optional
        Gravity evaluator; a default model is built if omitted.
    ship_radius_au : float, optional
        Spacecraft radius used by the impact test.
    """

    def __init__(self, gravity: Optional[GravityModel] = None,
                 ship_radius_au: float = SHIP_COLLISION_RADIUS_AU) -> None:
        self.gravity = gravity or GravityModel()
        self.ship_radius_au = float(ship_radius_au)

    def predict(self, position_au, velocity_m_s, bodies: Iterable[PhysicsBody],
                step_count: int = DEFAULT_TRAJECTORY_STEPS,
                dt: float = DEFAULT_TRAJECTORY_DT,
                stop_on_impact: bool = False) -> NDArray:
        """
        Predict future positions of the spacecraft.

        Parameters
        ----------
        position_au : array_like, shape (3,)
            Start position in AU.
        velocity_m_s : array_like, shape (3,)
            Start velocity in m/s.  Scaled-scene velocities must be converted
            first (see :func:`flightcore.core.units.velocity_to_au_per_s`).
        bodies : iterable of PhysicsBody
            Gravity sources.
        step_count : int
            Number of samples to produce.
        dt : float
            Integration step in seconds.
        stop_on_impact : bool
            End the path at the first step that sweeps through a body.

        Returns
        -------
        ndarray, shape (n, 3)
            Read-only AU positions, one per step.  ``n == step_count`` unless
            the path was cut short by an impact.
        """
        step_count = max(int(step_count), 0)
        if dt is None or not np.isfinite(dt):
            logger.warning("Non-finite trajectory dt %r; predicting a static path", dt)
            dt = 0.0

        body_list: Sequence[PhysicsBody] = list(bodies)
        position = as_vector(position_au).copy()
        velocity = m_s_to_au_s(as_vector(velocity_m_s))

        samples = np.empty((step_count, 3))
        count = 0
        for _ in range(step_count):
            accel_m = self.gravity.acceleration(au_to_meters(position), body_list)
            velocity = velocity + meters_to_au(accel_m) * dt
            next_position = position + velocity * dt

            if stop_on_impact and self._impacts(position, next_position, body_list):
                samples[count] = next_position
                count += 1
                logger.debug("Predicted impact after %d steps", count)
                break

            position = next_position
            samples[count] = position
            count += 1

        path = samples[:count]
        path.setflags(write=False)
        return path

    def _impacts(self, p0: NDArray, p1: NDArray, bodies: Sequence[PhysicsBody]) -> bool:
        for body in bodies:
            if body.radius <= 0.0:
                continue
            if _segment_hits_sphere(p0, p1, body.position, body.radius + self.ship_radius_au):
                return True
        return False

    def __repr__(self) -> str:
        return f"TrajectoryPredictor(gravity={self.gravity!r})"


class CachedTrajectoryPredictor(TrajectoryPredictor):
    """
    Predictor that only recomputes when its inputs change.

    The renderer asks for a path every frame, while the inputs usually stay
    put (paused game, coasting with the same catalog).  The cache key holds
    exact copies of the start vectors plus the body identities, so any change
    to position, velocity, step parameters or catalog triggers a new run.
    """

    def __init__(self, gravity: Optional[GravityModel] = None,
                 ship_radius_au: float = SHIP_COLLISION_RADIUS_AU) -> None:
        super().__init__(gravity, ship_radius_au)
        self._key = None
        self._path: Optional[NDArray] = None
        self.hits = 0
        self.misses = 0

    def _make_key(self, position_au, velocity_m_s, bodies, step_count, dt, stop_on_impact):
        return (
            tuple(as_vector(position_au)),
            tuple(as_vector(velocity_m_s)),
            tuple((b.id, b.mass, b.radius, tuple(b.position)) for b in bodies),
            int(step_count),
            float(dt),
            bool(stop_on_impact),
        )

    def predict(self, position_au, velocity_m_s, bodies: Iterable[PhysicsBody],
                step_count: int = DEFAULT_TRAJECTORY_STEPS,
                dt: float = DEFAULT_TRAJECTORY_DT,
                stop_on_impact: bool = False) -> NDArray:
        body_list = list(bodies)
        key = self._make_key(position_au, velocity_m_s, body_list, step_count, dt,
                             stop_on_impact)
        if key == self._key and self._path is not None:
            self.hits += 1
            return self._path

        self.misses += 1
        self._path = super().predict(position_au, velocity_m_s, body_list,
                                     step_count, dt, stop_on_impact)
        self._key = key
        return self._path

    def invalidate(self) -> None:
        self._key = None
        self._path = None
