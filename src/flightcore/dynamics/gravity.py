"""
===============================================================================
FLIGHT CORE - Gravity Model
===============================================================================
Net Newtonian point-mass acceleration on a test particle from every body in
the catalog:

    a = sum_i  G * M_i / |r_i - p|^2  *  (r_i - p) / |r_i - p|

with G = 6.67430e-11 m^3/(kg s^2).  Bodies are fixed points.

Numerical guard rails
---------------------
    - bodies with a non-finite or non-positive mass contribute nothing,
      and so does any single term that overflows
    - a body closer than ``min_distance_m`` to the point contributes nothing;
      what happens at that range is a collision, and collisions belong to the
      landing controller
    - non-finite input positions are treated as the origin, so the output is
      always a finite vector

The model is a pure function of its inputs and costs O(bodies) per call.
===============================================================================
"""

import logging
from typing import Dict, Iterable

import numpy as np
from numpy.typing import NDArray

from flightcore.core.constants import GRAVITATIONAL_CONSTANT, MIN_GRAVITY_DISTANCE_M
from flightcore.core.units import as_vector, au_to_meters, meters_to_au
from flightcore.dynamics.bodies import PhysicsBody

logger = logging.getLogger(__name__)


class GravityModel:
    """
    Point-mass gravity from a body catalog.

    Parameters
    ----------
    min_distance_m : float, optional
        Collision-proximity floor (m).  Default 1 m.
    """

    def __init__(self, min_distance_m: float = MIN_GRAVITY_DISTANCE_M) -> None:
        self.min_distance_m = float(min_distance_m)

    @classmethod
    def from_config(cls, config: dict) -> "GravityModel":
        cfg = config.get("gravity", config)  # allow top-level or nested
        return cls(min_distance_m=float(cfg.get("min_distance_m", MIN_GRAVITY_DISTANCE_M)))

    # ------------------------------------------------------------------ #
    def _contribution(self, point_m: NDArray, body: PhysicsBody) -> NDArray:
        if not (np.isfinite(body.mass) and body.mass > 0.0):
            return np.zeros(3)

        r_vec = au_to_meters(body.position) - point_m
        distance = np.linalg.norm(r_vec)

        if not np.isfinite(distance) or distance < self.min_distance_m:
            return np.zeros(3)

        with np.errstate(over="ignore", invalid="ignore"):
            magnitude = GRAVITATIONAL_CONSTANT * body.mass / (distance * distance)
            term = magnitude * (r_vec / distance)
        if not np.all(np.isfinite(term)):
            logger.warning("Non-finite pull from %s dropped", body.id)
            return np.zeros(3)
        return term

    # ------------------------------------------------------------------ #
    def acceleration(self, point_position_m, bodies: Iterable[PhysicsBody]) -> NDArray:
        """
        Net gravitational acceleration at a point.

        Parameters
        ----------
        point_position_m : array_like, shape (3,)
            Position of the test particle in meters (same frame as the
            catalog positions, which are stored in AU).
        bodies : iterable of PhysicsBody
            The catalog.

        Returns
        -------
        ndarray, shape (3,)
            Acceleration in m/s^2.  Always finite.
        """
        point_m = as_vector(point_position_m)
        total = np.zeros(3)
        for body in bodies:
            total += self._contribution(point_m, body)

        if not np.all(np.isfinite(total)):
            # several huge but finite terms can still overflow the sum
            logger.warning("Non-finite gravity sum at %s; returning zero", point_m)
            return np.zeros(3)
        return total

    def acceleration_au(self, point_position_au, bodies: Iterable[PhysicsBody]) -> NDArray:
        """Same as :meth:`acceleration` but with AU in and AU/s^2 out."""
        point_m = au_to_meters(as_vector(point_position_au))
        return meters_to_au(self.acceleration(point_m, bodies))

    def body_contributions(self, point_position_m,
                           bodies: Iterable[PhysicsBody]) -> Dict[str, NDArray]:
        """Per-body acceleration vectors (m/s^2), keyed by body id."""
        point_m = as_vector(point_position_m)
        return {body.id: self._contribution(point_m, body) for body in bodies}

    def dominant_body(self, point_position_m, bodies: Iterable[PhysicsBody]):
        """
        The body with the strongest pull at the point, or None if nothing
        pulls (empty catalog, all massless, or all inside the floor).
        """
        best = None
        best_mag = 0.0
        point_m = as_vector(point_position_m)
        for body in bodies:
            mag = np.linalg.norm(self._contribution(point_m, body))
            if mag > best_mag:
                best, best_mag = body, mag
        return best

    def __repr__(self) -> str:
        return f"GravityModel(min_distance_m={self.min_distance_m})"


_DEFAULT_MODEL = GravityModel()


def acceleration(point_position_m, bodies: Iterable[PhysicsBody]) -> NDArray:
    """Module-level shortcut using the default distance floor."""
    return _DEFAULT_MODEL.acceleration(point_position_m, bodies)
