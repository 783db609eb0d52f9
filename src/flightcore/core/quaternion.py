"""
===============================================================================
FLIGHT CORE - Orientation Quaternion
===============================================================================

Unit quaternion used to carry the spacecraft orientation.  The flight core
only needs a handful of operations from it:

    - rotating body-frame axes (forward / right / up) into the world frame
      so an engine class can be resolved against a commanded direction,
    - building the orientation that points the nose along a direction
      (autopilot, "face the target"),
    - first-order propagation from body rates for pilot rotation input,
    - roll/pitch/yaw angles for telemetry and for state records that
      store orientation as Euler angles,
    - a plain list form for the serializable state record.

Convention
----------
Scalar first, Hamilton product:

    q = [w, x, y, z] = w + x*i + y*j + z*k

The quaternion maps body-frame vectors into the world frame:

    v_world = q * v_body * q_conjugate

Two quaternions q and -q encode the same rotation; the constructor keeps
w >= 0 so telemetry does not flip sign between frames.
===============================================================================
"""

import numpy as np
from typing import List, Sequence, Tuple


class Quaternion:
    """
    Unit quaternion for spacecraft orientation.

    Parameters
    ----------
    w, x, y, z : float
        Scalar part followed by the vector part.
    normalize : bool, optional
        Normalize on construction (default True).

    Examples
    --------
    >>> q = Quaternion.from_axis_angle(np.array([0.0, 1.0, 0.0]), np.pi / 2)
    >>> nose = q.rotate_vector(np.array([0.0, 0.0, -1.0]))  # ~[-1, 0, 0]
    """

    _NORM_TOLERANCE = 1e-10
    _COMPARISON_TOLERANCE = 1e-9

    def __init__(self, w: float, x: float, y: float, z: float,
                 normalize: bool = True) -> None:
        self._q = np.array([w, x, y, z], dtype=np.float64)

        if normalize:
            self._normalize_in_place()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def w(self) -> float:
        return float(self._q[0])

    @property
    def x(self) -> float:
        return float(self._q[1])

    @property
    def y(self) -> float:
        return float(self._q[2])

    @property
    def z(self) -> float:
        return float(self._q[3])

    @property
    def components(self) -> np.ndarray:
        """All four components [w, x, y, z] as a copy."""
        return self._q.copy()

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _normalize_in_place(self) -> None:
        """
        Scale to unit norm and enforce w >= 0.

        Raises
        ------
        ValueError
            If the quaternion has near-zero norm.
        """
        n = np.linalg.norm(self._q)

        if not np.isfinite(n) or n < self._NORM_TOLERANCE:
            raise ValueError(
                f"Cannot normalize degenerate quaternion (norm = {n:.2e})."
            )

        self._q /= n

        if self._q[0] < 0.0:
            self._q = -self._q

    # =========================================================================
    # FACTORIES
    # =========================================================================

    @staticmethod
    def identity() -> 'Quaternion':
        """Zero rotation: body axes coincide with world axes."""
        return Quaternion(1.0, 0.0, 0.0, 0.0, normalize=False)

    @staticmethod
    def from_axis_angle(axis: np.ndarray, angle: float) -> 'Quaternion':
        """
        Rotation by *angle* radians about *axis*.

            q = [cos(angle/2), sin(angle/2) * n]

        Raises
        ------
        ValueError
            If the axis has near-zero magnitude.
        """
        axis = np.asarray(axis, dtype=np.float64)
        axis_norm = np.linalg.norm(axis)

        if axis_norm < 1e-12:
            raise ValueError("Rotation axis has near-zero magnitude.")

        n = axis / axis_norm
        half_angle = angle / 2.0
        sin_half = np.sin(half_angle)
        return Quaternion(np.cos(half_angle),
                          sin_half * n[0], sin_half * n[1], sin_half * n[2])

    @staticmethod
    def from_euler(roll: float, pitch: float, yaw: float) -> 'Quaternion':
        """
        Quaternion from 3-2-1 (yaw, pitch, roll) Euler angles in radians.

        Built as q = q_z(yaw) * q_y(pitch) * q_x(roll).
        """
        cr, sr = np.cos(roll / 2.0), np.sin(roll / 2.0)
        cp, sp = np.cos(pitch / 2.0), np.sin(pitch / 2.0)
        cy, sy = np.cos(yaw / 2.0), np.sin(yaw / 2.0)

        w = cr * cp * cy + sr * sp * sy
        x = sr * cp * cy - cr * sp * sy
        y = cr * sp * cy + sr * cp * sy
        z = cr * cp * sy - sr * sp * cy
        return Quaternion(w, x, y, z)

    @staticmethod
    def from_two_vectors(source: np.ndarray, target: np.ndarray) -> 'Quaternion':
        """
        Shortest rotation that carries *source* onto *target*.

        Degenerate inputs (either vector of zero length) give the identity.
        Antiparallel vectors rotate half a turn about any axis perpendicular
        to *source*.
        """
        source = np.asarray(source, dtype=np.float64)
        target = np.asarray(target, dtype=np.float64)
        ns = np.linalg.norm(source)
        nt = np.linalg.norm(target)
        if ns < 1e-12 or nt < 1e-12:
            return Quaternion.identity()

        s = source / ns
        t = target / nt
        cross = np.cross(s, t)
        cross_mag = np.linalg.norm(cross)
        dot = float(np.dot(s, t))

        if cross_mag < 1e-12:
            if dot > 0.0:
                return Quaternion.identity()
            # pick any axis perpendicular to s
            helper = np.array([1.0, 0.0, 0.0])
            if abs(s[0]) > 0.9:
                helper = np.array([0.0, 1.0, 0.0])
            return Quaternion.from_axis_angle(np.cross(s, helper), np.pi)

        angle = np.arccos(np.clip(dot, -1.0, 1.0))
        return Quaternion.from_axis_angle(cross / cross_mag, angle)

    @staticmethod
    def from_list(values: Sequence[float]) -> 'Quaternion':
        """Inverse of :meth:`to_list`."""
        w, x, y, z = (float(v) for v in values)
        return Quaternion(w, x, y, z)

    # =========================================================================
    # ALGEBRA
    # =========================================================================

    def rotate_vector(self, v: np.ndarray) -> np.ndarray:
        """
        Rotate a body-frame vector into the world frame.

        Uses the two-cross-product form of the sandwich product:

            t  = 2 * (u x v)
            v' = v + w * t + u x t
        """
        v = np.asarray(v, dtype=np.float64)
        u = self._q[1:]
        t = 2.0 * np.cross(u, v)
        return v + self._q[0] * t + np.cross(u, t)

    def to_euler(self) -> Tuple[float, float, float]:
        """(roll, pitch, yaw) in radians, 3-2-1 sequence."""
        w, x, y, z = self._q

        roll = np.arctan2(2.0 * (w * x + y * z), 1.0 - 2.0 * (x * x + y * y))
        sinp = np.clip(2.0 * (w * y - z * x), -1.0, 1.0)
        pitch = np.arcsin(sinp)
        yaw = np.arctan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))
        return float(roll), float(pitch), float(yaw)

    # =========================================================================
    # KINEMATICS
    # =========================================================================

    def derivative(self, omega: np.ndarray) -> np.ndarray:
        """
        dq/dt = 0.5 * q (*) [0, omega], with omega in the body frame (rad/s).
        """
        omega = np.asarray(omega, dtype=np.float64)
        w, x, y, z = self._q
        ox, oy, oz = omega

        return 0.5 * np.array([
            -x * ox - y * oy - z * oz,
             w * ox - z * oy + y * oz,
             z * ox + w * oy - x * oz,
            -y * ox + x * oy + w * oz,
        ], dtype=np.float64)

    def propagate(self, omega: np.ndarray, dt: float) -> 'Quaternion':
        """
        First-order step q(t + dt) = q + dq/dt * dt, renormalized.

        Adequate while dt is much shorter than the rotation period, which
        holds for pilot-commanded rotation rates at frame-sized steps.
        """
        new_q = self._q + self.derivative(omega) * dt
        return Quaternion(new_q[0], new_q[1], new_q[2], new_q[3])

    # =========================================================================
    # OPERATORS
    # =========================================================================

    def __eq__(self, other: object) -> bool:
        """Same rotation within tolerance (q and -q compare equal)."""
        if not isinstance(other, Quaternion):
            return NotImplemented
        diff_pos = np.linalg.norm(self._q - other._q)
        diff_neg = np.linalg.norm(self._q + other._q)
        return min(diff_pos, diff_neg) < self._COMPARISON_TOLERANCE

    def __repr__(self) -> str:
        return (f"Quaternion(w={self.w:+.8f}, x={self.x:+.8f}, "
                f"y={self.y:+.8f}, z={self.z:+.8f})")

    # =========================================================================
    # UTILITIES
    # =========================================================================

    def to_list(self) -> List[float]:
        """Components as a plain list, for the serializable state record."""
        return [float(c) for c in self._q]
