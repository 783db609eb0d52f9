"""
===============================================================================
FLIGHT CORE - Spacecraft State
===============================================================================
The single mutable-by-replacement record that describes the piloted craft,
plus the thrust command type consumed by flight dynamics.

Units
-----
    position      AU (world frame)
    velocity      m/s (world frame)   <-- fixed unit for the whole core
    orientation   unit quaternion, body -> world, scalar first
    mass, fuel    kg
    oxygen        hours of breathable supply
    power         kWh
    rated_thrust  N

Flight dynamics never edits a state in place; it returns a new record built
with ``dataclasses.replace``.  Persistence and HUD code receive the plain
dictionary from :meth:`SpacecraftState.to_dict`.
===============================================================================
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import numpy as np
from numpy.typing import NDArray

from flightcore.core.constants import (
    DEFAULT_CREW_COUNT, DEFAULT_MAX_FUEL, DEFAULT_OXYGEN, DEFAULT_POWER,
    DEFAULT_RATED_THRUST, DEFAULT_SPACECRAFT_MASS,
)
from flightcore.core.quaternion import Quaternion
from flightcore.core.units import as_vector


class EngineClass(str, Enum):
    """
    MAIN -- high thrust, fires along the body forward axis only.
    RCS  -- low thrust, any of the six body axes.
    """
    MAIN = "main"
    RCS = "rcs"

    @classmethod
    def parse(cls, value: Any) -> "EngineClass":
        if isinstance(value, EngineClass):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown engine class: {value}. Valid: {[e.value for e in cls]}"
            ) from None


@dataclass(frozen=True)
class ThrustCommand:
    """
    A resolved thrust request for one frame.

    ``direction`` is a world-frame vector that need not be normalized;
    ``level`` is the throttle fraction.
    """
    direction: NDArray = field(default_factory=lambda: np.zeros(3))
    level: float = 0.0
    engine: EngineClass = EngineClass.MAIN

    def __post_init__(self) -> None:
        object.__setattr__(self, "direction", as_vector(self.direction))
        object.__setattr__(self, "engine", EngineClass.parse(self.engine))
        level = float(self.level) if np.isfinite(self.level) else 0.0
        object.__setattr__(self, "level", level)

    @property
    def is_idle(self) -> bool:
        return self.level <= 0.0 or not np.any(self.direction)


_VECTOR_FIELDS = ("position", "velocity", "thrust_vector")


def _clamp(value: float, low: float, high: float = math.inf) -> float:
    value = float(value)
    if math.isnan(value):
        return low
    return min(max(value, low), high)


@dataclass(eq=False)
class SpacecraftState:
    """
    Full state of the piloted spacecraft.

    Invariants, enforced on every construction (including ``evolve`` and
    ``from_dict``):
    0 <= fuel <= max_fuel, oxygen >= 0, power >= 0, 0 <= thrust_level <= 1.
    NaN in any of these reads as the lower bound.

    ``orientation`` may also be given as a list ``[w, x, y, z]`` or as a
    mapping of Euler angles in radians (``roll``, ``pitch``, ``yaw``).
    """
    name: str = "Imboni-1"
    position: NDArray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0]))
    velocity: NDArray = field(default_factory=lambda: np.zeros(3))
    orientation: Quaternion = field(default_factory=Quaternion.identity)
    mass: float = DEFAULT_SPACECRAFT_MASS
    fuel: float = DEFAULT_MAX_FUEL
    max_fuel: float = DEFAULT_MAX_FUEL
    oxygen: float = DEFAULT_OXYGEN
    power: float = DEFAULT_POWER
    rated_thrust: float = DEFAULT_RATED_THRUST
    thrust_vector: NDArray = field(default_factory=lambda: np.zeros(3))
    thrust_level: float = 0.0
    autopilot: bool = False
    target_body: Optional[str] = None
    crew_count: int = DEFAULT_CREW_COUNT

    def __post_init__(self) -> None:
        for name in _VECTOR_FIELDS:
            setattr(self, name, as_vector(getattr(self, name)))
        if isinstance(self.orientation, Mapping):
            angles = self.orientation
            self.orientation = Quaternion.from_euler(
                float(angles.get("roll", 0.0)),
                float(angles.get("pitch", 0.0)),
                float(angles.get("yaw", 0.0)),
            )
        elif not isinstance(self.orientation, Quaternion):
            self.orientation = Quaternion.from_list(self.orientation)

        self.max_fuel = _clamp(self.max_fuel, 0.0)
        self.fuel = _clamp(self.fuel, 0.0, self.max_fuel)
        self.oxygen = _clamp(self.oxygen, 0.0)
        self.power = _clamp(self.power, 0.0)
        self.thrust_level = _clamp(self.thrust_level, 0.0, 1.0)

    # ------------------------------------------------------------------ #
    @property
    def speed(self) -> float:
        """Speed magnitude in m/s."""
        return float(np.linalg.norm(self.velocity))

    def evolve(self, **changes: Any) -> "SpacecraftState":
        """Copy with *changes* applied (``dataclasses.replace``)."""
        return replace(self, **changes)

    # ------------------------------------------------------------------ #
    def to_dict(self) -> Dict[str, Any]:
        """Plain, JSON-friendly record."""
        record: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in _VECTOR_FIELDS:
                value = [float(c) for c in value]
            elif f.name == "orientation":
                value = value.to_list()
            record[f.name] = value
        return record

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "SpacecraftState":
        """
        Inverse of :meth:`to_dict`.  Unknown keys are ignored and missing
        ones take the dataclass defaults.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in record.items() if k in known}
        for key in ("mass", "fuel", "max_fuel", "oxygen", "power",
                    "rated_thrust", "thrust_level"):
            if key in kwargs:
                kwargs[key] = float(kwargs[key])
        if "crew_count" in kwargs:
            kwargs["crew_count"] = int(kwargs["crew_count"])
        return cls(**kwargs)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SpacecraftState":
        """Initial state from the ``spacecraft`` section of the scenario config."""
        sc = config.get("spacecraft", config)  # allow top-level or nested
        state = cls.from_dict(sc)
        if "fuel" not in sc:
            state = state.evolve(fuel=state.max_fuel)
        return state

    # ------------------------------------------------------------------ #
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SpacecraftState):
            return NotImplemented
        for f in fields(self):
            a, b = getattr(self, f.name), getattr(other, f.name)
            if f.name in _VECTOR_FIELDS:
                if not np.array_equal(a, b):
                    return False
            elif a != b:
                return False
        return True

    def __repr__(self) -> str:
        return (
            f"SpacecraftState(name={self.name!r}, speed={self.speed:.2f} m/s, "
            f"fuel={self.fuel:.1f}/{self.max_fuel:.1f} kg, "
            f"O2={self.oxygen:.2f} h, power={self.power:.1f} kWh, "
            f"throttle={self.thrust_level:.2f})"
        )
