"""
===============================================================================
FLIGHT CORE - Body Catalog
===============================================================================
Minimal physical description of the celestial bodies the flight core reacts
to.  Only what physics needs is kept here: mass, radius, a fixed position and
a type tag.  Everything a renderer cares about (textures, atmosphere colour,
cloud layers, emissive intensity) belongs to a separate renderable record
owned outside the core.

Conventions
-----------
    - position and radius in AU, mass in kg
    - bodies are fixed points; the core never propagates their orbits
    - ``parent`` is a weak reference by id, used only for orbit-line drawing
===============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
from numpy.typing import NDArray

from flightcore.core.units import as_vector

logger = logging.getLogger(__name__)


class BodyType(str, Enum):
    """Body classification.  Value is the lowercase tag used in catalogs."""
    STAR = "star"
    PLANET = "planet"
    MOON = "moon"
    ASTEROID = "asteroid"
    DWARF_PLANET = "dwarf_planet"
    BLACKHOLE = "blackhole"
    NEBULA = "nebula"
    ACCRETION_DISK = "accretion_disk"

    @classmethod
    def parse(cls, value: Any) -> "BodyType":
        """
        Accept a BodyType or a tag string (case-insensitive).

        Raises
        ------
        ValueError
            If the tag is unknown.
        """
        if isinstance(value, BodyType):
            return value
        tag = str(value).strip().lower().replace("accretiondisk", "accretion_disk")
        try:
            return cls(tag)
        except ValueError:
            valid = [t.value for t in cls]
            raise ValueError(f"Unknown body type: {value}. Valid: {valid}") from None


# Bodies you cannot land on.  They still pull gravitationally.
NON_SOLID_TYPES = frozenset({
    BodyType.STAR, BodyType.BLACKHOLE, BodyType.NEBULA, BodyType.ACCRETION_DISK,
})


@dataclass(frozen=True)
class PhysicsBody:
    """
    A celestial body as seen by the physics core.

    Parameters
    ----------
    id : str
        Catalog key (lowercase, unique).
    name : str
        Display name.
    mass : float
        Mass in kg.  Bodies with mass <= 0 exert no gravity.
    radius : float
        Mean radius in AU.
    position : ndarray, shape (3,)
        Fixed position in AU.
    body_type : BodyType
        Classification; decides whether the body is a landing candidate.
    parent : str, optional
        Id of the body it orbits (rendering only).
    """
    id: str
    name: str
    mass: float
    radius: float
    position: NDArray = field(compare=False)
    body_type: BodyType = BodyType.PLANET
    parent: Optional[str] = None

    def __post_init__(self) -> None:
        # frozen dataclass: go through object.__setattr__
        object.__setattr__(self, "position", as_vector(self.position))
        object.__setattr__(self, "body_type", BodyType.parse(self.body_type))
        object.__setattr__(self, "mass", float(self.mass))
        object.__setattr__(self, "radius", float(self.radius))

    @property
    def is_solid(self) -> bool:
        """True if the body can be landed on."""
        return self.body_type not in NON_SOLID_TYPES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "mass": self.mass,
            "radius": self.radius,
            "position": [float(c) for c in self.position],
            "type": self.body_type.value,
            "parent": self.parent,
        }

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "PhysicsBody":
        """
        Build a body from a catalog record.

        Records may carry extra rendering keys (texture, color, atmosphere...);
        they are ignored.  ``id`` defaults to the lowercased name.
        """
        name = str(record.get("name", record.get("id", "unnamed")))
        return cls(
            id=str(record.get("id", name.lower().replace(" ", "_"))),
            name=name,
            mass=float(record.get("mass", 0.0)),
            radius=float(record.get("radius", 0.0)),
            position=record.get("position", [0.0, 0.0, 0.0]),
            body_type=record.get("type", BodyType.PLANET),
            parent=record.get("parent"),
        )

    def __repr__(self) -> str:
        return (f"PhysicsBody(id={self.id!r}, type={self.body_type.value}, "
                f"mass={self.mass:.3e} kg, radius={self.radius:.3e} AU)")


# =============================================================================
# DEFAULT SOLAR SYSTEM
# =============================================================================

_SOLAR_SYSTEM_RECORDS: List[Dict[str, Any]] = [
    {"id": "sun", "name": "Sun", "mass": 1.989e30, "radius": 0.00465,
     "position": [0.0, 0.0, 0.0], "type": "star"},
    {"id": "mercury", "name": "Mercury", "mass": 3.3011e23, "radius": 0.0000166,
     "position": [0.39, 0.0, 0.0], "type": "planet"},
    {"id": "venus", "name": "Venus", "mass": 4.8675e24, "radius": 0.0000406,
     "position": [0.72, 0.0, 0.0], "type": "planet"},
    {"id": "earth", "name": "Earth", "mass": 5.972e24, "radius": 0.0000426,
     "position": [1.0, 0.0, 0.0], "type": "planet"},
    {"id": "moon", "name": "Moon", "mass": 7.342e22, "radius": 0.0000116,
     "position": [1.00257, 0.0, 0.0], "type": "moon", "parent": "earth"},
    {"id": "mars", "name": "Mars", "mass": 6.39e23, "radius": 0.0000227,
     "position": [1.52, 0.0, 0.0], "type": "planet"},
    {"id": "jupiter", "name": "Jupiter", "mass": 1.898e27, "radius": 0.000467,
     "position": [5.2, 0.0, 0.0], "type": "planet"},
    {"id": "proxima_centauri", "name": "Proxima Centauri", "mass": 2.428e29,
     "radius": 0.000007, "position": [268000.0, 0.0, 0.0], "type": "star"},
]


def load_catalog(records: Optional[Iterable[Dict[str, Any]]] = None) -> List[PhysicsBody]:
    """
    Build a body list from catalog records.

    Args:
        records: Iterable of dicts (see :meth:`PhysicsBody.from_dict`).  When
            None the built-in solar system is returned.

    Raises:
        ValueError: On duplicate ids or an unknown body type.
    """
    if records is None:
        records = _SOLAR_SYSTEM_RECORDS

    bodies: List[PhysicsBody] = []
    seen = set()
    for record in records:
        body = PhysicsBody.from_dict(record)
        if body.id in seen:
            raise ValueError(f"Duplicate body id in catalog: {body.id}")
        if body.mass < 0.0:
            logger.warning("Body %s has negative mass; it will exert no gravity", body.id)
        seen.add(body.id)
        bodies.append(body)

    logger.debug("Catalog loaded with %d bodies", len(bodies))
    return bodies


def default_catalog() -> List[PhysicsBody]:
    """The built-in solar system (Sun through Jupiter, plus Proxima Centauri)."""
    return load_catalog(None)


def find_body(bodies: Iterable[PhysicsBody], key: Optional[str]) -> Optional[PhysicsBody]:
    """Look a body up by id or name, case-insensitively.  None if absent."""
    if not key:
        return None
    wanted = str(key).strip().lower()
    for body in bodies:
        if body.id.lower() == wanted or body.name.lower() == wanted:
            return body
    return None
