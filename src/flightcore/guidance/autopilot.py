"""
===============================================================================
FLIGHT CORE - Target-Seeking Autopilot
===============================================================================
Simple bang-bang style guidance toward the selected target body.

When engaged the autopilot turns the nose onto the line of sight to the
target and fires the main engine at a throttle stepped down with distance:

    distance > 0.5 AU    full throttle
    distance > 0.1 AU    half throttle
    distance > 0.01 AU   10 % throttle
    otherwise            engines off (hand over to the pilot)

There is no braking logic; arriving slowly is the pilot's problem.
===============================================================================
"""

import logging
from typing import Iterable, Optional

import numpy as np

from flightcore.dynamics.bodies import PhysicsBody, find_body
from flightcore.dynamics.flight_dynamics import FlightDynamics
from flightcore.dynamics.spacecraft import EngineClass, SpacecraftState, ThrustCommand

logger = logging.getLogger(__name__)

# (distance threshold in AU, throttle) from far to near
THROTTLE_SCHEDULE = (
    (0.5, 1.0),
    (0.1, 0.5),
    (0.01, 0.1),
)


def throttle_for_distance(distance_au: float) -> float:
    """Throttle fraction for a given distance to the target (AU)."""
    for threshold, level in THROTTLE_SCHEDULE:
        if distance_au > threshold:
            return level
    return 0.0


def navigate_to_target(state: SpacecraftState, bodies: Iterable[PhysicsBody], dt: float,
                       dynamics: Optional[FlightDynamics] = None) -> SpacecraftState:
    """
    One autopilot frame.

    Does nothing unless ``state.autopilot`` is set and ``state.target_body``
    names a body in the catalog.  Otherwise the craft is pointed at the target
    and the main engine is fired according to :data:`THROTTLE_SCHEDULE`.

    Args:
        state: Current spacecraft state.
        bodies: Body catalog.
        dt: Frame length in simulated seconds.
        dynamics: Integrator to use; a default one is built if omitted.

    Returns:
        Updated spacecraft state.
    """
    if not state.autopilot or not state.target_body:
        return state

    target = find_body(bodies, state.target_body)
    if target is None:
        logger.warning("Autopilot target %r not in catalog", state.target_body)
        return state

    line_of_sight = target.position - state.position
    distance = float(np.linalg.norm(line_of_sight))
    if distance == 0.0:
        return state

    dynamics = dynamics or FlightDynamics()
    level = throttle_for_distance(distance)

    state = dynamics.point_towards(state, line_of_sight)
    command = ThrustCommand(direction=line_of_sight, level=level, engine=EngineClass.MAIN)
    return dynamics.apply_command(state, command, dt)
