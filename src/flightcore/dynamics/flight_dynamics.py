"""
===============================================================================
FLIGHT CORE - Flight Dynamics
===============================================================================
Thrust-driven integration of the piloted spacecraft and its consumables.

Every operation is a pure transformation: it takes a SpacecraftState and
returns a new one, never touching the input.  Integration is explicit
(forward) Euler:

    a = F / m                     F = rated_thrust * level
    v <- v + a * dt               (m/s)
    x <- x + v * dt               (x in AU, v converted to AU/s)

First order is enough here because dt is a single rendered frame and the
flight is pilot-driven rather than a long ballistic arc.  The trajectory
predictor is the place that looks far ahead.

Failure semantics
-----------------
Nothing in this module raises.  A degenerate direction, a dry tank, a
non-positive mass or a negative dt turns the call into a no-op that returns
the input state unchanged.  Running out of fuel, oxygen or power only shows
up in the returned field values; deciding that the game is over is the
caller's business.

Engine classes
--------------
    MAIN  full rated thrust along the body forward axis (-Z).  The commanded
          direction only selects how much of it is usable: the throttle is
          scaled by the cosine between command and nose, and a command
          pointing behind the craft produces nothing.
    RCS   a small fraction of rated thrust along any body axis, so any
          commanded direction is honoured as-is.
===============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

import numpy as np

from flightcore.core.constants import (
    BASE_OXYGEN_RATE, BASE_POWER_RATE, BODY_FORWARD, FUEL_BURN_RATE,
    RCS_THRUST_FRACTION, THRUST_OXYGEN_FACTOR, THRUST_POWER_FACTOR,
)
from flightcore.core.quaternion import Quaternion
from flightcore.core.units import as_vector, au_to_meters, m_s_to_au_s, unit_vector
from flightcore.dynamics.bodies import PhysicsBody
from flightcore.dynamics.gravity import GravityModel
from flightcore.dynamics.spacecraft import EngineClass, SpacecraftState, ThrustCommand

logger = logging.getLogger(__name__)


def _valid_dt(dt: float) -> bool:
    return dt is not None and np.isfinite(dt) and dt >= 0.0


# ============================================================================
#  CONFIGURATION
# ============================================================================

@dataclass
class FlightDynamicsConfig:
    """
    Engine and life-support tuning.

    burn_rate : float
        kg of fuel per N*s of commanded thrust.
    rcs_thrust_fraction : float
        RCS force as a fraction of the rated (main engine) thrust.
    base_oxygen_rate : float
        Oxygen hours consumed per crew member per simulated second.
    thrust_oxygen_factor : float
        Extra oxygen hours per second at full throttle.
    base_power_rate : float
        kWh per simulated second for housekeeping.
    thrust_power_factor : float
        Extra kWh per second at full throttle.
    """
    burn_rate: float = FUEL_BURN_RATE
    rcs_thrust_fraction: float = RCS_THRUST_FRACTION
    base_oxygen_rate: float = BASE_OXYGEN_RATE
    thrust_oxygen_factor: float = THRUST_OXYGEN_FACTOR
    base_power_rate: float = BASE_POWER_RATE
    thrust_power_factor: float = THRUST_POWER_FACTOR

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "FlightDynamicsConfig":
        engines = config.get("engines") or {}
        consumables = config.get("consumables") or {}
        return cls(
            burn_rate=float(engines.get("burn_rate", FUEL_BURN_RATE)),
            rcs_thrust_fraction=float(engines.get("rcs_thrust_fraction", RCS_THRUST_FRACTION)),
            base_oxygen_rate=float(consumables.get("base_oxygen_rate", BASE_OXYGEN_RATE)),
            thrust_oxygen_factor=float(consumables.get("thrust_oxygen_factor", THRUST_OXYGEN_FACTOR)),
            base_power_rate=float(consumables.get("base_power_rate", BASE_POWER_RATE)),
            thrust_power_factor=float(consumables.get("thrust_power_factor", THRUST_POWER_FACTOR)),
        )


# ============================================================================
#  FLIGHT DYNAMICS
# ============================================================================

class FlightDynamics:
    """
    Stateless integrator for the spacecraft record.

    Parameters
    ----------
    config : FlightDynamicsConfig, optional
        Tuning constants; defaults match the stock craft.
    gravity : GravityModel, optional
        Used only by :meth:`apply_gravity`.
    """

    def __init__(self, config: Optional[FlightDynamicsConfig] = None,
                 gravity: Optional[GravityModel] = None) -> None:
        self.config = config or FlightDynamicsConfig()
        self.gravity = gravity or GravityModel()

    # ================================================================== #
    #  Thrust
    # ================================================================== #

    def apply_thrust(self, state: SpacecraftState, direction, level: float,
                     dt: float, rated_thrust: Optional[float] = None) -> SpacecraftState:
        """
        Accelerate along *direction* at *level* of rated thrust for *dt* s.

        Parameters
        ----------
        state : SpacecraftState
            Current state (not modified).
        direction : array_like, shape (3,)
            World-frame direction; normalized here.
        level : float
            Throttle fraction, clamped to [0, 1].
        dt : float
            Step length in simulated seconds.
        rated_thrust : float, optional
            Override for the engine force at full throttle (N).  Defaults to
            ``state.rated_thrust``; the RCS path passes its reduced force.

        Returns
        -------
        SpacecraftState
            New state, or *state* itself when the call is a no-op.
        """
        if state.fuel <= 0.0:
            logger.debug("Thrust ignored: fuel exhausted")
            return state

        unit = unit_vector(direction)
        if not np.any(unit):
            logger.debug("Thrust ignored: degenerate direction %r", direction)
            return state

        if not _valid_dt(dt) or state.mass <= 0.0:
            return state

        level = float(level) if np.isfinite(level) else 0.0
        level = min(max(level, 0.0), 1.0)
        force_rating = state.rated_thrust if rated_thrust is None else float(rated_thrust)

        force = force_rating * level
        acceleration = force / state.mass
        new_velocity = state.velocity + acceleration * unit * dt

        fuel_used = force_rating * level * self.config.burn_rate * dt
        new_fuel = max(0.0, state.fuel - fuel_used)

        return state.evolve(
            velocity=new_velocity,
            fuel=new_fuel,
            thrust_vector=unit,
            thrust_level=level,
        )

    def apply_command(self, state: SpacecraftState, command: ThrustCommand,
                      dt: float) -> SpacecraftState:
        """
        Resolve a :class:`ThrustCommand` against the engine class and apply it.
        """
        if command.engine is EngineClass.RCS:
            rcs_force = state.rated_thrust * self.config.rcs_thrust_fraction
            return self.apply_thrust(state, command.direction, command.level, dt,
                                     rated_thrust=rcs_force)

        wanted = unit_vector(command.direction)
        if not np.any(wanted):
            return state

        forward = state.orientation.rotate_vector(BODY_FORWARD)
        alignment = float(np.dot(wanted, forward))
        if alignment <= 0.0:
            logger.debug("Main engine cannot fire backwards (alignment %.3f)", alignment)
            return state

        return self.apply_thrust(state, forward, command.level * alignment, dt)

    # ================================================================== #
    #  Consumables
    # ================================================================== #

    def update_consumables(self, state: SpacecraftState, dt: float) -> SpacecraftState:
        """
        Drain oxygen and power for *dt* seconds of flight.

            oxygen -= (base_oxygen_rate * crew + level * thrust_oxygen_factor) * dt
            power  -= (base_power_rate + level * thrust_power_factor) * dt

        Both are floored at zero, and since the throttle is held in [0, 1] neither ever rises.
        """
        if not _valid_dt(dt):
            return state

        cfg = self.config
        level = state.thrust_level

        oxygen_use = (cfg.base_oxygen_rate * state.crew_count
                      + level * cfg.thrust_oxygen_factor) * dt
        power_use = (cfg.base_power_rate + level * cfg.thrust_power_factor) * dt

        new_oxygen = max(0.0, state.oxygen - oxygen_use)
        new_power = max(0.0, state.power - power_use)

        if new_oxygen == 0.0 and state.oxygen > 0.0:
            logger.warning("Oxygen supply exhausted on %s", state.name)
        if new_power == 0.0 and state.power > 0.0:
            logger.warning("Power exhausted on %s", state.name)

        return state.evolve(oxygen=new_oxygen, power=new_power)

    # ================================================================== #
    #  Kinematics
    # ================================================================== #

    def integrate_position(self, state: SpacecraftState, dt: float) -> SpacecraftState:
        """x <- x + v * dt, with v taken from m/s into AU/s."""
        if not _valid_dt(dt):
            return state
        return state.evolve(position=state.position + m_s_to_au_s(state.velocity) * dt)

    def apply_gravity(self, state: SpacecraftState, bodies: Iterable[PhysicsBody],
                      dt: float) -> SpacecraftState:
        """
        v <- v + g(x) * dt.

        Live flight does not call this unless ``simulation.live_gravity`` is
        switched on; by default gravity only drives the predicted path.
        """
        if not _valid_dt(dt):
            return state
        accel = self.gravity.acceleration(au_to_meters(state.position), bodies)
        return state.evolve(velocity=state.velocity + accel * dt)

    def emergency_stop(self, state: SpacecraftState) -> SpacecraftState:
        """
        Kill all velocity and throttle at once.

        Not a physical result; a pilot control action.
        """
        logger.info("Emergency stop on %s at %.2f m/s", state.name, state.speed)
        return state.evolve(velocity=np.zeros(3), thrust_level=0.0)

    # ================================================================== #
    #  Orientation
    # ================================================================== #

    def rotate(self, state: SpacecraftState, body_rates, dt: float) -> SpacecraftState:
        """Propagate orientation by body angular rates (rad/s) over *dt*."""
        rates = as_vector(body_rates)
        if not _valid_dt(dt) or not np.any(rates):
            return state
        return state.evolve(orientation=state.orientation.propagate(rates, dt))

    def point_towards(self, state: SpacecraftState, direction) -> SpacecraftState:
        """Turn the nose (body -Z) onto *direction*.  No-op for a zero vector."""
        target = unit_vector(direction)
        if not np.any(target):
            return state
        return state.evolve(orientation=Quaternion.from_two_vectors(BODY_FORWARD, target))

    # ================================================================== #
    #  Convenience
    # ================================================================== #

    def step(self, state: SpacecraftState, command: Optional[ThrustCommand], dt: float,
             bodies: Optional[Iterable[PhysicsBody]] = None,
             live_gravity: bool = False) -> SpacecraftState:
        """
        One frame of flight: thrust, optional gravity, consumables, position.
        """
        if command is not None:
            state = self.apply_command(state, command, dt)
        else:
            state = state.evolve(thrust_level=0.0) if state.thrust_level else state
        if live_gravity and bodies is not None:
            state = self.apply_gravity(state, bodies, dt)
        state = self.update_consumables(state, dt)
        return self.integrate_position(state, dt)

    def __repr__(self) -> str:
        return f"FlightDynamics(config={self.config})"
