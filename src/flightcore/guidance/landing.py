"""
===============================================================================
FLIGHT CORE - Landing Controller
===============================================================================
Altitude-driven landing state machine with touchdown classification.

Each frame the controller finds the nearest solid body, measures altitude
above its surface and maps that altitude onto one of seven phases:

    Phase               Altitude above surface (m)
    -----------------   ---------------------------
    SPACE               > 50,000,000
    APPROACH            (100,000, 50,000,000]
    ATMOSPHERIC_ENTRY   (50,000, 100,000]
    DESCENT             (1,000, 50,000]
    FINAL_APPROACH      (100, 1,000]
    TOUCHDOWN           (1, 100]
    LANDED              <= 1

The phase is a pure function of the current altitude.  History only matters
for deciding *whether* a transition happened, and therefore whether effect
events are emitted.  There is no hysteresis band: an altitude jittering on a
boundary flips the phase (and re-emits its events) every frame.

Presentation is kept out of this module.  A transition produces a list of
:class:`LandingEvent` values (atmosphere glow, camera shake, dust, gear,
touchdown) that the renderer dispatches however it likes.

Above 100,000,000 m the phase is not recomputed at all; the craft is out of
landing range and the last phase is held.
===============================================================================
"""

import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

from flightcore.core.constants import (
    CRITICAL_SPEED, DAMAGE_THRESHOLD_SPEED, DENSE_ATMOSPHERE,
    FINAL_APPROACH_ALTITUDE, KARMAN_LINE, LANDING_TRACKING_LIMIT,
    RETRO_ALTITUDE_DIVISOR, RETRO_GAIN, RETRO_MIN_TARGET_SPEED,
    SAFE_LANDING_SPEED, SPACE_ALTITUDE, SURFACE_ALTITUDE, TOUCHDOWN_ZONE,
    VERTICAL_AXIS,
)
from flightcore.core.units import as_vector, au_to_meters
from flightcore.dynamics.bodies import PhysicsBody
from flightcore.dynamics.spacecraft import SpacecraftState

logger = logging.getLogger(__name__)


# =============================================================================
# PHASES AND EVENTS
# =============================================================================

class LandingPhase(IntEnum):
    """Landing phases from farthest to surface contact."""
    SPACE = 0
    APPROACH = 1
    ATMOSPHERIC_ENTRY = 2
    DESCENT = 3
    FINAL_APPROACH = 4
    TOUCHDOWN = 5
    LANDED = 6


class LandingEventKind(str, Enum):
    ATMOSPHERE_EFFECTS = "atmosphere_effects"
    CAMERA_SHAKE = "camera_shake"
    DEPLOY_GEAR = "deploy_gear"
    DUST_EFFECTS = "dust_effects"
    TOUCHDOWN = "touchdown"


@dataclass(frozen=True)
class LandingOutcome:
    """Touchdown classification.  ``damage`` is a percentage, 0..100."""
    success: bool
    damage: float
    message: str


@dataclass(frozen=True)
class LandingEvent:
    """
    One effect emitted by a phase transition.

    ``intensity`` is only meaningful for CAMERA_SHAKE; ``outcome`` is only
    set on TOUCHDOWN.
    """
    kind: LandingEventKind
    intensity: float = 0.0
    outcome: Optional[LandingOutcome] = None


# Camera shake intensity applied on entering each phase
_SHAKE_BY_PHASE = {
    LandingPhase.ATMOSPHERIC_ENTRY: 0.3,
    LandingPhase.DESCENT: 0.1,
    LandingPhase.TOUCHDOWN: 0.5,
}


# =============================================================================
# PURE FUNCTIONS
# =============================================================================

def phase_for_altitude(altitude: float) -> LandingPhase:
    """
    Map altitude above the surface (m) to a landing phase.

    NaN is treated as being out of range (SPACE).
    """
    if altitude is None or math.isnan(altitude) or altitude > SPACE_ALTITUDE:
        return LandingPhase.SPACE
    if altitude > KARMAN_LINE:
        return LandingPhase.APPROACH
    if altitude > DENSE_ATMOSPHERE:
        return LandingPhase.ATMOSPHERIC_ENTRY
    if altitude > FINAL_APPROACH_ALTITUDE:
        return LandingPhase.DESCENT
    if altitude > TOUCHDOWN_ZONE:
        return LandingPhase.FINAL_APPROACH
    if altitude > SURFACE_ALTITUDE:
        return LandingPhase.TOUCHDOWN
    return LandingPhase.LANDED


def handle_landing(vertical_speed: float) -> LandingOutcome:
    """
    Classify a touchdown by the magnitude of the vertical speed (m/s).

        speed < 5          success, no damage
        5  <= speed < 15   success, damage = (speed - 5) * 5
        15 <= speed < 30   failure, damage = 50 + (speed - 15) * 3
        speed >= 30        failure, damage = 100
    """
    speed = abs(float(vertical_speed))

    if speed < SAFE_LANDING_SPEED:
        return LandingOutcome(True, 0.0, "Perfect landing!")
    if speed < DAMAGE_THRESHOLD_SPEED:
        damage = (speed - SAFE_LANDING_SPEED) * 5.0
        return LandingOutcome(True, damage, "Rough landing - minor damage")
    if speed < CRITICAL_SPEED:
        damage = 50.0 + (speed - DAMAGE_THRESHOLD_SPEED) * 3.0
        return LandingOutcome(False, damage, "Hard landing - major damage")
    return LandingOutcome(False, 100.0, "Catastrophic impact!")


def calculate_retro_thrust(altitude: float, vertical_speed: float) -> float:
    """
    Recommended throttle fraction to slow the descent.

    Proportional advisory only, computed below 1000 m.  The target sink rate
    shrinks with altitude (never below 2 m/s); the recommendation is the
    excess sink rate times 0.1, clamped to [0, 1].
    """
    if not altitude <= FINAL_APPROACH_ALTITUDE:
        return 0.0
    target_speed = max(RETRO_MIN_TARGET_SPEED, altitude / RETRO_ALTITUDE_DIVISOR)
    error = vertical_speed - target_speed
    if math.isnan(error):
        return 0.0
    return min(1.0, max(0.0, error * RETRO_GAIN))


def find_nearest_solid_body(position_au,
                            bodies: Iterable[PhysicsBody]) -> Tuple[Optional[PhysicsBody], float]:
    """
    Find the solid body whose surface is closest to *position_au*.

    Returns
    -------
    (body, altitude_m)
        ``altitude_m`` is centre distance minus radius, in meters, and may be
        negative when the craft is below the surface.  ``(None, inf)`` if the
        catalog holds no solid body.
    """
    point = as_vector(position_au)
    nearest: Optional[PhysicsBody] = None
    best = math.inf
    for body in bodies:
        if not body.is_solid:
            continue
        surface_au = float(np.linalg.norm(point - body.position)) - body.radius
        altitude = float(au_to_meters(surface_au))
        if altitude < best:
            nearest, best = body, altitude
    return nearest, best


def resolve_transition(previous: LandingPhase, current: LandingPhase,
                       gear_deployed: bool,
                       vertical_speed: float = 0.0) -> List[LandingEvent]:
    """
    Effects emitted when the phase goes from *previous* to *current*.

    Nothing is emitted when the phase is unchanged.  Effects depend only on
    the phase being entered:

        ATMOSPHERIC_ENTRY   atmosphere effects, camera shake 0.3
        DESCENT             camera shake 0.1
        FINAL_APPROACH      gear deployment (only if not yet deployed)
        TOUCHDOWN           dust effects, camera shake 0.5
        LANDED              touchdown with its classified outcome
    """
    if previous == current:
        return []

    events: List[LandingEvent] = []
    if current == LandingPhase.ATMOSPHERIC_ENTRY:
        events.append(LandingEvent(LandingEventKind.ATMOSPHERE_EFFECTS))
    elif current == LandingPhase.FINAL_APPROACH:
        if not gear_deployed:
            events.append(LandingEvent(LandingEventKind.DEPLOY_GEAR))
    elif current == LandingPhase.TOUCHDOWN:
        events.append(LandingEvent(LandingEventKind.DUST_EFFECTS))
    elif current == LandingPhase.LANDED:
        events.append(LandingEvent(LandingEventKind.TOUCHDOWN,
                                   outcome=handle_landing(vertical_speed)))

    shake = _SHAKE_BY_PHASE.get(current)
    if shake is not None:
        events.append(LandingEvent(LandingEventKind.CAMERA_SHAKE, intensity=shake))
    return events


# =============================================================================
# CONTROLLER
# =============================================================================

@dataclass
class LandingContext:
    """
    Per-descent landing state, owned by :class:`LandingController`.

    Attributes:
        phase:              Current landing phase.
        altitude:           Meters above the target body's surface.
        vertical_speed:     m/s, positive when descending.
        total_speed:        m/s.
        target_body:        Id of the nearest solid body, or None.
        recommended_thrust: Retro-thrust advisory, 0..1.
        gear_deployed:      Landing gear is out (stays out for the attempt).
        outcome:            Touchdown classification once LANDED is entered.
    """
    phase: LandingPhase = LandingPhase.SPACE
    altitude: float = math.inf
    vertical_speed: float = 0.0
    total_speed: float = 0.0
    target_body: Optional[str] = None
    recommended_thrust: float = 0.0
    gear_deployed: bool = False
    outcome: Optional[LandingOutcome] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.name,
            "altitude": self.altitude,
            "vertical_speed": self.vertical_speed,
            "total_speed": self.total_speed,
            "target_body": self.target_body,
            "recommended_thrust": self.recommended_thrust,
            "gear_deployed": self.gear_deployed,
            "landing_success": None if self.outcome is None else self.outcome.success,
            "landing_damage": None if self.outcome is None else self.outcome.damage,
        }


@dataclass(frozen=True)
class LandingUpdate:
    """Result of one controller tick: a context snapshot plus emitted events."""
    context: LandingContext
    previous_phase: LandingPhase = LandingPhase.SPACE
    events: Tuple[LandingEvent, ...] = field(default_factory=tuple)

    @property
    def phase_changed(self) -> bool:
        return self.previous_phase != self.context.phase

    @property
    def touchdown(self) -> Optional[LandingOutcome]:
        for event in self.events:
            if event.kind is LandingEventKind.TOUCHDOWN:
                return event.outcome
        return None


class LandingController:
    """
    Runs the landing state machine against the spacecraft state each frame.

    The controller keeps a timeline of every phase change, in the same
    spirit as a mission planner's phase log, so a run can be reviewed after
    the fact.

    Attributes:
        context:         Live :class:`LandingContext`.
        tracking_limit:  Altitude (m) above which phases are not recomputed.
        timeline:        Ordered list of (time, phase, reason) tuples.
    """

    def __init__(self, tracking_limit: float = LANDING_TRACKING_LIMIT) -> None:
        self.tracking_limit = float(tracking_limit)
        self.context = LandingContext()
        self.timeline: List[Tuple[float, LandingPhase, str]] = [
            (0.0, LandingPhase.SPACE, "controller_initialized"),
        ]

    # -------------------------------------------------------------------------
    def reset(self, reason: str = "reset", sim_time: float = 0.0) -> None:
        """Start a fresh descent: phase SPACE, gear stowed, no outcome."""
        self.context = LandingContext()
        self.timeline.append((sim_time, LandingPhase.SPACE, reason))
        logger.info("Landing context reset (%s)", reason)

    def get_timeline(self) -> List[Tuple[float, LandingPhase, str]]:
        return list(self.timeline)

    # -------------------------------------------------------------------------
    def update(self, state: SpacecraftState, bodies: Iterable[PhysicsBody],
               sim_time: float = 0.0) -> LandingUpdate:
        """
        Advance the landing state machine by one frame.

        Args:
            state: Spacecraft state after this frame's integration.
            bodies: Body catalog.
            sim_time: Simulated time, used only for the timeline.

        Returns:
            :class:`LandingUpdate` with a snapshot of the context and the
            events emitted by any phase change this frame.
        """
        body, altitude = find_nearest_solid_body(state.position, bodies)
        body_id = body.id if body is not None else None

        if (body_id is not None and self.context.target_body is not None
                and body_id != self.context.target_body):
            self.reset(f"target_changed:{self.context.target_body}->{body_id}", sim_time)

        ctx = self.context
        previous_phase = ctx.phase
        ctx.target_body = body_id
        ctx.altitude = altitude
        ctx.vertical_speed = -float(state.velocity[VERTICAL_AXIS])
        ctx.total_speed = state.speed

        events: List[LandingEvent] = []
        if altitude < self.tracking_limit:
            new_phase = phase_for_altitude(altitude)
            if new_phase != ctx.phase:
                events = resolve_transition(ctx.phase, new_phase, ctx.gear_deployed,
                                            ctx.vertical_speed)
                self._log_transition(ctx.phase, new_phase, altitude, sim_time)
                ctx.phase = new_phase
                self._apply_events(events)

        ctx.recommended_thrust = calculate_retro_thrust(altitude, ctx.vertical_speed)
        return LandingUpdate(context=replace(ctx), previous_phase=previous_phase,
                             events=tuple(events))

    # -------------------------------------------------------------------------
    def _apply_events(self, events: List[LandingEvent]) -> None:
        for event in events:
            if event.kind is LandingEventKind.DEPLOY_GEAR:
                self.context.gear_deployed = True
                logger.info("Landing gear deployed")
            elif event.kind is LandingEventKind.TOUCHDOWN:
                self.context.outcome = event.outcome
                log = logger.info if event.outcome.success else logger.warning
                log("%s (vertical speed %.2f m/s, damage %.0f%%)",
                    event.outcome.message, self.context.vertical_speed,
                    event.outcome.damage)

    def _log_transition(self, old: LandingPhase, new: LandingPhase,
                        altitude: float, sim_time: float) -> None:
        self.timeline.append((sim_time, new, f"altitude={altitude:.1f}m"))
        logger.info("Landing phase: %s -> %s (alt %.1f km)",
                    old.name, new.name, altitude / 1000.0)

    def __repr__(self) -> str:
        return (f"LandingController(phase={self.context.phase.name}, "
                f"target={self.context.target_body}, "
                f"altitude={self.context.altitude:.1f} m)")
