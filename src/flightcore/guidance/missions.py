"""
===============================================================================
FLIGHT CORE - Missions
===============================================================================
Mission catalog, launch requirement checks and landing objectives.

A mission names a target body and an objective.  Before launch the
spacecraft must carry minimum fuel, oxygen and power; a landing or sample
collection mission is decided by the touchdown outcome on its target.
===============================================================================
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from flightcore.dynamics.spacecraft import SpacecraftState
from flightcore.guidance.landing import LandingUpdate

logger = logging.getLogger(__name__)


class MissionObjective(str, Enum):
    ORBIT = "orbit"
    LANDING = "landing"
    FLYBY = "flyby"
    SAMPLE_COLLECTION = "sample_collection"
    DEEP_SPACE = "deep_space"


class MissionStatus(str, Enum):
    AVAILABLE = "available"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


# Objectives decided by a touchdown
SURFACE_OBJECTIVES = frozenset({MissionObjective.LANDING, MissionObjective.SAMPLE_COLLECTION})


@dataclass(frozen=True)
class MissionRequirements:
    min_fuel: float = 0.0
    min_oxygen: float = 0.0
    min_power: float = 0.0


@dataclass(frozen=True)
class Mission:
    """
    A mission offered to the pilot.

    ``time_limit`` is in hours; ``target`` is a body id or display name.
    """
    title: str
    description: str
    target: str
    objective: MissionObjective
    status: MissionStatus = MissionStatus.AVAILABLE
    difficulty: str = "medium"
    reward_points: int = 0
    time_limit: float = 0.0
    requirements: MissionRequirements = field(default_factory=MissionRequirements)

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "Mission":
        req = record.get("requirements") or {}
        return cls(
            title=str(record["title"]),
            description=str(record.get("description", "")),
            target=str(record["target"]),
            objective=MissionObjective(str(record.get("objective", "orbit")).lower()),
            status=MissionStatus(str(record.get("status", "available")).lower()),
            difficulty=str(record.get("difficulty", "medium")),
            reward_points=int(record.get("reward_points", 0)),
            time_limit=float(record.get("time_limit", 0.0)),
            requirements=MissionRequirements(
                min_fuel=float(req.get("min_fuel", 0.0)),
                min_oxygen=float(req.get("min_oxygen", 0.0)),
                min_power=float(req.get("min_power", 0.0)),
            ),
        )

    def with_status(self, status: MissionStatus) -> "Mission":
        return replace(self, status=status)


DEFAULT_MISSIONS: List[Mission] = [
    Mission(
        title="Path to Mars",
        description="Reach Mars and enter stable orbit.",
        target="Mars",
        objective=MissionObjective.ORBIT,
        difficulty="medium",
        reward_points=250,
        time_limit=120.0,
        requirements=MissionRequirements(min_fuel=800.0, min_oxygen=400.0, min_power=75.0),
    ),
    Mission(
        title="Lunar Sample Run",
        description="Land on the Moon and collect rock samples.",
        target="Moon",
        objective=MissionObjective.SAMPLE_COLLECTION,
        difficulty="hard",
        reward_points=400,
        time_limit=72.0,
        requirements=MissionRequirements(min_fuel=600.0, min_oxygen=350.0, min_power=50.0),
    ),
]


def unmet_requirements(mission: Mission, state: SpacecraftState) -> List[str]:
    """Names of the resources ('fuel', 'oxygen', 'power') below the minimum."""
    req = mission.requirements
    missing = []
    if state.fuel < req.min_fuel:
        missing.append("fuel")
    if state.oxygen < req.min_oxygen:
        missing.append("oxygen")
    if state.power < req.min_power:
        missing.append("power")
    return missing


def activate_mission(mission: Mission, state: SpacecraftState) -> Mission:
    """
    Mark *mission* active for *state*.

    Raises:
        ValueError: If the mission is not available or the craft does not
            meet its requirements.
    """
    if mission.status is not MissionStatus.AVAILABLE:
        raise ValueError(f"Mission '{mission.title}' is {mission.status.value}, not available")
    missing = unmet_requirements(mission, state)
    if missing:
        raise ValueError(
            f"Mission '{mission.title}' requirements not met: {', '.join(missing)}"
        )
    logger.info("Mission activated: %s (target %s)", mission.title, mission.target)
    return mission.with_status(MissionStatus.ACTIVE)


def evaluate_landing_objective(mission: Mission, update: LandingUpdate) -> Mission:
    """
    Settle an active surface mission from a landing update.

    Only an active landing or sample-collection mission whose target is the
    body just touched down on can change: a successful touchdown completes
    it, a failed one fails it.  Any other input returns *mission* unchanged.
    """
    outcome = update.touchdown
    if (outcome is None or mission.status is not MissionStatus.ACTIVE
            or mission.objective not in SURFACE_OBJECTIVES):
        return mission

    landed_on: Optional[str] = update.context.target_body
    if landed_on is None or landed_on.lower() != mission.target.lower():
        return mission

    status = MissionStatus.COMPLETED if outcome.success else MissionStatus.FAILED
    logger.info("Mission '%s' %s: %s", mission.title, status.value, outcome.message)
    return mission.with_status(status)
