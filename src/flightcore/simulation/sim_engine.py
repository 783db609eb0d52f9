"""
===============================================================================
FLIGHT CORE - Flight Simulation Engine
===============================================================================
Per-frame orchestrator for a piloted flight.  Ties together the clock, flight
dynamics, the landing controller and the trajectory predictor, and records
telemetry to a pandas DataFrame for post-run analysis.

Each call to :meth:`FlightSimulation.step` runs one rendered frame:

    1. CLOCK     -- wall delta * time scale (0 when paused or game over)
    2. CONTROL   -- emergency stop, attitude rates, autopilot or pilot thrust
    3. DYNAMICS  -- optional live gravity, consumables, position
    4. LANDING   -- nearest body, phase, retro advisory, effect events
    5. PREDICT   -- ballistic path for the overlay (cached)
    6. LOGGING   -- telemetry record, game-over check

The engine is the single writer of the spacecraft state and the landing
context; callers only ever see copies through :class:`FrameResult`.
===============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from flightcore.core.constants import DEFAULT_FRAME_DT, DEFAULT_TRAJECTORY_DT, DEFAULT_TRAJECTORY_STEPS
from flightcore.core.units import as_vector
from flightcore.dynamics.bodies import PhysicsBody, load_catalog
from flightcore.dynamics.flight_dynamics import FlightDynamics, FlightDynamicsConfig
from flightcore.dynamics.gravity import GravityModel
from flightcore.dynamics.spacecraft import EngineClass, SpacecraftState, ThrustCommand
from flightcore.guidance.autopilot import navigate_to_target
from flightcore.guidance.landing import LandingController, LandingUpdate
from flightcore.guidance.missions import Mission, evaluate_landing_objective
from flightcore.guidance.trajectory import CachedTrajectoryPredictor
from flightcore.simulation.clock import SimulationClock

logger = logging.getLogger(__name__)


# =============================================================================
# FRAME INPUT / OUTPUT
# =============================================================================

@dataclass(frozen=True)
class InputSnapshot:
    """
    Immutable pilot input for one frame, already resolved to world vectors.

    direction:       Desired thrust direction (world frame); zero for none.
    level:           Throttle fraction.
    engine:          Engine class to fire.
    emergency_stop:  Kill velocity and throttle this frame.
    rotation_rates:  Body angular rates (rad/s) for attitude control.
    """
    direction: NDArray = field(default_factory=lambda: np.zeros(3))
    level: float = 0.0
    engine: EngineClass = EngineClass.MAIN
    emergency_stop: bool = False
    rotation_rates: NDArray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        object.__setattr__(self, "direction", as_vector(self.direction))
        object.__setattr__(self, "rotation_rates", as_vector(self.rotation_rates))
        object.__setattr__(self, "engine", EngineClass.parse(self.engine))

    def thrust_command(self) -> Optional[ThrustCommand]:
        command = ThrustCommand(self.direction, self.level, self.engine)
        return None if command.is_idle else command


@dataclass(frozen=True)
class FrameResult:
    """Everything a renderer or HUD needs after one frame."""
    frame: int
    time: float
    dt: float
    state: SpacecraftState
    landing: LandingUpdate
    trajectory: Optional[NDArray] = None
    game_over: Optional[str] = None


def check_resource_exhaustion(state: SpacecraftState) -> Optional[str]:
    """
    First exhausted resource, checked in the order fuel, oxygen, power.

    Returns None while all three remain.
    """
    if state.fuel <= 0.0:
        return "fuel"
    if state.oxygen <= 0.0:
        return "oxygen"
    if state.power <= 0.0:
        return "power"
    return None


# =============================================================================
# SIMULATION ENGINE
# =============================================================================

class FlightSimulation:
    """
    Frame-driven flight simulation.

    Parameters
    ----------
    config : dict
        Full configuration (see :mod:`flightcore.core.config`).
    bodies : list of PhysicsBody, optional
        Body catalog.  Defaults to ``config['catalog']`` if set, else the
        built-in solar system.
    mission : Mission, optional
        Active mission whose landing objective is tracked.

    Attributes
    ----------
    state : SpacecraftState
        Current spacecraft state.
    telemetry : list of dict
        Raw telemetry records, converted to DataFrame on request.
    game_over_reason : str or None
        'fuel', 'oxygen', 'power' or 'destroyed' once the run has ended.
    """

    def __init__(self, config: Dict[str, Any],
                 bodies: Optional[List[PhysicsBody]] = None,
                 mission: Optional[Mission] = None) -> None:
        self.config = config
        sim_cfg = config.get("simulation", {})
        traj_cfg = sim_cfg.get("trajectory", {})

        self.bodies: List[PhysicsBody] = bodies if bodies is not None else load_catalog(
            config.get("catalog"))

        gravity = GravityModel.from_config(config)
        self.dynamics = FlightDynamics(FlightDynamicsConfig.from_config(config), gravity)
        self.predictor = CachedTrajectoryPredictor(gravity)
        self.landing = LandingController()
        self.clock = SimulationClock.from_config(config)

        self.frame_dt: float = float(sim_cfg.get("frame_dt", DEFAULT_FRAME_DT))
        self.live_gravity: bool = bool(sim_cfg.get("live_gravity", False))
        self.trajectory_enabled: bool = bool(traj_cfg.get("enabled", True))
        self.trajectory_steps: int = int(traj_cfg.get("steps", DEFAULT_TRAJECTORY_STEPS))
        self.trajectory_dt: float = float(traj_cfg.get("dt", DEFAULT_TRAJECTORY_DT))
        self.stop_on_impact: bool = bool(traj_cfg.get("stop_on_impact", False))
        self.telemetry_enabled: bool = bool(sim_cfg.get("telemetry", {}).get("enabled", True))

        self.mission = mission
        self.state = SpacecraftState.from_config(config)
        self._initial_state = self.state
        self.telemetry: List[Dict[str, Any]] = []
        self.game_over_reason: Optional[str] = None
        self.last_result: Optional[FrameResult] = None

        logger.info(
            "FlightSimulation created.  %d bodies, live_gravity=%s, frame_dt=%.3f s",
            len(self.bodies), self.live_gravity, self.frame_dt,
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def restart(self) -> None:
        """Back to the initial state with a fresh clock, landing context and log."""
        self.state = self._initial_state
        self.landing = LandingController()
        self.clock = SimulationClock(self.clock.time_scale, self.clock.max_time_scale)
        self.predictor.invalidate()
        self.telemetry.clear()
        self.game_over_reason = None
        self.last_result = None
        logger.info("Simulation restarted")

    # =========================================================================
    # CORE FRAME
    # =========================================================================

    def step(self, snapshot: Optional[InputSnapshot] = None,
             wall_dt: Optional[float] = None) -> FrameResult:
        """
        Run one frame.

        Parameters
        ----------
        snapshot : InputSnapshot, optional
            Pilot input; None means hands off.
        wall_dt : float, optional
            Wall-clock seconds since the previous frame.  Defaults to the
            configured ``frame_dt``.

        Returns
        -------
        FrameResult
        """
        snapshot = snapshot or InputSnapshot()
        if wall_dt is None:
            wall_dt = self.frame_dt

        # a finished run stays frozen until restart()
        dt = 0.0 if self.game_over_reason else self.clock.tick(wall_dt)

        if dt > 0.0:
            self.state = self._advance(self.state, snapshot, dt)

        update = self.landing.update(self.state, self.bodies, self.clock.elapsed)
        if self.mission is not None:
            self.mission = evaluate_landing_objective(self.mission, update)

        trajectory = None
        if self.trajectory_enabled:
            trajectory = self.predictor.predict(
                self.state.position, self.state.velocity, self.bodies,
                self.trajectory_steps, self.trajectory_dt, self.stop_on_impact,
            )

        if self.game_over_reason is None:
            self._check_game_over(update)

        result = FrameResult(
            frame=self.clock.frame_count,
            time=self.clock.elapsed,
            dt=dt,
            state=self.state,
            landing=update,
            trajectory=trajectory,
            game_over=self.game_over_reason,
        )
        if self.telemetry_enabled and dt > 0.0:
            self._log_telemetry(result, snapshot)
        self.last_result = result
        return result

    def _advance(self, state: SpacecraftState, snapshot: InputSnapshot,
                 dt: float) -> SpacecraftState:
        dyn = self.dynamics

        if snapshot.emergency_stop:
            state = dyn.emergency_stop(state)

        state = dyn.rotate(state, snapshot.rotation_rates, dt)

        command = snapshot.thrust_command()
        if state.autopilot:
            state = navigate_to_target(state, self.bodies, dt, dyn)
        elif command is not None:
            state = dyn.apply_command(state, command, dt)
        elif state.thrust_level:
            state = state.evolve(thrust_level=0.0)

        if self.live_gravity:
            state = dyn.apply_gravity(state, self.bodies, dt)

        state = dyn.update_consumables(state, dt)
        return dyn.integrate_position(state, dt)

    def _check_game_over(self, update: LandingUpdate) -> None:
        reason = check_resource_exhaustion(self.state)
        outcome = update.touchdown
        if reason is None and outcome is not None and outcome.damage >= 100.0:
            reason = "destroyed"
        if reason is not None:
            self.game_over_reason = reason
            logger.warning("Game over at t=%.1f s: %s", self.clock.elapsed, reason)

    # =========================================================================
    # FULL RUN
    # =========================================================================

    def run(self, pilot, max_frames: Optional[int] = None) -> pd.DataFrame:
        """
        Fly until the craft lands, the run ends or *max_frames* is reached.

        Parameters
        ----------
        pilot : callable
            ``pilot(result) -> InputSnapshot`` deciding the next frame's input
            from the previous frame (None on the first frame).
        max_frames : int, optional
            Defaults to ``simulation.max_frames`` from the config.

        Returns
        -------
        pd.DataFrame
            Telemetry for the run.
        """
        if max_frames is None:
            max_frames = int(self.config.get("simulation", {}).get("max_frames", 20000))

        logger.info("Simulation run started.  Max frames: %d", max_frames)
        result = self.last_result
        for _ in range(max_frames):
            result = self.step(pilot(result))
            if result.game_over or result.landing.touchdown is not None:
                break

        logger.info(
            "Simulation complete.  %d frames, sim time %.1f s",
            self.clock.frame_count, self.clock.elapsed,
        )
        return self.get_telemetry()

    # =========================================================================
    # TELEMETRY
    # =========================================================================

    def _log_telemetry(self, result: FrameResult, snapshot: InputSnapshot) -> None:
        state = result.state
        ctx = result.landing.context
        pos, vel, att = state.position, state.velocity, state.orientation
        roll, pitch, yaw = np.degrees(att.to_euler())

        self.telemetry.append({
            'time': result.time,
            'frame': result.frame,
            'dt': result.dt,
            'pos_x_au': pos[0],
            'pos_y_au': pos[1],
            'pos_z_au': pos[2],
            'vel_x': vel[0],
            'vel_y': vel[1],
            'vel_z': vel[2],
            'speed_m_s': state.speed,
            'quat_w': att.w,
            'quat_x': att.x,
            'quat_y': att.y,
            'quat_z': att.z,
            'roll_deg': roll,
            'pitch_deg': pitch,
            'yaw_deg': yaw,
            'fuel': state.fuel,
            'oxygen': state.oxygen,
            'power': state.power,
            'thrust_level': state.thrust_level,
            'engine': snapshot.engine.value,
            'phase': ctx.phase.name,
            'target_body': ctx.target_body,
            'altitude_m': ctx.altitude,
            'vertical_speed_m_s': ctx.vertical_speed,
            'recommended_thrust': ctx.recommended_thrust,
            'gear_deployed': ctx.gear_deployed,
        })

    def get_telemetry(self) -> pd.DataFrame:
        """
        Convert the telemetry record list to a pandas DataFrame indexed by time.
        """
        if not self.telemetry:
            logger.warning("No telemetry recorded.")
            return pd.DataFrame()

        df = pd.DataFrame(self.telemetry)
        df.set_index('time', inplace=True)
        return df

    def save_telemetry(self, filepath: str) -> None:
        df = self.get_telemetry()
        df.to_csv(filepath)
        logger.info("Telemetry saved to %s  (%d records)", filepath, len(df))

    # =========================================================================
    # SUMMARY
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """
        Compile a summary of the run so far.

        Returns
        -------
        dict
            total_time, frames, fuel_consumed, oxygen_used, power_used,
            final_speed, final_phase, final_altitude, landing_success,
            landing_damage, game_over, mission_status.
        """
        ctx = self.landing.context
        initial = self._initial_state
        summary = {
            'total_time': self.clock.elapsed,
            'frames': self.clock.frame_count,
            'fuel_consumed': initial.fuel - self.state.fuel,
            'oxygen_used': initial.oxygen - self.state.oxygen,
            'power_used': initial.power - self.state.power,
            'final_speed': self.state.speed,
            'final_phase': ctx.phase.name,
            'final_altitude': ctx.altitude,
            'landing_success': None if ctx.outcome is None else ctx.outcome.success,
            'landing_damage': None if ctx.outcome is None else ctx.outcome.damage,
            'game_over': self.game_over_reason,
            'mission_status': None if self.mission is None else self.mission.status.value,
        }

        logger.info("Flight Summary:")
        for key, value in summary.items():
            if isinstance(value, float):
                logger.info("  %-20s: %.4f", key, value)
            else:
                logger.info("  %-20s: %s", key, value)
        return summary

    def __repr__(self) -> str:
        return (
            f"FlightSimulation(t={self.clock.elapsed:.1f}s, "
            f"phase={self.landing.context.phase.name}, "
            f"records={len(self.telemetry)})"
        )
