"""
===============================================================================
FLIGHT CORE - Simulation Clock
===============================================================================
Turns wall-clock frame deltas into simulated time steps.

    dt_sim = dt_wall * time_scale        (0 while paused)

The time scale is clamped to [0, max_time_scale]; the stock maximum is 100x.
===============================================================================
"""

import logging

import numpy as np

from flightcore.core.constants import MAX_TIME_SCALE

logger = logging.getLogger(__name__)


class SimulationClock:
    """
    Frame clock with a time-scale multiplier and pause.

    Attributes:
        time_scale:  Current multiplier applied to wall deltas.
        paused:      While True every frame has dt = 0.
        elapsed:     Total simulated seconds.
        frame_count: Frames ticked, paused ones included.
    """

    def __init__(self, time_scale: float = 1.0, max_time_scale: float = MAX_TIME_SCALE) -> None:
        self.max_time_scale = float(max_time_scale)
        self.time_scale = 1.0
        self.set_time_scale(time_scale)
        self.paused = False
        self.elapsed = 0.0
        self.frame_count = 0

    @classmethod
    def from_config(cls, config: dict) -> "SimulationClock":
        cfg = config.get("simulation", config)  # allow top-level or nested
        return cls(
            time_scale=float(cfg.get("time_scale", 1.0)),
            max_time_scale=float(cfg.get("max_time_scale", MAX_TIME_SCALE)),
        )

    def set_time_scale(self, scale: float) -> float:
        """Set the multiplier, clamped to [0, max_time_scale].  Returns the value used."""
        scale = float(scale) if np.isfinite(scale) else 1.0
        clamped = min(max(scale, 0.0), self.max_time_scale)
        if clamped != scale:
            logger.warning("Time scale %.2f clamped to %.2f", scale, clamped)
        self.time_scale = clamped
        return clamped

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def toggle_pause(self) -> bool:
        self.paused = not self.paused
        return self.paused

    def frame_dt(self, wall_dt: float) -> float:
        """Simulated dt for a frame that took *wall_dt* seconds."""
        if self.paused or not np.isfinite(wall_dt) or wall_dt <= 0.0:
            return 0.0
        return float(wall_dt) * self.time_scale

    def tick(self, wall_dt: float) -> float:
        """Advance the clock by one frame and return its simulated dt."""
        dt = self.frame_dt(wall_dt)
        self.elapsed += dt
        self.frame_count += 1
        return dt

    def __repr__(self) -> str:
        return (f"SimulationClock(t={self.elapsed:.2f}s, scale={self.time_scale:g}x, "
                f"paused={self.paused})")
