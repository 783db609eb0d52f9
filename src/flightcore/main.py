#!/usr/bin/env python3
"""
===============================================================================
FLIGHT CORE - MAIN ENTRY POINT
===============================================================================
Scripted powered descent onto a solid body.

The craft starts straight above the chosen body, nose up (world +Y), falling
at a fixed speed.  The pilot does nothing until the landing controller
starts recommending retro thrust below 1 km, then follows that advisory on
the main engine.  The run ends on touchdown or game over.

USAGE:
    flightcore                               # Moon, 20 km, 50 m/s
    flightcore --body mars --altitude 5000   # Different body and start
    flightcore --live-gravity                # Integrate gravity in flight
    flightcore --output telemetry.csv        # Save telemetry
    flightcore --config my_flight.yaml       # Custom configuration

OUTPUTS:
    Flight summary on stdout, optional telemetry CSV.
===============================================================================
"""

import argparse
import logging
import sys
import time
from typing import Optional

import numpy as np

from flightcore.core.config import load_config, merge_config
from flightcore.core.constants import BODY_FORWARD, BODY_UP, VERTICAL_AXIS
from flightcore.core.quaternion import Quaternion
from flightcore.core.units import meters_to_au
from flightcore.dynamics.bodies import find_body, load_catalog
from flightcore.dynamics.spacecraft import EngineClass
from flightcore.guidance.missions import DEFAULT_MISSIONS, Mission, activate_mission
from flightcore.simulation.sim_engine import FlightSimulation, FrameResult, InputSnapshot

logger = logging.getLogger('FLIGHT_MAIN')


def descent_overrides(body, altitude_m: float, speed_m_s: float, time_scale: float,
                      live_gravity: bool, trajectory: bool) -> dict:
    """Config overrides placing the craft *altitude_m* above *body*, falling."""
    position = np.array(body.position, dtype=float)
    position[VERTICAL_AXIS] += body.radius + float(meters_to_au(altitude_m))

    velocity = np.zeros(3)
    velocity[VERTICAL_AXIS] = -abs(speed_m_s)

    nose_up = Quaternion.from_two_vectors(BODY_FORWARD, BODY_UP)
    return {
        'simulation': {
            'time_scale': time_scale,
            'live_gravity': live_gravity,
            'trajectory': {'enabled': trajectory},
        },
        'spacecraft': {
            'position': position.tolist(),
            'velocity': velocity.tolist(),
            'orientation': nose_up.to_list(),
            'autopilot': False,
            'target_body': body.id,
        },
    }


def retro_pilot(result: Optional[FrameResult]) -> InputSnapshot:
    """Follow the landing controller's retro-thrust advisory on the main engine."""
    if result is None:
        return InputSnapshot()
    level = result.landing.context.recommended_thrust
    return InputSnapshot(direction=BODY_UP, level=level, engine=EngineClass.MAIN)


def pick_mission(body_id: str, sim: FlightSimulation) -> Optional[Mission]:
    for mission in DEFAULT_MISSIONS:
        if mission.target.lower() != body_id:
            continue
        try:
            return activate_mission(mission, sim.state)
        except ValueError as exc:
            logger.warning("%s", exc)
    return None


def main(argv=None) -> int:
    """
    Parse arguments, fly the descent and print a summary.
    """
    parser = argparse.ArgumentParser(
        description='Scripted powered descent with landing classification',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  flightcore                                Land on the Moon from 20 km
  flightcore --speed 80 --time-scale 20     Faster and harder
  flightcore --output out/telemetry.csv     Save telemetry
        """
    )
    parser.add_argument('--config', type=str, default=None,
                        help='Path to flight config YAML')
    parser.add_argument('--body', type=str, default='moon',
                        help='Body to land on (id or name, default: moon)')
    parser.add_argument('--altitude', type=float, default=20000.0,
                        help='Start altitude in meters (default: 20000)')
    parser.add_argument('--speed', type=float, default=50.0,
                        help='Initial descent speed in m/s (default: 50)')
    parser.add_argument('--time-scale', type=float, default=10.0,
                        help='Simulation time scale, 0..100 (default: 10)')
    parser.add_argument('--live-gravity', action='store_true',
                        help='Apply gravity to the craft during flight')
    parser.add_argument('--trajectory', action='store_true',
                        help='Predict the ballistic path every frame (slow)')
    parser.add_argument('--max-frames', type=int, default=None,
                        help='Frame limit (default: simulation.max_frames)')
    parser.add_argument('--output', type=str, default=None,
                        help='Write telemetry CSV to this path')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Debug logging')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    try:
        config = load_config(args.config)
        bodies = load_catalog(config.get('catalog'))
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Configuration error: %s", exc)
        return 2

    body = find_body(bodies, args.body)
    if body is None or not body.is_solid:
        logger.error("Cannot land on %r; choose a solid body from: %s", args.body,
                     ", ".join(b.id for b in bodies if b.is_solid))
        return 2

    config = merge_config(config, descent_overrides(
        body, args.altitude, args.speed, args.time_scale,
        args.live_gravity, args.trajectory,
    ))

    print("=" * 70)
    print("  FLIGHT CORE - POWERED DESCENT")
    print(f"  Target: {body.name}   Start: {args.altitude:.0f} m at {args.speed:.1f} m/s")
    print("=" * 70)

    sim = FlightSimulation(config, bodies=bodies)
    sim.mission = pick_mission(body.id, sim)

    wall_start = time.time()
    sim.run(retro_pilot, max_frames=args.max_frames)
    summary = sim.get_summary()

    if args.output:
        sim.save_telemetry(args.output)

    print("\n" + "=" * 70)
    print("  FLIGHT COMPLETE")
    for key, value in summary.items():
        shown = f"{value:.3f}" if isinstance(value, float) else value
        print(f"    {key:<20s} {shown}")
    if sim.landing.context.outcome is not None:
        print(f"  {sim.landing.context.outcome.message}")
    print(f"  Wall time: {time.time() - wall_start:.1f} s")
    print("=" * 70)
    return 0


if __name__ == '__main__':
    sys.exit(main())
