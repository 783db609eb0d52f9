"""
===============================================================================
FLIGHT CORE - Physical Constants and Simulation Defaults
===============================================================================
Central repository for the constants used by the flight core.  Positions of
bodies and the spacecraft are carried in Astronomical Units (AU); everything
else is SI (meters, seconds, kilograms).

Consumable rates are expressed per second of *simulated* time, so a time
scale of 100x drains oxygen and power a hundred times faster on the wall
clock.
===============================================================================
"""

import numpy as np


# =============================================================================
# FUNDAMENTAL PHYSICAL CONSTANTS
# =============================================================================
GRAVITATIONAL_CONSTANT = 6.67430e-11   # m^3 / (kg * s^2)
AU = 1.495978707e11                    # Astronomical Unit in meters
METERS_PER_AU = AU

# =============================================================================
# GRAVITY MODEL
# =============================================================================
# Below this center distance a body's pull is dropped instead of blowing up.
MIN_GRAVITY_DISTANCE_M = 1.0           # m

# =============================================================================
# SPACECRAFT DEFAULTS
# =============================================================================
DEFAULT_SPACECRAFT_MASS = 1500.0       # kg
DEFAULT_MAX_FUEL = 1000.0              # kg
DEFAULT_OXYGEN = 500.0                 # hours
DEFAULT_POWER = 1000.0                 # kWh
DEFAULT_RATED_THRUST = 5000.0          # N
DEFAULT_CREW_COUNT = 1

# Body frame: -Z is forward (main engine axis), +X right, +Y up.
BODY_FORWARD = np.array([0.0, 0.0, -1.0])
BODY_RIGHT = np.array([1.0, 0.0, 0.0])
BODY_UP = np.array([0.0, 1.0, 0.0])

# =============================================================================
# ENGINES AND CONSUMABLES
# =============================================================================
FUEL_BURN_RATE = 1.0e-4                # kg per (N * s) of commanded thrust
RCS_THRUST_FRACTION = 0.05             # RCS force as a fraction of rated thrust

BASE_OXYGEN_RATE = 0.05                # hours of oxygen per crew per second
THRUST_OXYGEN_FACTOR = 0.1             # extra oxygen per second at full thrust
BASE_POWER_RATE = 0.2                  # kWh per second
THRUST_POWER_FACTOR = 0.3              # extra kWh per second at full thrust

# =============================================================================
# LANDING THRESHOLDS (meters above the surface)
# =============================================================================
SPACE_ALTITUDE = 50_000_000.0          # above this the craft is in open space
KARMAN_LINE = 100_000.0                # atmospheric entry begins
DENSE_ATMOSPHERE = 50_000.0            # descent begins
FINAL_APPROACH_ALTITUDE = 1_000.0      # landing gear deployment
TOUCHDOWN_ZONE = 100.0                 # touchdown imminent
SURFACE_ALTITUDE = 1.0                 # landed
LANDING_TRACKING_LIMIT = 100_000_000.0  # phase tracking is skipped beyond this

SAFE_LANDING_SPEED = 5.0               # m/s
DAMAGE_THRESHOLD_SPEED = 15.0          # m/s
CRITICAL_SPEED = 30.0                  # m/s (destroyed)

RETRO_MIN_TARGET_SPEED = 2.0           # m/s
RETRO_ALTITUDE_DIVISOR = 200.0         # target descent rate = altitude / 200
RETRO_GAIN = 0.1                       # proportional gain on speed error

# World-frame axis used as "vertical" for descent-rate readouts.
VERTICAL_AXIS = 1

# =============================================================================
# TIME
# =============================================================================
DEFAULT_FRAME_DT = 0.016               # s, nominal 60 FPS frame
MAX_TIME_SCALE = 100.0

# =============================================================================
# TRAJECTORY PREDICTION
# =============================================================================
DEFAULT_TRAJECTORY_STEPS = 1000
DEFAULT_TRAJECTORY_DT = 10.0           # s
SHIP_COLLISION_RADIUS_AU = 1.0e-6
