"""
===============================================================================
FLIGHT CORE - Configuration Loading
===============================================================================
Scenario configuration lives in a YAML file (``config/flight_config.yaml`` at
the repository root by default).  The file only has to list the keys it wants
to change; everything else falls back to ``DEFAULT_CONFIG``.

Layout::

    simulation:
        time_scale: 1.0
        max_time_scale: 100.0
        frame_dt: 0.016
        live_gravity: false
        trajectory:
            steps: 1000
            dt: 10.0
            stop_on_impact: false
    spacecraft:
        name: Imboni-1
        position: [1.0, 0.0, 0.0]       # AU
        velocity: [0.0, 0.0, 0.0]       # m/s
        ...
    engines:
        burn_rate: 1.0e-4
        rcs_thrust_fraction: 0.05
    consumables:
        base_oxygen_rate: 0.05
        ...
    gravity:
        min_distance_m: 1.0
    catalog: null                       # or a list of body records
===============================================================================
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from flightcore.core.constants import (
    BASE_OXYGEN_RATE, BASE_POWER_RATE, DEFAULT_CREW_COUNT, DEFAULT_FRAME_DT,
    DEFAULT_MAX_FUEL, DEFAULT_OXYGEN, DEFAULT_POWER, DEFAULT_RATED_THRUST,
    DEFAULT_SPACECRAFT_MASS, DEFAULT_TRAJECTORY_DT, DEFAULT_TRAJECTORY_STEPS,
    FUEL_BURN_RATE, MAX_TIME_SCALE, MIN_GRAVITY_DISTANCE_M,
    RCS_THRUST_FRACTION, THRUST_OXYGEN_FACTOR, THRUST_POWER_FACTOR,
)

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / 'config' / 'flight_config.yaml'


DEFAULT_CONFIG: Dict[str, Any] = {
    'simulation': {
        'time_scale': 1.0,
        'max_time_scale': MAX_TIME_SCALE,
        'frame_dt': DEFAULT_FRAME_DT,
        'live_gravity': False,
        'max_frames': 20000,
        'trajectory': {
            'enabled': True,
            'steps': DEFAULT_TRAJECTORY_STEPS,
            'dt': DEFAULT_TRAJECTORY_DT,
            'stop_on_impact': False,
        },
        'telemetry': {
            'enabled': True,
            'output_csv': None,
        },
    },
    'spacecraft': {
        'name': 'Imboni-1',
        'position': [1.0, 0.0, 0.0],
        'velocity': [0.0, 0.0, 0.0],
        'orientation': [1.0, 0.0, 0.0, 0.0],
        'mass': DEFAULT_SPACECRAFT_MASS,
        'fuel': DEFAULT_MAX_FUEL,
        'max_fuel': DEFAULT_MAX_FUEL,
        'oxygen': DEFAULT_OXYGEN,
        'power': DEFAULT_POWER,
        'rated_thrust': DEFAULT_RATED_THRUST,
        'autopilot': False,
        'target_body': 'mars',
        'crew_count': DEFAULT_CREW_COUNT,
    },
    'engines': {
        'burn_rate': FUEL_BURN_RATE,
        'rcs_thrust_fraction': RCS_THRUST_FRACTION,
    },
    'consumables': {
        'base_oxygen_rate': BASE_OXYGEN_RATE,
        'thrust_oxygen_factor': THRUST_OXYGEN_FACTOR,
        'base_power_rate': BASE_POWER_RATE,
        'thrust_power_factor': THRUST_POWER_FACTOR,
    },
    'gravity': {
        'min_distance_m': MIN_GRAVITY_DISTANCE_M,
    },
    'catalog': None,
}


def merge_config(base: Dict[str, Any], override: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Recursively merge *override* into a deep copy of *base*.

    Nested dictionaries are merged key by key; any other value in *override*
    replaces the one in *base*.
    """
    merged = copy.deepcopy(base)
    if not override:
        return merged
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load the scenario configuration from YAML and merge it over the defaults.

    Args:
        config_path: Path to a YAML file.  When omitted the repository's
            ``config/flight_config.yaml`` is used if present, otherwise the
            built-in defaults.

    Returns:
        Complete configuration dictionary.

    Raises:
        FileNotFoundError: If an explicit *config_path* does not exist.
        ValueError: If the file does not contain a YAML mapping.
    """
    if config_path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            logger.info("No configuration file found; using built-in defaults")
            return copy.deepcopy(DEFAULT_CONFIG)
        config_path = DEFAULT_CONFIG_PATH

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.info("Loading configuration from: %s", path)
    with open(path, 'r') as f:
        loaded = yaml.safe_load(f)

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ValueError(
            f"Configuration file {path} must contain a mapping, "
            f"got {type(loaded).__name__}"
        )
    return merge_config(DEFAULT_CONFIG, loaded)
