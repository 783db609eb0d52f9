"""
===============================================================================
FLIGHT CORE
===============================================================================
Flight dynamics, trajectory prediction and landing classification for a
real-time space exploration simulation.

Subpackages:
    core        : constants, unit conversions, quaternions, configuration
    dynamics    : body catalog, gravity model, spacecraft state, integration
    guidance    : trajectory predictor, landing controller, autopilot, missions
    simulation  : frame clock and per-frame simulation engine
===============================================================================
"""

__version__ = "0.1.0"
