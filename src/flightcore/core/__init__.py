"""
===============================================================================
FLIGHT CORE - Core Package
===============================================================================
Shared building blocks used by every other package.

Modules:
    constants   : physical constants, engine and landing thresholds
    units       : AU / meter conversions, scaled scene units, vector sanitizing
    quaternion  : unit quaternion for spacecraft orientation
    config      : YAML configuration loading and merging
===============================================================================
"""
