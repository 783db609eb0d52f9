"""
===============================================================================
FLIGHT CORE - Guidance Package
===============================================================================
Everything that looks ahead or decides: path prediction, the landing state
machine, the target-seeking autopilot and the mission catalog.

Modules:
    trajectory  : forward Euler path prediction for display
    landing     : landing phase state machine and touchdown classification
    autopilot   : distance-scheduled thrust toward the target body
    missions    : mission records, requirement checks, landing objectives
===============================================================================
"""
