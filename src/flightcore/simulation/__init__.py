"""
===============================================================================
FLIGHT CORE - Simulation Package
===============================================================================
Modules:
    clock       : time scale and pause handling
    sim_engine  : per-frame orchestrator with pandas telemetry
===============================================================================
"""
