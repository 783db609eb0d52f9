"""
===============================================================================
FLIGHT CORE - Dynamics Package
===============================================================================
Physics of the piloted spacecraft inside a fixed body catalog.

Modules:
    bodies           : PhysicsBody records and the default solar system
    gravity          : Newtonian point-mass gravity model
    spacecraft       : SpacecraftState, ThrustCommand, EngineClass
    flight_dynamics  : thrust, consumables and position integration
===============================================================================
"""
