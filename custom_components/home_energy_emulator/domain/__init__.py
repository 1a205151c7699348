"""Domain logic module - pure simulation logic.

All modules in this package:
- Take inputs and produce outputs
- Never touch the store
- Are easy to unit test
"""

from .battery import ChargingState, HomeBattery
from .forecaster import EnergyForecaster, HealthLevel
from .generator import HomeGenerator

__all__ = [
    "ChargingState",
    "EnergyForecaster",
    "HealthLevel",
    "HomeBattery",
    "HomeGenerator",
]
