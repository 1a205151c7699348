"""Infrastructure module - HA integration utilities.

Contains:
- HassEnergyStore: Store persisted with Home Assistant's storage helper
"""

from .storage import HassEnergyStore

__all__ = ["HassEnergyStore"]
