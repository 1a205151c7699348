"""Core module for the Home Energy Emulator.

Contains the fundamental building blocks:
- Config: Tunable engine parameters
- Events: Event bus for component communication
- State: Published snapshots
- Store: Time-series and event store contract

The engine itself lives in core.emulator and is imported from there.
"""

from .config import EmulatorConfig
from .events import EmulatorEvent, EmulatorEventBus
from .state import AccessoryState, EnergySnapshot
from .store import EnergyStore, MemoryEnergyStore

__all__ = [
    "AccessoryState",
    "EmulatorConfig",
    "EmulatorEvent",
    "EmulatorEventBus",
    "EnergySnapshot",
    "EnergyStore",
    "MemoryEnergyStore",
]
