"""Entities module - HA entity definitions using factory pattern.

All entities are thin wrappers that:
- Read from the coordinator's published snapshot
- Delegate actions to the coordinator
- Use definitions for minimal boilerplate
"""

from .binary_sensors import BINARY_SENSOR_DEFINITIONS, async_setup_binary_sensors
from .numbers import async_setup_numbers
from .sensors import SENSOR_DEFINITIONS, async_setup_sensors
from .switches import async_setup_switches

__all__ = [
    "async_setup_sensors",
    "async_setup_binary_sensors",
    "async_setup_numbers",
    "async_setup_switches",
    "BINARY_SENSOR_DEFINITIONS",
    "SENSOR_DEFINITIONS",
]
