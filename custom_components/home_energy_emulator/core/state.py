"""Published state.

Readers never see the engine while it is mid-tick. They see the last
EnergySnapshot, which is rebuilt and published only once a tick or a
command has completed.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ..const import LOW_BATTERY_LEVEL
from ..domain.battery import ChargingState


@dataclass(frozen=True)
class AccessoryState:
    """Published view of one accessory."""

    id: str
    name: str
    icon: str
    on: bool
    power_when_on: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "on": self.on,
            "power_when_on": self.power_when_on,
        }


@dataclass(frozen=True)
class EnergySnapshot:
    """Consistent view of the emulator at a tick or command boundary."""

    timestamp: float
    power_consumption: float
    generator_output: float
    battery_charge: float
    battery_capacity: float
    charging_power: float
    accessories: Mapping[str, AccessoryState] = field(
        default_factory=lambda: MappingProxyType({})
    )
    consecutive_failures: int = 0
    last_error: str | None = None

    @property
    def charge_level(self) -> float:
        """Battery charge level, 0...1."""
        return self.battery_charge / self.battery_capacity

    @property
    def charging_state(self) -> ChargingState:
        """Battery charging state."""
        return ChargingState.for_power(self.charging_power, self.charge_level)

    @property
    def low_battery(self) -> bool:
        """True when less than a fifth of the capacity is left."""
        return self.charge_level < LOW_BATTERY_LEVEL

    @property
    def status_description(self) -> str:
        """Whole-home status."""
        return "In Use" if self.power_consumption > 0 else "Idle"

    @property
    def generator_status_description(self) -> str:
        """Generator status."""
        return "Running" if self.generator_output > 0 else "Idle"

    def to_dict(self) -> dict[str, Any]:
        """Export the snapshot as a dictionary."""
        return {
            "timestamp": self.timestamp,
            "power_consumption": self.power_consumption,
            "generator_output": self.generator_output,
            "battery_charge": self.battery_charge,
            "charge_level": self.charge_level,
            "charging_power": self.charging_power,
            "charging_state": self.charging_state.value,
            "accessories": [a.to_dict() for a in self.accessories.values()],
            "consecutive_failures": self.consecutive_failures,
            "last_error": self.last_error,
        }
