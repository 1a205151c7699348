"""Data models for the Home Energy Emulator.

Timestamps are POSIX seconds (float). Power is in watts, energy in watt-hours.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Accessory:
    """A household appliance that draws a fixed power while switched on."""

    name: str
    power_when_on: float
    icon: str = "mdi:power-plug"
    on: bool = False
    id: str = field(default_factory=_new_id)

    @property
    def power(self) -> float:
        """Power currently drawn by this accessory."""
        return self.power_when_on if self.on else 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "on": self.on,
            "power_when_on": self.power_when_on,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Accessory:
        """Create instance from stored data."""
        return cls(
            id=data["id"],
            name=data["name"],
            icon=data.get("icon", "mdi:power-plug"),
            on=bool(data.get("on", False)),
            power_when_on=float(data["power_when_on"]),
        )


@dataclass
class ScheduledPowerEvent:
    """A one-shot on/off transition for one accessory."""

    accessory_id: str
    on: bool
    timestamp: float
    id: str = field(default_factory=_new_id)
    # Insertion order, breaks ties between equal timestamps
    sequence: int = 0

    @property
    def sort_key(self) -> tuple[float, int]:
        """Ordering key: timestamp, then insertion order."""
        return (self.timestamp, self.sequence)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "accessory_id": self.accessory_id,
            "on": self.on,
            "timestamp": self.timestamp,
            "sequence": self.sequence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduledPowerEvent:
        """Create instance from stored data."""
        return cls(
            id=data["id"],
            accessory_id=data["accessory_id"],
            on=bool(data["on"]),
            timestamp=float(data["timestamp"]),
            sequence=int(data.get("sequence", 0)),
        )


class SampleKind(str, Enum):
    """Kinds of time-series samples kept by the store."""

    CONSUMPTION = "consumption"
    GENERATOR = "generator"
    BATTERY = "battery"


# accessory_id of an aggregate (whole-home) consumption sample
AGGREGATE = None


@dataclass(frozen=True)
class AccessoryConsumption:
    """Consumption sample; accessory_id None means whole-home total."""

    timestamp: float
    power: float
    accessory_id: str | None = AGGREGATE

    kind = SampleKind.CONSUMPTION

    @property
    def value(self) -> float:
        """Sample value."""
        return self.power

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "timestamp": self.timestamp,
            "power": self.power,
            "accessory_id": self.accessory_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AccessoryConsumption:
        """Create instance from stored data."""
        return cls(
            timestamp=float(data["timestamp"]),
            power=float(data["power"]),
            accessory_id=data.get("accessory_id"),
        )


@dataclass(frozen=True)
class GeneratorOutput:
    """Generator power setting, one per change."""

    timestamp: float
    power: float

    kind = SampleKind.GENERATOR

    @property
    def value(self) -> float:
        """Sample value."""
        return self.power

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {"timestamp": self.timestamp, "power": self.power}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GeneratorOutput:
        """Create instance from stored data."""
        return cls(timestamp=float(data["timestamp"]), power=float(data["power"]))


@dataclass(frozen=True)
class BatteryCharge:
    """Battery charge level sample."""

    timestamp: float
    charge: float

    kind = SampleKind.BATTERY

    @property
    def value(self) -> float:
        """Sample value."""
        return self.charge

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {"timestamp": self.timestamp, "charge": self.charge}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BatteryCharge:
        """Create instance from stored data."""
        return cls(timestamp=float(data["timestamp"]), charge=float(data["charge"]))


Sample = AccessoryConsumption | GeneratorOutput | BatteryCharge

SAMPLE_TYPES: dict[SampleKind, type] = {
    SampleKind.CONSUMPTION: AccessoryConsumption,
    SampleKind.GENERATOR: GeneratorOutput,
    SampleKind.BATTERY: BatteryCharge,
}
