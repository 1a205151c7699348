"""Data models for the Home Energy Emulator."""

from .data_models import (
    AGGREGATE,
    Accessory,
    AccessoryConsumption,
    BatteryCharge,
    GeneratorOutput,
    Sample,
    SampleKind,
    ScheduledPowerEvent,
)

__all__ = [
    "AGGREGATE",
    "Accessory",
    "AccessoryConsumption",
    "BatteryCharge",
    "GeneratorOutput",
    "Sample",
    "SampleKind",
    "ScheduledPowerEvent",
]
