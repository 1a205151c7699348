"""Sensor entities using factory pattern.

Instead of defining each sensor manually, we use a data-driven approach.
Add a new sensor = add one line to SENSOR_DEFINITIONS.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorStateClass,
)
from homeassistant.const import (
    PERCENTAGE,
    UnitOfEnergy,
    UnitOfPower,
    UnitOfTime,
)
from homeassistant.core import callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback
    from ..coordinator import EmulatorCoordinator

from ..const import SIGNAL_UPDATE
from ..domain.battery import ChargingState
from ..domain.forecaster import HealthLevel
from .base import device_info


@dataclass
class SensorDefinition:
    """Definition for a sensor entity."""

    key: str  # Unique identifier
    name: str  # Display name
    value_fn: Callable[[Any], Any]  # Function to get value from the coordinator
    attributes_fn: Callable[[Any], dict[str, Any]] | None = None
    unit: str | None = None
    device_class: SensorDeviceClass | None = None
    state_class: SensorStateClass | None = None
    options: list[str] | None = None
    precision: int | None = None
    icon: str | None = None


def _finite_or_none(value: float) -> float | None:
    return None if math.isinf(value) else round(value, 1)


def _accessory_attributes(c) -> dict[str, Any]:
    return {
        "accessories": [a.to_dict() for a in c.snapshot.accessories.values()],
        "status": c.snapshot.status_description,
    }


def _health_attributes(c) -> dict[str, Any]:
    return {
        "description": c.health.level.description,
        "time_to_empty": _finite_or_none(c.health.time_to_empty),
    }


def _forecast_value(c) -> float | None:
    if not c.trajectory:
        return None
    return round(c.trajectory[-1].charge_level * 100, 1)


def _forecast_attributes(c) -> dict[str, Any]:
    return {"trajectory": [metrics.to_dict() for metrics in c.trajectory]}


# All sensor definitions in one place
SENSOR_DEFINITIONS: list[SensorDefinition] = [
    # Power flows
    SensorDefinition(
        key="power_consumption",
        name="Power Consumption",
        value_fn=lambda c: c.snapshot.power_consumption,
        attributes_fn=_accessory_attributes,
        unit=UnitOfPower.WATT,
        device_class=SensorDeviceClass.POWER,
        state_class=SensorStateClass.MEASUREMENT,
    ),
    SensorDefinition(
        key="generator_output",
        name="Generator Output",
        value_fn=lambda c: c.snapshot.generator_output,
        attributes_fn=lambda c: {"status": c.snapshot.generator_status_description},
        unit=UnitOfPower.WATT,
        device_class=SensorDeviceClass.POWER,
        state_class=SensorStateClass.MEASUREMENT,
        icon="mdi:engine",
    ),

    # Battery
    SensorDefinition(
        key="battery_charge",
        name="Battery Charge",
        value_fn=lambda c: round(c.snapshot.battery_charge, 3),
        attributes_fn=lambda c: {"capacity_wh": c.snapshot.battery_capacity},
        unit=UnitOfEnergy.WATT_HOUR,
        device_class=SensorDeviceClass.ENERGY_STORAGE,
        state_class=SensorStateClass.MEASUREMENT,
    ),
    SensorDefinition(
        key="battery_level",
        name="Battery Level",
        value_fn=lambda c: round(c.snapshot.charge_level * 100, 1),
        unit=PERCENTAGE,
        device_class=SensorDeviceClass.BATTERY,
        state_class=SensorStateClass.MEASUREMENT,
    ),
    SensorDefinition(
        key="charging_power",
        name="Charging Power",
        value_fn=lambda c: c.snapshot.charging_power,
        unit=UnitOfPower.WATT,
        device_class=SensorDeviceClass.POWER,
        state_class=SensorStateClass.MEASUREMENT,
        icon="mdi:battery-charging",
    ),
    SensorDefinition(
        key="charging_state",
        name="Charging State",
        value_fn=lambda c: c.snapshot.charging_state.value,
        attributes_fn=lambda c: {"description": c.snapshot.charging_state.description},
        device_class=SensorDeviceClass.ENUM,
        options=[state.value for state in ChargingState],
        icon="mdi:battery-sync",
    ),

    # Forecast
    SensorDefinition(
        key="time_to_empty",
        name="Time To Empty",
        value_fn=lambda c: _finite_or_none(c.health.time_to_empty),
        unit=UnitOfTime.SECONDS,
        device_class=SensorDeviceClass.DURATION,
        precision=0,
        icon="mdi:timer-sand",
    ),
    SensorDefinition(
        key="health",
        name="Energy Health",
        value_fn=lambda c: c.health.level.value,
        attributes_fn=_health_attributes,
        device_class=SensorDeviceClass.ENUM,
        options=[level.value for level in HealthLevel],
        icon="mdi:heart-pulse",
    ),
    SensorDefinition(
        key="forecast",
        name="Battery Level Forecast",
        value_fn=_forecast_value,
        attributes_fn=_forecast_attributes,
        unit=PERCENTAGE,
        icon="mdi:chart-bell-curve-cumulative",
    ),
]


class EmulatorSensor(SensorEntity):
    """Generic emulator sensor entity."""

    _attr_has_entity_name = True
    _attr_should_poll = False
    _unrecorded_attributes = frozenset({"trajectory", "accessories"})

    def __init__(
        self,
        entry_id: str,
        coordinator: EmulatorCoordinator,
        definition: SensorDefinition,
    ) -> None:
        """Initialize the sensor."""
        self._coordinator = coordinator
        self._definition = definition

        self._attr_unique_id = f"{entry_id}_{definition.key}"
        self._attr_name = definition.name
        self._attr_native_unit_of_measurement = definition.unit
        self._attr_device_class = definition.device_class
        self._attr_state_class = definition.state_class
        self._attr_options = definition.options
        self._attr_suggested_display_precision = definition.precision
        if definition.icon:
            self._attr_icon = definition.icon

        self._attr_device_info = device_info(entry_id)

    async def async_added_to_hass(self) -> None:
        """Register for updates."""
        self.async_on_remove(
            async_dispatcher_connect(self.hass, SIGNAL_UPDATE, self._handle_update)
        )
        self._handle_update()

    @callback
    def _handle_update(self) -> None:
        """Handle state update."""
        self._attr_native_value = self._definition.value_fn(self._coordinator)
        if self._definition.attributes_fn is not None:
            self._attr_extra_state_attributes = self._definition.attributes_fn(
                self._coordinator
            )
        self.async_write_ha_state()


async def async_setup_sensors(
    hass: HomeAssistant,
    entry: ConfigEntry,
    coordinator: EmulatorCoordinator,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up all sensor entities."""
    async_add_entities(
        EmulatorSensor(entry.entry_id, coordinator, definition)
        for definition in SENSOR_DEFINITIONS
    )
