"""Binary sensor entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.core import callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity import EntityCategory

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback
    from ..coordinator import EmulatorCoordinator

from ..const import SIGNAL_UPDATE
from ..domain.battery import ChargingState
from .base import device_info


@dataclass
class BinarySensorDefinition:
    """Definition for a binary sensor."""

    key: str
    name: str
    value_fn: Callable[[Any], bool]
    device_class: BinarySensorDeviceClass | None = None
    entity_category: EntityCategory | None = None


BINARY_SENSOR_DEFINITIONS: list[BinarySensorDefinition] = [
    BinarySensorDefinition(
        key="low_battery",
        name="Low Battery",
        value_fn=lambda c: c.snapshot.low_battery,
        device_class=BinarySensorDeviceClass.BATTERY,
    ),
    BinarySensorDefinition(
        key="battery_charging",
        name="Battery Charging",
        value_fn=lambda c: c.snapshot.charging_state is ChargingState.CHARGING,
        device_class=BinarySensorDeviceClass.BATTERY_CHARGING,
    ),
    BinarySensorDefinition(
        key="heartbeat_problem",
        name="Heartbeat Problem",
        value_fn=lambda c: c.snapshot.consecutive_failures > 0,
        device_class=BinarySensorDeviceClass.PROBLEM,
        entity_category=EntityCategory.DIAGNOSTIC,
    ),
]


class EmulatorBinarySensor(BinarySensorEntity):
    """Generic emulator binary sensor."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    def __init__(
        self,
        entry_id: str,
        coordinator: EmulatorCoordinator,
        definition: BinarySensorDefinition,
    ) -> None:
        """Initialize."""
        self._coordinator = coordinator
        self._definition = definition

        self._attr_unique_id = f"{entry_id}_{definition.key}"
        self._attr_name = definition.name
        self._attr_device_class = definition.device_class
        self._attr_entity_category = definition.entity_category
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
        self._attr_is_on = self._definition.value_fn(self._coordinator)
        if self._definition.key == "heartbeat_problem":
            self._attr_extra_state_attributes = {
                "consecutive_failures": self._coordinator.snapshot.consecutive_failures,
                "last_error": self._coordinator.snapshot.last_error,
            }
        self.async_write_ha_state()


async def async_setup_binary_sensors(
    hass: HomeAssistant,
    entry: ConfigEntry,
    coordinator: EmulatorCoordinator,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up binary sensor entities."""
    async_add_entities(
        EmulatorBinarySensor(entry.entry_id, coordinator, definition)
        for definition in BINARY_SENSOR_DEFINITIONS
    )
