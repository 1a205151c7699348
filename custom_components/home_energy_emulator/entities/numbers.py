"""Number entities."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.components.number import (
    NumberDeviceClass,
    NumberEntity,
    NumberMode,
)
from homeassistant.const import UnitOfPower
from homeassistant.core import callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback
    from ..coordinator import EmulatorCoordinator

from ..const import SIGNAL_UPDATE
from ..emulator_logging import get_logger
from .base import device_info


class GeneratorOutputNumber(NumberEntity):
    """Generator output setpoint.

    The value lives in the engine; this entity only forwards changes and
    mirrors the published snapshot.
    """

    _attr_has_entity_name = True
    _attr_should_poll = False
    _attr_native_min_value = 0.0
    _attr_native_step = 10.0
    _attr_native_unit_of_measurement = UnitOfPower.WATT
    _attr_device_class = NumberDeviceClass.POWER
    _attr_mode = NumberMode.SLIDER
    _attr_icon = "mdi:engine"

    def __init__(self, entry_id: str, coordinator: EmulatorCoordinator) -> None:
        """Initialize."""
        self._coordinator = coordinator
        self._logger = get_logger()

        self._attr_unique_id = f"{entry_id}_generator_output_setpoint"
        self._attr_name = "Generator Output Setpoint"
        self._attr_native_max_value = coordinator.config.generator_max_output_w
        self._attr_native_value = coordinator.snapshot.generator_output
        self._attr_device_info = device_info(entry_id)

    async def async_added_to_hass(self) -> None:
        """Register for updates."""
        self.async_on_remove(
            async_dispatcher_connect(self.hass, SIGNAL_UPDATE, self._handle_update)
        )

    @callback
    def _handle_update(self) -> None:
        """Sync with the engine."""
        value = self._coordinator.snapshot.generator_output
        if value != self._attr_native_value:
            self._attr_native_value = value
            self.async_write_ha_state()

    async def async_set_native_value(self, value: float) -> None:
        """Handle value change from UI."""
        self._logger.info(
            "GENERATOR_SET_REQUEST", old_value=self._attr_native_value, new_value=value
        )
        self._coordinator.set_generator_output(value)
        self._attr_native_value = self._coordinator.snapshot.generator_output
        self.async_write_ha_state()


async def async_setup_numbers(
    hass: HomeAssistant,
    entry: ConfigEntry,
    coordinator: EmulatorCoordinator,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up number entities."""
    async_add_entities([GeneratorOutputNumber(entry.entry_id, coordinator)])
