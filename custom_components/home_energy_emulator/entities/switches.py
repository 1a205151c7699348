"""Switch entities."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.core import callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity import EntityCategory

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback
    from ..coordinator import EmulatorCoordinator

from ..const import SIGNAL_ACCESSORIES_ADDED, SIGNAL_UPDATE
from ..emulator_logging import get_logger
from .base import device_info


class AccessorySwitch(SwitchEntity):
    """Switches one simulated appliance on or off."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    def __init__(
        self, entry_id: str, coordinator: EmulatorCoordinator, accessory_id: str
    ) -> None:
        """Initialize."""
        self._coordinator = coordinator
        self._accessory_id = accessory_id

        accessory = coordinator.snapshot.accessories[accessory_id]
        self._attr_unique_id = f"{entry_id}_accessory_{accessory_id}"
        self._attr_name = accessory.name
        self._attr_icon = accessory.icon
        self._attr_is_on = accessory.on
        self._attr_device_info = device_info(entry_id)

    async def async_added_to_hass(self) -> None:
        """Register for updates."""
        self.async_on_remove(
            async_dispatcher_connect(self.hass, SIGNAL_UPDATE, self._handle_update)
        )
        self._handle_update()

    @callback
    def _handle_update(self) -> None:
        """Mirror the published accessory state."""
        accessory = self._coordinator.snapshot.accessories.get(self._accessory_id)
        self._attr_available = accessory is not None
        if accessory is not None:
            self._attr_is_on = accessory.on
            self._attr_extra_state_attributes = {
                "accessory_id": self._accessory_id,
                "power_when_on": accessory.power_when_on,
            }
        self.async_write_ha_state()

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Switch the appliance on."""
        self._coordinator.set_accessory_state(self._accessory_id, True)

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Switch the appliance off."""
        self._coordinator.set_accessory_state(self._accessory_id, False)


class DebugLoggingSwitch(SwitchEntity):
    """Switch to control debug file logging."""

    _attr_has_entity_name = True
    _attr_icon = "mdi:bug"
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    def __init__(self, entry_id: str) -> None:
        """Initialize."""
        self._logger = get_logger()

        self._attr_unique_id = f"{entry_id}_debug_logging"
        self._attr_name = "Debug Logging"
        self._attr_is_on = self._logger.file_logging_enabled
        self._attr_device_info = device_info(entry_id)

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Turn on debug logging."""
        await self.hass.async_add_executor_job(self._logger.set_file_logging, True)
        self._attr_is_on = self._logger.file_logging_enabled
        await self._async_refresh_size()
        self.async_write_ha_state()

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Turn off debug logging."""
        await self.hass.async_add_executor_job(self._logger.set_file_logging, False)
        self._attr_is_on = False
        await self._async_refresh_size()
        self.async_write_ha_state()

    async def _async_refresh_size(self) -> None:
        size_kb = await self.hass.async_add_executor_job(self._logger.get_total_size_kb)
        self._attr_extra_state_attributes = {
            "log_file": str(self._logger.log_file),
            "log_size_kb": size_kb,
        }


async def async_setup_switches(
    hass: HomeAssistant,
    entry: ConfigEntry,
    coordinator: EmulatorCoordinator,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up switch entities, including appliances added later."""

    @callback
    def async_add_accessories(accessory_ids: Iterable[str]) -> None:
        async_add_entities(
            AccessorySwitch(entry.entry_id, coordinator, accessory_id)
            for accessory_id in accessory_ids
        )

    async_add_entities([DebugLoggingSwitch(entry.entry_id)])
    async_add_accessories(coordinator.snapshot.accessories)

    entry.async_on_unload(
        async_dispatcher_connect(hass, SIGNAL_ACCESSORIES_ADDED, async_add_accessories)
    )
