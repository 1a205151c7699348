"""Emulator Coordinator - Thin orchestrator between HA and the engine.

It:
- Loads the durable store and builds the engine
- Drives the heartbeat according to the execution mode
- Relays engine events to HA's dispatcher and event bus
- Registers the services

It does NOT contain any simulation logic.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

import voluptuous as vol

from homeassistant.core import ServiceCall, callback
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.dispatcher import async_dispatcher_send
from homeassistant.helpers.event import async_track_time_interval
from homeassistant.util import dt as dt_util

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

from .const import (
    ATTR_ACCESSORIES,
    ATTR_ACCESSORY_ID,
    ATTR_DELAY,
    ATTR_DURATION,
    ATTR_ICON,
    ATTR_NAME,
    ATTR_ON,
    ATTR_POWER,
    ATTR_POWER_WHEN_ON,
    DOMAIN,
    EVENT_INCONSISTENT_STATE,
    EVENT_TICK_FAILED,
    EXECUTION_MODE_DO_NOTHING,
    EXECUTION_MODE_KEEP_RUNNING,
    PRUNE_INTERVAL_MINUTES,
    SERVICE_ADD_ACCESSORIES,
    SERVICE_ADD_MORE_APPLIANCES,
    SERVICE_SCHEDULE_POWER_CHANGE,
    SERVICE_SET_GENERATOR_OUTPUT,
    SERVICE_TOGGLE_ACCESSORY,
    SIGNAL_ACCESSORIES_ADDED,
    SIGNAL_UPDATE,
)
from .core.config import EmulatorConfig
from .core.emulator import HomeEmulator, accessories_from_config
from .core.events import EmulatorEvent, EmulatorEventBus, EventData
from .core.heartbeat import HeartbeatScheduler
from .core.state import EnergySnapshot
from .domain.forecaster import EnergyMetrics, HealthReport
from .emulator_logging import get_logger
from .exceptions import InconsistentStateError
from .infra.storage import HassEnergyStore

SET_GENERATOR_OUTPUT_SCHEMA = vol.Schema(
    {vol.Required(ATTR_POWER): vol.Coerce(float)}
)

SCHEDULE_POWER_CHANGE_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_ACCESSORY_ID): cv.string,
        vol.Optional(ATTR_ON, default=True): cv.boolean,
        vol.Optional(ATTR_DELAY, default=0.0): vol.All(
            vol.Coerce(float), vol.Range(min=0)
        ),
        vol.Optional(ATTR_DURATION): vol.All(
            vol.Coerce(float), vol.Range(min=0, min_included=False)
        ),
    }
)

TOGGLE_ACCESSORY_SCHEMA = vol.Schema({vol.Required(ATTR_ACCESSORY_ID): cv.string})

ACCESSORY_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_NAME): cv.string,
        vol.Optional(ATTR_ICON): cv.icon,
        vol.Required(ATTR_POWER_WHEN_ON): vol.All(vol.Coerce(float), vol.Range(min=0)),
    }
)

ADD_ACCESSORIES_SCHEMA = vol.Schema(
    {vol.Required(ATTR_ACCESSORIES): vol.All(cv.ensure_list, [ACCESSORY_SCHEMA])}
)

SERVICES = (
    SERVICE_SET_GENERATOR_OUTPUT,
    SERVICE_SCHEDULE_POWER_CHANGE,
    SERVICE_TOGGLE_ACCESSORY,
    SERVICE_ADD_ACCESSORIES,
    SERVICE_ADD_MORE_APPLIANCES,
)


def utc_timestamp() -> float:
    """Engine clock backed by HA's time source."""
    return dt_util.utcnow().timestamp()


class EmulatorCoordinator:
    """Thin orchestrator for the Home Energy Emulator."""

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry) -> None:
        """Initialize the coordinator."""
        self.hass = hass
        self.entry = entry
        self._listeners = []
        self._logger = get_logger()

        self.config = EmulatorConfig.from_entry(entry.data, entry.options).validate()
        self.events = EmulatorEventBus()
        self.store = HassEnergyStore(hass)
        self.emulator: HomeEmulator | None = None
        self.heartbeat: HeartbeatScheduler | None = None

        # Forecast cache, refreshed on every published snapshot
        self.health: HealthReport | None = None
        self.trajectory: list[EnergyMetrics] = []

    @property
    def snapshot(self) -> EnergySnapshot:
        """Last published engine state."""
        return self.emulator.snapshot

    async def async_init(self) -> None:
        """Load data, build the engine and start it."""
        self._logger.separator("EMULATOR SETUP")
        self._logger.info(
            "COORDINATOR_ASYNC_INIT_START", mode=self.config.execution_mode
        )

        await self.store.async_load()
        self.emulator = HomeEmulator(
            self.store, self.config, clock=utc_timestamp, events=self.events
        )
        self.emulator.seed_default_appliances()
        self._refresh_forecast()

        self._relay_events()
        self._setup_heartbeat()
        self._setup_pruning()
        self._register_services()

        self._logger.info("COORDINATOR_ASYNC_INIT_COMPLETE")

    def _relay_events(self) -> None:
        """Forward engine events to HA."""
        self._listeners.extend(
            [
                self.events.on(EmulatorEvent.STATE_PUBLISHED, self._handle_published),
                self.events.on(
                    EmulatorEvent.ACCESSORIES_ADDED, self._handle_accessories_added
                ),
                self.events.on(EmulatorEvent.TICK_FAILED, self._handle_tick_failed),
                self.events.on(
                    EmulatorEvent.INCONSISTENT_STATE, self._handle_inconsistent_state
                ),
                self.store.async_listen_write(self.emulator.record_store_write),
            ]
        )

    def _setup_heartbeat(self) -> None:
        mode = self.config.execution_mode
        if mode == EXECUTION_MODE_DO_NOTHING:
            return

        self.heartbeat = HeartbeatScheduler(
            self.hass, self.emulator, self.config.heartbeat_interval
        )
        self.heartbeat.async_run_once()
        if mode == EXECUTION_MODE_KEEP_RUNNING:
            self.heartbeat.async_start()
            self._listeners.append(self.heartbeat.async_stop)

    def _setup_pruning(self) -> None:
        self._listeners.append(
            async_track_time_interval(
                self.hass,
                self._handle_prune,
                timedelta(minutes=PRUNE_INTERVAL_MINUTES),
            )
        )

    def _register_services(self) -> None:
        """Register HA services."""
        register = self.hass.services.async_register
        register(
            DOMAIN,
            SERVICE_SET_GENERATOR_OUTPUT,
            self._async_handle_set_generator_output,
            schema=SET_GENERATOR_OUTPUT_SCHEMA,
        )
        register(
            DOMAIN,
            SERVICE_SCHEDULE_POWER_CHANGE,
            self._async_handle_schedule_power_change,
            schema=SCHEDULE_POWER_CHANGE_SCHEMA,
        )
        register(
            DOMAIN,
            SERVICE_TOGGLE_ACCESSORY,
            self._async_handle_toggle_accessory,
            schema=TOGGLE_ACCESSORY_SCHEMA,
        )
        register(
            DOMAIN,
            SERVICE_ADD_ACCESSORIES,
            self._async_handle_add_accessories,
            schema=ADD_ACCESSORIES_SCHEMA,
        )
        register(
            DOMAIN, SERVICE_ADD_MORE_APPLIANCES, self._async_handle_add_more_appliances
        )
        self._logger.debug("SERVICES_REGISTERED")

    async def async_unload(self) -> None:
        """Stop timers, write pending data and remove services."""
        for remove in self._listeners:
            remove()
        self._listeners.clear()

        for service in SERVICES:
            self.hass.services.async_remove(DOMAIN, service)

        await self.store.async_flush()
        self._logger.info("COORDINATOR_UNLOADED")
        self._logger.separator("EMULATOR STOPPED")

    # ========== Engine event handlers ==========

    def _refresh_forecast(self) -> None:
        self.health = self.emulator.health()
        self.trajectory = self.emulator.forecast()

    @callback
    def _handle_published(self, event: EventData) -> None:
        self._refresh_forecast()
        async_dispatcher_send(self.hass, SIGNAL_UPDATE)

    @callback
    def _handle_accessories_added(self, event: EventData) -> None:
        async_dispatcher_send(
            self.hass, SIGNAL_ACCESSORIES_ADDED, event.data["accessory_ids"]
        )

    @callback
    def _handle_tick_failed(self, event: EventData) -> None:
        self.hass.bus.async_fire(EVENT_TICK_FAILED, event.data)

    @callback
    def _handle_inconsistent_state(self, event: EventData) -> None:
        self.hass.bus.async_fire(EVENT_INCONSISTENT_STATE, event.data)

    @callback
    def _handle_prune(self, now: datetime) -> None:
        self.emulator.prune_history()

    # ========== Commands ==========

    def resolve_accessory(self, reference: str) -> str:
        """Map an accessory id or name to its id.

        Raises:
            InconsistentStateError: No accessory matches
        """
        accessories = self.snapshot.accessories
        if reference in accessories:
            return reference
        for accessory in accessories.values():
            if accessory.name.casefold() == reference.casefold():
                return accessory.id
        raise InconsistentStateError(f"Unknown accessory {reference}", reference)

    def set_generator_output(self, value: float) -> bool:
        """Set the generator output."""
        return self.emulator.set_generator_output(value)

    def set_accessory_state(self, accessory_id: str, on: bool) -> bool:
        """Switch an accessory on or off."""
        return self.emulator.set_accessory_state(accessory_id, on)

    async def _async_handle_set_generator_output(self, call: ServiceCall) -> None:
        self.set_generator_output(call.data[ATTR_POWER])

    async def _async_handle_schedule_power_change(self, call: ServiceCall) -> None:
        self.emulator.schedule_power_change(
            self.resolve_accessory(call.data[ATTR_ACCESSORY_ID]),
            call.data[ATTR_ON],
            delay=call.data[ATTR_DELAY],
            duration=call.data.get(ATTR_DURATION),
        )

    async def _async_handle_toggle_accessory(self, call: ServiceCall) -> None:
        self.emulator.toggle_accessory(
            self.resolve_accessory(call.data[ATTR_ACCESSORY_ID])
        )

    async def _async_handle_add_accessories(self, call: ServiceCall) -> None:
        items: list[dict[str, Any]] = call.data[ATTR_ACCESSORIES]
        self.emulator.add_accessories(accessories_from_config(items))

    async def _async_handle_add_more_appliances(self, call: ServiceCall) -> None:
        self.emulator.add_more_appliances()
