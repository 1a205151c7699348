"""Shared test helpers."""
from pytest_homeassistant_custom_component.common import MockConfigEntry

from homeassistant.config_entries import ConfigEntryState
from homeassistant.core import HomeAssistant
from homeassistant.helpers import entity_registry as er

from custom_components.home_energy_emulator.const import (
    CONF_BATTERY_CAPACITY,
    CONF_EXECUTION_MODE,
    CONF_FACTORY_CHARGE,
    CONF_GENERATOR_DEFAULT_OUTPUT,
    CONF_GENERATOR_MAX_OUTPUT,
    CONF_HEARTBEAT_INTERVAL,
    DOMAIN,
    EXECUTION_MODE_UPDATE_ONCE,
)

START = 1_700_000_000.0


class FakeClock:
    """Manually advanced clock returning POSIX seconds."""

    def __init__(self, now: float = START) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


def entry_data(**overrides):
    """Config entry data with test defaults."""
    data = {
        CONF_BATTERY_CAPACITY: 100.0,
        CONF_FACTORY_CHARGE: 50.0,
        CONF_GENERATOR_MAX_OUTPUT: 3500.0,
        CONF_GENERATOR_DEFAULT_OUTPUT: 3000.0,
        CONF_HEARTBEAT_INTERVAL: 1.0,
        CONF_EXECUTION_MODE: EXECUTION_MODE_UPDATE_ONCE,
    }
    data.update(overrides)
    return data


async def async_setup_entry(hass: HomeAssistant, **overrides) -> MockConfigEntry:
    """Add and set up a config entry."""
    entry = MockConfigEntry(domain=DOMAIN, data=entry_data(**overrides), unique_id=DOMAIN)
    entry.add_to_hass(hass)

    await hass.config_entries.async_setup(entry.entry_id)
    await hass.async_block_till_done()
    return entry


async def async_teardown_entry(hass: HomeAssistant, entry: MockConfigEntry) -> None:
    """Unload an entry if it is still loaded."""
    if entry.state is ConfigEntryState.LOADED:
        await hass.config_entries.async_unload(entry.entry_id)
        await hass.async_block_till_done()


def entity_id(hass: HomeAssistant, platform: str, entry: MockConfigEntry, key: str) -> str:
    """Look up an entity id by its unique id suffix."""
    return er.async_get(hass).async_get_entity_id(
        platform, DOMAIN, f"{entry.entry_id}_{key}"
    )
