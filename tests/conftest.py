"""Fixtures for testing."""
import pytest

from homeassistant.core import HomeAssistant

from custom_components.home_energy_emulator.const import DOMAIN
from custom_components.home_energy_emulator.core.config import EmulatorConfig
from custom_components.home_energy_emulator.core.emulator import HomeEmulator
from custom_components.home_energy_emulator.core.store import MemoryEnergyStore

from . import helpers


@pytest.fixture
def clock():
    """Fake clock starting at helpers.START."""
    return helpers.FakeClock()


@pytest.fixture
def store():
    """Empty in-memory store."""
    return MemoryEnergyStore()


@pytest.fixture
def config():
    """Default engine configuration."""
    return EmulatorConfig()


@pytest.fixture
def emulator(store, config, clock):
    """Engine on an empty store."""
    return HomeEmulator(store, config, clock=clock)


@pytest.fixture
async def setup_integration(hass: HomeAssistant, enable_custom_integrations):
    """Set up the integration in update_once mode."""
    entry = await helpers.async_setup_entry(hass)
    yield entry
    await helpers.async_teardown_entry(hass, entry)


@pytest.fixture
def coordinator(hass: HomeAssistant, setup_integration):
    """Coordinator of the loaded entry."""
    return hass.data[DOMAIN][setup_integration.entry_id]
