"""Test the config flow."""
from unittest.mock import patch

import pytest
from homeassistant import config_entries, data_entry_flow
from homeassistant.core import HomeAssistant

from custom_components.home_energy_emulator.const import (
    CONF_EXECUTION_MODE,
    CONF_HEARTBEAT_INTERVAL,
    CONF_HISTORY_RETENTION_HOURS,
    DEFAULT_NAME,
    DOMAIN,
    EXECUTION_MODE_DO_NOTHING,
)

from .helpers import async_setup_entry, async_teardown_entry, entry_data


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations):
    """Enable custom integrations for every test."""
    yield


@pytest.mark.asyncio
async def test_form_step_user(hass: HomeAssistant):
    """Test we get the form."""
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    assert result["type"] == data_entry_flow.FlowResultType.FORM
    assert result["step_id"] == "user"
    assert result["errors"] == {}


@pytest.mark.asyncio
async def test_create_entry(hass: HomeAssistant):
    """Valid input creates the entry."""
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )

    with patch(
        "custom_components.home_energy_emulator.async_setup_entry",
        return_value=True,
    ) as mock_setup_entry:
        result2 = await hass.config_entries.flow.async_configure(
            result["flow_id"], entry_data()
        )
        await hass.async_block_till_done()

    assert result2["type"] == data_entry_flow.FlowResultType.CREATE_ENTRY
    assert result2["title"] == DEFAULT_NAME
    assert result2["data"] == entry_data()
    assert len(mock_setup_entry.mock_calls) == 1


@pytest.mark.asyncio
async def test_invalid_config(hass: HomeAssistant):
    """An initial charge above the capacity is refused."""
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )

    result2 = await hass.config_entries.flow.async_configure(
        result["flow_id"], entry_data(factory_charge_wh=500.0)
    )

    assert result2["type"] == data_entry_flow.FlowResultType.FORM
    assert result2["errors"] == {"base": "invalid_config"}


@pytest.mark.asyncio
async def test_single_instance(hass: HomeAssistant):
    """Only one emulator can be configured."""
    entry = await async_setup_entry(hass)

    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )

    assert result["type"] == data_entry_flow.FlowResultType.ABORT
    assert result["reason"] in ("already_configured", "single_instance_allowed")

    await async_teardown_entry(hass, entry)


@pytest.mark.asyncio
async def test_options_flow(hass: HomeAssistant):
    """Options are saved and reload the entry."""
    entry = await async_setup_entry(hass)

    result = await hass.config_entries.options.async_init(entry.entry_id)
    assert result["type"] == data_entry_flow.FlowResultType.FORM
    assert result["step_id"] == "init"

    options = {
        CONF_HEARTBEAT_INTERVAL: 5.0,
        CONF_HISTORY_RETENTION_HOURS: 48.0,
        CONF_EXECUTION_MODE: EXECUTION_MODE_DO_NOTHING,
    }
    result2 = await hass.config_entries.options.async_configure(
        result["flow_id"], options
    )
    await hass.async_block_till_done()

    assert result2["type"] == data_entry_flow.FlowResultType.CREATE_ENTRY
    assert entry.options == options
    coordinator = hass.data[DOMAIN][entry.entry_id]
    assert coordinator.config.heartbeat_interval == 5.0
    assert coordinator.heartbeat is None

    await hass.config_entries.async_unload(entry.entry_id)
    await hass.async_block_till_done()
