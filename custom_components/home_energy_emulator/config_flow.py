"""Config flow for the Home Energy Emulator integration."""
from __future__ import annotations

from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers import selector

from .const import (
    CONF_BATTERY_CAPACITY,
    CONF_EXECUTION_MODE,
    CONF_FACTORY_CHARGE,
    CONF_GENERATOR_DEFAULT_OUTPUT,
    CONF_GENERATOR_MAX_OUTPUT,
    CONF_HEARTBEAT_INTERVAL,
    CONF_HISTORY_RETENTION_HOURS,
    DEFAULT_BATTERY_CAPACITY,
    DEFAULT_EXECUTION_MODE,
    DEFAULT_FACTORY_CHARGE,
    DEFAULT_GENERATOR_DEFAULT_OUTPUT,
    DEFAULT_GENERATOR_MAX_OUTPUT,
    DEFAULT_HEARTBEAT_INTERVAL,
    DEFAULT_HISTORY_RETENTION_HOURS,
    DEFAULT_NAME,
    DOMAIN,
    EXECUTION_MODES,
)
from .core.config import EmulatorConfig
from .exceptions import ConfigurationError


def _number(
    min_value: float, max_value: float, step: float, unit: str | None = None
) -> selector.NumberSelector:
    return selector.NumberSelector(
        selector.NumberSelectorConfig(
            min=min_value,
            max=max_value,
            step=step,
            unit_of_measurement=unit,
            mode=selector.NumberSelectorMode.BOX,
        )
    )


EXECUTION_MODE_SELECTOR = selector.SelectSelector(
    selector.SelectSelectorConfig(
        options=EXECUTION_MODES,
        mode=selector.SelectSelectorMode.DROPDOWN,
        translation_key=CONF_EXECUTION_MODE,
    )
)


class ConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for the Home Energy Emulator."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Battery, generator and heartbeat setup."""
        await self.async_set_unique_id(DOMAIN)
        self._abort_if_unique_id_configured()

        errors: dict[str, str] = {}

        if user_input is not None:
            try:
                EmulatorConfig.from_entry(user_input, {}).validate()
            except ConfigurationError:
                errors["base"] = "invalid_config"
            else:
                return self.async_create_entry(title=DEFAULT_NAME, data=user_input)

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        CONF_BATTERY_CAPACITY, default=DEFAULT_BATTERY_CAPACITY
                    ): _number(1, 100000, 1, "Wh"),
                    vol.Required(
                        CONF_FACTORY_CHARGE, default=DEFAULT_FACTORY_CHARGE
                    ): _number(0, 100000, 1, "Wh"),
                    vol.Required(
                        CONF_GENERATOR_MAX_OUTPUT, default=DEFAULT_GENERATOR_MAX_OUTPUT
                    ): _number(1, 100000, 10, "W"),
                    vol.Required(
                        CONF_GENERATOR_DEFAULT_OUTPUT,
                        default=DEFAULT_GENERATOR_DEFAULT_OUTPUT,
                    ): _number(0, 100000, 10, "W"),
                    vol.Required(
                        CONF_HEARTBEAT_INTERVAL, default=DEFAULT_HEARTBEAT_INTERVAL
                    ): _number(0.1, 3600, 0.1, "s"),
                    vol.Required(
                        CONF_EXECUTION_MODE, default=DEFAULT_EXECUTION_MODE
                    ): EXECUTION_MODE_SELECTOR,
                }
            ),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> config_entries.OptionsFlow:
        """Get the options flow for this handler."""
        return OptionsFlowHandler(config_entry)


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Handle options flow for the Home Energy Emulator."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        """Initialize options flow."""
        self._config_entry = config_entry

    def _get_value(self, key: str, default: Any) -> Any:
        """Get value from options or data with fallback to default."""
        return self._config_entry.options.get(
            key,
            self._config_entry.data.get(key, default)
        )

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Manage the options - single page."""
        errors: dict[str, str] = {}

        if user_input is not None:
            try:
                EmulatorConfig.from_entry(
                    self._config_entry.data, user_input
                ).validate()
            except ConfigurationError:
                errors["base"] = "invalid_config"
            else:
                return self.async_create_entry(title="", data=user_input)

        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        CONF_HEARTBEAT_INTERVAL,
                        default=self._get_value(
                            CONF_HEARTBEAT_INTERVAL, DEFAULT_HEARTBEAT_INTERVAL
                        ),
                    ): _number(0.1, 3600, 0.1, "s"),
                    vol.Required(
                        CONF_HISTORY_RETENTION_HOURS,
                        default=self._get_value(
                            CONF_HISTORY_RETENTION_HOURS, DEFAULT_HISTORY_RETENTION_HOURS
                        ),
                    ): _number(1, 8760, 1, "h"),
                    vol.Required(
                        CONF_EXECUTION_MODE,
                        default=self._get_value(
                            CONF_EXECUTION_MODE, DEFAULT_EXECUTION_MODE
                        ),
                    ): EXECUTION_MODE_SELECTOR,
                }
            ),
            errors=errors,
        )
