"""Exceptions raised by the Home Energy Emulator."""

from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError, ServiceValidationError


class HomeEnergyError(HomeAssistantError):
    """Base class for all emulator errors."""


class ConfigurationError(HomeEnergyError):
    """The engine was set up without a usable store or with invalid settings."""


class ValidationError(HomeEnergyError, ServiceValidationError):
    """A command argument is out of range."""


class PersistenceError(HomeEnergyError):
    """A store read or write failed."""


class InconsistentStateError(HomeEnergyError):
    """A reference points at an accessory that does not exist."""

    def __init__(self, message: str, accessory_id: str | None = None) -> None:
        """Initialize with the offending accessory id."""
        super().__init__(message)
        self.accessory_id = accessory_id
