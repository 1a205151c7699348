"""Shared entity plumbing."""

from __future__ import annotations

from homeassistant.helpers.entity import DeviceInfo

from ..const import DEFAULT_NAME, DOMAIN


def device_info(entry_id: str) -> DeviceInfo:
    """Device all emulator entities belong to."""
    return DeviceInfo(
        identifiers={(DOMAIN, entry_id)},
        name=DEFAULT_NAME,
        manufacturer="Home Energy Emulator",
        model="Simulated household",
    )
