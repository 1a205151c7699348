"""Engine configuration."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..const import (
    CONF_BATTERY_CAPACITY,
    CONF_DEDUP_TOLERANCE_RATIO,
    CONF_EXECUTION_MODE,
    CONF_FACTORY_CHARGE,
    CONF_GENERATOR_DEFAULT_OUTPUT,
    CONF_GENERATOR_MAX_OUTPUT,
    CONF_HEARTBEAT_INTERVAL,
    CONF_HISTORY_RETENTION_HOURS,
    DEFAULT_BATTERY_CAPACITY,
    DEFAULT_DEDUP_TOLERANCE_RATIO,
    DEFAULT_EXECUTION_MODE,
    DEFAULT_FACTORY_CHARGE,
    DEFAULT_FORECAST_CHARGE_THRESHOLD,
    DEFAULT_FORECAST_HORIZON,
    DEFAULT_FORECAST_STEP,
    DEFAULT_GENERATOR_DEFAULT_OUTPUT,
    DEFAULT_GENERATOR_MAX_OUTPUT,
    DEFAULT_HEARTBEAT_INTERVAL,
    DEFAULT_HISTORY_RETENTION_HOURS,
    EXECUTION_MODES,
)
from ..exceptions import ConfigurationError


@dataclass
class EmulatorConfig:
    """Tunable parameters of the emulator."""

    heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL
    dedup_tolerance_ratio: float = DEFAULT_DEDUP_TOLERANCE_RATIO
    battery_capacity_wh: float = DEFAULT_BATTERY_CAPACITY
    factory_charge_wh: float = DEFAULT_FACTORY_CHARGE
    generator_max_output_w: float = DEFAULT_GENERATOR_MAX_OUTPUT
    generator_default_output_w: float = DEFAULT_GENERATOR_DEFAULT_OUTPUT
    forecast_step: float = DEFAULT_FORECAST_STEP
    forecast_horizon: float = DEFAULT_FORECAST_HORIZON
    forecast_charge_threshold: float = DEFAULT_FORECAST_CHARGE_THRESHOLD
    history_retention_hours: float = DEFAULT_HISTORY_RETENTION_HOURS
    execution_mode: str = DEFAULT_EXECUTION_MODE

    @property
    def tolerance(self) -> float:
        """Width of the dedup tolerance window, in seconds."""
        return self.heartbeat_interval * self.dedup_tolerance_ratio

    @classmethod
    def from_entry(
        cls, data: Mapping[str, Any], options: Mapping[str, Any]
    ) -> EmulatorConfig:
        """Build from config entry data and options (options win)."""

        def get_config(key, default):
            return options.get(key, data.get(key, default))

        return cls(
            heartbeat_interval=float(
                get_config(CONF_HEARTBEAT_INTERVAL, DEFAULT_HEARTBEAT_INTERVAL)
            ),
            dedup_tolerance_ratio=float(
                get_config(CONF_DEDUP_TOLERANCE_RATIO, DEFAULT_DEDUP_TOLERANCE_RATIO)
            ),
            battery_capacity_wh=float(
                get_config(CONF_BATTERY_CAPACITY, DEFAULT_BATTERY_CAPACITY)
            ),
            factory_charge_wh=float(
                get_config(CONF_FACTORY_CHARGE, DEFAULT_FACTORY_CHARGE)
            ),
            generator_max_output_w=float(
                get_config(CONF_GENERATOR_MAX_OUTPUT, DEFAULT_GENERATOR_MAX_OUTPUT)
            ),
            generator_default_output_w=float(
                get_config(
                    CONF_GENERATOR_DEFAULT_OUTPUT, DEFAULT_GENERATOR_DEFAULT_OUTPUT
                )
            ),
            history_retention_hours=float(
                get_config(CONF_HISTORY_RETENTION_HOURS, DEFAULT_HISTORY_RETENTION_HOURS)
            ),
            execution_mode=get_config(CONF_EXECUTION_MODE, DEFAULT_EXECUTION_MODE),
        )

    def validate(self) -> EmulatorConfig:
        """Raise ConfigurationError on unusable settings; return self."""
        errors = []
        for name in (
            "heartbeat_interval",
            "battery_capacity_wh",
            "generator_max_output_w",
            "forecast_step",
            "forecast_horizon",
            "history_retention_hours",
        ):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                errors.append(f"{name} must be positive")
        if not 0 <= self.dedup_tolerance_ratio < 1:
            errors.append("dedup_tolerance_ratio must be within [0, 1)")
        if not 0 <= self.factory_charge_wh <= self.battery_capacity_wh:
            errors.append("factory_charge_wh must be within battery capacity")
        if not 0 <= self.generator_default_output_w <= self.generator_max_output_w:
            errors.append("generator_default_output_w must be within generator range")
        if self.forecast_charge_threshold < 0:
            errors.append("forecast_charge_threshold must not be negative")
        if self.execution_mode not in EXECUTION_MODES:
            errors.append(f"unknown execution_mode {self.execution_mode}")

        if errors:
            raise ConfigurationError("; ".join(errors))
        return self
