"""Battery depletion forecasting.

This module contains:
- Time-to-empty estimation over the pending event queue
- Health classification from time-to-empty
- A sampled "what-if" trajectory of future energy metrics

Everything here is a pure function of a ForecastInput snapshot. Nothing is
written back to the engine or the store, so a caller can drop a stale
forecast at any time.
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from ..const import (
    DEFAULT_FORECAST_CHARGE_THRESHOLD,
    DEFAULT_FORECAST_HORIZON,
    DEFAULT_FORECAST_STEP,
    HEALTH_CRITICAL_SECONDS,
    HEALTH_WARNING_SECONDS,
)
from ..models import ScheduledPowerEvent
from .battery import ChargingState, clamp


@dataclass(frozen=True)
class AccessoryLoad:
    """Power state of one accessory as seen by the forecast."""

    on: bool
    power_when_on: float


@dataclass(frozen=True)
class ForecastInput:
    """Snapshot the forecast runs on."""

    now: float
    consumption: float
    generator_output: float
    charge: float
    max_capacity: float
    charging_power: float
    accessories: Mapping[str, AccessoryLoad]
    events: Sequence[ScheduledPowerEvent]  # sorted by (timestamp, sequence)

    @property
    def charge_level(self) -> float:
        """Current charge level."""
        return self.charge / self.max_capacity


@dataclass(frozen=True)
class EnergyMetrics:
    """One point of the forecast trajectory."""

    time_ts: float
    consumption: float  # W, all accessories
    charge_level: float  # 0...1
    charging_state: ChargingState
    time_to_empty: float  # seconds, inf if the battery never empties

    @property
    def time(self) -> datetime:
        """Sample time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.time_ts, UTC)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for state attributes."""
        return {
            "time": self.time.isoformat(),
            "consumption": round(self.consumption, 3),
            "charge_level": round(self.charge_level, 5),
            "charging_state": self.charging_state.value,
            "time_to_empty": (
                None if math.isinf(self.time_to_empty) else round(self.time_to_empty, 1)
            ),
        }


class HealthLevel(str, Enum):
    """Home energy health."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def description(self) -> str:
        """Human readable level."""
        if self is HealthLevel.CRITICAL:
            return "Critical"
        if self is HealthLevel.WARNING:
            return "Warning - high consumption"
        return "Healthy"


@dataclass(frozen=True)
class HealthReport:
    """Health level together with the time-to-empty it was derived from."""

    level: HealthLevel
    time_to_empty: float


def _transitions(
    data: ForecastInput,
) -> Iterator[tuple[ScheduledPowerEvent, float]]:
    """Yield events that actually change an accessory's power state.

    Each item is the event and the change in consumption it causes. Events
    switching an accessory into the state it already has, and events for
    unknown accessories, are skipped.
    """
    cached: dict[str, bool] = {}
    for event in data.events:
        load = data.accessories.get(event.accessory_id)
        if load is None:
            continue
        current = cached.get(event.accessory_id, load.on)
        if event.on == current:
            continue
        cached[event.accessory_id] = event.on
        yield event, load.power_when_on if event.on else -load.power_when_on


class EnergyForecaster:
    """Pure forecast computations."""

    @staticmethod
    def time_to_empty(data: ForecastInput) -> float:
        """Seconds until the battery is drained, assuming no further user action.

        Generator output is assumed constant. Consumption changes at every
        pending event. Energy drawn from the battery is integrated segment by
        segment; a segment that would drain the remaining charge is solved
        exactly. Surplus energy can never exceed the free capacity.

        Returns:
            Seconds from ``data.now``; ``math.inf`` if the battery never empties
        """
        # Power being drawn from the battery, in watts
        power = data.consumption - data.generator_output
        charge = data.charge

        if power > 0 and charge <= 0:
            return 0.0

        headroom = data.max_capacity - charge
        # Battery energy used from now, in watt hours
        energy_consumed = 0.0
        time = data.now

        for event, power_change in _transitions(data):
            time_to_event = max(0.0, event.timestamp - time)
            energy_delta = power * time_to_event / 3600.0
            if power > 0 and energy_consumed + energy_delta >= charge:
                return (time - data.now) + (charge - energy_consumed) / power * 3600.0
            energy_consumed = max(energy_consumed + energy_delta, -headroom)
            time += time_to_event
            power += power_change

        if power <= 0:
            return math.inf

        return (time - data.now) + (charge - energy_consumed) / power * 3600.0

    @staticmethod
    def classify_health(time_to_empty: float) -> HealthLevel:
        """Map time-to-empty to a health level."""
        if time_to_empty <= HEALTH_CRITICAL_SECONDS:
            return HealthLevel.CRITICAL
        if time_to_empty <= HEALTH_WARNING_SECONDS:
            return HealthLevel.WARNING
        return HealthLevel.HEALTHY

    @classmethod
    def health(cls, data: ForecastInput) -> HealthReport:
        """Compute the health report for a snapshot."""
        time_to_empty = cls.time_to_empty(data)
        return HealthReport(cls.classify_health(time_to_empty), time_to_empty)

    @classmethod
    def predict(
        cls,
        data: ForecastInput,
        increment: float = DEFAULT_FORECAST_STEP,
        horizon: float = DEFAULT_FORECAST_HORIZON,
        threshold: float = DEFAULT_FORECAST_CHARGE_THRESHOLD,
    ) -> list[EnergyMetrics]:
        """Predict how energy metrics evolve over time.

        The same event walk as time_to_empty is replayed. Between events a
        sample is produced every ``increment`` seconds, but only kept when the
        charge level moved by more than ``threshold`` since the last kept
        sample. Every effective event yields a sample. After the last event,
        sampling continues until ``horizon`` seconds past now, and the last
        step is always kept so the curve reaches the horizon.

        Returns:
            Samples with strictly increasing timestamps
        """
        charge = data.charge
        capacity = data.max_capacity
        generator = data.generator_output
        time_to_empty = cls.time_to_empty(data)

        metrics = [
            EnergyMetrics(
                time_ts=data.now,
                consumption=data.consumption,
                charge_level=clamp(data.charge_level, 0.0, 1.0),
                charging_state=ChargingState.for_power(
                    data.charging_power, data.charge_level
                ),
                time_to_empty=time_to_empty,
            )
        ]
        last_level = metrics[0].charge_level

        power = data.consumption - generator
        energy_consumed = 0.0
        time = data.now

        def level_after(seconds: float) -> float:
            remaining = charge - energy_consumed - power * seconds / 3600.0
            return clamp(remaining / capacity, 0.0, 1.0)

        for event, power_change in _transitions(data):
            time_to_event = max(0.0, event.timestamp - time)

            # Linear samples between now and the event
            step_index = 1
            while step_index * increment < time_to_event:
                step = step_index * increment
                level = level_after(step)
                if abs(level - last_level) > threshold:
                    metrics.append(
                        EnergyMetrics(
                            time_ts=time + step,
                            consumption=power + generator,
                            charge_level=level,
                            charging_state=ChargingState.for_power(-power, level),
                            time_to_empty=max(0.0, time_to_empty - step),
                        )
                    )
                    last_level = level
                step_index += 1

            energy_consumed = clamp(
                energy_consumed + power * time_to_event / 3600.0,
                -(capacity - charge),
                charge,
            )
            power += power_change
            time += time_to_event
            time_to_empty = max(0.0, time_to_empty - time_to_event)

            level = clamp((charge - energy_consumed) / capacity, 0.0, 1.0)
            boundary = EnergyMetrics(
                time_ts=time,
                consumption=power + generator,
                charge_level=level,
                charging_state=ChargingState.for_power(-power, level),
                time_to_empty=time_to_empty,
            )
            if boundary.time_ts <= metrics[-1].time_ts:
                # Simultaneous events: the later state wins
                metrics[-1] = boundary
            else:
                metrics.append(boundary)
            last_level = level

        time_to_end = data.now + horizon - time
        step_index = 1
        pending: EnergyMetrics | None = None
        while step_index * increment < time_to_end:
            step = step_index * increment
            level = level_after(step)
            sample = EnergyMetrics(
                time_ts=time + step,
                consumption=power + generator,
                charge_level=level,
                charging_state=ChargingState.for_power(-power, level),
                time_to_empty=max(0.0, time_to_empty - step),
            )
            if abs(level - last_level) > threshold:
                metrics.append(sample)
                last_level = level
                pending = None
            else:
                pending = sample
            step_index += 1

        if pending is not None:
            metrics.append(pending)

        return metrics
