"""Home energy emulator engine.

The engine owns every piece of mutable simulation state: accessory on/off
states (through the store), aggregate consumption, battery charge and
generator output. All mutation goes through one re-entrant lock, so a tick
and a command never interleave. Readers get the last published
EnergySnapshot, which is only replaced once a tick or command is complete.

Time comes from an injected clock returning POSIX seconds, so the whole
engine can be driven deterministically in tests.
"""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any

from ..const import DEFAULT_APPLIANCES, EXTRA_APPLIANCES
from ..domain.battery import HomeBattery
from ..domain.forecaster import (
    AccessoryLoad,
    EnergyForecaster,
    EnergyMetrics,
    ForecastInput,
    HealthReport,
)
from ..domain.generator import HomeGenerator
from ..emulator_logging import get_logger
from ..exceptions import (
    ConfigurationError,
    InconsistentStateError,
    PersistenceError,
    ValidationError,
)
from ..models import Accessory, GeneratorOutput, SampleKind, ScheduledPowerEvent
from ..services import (
    BatteryChargeService,
    ConsumptionAggregator,
    ScheduledEventProcessor,
)
from .config import EmulatorConfig
from .events import EmulatorEvent, EmulatorEventBus
from .state import AccessoryState, EnergySnapshot
from .store import EnergyStore

Clock = Callable[[], float]


def accessories_from_config(items: Iterable[Mapping[str, Any]]) -> list[Accessory]:
    """Build accessories from name/icon/power_when_on mappings."""
    accessories = []
    for item in items:
        kwargs = {"name": item["name"], "power_when_on": item["power_when_on"]}
        if item.get("icon"):
            kwargs["icon"] = item["icon"]
        accessories.append(Accessory(**kwargs))
    return accessories


class HomeEmulator:
    """Simulation engine with a single-writer discipline."""

    def __init__(
        self,
        store: EnergyStore | None,
        config: EmulatorConfig | None = None,
        clock: Clock = time.time,
        events: EmulatorEventBus | None = None,
    ) -> None:
        """Initialize the engine from whatever the store already holds.

        Raises:
            ConfigurationError: No store was given or the config is invalid
        """
        if store is None:
            raise ConfigurationError("HomeEmulator requires a store")

        self.config = (config or EmulatorConfig()).validate()
        self.store = store
        self.events = events or EmulatorEventBus()
        self._clock = clock
        self._logger = get_logger()
        self._lock = threading.RLock()
        self._ticking = False

        # Tick failures and durable write failures are tracked apart; a
        # successful tick does not clear a pending write error
        self._tick_failures = 0
        self._tick_error: str | None = None
        self._write_failures = 0
        self._write_error: str | None = None

        cfg = self.config
        self.processor = ScheduledEventProcessor(store)
        self.aggregator = ConsumptionAggregator(
            store, cfg.heartbeat_interval, cfg.tolerance
        )
        self.battery_service = BatteryChargeService(
            store, cfg.heartbeat_interval, cfg.tolerance, cfg.factory_charge_wh
        )

        now = self._clock()

        last_output = store.query_latest(SampleKind.GENERATOR)
        if last_output is not None:
            self.generator = HomeGenerator(cfg.generator_max_output_w, last_output.power)
        else:
            self.generator = HomeGenerator(
                cfg.generator_max_output_w, cfg.generator_default_output_w
            )
            store.append(GeneratorOutput(timestamp=now, power=self.generator.power_output))

        self._consumption = self.aggregator.total(store.accessories())

        last_charge = store.query_latest(SampleKind.BATTERY)
        if last_charge is not None:
            self.battery = HomeBattery(cfg.battery_capacity_wh, last_charge.charge)
            self.battery.update(
                last_charge.charge, self.generator.power_output - self._consumption
            )
        else:
            self.battery = HomeBattery(cfg.battery_capacity_wh, cfg.factory_charge_wh)

        self._snapshot = self._build_snapshot(now)

        self._logger.info(
            "EMULATOR_INIT",
            accessories=len(self._snapshot.accessories),
            generator_w=self.generator.power_output,
            charge_wh=round(self.battery.charge, 3),
        )

    # ========== Published state ==========

    @property
    def consecutive_failures(self) -> int:
        """Failed ticks plus failed durable writes since the last success."""
        return self._tick_failures + self._write_failures

    @property
    def last_error(self) -> str | None:
        """Most relevant pending error, tick errors first."""
        return self._tick_error or self._write_error

    @property
    def snapshot(self) -> EnergySnapshot:
        """Last published state."""
        return self._snapshot

    @property
    def power_consumption(self) -> float:
        """Published aggregate consumption in W."""
        return self._snapshot.power_consumption

    @property
    def generator_output(self) -> float:
        """Published generator output in W."""
        return self._snapshot.generator_output

    @property
    def battery_charge(self) -> float:
        """Published battery charge in Wh."""
        return self._snapshot.battery_charge

    def _build_snapshot(self, now: float) -> EnergySnapshot:
        accessories = {
            accessory.id: AccessoryState(
                id=accessory.id,
                name=accessory.name,
                icon=accessory.icon,
                on=accessory.on,
                power_when_on=accessory.power_when_on,
            )
            for accessory in self.store.accessories()
        }
        return EnergySnapshot(
            timestamp=now,
            power_consumption=self._consumption,
            generator_output=self.generator.power_output,
            battery_charge=self.battery.charge,
            battery_capacity=self.battery.max_capacity,
            charging_power=self.battery.charging_power,
            accessories=MappingProxyType(accessories),
            consecutive_failures=self.consecutive_failures,
            last_error=self.last_error,
        )

    def _publish(self, now: float) -> None:
        self._snapshot = self._build_snapshot(now)
        self.events.emit(EmulatorEvent.STATE_PUBLISHED, timestamp=now)

    # ========== Heartbeat ==========

    def heartbeat(self) -> bool:
        """Run one simulation step.

        Due events are applied, consumption is aggregated and the battery
        is advanced, all inside one store transaction. A tick that finds
        another tick or command in progress is skipped.

        Returns:
            True if the tick completed
        """
        if not self._lock.acquire(blocking=False):
            self._skip_tick("busy")
            return False
        try:
            if self._ticking:
                self._skip_tick("reentrant")
                return False
            self._ticking = True
            try:
                return self._run_tick()
            finally:
                self._ticking = False
        finally:
            self._lock.release()

    def _skip_tick(self, reason: str) -> None:
        self._logger.debug("TICK_SKIPPED", reason=reason)
        self.events.emit(EmulatorEvent.TICK_SKIPPED, reason=reason)

    def _run_tick(self) -> bool:
        now = self._clock()
        saved = (self._consumption, self.battery.charge, self.battery.charging_power)

        try:
            with self.store.transaction():
                processed = self.processor.process(now)
                update = self.aggregator.update(now)
                self._consumption = update.consumption
                self.battery_service.update(
                    self.battery, now, self.generator.power_output, self._consumption
                )
        except (PersistenceError, InconsistentStateError) as err:
            self._consumption, self.battery.charge, self.battery.charging_power = saved
            self._tick_failures += 1
            self._tick_error = str(err)
            self._logger.error(
                "TICK_FAILED",
                error=str(err),
                consecutive_failures=self.consecutive_failures,
            )
            self._publish(now)
            self.events.emit(
                EmulatorEvent.TICK_FAILED,
                error=str(err),
                error_type=type(err).__name__,
                stage="tick",
                consecutive_failures=self.consecutive_failures,
            )
            return False

        if self._tick_failures:
            self._logger.info("TICK_RECOVERED", failures=self._tick_failures)
        self._tick_failures = 0
        self._tick_error = None

        for event in processed.applied:
            self.events.emit(
                EmulatorEvent.EVENT_APPLIED,
                event_id=event.id,
                accessory_id=event.accessory_id,
                on=event.on,
            )
        for error in processed.orphaned:
            self.events.emit(
                EmulatorEvent.INCONSISTENT_STATE,
                accessory_id=error.accessory_id,
                error=str(error),
            )

        self._publish(now)
        return True

    # ========== Commands ==========

    def set_generator_output(self, value: float) -> bool:
        """Set the generator output and persist it right away.

        Raises:
            ValidationError: Value is not within ``[0, max_output]``

        Returns:
            True if the output changed
        """
        value = self.generator.validate(value)
        with self._lock:
            previous = self.generator.power_output
            if not self.generator.set_power_output(value):
                return False
            now = self._clock()
            try:
                self.store.append(GeneratorOutput(timestamp=now, power=value))
            except PersistenceError:
                self.generator.power_output = previous
                raise

            self._logger.info("GENERATOR_SET", old_w=previous, new_w=value)
            self._publish(now)
            self.events.emit(
                EmulatorEvent.GENERATOR_CHANGED, old_value=previous, new_value=value
            )
            return True

    def set_accessory_state(self, accessory_id: str, on: bool) -> bool:
        """Switch an accessory on or off immediately.

        Raises:
            InconsistentStateError: Accessory does not exist

        Returns:
            True if the state changed
        """
        with self._lock:
            accessory = self._require_accessory(accessory_id)
            if accessory.on == on:
                return False
            accessory.on = on
            self.store.update_accessory(accessory)
            self._consumption = self.aggregator.total(self.store.accessories())

            self._logger.info("ACCESSORY_SET", accessory=accessory.name, on=on)
            self._publish(self._clock())
            self.events.emit(
                EmulatorEvent.ACCESSORY_CHANGED, accessory_id=accessory_id, on=on
            )
            return True

    def toggle_accessory(self, accessory_id: str) -> bool:
        """Flip an accessory's state; return the new state."""
        with self._lock:
            accessory = self._require_accessory(accessory_id)
            self.set_accessory_state(accessory_id, not accessory.on)
            return not accessory.on

    def schedule_power_change(
        self,
        accessory_id: str,
        on: bool,
        delay: float = 0.0,
        duration: float | None = None,
    ) -> list[ScheduledPowerEvent]:
        """Queue a future on/off transition.

        With ``duration``, a second event restoring the opposite state is
        queued ``duration`` seconds after the first.

        Raises:
            ValidationError: Negative or non-finite delay, non-positive duration
            InconsistentStateError: Accessory does not exist
        """
        delay = _finite(delay, "delay")
        if delay < 0:
            raise ValidationError(f"delay must not be negative, got {delay}")
        if duration is not None:
            duration = _finite(duration, "duration")
            if duration <= 0:
                raise ValidationError(f"duration must be positive, got {duration}")

        with self._lock:
            self._require_accessory(accessory_id)
            now = self._clock()
            start = now + delay

            with self.store.transaction():
                scheduled = [
                    self.store.add_event(
                        ScheduledPowerEvent(accessory_id=accessory_id, on=on, timestamp=start)
                    )
                ]
                if duration is not None:
                    scheduled.append(
                        self.store.add_event(
                            ScheduledPowerEvent(
                                accessory_id=accessory_id,
                                on=not on,
                                timestamp=start + duration,
                            )
                        )
                    )

            for event in scheduled:
                self._logger.info(
                    "EVENT_SCHEDULED",
                    accessory_id=accessory_id,
                    on=event.on,
                    in_s=round(event.timestamp - now, 3),
                )
                self.events.emit(
                    EmulatorEvent.EVENT_SCHEDULED,
                    event_id=event.id,
                    accessory_id=accessory_id,
                    on=event.on,
                    timestamp=event.timestamp,
                )
            self._publish(now)
            return scheduled

    def add_accessories(self, accessories: Iterable[Accessory]) -> list[Accessory]:
        """Bulk insert accessories.

        Raises:
            ValidationError: Missing name or invalid power
        """
        accessories = list(accessories)
        for accessory in accessories:
            if not accessory.name:
                raise ValidationError("Accessory name must not be empty")
            power = _finite(accessory.power_when_on, "power_when_on")
            if power < 0:
                raise ValidationError(
                    f"{accessory.name}: power_when_on must not be negative"
                )
            accessory.power_when_on = power

        if not accessories:
            return []

        with self._lock:
            with self.store.transaction():
                added = self.store.add_accessories(accessories)
            self._consumption = self.aggregator.total(self.store.accessories())

            self._logger.info(
                "ACCESSORIES_ADDED", names=", ".join(a.name for a in added)
            )
            self._publish(self._clock())
            self.events.emit(
                EmulatorEvent.ACCESSORIES_ADDED,
                accessory_ids=[a.id for a in added],
            )
            return added

    def seed_default_appliances(self) -> list[Accessory]:
        """Add the default appliances to an empty store."""
        with self._lock:
            if self.store.accessories():
                return []
            return self.add_accessories(accessories_from_config(DEFAULT_APPLIANCES))

    def add_more_appliances(self) -> list[Accessory]:
        """Add the extra appliance set."""
        return self.add_accessories(accessories_from_config(EXTRA_APPLIANCES))

    def prune_history(self) -> int:
        """Drop samples older than the retention period."""
        with self._lock:
            cutoff = self._clock() - self.config.history_retention_hours * 3600.0
            return self.store.prune(cutoff)

    def record_store_write(self, error: PersistenceError | None) -> None:
        """Account for the outcome of a durable write.

        Writes happen after the tick or command that produced the data, so
        a failure is reported on the error channel here. A later successful
        write clears it.
        """
        with self._lock:
            if error is None:
                if not self._write_failures:
                    return
                self._logger.info("STORE_WRITE_RECOVERED", failures=self._write_failures)
                self._write_failures = 0
                self._write_error = None
                self._publish(self._clock())
                return

            self._write_failures += 1
            self._write_error = str(error)
            self._logger.error(
                "TICK_FAILED",
                error=str(error),
                stage="storage",
                consecutive_failures=self.consecutive_failures,
            )
            self._publish(self._clock())
            self.events.emit(
                EmulatorEvent.TICK_FAILED,
                error=str(error),
                error_type=type(error).__name__,
                stage="storage",
                consecutive_failures=self.consecutive_failures,
            )

    def _require_accessory(self, accessory_id: str) -> Accessory:
        accessory = self.store.get_accessory(accessory_id)
        if accessory is None:
            raise InconsistentStateError(
                f"Unknown accessory {accessory_id}", accessory_id
            )
        return accessory

    # ========== Forecast ==========

    def forecast_input(self) -> ForecastInput:
        """Capture a consistent snapshot for the forecaster."""
        with self._lock:
            return ForecastInput(
                now=self._clock(),
                consumption=self._consumption,
                generator_output=self.generator.power_output,
                charge=self.battery.charge,
                max_capacity=self.battery.max_capacity,
                charging_power=self.battery.charging_power,
                accessories=MappingProxyType(
                    {
                        a.id: AccessoryLoad(on=a.on, power_when_on=a.power_when_on)
                        for a in self.store.accessories()
                    }
                ),
                events=tuple(self.store.pending_events()),
            )

    def time_to_empty(self) -> float:
        """Seconds until the battery is empty; inf if it never empties."""
        return EnergyForecaster.time_to_empty(self.forecast_input())

    def health(self) -> HealthReport:
        """Current health level and the time-to-empty behind it."""
        return EnergyForecaster.health(self.forecast_input())

    def forecast(self) -> list[EnergyMetrics]:
        """Predicted energy metrics over the configured horizon."""
        return EnergyForecaster.predict(
            self.forecast_input(),
            increment=self.config.forecast_step,
            horizon=self.config.forecast_horizon,
            threshold=self.config.forecast_charge_threshold,
        )


def _finite(value: Any, name: str) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError) as ex:
        raise ValidationError(f"{name} must be a number, got {value!r}") from ex
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be finite, got {value}")
    return value
