"""Fixed-interval heartbeat driving the engine."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from homeassistant.core import callback
from homeassistant.helpers.event import async_track_time_interval

from ..emulator_logging import get_logger
from .emulator import HomeEmulator
from .events import EmulatorEvent

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


class HeartbeatScheduler:
    """Calls HomeEmulator.heartbeat every ``interval`` seconds.

    Ticks run on the event loop. A fire that arrives while the previous
    tick is still running is dropped rather than queued.
    """

    def __init__(
        self, hass: HomeAssistant, emulator: HomeEmulator, interval: float
    ) -> None:
        """Initialize the scheduler."""
        self.hass = hass
        self.emulator = emulator
        self.interval = timedelta(seconds=interval)
        self._logger = get_logger()
        self._remove: Callable[[], None] | None = None
        self._running = False
        self.ticks = 0

    @property
    def is_active(self) -> bool:
        """True while the timer is registered."""
        return self._remove is not None

    @callback
    def async_start(self) -> None:
        """Start the timer."""
        if self._remove is not None:
            return
        self._remove = async_track_time_interval(
            self.hass,
            self._async_tick,
            self.interval,
            name="home_energy_emulator heartbeat",
        )
        self._logger.info("HEARTBEAT_STARTED", interval_s=self.interval.total_seconds())

    @callback
    def async_stop(self) -> None:
        """Stop the timer."""
        if self._remove is None:
            return
        self._remove()
        self._remove = None
        self._logger.info("HEARTBEAT_STOPPED", ticks=self.ticks)

    @callback
    def async_run_once(self) -> bool:
        """Run a single tick now."""
        return self._tick()

    @callback
    def _async_tick(self, now: datetime) -> None:
        self._tick()

    def _tick(self) -> bool:
        if self._running:
            self._logger.debug("HEARTBEAT_OVERLAP")
            self.emulator.events.emit(EmulatorEvent.TICK_SKIPPED, reason="overlap")
            return False
        self._running = True
        try:
            completed = self.emulator.heartbeat()
        finally:
            self._running = False
        if completed:
            self.ticks += 1
        return completed
