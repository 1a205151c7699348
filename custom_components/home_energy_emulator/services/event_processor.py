"""Scheduled power event processing."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..core.store import EnergyStore
from ..emulator_logging import get_logger
from ..exceptions import InconsistentStateError
from ..models import ScheduledPowerEvent


@dataclass
class ProcessedEvents:
    """Outcome of one processing pass."""

    applied: list[ScheduledPowerEvent] = field(default_factory=list)
    unchanged: list[ScheduledPowerEvent] = field(default_factory=list)
    orphaned: list[InconsistentStateError] = field(default_factory=list)

    @property
    def consumed(self) -> int:
        """Number of events removed from the queue."""
        return len(self.applied) + len(self.unchanged) + len(self.orphaned)


class ScheduledEventProcessor:
    """Applies due one-shot events to accessories.

    Events are taken in ``(timestamp, sequence)`` order, so two events with
    the same timestamp are applied in the order they were scheduled. Every
    due event is deleted once, whether or not it changed anything. Callers
    run ``process`` inside a store transaction so accessory writes and event
    deletions land together.
    """

    def __init__(self, store: EnergyStore) -> None:
        """Initialize the processor."""
        self._store = store
        self._logger = get_logger()

    def process(self, now: float) -> ProcessedEvents:
        """Apply and consume every event with ``timestamp <= now``."""
        result = ProcessedEvents()

        for event in self._store.query_due(now):
            accessory = self._store.get_accessory(event.accessory_id)
            if accessory is None:
                self._logger.warning(
                    "SCHEDULED_EVENT_ORPHANED",
                    event_id=event.id,
                    accessory_id=event.accessory_id,
                )
                result.orphaned.append(
                    InconsistentStateError(
                        f"Scheduled event {event.id} references missing accessory",
                        event.accessory_id,
                    )
                )
            elif accessory.on != event.on:
                accessory.on = event.on
                self._store.update_accessory(accessory)
                self._logger.debug(
                    "SCHEDULED_EVENT_APPLIED",
                    accessory=accessory.name,
                    on=event.on,
                    timestamp=event.timestamp,
                )
                result.applied.append(event)
            else:
                result.unchanged.append(event)

            self._store.delete(event)

        return result
