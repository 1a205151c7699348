"""Event bus for component communication.

The engine publishes every state change and every tick failure here; the
coordinator relays them to Home Assistant's dispatcher. This bus is the
observable error channel for heartbeat failures.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from ..emulator_logging import get_logger


class EmulatorEvent(str, Enum):
    """Event types for the emulator."""

    # State changes
    STATE_PUBLISHED = "emulator.state_published"
    GENERATOR_CHANGED = "emulator.generator_changed"
    ACCESSORY_CHANGED = "emulator.accessory_changed"
    ACCESSORIES_ADDED = "emulator.accessories_added"

    # Scheduling
    EVENT_SCHEDULED = "emulator.event_scheduled"
    EVENT_APPLIED = "emulator.event_applied"

    # Heartbeat
    TICK_SKIPPED = "emulator.tick_skipped"

    # Error events
    TICK_FAILED = "emulator.tick_failed"
    INCONSISTENT_STATE = "emulator.inconsistent_state"


@dataclass
class EventData:
    """Container for event data."""

    event: EmulatorEvent
    timestamp: datetime
    data: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "event": self.event.value,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


# Type alias for event handlers
EventHandler = Callable[[EventData], None]


class EmulatorEventBus:
    """Synchronous publish/subscribe bus.

    Handlers run in the caller's context, after the state they describe is
    complete. A failing handler is logged and does not affect the others.
    """

    def __init__(self) -> None:
        """Initialize the event bus."""
        self._logger = get_logger()
        self._handlers: dict[EmulatorEvent, list[EventHandler]] = {}

    def emit(self, event: EmulatorEvent, **data: Any) -> None:
        """Emit an event.

        Args:
            event: Event type to emit
            **data: Event data
        """
        event_data = EventData(
            event=event,
            timestamp=datetime.now(),
            data=data,
        )

        if event is not EmulatorEvent.STATE_PUBLISHED:
            self._logger.debug(f"EVENT_{event.name}", **data)

        for handler in list(self._handlers.get(event, [])):
            try:
                handler(event_data)
            except Exception as ex:  # noqa: BLE001
                self._logger.error(
                    "EVENT_HANDLER_ERROR",
                    event=event.name,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(ex),
                )

    def on(self, event: EmulatorEvent, handler: EventHandler) -> Callable[[], None]:
        """Register an event handler.

        Args:
            event: Event type to listen for
            handler: Handler function

        Returns:
            Unsubscribe function
        """
        self._handlers.setdefault(event, []).append(handler)

        def unsubscribe() -> None:
            self.off(event, handler)

        return unsubscribe

    def off(self, event: EmulatorEvent, handler: EventHandler) -> None:
        """Unregister an event handler.

        Args:
            event: Event type
            handler: Handler to remove
        """
        if event in self._handlers and handler in self._handlers[event]:
            self._handlers[event].remove(handler)
