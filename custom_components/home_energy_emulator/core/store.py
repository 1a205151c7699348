"""Time-series and event store contract.

The engine only talks to the store through the typed operations declared on
``EnergyStore``. ``MemoryEnergyStore`` keeps everything in timestamp-ordered
lists and implements ``transaction()`` with an undo journal, which is
what makes "apply accessory mutation + delete event" all-or-nothing.
"""

from __future__ import annotations

import bisect
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from functools import partial
from typing import Any

from ..emulator_logging import get_logger
from ..exceptions import InconsistentStateError, PersistenceError
from ..models import (
    AGGREGATE,
    Accessory,
    AccessoryConsumption,
    Sample,
    SampleKind,
    ScheduledPowerEvent,
)
from ..models.data_models import SAMPLE_TYPES

_ANY = object()


class EnergyStore(ABC):
    """Store contract consumed by the engine.

    All queries return results ordered by timestamp ascending.
    Implementations raise PersistenceError on read or write failure.
    """

    # Samples

    @abstractmethod
    def append(self, sample: Sample) -> None:
        """Append a time-series sample."""

    @abstractmethod
    def query_latest(
        self,
        kind: SampleKind,
        before: float | None = None,
        accessory_id: Any = AGGREGATE,
    ) -> Sample | None:
        """Return the newest sample of ``kind`` strictly before ``before``.

        For consumption samples ``accessory_id`` selects the series
        (AGGREGATE for the whole-home total); it is ignored otherwise.
        """

    @abstractmethod
    def query_range(self, kind: SampleKind, start: float, end: float) -> list[Sample]:
        """Return samples of ``kind`` with ``start <= timestamp < end``."""

    @abstractmethod
    def prune(self, before: float) -> int:
        """Drop samples older than ``before``; return how many were dropped."""

    # Events

    @abstractmethod
    def add_event(self, event: ScheduledPowerEvent) -> ScheduledPowerEvent:
        """Insert a scheduled event, assigning its tie-breaking sequence."""

    @abstractmethod
    def query_due(self, now: float) -> list[ScheduledPowerEvent]:
        """Return events with ``timestamp <= now`` in processing order."""

    @abstractmethod
    def pending_events(self) -> list[ScheduledPowerEvent]:
        """Return every queued event in processing order."""

    @abstractmethod
    def delete(self, event: ScheduledPowerEvent) -> None:
        """Remove a consumed event."""

    # Accessories

    @abstractmethod
    def accessories(self) -> list[Accessory]:
        """Return all accessories in insertion order."""

    @abstractmethod
    def get_accessory(self, accessory_id: str) -> Accessory | None:
        """Return one accessory or None."""

    @abstractmethod
    def add_accessories(self, accessories: Iterable[Accessory]) -> list[Accessory]:
        """Bulk insert accessories."""

    @abstractmethod
    def update_accessory(self, accessory: Accessory) -> None:
        """Write back a modified accessory."""

    # Transactions

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[EnergyStore]:
        """Group writes so they are applied all together or not at all."""


class MemoryEnergyStore(EnergyStore):
    """In-memory store with journaled transactions."""

    def __init__(self) -> None:
        """Initialize empty tables."""
        self._logger = get_logger()
        self._samples: dict[SampleKind, list[Sample]] = {kind: [] for kind in SampleKind}
        self._events: list[ScheduledPowerEvent] = []
        self._accessories: dict[str, Accessory] = {}
        self._next_sequence = 0
        self._transaction_depth = 0
        # Undo steps of the open transaction, replayed newest first
        self._journal: list[Callable[[], None]] = []

    # Change notification

    def _changed(self) -> None:
        """Called once per committed change; subclasses persist here."""

    def _commit(self, undo: Callable[[], None]) -> None:
        if self._transaction_depth:
            self._journal.append(undo)
        else:
            self._changed()

    # Samples

    def append(self, sample: Sample) -> None:
        """Append a time-series sample, keeping the table ordered."""
        try:
            table = self._samples[sample.kind]
        except (AttributeError, KeyError) as ex:
            raise PersistenceError(f"Unsupported sample {sample!r}") from ex

        if not table or table[-1].timestamp <= sample.timestamp:
            index = len(table)
            table.append(sample)
        else:
            index = bisect.bisect_right(
                table, sample.timestamp, key=lambda s: s.timestamp
            )
            table.insert(index, sample)
        self._commit(lambda: table.pop(index))

    def query_latest(
        self,
        kind: SampleKind,
        before: float | None = None,
        accessory_id: Any = AGGREGATE,
    ) -> Sample | None:
        """Return the newest matching sample strictly before ``before``."""
        for sample in reversed(self._samples[kind]):
            if before is not None and sample.timestamp >= before:
                continue
            if kind is SampleKind.CONSUMPTION and sample.accessory_id != accessory_id:
                continue
            return sample
        return None

    def query_range(self, kind: SampleKind, start: float, end: float) -> list[Sample]:
        """Return samples with ``start <= timestamp < end``."""
        return [s for s in self._samples[kind] if start <= s.timestamp < end]

    def prune(self, before: float) -> int:
        """Drop samples older than ``before``.

        The newest sample of every series is always kept so the engine can
        resume integration from it.
        """
        dropped = 0
        previous = dict(self._samples)
        for kind, table in previous.items():
            keep_latest: set[int] = set()
            seen: set[Any] = set()
            for index in range(len(table) - 1, -1, -1):
                key = getattr(table[index], "accessory_id", None)
                if key not in seen:
                    seen.add(key)
                    keep_latest.add(index)
            kept = [
                s for i, s in enumerate(table)
                if s.timestamp >= before or i in keep_latest
            ]
            dropped += len(table) - len(kept)
            self._samples[kind] = kept

        if dropped:
            self._logger.debug("HISTORY_PRUNED", dropped=dropped, before=before)
            self._commit(lambda: self._samples.update(previous))
        return dropped

    # Events

    def add_event(self, event: ScheduledPowerEvent) -> ScheduledPowerEvent:
        """Insert an event after any existing event with the same timestamp."""
        if event.accessory_id not in self._accessories:
            raise InconsistentStateError(
                f"Event references unknown accessory {event.accessory_id}",
                event.accessory_id,
            )
        sequence = self._next_sequence
        event = replace(event, sequence=sequence)
        self._next_sequence += 1
        index = bisect.bisect_right(self._events, event.sort_key, key=lambda e: e.sort_key)
        self._events.insert(index, event)

        def undo() -> None:
            del self._events[index]
            self._next_sequence = sequence

        self._commit(undo)
        return event

    def query_due(self, now: float) -> list[ScheduledPowerEvent]:
        """Return events with ``timestamp <= now``."""
        return [e for e in self._events if e.timestamp <= now]

    def pending_events(self) -> list[ScheduledPowerEvent]:
        """Return every queued event."""
        return list(self._events)

    def delete(self, event: ScheduledPowerEvent) -> None:
        """Remove a consumed event."""
        for index, queued in enumerate(self._events):
            if queued.id == event.id:
                del self._events[index]
                self._commit(lambda: self._events.insert(index, queued))
                return
        raise PersistenceError(f"Event {event.id} is not queued")

    # Accessories

    def accessories(self) -> list[Accessory]:
        """Return copies of all accessories."""
        return [replace(a) for a in self._accessories.values()]

    def get_accessory(self, accessory_id: str) -> Accessory | None:
        """Return a copy of one accessory."""
        accessory = self._accessories.get(accessory_id)
        return replace(accessory) if accessory is not None else None

    def add_accessories(self, accessories: Iterable[Accessory]) -> list[Accessory]:
        """Bulk insert accessories."""
        added = [replace(a) for a in accessories]
        seen: set[str] = set()
        for accessory in added:
            if accessory.id in self._accessories or accessory.id in seen:
                raise PersistenceError(f"Accessory {accessory.id} already exists")
            seen.add(accessory.id)

        for accessory in added:
            self._accessories[accessory.id] = replace(accessory)
        if added:
            added_ids = [a.id for a in added]

            def undo() -> None:
                for accessory_id in added_ids:
                    self._accessories.pop(accessory_id, None)

            self._commit(undo)
        return added

    def update_accessory(self, accessory: Accessory) -> None:
        """Write back a modified accessory."""
        if accessory.id not in self._accessories:
            raise InconsistentStateError(
                f"Unknown accessory {accessory.id}", accessory.id
            )
        previous = self._accessories[accessory.id]
        self._accessories[accessory.id] = replace(accessory)
        self._commit(lambda: self._accessories.__setitem__(accessory.id, previous))

    # Transactions

    @contextmanager
    def transaction(self) -> Iterator[MemoryEnergyStore]:
        """Apply every write inside the block, or none of them.

        Each write inside the block records how to undo itself; a failing
        block replays those steps newest first, so rolling back costs what
        the block changed rather than the size of the tables.
        """
        mark = len(self._journal)
        self._transaction_depth += 1
        try:
            yield self
        except BaseException:
            self._transaction_depth -= 1
            while len(self._journal) > mark:
                self._journal.pop()()
            self._logger.debug("TRANSACTION_ROLLED_BACK")
            raise
        self._transaction_depth -= 1
        if self._transaction_depth == 0:
            self._journal.clear()
            self._changed()

    # Serialization

    def _snapshot(self) -> tuple:
        # Samples are immutable, so shallow table copies suffice
        return (
            [replace(a) for a in self._accessories.values()],
            [replace(e) for e in self._events],
            {kind: list(table) for kind, table in self._samples.items()},
            self._next_sequence,
        )

    @staticmethod
    def _export(snapshot: tuple) -> dict[str, Any]:
        accessories, events, samples, next_sequence = snapshot
        return {
            "accessories": [a.to_dict() for a in accessories],
            "events": [e.to_dict() for e in events],
            "samples": {
                kind.value: [s.to_dict() for s in table]
                for kind, table in samples.items()
            },
            "next_sequence": next_sequence,
        }

    def to_dict(self) -> dict[str, Any]:
        """Export data for storage."""
        return self._export(self._snapshot())

    def capture(self) -> Callable[[], dict[str, Any]]:
        """Freeze the current content; return a function that exports it.

        The returned function only touches the frozen copy and may run in
        another thread.
        """
        return partial(self._export, self._snapshot())

    def load_dict(self, data: dict[str, Any]) -> None:
        """Replace the store content with previously exported data."""
        try:
            accessories = [Accessory.from_dict(a) for a in data.get("accessories", [])]
            events = [ScheduledPowerEvent.from_dict(e) for e in data.get("events", [])]
            samples: dict[SampleKind, list[Sample]] = {kind: [] for kind in SampleKind}
            for kind_value, table in data.get("samples", {}).items():
                kind = SampleKind(kind_value)
                samples[kind] = sorted(
                    (SAMPLE_TYPES[kind].from_dict(s) for s in table),
                    key=lambda s: s.timestamp,
                )
        except (KeyError, TypeError, ValueError) as ex:
            raise PersistenceError(f"Corrupt stored data: {ex}") from ex

        self._accessories = {a.id: a for a in accessories}
        self._events = sorted(events, key=lambda e: e.sort_key)
        self._samples = samples
        self._next_sequence = max(
            int(data.get("next_sequence", 0)),
            max((e.sequence + 1 for e in events), default=0),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemoryEnergyStore:
        """Create instance from stored data."""
        store = cls()
        store.load_dict(data)
        return store
