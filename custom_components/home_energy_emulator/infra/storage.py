"""Durable store backed by Home Assistant's storage helper."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from homeassistant.core import callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import storage
from homeassistant.util.file import WriteError
from homeassistant.util.json import SerializationError

from ..const import STORAGE_KEY, STORAGE_SAVE_DELAY, STORAGE_VERSION
from ..core.store import MemoryEnergyStore
from ..exceptions import PersistenceError

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

# Called with None after a successful write, with the error otherwise
WriteListener = Callable[[PersistenceError | None], None]


class EmulatorStorage(storage.Store[dict[str, Any]]):
    """Storage helper that reports the outcome of every write.

    The base helper logs write errors and drops them; here they are also
    handed to ``on_write`` so the engine can surface them.

    Delayed saves pass a ``data_func`` that freezes the data and returns
    its exporter. Freezing runs on the event loop; exporting and encoding
    the history run in the executor.
    """

    def __init__(
        self, hass: HomeAssistant, key: str, on_write: WriteListener
    ) -> None:
        """Initialize the storage helper."""
        super().__init__(hass, STORAGE_VERSION, key, serialize_in_event_loop=False)
        self._on_write = on_write

    async def _async_write_data(self, data: dict) -> None:
        if "data_func" in data:
            data["data_func"] = data["data_func"]()
        try:
            await super()._async_write_data(data)
        except (SerializationError, WriteError) as err:
            self._on_write(PersistenceError(f"Unable to write stored data: {err}"))
            raise
        self._on_write(None)


class HassEnergyStore(MemoryEnergyStore):
    """MemoryEnergyStore written to ``.storage`` as versioned JSON.

    Every committed change schedules a delayed save, so a burst of ticks
    is written once. ``async_flush`` writes whatever is pending right away.
    Write outcomes are passed to the listeners registered with
    ``async_listen_write``.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        key: str = STORAGE_KEY,
        save_delay: float = STORAGE_SAVE_DELAY,
    ) -> None:
        """Initialize the store."""
        super().__init__()
        self.hass = hass
        self._save_delay = save_delay
        self._write_listeners: list[WriteListener] = []
        self._store = EmulatorStorage(hass, key, self._handle_write)
        self.write_error: PersistenceError | None = None

    async def async_load(self) -> None:
        """Load persisted data, if any.

        Raises:
            PersistenceError: Stored data cannot be read
        """
        try:
            data = await self._store.async_load()
        except HomeAssistantError as ex:
            raise PersistenceError(f"Unable to read stored data: {ex}") from ex

        if data:
            self.load_dict(data)
            self._logger.info(
                "STORE_LOADED",
                accessories=len(self._accessories),
                events=len(self._events),
            )

    @callback
    def async_listen_write(self, listener: WriteListener) -> Callable[[], None]:
        """Register a write outcome listener; return a remove function."""
        self._write_listeners.append(listener)

        def remove() -> None:
            if listener in self._write_listeners:
                self._write_listeners.remove(listener)

        return remove

    @callback
    def _handle_write(self, error: PersistenceError | None) -> None:
        self._logger.debug("STORE_WRITTEN", ok=error is None)
        self.write_error = error

        for listener in list(self._write_listeners):
            listener(error)

    @callback
    def _changed(self) -> None:
        self._store.async_delay_save(self.capture, self._save_delay)

    async def async_flush(self) -> None:
        """Write the current data immediately."""
        await self._store.async_save(self.to_dict())
        self._logger.debug("STORE_FLUSHED")
