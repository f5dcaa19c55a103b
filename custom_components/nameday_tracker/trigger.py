"""Re-run reminder reconciliation whenever its inputs change."""
from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from homeassistant.core import Event, HomeAssistant
from homeassistant.helpers.debounce import Debouncer

from .const import (
    EVENT_FAVORITES_UPDATED,
    EVENT_NOTIFICATIONS_SCHEDULED,
    EVENT_SETTINGS_UPDATED,
    FAV_NAME,
    FAV_NOTIFY_ENABLED,
    FAV_NOTIFY_TIMINGS,
    RECONCILE_COOLDOWN,
)
from .scheduler import NotificationScheduler
from .store import FavoriteStore, SettingsStore

_LOGGER = logging.getLogger(__name__)


class ReconciliationTrigger:
    """Watch favorites and settings and reconcile reminders on change.

    Only the favorites, the notifications switch and the language matter.
    Bursts of changes are collapsed by a debouncer; since every run rebuilds
    from the current state, the last run always wins.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        favorites: FavoriteStore,
        settings: SettingsStore,
        scheduler: NotificationScheduler,
    ) -> None:
        """Initialize the trigger."""
        self._hass = hass
        self._favorites = favorites
        self._settings = settings
        self._scheduler = scheduler
        self._last_signature: tuple[Any, ...] | None = None
        self._unsubs: list[Callable[[], None]] = []
        self._debouncer = Debouncer(
            hass,
            _LOGGER,
            cooldown=RECONCILE_COOLDOWN,
            immediate=True,
            function=self._async_reconcile,
        )

    def _signature(self) -> tuple[Any, ...]:
        favorites = tuple(
            (f[FAV_NAME], f[FAV_NOTIFY_ENABLED], tuple(f[FAV_NOTIFY_TIMINGS]))
            for f in self._favorites.favorites
        )
        return (
            favorites,
            self._settings.notifications_enabled,
            self._settings.language,
        )

    async def async_start(self) -> None:
        """Start listening and run the initial reconciliation.

        Reminders do not survive a restart, so the first run rebuilds them.
        """
        if not (self._favorites.loaded and self._settings.loaded):
            raise RuntimeError("Stores must be loaded before reconciling")

        for event_type in (EVENT_FAVORITES_UPDATED, EVENT_SETTINGS_UPDATED):
            self._unsubs.append(
                self._hass.bus.async_listen(event_type, self._async_handle_change)
            )
        await self.async_request_refresh(force=True)

    async def _async_handle_change(self, event: Event) -> None:
        if self._signature() == self._last_signature:
            return
        await self._debouncer.async_call()

    async def async_request_refresh(self, force: bool = False) -> None:
        """Request a reconciliation, even when nothing changed if forced."""
        if force:
            self._last_signature = None
        await self._debouncer.async_call()

    async def _async_reconcile(self) -> None:
        # The debouncer drops calls made while a run holds its lock, so keep
        # going until the inputs stop changing under us.
        signature = self._signature()
        while signature != self._last_signature:
            self._last_signature = signature

            ledger = await self._scheduler.async_schedule_all(
                self._favorites.favorites,
                self._settings.notifications_enabled,
                self._settings.language,
            )
            if ledger is not None:
                self._hass.bus.async_fire(
                    EVENT_NOTIFICATIONS_SCHEDULED, {"count": len(ledger)}
                )
            signature = self._signature()

    def async_shutdown(self) -> None:
        """Stop listening and drop any pending run."""
        while self._unsubs:
            self._unsubs.pop()()
        self._debouncer.async_shutdown()
