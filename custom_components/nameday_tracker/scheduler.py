"""Favorite reminder scheduling.

A full reconciliation cancels everything this integration has scheduled,
then rebuilds the reminders from the favorites it is given:

1. Each enabled favorite's main celebration is looked up by name.
2. The next occurrence at 09:00 local time strictly after "now" is computed,
   rolling over to next year when this year's has passed.
3. One reminder per offset is scheduled at ``occurrence - offset days``,
   skipping any that would fire in the past.
4. The ledger, a record of every scheduled reminder id and the favorite and
   offset it belongs to, is written once at the end.

Failures of a single favorite are logged and skipped; they never abort the run.
"""
from __future__ import annotations

import asyncio
from collections.abc import Iterable
from datetime import date, datetime, timedelta, tzinfo
import logging
from typing import Any

from homeassistant.util import dt as dt_util

from .api import NamedayApiClient
from .const import FAV_NAME, FAV_NOTIFY_ENABLED, FAV_NOTIFY_TIMINGS, NOTIFICATION_TIME
from .exceptions import (
    LookupFailure,
    PermissionDenied,
    PersistenceFailure,
    SchedulingFailure,
)
from .notifier import HassNotifier
from .store import LedgerStore, ScheduledNotification

_LOGGER = logging.getLogger(__name__)

TITLES = {
    "el": "🎉 Γιορτάζει: {name}",
    "en": "🎉 Celebrating: {name}",
}
BODY_TODAY = {
    "el": "Σήμερα γιορτάζει {name}! Μην ξεχάσετε να ευχηθείτε!",
    "en": "{name} is celebrating today! Don't forget to wish them!",
}
BODY_TOMORROW = {
    "el": "Αύριο γιορτάζει {name}!",
    "en": "{name} is celebrating tomorrow!",
}
BODY_IN_DAYS = {
    "el": "{name} γιορτάζει σε {days} μέρες!",
    "en": "{name} is celebrating in {days} days!",
}


def _at_notification_time(year: int, month: int, day: int, tz: tzinfo | None) -> datetime:
    try:
        target = date(year, month, day)
    except ValueError:
        if (month, day) != (2, 29):
            raise
        target = date(year, 2, 28)
    return datetime.combine(target, NOTIFICATION_TIME, tzinfo=tz)


def next_occurrence(month: int, day: int, now: datetime) -> datetime:
    """Return the next 09:00 on month/day that is strictly after now."""
    occurrence = _at_notification_time(now.year, month, day, now.tzinfo)
    if occurrence <= now:
        occurrence = _at_notification_time(now.year + 1, month, day, now.tzinfo)
    return occurrence


def notification_content(name: str, days_before: int, language: str) -> tuple[str, str]:
    """Return the localized (title, body) of a reminder."""
    if language not in TITLES:
        language = "en"
    title = TITLES[language].format(name=name)
    if days_before == 0:
        body = BODY_TODAY[language].format(name=name)
    elif days_before == 1:
        body = BODY_TOMORROW[language].format(name=name)
    else:
        body = BODY_IN_DAYS[language].format(name=name, days=days_before)
    return title, body


class NotificationScheduler:
    """Keep scheduled reminders and the ledger in line with the favorites.

    Full reconciliations are serialized. Each request takes a generation
    number; a queued request that has been overtaken by a newer one is
    skipped, and a running one stops at the next favorite boundary.
    """

    def __init__(
        self,
        client: NamedayApiClient,
        notifier: HassNotifier,
        ledger: LedgerStore,
    ) -> None:
        """Initialize the scheduler."""
        self._client = client
        self._notifier = notifier
        self._ledger = ledger
        self._lock = asyncio.Lock()
        self._generation = 0

    async def async_schedule_all(
        self,
        favorites: Iterable[dict[str, Any]],
        notifications_enabled: bool,
        language: str,
        now: datetime | None = None,
    ) -> list[ScheduledNotification] | None:
        """Rebuild all reminders. Returns the new ledger, or None if superseded."""
        self._generation += 1
        generation = self._generation
        favorites = list(favorites)

        async with self._lock:
            if generation != self._generation:
                _LOGGER.debug("Skipping superseded reconciliation %d", generation)
                return None
            return await self._async_reconcile(
                generation,
                favorites,
                notifications_enabled,
                language,
                now or dt_util.now(),
            )

    async def _async_reconcile(
        self,
        generation: int,
        favorites: list[dict[str, Any]],
        notifications_enabled: bool,
        language: str,
        now: datetime,
    ) -> list[ScheduledNotification]:
        ledger: list[ScheduledNotification] = []
        await self._notifier.async_cancel_all()

        if not notifications_enabled or not favorites:
            await self._async_persist(ledger)
            return ledger

        try:
            await self._notifier.async_request_permission()
        except PermissionDenied as err:
            _LOGGER.warning("Reminders not scheduled: %s", err)
            await self._async_persist(ledger)
            return ledger

        for favorite in favorites:
            if generation != self._generation:
                _LOGGER.debug("Reconciliation %d superseded, stopping early", generation)
                break
            if not favorite[FAV_NOTIFY_ENABLED] or not favorite[FAV_NOTIFY_TIMINGS]:
                continue
            try:
                ledger.extend(
                    await self._async_schedule_favorite(favorite, language, now)
                )
            except LookupFailure as err:
                _LOGGER.warning(
                    "Could not resolve celebration of %s: %s", favorite[FAV_NAME], err
                )

        await self._async_persist(ledger)
        _LOGGER.info("Scheduled %d name day reminders", len(ledger))
        return ledger

    async def _async_schedule_favorite(
        self, favorite: dict[str, Any], language: str, now: datetime
    ) -> list[ScheduledNotification]:
        name = favorite[FAV_NAME]
        celebrations = await self._client.async_search(name)
        if not celebrations:
            _LOGGER.debug("No celebration found for %s", name)
            return []

        main = celebrations[0]
        try:
            occurrence = next_occurrence(main.month, main.day, now)
        except ValueError as err:
            raise LookupFailure(
                f"Invalid date {main.day}/{main.month} for {name}"
            ) from err

        records: list[ScheduledNotification] = []
        for days_before in favorite[FAV_NOTIFY_TIMINGS]:
            notify_at = occurrence - timedelta(days=days_before)
            if notify_at <= now:
                continue

            title, body = notification_content(name, days_before, language)
            try:
                notification_id = await self._notifier.async_schedule(
                    title,
                    body,
                    notify_at,
                    {
                        "favoriteName": name,
                        "celebrationDate": occurrence.isoformat(),
                    },
                )
            except SchedulingFailure as err:
                _LOGGER.warning(
                    "Could not schedule %s (%d days before): %s",
                    name,
                    days_before,
                    err,
                )
                continue

            records.append(
                ScheduledNotification(
                    id=notification_id,
                    favorite_name=name,
                    celebration_date=occurrence.isoformat(),
                    days_before=days_before,
                )
            )
        return records

    async def _async_persist(self, ledger: list[ScheduledNotification]) -> None:
        try:
            await self._ledger.async_save(ledger)
        except PersistenceFailure as err:
            _LOGGER.error("Failed to save reminder ledger: %s", err)

    async def async_cancel_all(self) -> None:
        """Cancel every reminder and clear the ledger, superseding queued runs."""
        self._generation += 1
        async with self._lock:
            await self._notifier.async_cancel_all()
            await self._async_persist([])

    async def async_cancel_for_favorite(self, name: str) -> None:
        """Cancel the reminders of a single favorite and drop its ledger entries."""
        try:
            records = await self._ledger.async_load()
        except PersistenceFailure as err:
            _LOGGER.error("Failed to load reminder ledger: %s", err)
            return

        matching = [r for r in records if r.favorite_name == name]
        remaining = [r for r in records if r.favorite_name != name]

        for record in matching:
            try:
                await self._notifier.async_cancel(record.id)
            except SchedulingFailure as err:
                _LOGGER.warning("Failed to cancel reminder %s: %s", record.id, err)

        if matching:
            _LOGGER.debug("Cancelled %d reminders for %s", len(matching), name)
        await self._async_persist(remaining)
