"""Calendar platform for Nameday Tracker."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
import logging

from homeassistant.components.calendar import CalendarEntity, CalendarEvent
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity
from homeassistant.util import dt as dt_util

from .api import NamedayApiClient, NamedayEntry
from .const import DOMAIN, MONTH_CACHE_TTL
from .coordinator import TodayCoordinator
from .entity import nameday_device_info
from .exceptions import LookupFailure

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Nameday Tracker calendar from config entry."""
    data = hass.data[DOMAIN]
    async_add_entities([NamedayCalendar(entry, data["coordinator"], data["client"])])


def _months_between(start: date, end: date) -> list[tuple[int, int]]:
    """Return (year, month) pairs touched by the half-open range [start, end)."""
    months: list[tuple[int, int]] = []
    year, month = start.year, start.month
    while date(year, month, 1) < end:
        months.append((year, month))
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months


def _build_event(entry: NamedayEntry, event_date: date) -> CalendarEvent:
    """Build an all-day event for a nameday entry."""
    summary = ", ".join(entry.celebrating_names) or ", ".join(entry.saints)
    description = "\n".join([*entry.saints, *entry.other_info])
    return CalendarEvent(
        start=event_date,
        end=event_date + timedelta(days=1),
        summary=summary,
        description=description,
        uid=f"{DOMAIN}_{event_date.isoformat()}",
    )


class NamedayCalendar(CoordinatorEntity[TodayCoordinator], CalendarEntity):
    """A calendar of name days, one all-day event per day."""

    _attr_has_entity_name = True
    _attr_name = "Name days"
    _attr_icon = "mdi:calendar-star"

    def __init__(
        self,
        entry: ConfigEntry,
        coordinator: TodayCoordinator,
        client: NamedayApiClient,
    ) -> None:
        """Initialize the calendar entity."""
        super().__init__(coordinator)
        self._client = client
        self._attr_unique_id = f"{DOMAIN}_calendar"
        self._attr_device_info = nameday_device_info(entry)
        self._month_cache: dict[int, tuple[datetime, list[NamedayEntry]]] = {}

    @property
    def event(self) -> CalendarEvent | None:
        """Return today's name day."""
        entry = self.coordinator.data
        if entry is None:
            return None
        return _build_event(entry, dt_util.now().date())

    async def _async_get_month(self, month: int) -> list[NamedayEntry]:
        """Return a month's entries, fetching at most once per day."""
        now = dt_util.utcnow()
        cached = self._month_cache.get(month)
        if cached and now - cached[0] < MONTH_CACHE_TTL:
            return cached[1]
        entries = await self._client.async_get_month(month)
        self._month_cache[month] = (now, entries)
        return entries

    async def async_get_events(
        self,
        hass: HomeAssistant,
        start_date: datetime,
        end_date: datetime,
    ) -> list[CalendarEvent]:
        """Return all name day events within the requested date range."""
        events: list[CalendarEvent] = []
        start_d = start_date.date() if isinstance(start_date, datetime) else start_date
        end_d = end_date.date() if isinstance(end_date, datetime) else end_date
        # An all-day event overlaps a range ending part way through its day
        if isinstance(end_date, datetime) and end_date.time() != time.min:
            end_d += timedelta(days=1)

        for year, month in _months_between(start_d, end_d):
            try:
                entries = await self._async_get_month(month)
            except LookupFailure as err:
                _LOGGER.warning("Could not load name days for month %d: %s", month, err)
                continue

            for entry in entries:
                try:
                    event_date = date(year, entry.month, entry.day)
                except ValueError:
                    continue
                if start_d <= event_date < end_d:
                    events.append(_build_event(entry, event_date))

        events.sort(key=lambda e: e.start)
        return events
