"""Sensor platform for Nameday Tracker."""
from __future__ import annotations

from typing import Any

from homeassistant.components.sensor import SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import Event, HomeAssistant, callback
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import (
    DOMAIN,
    EVENT_FAVORITES_UPDATED,
    EVENT_NOTIFICATIONS_SCHEDULED,
    EVENT_REMINDER_SENT,
)
from .coordinator import TodayCoordinator
from .entity import nameday_device_info
from .notifier import HassNotifier
from .store import FavoriteStore

# Entity states are capped at 255 characters
MAX_STATE_LENGTH = 255


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Nameday Tracker sensors from config entry."""
    data = hass.data[DOMAIN]
    async_add_entities(
        [
            TodayNamedaySensor(entry, data["coordinator"], data["favorites"]),
            ScheduledRemindersSensor(entry, data["notifier"]),
        ]
    )


class TodayNamedaySensor(CoordinatorEntity[TodayCoordinator], SensorEntity):
    """Names celebrating today."""

    _attr_icon = "mdi:party-popper"
    _attr_has_entity_name = True
    _attr_name = "Today"

    def __init__(
        self,
        entry: ConfigEntry,
        coordinator: TodayCoordinator,
        favorites: FavoriteStore,
    ) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator)
        self._favorites = favorites
        self._attr_unique_id = f"{DOMAIN}_today"
        self._attr_device_info = nameday_device_info(entry)

    async def async_added_to_hass(self) -> None:
        """Refresh the favorite highlights when favorites change."""
        await super().async_added_to_hass()
        self.async_on_remove(
            self.hass.bus.async_listen(EVENT_FAVORITES_UPDATED, self._handle_favorites)
        )

    @callback
    def _handle_favorites(self, event: Event) -> None:
        self.async_write_ha_state()

    @property
    def native_value(self) -> str | None:
        """Return today's celebrating names."""
        entry = self.coordinator.data
        if entry is None or not entry.celebrating_names:
            return None
        value = ", ".join(entry.celebrating_names)
        if len(value) > MAX_STATE_LENGTH:
            value = value[: MAX_STATE_LENGTH - 1] + "…"
        return value

    @property
    def extra_state_attributes(self) -> dict[str, Any] | None:
        """Return saints, holidays and favorites celebrating today."""
        entry = self.coordinator.data
        if entry is None:
            return None
        return {
            "day": entry.day,
            "month": entry.month,
            "names": entry.celebrating_names,
            "saints": entry.saints,
            "other_info": entry.other_info,
            "names_with_other_dates": entry.names_with_other_dates,
            "favorites_celebrating": [
                name
                for name in entry.celebrating_names
                if self._favorites.is_favorite(name)
            ],
        }


class ScheduledRemindersSensor(SensorEntity):
    """Number of reminders waiting to fire."""

    _attr_icon = "mdi:bell-ring"
    _attr_has_entity_name = True
    _attr_name = "Scheduled reminders"

    def __init__(self, entry: ConfigEntry, notifier: HassNotifier) -> None:
        """Initialize the sensor."""
        self._notifier = notifier
        self._attr_unique_id = f"{DOMAIN}_scheduled_reminders"
        self._attr_device_info = nameday_device_info(entry)

    async def async_added_to_hass(self) -> None:
        """Listen for reconciliation, favorite changes and sent reminders."""
        for event_type in (
            EVENT_NOTIFICATIONS_SCHEDULED,
            EVENT_FAVORITES_UPDATED,
            EVENT_REMINDER_SENT,
        ):
            self.async_on_remove(
                self.hass.bus.async_listen(event_type, self._handle_update)
            )

    @callback
    def _handle_update(self, event: Event) -> None:
        self.async_write_ha_state()

    @property
    def native_value(self) -> int:
        """Return the number of pending reminders."""
        return len(self._notifier.scheduled_ids)
