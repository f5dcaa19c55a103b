"""Local reminder delivery built on one-shot Home Assistant timers."""
from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
import logging
from typing import Any
import uuid

from homeassistant.components import persistent_notification
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.event import async_track_point_in_time
from homeassistant.util import dt as dt_util

from .const import DOMAIN, EVENT_REMINDER_SENT, NOTIFY_CHANNEL_DATA
from .exceptions import PermissionDenied, SchedulingFailure

_LOGGER = logging.getLogger(__name__)

NOTIFY_DOMAIN = "notify"


def split_service(service: str) -> tuple[str, str]:
    """Split 'notify.mobile_app_x' or 'mobile_app_x' into domain and service."""
    if "." in service:
        domain, name = service.split(".", 1)
        return domain, name
    return NOTIFY_DOMAIN, service


class HassNotifier:
    """Schedule, cancel and list one-shot reminders.

    Each reminder is a point-in-time listener. When it fires the reminder is
    sent to the configured notify service, or shown as a persistent
    notification when no service is configured.
    """

    def __init__(self, hass: HomeAssistant, notify_service: str | None = None) -> None:
        """Initialize the notifier."""
        self._hass = hass
        self._notify_service = notify_service or None
        self._scheduled: dict[str, Callable[[], None]] = {}
        self._channel_data: dict[str, Any] | None = None

    @property
    def scheduled_ids(self) -> list[str]:
        """Return the ids of all reminders still waiting to fire."""
        return list(self._scheduled)

    async def async_request_permission(self) -> None:
        """Check the delivery target and set up the reminder channel.

        Raises PermissionDenied when the configured notify service is missing.
        """
        if self._notify_service:
            domain, service = split_service(self._notify_service)
            if not self._hass.services.has_service(domain, service):
                raise PermissionDenied(
                    f"Notify service {domain}.{service} is not available"
                )

        if self._channel_data is None:
            self._channel_data = dict(NOTIFY_CHANNEL_DATA)

    async def async_schedule(
        self,
        title: str,
        message: str,
        when: datetime,
        data: dict[str, Any] | None = None,
    ) -> str:
        """Schedule a reminder at a future moment and return its id."""
        if when <= dt_util.now():
            raise SchedulingFailure(f"Refusing to schedule in the past: {when}")

        notification_id = uuid.uuid4().hex
        payload = {**(self._channel_data or {}), **(data or {})}

        async def _async_fire(now: datetime) -> None:
            self._scheduled.pop(notification_id, None)
            self._hass.bus.async_fire(EVENT_REMINDER_SENT, {"id": notification_id})
            await self._async_deliver(notification_id, title, message, payload)

        self._scheduled[notification_id] = async_track_point_in_time(
            self._hass, _async_fire, when
        )
        return notification_id

    async def async_cancel(self, notification_id: str) -> None:
        """Cancel a reminder. Unknown or already fired ids are ignored."""
        unsub = self._scheduled.pop(notification_id, None)
        if unsub is not None:
            unsub()

    async def async_cancel_all(self) -> None:
        """Cancel every reminder scheduled by this integration."""
        scheduled, self._scheduled = self._scheduled, {}
        for unsub in scheduled.values():
            unsub()

    async def _async_deliver(
        self,
        notification_id: str,
        title: str,
        message: str,
        data: dict[str, Any],
    ) -> None:
        if not self._notify_service:
            persistent_notification.async_create(
                self._hass,
                message,
                title=title,
                notification_id=f"{DOMAIN}_{notification_id}",
            )
            return

        domain, service = split_service(self._notify_service)
        try:
            await self._hass.services.async_call(
                domain,
                service,
                {"title": title, "message": message, "data": data},
                blocking=True,
            )
        except HomeAssistantError as err:
            _LOGGER.error("Failed to deliver reminder %s: %s", notification_id, err)
