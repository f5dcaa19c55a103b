"""Keep today's name days fresh."""
from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .api import NamedayApiClient, NamedayEntry
from .const import DOMAIN, TODAY_UPDATE_INTERVAL
from .exceptions import LookupFailure

_LOGGER = logging.getLogger(__name__)


class TodayCoordinator(DataUpdateCoordinator[NamedayEntry]):
    """Fetch today's entry at most once an hour."""

    def __init__(
        self, hass: HomeAssistant, entry: ConfigEntry, client: NamedayApiClient
    ) -> None:
        """Initialize the coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=entry,
            name=f"{DOMAIN}_today",
            update_interval=TODAY_UPDATE_INTERVAL,
        )
        self.client = client

    async def _async_update_data(self) -> NamedayEntry:
        try:
            return await self.client.async_get_today()
        except LookupFailure as err:
            raise UpdateFailed(str(err)) from err
