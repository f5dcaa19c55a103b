"""The Nameday Tracker integration."""
from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import ATTR_DOMAIN, ATTR_SERVICE, EVENT_SERVICE_REGISTERED
from homeassistant.core import (
    Event,
    HomeAssistant,
    ServiceCall,
    ServiceResponse,
    SupportsResponse,
)
from homeassistant.exceptions import ServiceValidationError
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.helpers.start import async_at_started
from homeassistant.helpers.typing import ConfigType

from .api import NamedayApiClient
from .const import (
    ATTR_NAME,
    ATTR_OFFSET,
    ATTR_OFFSETS,
    CONF_NOTIFY_SERVICE,
    DOMAIN,
    PLATFORMS,
    SERVICE_ADD_FAVORITE,
    SERVICE_CLEAR_FAVORITES,
    SERVICE_LIST_FAVORITES,
    SERVICE_REMOVE_FAVORITE,
    SERVICE_RESCHEDULE,
    SERVICE_SEARCH_NAME,
    SERVICE_SET_OFFSETS,
    SERVICE_TOGGLE_NOTIFY,
    SERVICE_TOGGLE_OFFSET,
)
from .coordinator import TodayCoordinator
from .exceptions import PersistenceFailure
from .notifier import HassNotifier, split_service
from .scheduler import NotificationScheduler
from .store import FavoriteStore, LedgerStore, SettingsStore
from .trigger import ReconciliationTrigger

_LOGGER = logging.getLogger(__name__)

CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)

OFFSET = vol.All(vol.Coerce(int), vol.Range(min=0))

SERVICE_NAME_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_NAME): cv.string,
    }
)

SERVICE_SET_OFFSETS_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_NAME): cv.string,
        vol.Required(ATTR_OFFSETS): vol.All(cv.ensure_list, [OFFSET]),
    }
)

SERVICE_TOGGLE_OFFSET_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_NAME): cv.string,
        vol.Required(ATTR_OFFSET): OFFSET,
    }
)

SERVICES = (
    SERVICE_ADD_FAVORITE,
    SERVICE_REMOVE_FAVORITE,
    SERVICE_TOGGLE_NOTIFY,
    SERVICE_SET_OFFSETS,
    SERVICE_TOGGLE_OFFSET,
    SERVICE_CLEAR_FAVORITES,
    SERVICE_LIST_FAVORITES,
    SERVICE_SEARCH_NAME,
    SERVICE_RESCHEDULE,
)


def _not_found(name: str) -> ServiceValidationError:
    return ServiceValidationError(f"'{name}' is not a favorite")


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    """Set up the Nameday Tracker integration."""
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Nameday Tracker from a config entry."""
    hass.data.setdefault(DOMAIN, {})

    client = NamedayApiClient(async_get_clientsession(hass))
    notify_service = entry.options.get(CONF_NOTIFY_SERVICE) or None
    notifier = HassNotifier(hass, notify_service)
    ledger = LedgerStore(hass)
    scheduler = NotificationScheduler(client, notifier, ledger)

    settings = SettingsStore(hass)
    await settings.async_load()
    favorites = FavoriteStore(hass, scheduler.async_cancel_for_favorite)
    await favorites.async_load()

    coordinator = TodayCoordinator(hass, entry, client)
    await coordinator.async_config_entry_first_refresh()

    trigger = ReconciliationTrigger(hass, favorites, settings, scheduler)

    hass.data[DOMAIN].update(
        {
            "client": client,
            "coordinator": coordinator,
            "favorites": favorites,
            "ledger": ledger,
            "notifier": notifier,
            "notify_service": notify_service,
            "scheduler": scheduler,
            "settings": settings,
            "trigger": trigger,
        }
    )

    # --- Services ---

    async def handle_add_favorite(call: ServiceCall) -> ServiceResponse:
        """Handle the add_favorite service call."""
        favorite = await favorites.async_add(call.data[ATTR_NAME])
        if favorite is None:
            return {"added": False}
        _LOGGER.info("Added favorite %s", favorite["name"])
        return {"added": True, "favorite": favorite}

    async def handle_remove_favorite(call: ServiceCall) -> ServiceResponse:
        """Handle the remove_favorite service call."""
        name = call.data[ATTR_NAME]
        if not await favorites.async_remove(name):
            raise _not_found(name)
        _LOGGER.info("Removed favorite %s", name)
        return {"removed": name.strip()}

    async def handle_toggle_notify(call: ServiceCall) -> ServiceResponse:
        """Handle the toggle_notify service call."""
        name = call.data[ATTR_NAME]
        favorite = await favorites.async_toggle_notify(name)
        if favorite is None:
            raise _not_found(name)
        return favorite

    async def handle_set_offsets(call: ServiceCall) -> ServiceResponse:
        """Handle the set_offsets service call."""
        name = call.data[ATTR_NAME]
        favorite = await favorites.async_set_offsets(name, call.data[ATTR_OFFSETS])
        if favorite is None:
            raise _not_found(name)
        return favorite

    async def handle_toggle_offset(call: ServiceCall) -> ServiceResponse:
        """Handle the toggle_offset service call."""
        name = call.data[ATTR_NAME]
        favorite = await favorites.async_toggle_offset(name, call.data[ATTR_OFFSET])
        if favorite is None:
            raise _not_found(name)
        return favorite

    async def handle_clear_favorites(call: ServiceCall) -> None:
        """Handle the clear_favorites service call."""
        await favorites.async_clear()
        _LOGGER.info("Cleared all favorites")

    async def handle_list_favorites(call: ServiceCall) -> ServiceResponse:
        """Handle the list_favorites service call."""
        try:
            records = await ledger.async_load()
        except PersistenceFailure as err:
            _LOGGER.error("Failed to load reminder ledger: %s", err)
            records = []

        result: list[dict[str, Any]] = []
        for favorite in favorites.favorites:
            reminders = [
                {
                    "celebration_date": r.celebration_date,
                    "days_before": r.days_before,
                }
                for r in records
                if r.favorite_name == favorite["name"]
            ]
            result.append({**favorite, "reminders": reminders})
        return {"favorites": result}

    async def handle_search_name(call: ServiceCall) -> ServiceResponse:
        """Handle the search_name service call."""
        name = call.data[ATTR_NAME].strip()
        celebrations = await client.async_search(name)
        return {
            "name": name,
            "is_favorite": favorites.is_favorite(name),
            "results": [c.as_dict() for c in celebrations],
        }

    async def handle_reschedule(call: ServiceCall) -> None:
        """Handle the reschedule service call."""
        await trigger.async_request_refresh(force=True)

    hass.services.async_register(
        DOMAIN,
        SERVICE_ADD_FAVORITE,
        handle_add_favorite,
        schema=SERVICE_NAME_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_REMOVE_FAVORITE,
        handle_remove_favorite,
        schema=SERVICE_NAME_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_TOGGLE_NOTIFY,
        handle_toggle_notify,
        schema=SERVICE_NAME_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_SET_OFFSETS,
        handle_set_offsets,
        schema=SERVICE_SET_OFFSETS_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_TOGGLE_OFFSET,
        handle_toggle_offset,
        schema=SERVICE_TOGGLE_OFFSET_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_CLEAR_FAVORITES,
        handle_clear_favorites,
        schema=vol.Schema({}),
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_LIST_FAVORITES,
        handle_list_favorites,
        schema=vol.Schema({}),
        supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_SEARCH_NAME,
        handle_search_name,
        schema=SERVICE_NAME_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_RESCHEDULE,
        handle_reschedule,
        schema=vol.Schema({}),
    )

    entry.async_on_unload(entry.add_update_listener(_async_options_updated))

    # --- Forward platform setup ---
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    # --- Reminder reconciliation ---
    async def _async_start_reconciliation(hass: HomeAssistant) -> None:
        await trigger.async_start()

    entry.async_on_unload(async_at_started(hass, _async_start_reconciliation))

    if notify_service:
        notify_target = split_service(notify_service)

        async def _async_service_registered(event: Event) -> None:
            """Reconcile once the notify target shows up, e.g. mobile_app at boot."""
            target = (event.data.get(ATTR_DOMAIN), event.data.get(ATTR_SERVICE))
            if target == notify_target:
                _LOGGER.debug("Notify service %s registered", notify_service)
                await trigger.async_request_refresh(force=True)

        entry.async_on_unload(
            hass.bus.async_listen(EVENT_SERVICE_REGISTERED, _async_service_registered)
        )

    return True


async def _async_options_updated(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload when the notify target changes; settings apply live."""
    new_service = entry.options.get(CONF_NOTIFY_SERVICE) or None
    if new_service != hass.data[DOMAIN].get("notify_service"):
        _LOGGER.info("Notify target changed to %s, reloading", new_service)
        await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a Nameday Tracker config entry."""
    data = hass.data[DOMAIN]
    data["trigger"].async_shutdown()
    await data["scheduler"].async_cancel_all()

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    for service_name in SERVICES:
        hass.services.async_remove(DOMAIN, service_name)

    if unload_ok:
        hass.data.pop(DOMAIN, None)

    return unload_ok
