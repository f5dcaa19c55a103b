"""Config flow for Nameday Tracker."""
from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.core import callback
from homeassistant.helpers import config_validation as cv

from .const import (
    ATTR_NAME,
    ATTR_OFFSETS,
    CONF_LANGUAGE,
    CONF_NOTIFICATIONS_ENABLED,
    CONF_NOTIFY_SERVICE,
    CONF_THEME,
    DOMAIN,
    FAV_NAME,
    FAV_NOTIFY_ENABLED,
    FAV_NOTIFY_TIMINGS,
    LANGUAGES,
    THEMES,
)
from .notifier import split_service

_LOGGER = logging.getLogger(__name__)

OFFSET_LABELS: dict[str, str] = {
    "0": "Same day",
    "1": "1 day before",
    "2": "2 days before",
    "3": "3 days before",
    "5": "5 days before",
    "7": "1 week before",
    "14": "2 weeks before",
}


class NamedayTrackerConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Nameday Tracker."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle the initial step - simple confirmation."""
        await self.async_set_unique_id(DOMAIN)
        self._abort_if_unique_id_configured()

        if user_input is not None:
            return self.async_create_entry(
                title="Nameday Tracker",
                data={},
                options={CONF_NOTIFY_SERVICE: ""},
            )

        return self.async_show_form(step_id="user")

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: ConfigEntry,
    ) -> NamedayTrackerOptionsFlow:
        """Get the options flow handler."""
        return NamedayTrackerOptionsFlow()


class NamedayTrackerOptionsFlow(OptionsFlow):
    """Handle options flow for Nameday Tracker."""

    def __init__(self) -> None:
        """Initialize options flow."""
        self._selected_name: str | None = None

    def _get_favorites(self):
        """Get the favorite store."""
        return self.hass.data[DOMAIN]["favorites"]

    def _get_settings(self):
        """Get the settings store."""
        return self.hass.data[DOMAIN]["settings"]

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Show the main menu."""
        return self.async_show_menu(
            step_id="init",
            menu_options=["settings", "add_favorite", "manage_favorites"],
        )

    # ── Settings ─────────────────────────────────────────────────

    async def async_step_settings(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle language, theme and notification settings."""
        settings = self._get_settings()
        errors: dict[str, str] = {}

        if user_input is not None:
            notify_service = user_input.get(CONF_NOTIFY_SERVICE, "").strip()
            if notify_service and not self.hass.services.has_service(
                *split_service(notify_service)
            ):
                errors[CONF_NOTIFY_SERVICE] = "unknown_service"

            if not errors:
                await settings.async_set_language(user_input[CONF_LANGUAGE])
                await settings.async_set_theme(user_input[CONF_THEME])
                await settings.async_set_notifications_enabled(
                    user_input[CONF_NOTIFICATIONS_ENABLED]
                )
                _LOGGER.info("Updated settings via options flow")
                return self.async_create_entry(
                    data={**self.config_entry.options, CONF_NOTIFY_SERVICE: notify_service}
                )

        return self.async_show_form(
            step_id="settings",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_LANGUAGE, default=settings.language): vol.In(
                        list(LANGUAGES)
                    ),
                    vol.Required(CONF_THEME, default=settings.theme): vol.In(
                        list(THEMES)
                    ),
                    vol.Required(
                        CONF_NOTIFICATIONS_ENABLED,
                        default=settings.notifications_enabled,
                    ): bool,
                    vol.Optional(
                        CONF_NOTIFY_SERVICE,
                        default=self.config_entry.options.get(CONF_NOTIFY_SERVICE, ""),
                    ): str,
                }
            ),
            errors=errors,
        )

    # ── Add Favorite ─────────────────────────────────────────────

    async def async_step_add_favorite(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle adding a favorite name."""
        errors: dict[str, str] = {}

        if user_input is not None:
            name = user_input[ATTR_NAME].strip()
            favorites = self._get_favorites()
            if not name:
                errors[ATTR_NAME] = "invalid_name"
            elif favorites.is_favorite(name):
                errors[ATTR_NAME] = "already_favorite"
            else:
                await favorites.async_add(name)
                _LOGGER.info("Added favorite %s via config flow", name)
                return self.async_create_entry(data=self.config_entry.options)

        return self.async_show_form(
            step_id="add_favorite",
            data_schema=vol.Schema({vol.Required(ATTR_NAME): str}),
            errors=errors,
        )

    # ── Manage Favorites ─────────────────────────────────────────

    async def async_step_manage_favorites(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Show a list of favorites to select from."""
        favorites = self._get_favorites().favorites

        if not favorites:
            return self.async_abort(reason="no_favorites")

        if user_input is not None:
            self._selected_name = user_input["favorite"]
            return await self.async_step_favorite_action()

        return self.async_show_form(
            step_id="manage_favorites",
            data_schema=vol.Schema(
                {
                    vol.Required("favorite"): vol.In(
                        {f[FAV_NAME]: f[FAV_NAME] for f in favorites}
                    ),
                }
            ),
        )

    async def async_step_favorite_action(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Show edit/remove menu for the selected favorite."""
        return self.async_show_menu(
            step_id="favorite_action",
            menu_options=["edit_reminders", "remove_favorite"],
        )

    async def async_step_edit_reminders(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Edit when to be reminded about a favorite."""
        store = self._get_favorites()
        favorite = store.get(self._selected_name or "")
        if favorite is None:
            return self.async_abort(reason="favorite_not_found")

        if user_input is not None:
            offsets = [int(value) for value in user_input.get(ATTR_OFFSETS, [])]
            if user_input[FAV_NOTIFY_ENABLED] != favorite[FAV_NOTIFY_ENABLED]:
                await store.async_toggle_notify(favorite[FAV_NAME])
            await store.async_set_offsets(favorite[FAV_NAME], offsets)
            _LOGGER.info("Edited reminders of %s via config flow", favorite[FAV_NAME])
            return self.async_create_entry(data=self.config_entry.options)

        labels = dict(OFFSET_LABELS)
        for days in favorite[FAV_NOTIFY_TIMINGS]:
            labels.setdefault(str(days), f"{days} days before")

        return self.async_show_form(
            step_id="edit_reminders",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        FAV_NOTIFY_ENABLED, default=favorite[FAV_NOTIFY_ENABLED]
                    ): bool,
                    vol.Optional(
                        ATTR_OFFSETS,
                        default=[str(d) for d in favorite[FAV_NOTIFY_TIMINGS]],
                    ): cv.multi_select(labels),
                }
            ),
            description_placeholders={"name": favorite[FAV_NAME]},
        )

    async def async_step_remove_favorite(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Confirm and remove a favorite."""
        store = self._get_favorites()
        favorite = store.get(self._selected_name or "")
        if favorite is None:
            return self.async_abort(reason="favorite_not_found")

        if user_input is not None:
            await store.async_remove(favorite[FAV_NAME])
            _LOGGER.info("Removed favorite %s via config flow", favorite[FAV_NAME])
            return self.async_create_entry(data=self.config_entry.options)

        return self.async_show_form(
            step_id="remove_favorite",
            description_placeholders={"name": favorite[FAV_NAME]},
        )
