"""Persistent storage for favorites, settings and the reminder ledger."""
from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
import logging
from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.storage import Store

from .const import (
    DEFAULT_LANGUAGE,
    DEFAULT_NOTIFICATIONS_ENABLED,
    DEFAULT_OFFSETS,
    DEFAULT_THEME,
    EVENT_FAVORITES_UPDATED,
    EVENT_SETTINGS_UPDATED,
    FAV_NAME,
    FAV_NOTIFY_ENABLED,
    FAV_NOTIFY_TIMINGS,
    LANGUAGES,
    LEDGER_CELEBRATION_DATE,
    LEDGER_DAYS_BEFORE,
    LEDGER_FAVORITE_NAME,
    LEDGER_ID,
    SETTING_LANGUAGE,
    SETTING_NOTIFICATIONS_ENABLED,
    SETTING_THEME,
    STORAGE_KEY_FAVORITES,
    STORAGE_KEY_LEDGER,
    STORAGE_KEY_SETTINGS,
    STORAGE_VERSION,
    THEMES,
)
from .exceptions import PersistenceFailure

_LOGGER = logging.getLogger(__name__)


def normalize_offsets(offsets: Iterable[int]) -> list[int]:
    """Return offsets deduplicated and sorted, never empty.

    Raises ValueError for negative offsets.
    """
    result = sorted({int(offset) for offset in offsets})
    if any(offset < 0 for offset in result):
        raise ValueError("Offsets must be zero or positive")
    return result or list(DEFAULT_OFFSETS)


class _JsonStore:
    """Thin wrapper that maps storage errors to PersistenceFailure."""

    def __init__(self, hass: HomeAssistant, key: str) -> None:
        self._store: Store = Store(hass, STORAGE_VERSION, key)

    async def _async_read(self) -> Any:
        try:
            return await self._store.async_load()
        except (HomeAssistantError, OSError) as err:
            raise PersistenceFailure(
                f"Unable to read {self._store.key}: {err}"
            ) from err

    async def _async_write(self, data: Any) -> None:
        try:
            await self._store.async_save(data)
        except (HomeAssistantError, OSError) as err:
            raise PersistenceFailure(
                f"Unable to write {self._store.key}: {err}"
            ) from err


class FavoriteStore(_JsonStore):
    """Manage the list of favorite names.

    Mutations land in memory before anything is awaited, so the in-memory
    list is authoritative even when a write to disk fails.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        async_cancel_for_favorite: Callable[[str], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize the store."""
        super().__init__(hass, STORAGE_KEY_FAVORITES)
        self._hass = hass
        self._async_cancel_for_favorite = async_cancel_for_favorite
        self._favorites: list[dict[str, Any]] = []
        self._loaded = False

    @property
    def loaded(self) -> bool:
        """Return True once the stored favorites have been read."""
        return self._loaded

    @property
    def favorites(self) -> list[dict[str, Any]]:
        """Return a snapshot of all favorites."""
        return [self._copy(f) for f in self._favorites]

    async def async_load(self) -> None:
        """Load favorites from disk."""
        try:
            data = await self._async_read()
        except PersistenceFailure as err:
            _LOGGER.error("Failed to load favorites: %s", err)
            data = None

        self._favorites = []
        for item in data if isinstance(data, list) else []:
            try:
                favorite = {
                    FAV_NAME: str(item[FAV_NAME]).strip(),
                    FAV_NOTIFY_ENABLED: bool(item.get(FAV_NOTIFY_ENABLED, True)),
                    FAV_NOTIFY_TIMINGS: normalize_offsets(
                        item.get(FAV_NOTIFY_TIMINGS) or DEFAULT_OFFSETS
                    ),
                }
            except (KeyError, TypeError, ValueError, AttributeError):
                _LOGGER.debug("Discarding malformed favorite %s", item)
                continue
            if favorite[FAV_NAME] and not self._find(favorite[FAV_NAME]):
                self._favorites.append(favorite)
        self._loaded = True

    async def _async_save(self) -> None:
        """Save favorites to disk, logging failures."""
        try:
            await self._async_write(self._favorites)
        except PersistenceFailure as err:
            _LOGGER.error("Failed to save favorites: %s", err)

    async def _async_changed(self) -> None:
        self._hass.bus.async_fire(EVENT_FAVORITES_UPDATED)
        await self._async_save()

    @staticmethod
    def _copy(favorite: dict[str, Any]) -> dict[str, Any]:
        return {**favorite, FAV_NOTIFY_TIMINGS: list(favorite[FAV_NOTIFY_TIMINGS])}

    def _find(self, name: str) -> dict[str, Any] | None:
        for favorite in self._favorites:
            if favorite[FAV_NAME] == name:
                return favorite
        return None

    def get(self, name: str) -> dict[str, Any] | None:
        """Get a favorite by name."""
        favorite = self._find(name.strip())
        return self._copy(favorite) if favorite else None

    def is_favorite(self, name: str) -> bool:
        """Return True if the trimmed name is a favorite."""
        return self._find(name.strip()) is not None

    async def async_add(self, name: str) -> dict[str, Any] | None:
        """Add a favorite. Returns None if the name was empty or already present."""
        name = name.strip()
        if not name or self._find(name):
            return None
        favorite: dict[str, Any] = {
            FAV_NAME: name,
            FAV_NOTIFY_ENABLED: True,
            FAV_NOTIFY_TIMINGS: list(DEFAULT_OFFSETS),
        }
        self._favorites.append(favorite)
        await self._async_changed()
        return self._copy(favorite)

    async def async_remove(self, name: str) -> bool:
        """Remove a favorite after cancelling its reminders."""
        name = name.strip()
        if not self._find(name):
            return False
        if self._async_cancel_for_favorite is not None:
            await self._async_cancel_for_favorite(name)
        self._favorites = [f for f in self._favorites if f[FAV_NAME] != name]
        await self._async_changed()
        return True

    async def async_toggle_notify(self, name: str) -> dict[str, Any] | None:
        """Flip the notification flag of a favorite."""
        favorite = self._find(name.strip())
        if favorite is None:
            return None
        favorite[FAV_NOTIFY_ENABLED] = not favorite[FAV_NOTIFY_ENABLED]
        await self._async_changed()
        return self._copy(favorite)

    async def async_set_offsets(
        self, name: str, offsets: Iterable[int]
    ) -> dict[str, Any] | None:
        """Replace the reminder offsets of a favorite."""
        favorite = self._find(name.strip())
        if favorite is None:
            return None
        favorite[FAV_NOTIFY_TIMINGS] = normalize_offsets(offsets)
        await self._async_changed()
        return self._copy(favorite)

    async def async_toggle_offset(
        self, name: str, offset: int
    ) -> dict[str, Any] | None:
        """Add the offset if missing, remove it otherwise.

        Removing the last offset leaves the same-day reminder in place.
        """
        favorite = self._find(name.strip())
        if favorite is None:
            return None
        timings = list(favorite[FAV_NOTIFY_TIMINGS])
        if offset in timings:
            timings.remove(offset)
        else:
            timings.append(offset)
        return await self.async_set_offsets(favorite[FAV_NAME], timings)

    async def async_clear(self) -> None:
        """Remove all favorites."""
        self._favorites = []
        await self._async_changed()


class SettingsStore(_JsonStore):
    """Global preferences: language, theme and the notifications switch."""

    def __init__(self, hass: HomeAssistant) -> None:
        """Initialize the store."""
        super().__init__(hass, STORAGE_KEY_SETTINGS)
        self._hass = hass
        self._language: str = DEFAULT_LANGUAGE
        self._theme: str = DEFAULT_THEME
        self._notifications_enabled: bool = DEFAULT_NOTIFICATIONS_ENABLED
        self._loaded = False

    @property
    def loaded(self) -> bool:
        """Return True once stored settings have been read."""
        return self._loaded

    @property
    def language(self) -> str:
        """Return the UI and notification language."""
        return self._language

    @property
    def theme(self) -> str:
        """Return the preferred theme."""
        return self._theme

    @property
    def notifications_enabled(self) -> bool:
        """Return the master notifications switch."""
        return self._notifications_enabled

    async def async_load(self) -> None:
        """Load settings, keeping defaults for anything unrecognized."""
        try:
            data = await self._async_read()
        except PersistenceFailure as err:
            _LOGGER.error("Failed to load settings: %s", err)
            data = None
        if not isinstance(data, dict):
            data = {}

        language = data.get(SETTING_LANGUAGE)
        if language in LANGUAGES:
            self._language = language
        elif language is not None:
            _LOGGER.debug("Ignoring stored language %r", language)

        theme = data.get(SETTING_THEME)
        if theme in THEMES:
            self._theme = theme
        elif theme is not None:
            _LOGGER.debug("Ignoring stored theme %r", theme)

        enabled = data.get(SETTING_NOTIFICATIONS_ENABLED)
        if isinstance(enabled, bool):
            self._notifications_enabled = enabled
        elif enabled in ("true", "false"):
            self._notifications_enabled = enabled == "true"
        elif enabled is not None:
            _LOGGER.debug("Ignoring stored notifications flag %r", enabled)

        self._loaded = True

    def as_dict(self) -> dict[str, Any]:
        """Return the persisted representation."""
        return {
            SETTING_LANGUAGE: self._language,
            SETTING_THEME: self._theme,
            SETTING_NOTIFICATIONS_ENABLED: self._notifications_enabled,
        }

    async def _async_changed(self) -> None:
        self._hass.bus.async_fire(EVENT_SETTINGS_UPDATED)
        try:
            await self._async_write(self.as_dict())
        except PersistenceFailure as err:
            _LOGGER.error("Failed to save settings: %s", err)

    async def async_set_language(self, language: str) -> None:
        """Set the language."""
        if language not in LANGUAGES:
            raise ValueError(f"Unsupported language: {language}")
        if language != self._language:
            self._language = language
            await self._async_changed()

    async def async_set_theme(self, theme: str) -> None:
        """Set the theme."""
        if theme not in THEMES:
            raise ValueError(f"Unsupported theme: {theme}")
        if theme != self._theme:
            self._theme = theme
            await self._async_changed()

    async def async_set_notifications_enabled(self, enabled: bool) -> None:
        """Set the master notifications switch."""
        if enabled != self._notifications_enabled:
            self._notifications_enabled = enabled
            await self._async_changed()


@dataclass(frozen=True)
class ScheduledNotification:
    """Ledger record tying a scheduled reminder to its favorite."""

    id: str
    favorite_name: str
    celebration_date: str
    days_before: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduledNotification:
        """Build a record from its stored form."""
        return cls(
            id=str(data[LEDGER_ID]),
            favorite_name=str(data[LEDGER_FAVORITE_NAME]),
            celebration_date=str(data[LEDGER_CELEBRATION_DATE]),
            days_before=int(data[LEDGER_DAYS_BEFORE]),
        )

    def as_dict(self) -> dict[str, Any]:
        """Return the stored form."""
        return {
            LEDGER_ID: self.id,
            LEDGER_FAVORITE_NAME: self.favorite_name,
            LEDGER_CELEBRATION_DATE: self.celebration_date,
            LEDGER_DAYS_BEFORE: self.days_before,
        }


class LedgerStore(_JsonStore):
    """Persisted record of every reminder currently scheduled."""

    def __init__(self, hass: HomeAssistant) -> None:
        """Initialize the store."""
        super().__init__(hass, STORAGE_KEY_LEDGER)

    async def async_load(self) -> list[ScheduledNotification]:
        """Load the ledger. A missing ledger is empty."""
        data = await self._async_read()
        records: list[ScheduledNotification] = []
        for item in data if isinstance(data, list) else []:
            try:
                records.append(ScheduledNotification.from_dict(item))
            except (KeyError, TypeError, ValueError):
                _LOGGER.debug("Discarding malformed ledger entry %s", item)
        return records

    async def async_save(self, records: Iterable[ScheduledNotification]) -> None:
        """Replace the ledger with the given records."""
        await self._async_write([record.as_dict() for record in records])
