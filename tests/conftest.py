"""
Pytest fixtures for Nameday Tracker tests
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

import pytest
from pytest_homeassistant_custom_component.common import (
    MockConfigEntry,
    async_fire_time_changed,
)

from homeassistant.config_entries import ConfigEntryState
from homeassistant.core import HomeAssistant
from homeassistant.util import dt as dt_util

from custom_components.nameday_tracker.const import (
    API_BASE_URL,
    CONF_NOTIFY_SERVICE,
    DOMAIN,
    RECONCILE_COOLDOWN,
    STORAGE_KEY_FAVORITES,
    STORAGE_KEY_SETTINGS,
    STORAGE_VERSION,
)

TODAY_PAYLOAD = {
    "day": 15,
    "month": 8,
    "celebrating_names": ["Μαρία", "Παναγιώτης", "Δέσποινα"],
    "saints": ["Κοίμηση της Θεοτόκου"],
    "other_info": ["Αργία"],
    "names_with_other_dates": ["Μάριος"],
}


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations):
    """Allow loading custom_components/nameday_tracker in every test."""
    yield


def stored(key: str, data: Any) -> dict[str, Any]:
    """Wrap data the way Store persists it."""
    return {"version": STORAGE_VERSION, "minor_version": 1, "key": key, "data": data}


def favorite(name: str, enabled: bool = True, offsets: list[int] | None = None) -> dict:
    """Build a persisted favorite."""
    return {
        "name": name,
        "notifyEnabled": enabled,
        "notifyTimings": offsets if offsets is not None else [0],
    }


def soon(days: int = 30) -> datetime:
    """Return a local moment far enough ahead that every test offset is in the future."""
    return dt_util.now() + timedelta(days=days)


def search_result(when: datetime) -> list[dict[str, Any]]:
    """Search payload whose main celebration falls on the given date."""
    return [
        {
            "day": when.day,
            "month": when.month,
            "date_str": f"{when.day}/{when.month}",
            "saint_description": "Test saint",
            "saint_url": None,
            "related_names": [],
        }
    ]


async def async_settle(hass: HomeAssistant) -> None:
    """Let the reconciliation cooldown run out and wait for the deferred run."""
    await hass.async_block_till_done()
    async_fire_time_changed(
        hass, dt_util.utcnow() + timedelta(seconds=RECONCILE_COOLDOWN + 1)
    )
    await hass.async_block_till_done()


# --- Fixtures ---

@pytest.fixture
def mock_today(aioclient_mock):
    """Serve the today endpoint."""
    aioclient_mock.get(f"{API_BASE_URL}/today", json=TODAY_PAYLOAD)
    return aioclient_mock


@pytest.fixture
def config_entry(hass: HomeAssistant) -> MockConfigEntry:
    """Add a config entry without a notify service."""
    entry = MockConfigEntry(
        domain=DOMAIN,
        title="Nameday Tracker",
        unique_id=DOMAIN,
        data={},
        options={CONF_NOTIFY_SERVICE: ""},
    )
    entry.add_to_hass(hass)
    return entry


@pytest.fixture
def notifications_on(hass_storage):
    """Persist settings with reminders switched on, in English."""
    hass_storage[STORAGE_KEY_SETTINGS] = stored(
        STORAGE_KEY_SETTINGS,
        {"language": "en", "theme": "light", "notificationsEnabled": True},
    )


@pytest.fixture
def stored_favorites(hass_storage):
    """Persist favorites; call with a list of favorite dicts."""

    def _store(favorites: list[dict]) -> None:
        hass_storage[STORAGE_KEY_FAVORITES] = stored(STORAGE_KEY_FAVORITES, favorites)

    return _store


@pytest.fixture
async def setup_integration(hass: HomeAssistant, config_entry, mock_today):
    """Return a coroutine that sets up the integration; unload afterwards so no timers linger."""

    async def _setup() -> MockConfigEntry:
        assert await hass.config_entries.async_setup(config_entry.entry_id)
        await hass.async_block_till_done()
        return config_entry

    yield _setup

    if config_entry.state is ConfigEntryState.LOADED:
        await hass.config_entries.async_unload(config_entry.entry_id)
        await hass.async_block_till_done()
