"""
Tests for favorites, settings and ledger persistence
"""
from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from pytest_homeassistant_custom_component.common import async_capture_events

from homeassistant.core import HomeAssistant

from custom_components.nameday_tracker.const import (
    EVENT_FAVORITES_UPDATED,
    EVENT_SETTINGS_UPDATED,
    STORAGE_KEY_FAVORITES,
    STORAGE_KEY_LEDGER,
    STORAGE_KEY_SETTINGS,
)
from custom_components.nameday_tracker.exceptions import PersistenceFailure
from custom_components.nameday_tracker.store import (
    FavoriteStore,
    LedgerStore,
    ScheduledNotification,
    SettingsStore,
    normalize_offsets,
)

from .conftest import favorite, stored


# --- Fixtures ---

@pytest.fixture
def cancel_for_favorite():
    return AsyncMock()


@pytest.fixture
async def favorites(hass: HomeAssistant, cancel_for_favorite) -> FavoriteStore:
    store = FavoriteStore(hass, cancel_for_favorite)
    await store.async_load()
    return store


# --- Offsets ---

def test_normalize_offsets_sorts_and_deduplicates():
    assert normalize_offsets([7, 0, 7, 1]) == [0, 1, 7]


def test_normalize_offsets_never_empty():
    assert normalize_offsets([]) == [0]


def test_normalize_offsets_rejects_negative():
    with pytest.raises(ValueError):
        normalize_offsets([0, -1])


# --- Favorites ---

async def test_add_favorite_with_defaults(hass, favorites, hass_storage):
    events = async_capture_events(hass, EVENT_FAVORITES_UPDATED)

    added = await favorites.async_add("  Maria ")
    await hass.async_block_till_done()

    assert added == favorite("Maria")
    assert favorites.favorites == [favorite("Maria")]
    assert favorites.is_favorite("Maria ")
    assert len(events) == 1
    assert hass_storage[STORAGE_KEY_FAVORITES]["data"] == [favorite("Maria")]


async def test_add_existing_or_empty_is_a_no_op(hass, favorites):
    await favorites.async_add("Maria")
    events = async_capture_events(hass, EVENT_FAVORITES_UPDATED)

    assert await favorites.async_add("Maria") is None
    assert await favorites.async_add("   ") is None
    await hass.async_block_till_done()

    assert len(favorites.favorites) == 1
    assert events == []


async def test_names_are_case_sensitive(favorites):
    await favorites.async_add("Maria")

    assert await favorites.async_add("maria") is not None
    assert len(favorites.favorites) == 2


async def test_remove_cancels_reminders_first(favorites, cancel_for_favorite):
    await favorites.async_add("Maria")
    await favorites.async_add("Nikos")

    assert await favorites.async_remove("Maria")

    cancel_for_favorite.assert_awaited_once_with("Maria")
    assert [f["name"] for f in favorites.favorites] == ["Nikos"]


async def test_remove_unknown_returns_false(favorites, cancel_for_favorite):
    assert not await favorites.async_remove("Nobody")
    cancel_for_favorite.assert_not_awaited()


async def test_toggle_notify(favorites):
    await favorites.async_add("Maria")

    toggled = await favorites.async_toggle_notify("Maria")

    assert toggled["notifyEnabled"] is False
    assert (await favorites.async_toggle_notify("Maria"))["notifyEnabled"] is True
    assert await favorites.async_toggle_notify("Nobody") is None


async def test_set_offsets_normalizes(favorites):
    await favorites.async_add("Maria")

    updated = await favorites.async_set_offsets("Maria", [7, 1, 7])

    assert updated["notifyTimings"] == [1, 7]
    assert (await favorites.async_set_offsets("Maria", []))["notifyTimings"] == [0]


async def test_toggle_offset_keeps_same_day_when_emptied(favorites):
    await favorites.async_add("Maria")

    assert (await favorites.async_toggle_offset("Maria", 7))["notifyTimings"] == [0, 7]
    assert (await favorites.async_toggle_offset("Maria", 0))["notifyTimings"] == [7]
    assert (await favorites.async_toggle_offset("Maria", 7))["notifyTimings"] == [0]


async def test_snapshots_are_copies(favorites):
    await favorites.async_add("Maria")

    snapshot = favorites.get("Maria")
    snapshot["notifyTimings"].append(14)

    assert favorites.get("Maria")["notifyTimings"] == [0]


async def test_clear_favorites(hass, favorites, hass_storage):
    await favorites.async_add("Maria")
    await favorites.async_add("Nikos")

    await favorites.async_clear()

    assert favorites.favorites == []
    assert hass_storage[STORAGE_KEY_FAVORITES]["data"] == []


async def test_load_sanitizes_stored_favorites(hass, hass_storage):
    hass_storage[STORAGE_KEY_FAVORITES] = stored(
        STORAGE_KEY_FAVORITES,
        [
            {"name": " Maria ", "notifyEnabled": True, "notifyTimings": [7, 0, 7]},
            {"name": "Nikos"},
            {"name": "Maria"},
            {"notifyEnabled": True},
            "garbage",
            {"name": "Eleni", "notifyTimings": [-1]},
        ],
    )
    store = FavoriteStore(hass)

    await store.async_load()

    assert store.loaded
    assert store.favorites == [
        favorite("Maria", offsets=[0, 7]),
        favorite("Nikos"),
    ]


async def test_save_failure_keeps_memory_state(hass, favorites):
    with patch.object(favorites._store, "async_save", side_effect=OSError("disk full")):
        added = await favorites.async_add("Maria")

    assert added is not None
    assert favorites.is_favorite("Maria")


# --- Settings ---

async def test_settings_defaults(hass):
    settings = SettingsStore(hass)

    await settings.async_load()

    assert settings.loaded
    assert settings.as_dict() == {
        "language": "el",
        "theme": "light",
        "notificationsEnabled": False,
    }


async def test_settings_ignore_unrecognized_values(hass, hass_storage):
    hass_storage[STORAGE_KEY_SETTINGS] = stored(
        STORAGE_KEY_SETTINGS,
        {"language": "fr", "theme": "dark", "notificationsEnabled": "true"},
    )
    settings = SettingsStore(hass)

    await settings.async_load()

    assert settings.language == "el"
    assert settings.theme == "dark"
    assert settings.notifications_enabled is True


async def test_settings_setters_persist_and_notify(hass, hass_storage):
    settings = SettingsStore(hass)
    await settings.async_load()
    events = async_capture_events(hass, EVENT_SETTINGS_UPDATED)

    await settings.async_set_language("en")
    await settings.async_set_language("en")
    await settings.async_set_notifications_enabled(True)
    await hass.async_block_till_done()

    assert len(events) == 2
    assert hass_storage[STORAGE_KEY_SETTINGS]["data"] == {
        "language": "en",
        "theme": "light",
        "notificationsEnabled": True,
    }


async def test_settings_reject_unknown_values(hass):
    settings = SettingsStore(hass)
    await settings.async_load()

    with pytest.raises(ValueError):
        await settings.async_set_language("fr")
    with pytest.raises(ValueError):
        await settings.async_set_theme("sepia")


# --- Ledger ---

async def test_ledger_missing_is_empty(hass):
    assert await LedgerStore(hass).async_load() == []


async def test_ledger_round_trip(hass, hass_storage):
    record = ScheduledNotification(
        id="abc",
        favorite_name="Maria",
        celebration_date="2026-08-15T09:00:00+03:00",
        days_before=7,
    )
    ledger = LedgerStore(hass)

    await ledger.async_save([record])

    assert hass_storage[STORAGE_KEY_LEDGER]["data"] == [
        {
            "id": "abc",
            "favoriteName": "Maria",
            "celebrationDate": "2026-08-15T09:00:00+03:00",
            "daysBefore": 7,
        }
    ]
    assert await LedgerStore(hass).async_load() == [record]


async def test_ledger_skips_malformed_entries(hass, hass_storage):
    hass_storage[STORAGE_KEY_LEDGER] = stored(
        STORAGE_KEY_LEDGER,
        [
            {"id": "a", "favoriteName": "Maria", "celebrationDate": "x", "daysBefore": 0},
            {"id": "b"},
        ],
    )

    records = await LedgerStore(hass).async_load()

    assert [r.id for r in records] == ["a"]


async def test_ledger_save_failure_raises(hass):
    ledger = LedgerStore(hass)

    with (
        patch.object(ledger._store, "async_save", side_effect=OSError("disk full")),
        pytest.raises(PersistenceFailure),
    ):
        await ledger.async_save([])
