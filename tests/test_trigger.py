"""
Tests for change-driven reconciliation
"""
from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from pytest_homeassistant_custom_component.common import (
    async_capture_events,
    async_fire_time_changed,
)

from homeassistant.core import HomeAssistant
from homeassistant.util import dt as dt_util

from custom_components.nameday_tracker.const import (
    EVENT_NOTIFICATIONS_SCHEDULED,
    RECONCILE_COOLDOWN,
)
from custom_components.nameday_tracker.store import FavoriteStore, SettingsStore
from custom_components.nameday_tracker.trigger import ReconciliationTrigger

from .conftest import async_settle


class FakeScheduler:
    """Records the inputs of each reconciliation."""

    def __init__(self):
        self.calls: list[tuple] = []

    async def async_schedule_all(self, favorites, notifications_enabled, language):
        self.calls.append(
            ([f["name"] for f in favorites], notifications_enabled, language)
        )
        return []


class BlockingScheduler(FakeScheduler):
    """Holds its second run until released."""

    def __init__(self):
        super().__init__()
        self.blocked = asyncio.Event()
        self.release = asyncio.Event()

    async def async_schedule_all(self, favorites, notifications_enabled, language):
        result = await super().async_schedule_all(
            favorites, notifications_enabled, language
        )
        if len(self.calls) == 2:
            self.blocked.set()
            await self.release.wait()
        return result


# --- Fixtures ---

@pytest.fixture
async def stores(hass: HomeAssistant):
    favorites = FavoriteStore(hass)
    settings = SettingsStore(hass)
    await favorites.async_load()
    await settings.async_load()
    return favorites, settings


@pytest.fixture
async def trigger(hass: HomeAssistant, stores):
    favorites, settings = stores
    scheduler = FakeScheduler()
    trigger = ReconciliationTrigger(hass, favorites, settings, scheduler)
    trigger.scheduler = scheduler
    yield trigger
    trigger.async_shutdown()


async def test_start_requires_loaded_stores(hass: HomeAssistant):
    trigger = ReconciliationTrigger(
        hass, FavoriteStore(hass), SettingsStore(hass), FakeScheduler()
    )

    with pytest.raises(RuntimeError):
        await trigger.async_start()
    trigger.async_shutdown()


async def test_start_runs_initial_reconciliation(hass, trigger):
    events = async_capture_events(hass, EVENT_NOTIFICATIONS_SCHEDULED)

    await trigger.async_start()
    await hass.async_block_till_done()

    assert trigger.scheduler.calls == [([], False, "el")]
    assert events[0].data == {"count": 0}


async def test_relevant_change_reconciles(hass, trigger, stores):
    favorites, settings = stores
    await trigger.async_start()

    await favorites.async_add("Maria")
    await async_settle(hass)

    assert trigger.scheduler.calls[-1] == (["Maria"], False, "el")

    await settings.async_set_language("en")
    await async_settle(hass)

    assert trigger.scheduler.calls[-1] == (["Maria"], False, "en")


async def test_theme_change_does_not_reconcile(hass, trigger, stores):
    _, settings = stores
    await trigger.async_start()

    await settings.async_set_theme("dark")
    await async_settle(hass)

    assert len(trigger.scheduler.calls) == 1


async def test_burst_of_changes_collapses(hass, trigger, stores):
    favorites, settings = stores
    await trigger.async_start()

    await favorites.async_add("Maria")
    await favorites.async_add("Nikos")
    await favorites.async_set_offsets("Maria", [0, 7])
    await settings.async_set_notifications_enabled(True)
    await hass.async_block_till_done()

    assert len(trigger.scheduler.calls) == 1

    await async_settle(hass)

    assert trigger.scheduler.calls == [
        ([], False, "el"),
        (["Maria", "Nikos"], True, "el"),
    ]


async def test_forced_refresh_runs_without_changes(hass, trigger):
    await trigger.async_start()

    await trigger.async_request_refresh(force=True)
    await async_settle(hass)

    assert len(trigger.scheduler.calls) == 2


async def test_shutdown_stops_listening(hass, trigger, stores):
    favorites, _ = stores
    await trigger.async_start()
    trigger.async_shutdown()

    await favorites.async_add("Maria")
    await async_settle(hass)

    assert len(trigger.scheduler.calls) == 1


async def test_change_during_run_is_reconciled(hass: HomeAssistant, stores):
    favorites, settings = stores
    scheduler = BlockingScheduler()
    trigger = ReconciliationTrigger(hass, favorites, settings, scheduler)
    await trigger.async_start()

    await favorites.async_add("Maria")
    await hass.async_block_till_done()
    async_fire_time_changed(
        hass, dt_util.utcnow() + timedelta(seconds=RECONCILE_COOLDOWN + 1)
    )
    await scheduler.blocked.wait()

    await favorites.async_add("Nikos")
    scheduler.release.set()
    await async_settle(hass)
    await async_settle(hass)

    assert scheduler.calls[1] == (["Maria"], False, "el")
    assert scheduler.calls[-1] == (["Maria", "Nikos"], False, "el")
    trigger.async_shutdown()
