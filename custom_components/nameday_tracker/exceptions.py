"""Exceptions for the Nameday Tracker integration."""
from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError


class NamedayTrackerError(HomeAssistantError):
    """Base class for Nameday Tracker errors."""


class LookupFailure(NamedayTrackerError):
    """The nameday API could not be reached or returned unusable data."""


class PersistenceFailure(NamedayTrackerError):
    """Reading or writing local storage failed."""


class PermissionDenied(NamedayTrackerError):
    """No notification target is available to deliver reminders."""


class SchedulingFailure(NamedayTrackerError):
    """A reminder could not be scheduled or cancelled."""
