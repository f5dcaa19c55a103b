"""Client for the eortologio nameday API."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import aiohttp

from .const import API_BASE_URL
from .exceptions import LookupFailure

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamedayEntry:
    """Names and saints celebrated on a single day."""

    day: int
    month: int
    celebrating_names: list[str] = field(default_factory=list)
    saints: list[str] = field(default_factory=list)
    other_info: list[str] = field(default_factory=list)
    names_with_other_dates: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NamedayEntry:
        """Build an entry from an API payload."""
        return cls(
            day=int(data["day"]),
            month=int(data["month"]),
            celebrating_names=list(data.get("celebrating_names") or []),
            saints=list(data.get("saints") or []),
            other_info=list(data.get("other_info") or []),
            names_with_other_dates=list(data.get("names_with_other_dates") or []),
        )


@dataclass(frozen=True)
class CelebrationDate:
    """A date on which a searched name is celebrated."""

    day: int
    month: int
    date_str: str = ""
    saint_description: str = ""
    saint_url: str | None = None
    related_names: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CelebrationDate:
        """Build a celebration date from an API payload."""
        return cls(
            day=int(data["day"]),
            month=int(data["month"]),
            date_str=data.get("date_str") or "",
            saint_description=data.get("saint_description") or "",
            saint_url=data.get("saint_url"),
            related_names=list(data.get("related_names") or []),
        )

    def as_dict(self) -> dict[str, Any]:
        """Return the service response representation."""
        return {
            "day": self.day,
            "month": self.month,
            "date_str": self.date_str,
            "saint_description": self.saint_description,
            "saint_url": self.saint_url,
            "related_names": list(self.related_names),
        }


class NamedayApiClient:
    """Read-only accessor for today, month and search lookups.

    Every failure is raised as LookupFailure. The client does not retry or
    cache; callers decide how fresh the data has to be.
    """

    def __init__(
        self, session: aiohttp.ClientSession, base_url: str = API_BASE_URL
    ) -> None:
        """Initialize the client."""
        self._session = session
        self._base_url = base_url.rstrip("/")

    async def _async_get(self, path: str) -> Any:
        url = f"{self._base_url}{path}"
        try:
            async with self._session.get(url) as response:
                response.raise_for_status()
                return await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as err:
            _LOGGER.debug("Request to %s failed: %s", url, err)
            raise LookupFailure(f"Error fetching {path}: {err}") from err

    async def async_get_today(self) -> NamedayEntry:
        """Return today's nameday entry."""
        data = await self._async_get("/today")
        try:
            return NamedayEntry.from_dict(data)
        except (KeyError, TypeError, ValueError) as err:
            raise LookupFailure(f"Malformed today payload: {err}") from err

    async def async_get_month(self, month: int | None = None) -> list[NamedayEntry]:
        """Return all entries of a month, the current one if none is given."""
        path = f"/month/{month}" if month else "/month"
        data = await self._async_get(path)
        try:
            return [NamedayEntry.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as err:
            raise LookupFailure(f"Malformed month payload: {err}") from err

    async def async_search(self, name: str) -> list[CelebrationDate]:
        """Search for a name. The first result is the main celebration."""
        data = await self._async_get(f"/search/{quote(name, safe='')}")
        try:
            return [CelebrationDate.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as err:
            raise LookupFailure(f"Malformed search payload: {err}") from err
