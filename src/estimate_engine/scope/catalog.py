"""
Catalog and regional price sources.

The engine reads catalog entries and prices through an injected async
source and never talks to a database itself.
"""

import asyncio
import logging
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from ..core.errors import CatalogUnavailableError
from ..core.models import CatalogEntry, RegionalPrice

logger = logging.getLogger(__name__)

DEFAULT_ACTIVITY = "install"

# Source failures that degrade a lookup instead of failing the run
TRANSIENT_ERRORS = (CatalogUnavailableError, ConnectionError, TimeoutError, asyncio.TimeoutError)


@runtime_checkable
class CatalogSource(Protocol):
    """Read-only async access to the line item catalog and price lists."""

    async def lookup_catalog_item(self, code: str) -> CatalogEntry | None:
        """Get an active catalog entry by code."""
        ...

    async def get_regional_price(
        self, code: str, region_id: str, activity_type: str | None = None
    ) -> RegionalPrice | None:
        """Get the price for a code in a region, with activity fallback."""
        ...

    async def list_catalog_items(self, trade_code: str | None = None) -> list[CatalogEntry]:
        """List active catalog entries, optionally for one trade."""
        ...


def select_price(
    candidates: list[RegionalPrice], activity_type: str | None = None
) -> RegionalPrice | None:
    """
    Pick a price row for an activity.

    Preference: the requested activity, then "install", then the first row.
    """
    if not candidates:
        return None
    if activity_type:
        for price in candidates:
            if price.activity_type == activity_type:
                return price
    for price in candidates:
        if price.activity_type == DEFAULT_ACTIVITY:
            return price
    return candidates[0]


class InMemoryCatalog:
    """
    Catalog source backed by in-memory collections.

    Used for tests and offline runs; satisfies CatalogSource.
    """

    def __init__(
        self,
        entries: Iterable[CatalogEntry] = (),
        prices: Iterable[RegionalPrice] = (),
    ) -> None:
        self._entries: dict[str, CatalogEntry] = {}
        self._prices: dict[tuple[str, str], list[RegionalPrice]] = {}
        for entry in entries:
            self.add_entry(entry)
        for price in prices:
            self.add_price(price)

    def add_entry(self, entry: CatalogEntry) -> "InMemoryCatalog":
        self._entries[entry.code] = entry
        return self

    def add_price(self, price: RegionalPrice) -> "InMemoryCatalog":
        self._prices.setdefault((price.code, price.region_id), []).append(price)
        return self

    @property
    def codes(self) -> list[str]:
        return sorted(self._entries)

    async def lookup_catalog_item(self, code: str) -> CatalogEntry | None:
        entry = self._entries.get(code)
        if entry is None or not entry.is_active:
            return None
        return entry

    async def get_regional_price(
        self, code: str, region_id: str, activity_type: str | None = None
    ) -> RegionalPrice | None:
        return select_price(self._prices.get((code, region_id), []), activity_type)

    async def list_catalog_items(self, trade_code: str | None = None) -> list[CatalogEntry]:
        items = [
            entry
            for entry in self._entries.values()
            if entry.is_active and (trade_code is None or entry.trade_code == trade_code)
        ]
        return sorted(items, key=lambda e: (e.sort_order, e.code))
