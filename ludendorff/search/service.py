from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from ludendorff.search.index import SearchIndex


logger = logging.getLogger("ludendorff.search")


class IndexedCollection(StrEnum):
    INVENTORIES = "inventories"
    ISSUED = "issued"
    CARDS = "cards"


# field under which each index stores its line items
ENTRY_FIELDS: dict[IndexedCollection, str] = {
    IndexedCollection.INVENTORIES: "inventoryItems",
    IndexedCollection.ISSUED: "issuedItems",
    IndexedCollection.CARDS: "entries",
}


@dataclass(slots=True)
class SearchSyncService:
    index: SearchIndex

    async def sync_entries(self, collection: IndexedCollection, record_id: str, entries: list[Any]) -> None:
        field = ENTRY_FIELDS[collection]
        await self.index.partial_update(collection.value, {field: entries, "objectID": record_id})
        logger.info(
            "search.entries_synced",
            extra={"index_name": collection.value, "identifier": record_id},
        )

    async def index_inventory(self, record_id: str, entries: list[Any]) -> None:
        await self.sync_entries(IndexedCollection.INVENTORIES, record_id, entries)

    async def index_issued(self, record_id: str, entries: list[Any]) -> None:
        await self.sync_entries(IndexedCollection.ISSUED, record_id, entries)

    async def index_stock_card(self, record_id: str, entries: list[Any]) -> None:
        await self.sync_entries(IndexedCollection.CARDS, record_id, entries)
