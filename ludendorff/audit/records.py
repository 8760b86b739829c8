"""Watched record collections and how each one is identified in the log."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from ludendorff.store.documents import DocumentSnapshot


@dataclass(frozen=True, slots=True)
class RecordType:
    tag: str
    path_pattern: str
    key_field: str | None = None
    parent_key: bool = False
    parent_param: str = "id"

    def identifier_for(self, snapshot: DocumentSnapshot, params: Mapping[str, str]) -> str:
        # line items are logged under their owning report or card
        if self.parent_key:
            return params[self.parent_param]
        if self.key_field is not None:
            value = snapshot.get(self.key_field)
            if value is not None and value != "":
                return str(value)
        return snapshot.id


ASSET = RecordType(tag="asset", path_pattern="assets/{id}", key_field="stockNumber")
INVENTORY_REPORT = RecordType(tag="inventory", path_pattern="inventories/{id}", key_field="inventoryReportId")
INVENTORY_REPORT_ITEM = RecordType(
    tag="inventoryItem",
    path_pattern="inventories/{id}/inventoryItems/{stockNumber}",
    parent_key=True,
)
ISSUED_REPORT = RecordType(tag="issued", path_pattern="issued/{id}", key_field="issuedReportId")
ISSUED_REPORT_ITEM = RecordType(
    tag="issuedItem",
    path_pattern="issued/{id}/issuedItems/{itemId}",
    parent_key=True,
)
STOCK_CARD = RecordType(tag="stockCard", path_pattern="cards/{id}", key_field="stockCardId")
STOCK_CARD_ENTRY = RecordType(
    tag="stockCardEntry",
    path_pattern="cards/{id}/entries/{entryId}",
    parent_key=True,
)
USER = RecordType(tag="user", path_pattern="users/{id}", key_field="userId")

RECORD_TYPES: tuple[RecordType, ...] = (
    ASSET,
    INVENTORY_REPORT,
    INVENTORY_REPORT_ITEM,
    ISSUED_REPORT,
    ISSUED_REPORT_ITEM,
    STOCK_CARD,
    STOCK_CARD_ENTRY,
    USER,
)
