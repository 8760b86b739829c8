from ludendorff.store.documents import (
    ACTOR_FIELD,
    DELETE_FIELD,
    DocumentChange,
    DocumentSnapshot,
    DocumentStore,
    collection_of,
    parse_document_path,
)
from ludendorff.store.errors import DocumentNotFoundError, InvalidPathError, StoreError
from ludendorff.store.feed import ChangeFeed, match_path

__all__ = [
    "ACTOR_FIELD",
    "DELETE_FIELD",
    "ChangeFeed",
    "DocumentChange",
    "DocumentNotFoundError",
    "DocumentSnapshot",
    "DocumentStore",
    "InvalidPathError",
    "StoreError",
    "collection_of",
    "match_path",
    "parse_document_path",
]
