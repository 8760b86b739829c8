from __future__ import annotations


class StoreError(Exception):
    """Base error for record store failures."""


class InvalidPathError(StoreError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Invalid document path: '{path}'")


class DocumentNotFoundError(StoreError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"No document to update: '{path}'")
