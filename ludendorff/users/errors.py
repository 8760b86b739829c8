from __future__ import annotations


class UserAdminError(Exception):
    """Base error for user administration failures."""


class PermissionDeniedError(UserAdminError):
    def __init__(self) -> None:
        super().__init__("permission denied")


class InvalidTokenError(UserAdminError):
    def __init__(self) -> None:
        super().__init__("invalid identity token")


class IdentityError(UserAdminError):
    """Raised by the identity provider for rejected account mutations."""
