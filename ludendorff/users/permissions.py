from __future__ import annotations

from collections.abc import Iterable

MANAGE_USERS = 16
SUPERUSER = 32


def has_permission(permissions: Iterable[int] | None, permission: int) -> bool:
    """True when ``permission`` or the superuser bit is granted."""
    granted = set(permissions or [])
    return permission in granted or SUPERUSER in granted
