"""Identity provider — resolves a user id to a display name.

The engine only ever asks for names it wasn't given. A provider may return
None or raise; either way the engine carries on without the name.
"""

from __future__ import annotations

from typing import Protocol


class IdentityProvider(Protocol):
    async def display_name_of(self, user_id: str) -> str | None: ...


class StaticIdentityProvider:
    """Names from a fixed mapping. Unknown ids resolve to None."""

    def __init__(self, names: dict[str, str] | None = None) -> None:
        self._names = dict(names or {})

    async def display_name_of(self, user_id: str) -> str | None:
        return self._names.get(user_id)
