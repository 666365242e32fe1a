"""Typed persistence for games, profiles and the leaderboard.

Store keys:

    game:{gameId}            ← serialized Game
    games_by_user:{userId}   ← JSON list of game ids the user created
    profile:{userId}         ← serialized UserChaosProfile
    leaderboard              ← JSON list of UserChaosProfile snapshots, sorted

Reads decode, upgrade (migrations.py) and validate. A document that fails
any of those raises CorruptDataError rather than being patched silently.

Writes go through write_batch(): every value in the batch is written, or, if
one write fails, keys already written are restored to what they held before
and the error propagates.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import pydantic
from pydantic import TypeAdapter

from chaos_story.errors import CorruptDataError
from chaos_story.migrations import upgrade_game_document, upgrade_profile_document
from chaos_story.models import Game, UserChaosProfile
from chaos_story.store import KeyValueStore

logger = logging.getLogger(__name__)

LEADERBOARD_KEY = "leaderboard"

_leaderboard_adapter = TypeAdapter(list[UserChaosProfile])


def game_key(game_id: str) -> str:
    return f"game:{game_id}"


def user_games_key(user_id: str) -> str:
    return f"games_by_user:{user_id}"


def profile_key(user_id: str) -> str:
    return f"profile:{user_id}"


def _decode(key: str, raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise CorruptDataError(f"{key}: not valid JSON ({e})") from e


class ChaosStorage:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Games
    # ------------------------------------------------------------------

    async def get_game(self, game_id: str) -> Game | None:
        key = game_key(game_id)
        raw = await self._store.get(key)
        if raw is None:
            return None
        data = _decode(key, raw)
        try:
            return Game.model_validate(upgrade_game_document(data))
        except (pydantic.ValidationError, KeyError, TypeError, AttributeError) as e:
            raise CorruptDataError(f"{key}: {e}") from e

    async def get_user_games(self, user_id: str) -> list[str]:
        key = user_games_key(user_id)
        raw = await self._store.get(key)
        if raw is None:
            return []
        ids = _decode(key, raw)
        if not isinstance(ids, list):
            raise CorruptDataError(f"{key}: expected a list, got {type(ids).__name__}")
        return [str(i) for i in ids]

    # ------------------------------------------------------------------
    # Profiles and leaderboard
    # ------------------------------------------------------------------

    async def get_profile(self, user_id: str) -> UserChaosProfile | None:
        key = profile_key(user_id)
        raw = await self._store.get(key)
        if raw is None:
            return None
        try:
            return UserChaosProfile.model_validate(upgrade_profile_document(_decode(key, raw)))
        except (pydantic.ValidationError, KeyError, TypeError, AttributeError) as e:
            raise CorruptDataError(f"{key}: {e}") from e

    async def get_leaderboard(self) -> list[UserChaosProfile]:
        raw = await self._store.get(LEADERBOARD_KEY)
        if raw is None:
            return []
        rows = _decode(LEADERBOARD_KEY, raw)
        try:
            return _leaderboard_adapter.validate_python(
                [upgrade_profile_document(r) for r in rows]
            )
        except (pydantic.ValidationError, KeyError, TypeError, AttributeError) as e:
            raise CorruptDataError(f"{LEADERBOARD_KEY}: {e}") from e

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    @staticmethod
    def encode_game(game: Game) -> str:
        return game.model_dump_json(indent=2)

    @staticmethod
    def encode_user_games(game_ids: list[str]) -> str:
        return json.dumps(game_ids, indent=2)

    @staticmethod
    def encode_profile(profile: UserChaosProfile) -> str:
        return profile.model_dump_json(indent=2)

    @staticmethod
    def encode_leaderboard(rows: list[UserChaosProfile]) -> str:
        return _leaderboard_adapter.dump_json(rows, indent=2).decode()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def write_batch(self, docs: dict[str, str | None]) -> None:
        """Write (or, for None values, delete) every key in `docs`, all or nothing."""
        previous = {key: await self._store.get(key) for key in docs}
        written: list[str] = []
        try:
            for key, value in docs.items():
                if value is None:
                    await self._store.delete(key)
                else:
                    await self._store.set(key, value)
                written.append(key)
        except Exception:
            logger.error("Batch write failed after %d of %d keys; restoring", len(written), len(docs))
            for key in docs:
                old = previous[key]
                if old is None:
                    await self._store.delete(key)
                else:
                    await self._store.set(key, old)
            raise
