"""Chaos game engine — game creation, choice resolution and chaos voting.

Operation flow:

  create_game
    1. Validate title, premise, owner and chaos level.
    2. Ask the scene writer for an opening scene (falls back, never fails).
    3. Build the Game with a one-node story tree and persist it together
       with the owner's game list.

  resolve_choice
    1. Load the game; reject endings and choices the current scene lacks.
    2. Check the story tree still matches the active path.
    3. Record a history entry with empty votes.
    4. Ask the scene writer for the continuation.
    5. Attach the new scene under the active leaf and persist the game.

  submit_vote
    1. Validate the category and history index; reject self-votes.
    2. Move the voter into the new category and rescore the entry.
    3. Update the author's profile and rebuild the leaderboard.
    4. Persist game, author profile, a first-time voter's new profile and
       the leaderboard in one batch.

Every mutation holds the game's lock from load to persist, so two requests
on one game can't overwrite each other. Profile and leaderboard updates take
their own locks (always after the game lock) since several games feed them.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import AsyncExitStack
from typing import Any

from chaos_story import leaderboard, story_tree
from chaos_story.aggregator import cast_vote, chaos_score
from chaos_story.errors import (
    GameEndedError,
    InvalidChoiceError,
    InvalidPathError,
    NotFoundError,
    SelfVoteError,
    ValidationError,
)
from chaos_story.identity import IdentityProvider
from chaos_story.locks import KeyedLock
from chaos_story.models import (
    Game,
    HistoryEntry,
    Scene,
    StoryNode,
    UserChaosProfile,
    VoteCategory,
)
from chaos_story.profiles import apply_vote_received, new_profile
from chaos_story.repository import (
    LEADERBOARD_KEY,
    ChaosStorage,
    game_key,
    profile_key,
    user_games_key,
)
from chaos_story.scenes import SceneWriter

logger = logging.getLogger(__name__)

OPENING_SCENE_ID = "scene_0"
MIN_CHAOS_LEVEL = 1
MAX_CHAOS_LEVEL = 5


def new_game_id() -> str:
    """Millisecond timestamp plus a random suffix."""
    return f"chaos_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"


def _require_text(value: Any, reason: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(reason)
    return value.strip()


def _check_chaos_level(value: Any) -> int:
    if (
        not isinstance(value, int)
        or isinstance(value, bool)
        or not MIN_CHAOS_LEVEL <= value <= MAX_CHAOS_LEVEL
    ):
        raise ValidationError(
            f"Chaos level must be between {MIN_CHAOS_LEVEL} and {MAX_CHAOS_LEVEL}"
        )
    return value


def _parse_category(value: Any) -> VoteCategory:
    try:
        return VoteCategory(value)
    except ValueError:
        allowed = ", ".join(c.value for c in VoteCategory)
        raise ValidationError(f"Invalid vote type; expected one of: {allowed}") from None


class ChaosGameEngine:
    """Orchestrates games, choices and votes over a ChaosStorage.

    Args:
        storage:          Typed persistence.
        writer:           Scene writer; defaults to fallback-only scenes.
        identity:         Optional display-name lookup.
        locks:            Named mutexes; share one instance between engines
                          that use the same store.
        leaderboard_size: How many profiles the leaderboard keeps.
    """

    def __init__(
        self,
        storage: ChaosStorage,
        writer: SceneWriter | None = None,
        identity: IdentityProvider | None = None,
        locks: KeyedLock | None = None,
        leaderboard_size: int = leaderboard.DEFAULT_LEADERBOARD_SIZE,
    ) -> None:
        self.storage = storage
        self.locks = locks or KeyedLock()
        self._writer = writer or SceneWriter()
        self._identity = identity
        self._leaderboard_size = leaderboard_size

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _display_name(self, user_id: str) -> str | None:
        if self._identity is None:
            return None
        try:
            return await self._identity.display_name_of(user_id)
        except Exception:
            logger.warning("Display name lookup failed for %s", user_id, exc_info=True)
            return None

    async def _load_game(self, game_id: str) -> Game:
        game = await self.storage.get_game(game_id)
        if game is None:
            raise NotFoundError("Game not found")
        return game

    def _active_leaf(self, game: Game) -> StoryNode:
        try:
            leaf = story_tree.check_active_path(game.story_tree, game.active_path)
            if leaf.scene_id != game.current_scene.id:
                raise InvalidPathError(
                    f"active leaf shows {leaf.scene_id!r}, current scene is {game.current_scene.id!r}"
                )
        except InvalidPathError as e:
            logger.error("Story tree of game %s is desynchronized: %s", game.id, e)
            raise
        return leaf

    async def _persist_game(self, game: Game) -> None:
        await self.storage.write_batch({game_key(game.id): self.storage.encode_game(game)})

    # ------------------------------------------------------------------
    # Game creation
    # ------------------------------------------------------------------

    async def create_game(
        self,
        title: str,
        premise: str,
        chaos_level: int,
        owner_user_id: str,
        owner_display_name: str | None = None,
    ) -> Game:
        title = _require_text(title, "Title, premise and owner are required")
        premise = _require_text(premise, "Title, premise and owner are required")
        owner_user_id = _require_text(owner_user_id, "Title, premise and owner are required")
        chaos_level = _check_chaos_level(chaos_level)

        if owner_display_name is None:
            owner_display_name = await self._display_name(owner_user_id)

        scene = await self._writer.opening(OPENING_SCENE_ID, title, premise, chaos_level)
        tree = story_tree.create_root(scene)
        game = Game(
            id=new_game_id(),
            title=title,
            premise=premise,
            chaos_level=chaos_level,
            owner_user_id=owner_user_id,
            owner_display_name=owner_display_name,
            current_scene=scene,
            story_tree=tree,
            active_path=[tree.root_id],
            scenes={scene.id: scene},
        )

        async with self.locks.hold(user_games_key(owner_user_id)):
            game_ids = await self.storage.get_user_games(owner_user_id)
            if game.id not in game_ids:
                game_ids.append(game.id)
            await self.storage.write_batch({
                game_key(game.id): self.storage.encode_game(game),
                user_games_key(owner_user_id): self.storage.encode_user_games(game_ids),
            })

        logger.info("Created game %s (chaos %d) for %s", game.id, chaos_level, owner_user_id)
        return game

    # ------------------------------------------------------------------
    # Choice resolution
    # ------------------------------------------------------------------

    async def resolve_choice(
        self,
        game_id: str,
        choice_id: str,
        acting_user_id: str,
        acting_display_name: str | None = None,
    ) -> tuple[Scene, Game]:
        acting_user_id = _require_text(acting_user_id, "User ID required")

        async with self.locks.hold(game_key(game_id)):
            game = await self._load_game(game_id)
            previous = game.current_scene
            if previous.is_ending:
                raise GameEndedError("This story has reached its ending")
            choice = previous.find_choice(choice_id)
            if choice is None:
                raise InvalidChoiceError("Invalid choice")
            self._active_leaf(game)

            if acting_display_name is None:
                acting_display_name = await self._display_name(acting_user_id)

            entry = HistoryEntry(
                scene_id=previous.id,
                scene_title=previous.title,
                scene_description=previous.description,
                choice_id=choice.id,
                choice_text=choice.text,
                author_user_id=acting_user_id,
                author_display_name=acting_display_name,
            )

            story_so_far = [e.choice_text for e in game.history] + [choice.text]
            scene_number = len(game.history) + 1
            new_scene = await self._writer.continuation(
                f"scene_{len(game.story_tree.nodes)}",
                story_so_far,
                previous,
                choice.text,
                game.chaos_level,
                scene_number,
            )

            tree, path = story_tree.append_choice(
                game.story_tree, game.active_path, choice.id, choice.text,
                new_scene, acting_user_id, timestamp=entry.timestamp,
            )
            entry.node_id = path[-1]
            updated = game.model_copy(update={
                "current_scene": new_scene,
                "history": [*game.history, entry],
                "story_tree": tree,
                "active_path": path,
                "scenes": {**game.scenes, new_scene.id: new_scene},
                "version": game.version + 1,
            })
            await self._persist_game(updated)

        logger.info(
            "Game %s: %s chose %r, now at %s%s",
            game_id, acting_user_id, choice.id, new_scene.id,
            " (ending)" if new_scene.is_ending else "",
        )
        return new_scene, updated

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------

    async def submit_vote(
        self,
        game_id: str,
        history_index: int,
        voter_user_id: str,
        vote_category: VoteCategory | str,
        voter_display_name: str | None = None,
    ) -> tuple[HistoryEntry, UserChaosProfile]:
        """Record a chaos vote on a past choice.

        The vote updates the profile of the choice's author. The profile
        returned is the voter's own, for the voter's UI.
        """
        category = _parse_category(vote_category)
        voter_user_id = _require_text(voter_user_id, "User ID required")
        if not isinstance(history_index, int) or isinstance(history_index, bool):
            raise ValidationError("History index must be an integer")

        async with self.locks.hold(game_key(game_id)):
            game = await self._load_game(game_id)
            if not 0 <= history_index < len(game.history):
                raise NotFoundError("Invalid history index")
            entry = game.history[history_index]
            if voter_user_id == entry.author_user_id:
                raise SelfVoteError("You can't vote on your own choice")

            previous = cast_vote(entry.votes, voter_user_id, category)
            entry.chaos_score = chaos_score(entry.votes)
            updated_game = game.model_copy(update={"version": game.version + 1})

            author_id = entry.author_user_id
            async with AsyncExitStack() as stack:
                # Two profile locks: always taken in user id order.
                for user_id in sorted((author_id, voter_user_id)):
                    await stack.enter_async_context(self.locks.hold(profile_key(user_id)))

                author = await self.storage.get_profile(author_id)
                if author is None:
                    author = new_profile(author_id, entry.author_display_name)
                author = apply_vote_received(
                    author, category, previous, entry.author_display_name,
                )
                batch = {
                    game_key(game_id): self.storage.encode_game(updated_game),
                    profile_key(author_id): self.storage.encode_profile(author),
                }

                voter = await self.storage.get_profile(voter_user_id)
                if voter is None:
                    if voter_display_name is None:
                        voter_display_name = await self._display_name(voter_user_id)
                    voter = new_profile(voter_user_id, voter_display_name)
                    batch[profile_key(voter_user_id)] = self.storage.encode_profile(voter)

                async with self.locks.hold(LEADERBOARD_KEY):
                    board = leaderboard.rebuild(
                        await self.storage.get_leaderboard(), author, self._leaderboard_size,
                    )
                    batch[LEADERBOARD_KEY] = self.storage.encode_leaderboard(board)
                    await self.storage.write_batch(batch)

        logger.info(
            "Game %s entry %d: %s voted %s (was %s); %s now at %.1f",
            game_id, history_index, voter_user_id, category.value,
            previous.value if previous else None, author_id, author.global_chaos_score,
        )
        return entry, voter

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_game(self, game_id: str) -> Game:
        return await self._load_game(game_id)

    async def get_story_tree(self, game_id: str) -> dict[str, Any]:
        game = await self._load_game(game_id)
        return story_tree.to_nested(game.story_tree, game.scenes)

    async def list_user_games(self, user_id: str) -> list[str]:
        return await self.storage.get_user_games(user_id)

    async def get_leaderboard(self) -> list[UserChaosProfile]:
        return await self.storage.get_leaderboard()

    async def get_user_profile(
        self, user_id: str, display_name: str | None = None
    ) -> UserChaosProfile:
        """Return the user's profile, creating an all-zero one on first access."""
        profile = await self.storage.get_profile(user_id)
        if profile is not None:
            return profile
        async with self.locks.hold(profile_key(user_id)):
            profile = await self.storage.get_profile(user_id)
            if profile is None:
                if display_name is None:
                    display_name = await self._display_name(user_id)
                profile = new_profile(user_id, display_name)
                await self.storage.write_batch({
                    profile_key(user_id): self.storage.encode_profile(profile),
                })
        return profile
