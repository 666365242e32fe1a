"""Administrative operations that sit outside normal play."""

from __future__ import annotations

import logging

from chaos_story.engine import ChaosGameEngine
from chaos_story.errors import NotFoundError, NotGameOwnerError
from chaos_story.repository import game_key, user_games_key

logger = logging.getLogger(__name__)


async def delete_game(engine: ChaosGameEngine, game_id: str, requested_by: str) -> None:
    """Remove a game and drop it from its owner's game list. Owner only.

    Votes already counted into profiles and the leaderboard stay counted.
    """
    storage = engine.storage
    async with engine.locks.hold(game_key(game_id)):
        game = await storage.get_game(game_id)
        if game is None:
            raise NotFoundError("Game not found")
        if game.owner_user_id != requested_by:
            raise NotGameOwnerError("Only the game's creator can delete it")

        owner = game.owner_user_id
        async with engine.locks.hold(user_games_key(owner)):
            game_ids = [i for i in await storage.get_user_games(owner) if i != game_id]
            await storage.write_batch({
                game_key(game_id): None,
                user_games_key(owner): storage.encode_user_games(game_ids),
            })

    logger.info("Deleted game %s at the request of %s", game_id, requested_by)
