"""Game lifecycle endpoints: create, read, choose, vote, delete."""

from fastapi import APIRouter, Depends

from chaos_story import admin
from chaos_story.engine import ChaosGameEngine

from .deps import ActingUser, acting_user, get_engine
from .models import CastVote, CreateGame, MakeChoice

router = APIRouter()


@router.post("/games", status_code=201)
async def create_game(
    body: CreateGame,
    user: ActingUser = Depends(acting_user),
    engine: ChaosGameEngine = Depends(get_engine),
):
    """Start a new story from a premise."""
    return await engine.create_game(
        body.title, body.premise, body.chaos_level, user.user_id, user.display_name,
    )


@router.get("/games/{game_id}")
async def get_game(game_id: str, engine: ChaosGameEngine = Depends(get_engine)):
    """Get a game with its current scene and history."""
    return await engine.get_game(game_id)


@router.get("/games/{game_id}/tree")
async def get_story_tree(game_id: str, engine: ChaosGameEngine = Depends(get_engine)):
    """Get every branch explored so far as a nested tree."""
    return await engine.get_story_tree(game_id)


@router.post("/games/{game_id}/choices")
async def make_choice(
    game_id: str,
    body: MakeChoice,
    user: ActingUser = Depends(acting_user),
    engine: ChaosGameEngine = Depends(get_engine),
):
    """Pick a choice in the current scene and get the next scene."""
    scene, game = await engine.resolve_choice(
        game_id, body.choice_id, user.user_id, user.display_name,
    )
    return {"scene": scene, "game": game}


@router.post("/games/{game_id}/votes")
async def vote(
    game_id: str,
    body: CastVote,
    user: ActingUser = Depends(acting_user),
    engine: ChaosGameEngine = Depends(get_engine),
):
    """Vote on how chaotic a past choice was."""
    entry, profile = await engine.submit_vote(
        game_id, body.history_index, user.user_id, body.vote_type, user.display_name,
    )
    return {"history_entry": entry, "user_profile": profile}


@router.delete("/games/{game_id}")
async def delete_game(
    game_id: str,
    user: ActingUser = Depends(acting_user),
    engine: ChaosGameEngine = Depends(get_engine),
):
    """Delete a game (creator only)."""
    await admin.delete_game(engine, game_id, user.user_id)
    return {"ok": True}
