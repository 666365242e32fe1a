"""Profiles, per-user game lists and the leaderboard."""

from fastapi import APIRouter, Depends

from chaos_story.engine import ChaosGameEngine

from .deps import get_engine

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/users/{user_id}/games")
async def list_user_games(user_id: str, engine: ChaosGameEngine = Depends(get_engine)):
    """Ids of the games a user created."""
    return await engine.list_user_games(user_id)


@router.get("/users/{user_id}/profile")
async def get_profile(user_id: str, engine: ChaosGameEngine = Depends(get_engine)):
    """A user's chaos reputation (created empty on first access)."""
    return await engine.get_user_profile(user_id)


@router.get("/leaderboard")
async def get_leaderboard(engine: ChaosGameEngine = Depends(get_engine)):
    """Top authors by global chaos score."""
    return await engine.get_leaderboard()
