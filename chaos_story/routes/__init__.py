"""FastAPI API endpoints under /api.

Endpoint groups: games (create, read, tree, choices, votes, delete)
and users (game lists, profiles, leaderboard, health). The acting user comes
from the X-User-Id header; engine errors are turned into HTTP responses by
the handler in chaos_story.app.
"""

from fastapi import APIRouter

from .games import router as games_router
from .users import router as users_router

router = APIRouter()
router.include_router(games_router)
router.include_router(users_router)
