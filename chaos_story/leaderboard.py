"""Leaderboard projection over user profiles.

Rebuilt by replace-and-resort on every profile update: drop the user's old
row, add the fresh snapshot, sort by (global score desc, votes received desc),
keep the top N. Ties beyond that keep their previous relative order.
"""

from __future__ import annotations

from chaos_story.models import UserChaosProfile

DEFAULT_LEADERBOARD_SIZE = 100


def _rank_key(profile: UserChaosProfile) -> tuple[float, int]:
    return (-profile.global_chaos_score, -profile.total_votes_received)


def rebuild(
    entries: list[UserChaosProfile],
    profile: UserChaosProfile,
    limit: int = DEFAULT_LEADERBOARD_SIZE,
) -> list[UserChaosProfile]:
    rows = [e for e in entries if e.user_id != profile.user_id]
    rows.append(profile.model_copy(deep=True))
    rows.sort(key=_rank_key)
    return rows[:limit]
