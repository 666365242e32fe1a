"""Per-user reputation derived from votes received on authored choices."""

from __future__ import annotations

from chaos_story.aggregator import profile_score
from chaos_story.models import UserChaosProfile, VoteCategory, utcnow


def new_profile(user_id: str, display_name: str | None = None) -> UserChaosProfile:
    """An all-zero profile for a user nobody has voted on yet."""
    return UserChaosProfile(user_id=user_id, display_name=display_name)


def apply_vote_received(
    profile: UserChaosProfile,
    category: VoteCategory,
    previous: VoteCategory | None,
    display_name: str | None = None,
) -> UserChaosProfile:
    """Return a copy of an author's profile updated for one vote on their choice.

    A first vote from this voter on the entry counts towards the total; a
    switched vote moves one count from `previous` to `category` (floored at 0)
    and leaves the total alone.
    """
    updated = profile.model_copy(deep=True)
    counts = updated.contributions
    if previous is None:
        updated.total_votes_received += 1
    else:
        counts.set(previous, max(0, counts.get(previous) - 1))
    counts.set(category, counts.get(category) + 1)

    updated.global_chaos_score = profile_score(counts)
    updated.last_updated = utcnow()
    if display_name and not updated.display_name:
        updated.display_name = display_name
    return updated
