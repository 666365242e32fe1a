"""Chaos vote aggregation.

Pure functions over ChaosVotes and ContributionCounts. Both scores are the
weighted average of category counts (weights in models.VOTE_WEIGHTS) on a
0–10 scale, rounded half-up to one decimal; no votes means a score of 0.
"""

from __future__ import annotations

import math
from collections.abc import Mapping

from chaos_story.models import VOTE_WEIGHTS, ChaosVotes, ContributionCounts, VoteCategory


def round1(value: float) -> float:
    """Round half-up to one decimal place (2.25 → 2.3, not banker's 2.2)."""
    return math.floor(value * 10 + 0.5) / 10


def weighted_score(counts: Mapping[VoteCategory, int]) -> float:
    total = sum(counts.values())
    if total == 0:
        return 0.0
    weighted = sum(VOTE_WEIGHTS[c] * n for c, n in counts.items())
    return round1(weighted / total)


def chaos_score(votes: ChaosVotes) -> float:
    """Score of a single history entry from its current votes."""
    return weighted_score(votes.counts())


def profile_score(contributions: ContributionCounts) -> float:
    """Lifetime score of an author from all votes their choices received."""
    return weighted_score({c: contributions.get(c) for c in VoteCategory})


def previous_category(votes: ChaosVotes, voter_id: str) -> VoteCategory | None:
    for category in VoteCategory:
        if voter_id in votes.voters(category):
            return category
    return None


def cast_vote(
    votes: ChaosVotes, voter_id: str, category: VoteCategory
) -> VoteCategory | None:
    """Move `voter_id` into `category`, in place. Returns the category it left.

    The voter is removed from every list before insertion, so it ends up in
    exactly one list even if the stored data was already inconsistent.
    """
    previous = previous_category(votes, voter_id)
    for c in VoteCategory:
        voters = votes.voters(c)
        if voter_id in voters:
            voters[:] = [v for v in voters if v != voter_id]
    votes.voters(category).append(voter_id)
    return previous
