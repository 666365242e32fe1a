"""Tests for author reputation updates."""

from chaos_story.models import VoteCategory
from chaos_story.profiles import apply_vote_received, new_profile


def test_new_profile_is_all_zero():
    p = new_profile("alice", "Alice")
    assert p.user_id == "alice"
    assert p.display_name == "Alice"
    assert p.total_votes_received == 0
    assert p.global_chaos_score == 0.0


def test_first_vote_counts_towards_total():
    p = apply_vote_received(new_profile("alice"), VoteCategory.WILD, None)
    assert p.total_votes_received == 1
    assert p.contributions.wild == 1
    assert p.global_chaos_score == 6.0


def test_switched_vote_moves_count_without_new_total():
    p = apply_vote_received(new_profile("alice"), VoteCategory.WILD, None)
    p = apply_vote_received(p, VoteCategory.INSANE, VoteCategory.WILD)
    assert p.total_votes_received == 1
    assert p.contributions.wild == 0
    assert p.contributions.insane == 1
    assert p.global_chaos_score == 10.0


def test_decrement_floored_at_zero():
    p = apply_vote_received(new_profile("alice"), VoteCategory.MILD, VoteCategory.BORING)
    assert p.contributions.boring == 0
    assert p.contributions.mild == 1


def test_does_not_mutate_input():
    original = new_profile("alice")
    apply_vote_received(original, VoteCategory.MILD, None)
    assert original.total_votes_received == 0
    assert original.contributions.mild == 0


def test_stamps_last_updated():
    original = new_profile("alice")
    updated = apply_vote_received(original, VoteCategory.MILD, None)
    assert updated.last_updated >= original.last_updated


def test_display_name_filled_only_when_missing():
    p = apply_vote_received(new_profile("alice"), VoteCategory.MILD, None, "Alice")
    assert p.display_name == "Alice"
    p = apply_vote_received(p, VoteCategory.MILD, None, "Someone Else")
    assert p.display_name == "Alice"


def test_boring_votes_lower_lifetime_score():
    p = new_profile("alice")
    p = apply_vote_received(p, VoteCategory.INSANE, None)
    p = apply_vote_received(p, VoteCategory.BORING, None)
    assert p.total_votes_received == 2
    assert p.global_chaos_score == 5.0
