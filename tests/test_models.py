"""Tests for chaos_story.models."""

import pytest
from pydantic import ValidationError

from chaos_story.models import (
    VOTE_WEIGHTS,
    ChaosVotes,
    ContributionCounts,
    Game,
    GameChoice,
    HistoryEntry,
    Scene,
    StoryTree,
    StoryNode,
    UserChaosProfile,
    VoteCategory,
)


def _choices(n: int = 4) -> list[GameChoice]:
    return [GameChoice(id=f"choice{i + 1}", text=f"Do thing {i + 1}") for i in range(n)]


class TestScene:
    def test_four_choices_accepted(self) -> None:
        s = Scene(id="scene_0", title="Start", description="Dark.", choices=_choices())
        assert len(s.choices) == 4
        assert s.is_ending is False

    def test_non_ending_needs_four_choices(self) -> None:
        with pytest.raises(ValidationError):
            Scene(id="scene_0", title="Start", description="Dark.", choices=_choices(3))

    def test_ending_may_have_no_choices(self) -> None:
        s = Scene(id="scene_9", title="The End", description="Fin.", is_ending=True)
        assert s.choices == []

    def test_duplicate_choice_ids_rejected(self) -> None:
        choices = _choices()
        choices[1] = GameChoice(id="choice1", text="Copycat")
        with pytest.raises(ValidationError):
            Scene(id="scene_0", title="Start", description="Dark.", choices=choices)

    def test_find_choice(self) -> None:
        s = Scene(id="scene_0", title="Start", description="Dark.", choices=_choices())
        assert s.find_choice("choice3").text == "Do thing 3"
        assert s.find_choice("nope") is None

    def test_serialise_roundtrip(self) -> None:
        s = Scene(id="scene_0", title="Start", description="Dark.", choices=_choices())
        assert Scene.model_validate_json(s.model_dump_json()) == s


class TestVotes:
    def test_weight_table(self) -> None:
        assert VOTE_WEIGHTS == {
            VoteCategory.BORING: 0,
            VoteCategory.MILD: 3,
            VoteCategory.WILD: 6,
            VoteCategory.INSANE: 10,
        }

    def test_category_from_string(self) -> None:
        assert VoteCategory("wild") is VoteCategory.WILD

    def test_unknown_category_rejected(self) -> None:
        with pytest.raises(ValueError):
            VoteCategory("spicy")

    def test_votes_default_empty(self) -> None:
        votes = ChaosVotes()
        assert votes.counts() == {c: 0 for c in VoteCategory}

    def test_voters_is_the_live_list(self) -> None:
        votes = ChaosVotes()
        votes.voters(VoteCategory.MILD).append("u1")
        assert votes.mild == ["u1"]

    def test_contribution_get_set(self) -> None:
        counts = ContributionCounts()
        counts.set(VoteCategory.INSANE, 2)
        assert counts.get(VoteCategory.INSANE) == 2
        assert counts.insane == 2


class TestHistoryEntry:
    def test_defaults(self) -> None:
        e = HistoryEntry(
            scene_id="scene_0", scene_title="Start", scene_description="Dark.",
            choice_id="choice1", choice_text="Run", author_user_id="alice",
        )
        assert e.chaos_score == 0.0
        assert e.votes == ChaosVotes()
        assert e.author_display_name is None
        assert e.timestamp.tzinfo is not None


class TestGame:
    def _game(self, **overrides) -> Game:
        scene = Scene(id="scene_0", title="Start", description="Dark.", choices=_choices())
        fields = dict(
            id="chaos_1_abc", title="T", premise="P", chaos_level=3,
            owner_user_id="alice", current_scene=scene,
            story_tree=StoryTree(
                root_id="node_0",
                nodes={"node_0": StoryNode(id="node_0", scene_id="scene_0", is_active=True)},
            ),
            active_path=["node_0"],
        )
        fields.update(overrides)
        return Game(**fields)

    def test_chaos_level_bounds(self) -> None:
        assert self._game(chaos_level=1).chaos_level == 1
        assert self._game(chaos_level=5).chaos_level == 5
        with pytest.raises(ValidationError):
            self._game(chaos_level=0)
        with pytest.raises(ValidationError):
            self._game(chaos_level=6)

    def test_serialise_roundtrip(self) -> None:
        g = self._game()
        assert Game.model_validate_json(g.model_dump_json()) == g


class TestUserChaosProfile:
    def test_all_zero_by_default(self) -> None:
        p = UserChaosProfile(user_id="alice")
        assert p.total_votes_received == 0
        assert p.global_chaos_score == 0.0
        assert p.contributions == ContributionCounts()
        assert p.display_name is None
