"""Core domain models.

Every engine operation and storage function works on these types.
Pydantic validates and serialises them at each data boundary (store reads,
generator output, HTTP bodies).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, model_validator

# Bumped when a stored document shape changes; see migrations.py.
SCHEMA_VERSION = 2

CHOICES_PER_SCENE = 4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VoteCategory(str, Enum):
    """How chaotic voters found a choice. Schema v2 has four categories."""

    BORING = "boring"
    MILD = "mild"
    WILD = "wild"
    INSANE = "insane"


VOTE_WEIGHTS: dict[VoteCategory, int] = {
    VoteCategory.BORING: 0,
    VoteCategory.MILD: 3,
    VoteCategory.WILD: 6,
    VoteCategory.INSANE: 10,
}


# ---------------------------------------------------------------------------
# Scenes
# ---------------------------------------------------------------------------

class GameChoice(BaseModel):
    id: str
    text: str


class Scene(BaseModel):
    """One narrative beat. Non-ending scenes always offer exactly four choices."""

    id: str
    title: str
    description: str
    choices: list[GameChoice] = Field(default_factory=list)
    is_ending: bool = False

    @model_validator(mode="after")
    def _check_choices(self) -> Scene:
        if not self.is_ending and len(self.choices) != CHOICES_PER_SCENE:
            raise ValueError(
                f"non-ending scene needs {CHOICES_PER_SCENE} choices, got {len(self.choices)}"
            )
        ids = [c.id for c in self.choices]
        if len(set(ids)) != len(ids):
            raise ValueError("choice ids must be unique within a scene")
        return self

    def find_choice(self, choice_id: str) -> GameChoice | None:
        for choice in self.choices:
            if choice.id == choice_id:
                return choice
        return None


# ---------------------------------------------------------------------------
# Votes and history
# ---------------------------------------------------------------------------

class ChaosVotes(BaseModel):
    """Voter ids per category. A voter id sits in at most one list."""

    boring: list[str] = Field(default_factory=list)
    mild: list[str] = Field(default_factory=list)
    wild: list[str] = Field(default_factory=list)
    insane: list[str] = Field(default_factory=list)

    def voters(self, category: VoteCategory) -> list[str]:
        return getattr(self, category.value)

    def counts(self) -> dict[VoteCategory, int]:
        return {c: len(self.voters(c)) for c in VoteCategory}


class HistoryEntry(BaseModel):
    """A resolved choice, with the collaborative votes on how chaotic it was."""

    scene_id: str
    scene_title: str
    scene_description: str
    choice_id: str
    choice_text: str
    timestamp: datetime = Field(default_factory=utcnow)
    author_user_id: str
    author_display_name: str | None = None
    node_id: str | None = None  # story tree node this choice created
    votes: ChaosVotes = Field(default_factory=ChaosVotes)
    chaos_score: float = 0.0


# ---------------------------------------------------------------------------
# Story tree (arena of nodes keyed by id)
# ---------------------------------------------------------------------------

class StoryNode(BaseModel):
    id: str
    scene_id: str
    parent_id: str | None = None
    choice_id: str | None = None
    choice_text: str | None = None
    author_user_id: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)
    children: list[str] = Field(default_factory=list)
    is_active: bool = False


class StoryTree(BaseModel):
    root_id: str
    nodes: dict[str, StoryNode]


# ---------------------------------------------------------------------------
# Game aggregate
# ---------------------------------------------------------------------------

class Game(BaseModel):
    id: str
    title: str
    premise: str
    chaos_level: int = Field(ge=1, le=5)
    created_at: datetime = Field(default_factory=utcnow)
    owner_user_id: str
    owner_display_name: str | None = None
    current_scene: Scene
    history: list[HistoryEntry] = Field(default_factory=list)
    story_tree: StoryTree
    active_path: list[str]
    scenes: dict[str, Scene] = Field(default_factory=dict)
    version: int = 0
    schema_version: int = SCHEMA_VERSION


# ---------------------------------------------------------------------------
# Reputation
# ---------------------------------------------------------------------------

class ContributionCounts(BaseModel):
    """Votes received per category on choices a user authored."""

    boring: int = 0
    mild: int = 0
    wild: int = 0
    insane: int = 0

    def get(self, category: VoteCategory) -> int:
        return getattr(self, category.value)

    def set(self, category: VoteCategory, value: int) -> None:
        setattr(self, category.value, value)


class UserChaosProfile(BaseModel):
    user_id: str
    display_name: str | None = None
    total_votes_received: int = 0
    contributions: ContributionCounts = Field(default_factory=ContributionCounts)
    global_chaos_score: float = 0.0
    last_updated: datetime = Field(default_factory=utcnow)
    schema_version: int = SCHEMA_VERSION
