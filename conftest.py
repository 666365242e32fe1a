import pytest

from chaos_story.engine import ChaosGameEngine
from chaos_story.repository import ChaosStorage
from chaos_story.scenes import EndingPolicy, SceneWriter
from chaos_story.store import MemoryStore


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def storage(store) -> ChaosStorage:
    return ChaosStorage(store)


@pytest.fixture
def make_engine(storage):
    """Build an engine over the shared in-memory store.

    Defaults to fallback-only scenes and endings that never trigger, so
    tests are deterministic unless they ask otherwise.
    """
    def _make(llm=None, *, ending=None, identity=None, timeout=1.0, leaderboard_size=100):
        writer = SceneWriter(
            llm, timeout=timeout, ending=ending or EndingPolicy(probability=0.0),
        )
        return ChaosGameEngine(
            storage, writer=writer, identity=identity, leaderboard_size=leaderboard_size,
        )
    return _make


@pytest.fixture
def engine(make_engine) -> ChaosGameEngine:
    return make_engine()
