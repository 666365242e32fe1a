"""Create demo games for development/testing."""

from chaos_story.engine import ChaosGameEngine
from chaos_story.models import Game

DEMO_GAMES = [
    {
        "title": "The Haunted Vending Machine",
        "premise": "The office vending machine has started dispensing prophecies "
        "instead of snacks, and the third floor is panicking.",
        "chaos_level": 4,
        "owner": "demo-alice",
    },
    {
        "title": "Goose Parliament",
        "premise": "A flock of geese has taken over the town council and the "
        "budget meeting starts in ten minutes.",
        "chaos_level": 2,
        "owner": "demo-bob",
    },
]


async def create_demo_data(engine: ChaosGameEngine) -> list[Game]:
    """Create the demo games, play a couple of turns and cast a few votes."""
    games = []
    for demo in DEMO_GAMES:
        game = await engine.create_game(
            demo["title"], demo["premise"], demo["chaos_level"],
            demo["owner"], demo["owner"].removeprefix("demo-").title(),
        )
        games.append(game)

    first = games[0]
    # Generated scenes may use their own choice ids
    _, first = await engine.resolve_choice(
        first.id, first.current_scene.choices[-1].id, "demo-bob", "Bob",
    )
    await engine.resolve_choice(
        first.id, first.current_scene.choices[2].id, "demo-carol", "Carol",
    )
    await engine.submit_vote(first.id, 0, "demo-alice", "insane", "Alice")
    await engine.submit_vote(first.id, 0, "demo-carol", "wild", "Carol")
    await engine.submit_vote(first.id, 1, "demo-bob", "mild", "Bob")

    print(f"Created {len(games)} demo games with 2 turns and 3 votes.")
    return games
