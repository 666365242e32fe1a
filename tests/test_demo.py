"""Demo data seeding."""

from chaos_story.demo import DEMO_GAMES, create_demo_data


async def test_demo_data(engine):
    games = await create_demo_data(engine)
    assert len(games) == len(DEMO_GAMES)

    first = await engine.get_game(games[0].id)
    assert [e.author_user_id for e in first.history] == ["demo-bob", "demo-carol"]
    assert first.history[0].votes.insane == ["demo-alice"]
    assert first.history[0].votes.wild == ["demo-carol"]

    board = await engine.get_leaderboard()
    assert [p.user_id for p in board] == ["demo-bob", "demo-carol"]
    assert board[0].global_chaos_score == 8.0
    assert board[1].global_chaos_score == 3.0
    assert await engine.list_user_games("demo-alice") == [games[0].id]
