import pytest

from arena.combat.engine import BattleEngine
from arena.challenges import ChallengeService
from arena.db import MemoryRepository, SqliteRepository, get_connection, open_repository
from arena.models import ActiveEffect, BattleAction
from tests.helpers.scripted_random import ScriptedRandom


@pytest.fixture(params=["memory", "sqlite"])
def any_repo(request):
    if request.param == "memory":
        yield MemoryRepository()
        return
    repo = SqliteRepository(get_connection(":memory:"))
    yield repo
    repo.close()


def test_catalog_is_seeded(any_repo) -> None:
    names = [c.name for c in any_repo.list_characters()]
    assert names == ["Fire Samurai", "Ice Ninja", "Shadow Assassin"]

    moves = any_repo.get_moves_by_character_id(1)
    assert [m.name for m in moves] == [
        "Basic Attack",
        "Inferno Slash",
        "Defensive Stance",
        "Healing Flame",
    ]
    assert moves[1].damage == "30-45"
    assert moves[1].cooldown == 2
    assert any_repo.get_character(42) is None


def test_user_lookups(any_repo) -> None:
    created = any_repo.create_user(fid="555", username="Alice", display_name="Alice A")

    assert any_repo.get_user(created.id).username == "Alice"
    assert any_repo.get_user_by_fid("555").id == created.id
    assert any_repo.get_user_by_username("alice").id == created.id
    assert any_repo.get_user_by_fid("nope") is None

    created.rank_points = 70
    created.level = 3
    any_repo.save_user(created)
    stored = any_repo.get_user(created.id)
    assert (stored.level, stored.rank_points) == (3, 70)


def test_battle_state_round_trip(any_repo) -> None:
    a = any_repo.create_user(fid="1", username="a", display_name="A")
    b = any_repo.create_user(fid="2", username="b", display_name="B")
    battle, state = ChallengeService(any_repo).start_battle(a.id, b.id, 1, 3)

    state.player2_effects = [ActiveEffect("burn", 2), ActiveEffect("slow", 1)]
    state.player1_cooldowns = {"Inferno Slash": 5}
    state.battle_log.append("a did a thing")
    state.player2_health = 55
    any_repo.save_battle_state(state)

    stored = any_repo.get_battle_state(battle.id)
    assert stored == state
    assert any_repo.get_battle_state(battle.id + 100) is None


def test_returned_objects_are_detached(any_repo) -> None:
    a = any_repo.create_user(fid="1", username="a", display_name="A")
    b = any_repo.create_user(fid="2", username="b", display_name="B")
    battle, _ = ChallengeService(any_repo).start_battle(a.id, b.id, 1, 2)

    state = any_repo.get_battle_state(battle.id)
    state.player1_health = 1
    state.battle_log.append("unsaved")

    fresh = any_repo.get_battle_state(battle.id)
    assert fresh.player1_health == 100
    assert fresh.battle_log == ["Battle started!"]


def test_leaderboard_orders_by_rank_points(any_repo) -> None:
    for index, points in enumerate([10, 50, 50, 0]):
        user = any_repo.create_user(fid=str(index), username=f"u{index}", display_name="U")
        user.rank_points = points
        any_repo.save_user(user)

    top = any_repo.list_leaderboard(limit=3)
    assert [(u.username, u.rank_points) for u in top] == [("u1", 50), ("u2", 50), ("u0", 10)]


def test_pending_challenges_and_recent_opponents(any_repo) -> None:
    a = any_repo.create_user(fid="1", username="a", display_name="A")
    b = any_repo.create_user(fid="2", username="b", display_name="B")
    c = any_repo.create_user(fid="3", username="c", display_name="C")
    service = ChallengeService(any_repo)

    first = service.issue_challenge(b.id, a.id, 2)
    service.issue_challenge(c.id, a.id, 3)
    service.reject_challenge(first.id, a.id)
    assert [ch.from_user_id for ch in any_repo.list_pending_challenges(a.id)] == [c.id]

    service.start_battle(a.id, b.id, 1, 2)
    service.start_battle(c.id, a.id, 3, 1)
    service.start_battle(a.id, b.id, 1, 2)
    opponents = [u.username for u in any_repo.list_recent_opponents(a.id)]
    assert sorted(opponents) == ["b", "c"]
    assert len(any_repo.list_user_battles(a.id)) == 3


def test_full_battle_on_sqlite() -> None:
    repo = SqliteRepository(get_connection(":memory:"))
    a = repo.create_user(fid="1", username="a", display_name="A")
    b = repo.create_user(fid="2", username="b", display_name="B")
    battle, _ = ChallengeService(repo).start_battle(a.id, b.id, 1, 2)
    engine = BattleEngine(repo, rng=ScriptedRandom())

    hit = BattleAction(type="attack", move_name="Inferno Slash", target_id=b.id, move_id=2,
                       damage="60-60", effect="burn")
    engine.resolve_action(battle.id, a.id, hit)
    engine.resolve_action(
        battle.id, b.id, BattleAction(type="heal", move_name="Healing Flame", target_id=b.id)
    )
    state = engine.resolve_action(battle.id, a.id, hit)

    assert state.status == "completed"
    assert state.winner == a.id
    stored = repo.get_battle(battle.id)
    assert stored.rewards_settled
    assert stored.player1_damage == 120
    assert stored.player2_healing == 15
    assert stored.battle_log[-1] == "a wins!"
    assert repo.get_user(a.id).rank_points == 15
    assert (stored.player1_xp_gained, stored.player1_rank_points_change) == (25, 15)
    assert (stored.player2_xp_gained, stored.player2_rank_points_change) == (5, 0)
    repo.close()


def test_open_repository_selects_backend(tmp_path) -> None:
    assert isinstance(open_repository(":memory:"), MemoryRepository)

    repo = open_repository(str(tmp_path / "arena.sqlite3"))
    assert isinstance(repo, SqliteRepository)
    user = repo.create_user(fid="9", username="z", display_name="Z")
    repo.close()

    reopened = open_repository(str(tmp_path / "arena.sqlite3"))
    assert reopened.get_user(user.id).username == "z"
    assert len(reopened.list_characters()) == 3
    reopened.close()


def test_older_battles_table_gains_reward_columns() -> None:
    conn = get_connection(":memory:")
    conn.execute(
        """
        CREATE TABLE battles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            player1_id INTEGER NOT NULL,
            player2_id INTEGER NOT NULL,
            player1_character_id INTEGER NOT NULL,
            player2_character_id INTEGER NOT NULL,
            status TEXT NOT NULL,
            winner_id INTEGER,
            turns INTEGER NOT NULL DEFAULT 0,
            battle_log TEXT NOT NULL DEFAULT '[]',
            player1_damage INTEGER NOT NULL DEFAULT 0,
            player2_damage INTEGER NOT NULL DEFAULT 0,
            player1_critical_hits INTEGER NOT NULL DEFAULT 0,
            player2_critical_hits INTEGER NOT NULL DEFAULT 0,
            player1_healing INTEGER NOT NULL DEFAULT 0,
            player2_healing INTEGER NOT NULL DEFAULT 0,
            player1_status_effects INTEGER NOT NULL DEFAULT 0,
            player2_status_effects INTEGER NOT NULL DEFAULT 0,
            rewards_settled INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )
    repo = SqliteRepository(conn)

    battle = repo.create_battle(1, 2, 1, 2, "active")
    assert (battle.player1_rank_points_change, battle.player2_xp_gained) == (0, 0)
    battle.player2_rank_points_change = -10
    repo.save_battle(battle)
    assert repo.get_battle(battle.id).player2_rank_points_change == -10
    repo.close()
