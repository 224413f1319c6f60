import pytest

from arena.errors import ForbiddenError, InvalidStateError, NotFoundError
from arena.models import BattleAction


def test_accepting_challenge_creates_battle(repo, users, challenges) -> None:
    alice, bob = users
    challenge = challenges.issue_challenge(alice.id, bob.id, 1)
    assert challenge.status == "pending"

    battle, state = challenges.accept_challenge(challenge.id, bob.id, 3)

    assert (battle.player1_id, battle.player2_id) == (alice.id, bob.id)
    assert (battle.player1_character_id, battle.player2_character_id) == (1, 3)
    assert battle.status == "active"
    assert state.current_player_id == alice.id
    assert state.current_turn == 1
    assert (state.player1_health, state.player2_health) == (100, 100)
    assert state.player1_effects == [] and state.player2_effects == []
    assert state.battle_log == ["Battle started!"]
    assert repo.get_challenge(challenge.id).status == "accepted"
    assert repo.get_battle_state(battle.id).to_dict()["currentPlayerId"] == alice.id


def test_accept_missing_challenge(users, challenges) -> None:
    with pytest.raises(NotFoundError):
        challenges.accept_challenge(77, users[1].id, 1)


def test_only_recipient_can_accept(repo, users, challenges) -> None:
    alice, bob = users
    carol = repo.create_user(fid="1003", username="carol", display_name="Carol")
    challenge = challenges.issue_challenge(alice.id, bob.id, 1)

    with pytest.raises(ForbiddenError):
        challenges.accept_challenge(challenge.id, carol.id, 2)
    with pytest.raises(ForbiddenError):
        challenges.accept_challenge(challenge.id, alice.id, 2)
    assert repo.get_challenge(challenge.id).status == "pending"


def test_resolved_challenge_cannot_be_accepted_again(users, challenges) -> None:
    alice, bob = users
    challenge = challenges.issue_challenge(alice.id, bob.id, 1)
    challenges.accept_challenge(challenge.id, bob.id, 2)

    with pytest.raises(InvalidStateError):
        challenges.accept_challenge(challenge.id, bob.id, 2)
    with pytest.raises(InvalidStateError):
        challenges.reject_challenge(challenge.id, bob.id)


def test_unknown_accepter_character_leaves_challenge_pending(repo, users, challenges) -> None:
    alice, bob = users
    challenge = challenges.issue_challenge(alice.id, bob.id, 1)

    with pytest.raises(NotFoundError):
        challenges.accept_challenge(challenge.id, bob.id, 99)
    assert repo.get_challenge(challenge.id).status == "pending"


def test_reject_challenge(repo, users, challenges) -> None:
    alice, bob = users
    challenge = challenges.issue_challenge(alice.id, bob.id, 2)

    rejected = challenges.reject_challenge(challenge.id, bob.id)

    assert rejected.status == "rejected"
    assert challenges.pending_challenges(bob.id) == []
    with pytest.raises(InvalidStateError):
        challenges.accept_challenge(challenge.id, bob.id, 1)


def test_issue_challenge_validation(users, challenges) -> None:
    alice, bob = users
    with pytest.raises(InvalidStateError):
        challenges.issue_challenge(alice.id, alice.id, 1)
    with pytest.raises(NotFoundError):
        challenges.issue_challenge(alice.id, 404, 1)
    with pytest.raises(NotFoundError):
        challenges.issue_challenge(alice.id, bob.id, 99)


def test_pending_challenges_are_addressed_to_user(users, challenges) -> None:
    alice, bob = users
    first = challenges.issue_challenge(alice.id, bob.id, 1)
    challenges.issue_challenge(bob.id, alice.id, 2)

    assert [c.id for c in challenges.pending_challenges(bob.id)] == [first.id]


def test_battle_result_for_both_sides(repo, users, challenges, engine) -> None:
    alice, bob = users
    bob.rank_points = 40
    repo.save_user(bob)
    battle, _ = challenges.start_battle(alice.id, bob.id, 1, 2)
    engine.resolve_action(
        battle.id, alice.id, BattleAction(type="attack", move_name="Strike", target_id=bob.id, damage="40-40")
    )
    engine.resolve_action(
        battle.id, bob.id, BattleAction(type="attack", move_name="Strike", target_id=alice.id, damage="10-10")
    )
    with pytest.raises(InvalidStateError):
        challenges.battle_result(battle.id, alice.id)
    engine.resolve_action(
        battle.id, alice.id, BattleAction(type="attack", move_name="Strike", target_id=bob.id, damage="60-60")
    )

    won = challenges.battle_result(battle.id, alice.id)
    lost = challenges.battle_result(battle.id, bob.id)

    assert won.won and not lost.won
    assert (won.damage_dealt, won.damage_taken) == (100, 10)
    assert (lost.damage_dealt, lost.damage_taken) == (10, 100)
    assert won.opponent_name == "bob"
    assert (won.xp_gained, won.rank_points_change) == (25, 15)
    assert (lost.xp_gained, lost.rank_points_change) == (5, -10)
    assert won.total_turns == 3
    assert won.level_progress == 25

    outsider = repo.create_user(fid="1003", username="carol", display_name="Carol")
    with pytest.raises(ForbiddenError):
        challenges.battle_result(battle.id, outsider.id)


def test_battle_result_reports_floored_rank_loss(users, challenges, engine) -> None:
    alice, bob = users
    battle, _ = challenges.start_battle(alice.id, bob.id, 1, 2)
    engine.resolve_action(
        battle.id, alice.id, BattleAction(type="attack", move_name="Strike", target_id=bob.id, damage="100-100")
    )

    lost = challenges.battle_result(battle.id, bob.id)

    assert not lost.won
    assert (lost.xp_gained, lost.rank_points_change) == (5, 0)
