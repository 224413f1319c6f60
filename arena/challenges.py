import logging

from arena.errors import ForbiddenError, InvalidStateError, NotFoundError
from arena.models import Battle, BattleResult, BattleState, Challenge
from arena.combat.formulas import MAX_HEALTH
from arena.progression import level_progress


logger = logging.getLogger(__name__)


class ChallengeService:
    def __init__(self, repo) -> None:
        self.repo = repo

    def _require_user(self, user_id: int):
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def _require_character(self, character_id: int):
        character = self.repo.get_character(character_id)
        if not character:
            raise NotFoundError(f"Character {character_id} not found")
        return character

    def _addressed_pending(self, challenge_id: int, user_id: int) -> Challenge:
        challenge = self.repo.get_challenge(challenge_id)
        if not challenge:
            raise NotFoundError(f"Challenge {challenge_id} not found")
        if challenge.to_user_id != user_id:
            raise ForbiddenError("This challenge is not addressed to you")
        if challenge.status != "pending":
            raise InvalidStateError(f"Challenge {challenge_id} is already {challenge.status}")
        return challenge

    def issue_challenge(
        self, from_user_id: int, to_user_id: int, from_character_id: int
    ) -> Challenge:
        if from_user_id == to_user_id:
            raise InvalidStateError("You cannot challenge yourself")
        self._require_user(from_user_id)
        self._require_user(to_user_id)
        self._require_character(from_character_id)
        challenge = self.repo.create_challenge(from_user_id, to_user_id, from_character_id)
        logger.info("User %s challenged user %s", from_user_id, to_user_id)
        return challenge

    def accept_challenge(
        self, challenge_id: int, accepter_id: int, accepter_character_id: int
    ) -> tuple[Battle, BattleState]:
        challenge = self._addressed_pending(challenge_id, accepter_id)
        self._require_character(accepter_character_id)
        challenge.status = "accepted"
        self.repo.save_challenge(challenge)
        return self.start_battle(
            player1_id=challenge.from_user_id,
            player2_id=accepter_id,
            player1_character_id=challenge.from_character_id,
            player2_character_id=accepter_character_id,
        )

    def reject_challenge(self, challenge_id: int, user_id: int) -> Challenge:
        challenge = self._addressed_pending(challenge_id, user_id)
        challenge.status = "rejected"
        self.repo.save_challenge(challenge)
        return challenge

    def pending_challenges(self, user_id: int) -> list[Challenge]:
        return self.repo.list_pending_challenges(user_id)

    def start_battle(
        self,
        player1_id: int,
        player2_id: int,
        player1_character_id: int,
        player2_character_id: int,
    ) -> tuple[Battle, BattleState]:
        self._require_character(player1_character_id)
        self._require_character(player2_character_id)
        battle = self.repo.create_battle(
            player1_id=player1_id,
            player2_id=player2_id,
            player1_character_id=player1_character_id,
            player2_character_id=player2_character_id,
            status="active",
        )
        state = BattleState(
            battle_id=battle.id,
            current_turn=1,
            current_player_id=player1_id,
            player1_health=MAX_HEALTH,
            player2_health=MAX_HEALTH,
            battle_log=["Battle started!"],
        )
        self.repo.save_battle_state(state)
        logger.info("Battle %s started: %s vs %s", battle.id, player1_id, player2_id)
        return battle, state

    def battle_result(self, battle_id: int, viewer_id: int) -> BattleResult:
        battle = self.repo.get_battle(battle_id)
        if not battle:
            raise NotFoundError(f"Battle {battle_id} not found")
        if not battle.has_player(viewer_id):
            raise ForbiddenError("You did not take part in this battle")
        if battle.status != "completed":
            raise InvalidStateError(f"Battle {battle_id} is still in progress")

        opponent_id = battle.opponent_of(viewer_id)
        opponent = self.repo.get_user(opponent_id)
        viewer = self._require_user(viewer_id)
        won = battle.winner_id == viewer_id
        mine, theirs = ("player1", "player2") if viewer_id == battle.player1_id else ("player2", "player1")
        return BattleResult(
            battle_id=battle.id,
            won=won,
            opponent_id=opponent_id,
            opponent_name=opponent.username if opponent else "Unknown",
            xp_gained=getattr(battle, f"{mine}_xp_gained"),
            rank_points_change=getattr(battle, f"{mine}_rank_points_change"),
            level=viewer.level,
            level_progress=level_progress(viewer.level, viewer.experience),
            total_turns=battle.turns,
            damage_dealt=getattr(battle, f"{mine}_damage"),
            damage_taken=getattr(battle, f"{theirs}_damage"),
            critical_hits=getattr(battle, f"{mine}_critical_hits"),
            healing=getattr(battle, f"{mine}_healing"),
            status_effects=getattr(battle, f"{mine}_status_effects"),
        )
